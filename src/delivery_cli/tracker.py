"""Progress tree for `delivery init` and `delivery check`."""

from dataclasses import dataclass
from typing import Callable, Optional

from rich.tree import Tree

SYMBOLS = {
    "pending": "[green dim]○[/green dim]",
    "running": "[cyan]○[/cyan]",
    "done": "[green]●[/green]",
    "skipped": "[yellow]○[/yellow]",
    "error": "[red]●[/red]",
}


@dataclass
class Step:
    key: str
    label: str
    status: str = "pending"
    detail: str = ""

    def line(self) -> str:
        symbol = SYMBOLS.get(self.status, " ")
        detail = self.detail.strip()
        if self.status == "pending":
            text = f"{self.label} ({detail})" if detail else self.label
            return f"{symbol} [bright_black]{text}[/bright_black]"
        if detail:
            return f"{symbol} [white]{self.label}[/white] [bright_black]({detail})[/bright_black]"
        return f"{symbol} [white]{self.label}[/white]"


class StepTracker:
    """Ordered steps of one run, rendered as a rich tree.

    A `Live` display attaches a refresh callback so every state change
    redraws the tree.
    """

    def __init__(self, title: str):
        self.title = title
        self._steps: dict[str, Step] = {}
        self._refresh: Optional[Callable[[], None]] = None

    def attach_refresh(self, callback: Callable[[], None]) -> None:
        self._refresh = callback

    def add(self, key: str, label: str) -> None:
        if key not in self._steps:
            self._steps[key] = Step(key, label)
            self._changed()

    def start(self, key: str, detail: str = "") -> None:
        self._set(key, "running", detail)

    def complete(self, key: str, detail: str = "") -> None:
        self._set(key, "done", detail)

    def skip(self, key: str, detail: str = "") -> None:
        self._set(key, "skipped", detail)

    def error(self, key: str, detail: str = "") -> None:
        self._set(key, "error", detail)

    def status(self, key: str) -> Optional[str]:
        step = self._steps.get(key)
        return step.status if step else None

    def _set(self, key: str, status: str, detail: str) -> None:
        step = self._steps.setdefault(key, Step(key, key))
        step.status = status
        if detail:
            step.detail = detail
        self._changed()

    def _changed(self) -> None:
        if self._refresh:
            self._refresh()

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self._steps.values():
            tree.add(step.line())
        return tree
