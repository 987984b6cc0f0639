"""Thin wrapper over the `git` executable.

Only the logical operations the init workflow needs are exposed. Every call
runs git in the project root and raises `GitError` with git's stderr on
failure.
"""

import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .errors import GitError

logger = logging.getLogger(__name__)

DELIVERY_REMOTE = "delivery"
ORIGIN_REMOTE = "origin"
FEATURE_BRANCH = "add-delivery-config"


class BranchCheckout(str, Enum):
    CREATED = "created"
    SWITCHED_EXISTING = "switched_existing"


class Git:
    def __init__(self, root: Path, *, git_executable: str = "git") -> None:
        self.root = Path(root)
        self._git_executable = git_executable

    def run(
        self, args: Sequence[str], *, cwd: Optional[Path] = None, check: bool = True
    ) -> subprocess.CompletedProcess:
        cmd = [self._git_executable, *args]
        logger.debug("git %s", " ".join(args), extra={"event": "git.run", "cwd": str(cwd or self.root)})
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd or self.root,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise GitError(f"git executable not found: {self._git_executable}") from exc

        if check and result.returncode != 0:
            raise GitError(f"git {' '.join(args)} failed with exit code {result.returncode}", stderr=result.stderr)
        return result

    def remote_list(self) -> set[str]:
        output = self.run(["remote"]).stdout
        return {line.strip() for line in output.splitlines() if line.strip()}

    def remote_url(self, name: str) -> Optional[str]:
        if name not in self.remote_list():
            return None
        return self.run(["remote", "get-url", name]).stdout.strip()

    def remote_add(self, name: str, url: str) -> None:
        self.run(["remote", "add", name, url])

    def branch_exists(self, name: str) -> bool:
        output = self.run(["branch", "--list", name]).stdout
        return any(line.lstrip("* ").strip() == name for line in output.splitlines())

    def checkout(self, branch: str) -> None:
        self.run(["checkout", branch])

    def checkout_or_create(self, branch: str) -> BranchCheckout:
        try:
            self.run(["checkout", "-b", branch])
            return BranchCheckout.CREATED
        except GitError as exc:
            # git has changed the capitalization of this message across releases
            if f"a branch named '{branch}' already exists" not in exc.stderr.lower():
                raise
        self.checkout(branch)
        return BranchCheckout.SWITCHED_EXISTING

    def add(self, paths: Iterable[str]) -> None:
        self.run(["add", *paths])

    def has_staged_changes(self) -> bool:
        result = self.run(["diff", "--cached", "--quiet"], check=False)
        if result.returncode not in (0, 1):
            raise GitError("git diff --cached failed", stderr=result.stderr)
        return result.returncode == 1

    def commit(self, message: str) -> None:
        self.run(["commit", "-m", message])

    def push(self, pipeline: str, *, remote: str = DELIVERY_REMOTE) -> str:
        result = self.run(["push", "--set-upstream", "--porcelain", "--progress", "--verbose", remote, pipeline])
        return result.stdout + result.stderr

    def push_for_review(self, pipeline: str, branch: str, *, remote: str = DELIVERY_REMOTE) -> str:
        """Push `branch` to the server's review ref and return git's combined output."""
        target = f"{branch}:_for/{pipeline}/{branch}"
        result = self.run(["push", "--porcelain", "--progress", "--verbose", remote, target])
        return result.stdout + result.stderr

    def has_upstream_history(self, pipeline: str, *, remote: str = DELIVERY_REMOTE) -> bool:
        output = self.run(["ls-remote", remote, f"refs/heads/{pipeline}"]).stdout
        return bool(output.strip())

    def current_branch(self) -> str:
        return self.run(["rev-parse", "--abbrev-ref", "HEAD"]).stdout.strip()

    def head_commit(self) -> str:
        return self.run(["rev-parse", "HEAD"]).stdout.strip()

    def clone(self, dest: Path, url: str) -> None:
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        self.run(["clone", url, str(dest)], cwd=dest.parent)
