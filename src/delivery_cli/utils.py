import hashlib
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from .errors import NoGitConfig

logger = logging.getLogger(__name__)

# Home-relative directory where the CLI keeps its own state
DELIVERY_HOME = Path.home() / ".delivery"


def walk_tree_for_path(start: Path, target: str) -> Optional[Path]:
    """Walk up from `start` looking for `start/target`, returning the first hit."""
    current = Path(start).absolute()
    for candidate_dir in (current, *current.parents):
        candidate = candidate_dir / target
        if candidate.exists():
            return candidate
    return None


def root_dir(start: Path) -> Path:
    """Return the project root: the directory holding the enclosing `.git/config`."""
    found = walk_tree_for_path(start, ".git/config")
    if found is None:
        raise NoGitConfig(
            "Unable to find a git repository",
            detail=f"No .git/config above the current directory: {start}",
        )
    return found.parent.parent


def file_digest(path: Path) -> str:
    return hashlib.md5(path.read_bytes()).hexdigest()


def file_needs_updated(source: Path, dest: Path) -> bool:
    """True when `dest` is missing or its content differs from `source`."""
    if not dest.exists():
        return True
    return file_digest(source) != file_digest(dest)


def copy_recursive(source: Path, dest: Path) -> None:
    """Replace `dest` with a copy of `source` (file or directory)."""
    if source.is_dir():
        if dest.exists():
            shutil.rmtree(dest)
        shutil.copytree(source, dest)
    else:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)


def check_tool(tool: str) -> bool:
    """Check if a tool is installed."""
    return shutil.which(tool) is not None


def run_command(cmd: list[str], cwd: Optional[Path] = None, check_return: bool = True) -> subprocess.CompletedProcess:
    """Run a command, capturing its output."""
    logger.debug("running %s", " ".join(cmd), extra={"event": "command.run", "cwd": str(cwd)})
    return subprocess.run(cmd, cwd=cwd, check=check_return, capture_output=True, text=True)
