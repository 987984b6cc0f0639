"""Build-cookbook scaffolding through the external `chef` generator."""

import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import Optional

from . import probes
from .errors import MissingConfigFile, ScaffoldError
from .git import Git
from .probes import BUILD_COOKBOOK, DELIVERY_CONFIG, EnsureResult, ResourceState
from .utils import DELIVERY_HOME, check_tool, copy_recursive, run_command

logger = logging.getLogger(__name__)


class CustomCookbookSource(str, Enum):
    CACHED = "cached"
    DISK = "disk"
    GIT = "git"


def generator_cache_path() -> Path:
    return DELIVERY_HOME / "cache" / "generator-cookbooks"


def is_local_generator(generator: str) -> bool:
    path = Path(generator).expanduser()
    return path.is_absolute() or path.exists()


def generator_name(generator: str) -> str:
    """Cache directory name for a generator path or git URL (`.../foo.git` -> `foo`)."""
    return Path(generator.rstrip("/")).stem


class ChefScaffolder:
    """Runs `chef generate ...` inside the project root."""

    def __init__(self, executable: str = "chef") -> None:
        self.executable = executable

    def _run(self, args: list[str], root: Path) -> subprocess.CompletedProcess:
        if not check_tool(self.executable):
            raise ScaffoldError(
                f"{self.executable} not found",
                detail="Install ChefDK / Chef Workstation to generate build cookbooks.",
            )
        try:
            return run_command([self.executable, *args], cwd=root)
        except subprocess.CalledProcessError as exc:
            raise ScaffoldError(
                f"{self.executable} {' '.join(args)} exited with {exc.returncode}",
                detail=(exc.stderr or exc.stdout or "").strip() or None,
            ) from exc

    def generate_build_cookbook(self, root: Path) -> subprocess.CompletedProcess:
        return self._run(["generate", "build-cookbook", str(BUILD_COOKBOOK)], root)

    def generate_from_generator(self, root: Path, generator_path: Path) -> subprocess.CompletedProcess:
        return self._run(["generate", "cookbook", str(BUILD_COOKBOOK), "-g", str(generator_path)], root)


def resolve_generator(generator: str, cache_path: Path, git: Git) -> tuple[Path, CustomCookbookSource]:
    """Materialize a generator into the cache.

    Local paths are re-copied on every run. Git URLs are cloned once; an
    existing cache directory is reused as-is, without checking its content.
    """
    cache_path.mkdir(parents=True, exist_ok=True)
    dest = cache_path / generator_name(generator)
    if is_local_generator(generator):
        copy_recursive(Path(generator).expanduser(), dest)
        return dest, CustomCookbookSource.DISK
    if dest.is_dir():
        logger.info("using cached generator", extra={"event": "generator.cached", "path": str(dest)})
        return dest, CustomCookbookSource.CACHED
    git.clone(dest, generator)
    return dest, CustomCookbookSource.GIT


def ensure_default_build_cookbook(root: Path, scaffolder: ChefScaffolder) -> EnsureResult:
    """Generate the stock build cookbook unless `.delivery/build-cookbook` already exists."""
    if probes.build_cookbook_state(root) is ResourceState.PRESENT:
        logger.info(
            f"{BUILD_COOKBOOK} folder already exists, skipping build cookbook generation.",
            extra={"event": "cookbook.exists"},
        )
        return EnsureResult.NOOP
    scaffolder.generate_build_cookbook(root)
    return EnsureResult.CREATED


def ensure_custom_build_cookbook(
    root: Path,
    generator: str,
    scaffolder: ChefScaffolder,
    git: Git,
    cache_path: Optional[Path] = None,
) -> CustomCookbookSource:
    """Generate the build cookbook from a custom generator; it must leave a config.json behind."""
    generator_path, source = resolve_generator(generator, cache_path or generator_cache_path(), git)
    scaffolder.generate_from_generator(root, generator_path)
    if probes.delivery_config_state(root) is ResourceState.ABSENT:
        raise MissingConfigFile(DELIVERY_CONFIG)
    return source
