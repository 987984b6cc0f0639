"""Run configuration: command-line options layered over `.delivery/cli.toml`."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from .errors import ConfigError
from .utils import walk_tree_for_path

CONFIG_FILE = ".delivery/cli.toml"
DEFAULT_PIPELINE = "master"
DEFAULT_GIT_PORT = "8989"

# Keys read from cli.toml, mapped to RunConfig field names
FILE_KEYS = {
    "server": "server",
    "user": "user",
    "enterprise": "enterprise",
    "organization": "organization",
    "pipeline": "pipeline",
    "git_port": "git_port",
    "generator": "generator",
    "config_json": "config_json",
}


@dataclass(frozen=True)
class RunConfig:
    project_root: Path
    project: str
    user: Optional[str] = None
    server: Optional[str] = None
    enterprise: Optional[str] = None
    organization: Optional[str] = None
    pipeline: str = DEFAULT_PIPELINE
    git_port: str = DEFAULT_GIT_PORT
    token: Optional[str] = None
    generator: Optional[str] = None
    config_json: Optional[str] = None
    github_org: Optional[str] = None
    bitbucket_project_key: Optional[str] = None
    repo_name: Optional[str] = None
    no_verify_ssl: bool = False
    local: bool = False
    skip_build_cookbook: bool = False
    no_open: bool = False

    def delivery_git_ssh_url(self) -> str:
        return (
            f"ssh://{self.user}@{self.enterprise}@{self.server}:{self.git_port}"
            f"/{self.enterprise}/{self.organization}/{self.project}"
        )

    def api_base_url(self) -> str:
        return f"https://{self.server}/api/v0/e/{self.enterprise}"

    def validate_for_server(self) -> None:
        """Non-local runs talk to the server and need its full coordinates."""
        if self.local:
            return
        missing = [
            name
            for name in ("user", "server", "enterprise", "organization")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigError(
                f"Missing required option(s): {', '.join(missing)}",
                detail=f"Pass them on the command line or set them in {CONFIG_FILE}",
            )


def find_config_file(start: Path) -> Optional[Path]:
    return walk_tree_for_path(start, CONFIG_FILE)


def load_config_file(path: Optional[Path]) -> dict[str, Any]:
    if path is None:
        return {}
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid configuration file {path}", detail=str(exc)) from exc
    return {FILE_KEYS[key]: value for key, value in data.items() if key in FILE_KEYS}


def _normalize_empty(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped if stripped else None


def resolve_config(options: Mapping[str, Any], project_root: Path, file_values: Mapping[str, Any]) -> RunConfig:
    """Merge command-line options over file values over defaults.

    `options` holds the raw CLI values keyed by RunConfig field name; `None`
    and blank strings mean "not given".
    """
    merged: dict[str, Any] = {}
    for key, value in file_values.items():
        if _normalize_empty(value) is not None:
            merged[key] = str(value).strip()
    for key, value in options.items():
        if isinstance(value, bool):
            merged[key] = value
        elif _normalize_empty(value) is not None:
            merged[key] = value.strip()

    merged["project"] = merged.get("project") or project_root.name
    merged["pipeline"] = merged.get("pipeline") or DEFAULT_PIPELINE
    merged["git_port"] = merged.get("git_port") or DEFAULT_GIT_PORT
    merged["repo_name"] = merged.get("repo_name") or merged["project"]

    return RunConfig(project_root=project_root, **merged)
