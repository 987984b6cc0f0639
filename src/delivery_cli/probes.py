"""Read-only queries answering "does this resource already exist?".

Probes never mutate anything. A probe that cannot run at all (git missing,
server unreachable) raises the collaborator's error instead of reporting
the resource as absent.
"""

import logging
from enum import Enum
from pathlib import Path

from .git import DELIVERY_REMOTE, FEATURE_BRANCH, ORIGIN_REMOTE, Git
from .server import APIClient
from .utils import file_needs_updated, walk_tree_for_path

logger = logging.getLogger(__name__)

DOT_DELIVERY = ".delivery"
BUILD_COOKBOOK = Path(DOT_DELIVERY) / "build-cookbook"
DELIVERY_CONFIG = Path(DOT_DELIVERY) / "config.json"


class ResourceState(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    # Exists, but not the way we would have created it
    MISMATCH = "mismatch"


class EnsureResult(str, Enum):
    CREATED = "created"
    NOOP = "noop"


def _state(present: bool) -> ResourceState:
    return ResourceState.PRESENT if present else ResourceState.ABSENT


def git_root_state(start: Path) -> ResourceState:
    return _state(walk_tree_for_path(start, ".git/config") is not None)


def remote_state(git: Git, expected_url: str, name: str = DELIVERY_REMOTE) -> ResourceState:
    url = git.remote_url(name)
    if url is None:
        return ResourceState.ABSENT
    if url != expected_url:
        return ResourceState.MISMATCH
    return ResourceState.PRESENT


def origin_remote_state(git: Git) -> ResourceState:
    return _state(ORIGIN_REMOTE in git.remote_list())


def upstream_history_state(git: Git, pipeline: str) -> ResourceState:
    return _state(git.has_upstream_history(pipeline))


def server_project_state(client: APIClient, org: str, project: str) -> ResourceState:
    return _state(client.project_exists(org, project))


def server_pipeline_state(client: APIClient, org: str, project: str, pipeline: str) -> ResourceState:
    return _state(client.pipeline_exists(org, project, pipeline))


def scp_server_config_state(client: APIClient, provider: str) -> ResourceState:
    if provider == "github":
        return _state(bool(client.get_github_server_config()))
    if provider == "bitbucket":
        return _state(bool(client.get_bitbucket_server_config()))
    raise ValueError(f"Unknown source code provider: {provider}")


def feature_branch_state(git: Git, branch: str = FEATURE_BRANCH) -> ResourceState:
    return _state(git.branch_exists(branch))


def build_cookbook_state(root: Path) -> ResourceState:
    return _state((root / BUILD_COOKBOOK).is_dir())


def delivery_config_state(root: Path) -> ResourceState:
    return _state((root / DELIVERY_CONFIG).is_file())


def custom_config_state(root: Path, candidate: Path) -> ResourceState:
    """PRESENT when `.delivery/config.json` already holds exactly `candidate`'s bytes."""
    return _state(not file_needs_updated(candidate, root / DELIVERY_CONFIG))
