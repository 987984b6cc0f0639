"""Idempotent "ensure" operations for each resource the init workflow manages.

Each materializer re-probes its resource right before acting. A resource
that is already there is reported as a no-op and left untouched.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from . import probes
from .errors import ConfigError, RemoteMismatch
from .git import DELIVERY_REMOTE, FEATURE_BRANCH, BranchCheckout, Git
from .probes import BUILD_COOKBOOK, DELIVERY_CONFIG, DOT_DELIVERY, EnsureResult, ResourceState
from .server import APIClient

logger = logging.getLogger(__name__)


def _skip(event: str, message: str, **fields) -> EnsureResult:
    logger.info(message, extra={"event": event, **fields})
    return EnsureResult.NOOP


def _created(event: str, message: str, **fields) -> EnsureResult:
    logger.info(message, extra={"event": event, **fields})
    return EnsureResult.CREATED


def ensure_dot_delivery(root: Path) -> Path:
    dot_delivery = root / DOT_DELIVERY
    dot_delivery.mkdir(parents=True, exist_ok=True)
    return dot_delivery


def ensure_server_project(client: APIClient, org: str, project: str) -> EnsureResult:
    if probes.server_project_state(client, org, project) is ResourceState.PRESENT:
        return _skip("project.exists", f"Project {project} already exists", org=org, project=project)
    client.create_delivery_project(org, project)
    return _created("project.created", f"Created project {project}", org=org, project=project)


def ensure_pipeline(client: APIClient, org: str, project: str, pipeline: str) -> EnsureResult:
    if probes.server_pipeline_state(client, org, project, pipeline) is ResourceState.PRESENT:
        return _skip("pipeline.exists", f"Pipeline {pipeline} already exists", project=project, pipeline=pipeline)
    client.create_pipeline(org, project, pipeline)
    return _created("pipeline.created", f"Created pipeline {pipeline}", project=project, pipeline=pipeline)


def ensure_delivery_remote(git: Git, url: str, name: str = DELIVERY_REMOTE) -> EnsureResult:
    """Add the `delivery` remote. A same-named remote pointing elsewhere is reported, never rewritten."""
    state = probes.remote_state(git, url, name)
    if state is ResourceState.PRESENT:
        return _skip("remote.exists", f"Remote {name} already configured", remote=name)
    if state is ResourceState.MISMATCH:
        raise RemoteMismatch(name, git.remote_url(name) or "", url)
    git.remote_add(name, url)
    return _created("remote.created", f"Added remote {name} -> {url}", remote=name)


def ensure_initial_push(git: Git, pipeline: str) -> EnsureResult:
    """Push local history once; as soon as the pipeline branch has upstream commits this never pushes again."""
    if probes.upstream_history_state(git, pipeline) is ResourceState.PRESENT:
        return _skip("push.skipped", f"Found commits upstream on {pipeline}, not pushing local content", pipeline=pipeline)
    git.push(pipeline)
    return _created("push.done", f"Pushed local content to {pipeline}", pipeline=pipeline)


def ensure_feature_branch(git: Git, branch: str = FEATURE_BRANCH) -> EnsureResult:
    """Create and check out the feature branch, or just check it out when it already exists."""
    if probes.feature_branch_state(git, branch) is ResourceState.PRESENT:
        git.checkout(branch)
        return _skip("branch.exists", f"Switched to existing branch {branch}", branch=branch)
    if git.checkout_or_create(branch) is BranchCheckout.SWITCHED_EXISTING:
        return _skip("branch.exists", f"Switched to existing branch {branch}", branch=branch)
    return _created("branch.created", f"Created feature branch {branch}", branch=branch)


def ensure_custom_config(root: Path, config_json: Optional[str]) -> EnsureResult:
    """Copy a user-supplied config.json into `.delivery/` only when its content differs."""
    if not config_json:
        return EnsureResult.NOOP
    candidate = Path(config_json).expanduser()
    if not candidate.is_file():
        raise ConfigError(f"Custom config file not found: {candidate}")
    if probes.custom_config_state(root, candidate) is ResourceState.PRESENT:
        return _skip("config.unchanged", f"{DELIVERY_CONFIG} already matches {candidate}")
    dest = root / DELIVERY_CONFIG
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(candidate, dest)
    return _created("config.copied", f"Copied {candidate} to {DELIVERY_CONFIG}")


def _commit_if_staged(git: Git, message: str) -> EnsureResult:
    if not git.has_staged_changes():
        return _skip("commit.skipped", f"Nothing new to commit for: {message}")
    git.commit(message)
    return _created("commit.created", message)


def add_commit_build_cookbook(git: Git, custom_config_passed: bool) -> EnsureResult:
    """Commit the generated cookbook, plus the generator's config.json unless a custom one follows."""
    if custom_config_passed:
        git.add([str(BUILD_COOKBOOK)])
        return _commit_if_staged(git, "Adds Delivery build cookbook")
    # .delivery may not be tracked yet, so add the whole folder
    git.add([DOT_DELIVERY])
    return _commit_if_staged(git, "Adds Delivery build cookbook and config")


def add_commit_custom_config(git: Git) -> EnsureResult:
    git.add([str(DELIVERY_CONFIG)])
    return _commit_if_staged(git, "Adds custom Delivery config")
