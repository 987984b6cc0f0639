"""The `delivery init` workflow.

Brings a local git project onto a Delivery server: project, remote, initial
push, pipeline, optional SCP linkage, build cookbook, custom config and a
review. Every step re-derives what already exists, so running init again
after a partial or complete run converges instead of failing.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import typer

from . import cookbook, probes
from .config import RunConfig
from .cookbook import ChefScaffolder
from .errors import DeliveryError, NoGitConfig, UserError
from .git import DELIVERY_REMOTE, FEATURE_BRANCH, Git
from .probes import EnsureResult, ResourceState
from .project import (
    add_commit_build_cookbook,
    add_commit_custom_config,
    ensure_custom_config,
    ensure_delivery_remote,
    ensure_dot_delivery,
    ensure_feature_branch,
    ensure_initial_push,
    ensure_pipeline,
)
from .review import ReviewResult
from .scp import SourceCodeProvider
from .server import APIClient
from .tracker import StepTracker

logger = logging.getLogger(__name__)

INIT_STEPS = [
    ("validate", "Validate options"),
    ("dot-delivery", "Create .delivery directory"),
    ("project", "Create project on server"),
    ("remote", f"Add '{DELIVERY_REMOTE}' remote"),
    ("push", "Push local content"),
    ("pipeline", "Create pipeline"),
    ("cookbook", "Generate build cookbook"),
    ("config", "Copy custom config"),
    ("branch", f"Feature branch {FEATURE_BRANCH}"),
    ("commit", "Commit changes"),
    ("review", "Submit review"),
]


@dataclass
class WorkflowOutcome:
    status: int
    reason: Optional[str] = None
    error: Optional[DeliveryError] = None
    notes: list[str] = field(default_factory=list)
    review: Optional[ReviewResult] = None

    @property
    def ok(self) -> bool:
        return self.status == 0


class InitWorkflow:
    """Sequences the materializers for one `init` run.

    Collaborators are created from `config` unless passed in. User-correctable
    failures come back as a `WorkflowOutcome` with status 1; collaborator
    failures (git, server, scaffold tool) propagate to the caller.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        git: Optional[Git] = None,
        client: Optional[APIClient] = None,
        scaffolder: Optional[ChefScaffolder] = None,
        tracker: Optional[StepTracker] = None,
        cache_path: Optional[Path] = None,
        opener: Callable[[str], object] = typer.launch,
    ) -> None:
        self.config = config
        self.root = Path(config.project_root)
        self._git = git
        self._client = client
        self._owns_client = False
        self.scaffolder = scaffolder or ChefScaffolder()
        self.tracker = tracker or StepTracker("Initialize Delivery Project")
        self.cache_path = cache_path
        self.opener = opener
        self.notes: list[str] = []
        self._current: Optional[str] = None
        self._published_cookbook = False

        for key, label in INIT_STEPS:
            self.tracker.add(key, label)

    @property
    def git(self) -> Git:
        if self._git is None:
            self._git = Git(self.root)
        return self._git

    @property
    def client(self) -> APIClient:
        if self._client is None:
            self._client = APIClient.from_config(self.config)
            self._owns_client = True
        return self._client

    def run(self) -> WorkflowOutcome:
        try:
            review = self._run()
        except UserError as exc:
            self._fail_current(exc)
            return WorkflowOutcome(status=1, reason=str(exc), error=exc, notes=self.notes)
        except Exception as exc:
            self._fail_current(exc)
            raise
        finally:
            if self._owns_client:
                self._client.close()
                self._client = None
                self._owns_client = False
        return WorkflowOutcome(status=0, notes=self.notes, review=review)

    def _fail_current(self, exc: Exception) -> None:
        if self._current:
            self.tracker.error(self._current, str(exc).splitlines()[0] if str(exc) else type(exc).__name__)

    def _start(self, key: str, detail: str = "") -> None:
        self._current = key
        self.tracker.start(key, detail)

    def _finish(self, key: str, result: EnsureResult, created: str, skipped: str) -> EnsureResult:
        if result is EnsureResult.CREATED:
            self.tracker.complete(key, created)
        else:
            self.tracker.skip(key, skipped)
        self._current = None
        return result

    def _skip(self, key: str, detail: str) -> None:
        self.tracker.skip(key, detail)

    def _run(self) -> Optional[ReviewResult]:
        config = self.config

        self._start("validate")
        scp = SourceCodeProvider.from_options(
            github_org=config.github_org,
            bitbucket_project_key=config.bitbucket_project_key,
            repo_name=config.repo_name,
            branch=config.pipeline,
            no_verify_ssl=config.no_verify_ssl,
        )
        config.validate_for_server()
        if probes.git_root_state(self.root) is ResourceState.ABSENT:
            raise NoGitConfig("Unable to find a git repository", detail=f"No .git/config above {self.root}")
        self.tracker.complete("validate", scp.kind.value)

        self._start("dot-delivery")
        ensure_dot_delivery(self.root)
        self.tracker.complete("dot-delivery")

        if config.local:
            for key in ("project", "remote", "push", "pipeline"):
                self._skip(key, "--local")
        else:
            self._create_on_server(scp)

        custom_cookbook = False
        if config.skip_build_cookbook:
            self._skip("cookbook", "--skip-build-cookbook")
        else:
            custom_cookbook = self._generate_build_cookbook(scp)

        self._start("config")
        config_changed = self._finish(
            "config",
            ensure_custom_config(self.root, config.config_json),
            "copied",
            "unchanged" if config.config_json else "not requested",
        ) is EnsureResult.CREATED

        if not (custom_cookbook or config_changed):
            for key in ("branch", "commit", "review"):
                self._skip(key, "nothing custom to review")
            self.notes.extend(scp.completion_hints(self.git))
            if self._published_cookbook:
                self.notes.append(f"Build cookbook generated and pushed to {config.pipeline} in Delivery.")
            return None

        self._start("branch")
        self._finish("branch", ensure_feature_branch(self.git), "created", "switched to existing")

        self._start("commit")
        committed = []
        if custom_cookbook:
            committed.append(add_commit_build_cookbook(self.git, config_changed))
        if config_changed:
            committed.append(add_commit_custom_config(self.git))
        made_commit = EnsureResult.CREATED in committed
        self._finish("commit", EnsureResult.CREATED if made_commit else EnsureResult.NOOP, "committed", "nothing new")

        if config.local:
            self._skip("review", "--local")
            return None

        self._start("review", scp.kind.value)
        review = scp.trigger_review(self.git, config.pipeline, no_open=config.no_open, opener=self.opener)
        if review.submitted:
            self.tracker.complete("review", review.url or review.branch)
        else:
            self.tracker.skip("review", "open a pull request")
        self._current = None
        self.notes.extend(review.messages)
        return review

    def _create_on_server(self, scp: SourceCodeProvider) -> None:
        config = self.config
        org, project = config.organization, config.project

        self._start("project", scp.kind.value)
        self._finish("project", scp.ensure_linkage(self.client, org, project), "created", "already exists")

        if scp.behavior.uses_delivery_remote:
            self._start("remote")
            self._finish(
                "remote",
                ensure_delivery_remote(self.git, config.delivery_git_ssh_url()),
                "added",
                "already configured",
            )
            self._start("push", config.pipeline)
            self._finish("push", ensure_initial_push(self.git, config.pipeline), "pushed", "upstream has commits")
        else:
            self._skip("remote", f"{scp.kind.value} hosts the repository")
            self._skip("push", f"{scp.kind.value} hosts the repository")

        if not scp.behavior.manages_pipeline:
            self._skip("pipeline", f"created with the {scp.kind.value} link")
            return
        self._start("pipeline", config.pipeline)
        self._finish("pipeline", ensure_pipeline(self.client, org, project, config.pipeline), "created", "already exists")

    def _generate_build_cookbook(self, scp: SourceCodeProvider) -> bool:
        """Returns True only when a custom generator produced the cookbook."""
        config = self.config
        self._start("cookbook")
        if config.generator:
            source = cookbook.ensure_custom_build_cookbook(
                self.root, config.generator, self.scaffolder, self.git, self.cache_path
            )
            self.tracker.complete("cookbook", f"custom generator ({source.value})")
            self._current = None
            return True

        result = cookbook.ensure_default_build_cookbook(self.root, self.scaffolder)
        if result is EnsureResult.CREATED and not config.local and scp.behavior.uses_delivery_remote:
            # the default generator commits onto the pipeline branch itself
            self.git.push(config.pipeline)
            self._published_cookbook = True
        self._finish("cookbook", result, "generated", "already exists")
        return False
