"""Source Code Provider (SCP) descriptor and the per-provider behaviors.

A project is hosted either by the Delivery server itself or linked to an
external GitHub or Bitbucket repository. The descriptor is validated and
bound to its behavior once, when it is built.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import typer

from . import probes, review
from .errors import DualProviderSelection, MissingProviderConfig, OptionConstraint
from .git import Git
from .probes import EnsureResult, ResourceState
from .project import ensure_server_project
from .server import APIClient

logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    NONE = "delivery"
    GITHUB = "github"
    BITBUCKET = "bitbucket"


class ProviderBehavior(ABC):
    """What differs between providers during init."""

    kind: ProviderKind
    # Whether local history flows through the `delivery` git remote
    uses_delivery_remote = True
    # Whether init creates the pipeline itself rather than the server creating it while linking
    manages_pipeline = True

    @abstractmethod
    def ensure_linkage(self, scp: "SourceCodeProvider", client: APIClient, org: str, project: str) -> EnsureResult:
        raise NotImplementedError

    @abstractmethod
    def trigger_review(
        self, scp: "SourceCodeProvider", git: Git, pipeline: str, *, no_open: bool, opener: Callable[[str], object]
    ) -> review.ReviewResult:
        raise NotImplementedError

    def completion_hints(self, scp: "SourceCodeProvider", git: Git) -> list[str]:
        return []


class DeliveryHostedBehavior(ProviderBehavior):
    kind = ProviderKind.NONE

    def ensure_linkage(self, scp, client, org, project):
        return ensure_server_project(client, org, project)

    def trigger_review(self, scp, git, pipeline, *, no_open, opener):
        return review.submit_to_server(git, pipeline, no_open=no_open, opener=opener)


class LinkedProviderBehavior(ProviderBehavior):
    """Projects whose repository lives on an external host."""

    missing_attributes_hint = ""

    def verify_server_config(self, client: APIClient) -> None:
        if probes.scp_server_config_state(client, self.kind.value) is ResourceState.ABSENT:
            raise MissingProviderConfig(self.kind.value)

    def ensure_linkage(self, scp, client, org, project):
        self.verify_server_config(client)
        if probes.server_project_state(client, org, project) is ResourceState.PRESENT:
            logger.info(
                f"Project {project} already linked",
                extra={"event": "scp.linked", "provider": self.kind.value, "project": project},
            )
            return EnsureResult.NOOP
        self.create_project(scp, client, org, project)
        logger.info(
            f"Linked project {project} to {self.kind.value}",
            extra={"event": "scp.created", "provider": self.kind.value, "project": project},
        )
        return EnsureResult.CREATED

    @abstractmethod
    def create_project(self, scp: "SourceCodeProvider", client: APIClient, org: str, project: str) -> None:
        raise NotImplementedError


class GithubBehavior(LinkedProviderBehavior):
    kind = ProviderKind.GITHUB
    uses_delivery_remote = False
    manages_pipeline = False
    missing_attributes_hint = "repo-name, github-org and pipeline (default: master)"

    def create_project(self, scp, client, org, project):
        client.create_github_project(
            org, project, scp.repository_name, scp.organization, scp.branch, scp.verify_ssl
        )

    def trigger_review(self, scp, git, pipeline, *, no_open, opener):
        return review.github_pull_request_instructions(git, pipeline, scp.organization, scp.repository_name)

    def completion_hints(self, scp, git):
        return review.github_remote_hint(git, scp.organization, scp.repository_name)


class BitbucketBehavior(LinkedProviderBehavior):
    kind = ProviderKind.BITBUCKET
    missing_attributes_hint = "repo-name, bitbucket-project-key and pipeline (default: master)"

    def create_project(self, scp, client, org, project):
        client.create_bitbucket_project(org, project, scp.repository_name, scp.organization, scp.branch)

    def trigger_review(self, scp, git, pipeline, *, no_open, opener):
        return review.submit_to_server(git, pipeline, no_open=no_open, opener=opener)


BEHAVIORS: dict[ProviderKind, type[ProviderBehavior]] = {
    ProviderKind.NONE: DeliveryHostedBehavior,
    ProviderKind.GITHUB: GithubBehavior,
    ProviderKind.BITBUCKET: BitbucketBehavior,
}


@dataclass(frozen=True)
class SourceCodeProvider:
    """Which provider governs the project and the fields needed to link it.

    For GitHub `organization` is the GitHub organization; for Bitbucket it
    is the Bitbucket project key.
    """

    kind: ProviderKind = ProviderKind.NONE
    repository_name: str = ""
    organization: str = ""
    branch: str = "master"
    verify_ssl: bool = True
    behavior: ProviderBehavior = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        behavior = BEHAVIORS[self.kind]()
        if self.kind is not ProviderKind.NONE:
            if not (self.repository_name and self.organization and self.branch):
                raise OptionConstraint(
                    f"Missing {self.kind.value.title()} Source Code Provider attributes",
                    detail=f"Required: {behavior.missing_attributes_hint}",
                )
        object.__setattr__(self, "behavior", behavior)

    @property
    def linked(self) -> bool:
        return self.kind is not ProviderKind.NONE

    @classmethod
    def from_options(
        cls,
        *,
        github_org: Optional[str],
        bitbucket_project_key: Optional[str],
        repo_name: Optional[str],
        branch: str,
        no_verify_ssl: bool = False,
    ) -> "SourceCodeProvider":
        if github_org and bitbucket_project_key:
            raise DualProviderSelection()
        if github_org:
            return cls(ProviderKind.GITHUB, repo_name or "", github_org, branch, not no_verify_ssl)
        if bitbucket_project_key:
            return cls(ProviderKind.BITBUCKET, repo_name or "", bitbucket_project_key, branch, True)
        return cls(ProviderKind.NONE, branch=branch)

    def ensure_linkage(self, client: APIClient, org: str, project: str) -> EnsureResult:
        return self.behavior.ensure_linkage(self, client, org, project)

    def trigger_review(
        self, git: Git, pipeline: str, *, no_open: bool = False, opener: Callable[[str], object] = typer.launch
    ) -> review.ReviewResult:
        return self.behavior.trigger_review(self, git, pipeline, no_open=no_open, opener=opener)

    def completion_hints(self, git: Git) -> list[str]:
        return self.behavior.completion_hints(self, git)
