"""Submitting the feature branch for review."""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

import typer

from .git import ORIGIN_REMOTE, Git

logger = logging.getLogger(__name__)

REVIEW_URL_PATTERN = re.compile(r"https?://\S+")


@dataclass
class ReviewResult:
    submitted: bool
    branch: str = ""
    commit: str = ""
    url: Optional[str] = None
    messages: list[str] = field(default_factory=list)


def parse_review_url(push_output: str) -> Optional[str]:
    """Pick the review link the server echoes back through `remote:` lines."""
    for line in push_output.splitlines():
        if not line.startswith("remote:"):
            continue
        match = REVIEW_URL_PATTERN.search(line)
        if match:
            return match.group(0)
    return None


def submit_to_server(
    git: Git,
    pipeline: str,
    *,
    no_open: bool = False,
    opener: Callable[[str], object] = typer.launch,
) -> ReviewResult:
    """Push the current branch to the server's review ref and open the resulting review."""
    branch = git.current_branch()
    commit = git.head_commit()
    output = git.push_for_review(pipeline, branch)
    url = parse_review_url(output)
    logger.info(
        "review submitted",
        extra={"event": "review.submitted", "pipeline": pipeline, "branch": branch, "commit": commit},
    )

    result = ReviewResult(submitted=True, branch=branch, commit=commit, url=url)
    if url is None:
        result.messages.append(f"Review for {branch} ({commit[:7]}) submitted to {pipeline}.")
        return result

    result.messages.append(f"Review available at: {url}")
    if not no_open:
        opener(url)
    return result


def github_remote_hint(git: Git, organization: str, repository: str) -> list[str]:
    """Setup instructions for the `origin` remote, empty when it is already there."""
    if ORIGIN_REMOTE in git.remote_list():
        return []
    return [
        "Remember to configure your GitHub remote:",
        f"  git remote add {ORIGIN_REMOTE} git@github.com:{organization}/{repository}.git",
    ]


def github_pull_request_instructions(git: Git, pipeline: str, organization: str, repository: str) -> ReviewResult:
    """GitHub reviews happen as pull requests, which the user opens themselves."""
    branch = git.current_branch()
    commit = git.head_commit()
    messages = [
        f"Your changes are committed on branch {branch}. To open a review:",
        f"  git push {ORIGIN_REMOTE} {branch}",
        f"  then open a pull request against {pipeline} at https://github.com/{organization}/{repository}",
    ]
    messages.extend(github_remote_hint(git, organization, repository))
    return ReviewResult(submitted=False, branch=branch, commit=commit, messages=messages)
