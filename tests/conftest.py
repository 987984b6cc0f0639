from pathlib import Path

import pytest

from delivery_cli.config import RunConfig
from delivery_cli.errors import GitError
from delivery_cli.git import BranchCheckout
from delivery_cli.probes import BUILD_COOKBOOK, DELIVERY_CONFIG

REVIEW_OUTPUT = (
    "To ssh://delivery.example.com:8989/acme/eng/app\n"
    "remote: Review available at: https://delivery.example.com/e/acme/#/organizations/eng/projects/app/changes/42\n"
)


class FakeGit:
    """In-memory stand-in for `delivery_cli.git.Git`."""

    def __init__(self):
        self.remotes = {}
        self.branches = {"master"}
        self.current = "master"
        self.upstream = set()
        self.staged = []
        self.commits = []
        self.pushes = []
        self.review_pushes = []
        self.clones = []
        self.calls = []
        self.review_output = REVIEW_OUTPUT

    def remote_list(self):
        return set(self.remotes)

    def remote_url(self, name):
        return self.remotes.get(name)

    def remote_add(self, name, url):
        self.calls.append("remote_add")
        self.remotes[name] = url

    def branch_exists(self, name):
        return name in self.branches

    def checkout(self, branch):
        self.calls.append("checkout")
        if branch not in self.branches:
            raise GitError(f"git checkout {branch} failed", stderr=f"error: pathspec '{branch}' did not match")
        self.current = branch

    def checkout_or_create(self, branch):
        self.calls.append("checkout_or_create")
        self.current = branch
        if branch in self.branches:
            return BranchCheckout.SWITCHED_EXISTING
        self.branches.add(branch)
        return BranchCheckout.CREATED

    def add(self, paths):
        self.calls.append("add")
        self.staged.extend(paths)

    def has_staged_changes(self):
        return bool(self.staged)

    def commit(self, message):
        self.calls.append("commit")
        self.commits.append((self.current, message, list(self.staged)))
        self.staged = []

    def push(self, pipeline, *, remote="delivery"):
        self.calls.append("push")
        self.pushes.append(pipeline)
        self.upstream.add(pipeline)
        return ""

    def push_for_review(self, pipeline, branch, *, remote="delivery"):
        self.calls.append("push_for_review")
        self.review_pushes.append((pipeline, branch))
        return self.review_output

    def has_upstream_history(self, pipeline, *, remote="delivery"):
        return pipeline in self.upstream

    def current_branch(self):
        return self.current

    def head_commit(self):
        return "0123456789abcdef0123456789abcdef01234567"

    def clone(self, dest, url):
        self.calls.append("clone")
        self.clones.append((Path(dest), url))
        Path(dest).mkdir(parents=True)


class FakeClient:
    """In-memory stand-in for `delivery_cli.server.APIClient`."""

    def __init__(self):
        self.projects = set()
        self.pipelines = set()
        self.github_servers = [{"root_api_url": "https://api.github.com"}]
        self.bitbucket_servers = [{"root_api_url": "https://bitbucket.example.com"}]
        self.created = []

    def project_exists(self, org, proj):
        return (org, proj) in self.projects

    def create_delivery_project(self, org, proj):
        self.created.append(("project", org, proj))
        self.projects.add((org, proj))

    def pipeline_exists(self, org, proj, pipe):
        return (org, proj, pipe) in self.pipelines

    def create_pipeline(self, org, proj, pipe):
        self.created.append(("pipeline", org, proj, pipe))
        self.pipelines.add((org, proj, pipe))

    def create_github_project(self, org, proj, repo_name, repo_org, pipe, verify_ssl):
        self.created.append(("github", org, proj, repo_name, repo_org, pipe, verify_ssl))
        self.projects.add((org, proj))
        # the server creates the pipeline from the linked branch
        self.pipelines.add((org, proj, pipe))

    def create_bitbucket_project(self, org, proj, repo_name, project_key, pipe):
        self.created.append(("bitbucket", org, proj, repo_name, project_key, pipe))
        self.projects.add((org, proj))
        self.pipelines.add((org, proj, pipe))

    def get_github_server_config(self):
        return self.github_servers

    def get_bitbucket_server_config(self):
        return self.bitbucket_servers


class FakeScaffolder:
    """Writes what `chef generate` would, without running chef."""

    def __init__(self, writes_config=True):
        self.writes_config = writes_config
        self.calls = []

    def _scaffold(self, root):
        (root / BUILD_COOKBOOK).mkdir(parents=True, exist_ok=True)
        (root / BUILD_COOKBOOK / "metadata.rb").write_text("name 'build_cookbook'\n")
        if self.writes_config:
            (root / DELIVERY_CONFIG).write_text('{"version": "2", "build_cookbook": {}}\n')

    def generate_build_cookbook(self, root):
        self.calls.append(("default", root))
        self._scaffold(root)

    def generate_from_generator(self, root, generator_path):
        self.calls.append(("custom", generator_path))
        self._scaffold(root)


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def fake_scaffolder() -> FakeScaffolder:
    return FakeScaffolder()


@pytest.fixture
def scaffolder_without_config() -> FakeScaffolder:
    return FakeScaffolder(writes_config=False)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    (root / ".git").mkdir(parents=True)
    (root / ".git" / "config").write_text("[core]\n")
    return root


@pytest.fixture
def make_config(project_root: Path):
    def _make(**overrides) -> RunConfig:
        values = {
            "project_root": project_root,
            "project": "app",
            "user": "jdoe",
            "server": "delivery.example.com",
            "enterprise": "acme",
            "organization": "eng",
            "repo_name": "app",
            "no_open": False,
        }
        values.update(overrides)
        return RunConfig(**values)

    return _make
