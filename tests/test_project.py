import pytest

from delivery_cli import project
from delivery_cli.errors import ConfigError, RemoteMismatch
from delivery_cli.git import FEATURE_BRANCH
from delivery_cli.probes import DELIVERY_CONFIG, EnsureResult


def test_ensure_dot_delivery_is_idempotent(project_root):
    first = project.ensure_dot_delivery(project_root)
    second = project.ensure_dot_delivery(project_root)

    assert first == second == project_root / ".delivery"
    assert first.is_dir()


def test_ensure_server_project_creates_when_absent(fake_client):
    assert project.ensure_server_project(fake_client, "eng", "app") is EnsureResult.CREATED
    assert fake_client.created == [("project", "eng", "app")]


def test_ensure_server_project_noop_when_present(fake_client):
    fake_client.projects.add(("eng", "app"))

    assert project.ensure_server_project(fake_client, "eng", "app") is EnsureResult.NOOP
    assert fake_client.created == []


def test_ensure_pipeline(fake_client):
    assert project.ensure_pipeline(fake_client, "eng", "app", "main") is EnsureResult.CREATED
    assert project.ensure_pipeline(fake_client, "eng", "app", "main") is EnsureResult.NOOP
    assert fake_client.created == [("pipeline", "eng", "app", "main")]


def test_ensure_delivery_remote(fake_git):
    url = "ssh://jdoe@acme@server:8989/acme/eng/app"

    assert project.ensure_delivery_remote(fake_git, url) is EnsureResult.CREATED
    assert project.ensure_delivery_remote(fake_git, url) is EnsureResult.NOOP
    assert fake_git.calls.count("remote_add") == 1


def test_ensure_delivery_remote_never_overwrites(fake_git):
    fake_git.remotes["delivery"] = "ssh://old"

    with pytest.raises(RemoteMismatch) as excinfo:
        project.ensure_delivery_remote(fake_git, "ssh://new")

    assert excinfo.value.actual == "ssh://old"
    assert fake_git.remotes["delivery"] == "ssh://old"


def test_ensure_initial_push_only_without_upstream_history(fake_git):
    assert project.ensure_initial_push(fake_git, "master") is EnsureResult.CREATED
    assert project.ensure_initial_push(fake_git, "master") is EnsureResult.NOOP
    assert fake_git.pushes == ["master"]


def test_ensure_feature_branch_creates(fake_git):
    assert project.ensure_feature_branch(fake_git) is EnsureResult.CREATED
    assert fake_git.current == FEATURE_BRANCH


def test_ensure_feature_branch_switches_to_existing(fake_git):
    fake_git.branches.add(FEATURE_BRANCH)

    assert project.ensure_feature_branch(fake_git) is EnsureResult.NOOP
    assert fake_git.current == FEATURE_BRANCH
    assert "checkout_or_create" not in fake_git.calls


def test_ensure_custom_config_not_requested(project_root):
    assert project.ensure_custom_config(project_root, None) is EnsureResult.NOOP
    assert not (project_root / DELIVERY_CONFIG).exists()


def test_ensure_custom_config_missing_file(project_root, tmp_path):
    with pytest.raises(ConfigError):
        project.ensure_custom_config(project_root, str(tmp_path / "nope.json"))


def test_ensure_custom_config_copies_on_difference(project_root, tmp_path):
    candidate = tmp_path / "config.json"
    candidate.write_text('{"version": "2"}')
    (project_root / ".delivery").mkdir()
    (project_root / DELIVERY_CONFIG).write_text('{"version": "1"}')

    assert project.ensure_custom_config(project_root, str(candidate)) is EnsureResult.CREATED
    assert (project_root / DELIVERY_CONFIG).read_text() == '{"version": "2"}'


def test_ensure_custom_config_identical_content(project_root, tmp_path):
    candidate = tmp_path / "config.json"
    candidate.write_bytes(b'{"version": "2"}\n')
    (project_root / ".delivery").mkdir()
    (project_root / DELIVERY_CONFIG).write_bytes(b'{"version": "2"}\n')

    assert project.ensure_custom_config(project_root, str(candidate)) is EnsureResult.NOOP


def test_add_commit_build_cookbook_includes_generated_config(fake_git):
    assert project.add_commit_build_cookbook(fake_git, custom_config_passed=False) is EnsureResult.CREATED
    assert fake_git.commits == [("master", "Adds Delivery build cookbook and config", [".delivery"])]


def test_add_commit_build_cookbook_leaves_custom_config_alone(fake_git):
    project.add_commit_build_cookbook(fake_git, custom_config_passed=True)

    assert fake_git.commits == [("master", "Adds Delivery build cookbook", [".delivery/build-cookbook"])]


def test_commit_skipped_when_nothing_staged(fake_git):
    fake_git.has_staged_changes = lambda: False

    assert project.add_commit_custom_config(fake_git) is EnsureResult.NOOP
    assert fake_git.commits == []
