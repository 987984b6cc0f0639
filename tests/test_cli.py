from typer.testing import CliRunner

import delivery_cli
from delivery_cli import app

runner = CliRunner()


def test_dual_provider_selection_exits_1(project_root, monkeypatch):
    monkeypatch.chdir(project_root)

    result = runner.invoke(app, ["init", "--local", "--github-org", "acme-gh", "--bitbucket-project-key", "ENG"])

    assert result.exit_code == 1
    assert not (project_root / ".delivery").exists()


def test_outside_git_repository_exits_1(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["init", "--local"])

    assert result.exit_code == 1


def test_missing_server_options_exit_1(project_root, monkeypatch):
    monkeypatch.chdir(project_root)

    result = runner.invoke(app, ["init", "--skip-build-cookbook"])

    assert result.exit_code == 1


def test_local_init_without_cookbook(project_root, monkeypatch):
    monkeypatch.chdir(project_root)

    result = runner.invoke(app, ["init", "--local", "--skip-build-cookbook"])

    assert result.exit_code == 0
    assert (project_root / ".delivery").is_dir()


def test_check_reports_missing_git(monkeypatch):
    monkeypatch.setattr(delivery_cli, "check_tool", lambda tool: tool != "git")

    result = runner.invoke(app, ["check"])

    assert result.exit_code == 1


def test_check_all_tools_present(monkeypatch):
    monkeypatch.setattr(delivery_cli, "check_tool", lambda tool: True)

    result = runner.invoke(app, ["check"])

    assert result.exit_code == 0
