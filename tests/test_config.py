from pathlib import Path

import pytest

from delivery_cli.config import RunConfig, find_config_file, load_config_file, resolve_config
from delivery_cli.errors import ConfigError

CLI_TOML = """
server = "delivery.example.com"
user = "jdoe"
enterprise = "acme"
organization = "eng"
git_port = 9999
api_protocol = "https"
"""


def test_resolve_defaults(project_root):
    config = resolve_config({}, project_root, {})

    assert config.project == "app"
    assert config.pipeline == "master"
    assert config.git_port == "8989"
    assert config.repo_name == "app"
    assert config.local is False


def test_options_override_file_values(project_root):
    config = resolve_config(
        {"server": "other.example.com", "pipeline": "  ", "local": True, "generator": None},
        project_root,
        {"server": "delivery.example.com", "pipeline": "main"},
    )

    assert config.server == "other.example.com"
    assert config.pipeline == "main"
    assert config.local is True
    assert config.generator is None


def test_repo_name_follows_project(project_root):
    config = resolve_config({"project": "web"}, project_root, {})

    assert config.repo_name == "web"


def test_find_and_load_config_file(project_root):
    (project_root / ".delivery").mkdir()
    (project_root / ".delivery" / "cli.toml").write_text(CLI_TOML)
    nested = project_root / "src" / "lib"
    nested.mkdir(parents=True)

    found = find_config_file(nested)
    values = load_config_file(found)

    assert found == project_root / ".delivery" / "cli.toml"
    assert values == {
        "server": "delivery.example.com",
        "user": "jdoe",
        "enterprise": "acme",
        "organization": "eng",
        "git_port": 9999,
    }
    assert resolve_config({}, project_root, values).git_port == "9999"


def test_load_missing_config_file():
    assert load_config_file(None) == {}


def test_invalid_config_file(tmp_path):
    path = tmp_path / "cli.toml"
    path.write_text("server = ")

    with pytest.raises(ConfigError):
        load_config_file(path)


def test_delivery_git_ssh_url(make_config):
    assert make_config().delivery_git_ssh_url() == "ssh://jdoe@acme@delivery.example.com:8989/acme/eng/app"


def test_api_base_url(make_config):
    assert make_config().api_base_url() == "https://delivery.example.com/api/v0/e/acme"


def test_validate_for_server_reports_missing(make_config):
    with pytest.raises(ConfigError) as excinfo:
        make_config(user=None, enterprise="").validate_for_server()

    assert "user" in str(excinfo.value)
    assert "enterprise" in str(excinfo.value)


def test_local_runs_need_no_server(project_root):
    RunConfig(project_root=project_root, project="app", local=True).validate_for_server()
