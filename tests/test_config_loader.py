import pytest

from remotedeploy.config_loader import (
    build_config,
    load_yaml_config,
    read_environment,
    resolve_token,
)
from remotedeploy.exceptions import ValidationError


@pytest.fixture
def cli_values(ssh_key):
    return {
        "repo_url": "https://github.com/acme/demo.git",
        "branch": None,
        "ssh_user": "ubuntu",
        "server": "203.0.113.10",
        "ssh_key": str(ssh_key),
        "app_port": 8080,
        "workspace": None,
    }


def test_cli_values_with_defaults(cli_values):
    config = build_config(cli_values, env={})
    assert config.branch == "main"
    assert config.app_port == 8080
    assert config.app_name == "demo"


def test_yaml_fills_missing_values(tmp_path, ssh_key):
    config_file = tmp_path / "deploy.yml"
    config_file.write_text(
        "repo_url: https://github.com/acme/shop.git\n"
        "branch: release\n"
        "ssh_user: deploy\n"
        "server: shop.example.com\n"
        f"ssh_key: {ssh_key}\n"
        "app_port: '3000'\n"
        f"workspace: {tmp_path}\n"
    )
    config = build_config({}, config_file=config_file, env={})
    assert config.app_name == "shop"
    assert config.branch == "release"
    assert config.app_port == 3000
    assert config.workspace == tmp_path


def test_precedence_cli_over_env_over_yaml(tmp_path, cli_values):
    config_file = tmp_path / "deploy.yml"
    config_file.write_text("branch: from-yaml\nserver: yaml.example.com\napp_port: 1000\n")
    env = {"REMOTEDEPLOY_BRANCH": "from-env", "REMOTEDEPLOY_SERVER": "env.example.com"}
    cli_values["server"] = None
    cli_values["app_port"] = None

    config = build_config(cli_values, config_file=config_file, env=env)

    assert config.branch == "from-env"
    assert config.server == "env.example.com"
    assert config.app_port == 1000

    cli_values["branch"] = "from-cli"
    assert build_config(cli_values, config_file=config_file, env=env).branch == "from-cli"


def test_unknown_yaml_key_is_rejected(tmp_path):
    config_file = tmp_path / "deploy.yml"
    config_file.write_text("repo_url: https://github.com/acme/demo.git\ntoken: nope\n")
    with pytest.raises(ValidationError, match="Unknown keys in deploy.yml: token"):
        load_yaml_config(config_file)


def test_malformed_yaml(tmp_path):
    config_file = tmp_path / "deploy.yml"
    config_file.write_text("repo_url: [unclosed\n")
    with pytest.raises(ValidationError, match="Invalid YAML"):
        load_yaml_config(config_file)


def test_yaml_must_be_mapping(tmp_path):
    config_file = tmp_path / "deploy.yml"
    config_file.write_text("- a\n- b\n")
    with pytest.raises(ValidationError, match="mapping"):
        load_yaml_config(config_file)


def test_missing_required_options():
    with pytest.raises(ValidationError, match="--repo-url, --user, --server, --port"):
        build_config({}, env={})


def test_bad_port(cli_values):
    cli_values["app_port"] = None
    with pytest.raises(ValidationError, match="Invalid port"):
        build_config(cli_values, env={"REMOTEDEPLOY_APP_PORT": "http"})


def test_missing_key_file(cli_values, tmp_path):
    cli_values["ssh_key"] = str(tmp_path / "nope")
    with pytest.raises(ValidationError, match="SSH key not found"):
        build_config(cli_values, env={})
    build_config(cli_values, env={}, require_key=False)


def test_read_environment_prefers_real_env(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("REMOTEDEPLOY_SERVER=dotenv.example.com\nREMOTEDEPLOY_BRANCH=dev\nOTHER=1\n")

    env = read_environment(env_file, environ={"REMOTEDEPLOY_SERVER": "real.example.com", "PATH": "/bin"})

    assert env == {"REMOTEDEPLOY_SERVER": "real.example.com", "REMOTEDEPLOY_BRANCH": "dev"}


def test_read_environment_without_file(tmp_path):
    assert read_environment(tmp_path / ".env", environ={}) == {}


def test_resolve_token():
    assert resolve_token("cli", {"REMOTEDEPLOY_TOKEN": "env"}) == "cli"
    assert resolve_token(None, {"REMOTEDEPLOY_TOKEN": "env"}) == "env"
    assert resolve_token(None, {}) is None
