"""
Configuration loading

Builds a DeploymentConfig from, in precedence order: command line options,
REMOTEDEPLOY_* environment variables (a .env file in the working directory
is read too, real environment wins), an optional YAML file, and defaults.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from remotedeploy.constants import DEFAULT_BRANCH, DEFAULT_SSH_KEY_PATH, ENV_PREFIX, ENV_TOKEN
from remotedeploy.exceptions import ValidationError
from remotedeploy.models.config import DeploymentConfig

CONFIG_KEYS = ["repo_url", "branch", "ssh_user", "server", "ssh_key", "app_port", "workspace"]

DEFAULTS: Dict[str, Any] = {
    "branch": DEFAULT_BRANCH,
    "ssh_key": DEFAULT_SSH_KEY_PATH,
}

REQUIRED = {
    "repo_url": "--repo-url",
    "ssh_user": "--user",
    "server": "--server",
    "app_port": "--port",
}


def load_yaml_config(path: Path) -> Dict[str, Any]:
    """
    Read a YAML deployment file.

    Raises:
        ValidationError: If the file is missing, malformed or has unknown keys
    """
    path = Path(path)
    if not path.exists():
        raise ValidationError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML in {path}", context=str(e))

    if not isinstance(data, dict):
        raise ValidationError(f"Config file must contain a mapping: {path}")

    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        raise ValidationError(
            f"Unknown keys in {path.name}: {', '.join(unknown)}",
            context=f"Allowed: {', '.join(CONFIG_KEYS)}",
        )
    return data


def read_environment(env_file: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """REMOTEDEPLOY_* variables from the .env file overlaid with the real environment."""
    merged: Dict[str, str] = {}
    if env_file is not None and Path(env_file).exists():
        merged.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    merged.update(os.environ if environ is None else environ)
    return {k: v for k, v in merged.items() if k.startswith(ENV_PREFIX)}


def env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    values = {}
    for key in CONFIG_KEYS:
        value = env.get(f"{ENV_PREFIX}{key.upper()}")
        if value:
            values[key] = value
    return values


def resolve_token(cli_token: Optional[str], env: Mapping[str, str]) -> Optional[str]:
    return cli_token or env.get(ENV_TOKEN) or None


def parse_port(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid port: {value}", context="Expected an integer between 1 and 65535")


def build_config(
    cli_options: Mapping[str, Any],
    config_file: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    require_key: bool = True,
) -> DeploymentConfig:
    """
    Merge every configuration source and validate the result.

    Args:
        cli_options: Values given on the command line; None means unset
        config_file: Optional YAML file
        env: REMOTEDEPLOY_* variables (see read_environment)
        require_key: Whether the SSH key file must exist

    Raises:
        ValidationError: On missing required values or an invalid config
    """
    merged: Dict[str, Any] = dict(DEFAULTS)
    if config_file:
        merged.update(load_yaml_config(config_file))
    merged.update(env_overrides(env or {}))
    merged.update({k: v for k, v in cli_options.items() if k in CONFIG_KEYS and v not in (None, "")})

    missing = [flag for key, flag in REQUIRED.items() if merged.get(key) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required option(s): {', '.join(missing)}",
            context="Set them on the command line, in REMOTEDEPLOY_* variables or in the config file",
        )

    workspace = Path(merged["workspace"]).expanduser() if merged.get("workspace") else Path.cwd()
    config = DeploymentConfig(
        repo_url=str(merged["repo_url"]).strip(),
        ssh_user=str(merged["ssh_user"]).strip(),
        server=str(merged["server"]).strip(),
        app_port=parse_port(merged["app_port"]),
        branch=str(merged["branch"]).strip(),
        ssh_key_path=str(merged["ssh_key"]),
        workspace=workspace,
    )
    config.validate(require_key=require_key)
    return config
