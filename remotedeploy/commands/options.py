"""Options shared by the commands that build a DeploymentConfig."""

import click

from remotedeploy.constants import ENV_TOKEN

CONFIG_OPTIONS = [
    click.option("--repo-url", "-r", help="Repository URL (https://...)"),
    click.option("--branch", "-b", help="Branch to deploy [default: main]"),
    click.option("--user", "-u", "ssh_user", help="SSH username on the server"),
    click.option("--server", "-s", help="Server IP address or hostname"),
    click.option("--key", "-k", "ssh_key", help="SSH private key [default: ~/.ssh/id_rsa]"),
    click.option("--port", "-p", "app_port", type=int, help="Application port on the server"),
    click.option(
        "--workspace",
        "-w",
        type=click.Path(file_okay=False),
        help="Local directory the repository is fetched into [default: .]",
    ),
    click.option(
        "--config",
        "-c",
        "config_file",
        type=click.Path(exists=True, dir_okay=False),
        help="YAML file with deployment settings",
    ),
    click.option("--verbose", "-v", is_flag=True, help="Show all command output"),
]


def config_options(func):
    """Repository and server options; unset values fall back to env and YAML."""
    for option in reversed(CONFIG_OPTIONS):
        func = option(func)
    return func


def token_option(func):
    return click.option(
        "--token",
        "-t",
        envvar=ENV_TOKEN,
        help=f"Repository access token (or set {ENV_TOKEN}); prompted when absent",
    )(func)
