"""Deploy command - full pipeline against one server"""

import click
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from rich.prompt import Prompt

from remotedeploy.base import BaseCommand
from remotedeploy.commands.options import config_options, token_option
from remotedeploy.config_loader import build_config, read_environment, resolve_token
from remotedeploy.models.config import Credential
from remotedeploy.pipeline import Pipeline
from remotedeploy.ui_components import show_summary


@dataclass
class DeployOptions:
    """Options for deploy command."""

    cli_values: Dict[str, Any] = field(default_factory=dict)
    config_file: Optional[str] = None
    token: Optional[str] = None
    cleanup: bool = False
    yes: bool = False


class DeployCommand(BaseCommand):
    """
    Deploy an application.

    Stages: repository, connectivity, environment, file sync,
    containers, proxy, validation and optional cleanup.
    """

    def __init__(self, options: DeployOptions, verbose: bool = False):
        super().__init__(verbose=verbose)
        self.options = options

    def load_credential(self, env) -> Credential:
        token = resolve_token(self.options.token, env)
        if token is None:
            token = Prompt.ask(
                "Repository access token [dim](leave empty for public repositories)[/dim]",
                password=True,
                default="",
                show_default=False,
                console=self.console,
            )
        credential = Credential(token)
        self.redactor.add(credential.value)
        return credential

    def execute(self) -> None:
        env = read_environment(Path.cwd() / ".env")
        config = build_config(
            self.options.cli_values,
            config_file=Path(self.options.config_file) if self.options.config_file else None,
            env=env,
        )
        credential = self.load_credential(env)
        self.log_root = config.workspace

        self.show_header(
            title="Deploy",
            app=config.app_name,
            details={
                "Repository": f"{config.repo_url} ({config.branch})",
                "Server": config.connection.connection_string,
                "Port": config.app_port,
            },
        )

        logger = self.init_logger(config.app_name, "deploy")
        pipeline = Pipeline(config, credential, logger=logger)
        confirm = None if self.options.yes else self.confirm_cleanup
        result = pipeline.run(cleanup=self.options.cleanup, confirm=confirm)

        if result.is_success and not self.verbose:
            show_summary(
                config.app_name,
                config.server,
                config.app_port,
                commit=result.commit,
                warnings=result.warnings,
                console=self.console,
            )
        self.finish(result)

    def confirm_cleanup(self, app_name: str) -> bool:
        return self.confirm(
            f"[bold yellow]Remove the deployment of '{app_name}' from the server?[/bold yellow]",
            default=False,
        )


@click.command()
@config_options
@token_option
@click.option("--cleanup", is_flag=True, help="Tear the deployment down after it succeeds")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
def deploy(config_file, token, cleanup, yes, verbose, **cli_values):
    """
    Deploy a containerized application to a remote server

    This command will:
    - Clone or update the repository locally
    - Install Docker, Docker Compose and Nginx on the server if missing
    - Sync the project files and rebuild the containers
    - Put the app behind an HTTPS Nginx reverse proxy
    - Run post-deployment checks

    Examples:
        # Everything on the command line
        remotedeploy deploy -r https://github.com/acme/demo.git -u ubuntu -s 203.0.113.10 -p 8080

        # Settings from a YAML file, token from the environment
        REMOTEDEPLOY_TOKEN=... remotedeploy deploy -c deploy.yml
    """
    options = DeployOptions(
        cli_values=cli_values,
        config_file=config_file,
        token=token,
        cleanup=cleanup,
        yes=yes,
    )
    cmd = DeployCommand(options, verbose=verbose)
    cmd.run()
