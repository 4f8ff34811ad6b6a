"""Cleanup command - remove a deployment from the server"""

import click
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from remotedeploy.base import BaseCommand
from remotedeploy.commands.options import config_options
from remotedeploy.config_loader import build_config, read_environment
from remotedeploy.pipeline import Pipeline


@dataclass
class CleanupOptions:
    """Options for cleanup command."""

    cli_values: Dict[str, Any] = field(default_factory=dict)
    config_file: Optional[str] = None
    yes: bool = False


class CleanupCommand(BaseCommand):
    """Tear down containers, nginx site and project directory of one app."""

    def __init__(self, options: CleanupOptions, verbose: bool = False):
        super().__init__(verbose=verbose)
        self.options = options

    def execute(self) -> None:
        config = build_config(
            self.options.cli_values,
            config_file=Path(self.options.config_file) if self.options.config_file else None,
            env=read_environment(Path.cwd() / ".env"),
        )
        self.log_root = config.workspace

        self.show_header(
            title="Cleanup",
            subtitle="[bold red]Containers, volumes, nginx site and project files will be removed[/bold red]",
            app=config.app_name,
            details={"Server": config.connection.connection_string, "Directory": config.remote_root},
        )

        if not self.options.yes and not self.confirm(
            f"[bold yellow]Remove the deployment of '{config.app_name}'?[/bold yellow]",
            default=False,
        ):
            self.print_warning("Cleanup cancelled")
            return

        logger = self.init_logger(config.app_name, "cleanup")
        result = Pipeline(config, logger=logger).run_teardown()
        if result.is_success:
            self.print_success(f"Deployment of {config.app_name} removed")
        self.finish(result)


@click.command()
@config_options
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
def cleanup(config_file, yes, verbose, **cli_values):
    """
    Remove a deployment from the server

    Only resources named after the application are touched; other
    applications on the same server keep running.

    Examples:
        remotedeploy cleanup -r https://github.com/acme/demo.git -u ubuntu -s 203.0.113.10 -p 8080
        remotedeploy cleanup -c deploy.yml --yes
    """
    options = CleanupOptions(cli_values=cli_values, config_file=config_file, yes=yes)
    cmd = CleanupCommand(options, verbose=verbose)
    cmd.run()
