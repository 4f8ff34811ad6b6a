"""
Base Command Class

Abstract base for all remotedeploy CLI commands.
Provides common functionality and structure.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm

from remotedeploy.exceptions import RemoteDeployError
from remotedeploy.logger import DeployLogger, Redactor
from remotedeploy.models.results import PipelineResult
from remotedeploy.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Logger initialization
    - Header display
    - Error handling mapped to exit categories
    - Confirmation prompts
    """

    def __init__(self, verbose: bool = False, log_root: Optional[Path] = None):
        self.verbose = verbose
        self.console = Console()
        self.log_root = Path(log_root) if log_root else Path.cwd()
        self.redactor = Redactor()
        self.logger: Optional[DeployLogger] = None

    def init_logger(self, app_name: str, command_name: str) -> DeployLogger:
        """
        Initialize command logger.

        Args:
            app_name: Application name
            command_name: Command name

        Returns:
            DeployLogger instance
        """
        self.logger = DeployLogger(
            app_name,
            command_name,
            log_root=self.log_root,
            verbose=self.verbose,
            redactor=self.redactor,
            console_output=self.console,
        )
        return self.logger

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        app: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skip in verbose mode)."""
        if not self.verbose:
            show_header(
                title=title,
                subtitle=subtitle,
                app=app,
                details=details,
                console=self.console,
            )

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {escape(message)}[/green]")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗ {escape(self.redactor(message))}[/red]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def print_dim(self, message: str) -> None:
        self.console.print(f"[dim]{escape(self.redactor(message))}[/dim]")

    def confirm(self, question: str, default: bool = False) -> bool:
        """
        Ask for user confirmation.

        Args:
            question: Question to ask
            default: Default answer

        Returns:
            True if confirmed
        """
        return Confirm.ask(question, default=default, console=self.console)

    def finish(self, result: PipelineResult) -> None:
        """Exit with the code of the pipeline's category when it failed."""
        if self.logger:
            self.logger.close()
        if not result.is_success:
            failed = result.failed_stage
            if failed:
                self.console.print(
                    f"\n[bold red]{result.category.value}[/bold red] [dim]in stage[/dim] {failed.stage.value}"
                )
            self.print_logs_location()
            raise SystemExit(result.exit_code)
        self.print_logs_location()

    def print_logs_location(self) -> None:
        if self.logger:
            self.console.print(f"\n[dim]Logs saved to:[/dim] {self.logger.log_path}\n")

    @abstractmethod
    def execute(self, **kwargs) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        Args:
            **kwargs: Command arguments
        """
        try:
            self.execute(**kwargs)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            if self.logger:
                self.logger.log("Operation cancelled by user", "WARNING")
                self.logger.close()
                self.print_logs_location()
            raise SystemExit(130)
        except SystemExit:
            raise
        except RemoteDeployError as e:
            if self.logger:
                self.logger.log_error(e.message, context=e.context, excerpt=e.output_excerpt)
                self.logger.close()
                self.print_logs_location()
            else:
                self.console.print(f"\n[bold red]✗ {e.category.value}:[/bold red] {escape(self.redactor(e.message))}")
                if e.context:
                    self.print_dim(f"Context: {e.context}")
                self.console.print()
            raise SystemExit(e.category.exit_code)
        except Exception as e:
            error_type = type(e).__name__
            self.console.print(f"\n[bold red]✗ {error_type}:[/bold red] {escape(self.redactor(str(e)))}\n")
            if self.logger:
                self.logger.log_error(f"{error_type}: {e}")
                self.logger.close()
                self.print_logs_location()
            raise SystemExit(1)
