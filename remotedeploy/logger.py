"""
Logging system for remotedeploy
Provides real-time logging to files with clean console output.
Every line is passed through the credential redactor before it is written.
"""

import re
from pathlib import Path
from datetime import datetime
from typing import Iterable, List, Optional, TextIO
from rich.console import Console
from rich.markup import escape

from remotedeploy.constants import LOG_DATE_FORMAT, LOG_TIME_FORMAT, REDACTED

console = Console()

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class Redactor:
    """Removes secret values from text before it reaches any sink."""

    def __init__(self, secrets: Iterable[str] = ()):
        self._secrets: List[str] = []
        for secret in secrets:
            self.add(secret)

    def add(self, secret: Optional[str]) -> None:
        """Register a secret value. Empty values are ignored."""
        if secret and secret not in self._secrets:
            self._secrets.append(secret)
            # Longest first so overlapping secrets are fully masked
            self._secrets.sort(key=len, reverse=True)

    def __call__(self, text: str) -> str:
        if not text:
            return text
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return text


class DeployLogger:
    """
    Manages logging for deployment operations
    - Writes all output to log files in real-time
    - Shows clean progress UI in console (unless verbose)
    - Redacts the credential from every line
    """

    def __init__(
        self,
        app_name: str,
        operation: str,
        log_root: Path,
        verbose: bool = False,
        redactor: Optional[Redactor] = None,
        console_output: Optional[Console] = None,
    ):
        """
        Initialize logger

        Args:
            app_name: Name of the deployed application
            operation: Operation name (e.g., 'deploy', 'cleanup')
            log_root: Directory that holds the logs/ tree
            verbose: If True, show all output in console
            redactor: Redactor applied to every line
            console_output: Rich console (defaults to the module console)
        """
        self.app_name = app_name
        self.operation = operation
        self.verbose = verbose
        self.redact = redactor or Redactor()
        self.console = console_output or console
        self.log_file: Optional[TextIO] = None
        self.current_step = ""
        self.has_errors = False

        # Structure: logs/{app}/{date}/{time}_{operation}.log
        now = datetime.now()
        logs_dir = Path(log_root) / "logs" / app_name / now.strftime(LOG_DATE_FORMAT)
        logs_dir.mkdir(parents=True, exist_ok=True)
        self.log_path = logs_dir / f"{now.strftime(LOG_TIME_FORMAT)}_{operation}.log"

        # Line buffered so the file follows the run in real time
        self.log_file = open(self.log_path, "a", buffering=1, encoding="utf-8")

        self._write_log_header()

    def _write(self, text: str) -> None:
        if self.log_file:
            self.log_file.write(self.redact(text))
            self.log_file.flush()

    def _print(self, markup: str) -> None:
        self.console.print(self.redact(markup))

    def _write_log_header(self):
        """Write log file header"""
        header = f"""
{"=" * 80}
remotedeploy Log
{"=" * 80}
Application: {self.app_name}
Operation: {self.operation}
Started: {datetime.now().isoformat()}
{"=" * 80}

"""
        self._write(header)

    def log(self, message: str, level: str = "INFO"):
        """
        Log a message to file and optionally console

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR, DEBUG)
        """
        timestamp = datetime.now().strftime("%H:%M:%S")
        self._write(f"[{timestamp}] [{level}] {message}\n")

        if self.verbose:
            text = escape(self.redact(message))
            if level == "ERROR":
                self.console.print(f"[red]{text}[/red]")
            elif level == "WARNING":
                self.console.print(f"[yellow]{text}[/yellow]")
            elif level == "DEBUG":
                self.console.print(f"[dim]{text}[/dim]")
            else:
                self.console.print(text)

    def log_command(self, command: str):
        """Log a command being executed"""
        self.log(f"Executing: {command}", "DEBUG")

    def log_output(self, output: str, stream: str = "stdout"):
        """
        Log command output

        Always written to the log file; shown in console only if verbose.

        Args:
            output: Command output (single line or multiline)
            stream: Stream name (stdout, stderr)
        """
        if not output:
            return

        clean_output = ANSI_ESCAPE.sub("", output)
        for line in clean_output.splitlines():
            self._write(f"  [{stream}] {line}\n")

        if self.verbose:
            self.console.print(escape(self.redact(clean_output)), highlight=False)

    def log_error(self, error: str, context: Optional[str] = None, excerpt: str = ""):
        """
        Log an error with context

        Args:
            error: Error message
            context: Additional context (e.g., command that failed)
            excerpt: Captured diagnostic output
        """
        self.has_errors = True

        error_block = f"""
{"!" * 80}
ERROR OCCURRED
{"!" * 80}
{error}
"""
        if context:
            error_block += f"\nContext: {context}\n"
        if excerpt:
            error_block += f"\nOutput:\n{excerpt}\n"

        error_block += f"{'!' * 80}\n\n"
        self._write(error_block)

        if not self.verbose:
            self.console.print()

        self._print(f"[bold red]✗ {escape(self.redact(error))}[/bold red]")
        if context:
            self._print(f"  [color(208)]{escape(self.redact(context))}[/color(208)]")
        if excerpt:
            self.console.print(escape(self.redact(excerpt)), style="dim", highlight=False)

    def step(self, step_name: str):
        """
        Start a new step

        Args:
            step_name: Name of the step
        """
        if self.current_step and not self.verbose:
            self.console.print()

        self.current_step = step_name
        self.log(f"Step: {step_name}", "INFO")

        if not self.verbose:
            self._print(f"[color(214)]▶[/color(214)] [white]{escape(self.redact(step_name))}[/white]")

    def success(self, message: str):
        """Log a success message"""
        self.log(message, "INFO")

        if not self.verbose:
            self._print(f"  [dim]✓ {escape(self.redact(message))}[/dim]")

    def warning(self, message: str):
        """Log a warning message"""
        self.log(message, "WARNING")

        if not self.verbose:
            self._print(f"  [yellow]⚠[/yellow] [dim]{escape(self.redact(message))}[/dim]")

    def close(self):
        """Close log file"""
        if self.log_file:
            footer = f"""
{"=" * 80}
Completed: {datetime.now().isoformat()}
Status: {"FAILED" if self.has_errors else "SUCCESS"}
{"=" * 80}
"""
            self._write(footer)
            self.log_file.close()
            self.log_file = None

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        """Context manager exit"""
        if exc_type is not None and exc_type not in (SystemExit, KeyboardInterrupt):
            self.log_error(
                str(exc_val) if exc_val else "Operation failed",
                context=f"{exc_type.__name__}",
            )
        self.close()
        return False
