"""
remotedeploy - UI Components
Standardized headers and summaries
"""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

PREFIX = " [bold color(214)]remotedeploy[/bold color(214)] [dim]›[/dim]"

# Color scheme
BRAND_COLOR = "cyan"
SUCCESS_COLOR = "green"
WARNING_COLOR = "yellow"


def show_header(
    title: str,
    subtitle: str = None,
    app: str = None,
    details: dict = None,
    console: Console = None,
):
    """
    Display a standardized command header.

    Args:
        title: Main title (e.g., "Deploy", "Cleanup")
        subtitle: Optional subtitle line
        app: App name (if applicable)
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)

    Example:
        show_header(
            title="Deploy",
            app="demo",
            details={"Server": "ubuntu@203.0.113.10", "Port": 8080}
        )
    """
    if console is None:
        console = Console()

    console.print(f"{PREFIX} [bold white]{title}[/bold white]")

    if subtitle:
        console.print(f"{PREFIX} [dim]{subtitle}[/dim]")

    if app:
        console.print(f"{PREFIX} App: [cyan]{escape(app)}[/cyan]")

    if details:
        for key, value in details.items():
            console.print(f"{PREFIX} {key}: [cyan]{escape(str(value))}[/cyan]")

    console.print()


def show_summary(
    app_name: str,
    server: str,
    port: int,
    commit: Optional[str] = None,
    warnings: Optional[List[str]] = None,
    console: Console = None,
):
    """Print the post-deployment access summary."""
    if console is None:
        console = Console()

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column(style=BRAND_COLOR)
    table.add_row("Application", app_name)
    if commit:
        table.add_row("Commit", commit)
    table.add_row("HTTPS", f"https://{server}")
    table.add_row("HTTP", f"http://{server} (redirects to HTTPS)")
    table.add_row("Direct", f"http://{server}:{port}")

    console.print()
    console.print(f"[bold {SUCCESS_COLOR}]✓ Deployment complete[/bold {SUCCESS_COLOR}]")
    console.print(table)

    if warnings:
        console.print()
        console.print(f"[{WARNING_COLOR}]{len(warnings)} warning(s):[/{WARNING_COLOR}]")
        for warning in warnings:
            console.print(f"  [{WARNING_COLOR}]⚠[/{WARNING_COLOR}] [dim]{escape(warning)}[/dim]")

    console.print()
    console.print("[dim]The certificate is self-signed; browsers will show a security warning.[/dim]")
