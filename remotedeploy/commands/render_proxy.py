"""Render-proxy command - print the nginx site without touching a server"""

import click

from remotedeploy.base import BaseCommand
from remotedeploy.exceptions import ValidationError
from remotedeploy.models.config import APP_NAME_PATTERN
from remotedeploy.models.proxy import ProxyConfig
from remotedeploy.services.proxy_configurer import render_site_config


class RenderProxyCommand(BaseCommand):
    def __init__(self, app_name: str, port: int):
        super().__init__()
        self.app_name = app_name
        self.port = port

    def execute(self) -> None:
        if not APP_NAME_PATTERN.match(self.app_name):
            raise ValidationError(
                f"Invalid application name: {self.app_name}",
                context="Use lowercase letters, digits and dashes",
            )
        if not 1 <= self.port <= 65535:
            raise ValidationError(f"Invalid port: {self.port}", context="Expected 1-65535")

        rendered = render_site_config(ProxyConfig(app_name=self.app_name, upstream_port=self.port))
        self.console.print(rendered, end="", markup=False, emoji=False, highlight=False, soft_wrap=True)


@click.command(name="render-proxy")
@click.option("--app", "-a", "app_name", required=True, help="Application name")
@click.option("--port", "-p", type=int, required=True, help="Application port")
def render_proxy(app_name, port):
    """
    Print the nginx site configuration for an app

    Example:
        remotedeploy render-proxy --app demo --port 8080
    """
    RenderProxyCommand(app_name, port).run()
