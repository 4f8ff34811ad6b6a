"""
Proxy Configurer

Renders the nginx site for an application, provisions the shared self-signed
certificate, and activates the site only after ``nginx -t`` accepts it.
"""

import base64
import hashlib
import shlex
from pathlib import Path
from typing import Optional

from jinja2 import Template

from remotedeploy.constants import (
    NGINX_SITES_ENABLED,
    NGINX_SSL_DIR,
    SSL_CERT_DAYS,
    SSL_KEY_BITS,
    SSL_SUBJECT,
)
from remotedeploy.exceptions import ProxyConfigError
from remotedeploy.logger import DeployLogger
from remotedeploy.models.proxy import ProxyConfig
from remotedeploy.models.results import Stage, StageResult
from remotedeploy.services.remote_executor import RemoteExecutor

STUBS_DIR = Path(__file__).resolve().parent.parent / "stubs"
SITE_TEMPLATE = STUBS_DIR / "nginx" / "site.conf.j2"

CERT_CREATED = "created"
CERT_EXISTS = "exists"


def load_site_template(path: Path = SITE_TEMPLATE) -> Template:
    """
    Load the nginx site template.

    Raises:
        ProxyConfigError: If the template file is missing
    """
    if not path.exists():
        raise ProxyConfigError(f"Proxy template not found: {path}")
    return Template(path.read_text(encoding="utf-8"), keep_trailing_newline=True)


def render_site_config(proxy: ProxyConfig, template: Optional[Template] = None) -> str:
    """Render the site; identical inputs always give identical output."""
    template = template or load_site_template()
    return template.render(**proxy.template_context())


def certificate_script(cert_path: str, key_path: str) -> str:
    cert = shlex.quote(cert_path)
    key = shlex.quote(key_path)
    return (
        "set -e\n"
        f"sudo mkdir -p {NGINX_SSL_DIR}\n"
        f"if sudo test -f {cert} && sudo test -f {key}; then\n"
        f"    echo {CERT_EXISTS}\n"
        "else\n"
        f"    sudo openssl req -x509 -nodes -days {SSL_CERT_DAYS} -newkey rsa:{SSL_KEY_BITS} "
        f"-keyout {key} -out {cert} -subj {shlex.quote(SSL_SUBJECT)} >/dev/null 2>&1\n"
        f"    echo {CERT_CREATED}\n"
        "fi\n"
    )


def write_file_script(path: str, content: str) -> str:
    """Write ``content`` to ``path`` as root; base64 avoids any quoting issue."""
    encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
    return f"echo {encoded} | base64 -d | sudo tee {shlex.quote(path)} >/dev/null"


class ProxyConfigurer:
    """Idempotent nginx configuration for one application."""

    def __init__(
        self,
        executor: RemoteExecutor,
        logger: Optional[DeployLogger] = None,
        template: Optional[Template] = None,
    ):
        self.executor = executor
        self.logger = logger
        self.template = template

    def ensure_certificate(self, proxy: ProxyConfig) -> bool:
        """
        Create the self-signed certificate unless it already exists.

        Returns:
            True if a certificate was generated
        """
        result = self.executor.run(
            certificate_script(proxy.cert_path, proxy.key_path),
            description="Ensure SSL certificate",
        )
        if result.is_failure:
            raise ProxyConfigError(
                "Failed to provision the SSL certificate",
                context=f"Path: {proxy.cert_path}",
                output_excerpt=result.output,
            )
        created = CERT_CREATED in result.stdout.split()
        self._log("Self-signed SSL certificate created" if created else "SSL certificate already exists")
        return created

    def render(self, proxy: ProxyConfig) -> str:
        return render_site_config(proxy, self.template)

    def remote_digest(self, path: str) -> str:
        result = self.executor.run(
            f"sudo sha256sum {shlex.quote(path)} 2>/dev/null | cut -d' ' -f1",
            description="Digest current site config",
        )
        return result.stdout.strip()

    def configure(self, app_name: str, port: int) -> StageResult:
        """
        Render, validate and activate the site for ``app_name``.

        Raises:
            ProxyConfigError: If any step fails; nginx is not reloaded on a bad config
        """
        proxy = ProxyConfig(app_name=app_name, upstream_port=port)
        cert_created = self.ensure_certificate(proxy)

        rendered = self.render(proxy)
        digest = hashlib.sha256(rendered.encode("utf-8")).hexdigest()
        changed = self.remote_digest(proxy.available_path) != digest

        if changed:
            write = self.executor.run(write_file_script(proxy.available_path, rendered), description="Write site config")
            if write.is_failure:
                raise ProxyConfigError(
                    "Failed to write nginx site configuration",
                    context=f"Path: {proxy.available_path}",
                    output_excerpt=write.output,
                )
        else:
            self._log("Site configuration unchanged")

        link = self.executor.run(
            "set -e\n"
            f"sudo ln -sf {shlex.quote(proxy.available_path)} {shlex.quote(proxy.enabled_path)}\n"
            f"sudo rm -f {NGINX_SITES_ENABLED}/default\n",
            description="Enable site",
        )
        if link.is_failure:
            raise ProxyConfigError("Failed to enable nginx site", output_excerpt=link.output)

        syntax = self.validate_syntax()
        if syntax.is_failure:
            # Keep the broken site out of the enabled set so later reloads still work
            self.executor.run(f"sudo rm -f {shlex.quote(proxy.enabled_path)}", description="Disable invalid site")
            raise ProxyConfigError(
                "Nginx configuration test failed",
                context=f"Site: {proxy.available_path}",
                output_excerpt=syntax.output,
            )

        self.reload()
        return StageResult.ok(
            Stage.PROXY,
            "Nginx configured successfully",
            changed=changed,
            certificate_created=cert_created,
            config_path=proxy.available_path,
            digest=digest,
        )

    def validate_syntax(self):
        return self.executor.run("sudo nginx -t 2>&1", description="Nginx syntax check")

    def reload(self) -> None:
        """Live reload; a restart would drop other sites' connections."""
        result = self.executor.run("sudo systemctl reload nginx", description="Reload nginx")
        if result.is_failure:
            raise ProxyConfigError("Failed to reload nginx", output_excerpt=result.output)

    def _log(self, message: str) -> None:
        if self.logger:
            self.logger.log(message)
