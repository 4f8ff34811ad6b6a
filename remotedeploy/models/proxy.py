"""Reverse-proxy template inputs."""

from dataclasses import dataclass

from remotedeploy.constants import (
    CLIENT_MAX_BODY_SIZE,
    NGINX_CERT_PATH,
    NGINX_KEY_PATH,
    NGINX_SITES_AVAILABLE,
    NGINX_SITES_ENABLED,
    PROXY_TIMEOUT,
    SSL_CIPHERS,
    SSL_PROTOCOLS,
)


@dataclass(frozen=True)
class ProxyConfig:
    """Everything the nginx site template needs."""

    app_name: str
    upstream_port: int
    cert_path: str = NGINX_CERT_PATH
    key_path: str = NGINX_KEY_PATH
    ssl_protocols: str = SSL_PROTOCOLS
    ssl_ciphers: str = SSL_CIPHERS
    proxy_timeout: str = PROXY_TIMEOUT
    client_max_body_size: str = CLIENT_MAX_BODY_SIZE

    @property
    def upstream_name(self) -> str:
        return f"{self.app_name.replace('-', '_')}_backend"

    @property
    def available_path(self) -> str:
        return f"{NGINX_SITES_AVAILABLE}/{self.app_name}"

    @property
    def enabled_path(self) -> str:
        return f"{NGINX_SITES_ENABLED}/{self.app_name}"

    def template_context(self) -> dict:
        return {
            "app_name": self.app_name,
            "upstream_name": self.upstream_name,
            "upstream_port": self.upstream_port,
            "cert_path": self.cert_path,
            "key_path": self.key_path,
            "ssl_protocols": self.ssl_protocols,
            "ssl_ciphers": self.ssl_ciphers,
            "proxy_timeout": self.proxy_timeout,
            "client_max_body_size": self.client_max_body_size,
        }
