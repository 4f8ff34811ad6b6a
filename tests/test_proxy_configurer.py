import re

import pytest

from remotedeploy.exceptions import ProxyConfigError
from remotedeploy.models.proxy import ProxyConfig
from remotedeploy.services.proxy_configurer import (
    ProxyConfigurer,
    certificate_script,
    render_site_config,
)


@pytest.mark.parametrize("app_name,port", [("demo", 8080), ("my-api", 3000), ("a", 1), ("x" * 63, 65535)])
def test_render_is_deterministic(app_name, port):
    proxy = ProxyConfig(app_name=app_name, upstream_port=port)
    assert render_site_config(proxy) == render_site_config(proxy)


def test_render_has_one_redirect_and_one_tls_block():
    rendered = render_site_config(ProxyConfig(app_name="demo", upstream_port=8080))

    assert len(re.findall(r"listen 80;", rendered)) == 1
    assert len(re.findall(r"return 301 https://", rendered)) == 1
    assert len(re.findall(r"listen 443 ssl", rendered)) == 1
    assert "server 127.0.0.1:8080;" in rendered
    assert "upstream demo_backend" in rendered
    assert "proxy_pass http://demo_backend;" in rendered
    assert "client_max_body_size 100M;" in rendered
    assert "ssl_protocols TLSv1.2 TLSv1.3;" in rendered
    assert "proxy_read_timeout 60s;" in rendered


def test_certificate_script_is_guarded():
    script = certificate_script("/etc/nginx/ssl/cert.pem", "/etc/nginx/ssl/key.pem")
    assert "sudo test -f /etc/nginx/ssl/cert.pem" in script
    assert "-days 365 -newkey rsa:2048" in script


def test_configure_fresh_host(executor, host):
    result = ProxyConfigurer(executor).configure("demo", 8080)

    assert result.success
    assert result.data["changed"] is True
    assert result.data["certificate_created"] is True
    assert "127.0.0.1:8080" in host.files["/etc/nginx/sites-available/demo"]
    assert "/etc/nginx/sites-enabled/demo" in host.enabled
    assert host.reloads == 1
    assert host.files["/etc/nginx/sites-available/demo"] == ProxyConfigurer(executor).render(
        ProxyConfig(app_name="demo", upstream_port=8080)
    )


def test_configure_twice_is_byte_identical(executor, host):
    configurer = ProxyConfigurer(executor)
    first = configurer.configure("demo", 8080)
    content = host.files["/etc/nginx/sites-available/demo"]

    second = configurer.configure("demo", 8080)

    assert second.data["changed"] is False
    assert second.data["certificate_created"] is False
    assert second.data["digest"] == first.data["digest"]
    assert host.files["/etc/nginx/sites-available/demo"] == content
    assert host.writes == 1
    assert host.cert_generations == 1


def test_syntax_failure_does_not_reload(executor, host):
    host.nginx_ok = False
    with pytest.raises(ProxyConfigError, match="configuration test failed") as excinfo:
        ProxyConfigurer(executor).configure("demo", 8080)

    assert "[emerg]" in excinfo.value.output_excerpt
    assert host.reloads == 0
    assert "/etc/nginx/sites-enabled/demo" not in host.enabled
    assert not any("systemctl reload nginx" in script for script in executor.scripts)


def test_reload_failure_raises(executor):
    executor.reply("systemctl reload nginx", returncode=1, stderr="Job for nginx.service failed")
    with pytest.raises(ProxyConfigError, match="Failed to reload nginx"):
        ProxyConfigurer(executor).configure("demo", 8080)


def test_other_sites_are_untouched(executor, host):
    host.files["/etc/nginx/sites-available/other"] = "server {}"
    host.enabled.add("/etc/nginx/sites-enabled/other")
    ProxyConfigurer(executor).configure("demo", 8080)
    assert host.files["/etc/nginx/sites-available/other"] == "server {}"
    assert "/etc/nginx/sites-enabled/other" in host.enabled
