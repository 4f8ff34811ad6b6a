"""
remotedeploy Constants

Centralized constants for magic values, defaults, and configuration.
"""

# Default Input Configuration
DEFAULT_BRANCH = "main"
DEFAULT_SSH_KEY_PATH = "~/.ssh/id_rsa"
REMOTE_BASE_DIR = "/opt"
ENV_PREFIX = "REMOTEDEPLOY_"
ENV_TOKEN = "REMOTEDEPLOY_TOKEN"

# SSH Timeout Configuration
SSH_CONNECT_TIMEOUT = 10
SSH_COMMAND_TIMEOUT = 300
SSH_INSTALL_TIMEOUT = 900
PING_COUNT = 2
PING_WAIT = 3

# Build Descriptors (compose wins when both exist)
COMPOSE_FILES = ["docker-compose.yml", "docker-compose.yaml"]
DOCKERFILE = "Dockerfile"

# File Sync Configuration
DEFAULT_EXCLUDES = [".git", "node_modules", "*.log", "__pycache__"]
RSYNC_TIMEOUT = 1800

# Remote Tooling
DOCKER_INSTALL_SCRIPT_URL = "https://get.docker.com"
DOCKER_COMPOSE_VERSION = "v2.24.0"
DOCKER_COMPOSE_BIN = "/usr/local/bin/docker-compose"
MANAGED_SERVICES = ["docker", "nginx"]

# Container Health Check
CONTAINER_SETTLE_DELAY = 5
HEALTH_CHECK_MAX_ATTEMPTS = 30
HEALTH_CHECK_INTERVAL = 2
HEALTH_CHECK_PROBE_TIMEOUT = 10
CONTAINER_BUILD_TIMEOUT = 1800
FAILURE_LOG_TAIL = 50
VALIDATION_LOG_TAIL = 20
OUTPUT_EXCERPT_LINES = 50

# Nginx Configuration
NGINX_SITES_AVAILABLE = "/etc/nginx/sites-available"
NGINX_SITES_ENABLED = "/etc/nginx/sites-enabled"
NGINX_SSL_DIR = "/etc/nginx/ssl"
NGINX_CERT_PATH = "/etc/nginx/ssl/cert.pem"
NGINX_KEY_PATH = "/etc/nginx/ssl/key.pem"
SSL_CERT_DAYS = 365
SSL_KEY_BITS = 2048
SSL_SUBJECT = "/C=US/ST=State/L=City/O=Organization/CN=localhost"
SSL_PROTOCOLS = "TLSv1.2 TLSv1.3"
SSL_CIPHERS = "HIGH:!aNULL:!MD5"
PROXY_TIMEOUT = "60s"
CLIENT_MAX_BODY_SIZE = "100M"

# Validation
HTTP_REDIRECT_CODES = ["301"]
HTTP_ACCEPTED_CODES = ["301", "200"]
HTTPS_ACCEPTED_CODES = ["200", "301", "302"]
EXTERNAL_ACCEPTED_CODES = [200, 301, 302]
EXTERNAL_CHECK_TIMEOUT = 10

# Log Configuration
LOG_DATE_FORMAT = "%Y-%m-%d"
LOG_TIME_FORMAT = "%H-%M-%S"
REDACTED = "***"
