# provisioner/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the provisioner,
including defaults, type annotations, and descriptions.
It utilizes Pydantic for data validation and settings management.
"""

from pathlib import Path
from typing import Dict, List, Union

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Default Static Values (can be overridden by config file/env/cli) ---
LOG_PREFIX_DEFAULT: str = "[SITE-SETUP]"
BUNDLE_URL_DEFAULT: str = (
    "https://github.com/dmulxw/download/releases/latest/download/web.zip"
)
WWW_BASE_DIR_DEFAULT: str = "/var/www"
OS_RELEASE_PATH_DEFAULT: str = "/etc/os-release"
CRONTAB_PATH_DEFAULT: str = "/etc/crontab"
TTY_PATH_DEFAULT: str = "/dev/tty"
MAX_INPUT_ATTEMPTS_DEFAULT: int = 3
REISSUE_PROMPT_TIMEOUT_DEFAULT: int = 30
DOWNLOAD_TIMEOUT_DEFAULT: int = 120

NGINX_CONF_DIR_DEFAULT: str = "/etc/nginx"
NGINX_LOG_DIR_DEFAULT: str = "/var/log/nginx"

ACME_HOME_DEFAULT: str = "/root/.acme.sh"
ACME_REPO_URL_DEFAULT: str = "https://github.com/acmesh-official/acme.sh.git"
SSL_BASE_DIR_DEFAULT: str = "/etc/ssl"
ACME_KEYLENGTH_DEFAULT: str = "ec-256"
CERT_FRESH_DAYS_DEFAULT: int = 3
RENEWAL_SCHEDULE_DEFAULT: str = "0 1 1 * *"
RELOAD_COMMAND_DEFAULT: str = "systemctl reload nginx"
CHALLENGE_PROBE_TIMEOUT_DEFAULT: int = 15

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}

# Nginx variables ($uri, $host) are literal; braces are doubled for str.format.
NGINX_CHALLENGE_TEMPLATE_DEFAULT: str = """\
# {config_path}
# Temporary configuration written by site provisioner V{script_version}
# Serves only the ACME HTTP-01 challenge path on port 80.
server {{
    listen 80;
    listen [::]:80;
    server_name {domain} www.{domain};

    location ^~ /.well-known/acme-challenge/ {{
        root {web_root};
        default_type "text/plain";
        try_files $uri =404;
    }}

    location / {{
        return 404;
    }}
}}
"""

NGINX_SITE_TEMPLATE_DEFAULT: str = """\
# {config_path}
# Configured by site provisioner V{script_version}
# Port 80 redirects to HTTPS except for the ACME challenge path.
server {{
    listen 80;
    listen [::]:80;
    server_name {domain} www.{domain};

    location ^~ /.well-known/acme-challenge/ {{
        root {web_root};
        default_type "text/plain";
        try_files $uri =404;
    }}

    location / {{
        return 301 https://$host$request_uri;
    }}
}}

server {{
    listen 443 ssl http2;
    listen [::]:443 ssl http2;
    server_name {domain} www.{domain};

    ssl_certificate      {fullchain_path};
    ssl_certificate_key  {key_path};

    add_header Strict-Transport-Security "max-age=31536000; includeSubDomains; preload" always;

    root {web_root};
    index index.html index.htm;

    access_log {log_dir}/{domain}.access.log;
    error_log  {log_dir}/{domain}.error.log warn;

    location / {{
        try_files $uri $uri/ =404;
    }}

    location ^~ /.well-known/acme-challenge/ {{
        root {web_root};
        default_type "text/plain";
        try_files $uri =404;
    }}
}}
"""


class NginxSettings(BaseSettings):
    """Nginx layout and virtual host templates."""
    model_config = SettingsConfigDict(env_prefix="NGINX_", extra="ignore")

    conf_dir: Path = Field(
        default=Path(NGINX_CONF_DIR_DEFAULT),
        description="Root of the Nginx configuration tree.",
    )
    log_dir: Path = Field(
        default=Path(NGINX_LOG_DIR_DEFAULT),
        description="Directory for per-site access and error logs.",
    )
    challenge_template: str = Field(
        default=NGINX_CHALLENGE_TEMPLATE_DEFAULT,
        description="Temporary server block serving only the challenge path. "
        "Placeholders: {config_path}, {script_version}, {domain}, {web_root}.",
    )
    site_template: str = Field(
        default=NGINX_SITE_TEMPLATE_DEFAULT,
        description="Final HTTP->HTTPS server blocks. Placeholders: "
        "{config_path}, {script_version}, {domain}, {web_root}, "
        "{fullchain_path}, {key_path}, {log_dir}.",
    )


class AcmeSettings(BaseSettings):
    """acme.sh client, certificate store and renewal settings."""
    model_config = SettingsConfigDict(env_prefix="ACME_", extra="ignore")

    home: Path = Field(
        default=Path(ACME_HOME_DEFAULT),
        description="Install directory of the acme.sh client.",
    )
    repo_url: str = Field(
        default=ACME_REPO_URL_DEFAULT,
        description="Git repository the client is cloned from.",
    )
    ssl_base_dir: Path = Field(
        default=Path(SSL_BASE_DIR_DEFAULT),
        description="Certificates are installed under <ssl_base_dir>/<domain>/.",
    )
    keylength: str = Field(default=ACME_KEYLENGTH_DEFAULT)
    fresh_days: int = Field(
        default=CERT_FRESH_DAYS_DEFAULT,
        description="Certificates younger than this many whole days are reused.",
    )
    renewal_schedule: str = Field(
        default=RENEWAL_SCHEDULE_DEFAULT,
        description="Cron expression for the renewal-check job.",
    )
    reload_command: str = Field(
        default=RELOAD_COMMAND_DEFAULT,
        description="Hook the client runs after installing a renewed certificate.",
    )
    challenge_probe_timeout: int = Field(
        default=CHALLENGE_PROBE_TIMEOUT_DEFAULT,
        description="Seconds to wait for the HTTP-01 reachability probe.",
    )

    @property
    def client_path(self) -> Path:
        return self.home / "acme.sh"


class FirewallSettings(BaseModel):
    """Ports the site needs open."""

    tcp_ports: List[int] = Field(default_factory=lambda: [80, 443])
    firewalld_services: List[str] = Field(
        default_factory=lambda: ["http", "https"]
    )


class AppSettings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(extra="ignore")

    log_prefix: str = Field(
        default=LOG_PREFIX_DEFAULT,
        description="Prefix for log messages from the provisioner.",
    )
    bundle_url: Union[HttpUrl, str] = Field(
        default=BUNDLE_URL_DEFAULT,
        description="URL of the prebuilt site archive (latest release).",
    )
    www_base_dir: Path = Field(
        default=Path(WWW_BASE_DIR_DEFAULT),
        description="Web roots are created as <www_base_dir>/<domain>.",
    )
    os_release_path: Path = Field(default=Path(OS_RELEASE_PATH_DEFAULT))
    crontab_path: Path = Field(default=Path(CRONTAB_PATH_DEFAULT))
    tty_path: Path = Field(
        default=Path(TTY_PATH_DEFAULT),
        description="Terminal device interactive input is read from.",
    )
    require_root: bool = Field(
        default=True,
        description="Abort unless running with euid 0.",
    )
    max_input_attempts: int = Field(default=MAX_INPUT_ATTEMPTS_DEFAULT)
    reissue_prompt_timeout: int = Field(
        default=REISSUE_PROMPT_TIMEOUT_DEFAULT,
        description="Seconds to wait for the forced-reissue answer.",
    )
    download_timeout: int = Field(default=DOWNLOAD_TIMEOUT_DEFAULT)

    nginx: NginxSettings = Field(default_factory=NginxSettings)
    acme: AcmeSettings = Field(default_factory=AcmeSettings)
    firewall: FirewallSettings = Field(default_factory=FirewallSettings)

    symbols: Dict[str, str] = Field(
        default_factory=lambda: dict(SYMBOLS_DEFAULT)
    )
