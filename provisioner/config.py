# provisioner/config.py
# -*- coding: utf-8 -*-
"""
Centralized static constants and definitions for the site provisioner.

This module defines truly static values, such as the per-family package
lists, service names and distribution patterns.

Runtime configuration (paths, URLs, thresholds, templates) is handled by
'provisioner/config_models.py' and 'provisioner/config_loader.py'.
"""

SCRIPT_VERSION: str = "1.2"

NGINX_PACKAGE_NAME: str = "nginx"

# Tools the bundle download and acme.sh rely on, plus the cron daemon.
DEBIAN_SUPPORT_PACKAGES: list[str] = [
    "curl",
    "unzip",
    "git",
    "socat",
    "cron",
]

RHEL_SUPPORT_PACKAGES: list[str] = [
    "curl",
    "unzip",
    "git",
    "socat",
    "cronie",
]

RHEL_REPOSITORY_PACKAGES: list[str] = ["epel-release"]

DEBIAN_SERVICES: list[str] = ["nginx", "cron"]
RHEL_SERVICES: list[str] = ["nginx", "crond"]

DEBIAN_ID_PATTERN: str = r"(debian|ubuntu|raspbian)"
DEBIAN_LIKE_PATTERN: str = r"(debian)"
RHEL_ID_PATTERN: str = r"(centos|rhel|almalinux|rocky)"
RHEL_LIKE_PATTERN: str = r"(rhel|fedora)"

DEBIAN_WEB_USER: str = "www-data"
RHEL_WEB_USER: str = "nginx"
FALLBACK_WEB_USER: str = "www-data"
