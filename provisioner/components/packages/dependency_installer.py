# provisioner/components/packages/dependency_installer.py
# -*- coding: utf-8 -*-
"""
Installs Nginx and the supporting packages.

An Nginx binary already on PATH means the host is being extended with a new
site rather than provisioned from scratch, so the Nginx package is skipped.
Services are enabled and started whether or not anything was installed.
"""

import os
from typing import List

from common.package_manager import get_package_manager
from provisioner import config
from provisioner.base_stage import BaseStage
from provisioner.errors import EnvironmentCheckError
from provisioner.models import HostProfile, OsFamily, ProvisioningState
from provisioner.registry import StageRegistry


@StageRegistry.register(
    name="dependencies",
    metadata={
        "dependencies": ["site_request"],
        "description": "Install Nginx, download tools, git, socat and cron",
    },
)
class DependencyInstaller(BaseStage):
    """Ensures every package the rest of the run relies on is present."""

    def run(self, state: ProvisioningState) -> ProvisioningState:
        host: HostProfile = state.require("host")
        self._ensure_root()

        nginx_present = self.executor.exists(config.NGINX_PACKAGE_NAME)
        if nginx_present:
            self.log(
                f"{self.symbols['info']} Nginx is already installed; only a "
                "new site will be added."
            )
        else:
            self.log(
                f"{self.symbols['info']} Nginx not found; it will be installed first."
            )

        manager = get_package_manager(
            host.package_manager, self.executor, self.app_settings, self.logger
        )
        self.log(
            f"{self.symbols['package']} Installing dependencies with {manager.name}..."
        )

        if host.family is OsFamily.RHEL:
            manager.install(config.RHEL_REPOSITORY_PACKAGES)
        manager.update()

        if not nginx_present:
            manager.install([config.NGINX_PACKAGE_NAME])
            self.log(f"{self.symbols['success']} Nginx installed.")

        manager.install(self._support_packages(host.family))

        for service in self._services(host.family):
            self.run_fatal(
                ["systemctl", "enable", service],
                f"Could not enable the {service} service.",
            )
            self.run_fatal(
                ["systemctl", "start", service],
                f"Could not start the {service} service.",
            )

        if not self.executor.exists(config.NGINX_PACKAGE_NAME):
            raise EnvironmentCheckError(
                "Nginx is still not available after installation; check the "
                "network and package sources."
            )

        self.log(
            f"{self.symbols['success']} Dependencies installed and base services started."
        )
        return state.model_copy(update={"nginx_preinstalled": nginx_present})

    def _ensure_root(self) -> None:
        if self.app_settings.require_root and os.geteuid() != 0:
            raise EnvironmentCheckError(
                "The provisioner must run as root (use sudo)."
            )

    @staticmethod
    def _support_packages(family: OsFamily) -> List[str]:
        if family is OsFamily.DEBIAN:
            return list(config.DEBIAN_SUPPORT_PACKAGES)
        return list(config.RHEL_SUPPORT_PACKAGES)

    @staticmethod
    def _services(family: OsFamily) -> List[str]:
        if family is OsFamily.DEBIAN:
            return list(config.DEBIAN_SERVICES)
        return list(config.RHEL_SERVICES)
