# common/package_manager.py
# -*- coding: utf-8 -*-
"""
Thin wrappers over the distribution package managers.

Every failure is fatal: the wrappers raise ExternalToolError and never
retry.
"""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from common.command_utils import CommandExecutor, get_symbols, log_provisioner
from provisioner.config_models import AppSettings
from provisioner.errors import ExternalToolError


class PackageManager(ABC):
    """Common interface for apt-get, dnf and yum."""

    name: str = ""

    def __init__(
        self,
        executor: CommandExecutor,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.executor = executor
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def update(self) -> None:
        """Refresh the package metadata."""

    @abstractmethod
    def install(self, packages: Union[List[str], str]) -> None:
        """Install one or more packages."""

    def _run(
        self, command: List[str], action: str, env: Optional[dict] = None
    ) -> None:
        symbols = get_symbols(self.app_settings)
        try:
            self.executor.run(command, env=env)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            log_provisioner(
                f"{symbols.get('error', '❌')} {self.name}: {action} failed.",
                "error",
                self.logger,
                self.app_settings,
            )
            raise ExternalToolError(
                f"Package manager step '{action}' failed: {e}. "
                "Check network access and package sources."
            ) from e


class AptManager(PackageManager):
    """apt-get in non-interactive mode (Debian, Ubuntu, Raspbian)."""

    name = "apt-get"

    @staticmethod
    def _environment() -> dict:
        env = dict(os.environ)
        env["DEBIAN_FRONTEND"] = "noninteractive"
        return env

    def update(self) -> None:
        self.logger.info("Updating apt package lists via 'apt-get update'...")
        self._run(
            ["apt-get", "update", "-y"], "update", env=self._environment()
        )

    def install(self, packages: Union[List[str], str]) -> None:
        if not isinstance(packages, list):
            packages = [packages]
        self.logger.info(f"Installing packages: {', '.join(packages)}")
        self._run(
            ["apt-get", "install", "-y"] + packages,
            f"install {' '.join(packages)}",
            env=self._environment(),
        )


class YumManager(PackageManager):
    """dnf, or yum on hosts that predate it (RHEL, CentOS, AlmaLinux, Rocky)."""

    def __init__(
        self,
        executor: CommandExecutor,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        binary: str = "dnf",
    ):
        super().__init__(executor, app_settings, logger)
        self.name = binary

    def update(self) -> None:
        self.logger.info(f"Refreshing package metadata via '{self.name} makecache'...")
        self._run([self.name, "makecache"], "makecache")

    def install(self, packages: Union[List[str], str]) -> None:
        if not isinstance(packages, list):
            packages = [packages]
        self.logger.info(f"Installing packages: {', '.join(packages)}")
        self._run(
            [self.name, "install", "-y"] + packages,
            f"install {' '.join(packages)}",
        )


def get_package_manager(
    name: str,
    executor: CommandExecutor,
    app_settings: AppSettings,
    logger: Optional[logging.Logger] = None,
) -> PackageManager:
    """Return the wrapper for the package manager named by the host profile."""
    if name == "apt-get":
        return AptManager(executor, app_settings, logger)
    if name in ("dnf", "yum"):
        return YumManager(executor, app_settings, logger, binary=name)
    raise ValueError(f"Unsupported package manager '{name}'")
