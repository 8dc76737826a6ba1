# provisioner/components/nginx/nginx_site.py
# -*- coding: utf-8 -*-
"""
Writing, activating, testing and reloading per-domain Nginx configuration.

Debian-style trees keep sites in ``sites-available`` and activate them with
a symlink in ``sites-enabled``; other trees load ``conf.d/*.conf`` directly.
The layout is taken from what exists under the Nginx configuration root.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

from common.command_utils import CommandExecutor, log_provisioner
from provisioner import config
from provisioner.config_models import AppSettings
from provisioner.errors import ExternalToolError, ProvisioningError

module_logger = logging.getLogger(__name__)


class NginxSite:
    """One domain's configuration file and its enabling reference."""

    def __init__(
        self,
        app_settings: AppSettings,
        executor: CommandExecutor,
        domain: str,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.executor = executor
        self.domain = domain
        self.logger = logger or module_logger
        self.config_path, self.enabled_path = self.resolve_paths()

    def resolve_paths(self) -> Tuple[Path, Optional[Path]]:
        conf_dir = Path(self.app_settings.nginx.conf_dir)
        sites_enabled = conf_dir / "sites-enabled"
        filename = f"{self.domain}.conf"
        if sites_enabled.is_dir():
            return conf_dir / "sites-available" / filename, sites_enabled / filename
        return conf_dir / "conf.d" / filename, None

    def render(self, template: str, web_root: Path, **extra: str) -> str:
        values = {
            "config_path": str(self.config_path),
            "script_version": config.SCRIPT_VERSION,
            "domain": self.domain,
            "web_root": str(web_root),
            "log_dir": str(self.app_settings.nginx.log_dir),
        }
        values.update(extra)
        try:
            return template.format(**values)
        except (KeyError, IndexError, ValueError) as e:
            raise ProvisioningError(
                f"Nginx template for {self.domain} has an unknown or "
                f"malformed placeholder: {e}"
            ) from e

    def write(self, content: str) -> None:
        """Overwrite the configuration file and (re)create the enabling link."""
        symbols = self.app_settings.symbols
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ExternalToolError(
                f"Could not write {self.config_path}: {e}"
            ) from e
        log_provisioner(
            f"{symbols['success']} Wrote Nginx configuration {self.config_path}",
            "info",
            self.logger,
            self.app_settings,
        )

        if self.enabled_path is None:
            return
        try:
            if self.enabled_path.is_symlink() or self.enabled_path.exists():
                self.enabled_path.unlink()
            self.enabled_path.symlink_to(self.config_path)
        except OSError as e:
            raise ExternalToolError(
                f"Could not enable {self.config_path} via {self.enabled_path}: {e}"
            ) from e
        log_provisioner(
            f"{symbols['info']} Enabled site via {self.enabled_path}",
            "info",
            self.logger,
            self.app_settings,
        )

    def test_and_reload(self) -> None:
        """
        Validate the full Nginx configuration, then reload the service.

        A failed syntax test leaves the running service untouched.
        """
        symbols = self.app_settings.symbols
        self._run_fatal(
            ["nginx", "-t"],
            f"Nginx configuration test failed; check {self.config_path}. "
            "The service was not reloaded.",
        )
        self._run_fatal(
            ["systemctl", "reload", "nginx"], "Reloading Nginx failed."
        )
        log_provisioner(
            f"{symbols['success']} Nginx configuration valid and reloaded.",
            "info",
            self.logger,
            self.app_settings,
        )

    def _run_fatal(self, command: List[str], failure_message: str) -> None:
        try:
            self.executor.run(command)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            log_provisioner(
                f"{self.app_settings.symbols['error']} {failure_message}",
                "error",
                self.logger,
                self.app_settings,
            )
            raise ExternalToolError(f"{failure_message} ({e})") from e
