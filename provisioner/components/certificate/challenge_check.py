# provisioner/components/certificate/challenge_check.py
# -*- coding: utf-8 -*-
"""
Verifies that the HTTP-01 challenge path is servable before asking the CA.

A failed order counts against the CA's rate limits, so the local
preconditions are checked first: the challenge directory is writable,
something listens on port 80, and a synthetic token placed in the
challenge directory is fetched back over HTTP with status 200.
"""

import logging
import re
import time
from pathlib import Path
from typing import Optional

import requests

from common.command_utils import CommandExecutor, log_provisioner
from provisioner.components.nginx.nginx_site import NginxSite
from provisioner.config_models import AppSettings
from provisioner.errors import ChallengeCheckError
from provisioner.models import SiteDeployment

module_logger = logging.getLogger(__name__)

PORT_80_PATTERN = re.compile(r":80\b")
PROBE_CONTENT = "test_ok"


class ChallengeCheck:
    def __init__(
        self,
        app_settings: AppSettings,
        executor: CommandExecutor,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.executor = executor
        self.logger = logger or module_logger

    def _log(self, message: str, level: str = "info") -> None:
        log_provisioner(message, level, self.logger, self.app_settings)

    def prepare(self, domain: str, deployment: SiteDeployment) -> None:
        """Install the temporary challenge-only server block and reload Nginx."""
        symbols = self.app_settings.symbols
        self._log(
            f"{symbols['gear']} Writing temporary challenge configuration for {domain}..."
        )
        nginx_site = NginxSite(self.app_settings, self.executor, domain, self.logger)
        nginx_site.write(
            nginx_site.render(
                self.app_settings.nginx.challenge_template, deployment.web_root
            )
        )
        nginx_site.test_and_reload()

    def verify(self, domain: str, deployment: SiteDeployment) -> None:
        """
        Check every local precondition of the HTTP-01 challenge.

        Raises:
            ChallengeCheckError: On the first failed check.
        """
        symbols = self.app_settings.symbols
        challenge_dir = deployment.challenge_dir
        self._log(f"{symbols['step']} Checking the HTTP-01 challenge path for {domain}...")

        self._check_writable(challenge_dir)
        token_name = f"acme_test_{int(time.time())}"
        token_path = challenge_dir / token_name
        try:
            try:
                token_path.write_text(PROBE_CONTENT, encoding="utf-8")
                token_path.chmod(deployment.file_mode)
            except OSError as e:
                raise ChallengeCheckError(
                    f"Could not write the probe token {token_path}: {e}"
                ) from e
            self._check_listening()
            self._check_http(domain, token_name)
        finally:
            token_path.unlink(missing_ok=True)

        self._log(f"{symbols['success']} Challenge path for {domain} is reachable.")

    def _check_writable(self, challenge_dir: Path) -> None:
        probe = challenge_dir / ".permtest"
        try:
            challenge_dir.mkdir(parents=True, exist_ok=True)
            probe.write_text("", encoding="utf-8")
            probe.unlink()
        except OSError as e:
            raise ChallengeCheckError(
                f"Challenge directory {challenge_dir} is not writable: {e}"
            ) from e

    def _check_listening(self) -> None:
        try:
            result = self.executor.run(["ss", "-ltn"], check=False, capture_output=True)
        except FileNotFoundError:
            self._log(
                f"{self.app_settings.symbols['warning']} 'ss' is not available; "
                "skipping the port 80 listener check.",
                "warning",
            )
            return
        if result.returncode != 0:
            self._log(
                f"{self.app_settings.symbols['warning']} 'ss -ltn' failed; "
                "skipping the port 80 listener check.",
                "warning",
            )
            return
        if not PORT_80_PATTERN.search(result.stdout or ""):
            raise ChallengeCheckError(
                "Nothing is listening on port 80. Check that Nginx is running "
                "('systemctl status nginx')."
            )

    def _check_http(self, domain: str, token_name: str) -> None:
        url = f"http://{domain}/.well-known/acme-challenge/{token_name}"
        timeout = self.app_settings.acme.challenge_probe_timeout
        self.logger.debug(f"Probing {url}")
        try:
            response = requests.get(url, timeout=timeout, allow_redirects=False)
        except requests.exceptions.RequestException as e:
            raise ChallengeCheckError(
                f"Could not fetch {url}: {e}. Check DNS for {domain} and "
                "that port 80 is open."
            ) from e
        if response.status_code != 200:
            raise ChallengeCheckError(
                f"Fetching {url} returned HTTP {response.status_code} instead of 200. "
                "Check DNS for the domain and the Nginx configuration."
            )
