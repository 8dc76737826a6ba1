# provisioner/components/certificate/acme_client.py
# -*- coding: utf-8 -*-
"""
Thin wrapper around the acme.sh command line client.

Only the three operations the provisioner needs are exposed: bootstrap the
client, issue (or force-reissue) a certificate with the webroot method, and
install the issued files to stable paths with a reload hook.
"""

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

from common.command_utils import CommandExecutor, log_provisioner
from provisioner.config_models import AppSettings
from provisioner.errors import ExternalToolError

module_logger = logging.getLogger(__name__)

# acme.sh exits with 2 when the existing certificate is not yet due for
# renewal and nothing was issued.
ISSUE_SKIPPED_RETURN_CODE = 2


def _output_tail(text: Optional[str], lines: int = 15) -> str:
    if not text:
        return ""
    return "\n".join(text.strip().splitlines()[-lines:])


class AcmeClient:
    def __init__(
        self,
        app_settings: AppSettings,
        executor: CommandExecutor,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.settings = app_settings.acme
        self.executor = executor
        self.logger = logger or module_logger

    @property
    def client_path(self) -> Path:
        return self.settings.client_path

    def _log(self, message: str, level: str = "info") -> None:
        log_provisioner(message, level, self.logger, self.app_settings)

    def ensure_installed(self, email: str) -> None:
        """Clone and install acme.sh into its home unless already present."""
        symbols = self.app_settings.symbols
        if self.client_path.is_file():
            self._log(
                f"{symbols['info']} acme.sh already installed at {self.client_path}."
            )
            return

        self._log(f"{symbols['package']} Installing acme.sh into {self.settings.home}...")
        with tempfile.TemporaryDirectory(prefix="acme_sh_") as workdir:
            checkout = Path(workdir) / "acme.sh"
            self._run(
                ["git", "clone", "--depth", "1", self.settings.repo_url, str(checkout)],
                "Cloning the acme.sh repository failed.",
            )
            self._run(
                [
                    "./acme.sh",
                    "--install",
                    "--home",
                    str(self.settings.home),
                    "--accountemail",
                    email,
                    "--nocron",
                ],
                "Installing acme.sh failed.",
                cwd=str(checkout),
            )

        if not self.client_path.is_file():
            raise ExternalToolError(
                f"acme.sh installation finished but {self.client_path} is missing."
            )
        self._log(f"{symbols['success']} acme.sh installed.")

    def issue(
        self, domain: str, web_root: Path, email: str, force: bool = False
    ) -> bool:
        """
        Request a certificate for ``domain`` using the webroot challenge.

        Returns:
            True if a new certificate was issued, False if the client
            reported that its existing certificate is not yet due.

        Raises:
            ExternalToolError: The CA rejected the order or the client failed.
        """
        symbols = self.app_settings.symbols
        command = [
            str(self.client_path),
            "--issue",
            "--home",
            str(self.settings.home),
            "--webroot",
            str(web_root),
            "-d",
            domain,
            "--keylength",
            self.settings.keylength,
            "--accountemail",
            email,
        ]
        if force:
            command.append("--force")

        self._log(
            f"{symbols['step']} Requesting a certificate for {domain}"
            f"{' (forced)' if force else ''}..."
        )
        try:
            result = self.executor.run(command, check=False, capture_output=True)
        except FileNotFoundError as e:
            raise ExternalToolError(f"acme.sh not found at {self.client_path}") from e

        if result.returncode == 0:
            self._log(f"{symbols['success']} Certificate issued for {domain}.")
            return True
        if result.returncode == ISSUE_SKIPPED_RETURN_CODE:
            self._log(
                f"{symbols['info']} acme.sh reports the certificate for {domain} "
                "is not due for renewal; installing the existing one."
            )
            return False

        details = _output_tail(result.stderr) or _output_tail(result.stdout)
        self._log(
            f"{symbols['error']} Certificate issuance for {domain} failed "
            f"(rc {result.returncode}).",
            "error",
        )
        if details:
            self._log(details, "error")
        raise ExternalToolError(
            f"Certificate issuance for {domain} failed (rc {result.returncode}). "
            "Check that the DNS A/AAAA records point to this host and that "
            "port 80 is reachable from the internet."
        )

    def install_certificate(
        self, domain: str, fullchain_path: Path, key_path: Path
    ) -> None:
        """Copy the issued files to their stable paths and register the reload hook."""
        symbols = self.app_settings.symbols
        try:
            fullchain_path.parent.mkdir(parents=True, exist_ok=True)
            key_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExternalToolError(
                f"Could not create certificate directory {fullchain_path.parent}: {e}"
            ) from e

        command = [
            str(self.client_path),
            "--install-cert",
            "--home",
            str(self.settings.home),
            "-d",
            domain,
        ]
        # acme.sh keeps ECC certificates in a separate "<domain>_ecc" directory.
        if self.settings.keylength.startswith("ec-"):
            command.append("--ecc")
        command += [
            "--fullchain-file",
            str(fullchain_path),
            "--key-file",
            str(key_path),
            "--reloadcmd",
            self.settings.reload_command,
        ]
        self._run(
            command,
            f"Installing the certificate for {domain} failed.",
        )
        self._log(
            f"{symbols['success']} Certificate installed to {fullchain_path.parent}."
        )

    def _run(
        self, command: List[str], failure_message: str, cwd: Optional[str] = None
    ) -> subprocess.CompletedProcess:
        try:
            return self.executor.run(command, capture_output=True, cwd=cwd)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self._log(
                f"{self.app_settings.symbols['error']} {failure_message}", "error"
            )
            raise ExternalToolError(f"{failure_message} ({e})") from e
