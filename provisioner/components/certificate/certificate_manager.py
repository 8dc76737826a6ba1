# provisioner/components/certificate/certificate_manager.py
# -*- coding: utf-8 -*-
"""
Decides whether to reuse the domain's certificate or obtain a new one.

A certificate whose files both exist and whose full chain is younger than
the freshness threshold (whole days) is reused as-is. Anything else goes
through the challenge precheck, then acme.sh issue and install.
"""

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from provisioner.base_stage import BaseStage
from provisioner.components.certificate.acme_client import AcmeClient
from provisioner.components.certificate.challenge_check import ChallengeCheck
from provisioner.errors import ExternalToolError
from provisioner.models import (
    CertificateAction,
    CertificateState,
    ProvisioningState,
    SiteDeployment,
    SiteRequest,
)
from provisioner.registry import StageRegistry

SECONDS_PER_DAY = 86400


def certificate_paths(ssl_base_dir: Path, domain: str) -> Tuple[Path, Path]:
    cert_dir = Path(ssl_base_dir) / domain
    return cert_dir / "fullchain.pem", cert_dir / "privkey.pem"


def inspect_certificate(
    fullchain_path: Path,
    key_path: Path,
    fresh_days: int,
    now: Optional[float] = None,
) -> CertificateState:
    """
    Inspect the certificate store for one domain.

    Args:
        fullchain_path: Installed full chain file.
        key_path: Installed private key file.
        fresh_days: Certificates younger than this many whole days are fresh.
        now: Reference time as a POSIX timestamp. Defaults to the current time.
    """
    if not (fullchain_path.is_file() and key_path.is_file()):
        return CertificateState(
            fullchain_path=fullchain_path, key_path=key_path, exists=False
        )

    current = time.time() if now is None else now
    mtime = fullchain_path.stat().st_mtime
    age_days = int((current - mtime) // SECONDS_PER_DAY)
    return CertificateState(
        fullchain_path=fullchain_path,
        key_path=key_path,
        exists=True,
        modified_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
        age_days=age_days,
        fresh=age_days < fresh_days,
    )


def obtain_certificate(
    stage: BaseStage,
    site: SiteRequest,
    deployment: SiteDeployment,
    force: bool = False,
    prepare_challenge: bool = True,
) -> CertificateState:
    """
    Run the challenge precheck, then issue and install through acme.sh.

    Returns:
        The certificate state as inspected after installation.
    """
    settings = stage.app_settings
    fullchain_path, key_path = certificate_paths(
        settings.acme.ssl_base_dir, site.domain
    )

    challenge = ChallengeCheck(settings, stage.executor, stage.logger)
    if prepare_challenge:
        challenge.prepare(site.domain, deployment)
    challenge.verify(site.domain, deployment)

    acme = AcmeClient(settings, stage.executor, stage.logger)
    acme.ensure_installed(site.email)
    acme.issue(site.domain, deployment.web_root, site.email, force=force)
    acme.install_certificate(site.domain, fullchain_path, key_path)

    installed = inspect_certificate(
        fullchain_path, key_path, settings.acme.fresh_days
    )
    if not installed.exists:
        raise ExternalToolError(
            f"acme.sh reported success but {fullchain_path} or {key_path} "
            "is missing."
        )
    return installed


@StageRegistry.register(
    name="certificate",
    metadata={
        "dependencies": ["website"],
        "description": "Reuse a fresh certificate or obtain one via acme.sh",
    },
)
class CertificateManager(BaseStage):

    def run(self, state: ProvisioningState) -> ProvisioningState:
        site: SiteRequest = state.require("site")
        deployment: SiteDeployment = state.require("deployment")
        fresh_days = self.app_settings.acme.fresh_days

        fullchain_path, key_path = certificate_paths(
            self.app_settings.acme.ssl_base_dir, site.domain
        )
        current = inspect_certificate(fullchain_path, key_path, fresh_days)

        if current.fresh:
            self.log(
                f"{self.symbols['success']} Existing certificate for {site.domain} "
                f"is {current.age_days} day(s) old (< {fresh_days}); reusing it."
            )
            return state.model_copy(
                update={
                    "certificate": current,
                    "certificate_action": CertificateAction.REUSED,
                }
            )

        if current.exists:
            self.log(
                f"{self.symbols['info']} Existing certificate for {site.domain} is "
                f"{current.age_days} day(s) old; requesting a new one."
            )
        else:
            self.log(
                f"{self.symbols['info']} No certificate found for {site.domain}; "
                "requesting one."
            )

        installed = obtain_certificate(self, site, deployment)
        return state.model_copy(
            update={
                "certificate": installed,
                "certificate_action": CertificateAction.ISSUED,
            }
        )
