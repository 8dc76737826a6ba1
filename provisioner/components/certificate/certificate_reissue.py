# provisioner/components/certificate/certificate_reissue.py
# -*- coding: utf-8 -*-
"""
Offers a forced reissue when the run reused an existing certificate.

The question times out; no answer (or anything but yes) leaves the
certificate untouched. The final virtual host already serves the
challenge path, so only the reachability probe runs before the order.
"""

from provisioner.base_stage import BaseStage
from provisioner.components.certificate.certificate_manager import (
    obtain_certificate,
)
from provisioner.models import (
    CertificateAction,
    CertificateState,
    ProvisioningState,
    SiteDeployment,
    SiteRequest,
)
from provisioner.registry import StageRegistry

AFFIRMATIVE_ANSWERS = ("y", "yes")


@StageRegistry.register(
    name="certificate_reissue",
    metadata={
        "dependencies": ["renewal"],
        "description": "Optionally force a reissue of a reused certificate",
    },
)
class CertificateReissuer(BaseStage):

    def run(self, state: ProvisioningState) -> ProvisioningState:
        if state.certificate_action is not CertificateAction.REUSED:
            return state

        site: SiteRequest = state.require("site")
        deployment: SiteDeployment = state.require("deployment")
        certificate: CertificateState = state.require("certificate")
        timeout = self.app_settings.reissue_prompt_timeout

        answer = self.input_source.read_line(
            f"The certificate for {site.domain} is {certificate.age_days} day(s) "
            f"old. Force a reissue now? [y/N] (skips in {timeout}s): ",
            timeout=timeout,
        )
        if answer is None:
            self.log(
                f"{self.symbols['info']} No answer within {timeout}s; keeping "
                "the existing certificate."
            )
            return state
        if answer.strip().lower() not in AFFIRMATIVE_ANSWERS:
            self.log(f"{self.symbols['info']} Keeping the existing certificate.")
            return state

        self.log(f"{self.symbols['step']} Forcing a certificate reissue for {site.domain}...")
        reissued = obtain_certificate(
            self, site, deployment, force=True, prepare_challenge=False
        )
        self.log(f"{self.symbols['success']} Certificate for {site.domain} reissued.")
        return state.model_copy(
            update={
                "certificate": reissued,
                "certificate_action": CertificateAction.REISSUED,
            }
        )
