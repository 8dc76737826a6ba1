# provisioner/components/renewal/renewal_scheduler.py
# -*- coding: utf-8 -*-
"""
Registers the periodic acme.sh renewal check in the system crontab.

The entry is identified by a marker substring, so re-runs never add a
second one even if the schedule was edited by hand.
"""

from pathlib import Path

from provisioner.base_stage import BaseStage
from provisioner.errors import ExternalToolError
from provisioner.models import ProvisioningState, RenewalJob
from provisioner.registry import StageRegistry


def build_renewal_job(client_path: Path, acme_home: Path, schedule: str) -> RenewalJob:
    marker = f"{client_path} --cron"
    command = f"{marker} --home {acme_home} > /dev/null 2>&1"
    return RenewalJob(schedule=schedule, command=command, marker=marker)


def ensure_crontab_entry(crontab_path: Path, job: RenewalJob) -> bool:
    """
    Append ``job`` to ``crontab_path`` unless its marker is already present.

    Returns:
        True if the line was appended.
    """
    existing = crontab_path.read_text(encoding="utf-8") if crontab_path.exists() else ""
    if job.marker in existing:
        return False

    with open(crontab_path, "a", encoding="utf-8") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        f.write(job.line + "\n")
    return True


@StageRegistry.register(
    name="renewal",
    metadata={
        "dependencies": ["vhost"],
        "description": "Schedule the monthly certificate renewal check",
    },
)
class RenewalScheduler(BaseStage):

    def run(self, state: ProvisioningState) -> ProvisioningState:
        acme = self.app_settings.acme
        crontab_path = Path(self.app_settings.crontab_path)
        job = build_renewal_job(acme.client_path, acme.home, acme.renewal_schedule)

        try:
            inserted = ensure_crontab_entry(crontab_path, job)
        except OSError as e:
            raise ExternalToolError(
                f"Could not update {crontab_path}: {e}"
            ) from e

        if inserted:
            self.log(
                f"{self.symbols['success']} Added renewal job to {crontab_path}: {job.line}"
            )
        else:
            self.log(
                f"{self.symbols['info']} Renewal job already present in {crontab_path}."
            )
        return state.model_copy(
            update={"renewal_job": job.model_copy(update={"inserted": inserted})}
        )
