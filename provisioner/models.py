# provisioner/models.py
# -*- coding: utf-8 -*-
"""
Immutable single-run values passed between pipeline stages.

Each stage receives a ProvisioningState and returns an updated copy
(``model_copy(update=...)``); nothing here is persisted.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from provisioner.errors import ProvisioningError


class OsFamily(str, Enum):
    DEBIAN = "debian"
    RHEL = "rhel"


class CertificateAction(str, Enum):
    ISSUED = "issued"
    REUSED = "reused"
    REISSUED = "reissued"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class HostProfile(FrozenModel):
    """Operating system classification, computed once at start."""

    os_id: str
    os_like: str = ""
    family: OsFamily
    package_manager: str


class SiteRequest(FrozenModel):
    """Validated operator input."""

    domain: str
    email: str

    @property
    def server_names(self) -> list[str]:
        return [self.domain, f"www.{self.domain}"]


class CertificateState(FrozenModel):
    """Result of inspecting the certificate store for one domain."""

    fullchain_path: Path
    key_path: Path
    exists: bool
    modified_at: Optional[datetime] = None
    age_days: Optional[int] = None
    fresh: bool = False


class SiteDeployment(FrozenModel):
    web_root: Path
    owner: str
    group: str
    dir_mode: int = 0o755
    file_mode: int = 0o644

    @property
    def challenge_dir(self) -> Path:
        return self.web_root / ".well-known" / "acme-challenge"


class VirtualHostConfig(FrozenModel):
    config_path: Path
    enabled_path: Optional[Path] = None
    fullchain_path: Path
    key_path: Path


class RenewalJob(FrozenModel):
    schedule: str
    command: str
    marker: str
    inserted: bool = False

    @property
    def line(self) -> str:
        return f"{self.schedule} root {self.command}"


class ProvisioningState(FrozenModel):
    """Everything the pipeline has established so far."""

    host: Optional[HostProfile] = None
    site: Optional[SiteRequest] = None
    nginx_preinstalled: Optional[bool] = None
    deployment: Optional[SiteDeployment] = None
    certificate: Optional[CertificateState] = None
    certificate_action: Optional[CertificateAction] = None
    vhost: Optional[VirtualHostConfig] = None
    renewal_job: Optional[RenewalJob] = None

    def require(self, field_name: str) -> Any:
        """Return a field set by an earlier stage, or fail loudly."""
        value = getattr(self, field_name)
        if value is None:
            raise ProvisioningError(
                f"Pipeline state is missing '{field_name}'; "
                "the stage that provides it has not run."
            )
        return value
