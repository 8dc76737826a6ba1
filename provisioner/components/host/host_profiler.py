# provisioner/components/host/host_profiler.py
# -*- coding: utf-8 -*-
"""
Classifies the host operating system.

Reads ID and ID_LIKE from the os-release file and maps them to exactly one
supported family, which selects the package manager and package set used
later in the run.
"""

import re
import shlex
from pathlib import Path
from typing import Dict

from provisioner import config
from provisioner.base_stage import BaseStage
from provisioner.errors import EnvironmentCheckError
from provisioner.models import HostProfile, OsFamily, ProvisioningState
from provisioner.registry import StageRegistry


def parse_os_release(path: Path) -> Dict[str, str]:
    """
    Parse an os-release file into a dict.

    Raises:
        EnvironmentCheckError: If the file is missing or unreadable.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise EnvironmentCheckError(
            f"Cannot read {path} ({e.strerror}); unable to detect the "
            "distribution. Confirm the OS manually before running again."
        ) from e

    values: Dict[str, str] = {}
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw_value = line.partition("=")
        try:
            parts = shlex.split(raw_value)
        except ValueError:
            parts = [raw_value.strip("\"'")]
        values[key.strip()] = " ".join(parts)
    return values


def classify_os(os_id: str, os_like: str) -> OsFamily:
    """
    Map os-release identifiers to a supported family.

    Raises:
        EnvironmentCheckError: For anything that is neither Debian-like nor
            RHEL-like.
    """
    os_id = os_id.lower()
    os_like = os_like.lower()
    if re.search(config.DEBIAN_ID_PATTERN, os_id) or re.search(
        config.DEBIAN_LIKE_PATTERN, os_like
    ):
        return OsFamily.DEBIAN
    if re.search(config.RHEL_ID_PATTERN, os_id) or re.search(
        config.RHEL_LIKE_PATTERN, os_like
    ):
        return OsFamily.RHEL
    raise EnvironmentCheckError(
        f"Unsupported distribution (ID={os_id!r}, ID_LIKE={os_like!r}). "
        "Only Debian/Ubuntu and RHEL/CentOS/AlmaLinux/Rocky are supported."
    )


@StageRegistry.register(
    name="host_profile",
    metadata={
        "dependencies": [],
        "description": "Detect the OS family and package manager",
    },
)
class HostProfiler(BaseStage):
    """Builds the HostProfile for the run."""

    def run(self, state: ProvisioningState) -> ProvisioningState:
        release = parse_os_release(self.app_settings.os_release_path)
        os_id = release.get("ID", "")
        os_like = release.get("ID_LIKE", "")
        family = classify_os(os_id, os_like)

        if family is OsFamily.DEBIAN:
            package_manager = "apt-get"
        elif self.executor.exists("dnf"):
            package_manager = "dnf"
        else:
            package_manager = "yum"

        profile = HostProfile(
            os_id=os_id,
            os_like=os_like,
            family=family,
            package_manager=package_manager,
        )
        label = (
            "Debian/Ubuntu"
            if family is OsFamily.DEBIAN
            else "RHEL/CentOS/AlmaLinux/Rocky"
        )
        self.log(
            f"{self.symbols['info']} Detected ID={os_id} ID_LIKE={os_like} "
            f"-> {label} family (package manager: {package_manager})"
        )
        return state.model_copy(update={"host": profile})
