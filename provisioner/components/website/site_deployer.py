# provisioner/components/website/site_deployer.py
# -*- coding: utf-8 -*-
"""
Downloads the prebuilt site bundle and deploys it into the domain's web root.

The bundle is always the "latest" release archive; each run overwrites the
previous deployment in place. There is no versioning or rollback.
"""

import os
import pwd
import tempfile
import zipfile
from pathlib import Path
from typing import Optional, Tuple

import requests

from provisioner import config
from provisioner.base_stage import BaseStage
from provisioner.errors import ExternalToolError
from provisioner.models import (
    HostProfile,
    OsFamily,
    ProvisioningState,
    SiteDeployment,
    SiteRequest,
)
from provisioner.registry import StageRegistry


def web_root_for(www_base_dir: Path, domain: str) -> Path:
    return Path(www_base_dir) / domain


def user_exists(username: str) -> bool:
    try:
        pwd.getpwnam(username)
        return True
    except KeyError:
        return False


def resolve_web_owner(family: OsFamily) -> Tuple[str, str]:
    """Conventional webserver user:group for the family, with a fallback."""
    preferred = (
        config.DEBIAN_WEB_USER
        if family is OsFamily.DEBIAN
        else config.RHEL_WEB_USER
    )
    if user_exists(preferred):
        return preferred, preferred
    return config.FALLBACK_WEB_USER, config.FALLBACK_WEB_USER


def normalize_permissions(root: Path, dir_mode: int, file_mode: int) -> None:
    """Directories traversable and readable, files readable, no execute bit."""
    os.chmod(root, dir_mode)
    for current, dirs, files in os.walk(root):
        for name in dirs:
            os.chmod(os.path.join(current, name), dir_mode)
        for name in files:
            path = os.path.join(current, name)
            if not os.path.islink(path):
                os.chmod(path, file_mode)


@StageRegistry.register(
    name="website",
    metadata={
        "dependencies": ["firewall"],
        "description": "Download and deploy the latest site bundle",
    },
)
class SiteDeployer(BaseStage):
    """Produces the SiteDeployment for the run."""

    def run(self, state: ProvisioningState) -> ProvisioningState:
        host: HostProfile = state.require("host")
        site: SiteRequest = state.require("site")
        web_root = web_root_for(self.app_settings.www_base_dir, site.domain)

        self.log(
            f"{self.symbols['step']} Deploying the latest site bundle to {web_root}..."
        )
        web_root.mkdir(parents=True, exist_ok=True)

        archive_path = self._temporary_archive_path(site.domain)
        try:
            self.download_bundle(str(self.app_settings.bundle_url), archive_path)
            self.extract_bundle(archive_path, web_root)
        finally:
            archive_path.unlink(missing_ok=True)

        owner, group = resolve_web_owner(host.family)
        deployment = SiteDeployment(web_root=web_root, owner=owner, group=group)
        self.run_fatal(
            ["chown", "-R", f"{owner}:{group}", str(web_root)],
            f"Could not set ownership of {web_root} to {owner}:{group}.",
        )
        normalize_permissions(
            web_root, deployment.dir_mode, deployment.file_mode
        )

        self.log(
            f"{self.symbols['success']} Site deployed to {web_root} "
            f"(owner {owner}:{group})."
        )
        return state.model_copy(update={"deployment": deployment})

    @staticmethod
    def _temporary_archive_path(domain: str) -> Path:
        handle, name = tempfile.mkstemp(prefix=f"web_{domain}_", suffix=".zip")
        os.close(handle)
        return Path(name)

    def download_bundle(self, url: str, destination: Path) -> None:
        """
        Stream the archive at ``url`` to ``destination``.

        Raises:
            ExternalToolError: On any HTTP, network or file error.
        """
        self.log(f"{self.symbols['gear']} Downloading {url} ...")
        response: Optional[requests.Response] = None
        try:
            response = requests.get(
                url, stream=True, timeout=self.app_settings.download_timeout
            )
            response.raise_for_status()
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
        except requests.exceptions.RequestException as e:
            raise ExternalToolError(
                f"Download of {url} failed: {e}. Check network access and "
                "that the release URL is reachable."
            ) from e
        except OSError as e:
            raise ExternalToolError(
                f"Could not save the download to {destination}: {e}"
            ) from e
        finally:
            if response is not None:
                response.close()

    def extract_bundle(self, archive: Path, web_root: Path) -> None:
        """
        Extract ``archive`` over ``web_root``, overwriting existing files.

        Raises:
            ExternalToolError: If the archive is corrupt or unwritable.
        """
        self.log(f"{self.symbols['gear']} Extracting into {web_root} ...")
        try:
            with zipfile.ZipFile(archive, "r") as zip_ref:
                zip_ref.extractall(web_root)
                member_count = len(zip_ref.namelist())
        except zipfile.BadZipFile as e:
            raise ExternalToolError(
                f"The downloaded bundle is not a valid zip archive: {e}"
            ) from e
        except OSError as e:
            raise ExternalToolError(
                f"Extracting the bundle into {web_root} failed: {e}"
            ) from e
        self.logger.debug(f"Extracted {member_count} entries into {web_root}")
