# tests/conftest.py
import io
import subprocess
import zipfile
from pathlib import Path
from typing import Callable, Iterable, List, Optional
from unittest.mock import MagicMock

import pytest
import requests

from common.command_utils import CommandExecutor
from provisioner.config_models import AcmeSettings, AppSettings, NginxSettings
from provisioner.models import (
    HostProfile,
    OsFamily,
    ProvisioningState,
    SiteDeployment,
    SiteRequest,
)
from provisioner.orchestrator import load_all_stages

DEBIAN_OS_RELEASE = 'ID=ubuntu\nID_LIKE=debian\nPRETTY_NAME="Ubuntu 22.04.4 LTS"\n'


class FakeExecutor(CommandExecutor):
    """
    Stands in for the host: records every command and answers from
    responses registered by command prefix (longest prefix wins).
    Unmatched commands succeed with empty output.
    """

    def __init__(self, available: Optional[Iterable[str]] = None):
        super().__init__()
        self.available = set(available or [])
        self.calls: List[List[str]] = []
        self.cwds: List[Optional[str]] = []
        self._responses = []

    def respond(
        self,
        prefix: List[str],
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        effect: Optional[Callable[[List[str], Optional[str]], None]] = None,
        missing: bool = False,
    ) -> None:
        self._responses.append(
            (list(prefix), returncode, stdout, stderr, effect, missing)
        )

    def _match(self, command: List[str]):
        best = None
        for response in self._responses:
            prefix = response[0]
            if command[: len(prefix)] == prefix:
                if best is None or len(prefix) >= len(best[0]):
                    best = response
        return best

    def run(
        self,
        command,
        check=True,
        capture_output=False,
        cmd_input=None,
        cwd=None,
        env=None,
    ):
        command = [str(part) for part in command]
        self.calls.append(command)
        self.cwds.append(cwd)
        response = self._match(command)
        returncode, stdout, stderr = 0, "", ""
        if response is not None:
            _, returncode, stdout, stderr, effect, missing = response
            if missing:
                raise FileNotFoundError(2, "No such file or directory", command[0])
            if effect is not None:
                effect(command, cwd)
        if check and returncode != 0:
            raise subprocess.CalledProcessError(
                returncode, command, output=stdout, stderr=stderr
            )
        return subprocess.CompletedProcess(command, returncode, stdout, stderr)

    def exists(self, command_name: str) -> bool:
        return command_name in self.available

    def ran(self, *prefix: str) -> bool:
        return any(call[: len(prefix)] == list(prefix) for call in self.calls)

    def calls_starting_with(self, *prefix: str) -> List[List[str]]:
        return [call for call in self.calls if call[: len(prefix)] == list(prefix)]


def make_zip_bytes(files: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def fake_http_response(status_code: int = 200, body: bytes = b"") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.iter_content.return_value = [body]
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error"
        )
    return response


def write_option_value(command: List[str], option: str, content: str) -> None:
    target = Path(command[command.index(option) + 1])
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)


@pytest.fixture(scope="session", autouse=True)
def registered_stages():
    load_all_stages()


@pytest.fixture
def app_settings(tmp_path):
    """Settings with every filesystem root relocated under tmp_path."""
    (tmp_path / "nginx" / "sites-enabled").mkdir(parents=True)
    return AppSettings(
        log_prefix="[TEST]",
        www_base_dir=tmp_path / "www",
        os_release_path=tmp_path / "os-release",
        crontab_path=tmp_path / "crontab",
        tty_path=tmp_path / "tty",
        require_root=False,
        reissue_prompt_timeout=1,
        nginx=NginxSettings(
            conf_dir=tmp_path / "nginx", log_dir=tmp_path / "log" / "nginx"
        ),
        acme=AcmeSettings(home=tmp_path / "acme", ssl_base_dir=tmp_path / "ssl"),
    )


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def mock_logger():
    return MagicMock()


@pytest.fixture
def debian_host():
    return HostProfile(
        os_id="ubuntu", os_like="debian", family=OsFamily.DEBIAN,
        package_manager="apt-get",
    )


@pytest.fixture
def site_request():
    return SiteRequest(domain="example.com", email="admin@example.com")


@pytest.fixture
def deployment(app_settings):
    web_root = Path(app_settings.www_base_dir) / "example.com"
    web_root.mkdir(parents=True)
    (web_root / "index.html").write_text("<h1>hello</h1>")
    return SiteDeployment(web_root=web_root, owner="www-data", group="www-data")


@pytest.fixture
def deployed_state(debian_host, site_request, deployment):
    return ProvisioningState(
        host=debian_host,
        site=site_request,
        nginx_preinstalled=True,
        deployment=deployment,
    )


@pytest.fixture
def acme_effects(app_settings):
    """Register acme.sh side effects: install creates the client, install-cert the files."""

    def register(executor: FakeExecutor) -> None:
        client = app_settings.acme.client_path

        def create_client(command, cwd):
            client.parent.mkdir(parents=True, exist_ok=True)
            client.write_text("#!/bin/sh\n")

        def install_files(command, cwd):
            write_option_value(command, "--fullchain-file", "CHAIN")
            write_option_value(command, "--key-file", "KEY")

        executor.respond(["./acme.sh", "--install"], effect=create_client)
        executor.respond([str(client), "--install-cert"], effect=install_files)

    return register
