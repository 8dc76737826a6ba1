import logging
import os
import time

import pytest

from conftest import DEBIAN_OS_RELEASE, FakeExecutor, fake_http_response, make_zip_bytes
from provisioner.base_stage import BaseStage
from provisioner.errors import ExternalToolError
from provisioner.models import CertificateAction
from provisioner.orchestrator import ProvisioningOrchestrator
from provisioner.prompts import ScriptedInputSource
from provisioner.registry import StageRegistry

SS_OUTPUT = "LISTEN 0 511 0.0.0.0:80 0.0.0.0:*\nLISTEN 0 511 0.0.0.0:443 0.0.0.0:*\n"
BUNDLE = make_zip_bytes({"index.html": "<h1>example</h1>", "assets/app.js": "console.log(1)"})


def fake_get(url, **kwargs):
    if url.endswith(".zip"):
        return fake_http_response(200, BUNDLE)
    return fake_http_response(200)


@pytest.fixture
def host(app_settings, acme_effects, mocker):
    """A fresh Debian host: no Nginx, no certificate, no acme.sh."""
    app_settings.os_release_path.write_text(DEBIAN_OS_RELEASE)
    mocker.patch("provisioner.components.website.site_deployer.user_exists", return_value=True)
    mocker.patch("requests.get", side_effect=fake_get)

    def build(available=()):
        executor = FakeExecutor(available)
        executor.respond(
            ["apt-get", "install", "-y", "nginx"],
            effect=lambda command, cwd: executor.available.add("nginx"),
        )
        executor.respond(["ss", "-ltn"], stdout=SS_OUTPUT)
        acme_effects(executor)
        return executor

    return build


def _orchestrate(app_settings, executor, answers):
    source = ScriptedInputSource(answers)
    orchestrator = ProvisioningOrchestrator(app_settings, executor, source)
    return orchestrator, orchestrator.run(), source


def test_fresh_host_end_to_end(app_settings, host):
    executor = host()

    orchestrator, exit_code, source = _orchestrate(
        app_settings, executor, ["example.com", "admin@example.com"]
    )

    assert exit_code == 0
    state = orchestrator.state
    assert state.certificate_action is CertificateAction.ISSUED
    web_root = app_settings.www_base_dir / "example.com"
    assert (web_root / "index.html").read_text() == "<h1>example</h1>"
    config = (app_settings.nginx.conf_dir / "sites-available" / "example.com.conf").read_text()
    assert "server_name example.com www.example.com;" in config
    assert "listen 443 ssl http2;" in config
    assert state.certificate.fullchain_path.is_file()
    assert state.certificate.key_path.is_file()
    crontab = app_settings.crontab_path.read_text()
    assert crontab.count(f"{app_settings.acme.client_path} --cron") == 1
    assert executor.ran("apt-get", "install", "-y", "nginx")
    assert len(source.prompts) == 2


def test_rerun_two_days_later_reuses_certificate(app_settings, host):
    _, first_exit, _ = _orchestrate(app_settings, host(), ["example.com", "admin@example.com"])
    assert first_exit == 0
    fullchain = app_settings.acme.ssl_base_dir / "example.com" / "fullchain.pem"
    stamp = time.time() - 2 * 86400
    os.utime(fullchain, (stamp, stamp))
    crontab_before = app_settings.crontab_path.read_text()

    executor = host(available={"nginx"})
    orchestrator, exit_code, source = _orchestrate(
        app_settings, executor, ["example.com", "admin@example.com", None]
    )

    assert exit_code == 0
    assert orchestrator.state.certificate_action is CertificateAction.REUSED
    assert orchestrator.state.certificate.age_days == 2
    assert "Force a reissue" in source.prompts[-1]
    assert not executor.ran(str(app_settings.acme.client_path), "--issue")
    assert not executor.ran("apt-get", "install", "-y", "nginx")
    assert fullchain.read_text() == "CHAIN"
    assert app_settings.crontab_path.read_text() == crontab_before


def test_invalid_email_three_times_changes_nothing(app_settings, host):
    executor = host()

    orchestrator, exit_code, _ = _orchestrate(
        app_settings, executor, ["example.com", "not-an-email", "a@b", "@example.com"]
    )

    assert exit_code == 1
    assert executor.calls_starting_with("apt-get") == []
    assert executor.calls == []
    assert orchestrator.state.site is None
    assert not app_settings.www_base_dir.exists()


def test_unsupported_os_aborts(app_settings, host):
    app_settings.os_release_path.write_text("ID=arch\n")
    executor = host()

    _, exit_code, source = _orchestrate(app_settings, executor, [])

    assert exit_code == 1
    assert source.prompts == []


def test_firewall_failure_is_not_fatal(app_settings, host, mocker):
    mocker.patch(
        "provisioner.components.firewall.firewall_opener.detect_firewall",
        side_effect=ExternalToolError("firewall exploded"),
    )

    _, exit_code, _ = _orchestrate(app_settings, host(), ["example.com", "admin@example.com"])

    assert exit_code == 0


def test_certificate_failure_stops_before_vhost(app_settings, host, caplog):
    caplog.set_level(logging.INFO)
    executor = host()
    executor.respond([str(app_settings.acme.client_path), "--issue"], returncode=1)

    orchestrator, exit_code, _ = _orchestrate(app_settings, executor, ["example.com", "admin@example.com"])

    assert exit_code == 1
    assert orchestrator.state.vhost is None
    assert not app_settings.crontab_path.exists()
    assert "Stage 'certificate' failed" in caplog.text


def test_unexpected_error_in_fatal_stage(app_settings, executor, mocker):
    mocker.patch.dict(StageRegistry._registry)

    @StageRegistry.register(name="exploding", metadata={"dependencies": []})
    class Exploding(BaseStage):
        def run(self, state):
            raise RuntimeError("boom")

    orchestrator = ProvisioningOrchestrator(app_settings, executor, ScriptedInputSource([]))

    assert orchestrator.run(["exploding"]) == 1


def test_unknown_target(app_settings, executor):
    orchestrator = ProvisioningOrchestrator(app_settings, executor, ScriptedInputSource([]))
    assert orchestrator.run(["no_such_stage"]) == 1
