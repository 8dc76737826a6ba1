import os
import time

import pytest

from conftest import fake_http_response
from provisioner.components.certificate.certificate_manager import (
    certificate_paths,
    inspect_certificate,
)
from provisioner.components.certificate.certificate_reissue import CertificateReissuer
from provisioner.models import CertificateAction
from provisioner.prompts import ScriptedInputSource


@pytest.fixture
def reused_state(app_settings, deployed_state):
    fullchain, key = certificate_paths(app_settings.acme.ssl_base_dir, "example.com")
    fullchain.parent.mkdir(parents=True)
    fullchain.write_text("OLD")
    key.write_text("OLD")
    stamp = time.time() - 86400
    os.utime(fullchain, (stamp, stamp))
    return deployed_state.model_copy(
        update={
            "certificate": inspect_certificate(fullchain, key, 3),
            "certificate_action": CertificateAction.REUSED,
        }
    )


def _stage(app_settings, executor, answers):
    return CertificateReissuer(app_settings, executor, ScriptedInputSource(answers))


def test_no_prompt_after_fresh_issue(app_settings, executor, reused_state):
    state = reused_state.model_copy(update={"certificate_action": CertificateAction.ISSUED})
    stage = _stage(app_settings, executor, ["y"])

    assert stage.run(state) is state
    assert stage.input_source.prompts == []


@pytest.mark.parametrize("answer", [None, "", "n", "no", "later"])
def test_anything_but_yes_keeps_certificate(app_settings, executor, reused_state, answer):
    stage = _stage(app_settings, executor, [answer])

    state = stage.run(reused_state)

    assert state.certificate_action is CertificateAction.REUSED
    assert "Force a reissue" in stage.input_source.prompts[0]
    assert "1s" in stage.input_source.prompts[0]
    assert executor.calls == []


def test_yes_forces_reissue(app_settings, executor, reused_state, acme_effects, mocker):
    acme_effects(executor)
    executor.respond(["ss", "-ltn"], stdout="LISTEN 0 511 [::]:80 [::]:*\n")
    mock_get = mocker.patch("requests.get", return_value=fake_http_response(200))

    state = _stage(app_settings, executor, [" Y "]).run(reused_state)

    assert state.certificate_action is CertificateAction.REISSUED
    assert state.certificate.age_days == 0
    mock_get.assert_called_once()
    issue = executor.calls_starting_with(str(app_settings.acme.client_path), "--issue")[0]
    assert issue[-1] == "--force"
    assert not executor.ran("nginx", "-t")
