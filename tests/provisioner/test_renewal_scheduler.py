import pytest

from provisioner.components.renewal.renewal_scheduler import RenewalScheduler
from provisioner.errors import ExternalToolError
from provisioner.models import ProvisioningState
from provisioner.prompts import ScriptedInputSource


def _run(app_settings, executor):
    return RenewalScheduler(app_settings, executor, ScriptedInputSource([])).run(ProvisioningState())


def test_entry_added_once(app_settings, executor):
    crontab = app_settings.crontab_path
    crontab.write_text("SHELL=/bin/sh\n17 * * * * root cd / && run-parts --report /etc/cron.hourly\n")

    first = _run(app_settings, executor).renewal_job
    second = _run(app_settings, executor).renewal_job

    client = app_settings.acme.client_path
    expected = f"0 1 1 * * root {client} --cron --home {app_settings.acme.home} > /dev/null 2>&1"
    lines = crontab.read_text().splitlines()
    assert lines[-1] == expected
    assert sum(1 for line in lines if f"{client} --cron" in line) == 1
    assert first.inserted is True
    assert second.inserted is False
    assert executor.calls == []


def test_missing_trailing_newline_is_repaired(app_settings, executor):
    app_settings.crontab_path.write_text("MAILTO=root")

    _run(app_settings, executor)

    lines = app_settings.crontab_path.read_text().splitlines()
    assert lines[0] == "MAILTO=root"
    assert lines[1].startswith("0 1 1 * * root ")


def test_hand_edited_schedule_is_respected(app_settings, executor):
    client = app_settings.acme.client_path
    original = f"30 4 * * 0 root {client} --cron --home {app_settings.acme.home}\n"
    app_settings.crontab_path.write_text(original)

    job = _run(app_settings, executor).renewal_job

    assert job.inserted is False
    assert app_settings.crontab_path.read_text() == original


def test_crontab_created_when_absent(app_settings, executor):
    _run(app_settings, executor)
    assert app_settings.crontab_path.read_text().count("\n") == 1


def test_unwritable_crontab(app_settings, executor):
    settings = app_settings.model_copy(update={"crontab_path": app_settings.crontab_path.parent / "no" / "crontab"})
    with pytest.raises(ExternalToolError):
        _run(settings, executor)
