import pydantic
import pytest

from provisioner.errors import ProvisioningError
from provisioner.models import ProvisioningState, RenewalJob, SiteDeployment, SiteRequest


def test_site_request_server_names():
    site = SiteRequest(domain="example.com", email="a@example.com")
    assert site.server_names == ["example.com", "www.example.com"]


def test_models_are_immutable():
    site = SiteRequest(domain="example.com", email="a@example.com")
    with pytest.raises(pydantic.ValidationError):
        site.domain = "other.com"


def test_state_copy_leaves_original_untouched():
    site = SiteRequest(domain="example.com", email="a@example.com")
    state = ProvisioningState()

    updated = state.model_copy(update={"site": site})

    assert state.site is None
    assert updated.require("site") == site


def test_require_missing_field():
    with pytest.raises(ProvisioningError, match="certificate"):
        ProvisioningState().require("certificate")


def test_challenge_dir_and_renewal_line(tmp_path):
    deployment = SiteDeployment(web_root=tmp_path, owner="nginx", group="nginx")
    assert deployment.challenge_dir == tmp_path / ".well-known" / "acme-challenge"

    job = RenewalJob(schedule="0 1 1 * *", command="/x/acme.sh --cron", marker="/x/acme.sh --cron")
    assert job.line == "0 1 1 * * root /x/acme.sh --cron"
