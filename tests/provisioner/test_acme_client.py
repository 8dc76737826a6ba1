import pytest

from provisioner.components.certificate.acme_client import AcmeClient
from provisioner.errors import ExternalToolError


def test_bootstrap_clones_and_installs_without_cron(app_settings, executor, acme_effects):
    acme_effects(executor)
    client = AcmeClient(app_settings, executor)

    client.ensure_installed("admin@example.com")

    clone, install = executor.calls
    assert clone[:4] == ["git", "clone", "--depth", "1"]
    assert clone[4] == "https://github.com/acmesh-official/acme.sh.git"
    assert install == [
        "./acme.sh", "--install", "--home", str(app_settings.acme.home),
        "--accountemail", "admin@example.com", "--nocron",
    ]
    assert executor.cwds[1] == clone[5]
    assert app_settings.acme.client_path.is_file()


def test_bootstrap_skipped_when_present(app_settings, executor):
    app_settings.acme.client_path.parent.mkdir(parents=True)
    app_settings.acme.client_path.write_text("")

    AcmeClient(app_settings, executor).ensure_installed("admin@example.com")

    assert executor.calls == []


def test_bootstrap_failure(app_settings, executor):
    executor.respond(["git", "clone"], returncode=128)

    with pytest.raises(ExternalToolError, match="Cloning"):
        AcmeClient(app_settings, executor).ensure_installed("admin@example.com")


def test_install_reporting_success_without_client(app_settings, executor):
    with pytest.raises(ExternalToolError, match="missing"):
        AcmeClient(app_settings, executor).ensure_installed("admin@example.com")


def test_forced_issue_uses_ecc_key(app_settings, executor, tmp_path):
    issued = AcmeClient(app_settings, executor).issue("example.com", tmp_path, "a@example.com", force=True)

    assert issued is True
    command = executor.calls[0]
    assert command[command.index("--keylength") + 1] == "ec-256"
    assert command[-1] == "--force"


def test_install_certificate_creates_directory(app_settings, executor):
    fullchain = app_settings.acme.ssl_base_dir / "example.com" / "fullchain.pem"
    key = fullchain.parent / "privkey.pem"

    AcmeClient(app_settings, executor).install_certificate("example.com", fullchain, key)

    assert fullchain.parent.is_dir()
    command = executor.calls[0]
    assert "--ecc" in command
    assert command[command.index("--key-file") + 1] == str(key)


def test_rsa_key_installs_without_ecc(app_settings, executor, tmp_path):
    app_settings.acme.keylength = "2048"
    fullchain = app_settings.acme.ssl_base_dir / "example.com" / "fullchain.pem"
    client = AcmeClient(app_settings, executor)

    client.issue("example.com", tmp_path, "a@example.com")
    client.install_certificate("example.com", fullchain, fullchain.parent / "privkey.pem")

    issue, install = executor.calls
    assert issue[issue.index("--keylength") + 1] == "2048"
    assert "--install-cert" in install
    assert "--ecc" not in install
