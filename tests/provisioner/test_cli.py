from provisioner import cli


def test_parse_args_defaults():
    args = cli.parse_args([])
    assert args.config == "config.yaml"
    assert args.verbose is False
    assert args.view_config is False


def test_view_config_exits_without_running(mocker, tmp_path, caplog):
    mocker.patch("provisioner.cli.setup_logging")
    orchestrator = mocker.patch("provisioner.cli.ProvisioningOrchestrator")

    exit_code = cli.main(["--view-config", "--config", str(tmp_path / "none.yaml")])

    assert exit_code == 0
    orchestrator.assert_not_called()


def test_main_runs_orchestrator(mocker, tmp_path):
    mocker.patch("provisioner.cli.setup_logging")
    orchestrator = mocker.patch("provisioner.cli.ProvisioningOrchestrator")
    orchestrator.return_value.run.return_value = 1

    exit_code = cli.main(["-v", "--config", str(tmp_path / "none.yaml")])

    assert exit_code == 1
    orchestrator.return_value.run.assert_called_once_with()


def test_interrupt_exits_with_failure(mocker, tmp_path):
    mocker.patch("provisioner.cli.setup_logging")
    orchestrator = mocker.patch("provisioner.cli.ProvisioningOrchestrator")
    orchestrator.return_value.run.side_effect = KeyboardInterrupt

    exit_code = cli.main(["--config", str(tmp_path / "none.yaml")])

    assert exit_code == 1
