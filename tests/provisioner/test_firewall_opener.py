import pytest

from provisioner.components.firewall.firewall_opener import (
    FirewallOpener,
    FirewallTool,
    detect_firewall,
)
from provisioner.models import ProvisioningState
from provisioner.prompts import ScriptedInputSource


def _run(app_settings, executor):
    stage = FirewallOpener(app_settings, executor, ScriptedInputSource([]))
    return stage.run(ProvisioningState())


def test_detects_active_ufw(executor):
    executor.available.update({"ufw", "firewall-cmd"})
    executor.respond(["ufw", "status"], stdout="Status: active\n")
    assert detect_firewall(executor) is FirewallTool.UFW


def test_inactive_ufw_falls_through_to_firewalld(executor):
    executor.available.update({"ufw", "firewall-cmd"})
    executor.respond(["ufw", "status"], stdout="Status: inactive\n")
    executor.respond(["systemctl", "is-active", "firewalld"], stdout="active\n")
    assert detect_firewall(executor) is FirewallTool.FIREWALLD


def test_iptables_only_without_other_tools(executor):
    executor.available.update({"iptables"})
    assert detect_firewall(executor) is FirewallTool.IPTABLES

    executor.available.add("ufw")
    executor.respond(["ufw", "status"], stdout="Status: inactive\n")
    assert detect_firewall(executor) is None


def test_ufw_opens_ports(app_settings, executor):
    executor.available.add("ufw")
    executor.respond(["ufw", "status"], stdout="Status: active\n")

    _run(app_settings, executor)

    assert ["ufw", "allow", "80/tcp"] in executor.calls
    assert ["ufw", "allow", "443/tcp"] in executor.calls
    assert executor.calls[-1] == ["ufw", "reload"]


def test_firewalld_adds_services(app_settings, executor):
    executor.available.add("firewall-cmd")
    executor.respond(["systemctl", "is-active", "firewalld"], stdout="active\n")

    _run(app_settings, executor)

    assert ["firewall-cmd", "--permanent", "--add-service=http"] in executor.calls
    assert ["firewall-cmd", "--permanent", "--add-service=https"] in executor.calls
    assert executor.calls[-1] == ["firewall-cmd", "--reload"]


def test_iptables_inserts_missing_rules_and_saves(app_settings, executor):
    executor.available.update({"iptables", "netfilter-persistent"})
    executor.respond(["iptables", "-C", "INPUT", "-p", "tcp", "--dport", "80"], returncode=1)

    _run(app_settings, executor)

    inserted = executor.calls_starting_with("iptables", "-I")
    assert inserted == [["iptables", "-I", "INPUT", "-p", "tcp", "--dport", "80", "-j", "ACCEPT"]]
    assert executor.calls[-1] == ["netfilter-persistent", "save"]


def test_failures_only_warn(app_settings, executor):
    executor.available.add("ufw")
    executor.respond(["ufw", "status"], stdout="Status: active\n")
    executor.respond(["ufw", "allow"], returncode=1, stderr="ERROR")
    executor.respond(["ufw", "reload"], missing=True)

    state = _run(app_settings, executor)

    assert state == ProvisioningState()


def test_no_firewall_is_a_no_op(app_settings, executor):
    _run(app_settings, executor)
    assert executor.calls == []
