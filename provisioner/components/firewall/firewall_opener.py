# provisioner/components/firewall/firewall_opener.py
# -*- coding: utf-8 -*-
"""
Opens the HTTP and HTTPS ports in the local firewall, best effort.

Exactly one tool is used, chosen in priority order: an active ufw, an
active firewalld, then plain iptables only when neither ufw nor
firewall-cmd is installed. Every mutation may fail without aborting the
run; cloud security groups often make the local firewall irrelevant.
"""

from enum import Enum
from typing import Optional

from common.command_utils import CommandExecutor
from provisioner.base_stage import BaseStage
from provisioner.models import ProvisioningState
from provisioner.registry import StageRegistry


class FirewallTool(str, Enum):
    UFW = "ufw"
    FIREWALLD = "firewalld"
    IPTABLES = "iptables"


def status_output(executor: CommandExecutor, command: list) -> Optional[str]:
    try:
        result = executor.run(command, check=False, capture_output=True)
    except FileNotFoundError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout or ""


def detect_firewall(executor: CommandExecutor) -> Optional[FirewallTool]:
    """Return the single firewall tool that should be managed, if any."""
    has_ufw = executor.exists("ufw")
    has_firewall_cmd = executor.exists("firewall-cmd")

    if has_ufw:
        output = status_output(executor, ["ufw", "status"])
        if output and "Status: active" in output:
            return FirewallTool.UFW

    if has_firewall_cmd:
        output = status_output(
            executor, ["systemctl", "is-active", "firewalld"]
        )
        if output is not None and output.strip() == "active":
            return FirewallTool.FIREWALLD

    if not has_ufw and not has_firewall_cmd and executor.exists("iptables"):
        return FirewallTool.IPTABLES

    return None


@StageRegistry.register(
    name="firewall",
    metadata={
        "dependencies": ["dependencies"],
        "description": "Open ports 80 and 443 in the local firewall",
        "fatal": False,
    },
)
class FirewallOpener(BaseStage):
    """Opens the site's ports through one firewall tool."""

    def run(self, state: ProvisioningState) -> ProvisioningState:
        tool = detect_firewall(self.executor)
        if tool is None:
            self.log(
                f"{self.symbols['info']} No active firewall tool detected; "
                "nothing to open locally."
            )
            return state

        self.log(
            f"{self.symbols['gear']} Detected {tool.value}; opening ports "
            f"{', '.join(str(p) for p in self.app_settings.firewall.tcp_ports)}..."
        )
        if tool is FirewallTool.UFW:
            self._open_with_ufw()
        elif tool is FirewallTool.FIREWALLD:
            self._open_with_firewalld()
        else:
            self._open_with_iptables()

        self.log(
            f"{self.symbols['success']} Attempted to open the ports; confirm "
            "the rules and any upstream security groups manually."
        )
        return state

    def _open_with_ufw(self) -> None:
        for port in self.app_settings.firewall.tcp_ports:
            self.run_best_effort(["ufw", "allow", f"{port}/tcp"])
        self.run_best_effort(["ufw", "reload"])

    def _open_with_firewalld(self) -> None:
        for service in self.app_settings.firewall.firewalld_services:
            self.run_best_effort(
                ["firewall-cmd", "--permanent", f"--add-service={service}"]
            )
        self.run_best_effort(["firewall-cmd", "--reload"])

    def _open_with_iptables(self) -> None:
        for port in self.app_settings.firewall.tcp_ports:
            rule = ["INPUT", "-p", "tcp", "--dport", str(port), "-j", "ACCEPT"]
            # -C exits non-zero when the rule is absent; that is not a failure.
            existing = status_output(self.executor, ["iptables", "-C"] + rule)
            if existing is not None:
                self.log(
                    f"{self.symbols['info']} iptables already accepts port {port}.",
                    "debug",
                )
                continue
            self.run_best_effort(["iptables", "-I"] + rule)

        if self.executor.exists("netfilter-persistent"):
            self.run_best_effort(["netfilter-persistent", "save"])
        elif self.executor.exists("service"):
            self.run_best_effort(["service", "iptables", "save"])
