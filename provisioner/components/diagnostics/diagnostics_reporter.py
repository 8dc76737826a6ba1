# provisioner/components/diagnostics/diagnostics_reporter.py
# -*- coding: utf-8 -*-
"""
Prints a post-run report of port exposure, file locations and follow-ups.

Purely informational: every probe failure is reported, never raised.
"""

import re
from typing import List, Optional

from provisioner.base_stage import BaseStage
from provisioner.components.firewall.firewall_opener import (
    FirewallTool,
    status_output,
    detect_firewall,
)
from provisioner.models import ProvisioningState
from provisioner.registry import StageRegistry


def listening_ports(ss_output: str, ports: List[int]) -> List[int]:
    return [p for p in ports if re.search(rf":{p}\b", ss_output)]


@StageRegistry.register(
    name="diagnostics",
    metadata={
        "dependencies": ["certificate_reissue"],
        "description": "Report port exposure and a follow-up checklist",
        "fatal": False,
    },
)
class DiagnosticsReporter(BaseStage):

    def run(self, state: ProvisioningState) -> ProvisioningState:
        self.log(f"{self.symbols['step']} Post-run diagnostics")
        self._report_firewall()
        self._report_listeners()
        self._report_locations(state)
        self._report_checklist(state)
        return state

    def _report_firewall(self) -> None:
        ports = self.app_settings.firewall.tcp_ports
        tool = detect_firewall(self.executor)
        if tool is None:
            self.log(f"{self.symbols['info']} Firewall: no active local firewall detected.")
            return

        for port in ports:
            allowed = self._port_allowed(tool, port)
            if allowed is None:
                status = "unknown"
            else:
                status = "allowed" if allowed else "NOT allowed"
            level = "warning" if allowed is False else "info"
            symbol = self.symbols["warning"] if allowed is False else self.symbols["info"]
            self.log(f"{symbol} Firewall ({tool.value}): port {port}/tcp {status}", level)

    def _port_allowed(self, tool: FirewallTool, port: int) -> Optional[bool]:
        if tool is FirewallTool.UFW:
            output = status_output(self.executor, ["ufw", "status"])
            if output is None:
                return None
            return re.search(rf"^{port}(/tcp)?\s+ALLOW", output, re.MULTILINE) is not None

        if tool is FirewallTool.FIREWALLD:
            services = status_output(self.executor, ["firewall-cmd", "--list-services"])
            ports = status_output(self.executor, ["firewall-cmd", "--list-ports"])
            if services is None and ports is None:
                return None
            firewall = self.app_settings.firewall
            service_names = dict(zip(firewall.tcp_ports, firewall.firewalld_services))
            return (
                service_names.get(port, "") in (services or "").split()
                or f"{port}/tcp" in (ports or "").split()
            )

        rule = ["INPUT", "-p", "tcp", "--dport", str(port), "-j", "ACCEPT"]
        return status_output(self.executor, ["iptables", "-C"] + rule) is not None

    def _report_listeners(self) -> None:
        output = status_output(self.executor, ["ss", "-ltn"])
        if output is None:
            self.log(
                f"{self.symbols['warning']} Could not list listening sockets ('ss -ltn').",
                "warning",
            )
            return
        ports = self.app_settings.firewall.tcp_ports
        listening = listening_ports(output, ports)
        for port in ports:
            if port in listening:
                self.log(f"{self.symbols['success']} Listening on port {port}.")
            else:
                self.log(
                    f"{self.symbols['warning']} Nothing listening on port {port}.",
                    "warning",
                )

    def _report_locations(self, state: ProvisioningState) -> None:
        if state.deployment is not None:
            self.log(f"{self.symbols['info']} Web root: {state.deployment.web_root}")
        if state.vhost is not None:
            self.log(f"{self.symbols['info']} Nginx config: {state.vhost.config_path}")
        if state.certificate is not None:
            self.log(f"{self.symbols['info']} Certificate: {state.certificate.fullchain_path}")
            self.log(f"{self.symbols['info']} Private key: {state.certificate.key_path}")
        if state.certificate_action is not None:
            self.log(
                f"{self.symbols['info']} Certificate action this run: "
                f"{state.certificate_action.value}"
            )
        if state.renewal_job is not None:
            self.log(
                f"{self.symbols['info']} Renewal job: {state.renewal_job.line} "
                f"(in {self.app_settings.crontab_path})"
            )

    def _report_checklist(self, state: ProvisioningState) -> None:
        domain = state.site.domain if state.site else "<domain>"
        log_dir = self.app_settings.nginx.log_dir
        self.log(f"{self.symbols['sparkles']} If the site is not reachable, check:")
        for item in (
            f"DNS A/AAAA records for {domain} and www.{domain} point to this host",
            "Cloud security groups and the local firewall allow 80/tcp and 443/tcp",
            f"Nginx logs: {log_dir}/{domain}.error.log and {log_dir}/error.log",
            f"Certificate validity: openssl x509 -noout -dates -in "
            f"{self.app_settings.acme.ssl_base_dir}/{domain}/fullchain.pem",
        ):
            self.log(f"   - {item}")
