# provisioner/components/nginx/vhost_configurator.py
# -*- coding: utf-8 -*-
"""
Generates and activates the final virtual host for the domain.

The file is regenerated on every run: port 80 keeps serving the ACME
challenge path and redirects everything else, port 443 serves the deployed
web root with the installed certificate.
"""

from provisioner.base_stage import BaseStage
from provisioner.components.nginx.nginx_site import NginxSite
from provisioner.models import (
    CertificateState,
    ProvisioningState,
    SiteDeployment,
    SiteRequest,
    VirtualHostConfig,
)
from provisioner.registry import StageRegistry


@StageRegistry.register(
    name="vhost",
    metadata={
        "dependencies": ["certificate"],
        "description": "Write the HTTP->HTTPS virtual host and reload Nginx",
    },
)
class VirtualHostConfigurator(BaseStage):

    def run(self, state: ProvisioningState) -> ProvisioningState:
        site: SiteRequest = state.require("site")
        deployment: SiteDeployment = state.require("deployment")
        certificate: CertificateState = state.require("certificate")

        self.log(
            f"{self.symbols['step']} Writing the HTTPS virtual host for "
            f"{', '.join(site.server_names)}..."
        )
        nginx_site = NginxSite(
            self.app_settings, self.executor, site.domain, self.logger
        )
        content = nginx_site.render(
            self.app_settings.nginx.site_template,
            deployment.web_root,
            fullchain_path=str(certificate.fullchain_path),
            key_path=str(certificate.key_path),
        )
        nginx_site.write(content)
        nginx_site.test_and_reload()

        vhost = VirtualHostConfig(
            config_path=nginx_site.config_path,
            enabled_path=nginx_site.enabled_path,
            fullchain_path=certificate.fullchain_path,
            key_path=certificate.key_path,
        )
        self.log(f"{self.symbols['success']} Nginx is serving {site.domain} over HTTPS.")
        return state.model_copy(update={"vhost": vhost})
