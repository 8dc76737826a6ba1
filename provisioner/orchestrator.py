# provisioner/orchestrator.py
# -*- coding: utf-8 -*-
"""
Runs the provisioning stages in dependency order.
"""

import importlib
import logging
import os
from typing import List, Optional

from common.command_utils import CommandExecutor, log_provisioner
from provisioner.config_models import AppSettings
from provisioner.errors import ProvisioningError
from provisioner.models import ProvisioningState
from provisioner.prompts import InputSource
from provisioner.registry import StageRegistry

module_logger = logging.getLogger(__name__)

FINAL_STAGE = "diagnostics"


def load_all_stages(logger: Optional[logging.Logger] = None) -> None:
    """Import every module under provisioner.components so stages register."""
    logger_to_use = logger or module_logger
    import provisioner.components

    components_dir = provisioner.components.__path__[0]
    for package_name in sorted(os.listdir(components_dir)):
        package_path = os.path.join(components_dir, package_name)
        if not os.path.isdir(package_path) or package_name.startswith("__"):
            continue
        for filename in sorted(os.listdir(package_path)):
            if not filename.endswith(".py") or filename.startswith("__"):
                continue
            module_name = (
                f"provisioner.components.{package_name}.{filename[:-3]}"
            )
            logger_to_use.debug(f"Loading stage module {module_name}")
            importlib.import_module(module_name)


class ProvisioningOrchestrator:
    """
    Executes the registered stages sequentially, threading the immutable
    ProvisioningState through them.

    The first ProvisioningError from a fatal stage stops the run; failures
    of non-fatal stages are logged as warnings and the run continues.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        executor: CommandExecutor,
        input_source: InputSource,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.executor = executor
        self.input_source = input_source
        self.logger = logger or module_logger
        self.state = ProvisioningState()

    def plan(self, targets: Optional[List[str]] = None) -> List[str]:
        return StageRegistry.resolve_dependencies(targets or [FINAL_STAGE])

    def run(self, targets: Optional[List[str]] = None) -> int:
        """
        Run every stage needed to reach ``targets``.

        Returns:
            0 if every fatal stage succeeded, otherwise 1.
        """
        symbols = self.app_settings.symbols
        try:
            order = self.plan(targets)
        except (KeyError, ValueError) as e:
            log_provisioner(
                f"{symbols['critical']} Could not plan the stage order: {e}",
                "critical",
                self.logger,
                self.app_settings,
            )
            return 1

        self.logger.debug(f"Stage order: {', '.join(order)}")
        state = self.state
        for index, name in enumerate(order, 1):
            stage_class = StageRegistry.get_stage(name)
            stage = stage_class(
                self.app_settings,
                self.executor,
                self.input_source,
                self.logger.getChild(name),
            )
            self.logger.info(
                f"--- Stage {index}/{len(order)}: {stage.get_description() or name} ---"
            )
            try:
                state = stage.run(state)
            except ProvisioningError as e:
                if stage.is_fatal():
                    log_provisioner(
                        f"{symbols['error']} {e}",
                        "error",
                        self.logger,
                        self.app_settings,
                    )
                    log_provisioner(
                        f"{symbols['critical']} Stage '{name}' failed; aborting. "
                        "Fix the problem above and re-run; completed steps are skipped or repeated safely.",
                        "critical",
                        self.logger,
                        self.app_settings,
                    )
                    self.state = state
                    return 1
                log_provisioner(
                    f"{symbols['warning']} Stage '{name}' reported a problem: {e}. Continuing.",
                    "warning",
                    self.logger,
                    self.app_settings,
                )
            except Exception as e:
                if stage.is_fatal():
                    log_provisioner(
                        f"{symbols['critical']} Stage '{name}' failed unexpectedly: {e}",
                        "critical",
                        self.logger,
                        self.app_settings,
                        exc_info=True,
                    )
                    self.state = state
                    return 1
                log_provisioner(
                    f"{symbols['warning']} Non-fatal stage '{name}' failed: {e}. Continuing.",
                    "warning",
                    self.logger,
                    self.app_settings,
                    exc_info=True,
                )

        self.state = state
        domain = state.site.domain if state.site else ""
        log_provisioner(
            f"{symbols['rocket']} Provisioning finished. https://{domain}/ should now be live.",
            "info",
            self.logger,
            self.app_settings,
        )
        return 0
