# provisioner/base_stage.py
# -*- coding: utf-8 -*-
"""
Base class for all pipeline stages.

A stage receives the immutable ProvisioningState produced so far and
returns an updated copy. Fatal conditions are raised as ProvisioningError
subclasses; the orchestrator decides whether a stage's failure halts the run
based on the ``fatal`` flag in its registry metadata.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from common.command_utils import CommandExecutor, log_provisioner
from provisioner.config_models import AppSettings
from provisioner.errors import ExternalToolError
from provisioner.models import ProvisioningState
from provisioner.prompts import InputSource


class BaseStage(ABC):
    """
    Base class for pipeline stages.

    Subclasses implement ``run``; helpers wrap the command executor so that
    fatal and best-effort invocations read the same everywhere.
    """

    # Overridden by the registry decorator
    metadata: Dict[str, Any] = {
        "dependencies": [],
        "description": "",
        "fatal": True,
    }

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
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def symbols(self) -> Dict[str, str]:
        return self.app_settings.symbols

    @abstractmethod
    def run(self, state: ProvisioningState) -> ProvisioningState:
        """
        Execute the stage.

        Returns:
            The state with this stage's results added.
        """

    def log(self, message: str, level: str = "info") -> None:
        log_provisioner(message, level, self.logger, self.app_settings)

    def run_fatal(
        self,
        command: List[str],
        failure_message: str,
        capture_output: bool = False,
        cwd: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """Run a command whose failure aborts the whole provisioning run."""
        try:
            return self.executor.run(
                command, capture_output=capture_output, cwd=cwd
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.log(f"{self.symbols['error']} {failure_message}", "error")
            raise ExternalToolError(f"{failure_message} ({e})") from e

    def run_best_effort(
        self, command: List[str], capture_output: bool = False
    ) -> Optional[subprocess.CompletedProcess]:
        """Run a command whose failure is only reported as a warning."""
        try:
            result = self.executor.run(
                command, check=False, capture_output=capture_output
            )
        except FileNotFoundError as e:
            self.log(
                f"{self.symbols['warning']} Command not available: {e.filename}",
                "warning",
            )
            return None
        if result.returncode != 0:
            self.log(
                f"{self.symbols['warning']} '{' '.join(command)}' exited with "
                f"{result.returncode}; continuing.",
                "warning",
            )
        return result

    def get_description(self) -> str:
        return str(self.metadata.get("description", ""))

    def is_fatal(self) -> bool:
        return bool(self.metadata.get("fatal", True))
