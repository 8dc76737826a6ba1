# provisioner/components/site_request/input_validator.py
# -*- coding: utf-8 -*-
"""
Collects the domain and contact email from the operator.

Each value gets a bounded number of attempts; exhausting them aborts the
run before anything on the host is changed.
"""

import re
from typing import Callable, Optional

from provisioner.base_stage import BaseStage
from provisioner.errors import InputValidationError
from provisioner.models import ProvisioningState, SiteRequest
from provisioner.prompts import InputSource
from provisioner.registry import StageRegistry

DOMAIN_PATTERN = re.compile(r"^[A-Za-z0-9.-]+$")
EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$"
)


def is_valid_domain(value: Optional[str]) -> bool:
    """Letters, digits, dots and hyphens only; must be non-empty."""
    return bool(value) and DOMAIN_PATTERN.fullmatch(value) is not None


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.fullmatch(value) is not None


def prompt_for_value(
    input_source: InputSource,
    label: str,
    validator: Callable[[Optional[str]], bool],
    max_attempts: int,
    on_invalid: Callable[[str], None],
) -> str:
    """
    Ask for ``label`` until ``validator`` accepts an answer.

    Raises:
        InputValidationError: After ``max_attempts`` invalid answers.
        InputUnavailableError: If the input source cannot be reached.
    """
    for attempt in range(1, max_attempts + 1):
        answer = input_source.read_line(
            f"Enter the {label} (attempt {attempt} of {max_attempts}): "
        )
        if answer is not None:
            answer = answer.strip()
        if validator(answer):
            return answer
        on_invalid(f"Invalid {label}: {answer!r}")

    raise InputValidationError(
        f"{max_attempts} invalid attempts for the {label}; aborting."
    )


@StageRegistry.register(
    name="site_request",
    metadata={
        "dependencies": ["host_profile"],
        "description": "Collect and validate the domain and contact email",
    },
)
class InputValidator(BaseStage):
    """Produces the SiteRequest for the run."""

    def run(self, state: ProvisioningState) -> ProvisioningState:
        max_attempts = self.app_settings.max_input_attempts

        def warn(message: str) -> None:
            self.log(f"{self.symbols['error']} {message}", "warning")

        domain = prompt_for_value(
            self.input_source,
            "domain to serve (letters, digits, '.' and '-' only)",
            is_valid_domain,
            max_attempts,
            warn,
        )
        self.log(f"{self.symbols['success']} Domain confirmed: {domain}")

        email = prompt_for_value(
            self.input_source,
            "contact email for the TLS certificate",
            is_valid_email,
            max_attempts,
            warn,
        )
        self.log(f"{self.symbols['success']} Email confirmed: {email}")

        return state.model_copy(
            update={"site": SiteRequest(domain=domain, email=email)}
        )
