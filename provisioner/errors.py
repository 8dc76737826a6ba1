# provisioner/errors.py
# -*- coding: utf-8 -*-
"""
Exception hierarchy for provisioning failures.

Every fatal condition is raised as a ProvisioningError subclass; the
orchestrator stops at the first one and exits with status 1.
"""


class ProvisioningError(Exception):
    """Base class for all provisioning errors."""
    pass


# -----------------------------
# Operator input
# -----------------------------

class InputValidationError(ProvisioningError):
    """All attempts at an interactive value were invalid."""
    pass


class InputUnavailableError(InputValidationError):
    """No controlling terminal to read from."""
    pass


# -----------------------------
# Host environment
# -----------------------------

class EnvironmentCheckError(ProvisioningError):
    """Unsupported OS, missing release file, or insufficient privileges."""
    pass


# -----------------------------
# External tools
# -----------------------------

class ExternalToolError(ProvisioningError):
    """A package manager, download, extraction, nginx or acme.sh step failed."""
    pass


class ChallengeCheckError(ExternalToolError):
    """The HTTP-01 challenge path is not servable."""
    pass
