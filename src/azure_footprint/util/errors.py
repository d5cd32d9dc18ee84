from __future__ import annotations

from enum import IntEnum

from azure.core.exceptions import AzureError


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    AUTH_ERROR = 3
    AZURE_ERROR = 4
    RUNTIME_ERROR = 5


class FootprintError(Exception):
    """Base error for the Azure footprint pipeline."""


class ConfigError(FootprintError):
    """Raised for configuration or argument issues."""


class AuthResolutionError(FootprintError):
    """Raised when authentication cannot be resolved."""


class AzureClientError(FootprintError):
    """Raised when Azure SDK operations fail in a non-retriable way."""


class AccountInitializationError(FootprintError):
    """Raised when the Azure account facade cannot be initialized."""


class AccountNotInitializedError(FootprintError):
    """Raised when the account facade is used before initialize_account()."""


class ExportError(FootprintError):
    """Raised when exporting results fails."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, (AuthResolutionError, AccountInitializationError)):
        return int(ExitCode.AUTH_ERROR)
    if isinstance(exc, AzureClientError):
        return int(ExitCode.AZURE_ERROR)
    if isinstance(exc, FootprintError):
        return int(ExitCode.RUNTIME_ERROR)
    return 1


def is_azure_error(exc: BaseException) -> bool:
    """
    Return True if the exception looks like an Azure SDK error.
    """
    if isinstance(exc, AzureError):
        return True
    return exc.__class__.__module__.startswith("azure.")


def map_azure_error(exc: BaseException, context: str) -> AzureClientError | None:
    """
    Wrap Azure SDK errors with AzureClientError for consistent exit codes.
    """
    if not is_azure_error(exc):
        return None
    message = getattr(exc, "message", None) or str(exc)
    return AzureClientError(f"{context}: {message}")
