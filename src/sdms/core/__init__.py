"""Core SDMS utilities.

This module exports configuration, logging and error types for use
throughout the package.
"""

from sdms.core.config import Settings, get_settings, load_settings
from sdms.core.exceptions import ConfigurationError, CredentialError, PublicError, to_public_error
from sdms.core.logging import (
    LoggingContext,
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "ConfigurationError",
    "CredentialError",
    "LoggingContext",
    "PublicError",
    "Settings",
    "bind_correlation_id",
    "clear_context",
    "configure_logging",
    "get_logger",
    "get_settings",
    "load_settings",
    "to_public_error",
]
