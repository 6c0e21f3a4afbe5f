"""Core domain models, events, settings, logging configuration, and exceptions."""

from checkinbot.core.exceptions import (
    CheckinBotError,
    ConfigError,
    OrchestratorError,
    TransportError,
)
from checkinbot.core.logging_config import JsonFormatter, LogEventBridge, configure_logging
from checkinbot.core.models import (
    BotState,
    CheckinStatus,
    CredentialState,
    Outcome,
    StatusSnapshot,
)
from checkinbot.core.settings import Settings

__all__ = [
    # Logging
    "configure_logging",
    "JsonFormatter",
    "LogEventBridge",
    # Domain models
    "BotState",
    "CheckinStatus",
    "CredentialState",
    "Outcome",
    "StatusSnapshot",
    # Settings
    "Settings",
    # Exceptions
    "CheckinBotError",
    "ConfigError",
    "TransportError",
    "OrchestratorError",
]
