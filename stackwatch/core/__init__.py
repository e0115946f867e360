"""Core infrastructure: settings, logging, exceptions."""

from .config import Settings, get_settings, settings
from .exceptions import (
    AppException,
    ConfigurationError,
    DecodeError,
    TransportError,
)
from .logging import get_logger, setup_logging, stack_name_var
