"""Configuration resolution: raw options to build plans."""

from .configurations import CONFIGURATION_FLAGS, STATIC_RUNTIME_LINK_FLAGS, make_configuration
from .resolver import (
    ConfigurationError,
    ConfigurationResolver,
    UnwritablePrefix,
    check_prefix_writable,
    resolve_options,
)

__all__ = [
    "ConfigurationResolver",
    "ConfigurationError",
    "UnwritablePrefix",
    "check_prefix_writable",
    "resolve_options",
    "make_configuration",
    "CONFIGURATION_FLAGS",
    "STATIC_RUNTIME_LINK_FLAGS",
]
