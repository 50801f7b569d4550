"""Validators for the node configuration."""

from .config_validator import ConfigValidator
