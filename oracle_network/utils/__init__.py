"""Configuration and alert helpers."""
