"""Adapters for files supplied by the user and the host build system."""

from .config_file_adapter import ConfigFileAdapter, create_config_file_adapter
from .host_context import load_host_context, load_properties_file


__all__ = [
    "ConfigFileAdapter",
    "create_config_file_adapter",
    "load_host_context",
    "load_properties_file",
]
