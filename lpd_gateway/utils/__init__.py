"""
Utilities package for the LPD gateway.

Pure helpers without protocol state: option string parsing and
host-specific settings file selection.
"""

from .job_options import format_options, parse_options

from .host_config import (
    get_hostname,
    get_hostname_settings_file,
    list_all_settings_files,
)

__all__ = [
    # Job options
    "parse_options",
    "format_options",
    # Host configuration
    "get_hostname",
    "get_hostname_settings_file",
    "list_all_settings_files",
]
