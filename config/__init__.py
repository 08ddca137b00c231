# File location: config/__init__.py
# Configuration package for the PFCP reporting core

from .pfcp import PFCP_SETTINGS, get_setting, configure_logging

__all__ = ["PFCP_SETTINGS", "get_setting", "configure_logging"]
