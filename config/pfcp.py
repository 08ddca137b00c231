# File location: config/pfcp.py
# PFCP reporting settings
# Centralized so the codec, the report builder and the demos agree

import logging
import os

PFCP_SETTINGS = {
    # PFCP protocol version in the message header
    "version": 1,

    # NTP epoch (1900) to Unix epoch (1970) in seconds
    "ntp_epoch_offset": 2208988800,

    # Logging
    "log_level": os.environ.get("PFCP_LOG_LEVEL", "INFO"),
    "log_format": "%(asctime)s %(name)s %(levelname)s %(message)s",
}


def get_setting(name: str):
    """Get a PFCP setting by name."""
    if name not in PFCP_SETTINGS:
        raise KeyError(f"Unknown PFCP setting: {name}")
    return PFCP_SETTINGS[name]


def configure_logging(level: str = None) -> None:
    """Apply the configured log level and format to the root logger."""
    logging.basicConfig(
        level=(level or get_setting("log_level")).upper(),
        format=get_setting("log_format"),
    )
