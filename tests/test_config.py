"""Tests for the PFCP settings module."""

import pytest

from config import PFCP_SETTINGS, get_setting


def test_defaults():
    assert get_setting("version") == 1
    assert get_setting("ntp_epoch_offset") == 2208988800


def test_unknown_setting():
    with pytest.raises(KeyError):
        get_setting("no_such_setting")


def test_trigger_width_is_not_a_setting():
    assert "trigger_octets" not in PFCP_SETTINGS
    assert "port" not in PFCP_SETTINGS


def test_header_version_follows_setting(monkeypatch):
    from protocols.pfcp.messages import PFCPHeader

    monkeypatch.setitem(PFCP_SETTINGS, "version", 2)
    assert PFCPHeader().encode()[0] >> 5 == 2
