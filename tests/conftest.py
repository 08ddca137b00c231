"""
Pytest Configuration and Shared Fixtures for the PFCP Reporting Test Suite

This module provides fixtures for:
- Usage reports with realistic counters and report periods
- URR measurement settings
- Session reports mixing downlink data and usage reports
"""

import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from protocols.pfcp.report import (
    DLDReport,
    DurationMeasure,
    MeasureInformation,
    MeasureMethod,
    SessReport,
    URRMeasurement,
    USAReport,
    UsageReportTrigger,
    UsageReportTriggerFlag,
    VolumeMeasure,
)


# =============================================================================
# Constants
# =============================================================================

TEST_SEID = 0x1122334455667788
REPORT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
REPORT_END = datetime(2024, 1, 1, 12, 1, 30, tzinfo=timezone.utc)


# =============================================================================
# Report Fixtures
# =============================================================================

@pytest.fixture
def make_usage_report():
    """
    Factory fixture for usage reports.

    Usage:
        def test_example(make_usage_report):
            report = make_usage_report(UsageReportTriggerFlag.VOLTH)
    """
    def create(*trigger_bits: int, urr_id: int = 1, ur_seqn: int = 7) -> USAReport:
        return USAReport(
            urr_id=urr_id,
            ur_seqn=ur_seqn,
            trigger=UsageReportTrigger.of(*trigger_bits),
            volume=VolumeMeasure(
                total_volume=150000,
                uplink_volume=50000,
                downlink_volume=100000,
                total_packets=120,
                uplink_packets=40,
                downlink_packets=80,
            ),
            duration=DurationMeasure(90 * 1_000_000_000),
            start_time=REPORT_START,
            end_time=REPORT_END,
        )
    return create


@pytest.fixture
def volume_threshold_report(make_usage_report) -> USAReport:
    return make_usage_report(UsageReportTriggerFlag.VOLTH)


@pytest.fixture
def volume_and_duration() -> MeasureMethod:
    return MeasureMethod(volum=True, durat=True)


@pytest.fixture
def no_packet_counts() -> MeasureInformation:
    return MeasureInformation()


@pytest.fixture
def session_report(make_usage_report) -> SessReport:
    """Session report with one downlink data report and two usage reports"""
    return SessReport(
        seid=TEST_SEID,
        reports=[
            DLDReport(pdr_id=2),
            make_usage_report(UsageReportTriggerFlag.PERIO, urr_id=1),
            make_usage_report(UsageReportTriggerFlag.START, urr_id=2),
        ],
    )


@pytest.fixture
def urr_config():
    """URR 1 counts packets, URR 2 only measures volume"""
    return {
        1: URRMeasurement(method=MeasureMethod(volum=True, durat=True),
                          info=MeasureInformation(mnop=True)),
        2: URRMeasurement(method=MeasureMethod(volum=True)),
    }


@pytest.fixture
def measure_all():
    """URRs 1 and 2 measure volume and duration, without packet counts"""
    return {
        urr_id: URRMeasurement(method=MeasureMethod(volum=True, durat=True))
        for urr_id in (1, 2)
    }


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "codec: Tests for IE and header wire encoding"
    )
    config.addinivalue_line(
        "markers", "report: Tests for report construction and Usage Report assembly"
    )
    config.addinivalue_line(
        "markers", "messages: Tests for session messages carrying reports"
    )
