"""Tests for Volume/Duration measurements and the URR measurement settings."""

import struct
from datetime import timedelta

import pytest
from pydantic import ValidationError

from protocols.pfcp.ie import DurationMeasurement, VolumeMeasurement
from protocols.pfcp.report import (
    DurationMeasure,
    MeasureInformation,
    MeasureMethod,
    URRMeasurement,
    VolumeFlag,
    VolumeMeasure,
)


def test_set_flags_without_packet_counts_marks_volumes_only():
    volume = VolumeMeasure()
    volume.set_flags(False)
    assert volume.flags == VolumeFlag.TOVOL | VolumeFlag.ULVOL | VolumeFlag.DLVOL == 0x07


def test_set_flags_accumulates():
    volume = VolumeMeasure()
    volume.set_flags(False)
    volume.set_flags(True)
    assert volume.flags == 0x3F

    # Flags never clear
    volume.set_flags(False)
    assert volume.flags == 0x3F


def test_set_flags_is_idempotent():
    volume = VolumeMeasure()
    volume.set_flags(True)
    volume.set_flags(True)
    assert volume.flags == 0x3F


def test_volume_ie_carries_all_counters():
    volume = VolumeMeasure(total_volume=300, uplink_volume=100, downlink_volume=200,
                           total_packets=3, uplink_packets=1, downlink_packets=2)
    volume.set_flags(False)
    ie = volume.ie()
    assert ie.flags == 0x07
    assert ie.counters() == [300, 100, 200, 3, 1, 2]


@pytest.mark.codec
def test_volume_encoding_writes_flagged_counters():
    ie = VolumeMeasurement(flags=0x07, total_volume=100, uplink_volume=60, downlink_volume=40,
                           total_packets=10, uplink_packets=6, downlink_packets=4)
    expected_value = b'\x07' + struct.pack('>QQQ', 100, 60, 40)
    assert ie.encode() == b'\x00\x42\x00\x19' + expected_value


@pytest.mark.codec
def test_volume_encoding_with_packet_counts():
    ie = VolumeMeasurement(flags=0x3F, total_volume=100, uplink_volume=60, downlink_volume=40,
                           total_packets=10, uplink_packets=6, downlink_packets=4)
    encoded = ie.encode()
    assert encoded[:4] == b'\x00\x42\x00\x31'
    assert encoded[4:] == b'\x3f' + struct.pack('>6Q', 100, 60, 40, 10, 6, 4)


def test_duration_measure():
    duration = DurationMeasure(90_500_000_000)
    assert duration.duration == timedelta(seconds=90.5)
    assert duration.ie() == DurationMeasurement(90)


@pytest.mark.codec
def test_duration_encoding_in_seconds():
    assert DurationMeasure(90 * 1_000_000_000).ie().encode() == b'\x00\x43\x00\x04\x00\x00\x00\x5a'


def test_measure_method_octet():
    method = MeasureMethod.from_octet(0x03)
    assert method.durat and method.volum and not method.event
    assert method.to_octet() == 0x03
    assert MeasureMethod(event=True).to_octet() == 0x04


def test_measure_information_octet():
    info = MeasureInformation.from_octet(0x10)
    assert info.mnop
    assert not info.mbqe and not info.istm
    assert info.to_octet() == 0x10
    assert MeasureInformation(mbqe=True, ciam=True).to_octet() == 0x81


def test_urr_measurement_requires_method():
    with pytest.raises(ValidationError):
        URRMeasurement()

    measurement = URRMeasurement(method=MeasureMethod(durat=True))
    assert not measurement.method.volum
    assert not measurement.info.mnop
