"""
PFCP Information Elements for N4 Reporting (TS 29.244)

This module holds the Information Elements a UPF needs to report usage and
downlink data to the SMF:

- URR ID, UR-SEQN
- Usage Report Trigger and Reporting Triggers
- Start Time / End Time
- Volume Measurement and Duration Measurement
- Report Type, PDR ID
- Grouped Usage Report (SRR/SMR/SDR) and Downlink Data Report

Every IE is a dataclass with encode() returning the TLV bytes
(Type: 2 octets, Length: 2 octets, Value) in network byte order.

Reference: 3GPP TS 29.244 V17.7.0 (2023-03)
"""

import struct
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Iterator, List, Optional, Tuple

from config import get_setting


class MalformedInputError(ValueError):
    """Raised when wire data is too short or otherwise cannot be decoded."""


class IEType(IntEnum):
    """Information Element Types used in reporting (TS 29.244 Section 8.1)"""
    CAUSE = 19
    REPORTING_TRIGGERS = 37
    REPORT_TYPE = 39
    PDR_ID = 56
    MEASUREMENT_METHOD = 62
    USAGE_REPORT_TRIGGER = 63
    VOLUME_MEASUREMENT = 66
    DURATION_MEASUREMENT = 67
    START_TIME = 75
    END_TIME = 76
    USAGE_REPORT_SMR = 78
    USAGE_REPORT_SDR = 79
    USAGE_REPORT_SRR = 80
    URR_ID = 81
    DOWNLINK_DATA_REPORT = 83
    MEASUREMENT_INFORMATION = 100
    UR_SEQN = 104


class CauseValue(IntEnum):
    """Cause Values (TS 29.244 Section 8.2.1)"""
    REQUEST_ACCEPTED = 1
    REQUEST_REJECTED = 64
    SESSION_CONTEXT_NOT_FOUND = 65
    MANDATORY_IE_MISSING = 66
    CONDITIONAL_IE_MISSING = 67
    INVALID_LENGTH = 68
    MANDATORY_IE_INCORRECT = 69
    NO_ESTABLISHED_PFCP_ASSOCIATION = 72
    RULE_CREATION_MODIFICATION_FAILURE = 73
    PFCP_ENTITY_IN_CONGESTION = 74
    NO_RESOURCES_AVAILABLE = 75
    SERVICE_NOT_SUPPORTED = 76
    SYSTEM_FAILURE = 77


def ntp_timestamp(value: Optional[datetime]) -> int:
    """Convert a datetime to a 32-bit NTP timestamp (seconds since 1900).

    None maps to 0, the unset time. The datetime must be timezone-aware;
    a naive one raises ValueError.
    """
    if value is None:
        return 0
    if value.tzinfo is None:
        raise ValueError(f"Report time {value.isoformat()} has no timezone")
    return (int(value.timestamp()) + get_setting("ntp_epoch_offset")) & 0xFFFFFFFF


# =============================================================================
# Generic IE
# =============================================================================

@dataclass
class InformationElement:
    """Base class for PFCP Information Elements"""
    ie_type: int
    length: int
    value: bytes

    def encode(self) -> bytes:
        """Encode IE to bytes"""
        return struct.pack('>HH', self.ie_type, self.length) + self.value

    @classmethod
    def decode(cls, data: bytes) -> Tuple['InformationElement', int]:
        """Decode IE from bytes"""
        if len(data) < 4:
            raise MalformedInputError("Insufficient data for IE header")
        ie_type, length = struct.unpack('>HH', data[:4])
        if len(data) < 4 + length:
            raise MalformedInputError(f"IE {ie_type} truncated: want {length} octets, have {len(data) - 4}")
        value = data[4:4+length]
        return cls(ie_type, length, value), 4 + length


def iter_ies(data: bytes) -> Iterator[InformationElement]:
    """Walk a run of concatenated IEs"""
    offset = 0
    while offset < len(data):
        ie, consumed = InformationElement.decode(data[offset:])
        offset += consumed
        yield ie


# =============================================================================
# Identifier IEs
# =============================================================================

@dataclass
class URRId:
    """URR ID IE (TS 29.244 Section 8.2.54)"""
    urr_id: int  # 4 bytes

    def encode(self) -> bytes:
        value = struct.pack('>I', self.urr_id)
        return struct.pack('>HH', IEType.URR_ID, 4) + value


@dataclass
class URSEQN:
    """UR-SEQN IE (TS 29.244 Section 8.2.77)"""
    sequence: int  # 4 bytes

    def encode(self) -> bytes:
        value = struct.pack('>I', self.sequence)
        return struct.pack('>HH', IEType.UR_SEQN, 4) + value


@dataclass
class PDRId:
    """PDR ID IE (TS 29.244 Section 8.2.36)"""
    rule_id: int  # 2 bytes

    def encode(self) -> bytes:
        value = struct.pack('>H', self.rule_id)
        return struct.pack('>HH', IEType.PDR_ID, 2) + value


@dataclass
class Cause:
    """Cause IE (TS 29.244 Section 8.2.1)"""
    cause: CauseValue

    def encode(self) -> bytes:
        value = bytes([self.cause])
        return struct.pack('>HH', IEType.CAUSE, 1) + value


# =============================================================================
# Trigger IEs
# =============================================================================

@dataclass
class ReportingTriggersIE:
    """Reporting Triggers IE (TS 29.244 Section 8.2.19)"""
    octets: bytes  # 2 or 3 octets, least significant first

    def encode(self) -> bytes:
        return struct.pack('>HH', IEType.REPORTING_TRIGGERS, len(self.octets)) + self.octets


@dataclass
class UsageReportTriggerIE:
    """Usage Report Trigger IE (TS 29.244 Section 8.2.41)"""
    octets: bytes  # 2 or 3 octets, least significant first

    def encode(self) -> bytes:
        return struct.pack('>HH', IEType.USAGE_REPORT_TRIGGER, len(self.octets)) + self.octets


# =============================================================================
# Time IEs
# =============================================================================

@dataclass
class StartTime:
    """Start Time IE (TS 29.244 Section 8.2.52)"""
    timestamp: Optional[datetime]

    def encode(self) -> bytes:
        value = struct.pack('>I', ntp_timestamp(self.timestamp))
        return struct.pack('>HH', IEType.START_TIME, 4) + value


@dataclass
class EndTime:
    """End Time IE (TS 29.244 Section 8.2.53)"""
    timestamp: Optional[datetime]

    def encode(self) -> bytes:
        value = struct.pack('>I', ntp_timestamp(self.timestamp))
        return struct.pack('>HH', IEType.END_TIME, 4) + value


# =============================================================================
# Measurement IEs
# =============================================================================

@dataclass
class VolumeMeasurement:
    """
    Volume Measurement IE (TS 29.244 Section 8.2.44)

    All six counters travel with the IE; only those whose flag bit is set
    are written to the wire, in the order of the flag bits.
    """
    flags: int
    total_volume: int = 0
    uplink_volume: int = 0
    downlink_volume: int = 0
    total_packets: int = 0
    uplink_packets: int = 0
    downlink_packets: int = 0

    def counters(self) -> List[int]:
        return [
            self.total_volume,
            self.uplink_volume,
            self.downlink_volume,
            self.total_packets,
            self.uplink_packets,
            self.downlink_packets,
        ]

    def encode(self) -> bytes:
        value = bytes([self.flags & 0xFF])
        for bit, counter in enumerate(self.counters()):
            if self.flags & (1 << bit):
                value += struct.pack('>Q', counter)
        return struct.pack('>HH', IEType.VOLUME_MEASUREMENT, len(value)) + value


@dataclass
class DurationMeasurement:
    """Duration Measurement IE (TS 29.244 Section 8.2.45)"""
    seconds: int  # 4 bytes

    def encode(self) -> bytes:
        value = struct.pack('>I', self.seconds & 0xFFFFFFFF)
        return struct.pack('>HH', IEType.DURATION_MEASUREMENT, 4) + value


@dataclass
class ReportTypeIE:
    """Report Type IE (TS 29.244 Section 8.2.21)"""
    flags: int  # DLDR=0x01, USAR=0x02, ERIR=0x04, UPIR=0x08, ...

    def encode(self) -> bytes:
        value = bytes([self.flags & 0xFF])
        return struct.pack('>HH', IEType.REPORT_TYPE, 1) + value


# =============================================================================
# Grouped IEs
# =============================================================================

@dataclass
class UsageReportIE:
    """
    Usage Report grouped IE

    The same grouped IE is carried under three IE types depending on the
    message: Session Report Request (80, Table 7.5.8.3-1), Session
    Modification Response (78, Table 7.5.5.2-1) and Session Deletion
    Response (79, Table 7.5.7.2-1).
    """
    ie_type: int
    ies: List[object] = field(default_factory=list)

    def encode(self) -> bytes:
        """Encode Usage Report grouped IE"""
        content = b''.join(ie.encode() for ie in self.ies)
        return struct.pack('>HH', self.ie_type, len(content)) + content


@dataclass
class DownlinkDataReport:
    """Downlink Data Report grouped IE (TS 29.244 Table 7.5.8.2-1)"""
    pdr_id: int

    def encode(self) -> bytes:
        """Encode Downlink Data Report grouped IE"""
        content = PDRId(self.pdr_id).encode()
        return struct.pack('>HH', IEType.DOWNLINK_DATA_REPORT, len(content)) + content
