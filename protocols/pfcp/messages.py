"""
PFCP Session Messages carrying Reports (TS 29.244 Section 7.5)

- Session Report Request (Report Type, Downlink Data Reports, Usage Reports)
- Session Modification Response with Usage Reports
- Session Deletion Response with Usage Reports

Usage Reports are assembled by USAReport; this module only frames them.
"""

import logging
import struct
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Dict, List, Optional, Tuple

from opentelemetry import trace

from config import configure_logging, get_setting
from .ie import Cause, CauseValue, IEType, MalformedInputError, ReportTypeIE, iter_ies
from .report import (
    DLDReport,
    DurationMeasure,
    MeasureInformation,
    MeasureMethod,
    ReportContext,
    SessReport,
    URRMeasurement,
    USAReport,
    UsageReportTrigger,
    UsageReportTriggerFlag,
    VolumeMeasure,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class MessageType(IntEnum):
    """PFCP Session Message Types (TS 29.244 Section 7.3)"""
    SESSION_MODIFICATION_RESPONSE = 53
    SESSION_DELETION_RESPONSE = 55
    SESSION_REPORT_REQUEST = 56
    SESSION_REPORT_RESPONSE = 57


@dataclass
class PFCPHeader:
    """PFCP Message Header (TS 29.244 Section 7.2.2)"""
    version: int = field(default_factory=lambda: get_setting("version"))
    mp: int = 0           # Message Priority present
    s: int = 0            # SEID flag
    message_type: int = 0
    length: int = 0       # octets after the first 4
    seid: Optional[int] = None
    sequence_number: int = 0
    priority: int = 0

    def encode(self) -> bytes:
        """Encode PFCP header"""
        # First byte: Version (3 bits) + Spare (2 bits) + FO (1 bit) + MP (1 bit) + S (1 bit)
        first_byte = ((self.version & 0x07) << 5) | ((self.mp & 0x01) << 1) | (self.s & 0x01)
        # Sequence Number (3 octets) + Message Priority (4 bits) + Spare (4 bits)
        tail = ((self.sequence_number & 0xFFFFFF) << 8) | ((self.priority & 0x0F) << 4 if self.mp else 0)

        if self.s and self.seid is not None:
            # Header with SEID (16 bytes)
            return struct.pack('>BBHQI', first_byte, self.message_type, self.length, self.seid, tail)
        # Header without SEID (8 bytes)
        return struct.pack('>BBHI', first_byte, self.message_type, self.length, tail)

    @classmethod
    def decode(cls, data: bytes) -> Tuple['PFCPHeader', int]:
        """Decode PFCP header"""
        if len(data) < 8:
            raise MalformedInputError("Insufficient data for PFCP header")

        first_byte = data[0]
        version = (first_byte >> 5) & 0x07
        mp = (first_byte >> 1) & 0x01
        s = first_byte & 0x01

        message_type = data[1]
        length = struct.unpack('>H', data[2:4])[0]

        if s:
            if len(data) < 16:
                raise MalformedInputError("Insufficient data for PFCP header with SEID")
            seid = struct.unpack('>Q', data[4:12])[0]
            tail = struct.unpack('>I', data[12:16])[0]
            offset = 16
        else:
            seid = None
            tail = struct.unpack('>I', data[4:8])[0]
            offset = 8

        priority = (tail >> 4) & 0x0F if mp else 0
        return cls(version, mp, s, message_type, length, seid, tail >> 8, priority), offset


def encode_session_message(message_type: MessageType, seid: int,
                           sequence_number: int, ie_content: bytes) -> bytes:
    """Frame IEs as a session-related PFCP message (S=1)"""
    header = PFCPHeader(
        s=1,
        message_type=message_type,
        # SEID (8) + Sequence Number/Spare (4) follow the length field
        length=12 + len(ie_content),
        seid=seid,
        sequence_number=sequence_number,
    )
    return header.encode() + ie_content


def usage_report_ies(reports: List[USAReport], context: ReportContext,
                     urr_config: Dict[int, URRMeasurement]) -> List[object]:
    """Usage Report grouped IEs for the given message, one per report"""
    ies = []
    for report in reports:
        if report.urr_id not in urr_config:
            raise ValueError(f"No measurement settings for URR {report.urr_id}")
        measurement = urr_config[report.urr_id]
        ies.append(report.usage_report_ie(context, measurement.method, measurement.info))
    return ies


@dataclass
class SessionReportRequest:
    """Session Report Request Message (TS 29.244 Section 7.5.8.1)"""
    report: SessReport
    urr_config: Dict[int, URRMeasurement] = field(default_factory=dict)

    def ies(self) -> List[object]:
        """Report Type, then Downlink Data Reports, then Usage Reports"""
        if not self.report.reports:
            raise ValueError(f"Session report for SEID 0x{self.report.seid:016x} has no reports")

        report_type = 0
        for t in self.report.report_types:
            report_type |= t.mask

        dldrs = []
        usars = []
        for r in self.report.reports:
            if isinstance(r, DLDReport):
                dldrs.append(r.ie())
            elif isinstance(r, USAReport):
                usars.append(r)
            else:
                raise ValueError(f"Unsupported report type {r.report_type}")

        return [ReportTypeIE(report_type)] + dldrs + usage_report_ies(
            usars, ReportContext.SESSION_REPORT_REQUEST, self.urr_config)

    def encode(self, sequence_number: int) -> bytes:
        """Encode Session Report Request"""
        with tracer.start_as_current_span("pfcp_session_report_request") as span:
            span.set_attribute("pfcp.seid", f"{self.report.seid:016x}")
            span.set_attribute("pfcp.report_count", len(self.report.reports))

            ie_content = b''.join(ie.encode() for ie in self.ies())
            logger.debug(
                f"Session Report Request SEID 0x{self.report.seid:016x}: "
                f"{[str(t) for t in self.report.report_types]}, {len(ie_content)} IE bytes"
            )
            return encode_session_message(
                MessageType.SESSION_REPORT_REQUEST, self.report.seid, sequence_number, ie_content)


@dataclass
class SessionModificationResponse:
    """Session Modification Response Message (TS 29.244 Section 7.5.5.1)"""
    cause: CauseValue
    usage_reports: List[USAReport] = field(default_factory=list)
    urr_config: Dict[int, URRMeasurement] = field(default_factory=dict)

    def ies(self) -> List[object]:
        return [Cause(self.cause)] + usage_report_ies(
            self.usage_reports, ReportContext.SESSION_MODIFICATION_RESPONSE, self.urr_config)

    def encode(self, sequence_number: int, seid: int) -> bytes:
        """Encode Session Modification Response"""
        with tracer.start_as_current_span("pfcp_session_modification_response") as span:
            span.set_attribute("pfcp.seid", f"{seid:016x}")
            span.set_attribute("pfcp.report_count", len(self.usage_reports))

            ie_content = b''.join(ie.encode() for ie in self.ies())
            return encode_session_message(
                MessageType.SESSION_MODIFICATION_RESPONSE, seid, sequence_number, ie_content)


@dataclass
class SessionDeletionResponse:
    """Session Deletion Response Message (TS 29.244 Section 7.5.7.1)"""
    cause: CauseValue
    usage_reports: List[USAReport] = field(default_factory=list)
    urr_config: Dict[int, URRMeasurement] = field(default_factory=dict)

    def ies(self) -> List[object]:
        return [Cause(self.cause)] + usage_report_ies(
            self.usage_reports, ReportContext.SESSION_DELETION_RESPONSE, self.urr_config)

    def encode(self, sequence_number: int, seid: int) -> bytes:
        """Encode Session Deletion Response"""
        with tracer.start_as_current_span("pfcp_session_deletion_response") as span:
            span.set_attribute("pfcp.seid", f"{seid:016x}")
            span.set_attribute("pfcp.report_count", len(self.usage_reports))

            ie_content = b''.join(ie.encode() for ie in self.ies())
            return encode_session_message(
                MessageType.SESSION_DELETION_RESPONSE, seid, sequence_number, ie_content)


# =============================================================================
# Demo
# =============================================================================

def demo_session_report():
    """Demonstrate Session Report Request encoding"""
    print("=" * 60)
    print("PFCP Session Report Demo")
    print("=" * 60)

    end = datetime.now(timezone.utc)
    report = SessReport(seid=0x123456789ABCDEF0)
    report.add(DLDReport(pdr_id=2))
    report.add(USAReport(
        urr_id=1,
        ur_seqn=0,
        trigger=UsageReportTrigger.of(UsageReportTriggerFlag.VOLTH),
        volume=VolumeMeasure(total_volume=150000, uplink_volume=50000, downlink_volume=100000,
                             total_packets=120, uplink_packets=40, downlink_packets=80),
        duration=DurationMeasure(90 * 1_000_000_000),
        start_time=end - timedelta(seconds=90),
        end_time=end,
    ))

    msg = SessionReportRequest(report, {
        1: URRMeasurement(method=MeasureMethod(volum=True, durat=True),
                          info=MeasureInformation(mnop=True)),
    })
    data = msg.encode(sequence_number=1)

    print("\n=== Session Report Request ===")
    print(f"Encoded ({len(data)} bytes): {data.hex()}")
    header, offset = PFCPHeader.decode(data)
    print(f"  SEID: {header.seid:016x}")
    for ie in iter_ies(data[offset:]):
        print(f"    - {IEType(ie.ie_type).name} ({ie.length} bytes)")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    configure_logging("DEBUG")
    demo_session_report()
