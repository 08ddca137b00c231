"""
PFCP Reports (TS 29.244 Section 7.5.8)

Builds what a UPF tells the SMF about a session:

- Report Type taxonomy and the report variants (DLDR, USAR)
- Reporting Triggers and Usage Report Trigger flag registers
- Volume and Duration measurements
- The Usage Report IE assembly shared by the Session Report Request,
  Session Modification Response and Session Deletion Response

Report values are built fresh for each report cycle and owned by the caller.
USAReport.ies() finalizes the volume flags of the report it is called on, so
a report shared between tasks must be copied first.
"""

import logging
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import IntEnum
from typing import List, Optional

from pydantic import BaseModel, Field

from .ie import (
    MalformedInputError,
    URRId,
    URSEQN,
    ReportingTriggersIE,
    UsageReportTriggerIE,
    StartTime,
    EndTime,
    VolumeMeasurement,
    DurationMeasurement,
    UsageReportIE,
    DownlinkDataReport,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Report Type (TS 29.244 Section 8.2.21)
# =============================================================================

class ReportType(IntEnum):
    """Report kinds carried in a Session Report Request"""
    DLDR = 1  # Downlink Data Report
    USAR = 2  # Usage Report
    ERIR = 3  # Error Indication Report
    UPIR = 4  # User Plane Inactivity Report
    TMIR = 5  # TSC Management Information Report
    SESR = 6  # Session Report
    UISR = 7  # UP Initiated Session Request

    def __str__(self) -> str:
        return self.name

    @property
    def mask(self) -> int:
        """Bit of this type in the Report Type IE octet"""
        return 1 << (self - 1)


class ReportContext(IntEnum):
    """Messages that carry a Usage Report, valued by their grouped IE type"""
    SESSION_REPORT_REQUEST = 80         # Usage Report (SRR)
    SESSION_MODIFICATION_RESPONSE = 78  # Usage Report (SMR)
    SESSION_DELETION_RESPONSE = 79      # Usage Report (SDR)


class ApplyAction(IntEnum):
    """Apply Action Flags (TS 29.244 Section 8.2.26)"""
    DROP = 0x0001
    FORW = 0x0002  # Forward
    BUFF = 0x0004  # Buffer
    NOCP = 0x0008  # Notify CP function
    DUPL = 0x0010  # Duplicate
    IPMA = 0x0020  # IP Multicast Accept
    IPMD = 0x0040  # IP Multicast Deny
    DFRT = 0x0080  # Duplicate for Redundant Transmission
    EDRT = 0x0100  # Eliminate Duplicate Packets for Redundant Transmission
    BDPN = 0x0200  # Buffered Downlink Packet Notification
    DDPN = 0x0400  # Discarded Downlink Packet Notification
    FSSM = 0x0800  # Forward packets to lower layer SSM
    MBSU = 0x1000  # Forward and replicate MBS data using Unicast


# =============================================================================
# Trigger Registers
# =============================================================================

class ReportingTriggerFlag(IntEnum):
    """Reporting Triggers IE bits (TS 29.244 Section 8.2.19)"""
    PERIO = 1 << 0   # Periodic Reporting
    VOLTH = 1 << 1   # Volume Threshold
    TIMTH = 1 << 2   # Time Threshold
    QUHTI = 1 << 3   # Quota Holding Time
    START = 1 << 4   # Start of Traffic
    STOPT = 1 << 5   # Stop of Traffic
    DROTH = 1 << 6   # Dropped DL Traffic Threshold
    LIUSA = 1 << 7   # Linked Usage Reporting
    VOLQU = 1 << 8   # Volume Quota
    TIMQU = 1 << 9   # Time Quota
    ENVCL = 1 << 10  # Envelope Closure
    MACAR = 1 << 11  # MAC Addresses Reporting
    EVETH = 1 << 12  # Event Threshold
    EVEQU = 1 << 13  # Event Quota
    IPMJL = 1 << 14  # IP Multicast Join/Leave
    QUVTI = 1 << 15  # Quota Validity Time
    REEMR = 1 << 16  # Report the End Marker Reception
    UPINT = 1 << 17  # User Plane Inactivity Timer


class UsageReportTriggerFlag(IntEnum):
    """Usage Report Trigger IE bits (TS 29.244 Section 8.2.41)"""
    PERIO = 1 << 0   # Periodic Reporting
    VOLTH = 1 << 1   # Volume Threshold
    TIMTH = 1 << 2   # Time Threshold
    QUHTI = 1 << 3   # Quota Holding Time
    START = 1 << 4   # Start of Traffic
    STOPT = 1 << 5   # Stop of Traffic
    DROTH = 1 << 6   # Dropped DL Traffic Threshold
    IMMER = 1 << 7   # Immediate Report
    VOLQU = 1 << 8   # Volume Quota
    TIMQU = 1 << 9   # Time Quota
    LIUSA = 1 << 10  # Linked Usage Reporting
    TERMR = 1 << 11  # Termination Report
    MONIT = 1 << 12  # Monitoring Time
    ENVCL = 1 << 13  # Envelope Closure
    MACAR = 1 << 14  # MAC Addresses Reporting
    EVETH = 1 << 15  # Event Threshold
    EVEQU = 1 << 16  # Event Quota
    TEBUR = 1 << 17  # Termination By UP function Report
    IPMJL = 1 << 18  # IP Multicast Join/Leave
    QUVTI = 1 << 19  # Quota Validity Time
    EMRRE = 1 << 20  # End Marker Reception Report
    UPINT = 1 << 21  # User Plane Inactivity Timer


# Reporting Triggers / Usage Report Trigger IE width on the wire
TRIGGER_OCTETS = 3


def _flag(bit: int) -> property:
    def getter(self) -> bool:
        return self._flags & bit != 0
    return property(getter)


class TriggerRegister:
    """
    Trigger flags held as an integer.

    On the wire the register is 2 or 3 octets, least significant first.
    Encoding always writes 3 octets; decoding accepts 2 or more.
    """

    def __init__(self, flags: int = 0):
        self._flags = int(flags)

    @classmethod
    def of(cls, *bits: int) -> 'TriggerRegister':
        """Build a register with the given flag bits set"""
        flags = 0
        for bit in bits:
            flags |= bit
        return cls(flags)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'TriggerRegister':
        register = cls()
        register.unmarshal(data)
        return register

    @property
    def flags(self) -> int:
        return self._flags

    def unmarshal(self, data: bytes) -> None:
        """Set flags from wire octets"""
        if len(data) < 2:
            raise MalformedInputError(f"{type(self).__name__} unmarshal: less than 2 bytes")
        # 2 or 3 octets on the wire; pad to 4 for the unpack
        self._flags = struct.unpack('<I', (bytes(data) + b'\x00\x00')[:4])[0]

    def to_bytes(self) -> bytes:
        """Pack into the wire octets, least significant first"""
        return struct.pack('<I', self._flags & 0xFFFFFFFF)[:TRIGGER_OCTETS]

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._flags == other._flags

    def __repr__(self) -> str:
        return f"{type(self).__name__}(0x{self._flags:06x})"


class ReportingTrigger(TriggerRegister):
    """Reporting Triggers of a URR (TS 29.244 Section 8.2.19)"""

    perio = _flag(ReportingTriggerFlag.PERIO)
    volth = _flag(ReportingTriggerFlag.VOLTH)
    timth = _flag(ReportingTriggerFlag.TIMTH)
    quhti = _flag(ReportingTriggerFlag.QUHTI)
    start = _flag(ReportingTriggerFlag.START)
    stopt = _flag(ReportingTriggerFlag.STOPT)
    droth = _flag(ReportingTriggerFlag.DROTH)
    liusa = _flag(ReportingTriggerFlag.LIUSA)
    volqu = _flag(ReportingTriggerFlag.VOLQU)
    timqu = _flag(ReportingTriggerFlag.TIMQU)
    envcl = _flag(ReportingTriggerFlag.ENVCL)
    macar = _flag(ReportingTriggerFlag.MACAR)
    eveth = _flag(ReportingTriggerFlag.EVETH)
    evequ = _flag(ReportingTriggerFlag.EVEQU)
    ipmjl = _flag(ReportingTriggerFlag.IPMJL)
    quvti = _flag(ReportingTriggerFlag.QUVTI)
    reemr = _flag(ReportingTriggerFlag.REEMR)
    upint = _flag(ReportingTriggerFlag.UPINT)

    def ie(self) -> ReportingTriggersIE:
        return ReportingTriggersIE(self.to_bytes())


class UsageReportTrigger(TriggerRegister):
    """Why a Usage Report is being sent (TS 29.244 Section 8.2.41)"""

    perio = _flag(UsageReportTriggerFlag.PERIO)
    volth = _flag(UsageReportTriggerFlag.VOLTH)
    timth = _flag(UsageReportTriggerFlag.TIMTH)
    quhti = _flag(UsageReportTriggerFlag.QUHTI)
    start = _flag(UsageReportTriggerFlag.START)
    stopt = _flag(UsageReportTriggerFlag.STOPT)
    droth = _flag(UsageReportTriggerFlag.DROTH)
    immer = _flag(UsageReportTriggerFlag.IMMER)
    volqu = _flag(UsageReportTriggerFlag.VOLQU)
    timqu = _flag(UsageReportTriggerFlag.TIMQU)
    liusa = _flag(UsageReportTriggerFlag.LIUSA)
    termr = _flag(UsageReportTriggerFlag.TERMR)
    monit = _flag(UsageReportTriggerFlag.MONIT)
    envcl = _flag(UsageReportTriggerFlag.ENVCL)
    macar = _flag(UsageReportTriggerFlag.MACAR)
    eveth = _flag(UsageReportTriggerFlag.EVETH)
    evequ = _flag(UsageReportTriggerFlag.EVEQU)
    tebur = _flag(UsageReportTriggerFlag.TEBUR)
    ipmjl = _flag(UsageReportTriggerFlag.IPMJL)
    quvti = _flag(UsageReportTriggerFlag.QUVTI)
    emrre = _flag(UsageReportTriggerFlag.EMRRE)
    upint = _flag(UsageReportTriggerFlag.UPINT)

    def ie(self) -> UsageReportTriggerIE:
        return UsageReportTriggerIE(self.to_bytes())


# =============================================================================
# Measurements
# =============================================================================

class VolumeFlag(IntEnum):
    """Volume Measurement IE flag bits (TS 29.244 Section 8.2.44)"""
    TOVOL = 0x01  # Total Volume
    ULVOL = 0x02  # Uplink Volume
    DLVOL = 0x04  # Downlink Volume
    TONOP = 0x08  # Total Number of Packets
    ULNOP = 0x10  # Uplink Number of Packets
    DLNOP = 0x20  # Downlink Number of Packets


VOLUME_FLAGS = VolumeFlag.TOVOL | VolumeFlag.ULVOL | VolumeFlag.DLVOL
PACKET_COUNT_FLAGS = VolumeFlag.TONOP | VolumeFlag.ULNOP | VolumeFlag.DLNOP


@dataclass
class VolumeMeasure:
    """Byte and packet counters of a URR"""
    flags: int = 0
    total_volume: int = 0
    uplink_volume: int = 0
    downlink_volume: int = 0
    total_packets: int = 0
    uplink_packets: int = 0
    downlink_packets: int = 0

    def set_flags(self, include_packet_counts: bool) -> None:
        """
        Mark which counters the receiver should read.

        Volume bits are always set; packet-count bits only when MNOP was
        requested. Bits are only ever added. Not safe to call concurrently
        on a shared instance.
        """
        self.flags |= VOLUME_FLAGS
        if include_packet_counts:
            self.flags |= PACKET_COUNT_FLAGS

    def ie(self) -> VolumeMeasurement:
        return VolumeMeasurement(
            flags=self.flags,
            total_volume=self.total_volume,
            uplink_volume=self.uplink_volume,
            downlink_volume=self.downlink_volume,
            total_packets=self.total_packets,
            uplink_packets=self.uplink_packets,
            downlink_packets=self.downlink_packets,
        )


@dataclass
class DurationMeasure:
    """Elapsed time of a URR, in nanoseconds"""
    duration_value: int = 0

    @property
    def duration(self) -> timedelta:
        return timedelta(microseconds=self.duration_value // 1000)

    def ie(self) -> DurationMeasurement:
        # Duration Measurement is carried in whole seconds
        return DurationMeasurement(self.duration_value // 1_000_000_000)


# =============================================================================
# URR Configuration
# =============================================================================

class MeasureMethod(BaseModel):
    """Measurement Method of a URR (TS 29.244 Section 8.2.40)"""
    durat: bool = Field(default=False, description="Duration measurement")
    volum: bool = Field(default=False, description="Volume measurement")
    event: bool = Field(default=False, description="Event measurement")

    @classmethod
    def from_octet(cls, octet: int) -> 'MeasureMethod':
        return cls(
            durat=bool(octet & 0x01),
            volum=bool(octet & 0x02),
            event=bool(octet & 0x04),
        )

    def to_octet(self) -> int:
        return (self.durat << 0) | (self.volum << 1) | (self.event << 2)


class MeasureInformation(BaseModel):
    """Measurement Information of a URR (TS 29.244 Section 8.2.68)"""
    mbqe: bool = Field(default=False, description="Measurement Before QoS Enforcement")
    inam: bool = Field(default=False, description="Inactive Measurement")
    radi: bool = Field(default=False, description="Reduced Application Detection Information")
    istm: bool = Field(default=False, description="Immediate Start Time Metering")
    mnop: bool = Field(default=False, description="Measurement of Number of Packets")
    sspoc: bool = Field(default=False, description="Send Start Pause of Charging")
    aspoc: bool = Field(default=False, description="Applicable for Start of Pause of Charging")
    ciam: bool = Field(default=False, description="Control of Inactive Measurement")

    @classmethod
    def from_octet(cls, octet: int) -> 'MeasureInformation':
        names = ["mbqe", "inam", "radi", "istm", "mnop", "sspoc", "aspoc", "ciam"]
        return cls(**{name: bool(octet & (1 << bit)) for bit, name in enumerate(names)})

    def to_octet(self) -> int:
        bits = [self.mbqe, self.inam, self.radi, self.istm,
                self.mnop, self.sspoc, self.aspoc, self.ciam]
        return sum(1 << i for i, bit in enumerate(bits) if bit)


class URRMeasurement(BaseModel):
    """Measurement settings the SMF provisioned for a URR"""
    method: MeasureMethod = Field(..., description="Measurement Method")
    info: MeasureInformation = Field(
        default_factory=MeasureInformation,
        description="Measurement Information",
    )


# =============================================================================
# Reports
# =============================================================================

class Report(ABC):
    """A single report of a Session Report"""

    @property
    @abstractmethod
    def report_type(self) -> ReportType:
        ...


@dataclass
class DLDReport(Report):
    """Downlink Data Report: buffered downlink data arrived for a PDR"""
    pdr_id: int
    action: int = ApplyAction.BUFF
    buf_pkt: bytes = b''

    @property
    def report_type(self) -> ReportType:
        return ReportType.DLDR

    def ie(self) -> DownlinkDataReport:
        return DownlinkDataReport(self.pdr_id)


@dataclass
class USAReport(Report):
    """Usage Report: measurement snapshot of one URR"""
    urr_id: int
    ur_seqn: int
    trigger: UsageReportTrigger = field(default_factory=UsageReportTrigger)
    volume: VolumeMeasure = field(default_factory=VolumeMeasure)
    duration: DurationMeasure = field(default_factory=DurationMeasure)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def report_type(self) -> ReportType:
        return ReportType.USAR

    def ies(self, method: MeasureMethod, info: MeasureInformation) -> List[object]:
        """
        IEs of the Usage Report, in order.

        The Usage Report has the same shape in all three messages that carry
        it, so this is the only assembly path.
        """
        ies = [
            URRId(self.urr_id),
            URSEQN(self.ur_seqn),
            self.trigger.ie(),
        ]
        if not self.trigger.start and not self.trigger.stopt and not self.trigger.macar:
            # These IEs shall be present, except if the Usage Report
            # Trigger indicates 'Start of Traffic', 'Stop of Traffic' or 'MAC
            # Addresses Reporting'.
            ies.append(StartTime(self.start_time))
            ies.append(EndTime(self.end_time))
        else:
            logger.debug(f"URR {self.urr_id}: start/end time omitted for trigger {self.trigger!r}")
        if method.volum:
            self.volume.set_flags(info.mnop)
            logger.debug(f"URR {self.urr_id}: volume flags 0x{self.volume.flags:02x}")
            ies.append(self.volume.ie())
        if method.durat:
            ies.append(self.duration.ie())
        return ies

    def ies_within(self, context: ReportContext, method: MeasureMethod,
                   info: MeasureInformation) -> List[object]:
        context = ReportContext(context)
        logger.debug(f"Assembling usage report of URR {self.urr_id} for {context.name}")
        return self.ies(method, info)

    def ies_within_sess_report_req(self, method: MeasureMethod, info: MeasureInformation) -> List[object]:
        return self.ies_within(ReportContext.SESSION_REPORT_REQUEST, method, info)

    def ies_within_sess_mod_rsp(self, method: MeasureMethod, info: MeasureInformation) -> List[object]:
        return self.ies_within(ReportContext.SESSION_MODIFICATION_RESPONSE, method, info)

    def ies_within_sess_del_rsp(self, method: MeasureMethod, info: MeasureInformation) -> List[object]:
        return self.ies_within(ReportContext.SESSION_DELETION_RESPONSE, method, info)

    def usage_report_ie(self, context: ReportContext, method: MeasureMethod,
                        info: MeasureInformation) -> UsageReportIE:
        """Usage Report grouped IE for the given message"""
        context = ReportContext(context)
        return UsageReportIE(int(context), self.ies_within(context, method, info))


# =============================================================================
# Session Report / Buffering
# =============================================================================

@dataclass
class SessReport:
    """Everything to report for one session"""
    seid: int
    reports: List[Report] = field(default_factory=list)

    def add(self, report: Report) -> None:
        self.reports.append(report)

    @property
    def report_types(self) -> List[ReportType]:
        """Distinct report types, in first-seen order"""
        types = []
        for report in self.reports:
            if report.report_type not in types:
                types.append(report.report_type)
        return types


@dataclass
class BufInfo:
    """Buffering notification for a PDR of a session"""
    seid: int
    pdr_id: int
