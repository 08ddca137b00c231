"""
PFCP Reporting Protocol Implementation

This package builds the reports a UPF sends to the SMF over N4 (TS 29.244):
- pfcp.report: report types, trigger registers, measurements and the
  Usage Report assembly
- pfcp.ie: Information Elements used by reports
- pfcp.messages: Session Report Request and the responses carrying
  Usage Reports
"""

from .pfcp.ie import (
    IEType,
    CauseValue,
    InformationElement,
    MalformedInputError,
    iter_ies,
)

from .pfcp.report import (
    ReportType,
    ReportContext,
    ApplyAction,
    Report,
    DLDReport,
    USAReport,
    ReportingTrigger,
    ReportingTriggerFlag,
    UsageReportTrigger,
    UsageReportTriggerFlag,
    VolumeMeasure,
    VolumeFlag,
    DurationMeasure,
    MeasureMethod,
    MeasureInformation,
    URRMeasurement,
    SessReport,
    BufInfo,
)

from .pfcp.messages import (
    PFCPHeader,
    SessionReportRequest,
    SessionModificationResponse,
    SessionDeletionResponse,
    MessageType as PFCPMessageType,
)

__all__ = [
    # IEs
    'IEType',
    'CauseValue',
    'InformationElement',
    'MalformedInputError',
    'iter_ies',
    # Reports
    'ReportType',
    'ReportContext',
    'ApplyAction',
    'Report',
    'DLDReport',
    'USAReport',
    'ReportingTrigger',
    'ReportingTriggerFlag',
    'UsageReportTrigger',
    'UsageReportTriggerFlag',
    'VolumeMeasure',
    'VolumeFlag',
    'DurationMeasure',
    'MeasureMethod',
    'MeasureInformation',
    'URRMeasurement',
    'SessReport',
    'BufInfo',
    # Messages
    'PFCPHeader',
    'SessionReportRequest',
    'SessionModificationResponse',
    'SessionDeletionResponse',
    'PFCPMessageType',
]
