"""Output sinks receiving the final emissions result."""

from __future__ import annotations

from green_carbon.output.base import OutputSink
from green_carbon.output.console import ConsoleSummary
from green_carbon.output.csv_writer import CsvRecordWriter
from green_carbon.output.record import RECORD_FIELDS, EmissionsRecord
from green_carbon.output.report import SessionReport, summarize_records

__all__ = [
    "ConsoleSummary",
    "CsvRecordWriter",
    "EmissionsRecord",
    "OutputSink",
    "RECORD_FIELDS",
    "SessionReport",
    "summarize_records",
]
