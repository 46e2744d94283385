"""Data models for test records, provenance, and run settings."""

from ciresults.test_uploader.models.settings import Settings
from ciresults.test_uploader.models.test_record import (
    ZERO_TIME,
    Provenance,
    TestAction,
    TestRecord,
)

__all__ = [
    "ZERO_TIME",
    "Provenance",
    "Settings",
    "TestAction",
    "TestRecord",
]
