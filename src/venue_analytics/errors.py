"""Error taxonomy for the venue analytics pipeline.

None of these escape the pipeline: each one is recovered where it is raised
(service, aggregator or parameter resolvers) so a report is always produced.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    UPSTREAM_FETCH_FAILED = "UPSTREAM_FETCH_FAILED"
    MALFORMED_RECORD = "MALFORMED_RECORD"
    INVALID_RANGE_PARAMETER = "INVALID_RANGE_PARAMETER"


class AnalyticsError(Exception):
    """Base error with a code and a log-safe message."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class UpstreamFetchError(AnalyticsError):
    """One of the range queries against the data store failed."""

    def __init__(self, source: str, detail: str = "") -> None:
        message = f"Query for {source} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(ErrorCode.UPSTREAM_FETCH_FAILED, message)
        self.source = source


class MalformedRecordError(AnalyticsError):
    """A record is missing its entity id or carries a non-finite number."""

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(ErrorCode.MALFORMED_RECORD, f"Malformed {kind} record: {reason}")
        self.kind = kind


class InvalidRangeParameter(AnalyticsError):
    """A request parameter is outside its enumerated set."""

    def __init__(self, name: str, value: object) -> None:
        super().__init__(ErrorCode.INVALID_RANGE_PARAMETER, f"Unrecognised {name}: {value!r}")
        self.name = name
        self.value = value
