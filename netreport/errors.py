"""Errors raised while generating a site report.

Each error carries the HTTP status the API layer answers with.
"""

from __future__ import annotations


class ReportError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ReportValidationError(ReportError, ValueError):
    status_code = 400


class DuplicateReportError(ReportError):
    status_code = 400

    def __init__(self, message: str = "Report already exists for this range and type.") -> None:
        super().__init__(message)


class UpstreamFetchError(ReportError):
    """A collaborator read failed.

    ``upstream_status`` is the collaborator's HTTP status when it answered
    with one; transport failures leave it ``None`` and surface as 500.
    """

    def __init__(self, message: str, *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.status_code = upstream_status if upstream_status is not None else 500


class RenderError(ReportError):
    status_code = 500


class StreamError(ReportError):
    status_code = 500
