"""
Exceptions raised by the cost report pipeline.
"""

from typing import Optional


class CostReportError(Exception):
    """Base class for all pipeline failures."""


class ConfigError(CostReportError):
    """Configuration is missing, malformed, or could not be decrypted."""


class FetchError(CostReportError):
    """The Cost Explorer call failed."""


class ParseError(FetchError):
    """Cost Explorer returned an amount that is not a number."""


class SendError(CostReportError):
    """The webhook could not be reached or answered with a non-200 status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
