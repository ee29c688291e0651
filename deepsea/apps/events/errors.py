"""Failures raised by log sources while scanning; the scanner absorbs them."""

# Fragments providers use when a getLogs range is rejected for its size
RANGE_TOO_LARGE_MARKERS = (
    "range is too large",
    "block range",
    "range too large",
    "exceed maximum block range",
    "more than 10000 results",
    "query returned more than",
    "too many blocks",
    "limit exceeded",
)


class ScanError(Exception):
    """Base class for log source failures"""


class RangeTooLarge(ScanError):
    """The source rejected the block range for its size"""


class UnknownQueryError(ScanError):
    """The source failed for an unclassified reason"""


def is_range_too_large(exc: BaseException) -> bool:
    if isinstance(exc, RangeTooLarge):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RANGE_TOO_LARGE_MARKERS)
