"""
Exception classes raised by the tag locator and context builders
"""


class MediaContextError(Exception):
    """Base class for all media context errors"""


class InputTooLargeError(MediaContextError, ValueError):
    """Raised when the text to scan exceeds the hard size cap"""

    def __init__(self, length: int, limit: int):
        super().__init__(f"Text is too large for tag detection ({length} > {limit} characters)")
        self.length = length
        self.limit = limit


class ScanCancelledError(MediaContextError):
    """Raised when a caller-requested stop is observed at a scan boundary"""

    def __init__(self, message: str = "Operation was cancelled by user"):
        super().__init__(message)
