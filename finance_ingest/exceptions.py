"""
Errors surfaced by the ingestion pipeline
"""


class FinanceIngestError(Exception):
    """Base class for pipeline errors"""


class RateLimitExceeded(FinanceIngestError):
    """An action type exceeded its sliding-window quota"""

    def __init__(self, action_type: str, wait_seconds: int, message: str):
        self.action_type = action_type
        self.wait_seconds = wait_seconds
        self.message = f"{message} (Try again in {wait_seconds}s)"
        super().__init__(self.message)


class RateLimiterStorageError(FinanceIngestError):
    """The rate limiter could not read or write its counter store"""


class CsvFormatError(FinanceIngestError):
    """CSV input is empty or structurally unusable"""
