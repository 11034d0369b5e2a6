"""
Finance Ingest

Turns bank SMS alerts, statement text and CSV exports into deduplicated,
categorized transactions, with a rate-limited AI fallback for the ones the
keyword rules can't place.
"""

__version__ = "1.0.0"

# Expose main classes for easy imports
from .core import (
    Category,
    CategoryResolver,
    ImportOrchestrator,
    LLMCategorizer,
    RateLimiter,
    RawMessage,
    SessionCache,
    Transaction,
    generate_csv,
    is_bank_sms,
    parse_csv,
    parse_sms_transaction,
    process_bank_text,
)
from .exceptions import FinanceIngestError, RateLimitExceeded

__all__ = [
    'Category',
    'CategoryResolver',
    'ImportOrchestrator',
    'LLMCategorizer',
    'RateLimiter',
    'RawMessage',
    'SessionCache',
    'Transaction',
    'generate_csv',
    'is_bank_sms',
    'parse_csv',
    'parse_sms_transaction',
    'process_bank_text',
    'FinanceIngestError',
    'RateLimitExceeded',
]
