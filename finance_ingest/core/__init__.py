"""
Transaction extraction and categorization pipeline
"""
from .category_resolver import CategoryResolver, SMS_RULES, STATEMENT_RULES
from .csv_parser import generate_csv, parse_csv
from .import_orchestrator import ImportOrchestrator, ListMessageSource, SessionCache
from .llm_categorizer import LLMCategorizer
from .models import Category, RawMessage, Transaction
from .rate_limiter import RateLimiter
from .sms_parser import is_bank_sms, parse_sms_transaction
from .statement_parser import process_bank_text

__all__ = [
    'CategoryResolver',
    'SMS_RULES',
    'STATEMENT_RULES',
    'generate_csv',
    'parse_csv',
    'ImportOrchestrator',
    'ListMessageSource',
    'SessionCache',
    'LLMCategorizer',
    'Category',
    'RawMessage',
    'Transaction',
    'RateLimiter',
    'is_bank_sms',
    'parse_sms_transaction',
    'process_bank_text',
]
