"""
SMS Transaction Parser

Decides whether an inbox message is a bank transaction alert and turns it
into a Transaction:
- Direction from credit/debit vocabulary
- Amount from the first currency-prefixed number
- Merchant from UPI/POS/ATM phrasing, with a token-window fallback
- Date from the body (month names first), else the receipt time
- Category via the rule-based resolver
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Tuple

from .category_resolver import SMS_RULES, CategoryResolver
from .merchant_normalizer import detect_payment_method, extract_sms_merchant, title_case
from .models import EXPENSE, INCOME, Category, RawMessage, Transaction
from .signature import sms_document_id

logger = logging.getLogger(__name__)

MAX_AMOUNT = 10_000_000

NON_TRANSACTION_WORDS = ('otp', 'login', 'verification', 'auth code')

TRANSACTION_KEYWORDS = (
    'debited', 'credited', 'spent', 'paid', 'sent', 'received',
    'withdrawn', 'payment', 'transfer', 'txn', 'ac no', 'a/c',
    'purchase', 'refund',
)

CREDIT_RE = re.compile(r'credited|received|deposited|refund|cashback|added', re.IGNORECASE)
DEBIT_RE = re.compile(r'debited|deducted|spent|paid|withdrawn|purchase|sent', re.IGNORECASE)

AMOUNT_RE = re.compile(r'(?<![a-z])(?:rs\.?|inr|₹|rs:)\s*([\d,]+(?:\.\d+)?)')

MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}
ALPHA_DATE_RE = re.compile(
    r'\b(\d{1,2})[-/\s](Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*[-/\s](\d{2,4})\b',
    re.IGNORECASE,
)
NUMERIC_DATE_RE = re.compile(r'\b(\d{1,2})[-/](\d{1,2})[-/](\d{2,4})\b')
TIME_RE = re.compile(r'\b(\d{1,2}):(\d{2})(?::(\d{2}))?\b')

_resolver = CategoryResolver(rules=SMS_RULES)


@dataclass
class ParsedSms:
    transaction: Transaction
    created: Tuple[Category, ...] = ()


def is_bank_sms(message: RawMessage) -> bool:
    """True when the message looks like a bank transaction alert"""
    sender, body = message.sender, message.body
    if not sender or not body:
        return False

    lower = body.lower()

    # One-time passwords and login alerts are not transactions
    if any(word in lower for word in NON_TRANSACTION_WORDS):
        return False

    has_keyword = any(k in lower for k in TRANSACTION_KEYWORDS)

    # Phone-number senders pass only with an explicit amount
    if re.fullmatch(r'\+?\d+', sender.strip()):
        return has_keyword and extract_amount(body) is not None

    return has_keyword


def detect_direction(body: str) -> str:
    """income or expense; debit wins a conflict unless it's a refund"""
    lower = body.lower()
    is_credit = CREDIT_RE.search(lower) is not None
    is_debit = DEBIT_RE.search(lower) is not None

    if is_credit and not is_debit:
        return INCOME
    if is_credit and is_debit:
        if 'refund' in lower or 'credited back' in lower:
            return INCOME
    return EXPENSE


def extract_amount(body: str) -> Optional[float]:
    """First currency-prefixed amount, None when absent or implausible"""
    lower = re.sub(r'\s+', ' ', body.lower())
    match = AMOUNT_RE.search(lower)
    if not match:
        return None

    try:
        amount = float(match.group(1).replace(',', ''))
    except ValueError:
        return None

    if amount <= 0 or amount > MAX_AMOUNT:
        return None
    return amount


def _year(text: str) -> int:
    year = int(text)
    return year + 2000 if year < 100 else year


def extract_date(body: str, timestamp_ms: int) -> datetime:
    """
    Transaction time from the body, falling back to the receipt timestamp

    Month-name dates are tried before numeric ones to avoid dd/mm vs mm/dd
    ambiguity. Body dates default to noon; a HH:MM[:SS] token refines them.
    """
    if timestamp_ms:
        result = datetime.fromtimestamp(timestamp_ms / 1000)
    else:
        result = datetime.now()

    alpha = ALPHA_DATE_RE.search(body)
    numeric = NUMERIC_DATE_RE.search(body)
    try:
        if alpha:
            month = MONTHS[alpha.group(2).lower()[:3]]
            result = datetime(_year(alpha.group(3)), month, int(alpha.group(1)), 12, 0, 0)
        elif numeric:
            result = datetime(_year(numeric.group(3)), int(numeric.group(2)), int(numeric.group(1)), 12, 0, 0)
    except ValueError:
        logger.debug("Ignoring invalid in-body date in SMS: %s", body[:40])

    time_match = TIME_RE.search(body)
    if time_match:
        hour, minute = int(time_match.group(1)), int(time_match.group(2))
        if hour < 24 and minute < 60:
            result = result.replace(hour=hour, minute=minute, microsecond=0)
            if time_match.group(3) and int(time_match.group(3)) < 60:
                result = result.replace(second=int(time_match.group(3)))

    return result


def parse_sms_transaction(message: RawMessage,
                          pool: Sequence[Category],
                          resolver: Optional[CategoryResolver] = None) -> Optional[ParsedSms]:
    """
    Parse a bank SMS into a transaction

    Args:
        message: Raw SMS
        pool: Existing categories
        resolver: Category resolver (default: SMS rule order)

    Returns:
        ParsedSms, or None when no amount can be extracted
    """
    body = message.body or ''

    amount = extract_amount(body)
    if amount is None:
        return None

    txn_type = detect_direction(body)
    merchant = extract_sms_merchant(body)
    txn_date = extract_date(body, message.timestamp_ms)
    lower_body = re.sub(r'\s+', ' ', body.lower()).strip()

    resolution = (resolver or _resolver).resolve(merchant, lower_body, pool, txn_type == INCOME)

    # Keyword hits give a consistent note ("Swiggy" rather than a UPI handle)
    if resolution.matched_keyword:
        merchant = title_case(resolution.matched_keyword)

    message_id = message.message_id
    transaction = Transaction(
        date=txn_date.isoformat(),
        note=merchant,
        amount=amount,
        type=txn_type,
        category=resolution.category,
        payment_method=detect_payment_method(lower_body),
        source_id=sms_document_id(message_id),
        sms_id=int(message_id) if message_id.isdigit() else None,
    )
    return ParsedSms(transaction=transaction, created=resolution.created)
