"""
Merchant Normalization Module

Pulls a readable merchant name out of bank SMS bodies and statement
descriptions, and detects the payment rail used.

The pattern tables are tuned to Indian bank phrasing (UPI/NEFT/IMPS/POS);
they are plain module data so another ecosystem can swap them out.
"""
import re
from typing import List, Tuple

# SMS: ordered (pattern, prefix). Later matches override earlier ones.
SMS_MERCHANT_PATTERNS: List[Tuple[str, str]] = [
    (r'\b(?:UPI|to|at)\s+([A-Za-z0-9\s]+?)(?:\s+on\b|\s+via\b|\s+using\b|$)', ''),  # UPI / to / at <name>
    (r'\bPOS\s+(?:at\s+)?([A-Za-z0-9\s]+?)(?:\s+on\b|\s+via\b|$)', ''),  # card swipe
    (r'\bATM\s+(?:at\s+)?([A-Za-z0-9\s]+?)(?:\s+on\b|$)', 'ATM - '),  # cash withdrawal
]

# SMS: noise stripped before the token-window fallback
SMS_NOISE_PATTERNS = [
    r'(?:rs\.?|inr|₹|rs:)[\s:]*[\d,.]+',  # Amounts
    r'debited|credited|paid|received|spent',  # Direction verbs
    r'account|a/c|ac no|xx\d+',  # Account references
    r'balance|bal|avbl',  # Balance noise
    r'\d{1,2}[-/]\d{1,2}[-/]\d{2,4}',  # Dates
    r'ref\s+no[:\s]+\w+',  # Reference numbers
]

# Statement: ordered (pattern, replace underscores)
STATEMENT_MERCHANT_PATTERNS: List[Tuple[str, bool]] = [
    (r'(?:UPI|IPS|MMT|IMPS)(?:.*?/){3}(.*?)/', True),  # UPI/DR/<ref>/<bank>/<NAME>/...
    (r'NEFT[-:]\w+[-:](.*?)[-:]', False),  # NEFT-<ref>-<NAME>-
    (r'POS[\s:]+(.*?)(?:/|$)', False),  # POS <NAME>/...
]

# Statement: noise stripped before generic cleanup
STATEMENT_NOISE_PATTERNS = [
    r'UPIAR/|UPIAB/|UPIRR/|CR/|DR/',  # Rail prefixes
    r'\d{10,}',  # Long reference numbers
    r'[A-Z]{4}0[A-Z0-9]{6}',  # IFSC codes
    r'\b(?:UTIB|ICIC|HDFC|SBIN|BARB|BKID|YESB)\b',  # Bank codes
]

DEFAULT_MERCHANT = 'Transaction'


def title_case(text: str) -> str:
    """Lowercase, then capitalize the first letter of every word"""
    return re.sub(r'(?:^|\s)\w', lambda m: m.group(0).upper(), text.lower())


def extract_sms_merchant(body: str) -> str:
    """
    Extract merchant name from an SMS body

    Args:
        body: Raw SMS text (original casing preserved in the result)

    Returns:
        Merchant name, max 50 chars, or 'Transaction' when nothing usable
    """
    merchant = ''

    # Step 1: Specific patterns
    for pattern, prefix in SMS_MERCHANT_PATTERNS:
        match = re.search(pattern, body, re.IGNORECASE)
        if match and match.group(1).strip():
            merchant = prefix + match.group(1).strip()

    # Step 2: Token-window fallback
    if not merchant:
        clean = body
        for pattern in SMS_NOISE_PATTERNS:
            clean = re.sub(pattern, '', clean, flags=re.IGNORECASE)

        words = [w for w in clean.split() if len(w) > 2 and not w.isdigit()]
        merchant = ' '.join(words[:3])

    merchant = re.sub(r'[^\w\s-]', '', merchant).strip()[:50].strip()
    return merchant or DEFAULT_MERCHANT


def extract_statement_merchant(raw: str) -> str:
    """
    Extract a title-cased merchant name from a statement description

    Args:
        raw: Description with date and balance already removed

    Returns:
        Merchant name (may be empty when the description is pure noise)
    """
    # Step 1: Rail-specific patterns
    for pattern, underscores in STATEMENT_MERCHANT_PATTERNS:
        match = re.search(pattern, raw, re.IGNORECASE)
        if match and match.group(1):
            name = match.group(1)
            if underscores:
                name = name.replace('_', ' ')
            return title_case(name.strip())

    # Step 2: Generic cleanup
    clean = raw
    for pattern in STATEMENT_NOISE_PATTERNS:
        clean = re.sub(pattern, ' ', clean)
    clean = re.sub(r'[/\\]', ' ', clean)
    clean = re.sub(r'\s+', ' ', clean)
    clean = re.sub(r'[^\w\s]', '', clean).strip()

    return title_case(clean[:25].strip())


def detect_payment_method(text: str) -> str:
    """Detect the payment rail from message/description text"""
    lower = text.lower()
    if 'upi' in lower:
        return 'UPI'
    if 'atm' in lower or 'cash' in lower:
        return 'Cash'
    if 'neft' in lower or 'imps' in lower or 'rtgs' in lower:
        return 'Transfer'
    if 'pos' in lower or 'card' in lower:
        return 'Card'
    return 'Online'
