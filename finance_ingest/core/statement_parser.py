"""
Bank Statement Text Parser

Reconstructs transactions from text extracted out of a bank-statement PDF.
Statements rarely give a clean debit/credit column once flattened to text,
so each row is reduced to (date, balance, description) and amounts are
inferred from successive balance deltas.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional, Sequence, Tuple

from .categories import find_in_pool
from .category_resolver import STATEMENT_RULES, CategoryResolver
from .merchant_normalizer import detect_payment_method, extract_statement_merchant
from .models import EXPENSE, GENERAL_LABEL, INCOME, Category, StatementLine, Transaction
from .rate_limiter import PDF_UPLOAD, RateLimiter

logger = logging.getLogger(__name__)

DATE_PATTERN = r'(\d{1,2}[-/.]\w+[-/.]\d{2,4})'
BALANCE_PATTERN = r'([\d,]+\.\d{1,2}(?:\s*\(?[DC]r\)?)?)'

ROW_RE = re.compile(DATE_PATTERN + r'.*?' + BALANCE_PATTERN + r'\s*$', re.IGNORECASE)
DATE_RE = re.compile(DATE_PATTERN)
TRAILING_BALANCE_RE = re.compile(BALANCE_PATTERN + r'\s*$', re.IGNORECASE)
MONEY_RE = re.compile(BALANCE_PATTERN, re.IGNORECASE)

MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

EPSILON = 0.01

_resolver = CategoryResolver(rules=STATEMENT_RULES)


@dataclass
class StatementResult:
    transactions: List[Transaction] = field(default_factory=list)
    new_categories: List[Category] = field(default_factory=list)
    failed: int = 0


def parse_statement_date(date_text: str) -> Optional[date]:
    """dd-mm-yy(yy), dd/Mon/yyyy, dd.mm.yyyy; None when unparseable"""
    parts = re.split(r'[-/.]', date_text)
    if len(parts) != 3:
        return None

    try:
        day = int(parts[0])
        year = int(parts[2])
        if year < 100:
            year += 2000
        if parts[1].isdigit():
            month = int(parts[1])
        else:
            month = MONTHS.get(parts[1].lower()[:3])
            if month is None:
                return None
        return date(year, month, day)
    except ValueError:
        return None


def parse_balance(balance_text: str) -> float:
    """Balance amount; a trailing Dr marks an overdrawn (negative) balance"""
    clean = re.sub(r'[,()]', '', balance_text)
    clean = re.sub(r'cr|dr', '', clean, flags=re.IGNORECASE).strip()
    balance = float(clean)
    if 'dr' in balance_text.lower():
        balance = -balance
    return balance


def extract_statement_lines(text: str) -> Tuple[List[StatementLine], int]:
    """
    Scan statement text for balance-bearing rows

    Returns:
        Tuple of (lines in document order, count of rows with bad dates)
    """
    lines = text.split('\n')
    rows: List[StatementLine] = []
    failed = 0

    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if not line or 'opening balance' in line.lower():
            i += 1
            continue

        match = ROW_RE.search(line)

        # Date on this line, balance wrapped onto the next
        if not match and i + 1 < len(lines):
            next_line = lines[i + 1].strip()
            if DATE_RE.search(line) and TRAILING_BALANCE_RE.search(next_line):
                match = ROW_RE.search(f"{line} {next_line}")
                i += 1

        i += 1
        if not match:
            continue

        date_text, balance_text = match.group(1), match.group(2)
        raw_desc = match.group(0).replace(date_text, '', 1).replace(balance_text, '', 1).strip()
        raw_desc = MONEY_RE.sub('', raw_desc).strip()

        txn_date = parse_statement_date(date_text)
        if txn_date is None:
            logger.debug("Unparseable statement date: %s", date_text)
            failed += 1
            continue

        note = extract_statement_merchant(raw_desc)
        if len(note) <= 1:
            continue

        rows.append(StatementLine(
            date_text=date_text,
            date=txn_date,
            balance=parse_balance(balance_text),
            raw_description=raw_desc,
            note=note,
        ))

    return rows, failed


def process_bank_text(text: str,
                      pool: Sequence[Category],
                      categorizer=None,
                      rate_limiter: Optional[RateLimiter] = None,
                      resolver: Optional[CategoryResolver] = None) -> StatementResult:
    """
    Parse statement text into transactions

    Args:
        text: Newline-delimited statement text
        pool: Existing categories
        categorizer: LLMCategorizer for rows that resolved to "General" (optional)
        rate_limiter: Checked with PDF_UPLOAD before any work (optional)
        resolver: Category resolver (default: statement rule order)

    Returns:
        StatementResult with transactions newest-first and new categories

    Raises:
        RateLimitExceeded: Statement uploads are over quota
    """
    if rate_limiter is not None:
        rate_limiter.check_limit(PDF_UPLOAD)

    resolver = resolver or _resolver
    rows, failed = extract_statement_lines(text or '')
    rows.sort(key=lambda r: r.date)

    current_pool = list(pool)
    new_categories: List[Category] = []
    transactions: List[Transaction] = []
    uncertain: List[int] = []

    for prev, curr in zip(rows, rows[1:]):
        diff = curr.balance - prev.balance
        if abs(diff) < EPSILON:
            continue

        is_income = diff > 0
        resolution = resolver.resolve(curr.note, curr.raw_description, current_pool, is_income)
        current_pool.extend(resolution.created)
        new_categories.extend(resolution.created)

        if resolution.is_general:
            uncertain.append(len(transactions))

        transactions.append(Transaction(
            date=datetime.combine(curr.date, time(12, 0)).isoformat(),
            note=curr.note,
            amount=round(abs(diff), 2),
            type=INCOME if is_income else EXPENSE,
            category=resolution.category,
            payment_method=detect_payment_method(curr.raw_description),
        ))

    if uncertain and categorizer is not None:
        logger.info("Sending %d transactions to AI for categorization", len(uncertain))
        labels = categorizer.predict_categories_batch(
            [{'description': transactions[i].note, 'amount': transactions[i].amount} for i in uncertain],
            current_pool,
        )
        for index, label in zip(uncertain, labels):
            if label and label != GENERAL_LABEL:
                cat = find_in_pool(current_pool, label)
                if cat is not None:
                    transactions[index].category = cat

    transactions.sort(key=lambda t: t.date, reverse=True)
    logger.info("Parsed %d transactions from %d statement rows", len(transactions), len(rows))

    return StatementResult(transactions=transactions, new_categories=new_categories, failed=failed)
