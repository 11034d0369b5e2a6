from datetime import date

import pytest

from finance_ingest.core.rate_limiter import InMemoryCounterStore, RateLimiter
from finance_ingest.core.statement_parser import (
    extract_statement_lines, parse_balance, parse_statement_date, process_bank_text,
)
from finance_ingest.exceptions import RateLimitExceeded

from .conftest import FakeCategorizer

STATEMENT = """Account Statement
01-01-2024 SALARY CREDIT 10000.00
02-01-2024 UPI/DR/123456/SWIGGY/SBIN/Payment 500.00 9500.00
03-01-2024 REFUND FROM AMAZON 200.00 9700.00
"""


def test_amounts_from_balance_deltas(pool):
    result = process_bank_text(STATEMENT, pool)
    refund, swiggy = result.transactions

    assert refund.type == 'income'
    assert refund.amount == 200.0
    assert refund.category.label == 'Paycheck'
    assert refund.date == '2024-01-03T12:00:00'

    assert swiggy.type == 'expense'
    assert swiggy.amount == 500.0
    assert swiggy.note == 'Swiggy'
    assert swiggy.category.label == 'Food'
    assert swiggy.payment_method == 'UPI'


def test_rows_sorted_by_date_before_deltas(pool):
    shuffled = """03-01-2024 REFUND FROM AMAZON 200.00 9700.00
01-01-2024 SALARY CREDIT 10000.00
02-01-2024 UPI/DR/123456/SWIGGY/SBIN/Payment 500.00 9500.00"""
    result = process_bank_text(shuffled, pool)

    assert [t.amount for t in result.transactions] == [200.0, 500.0]


def test_overdrawn_balance(pool):
    text = """01-01-2024 OPENING DEPOSIT 1,000.00
02-01-2024 ATM WITHDRAWAL 500.00 Dr"""
    result = process_bank_text(text, pool)

    assert len(result.transactions) == 1
    txn = result.transactions[0]
    assert txn.type == 'expense'
    assert txn.amount == 1500.0
    assert txn.payment_method == 'Cash'


def test_balance_wrapped_onto_next_line(pool):
    text = """01/02/2024 OPENING DEPOSIT 5,000.00
02/02/2024 POS STARBUCKS/BLR
4,750.00"""
    rows, failed = extract_statement_lines(text)

    assert failed == 0
    assert [r.balance for r in rows] == [5000.0, 4750.0]

    txn = process_bank_text(text, pool).transactions[0]
    assert txn.note == 'Starbucks'
    assert txn.amount == 250.0
    assert txn.category.label == 'Food'


def test_opening_balance_line_ignored():
    rows, _ = extract_statement_lines("01-01-2024 Opening Balance 10,000.00\n02-01-2024 ATM CASH 9,000.00")
    assert len(rows) == 1


def test_unchanged_balance_yields_nothing(pool):
    text = "01-01-2024 INTEREST NOTE 100.00\n02-01-2024 INFO ONLY 100.00"
    assert process_bank_text(text, pool).transactions == []


def test_unparseable_text(pool):
    result = process_bank_text("no rows here\njust words", pool)
    assert result.transactions == []
    assert process_bank_text("", pool).transactions == []


def test_bad_dates_counted():
    _, failed = extract_statement_lines("32-13-2024 SOMETHING ODD 100.00")
    assert failed == 1


def test_parse_statement_date():
    assert parse_statement_date('05-Jan-2024') == date(2024, 1, 5)
    assert parse_statement_date('05/01/24') == date(2024, 1, 5)
    assert parse_statement_date('05.01.2024') == date(2024, 1, 5)
    assert parse_statement_date('05-Foo-2024') is None


def test_parse_balance():
    assert parse_balance('1,500.00 Dr') == -1500.0
    assert parse_balance('2,000.00Cr') == 2000.0
    assert parse_balance('300.50') == 300.5


def test_uncertain_rows_patched_by_ai(pool):
    text = """01-03-2024 SALARY ACME CORP 50,000.00
02-03-2024 NEFT-N123456-RAVI MEDICALS-BLR 49,000.00
03-03-2024 UPI/DR/998877/PRIYA SHARMA/SBIN/Gift 48,500.00"""
    categorizer = FakeCategorizer(batch=['Healthcare', 'General'])
    result = process_bank_text(text, pool, categorizer=categorizer)

    priya, ravi = result.transactions
    assert [item['description'] for item in categorizer.batch_calls[0]] == ['Ravi Medicals', 'Priya Sharma']
    assert ravi.category.label == 'Healthcare'
    assert ravi.payment_method == 'Transfer'
    assert priya.category.label == 'General'


def test_created_categories_reported(pool):
    result = process_bank_text(STATEMENT, [c for c in pool if c.label != 'Food'])
    assert [c.label for c in result.new_categories] == ['Food']


def test_upload_rate_limited(pool, clock):
    limiter = RateLimiter(InMemoryCounterStore(), clock=clock)
    process_bank_text(STATEMENT, pool, rate_limiter=limiter)

    with pytest.raises(RateLimitExceeded):
        process_bank_text(STATEMENT, pool, rate_limiter=limiter)
