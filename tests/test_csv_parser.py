from datetime import datetime

import pytest

from finance_ingest.core.csv_parser import CsvTransactionParser, generate_csv, parse_csv
from finance_ingest.core.models import Transaction
from finance_ingest.exceptions import CsvFormatError

CSV_TEXT = '''Date,Note,Amount,Type,Category,PaymentMethod
05/01/2025,"Dinner, with ""friends""","₹1,250.50",expense,Food,Card
2025-02-10,Salary,50000,income,Paycheck,Transfer
'''


def test_parse_with_header(pool):
    result = parse_csv(CSV_TEXT, pool)
    dinner, salary = result.transactions

    assert dinner.note == 'Dinner, with "friends"'
    assert dinner.amount == 1250.5
    assert dinner.type == 'expense'
    assert dinner.category.label == 'Food'
    assert dinner.payment_method == 'Card'
    assert dinner.date_only == '2025-01-05'

    assert salary.type == 'income'
    assert salary.category.label == 'Paycheck'
    assert salary.date_only == '2025-02-10'
    assert result.new_categories == []


def test_parse_without_header(pool):
    text = "05/01/2025,Lunch,200,expense,Food,UPI\n06/01/2025,Bus,40,debit,Transport,Cash"
    result = parse_csv(text, pool)
    assert [t.note for t in result.transactions] == ['Lunch', 'Bus']
    assert result.transactions[1].type == 'expense'


def test_credit_type_is_income(pool):
    result = parse_csv("Date,Note,Amount,Type\n05/01/2025,Cashback,20,credit", pool)
    assert result.transactions[0].type == 'income'


def test_missing_optional_columns_use_defaults(pool):
    result = parse_csv("Date,Note,Amount\n05/01/2025,,20", pool)
    txn = result.transactions[0]

    assert txn.note == 'Imported Transaction'
    assert txn.payment_method == 'Cash'
    assert txn.category.label == 'General'
    assert txn.category.emoji == '📂'


def test_unknown_category_created_once(pool):
    text = "Date,Note,Amount,Type,Category\n05/01/2025,Fees,900,expense,Daycare\n06/01/2025,Snacks,90,expense,daycare"
    result = parse_csv(text, pool)

    assert len(result.new_categories) == 1
    created = result.new_categories[0]
    assert created.label == 'Daycare'
    assert created.emoji == '📂'
    assert not created.is_custom
    assert result.transactions[1].category is created


def test_bad_rows_skipped(pool):
    text = "Date,Note,Amount\n05/01/2025,Only two\nnot-a-date,Note,10\n05/01/2025,Free,0\n05/01/2025,Ok,10"
    result = parse_csv(text, pool)

    assert len(result.transactions) == 1
    assert result.skipped == 3


@pytest.mark.parametrize('text', ['', 'Date,Note,Amount', '\n\n'])
def test_empty_csv_rejected(text, pool):
    with pytest.raises(CsvFormatError):
        parse_csv(text, pool)


def test_parse_date_formats():
    parser = CsvTransactionParser()
    assert parser.parse_date('5/1/25') == datetime(2025, 1, 5)
    assert parser.parse_date('05-01-2025') == datetime(2025, 1, 5)
    assert parser.parse_date('2025-01-05T09:30:00') == datetime(2025, 1, 5, 9, 30)
    assert parser.parse_date('31/02/2025') is None
    assert parser.parse_date('yesterday') is None


def test_export_reimports(pool):
    food = next(c for c in pool if c.label == 'Food')
    paycheck = next(c for c in pool if c.label == 'Paycheck')
    transactions = [
        Transaction('2025-01-05T12:00:00', 'Pizza, large', 1234.5, 'expense', food, 'Card'),
        Transaction('2025-01-31T12:00:00', 'Salary', 50000.0, 'income', paycheck, 'Transfer'),
    ]

    exported = generate_csv(transactions)
    assert exported.splitlines()[0] == 'Date,Note,Amount,Type,Category,PaymentMethod'
    assert exported.splitlines()[1].startswith('05/01/2025,"Pizza, large",1234.5,expense,Food,Card')

    reimported = parse_csv(exported, pool).transactions
    assert [(t.date_only, t.note, t.amount, t.type, t.category.label) for t in reimported] == [
        (t.date_only, t.note, t.amount, t.type, t.category.label) for t in transactions
    ]


def test_impossible_iso_date_skips_row(pool):
    text = "Date,Note,Amount,Type,Category,PaymentMethod\n2025-13-45,Tea,20,expense,Food,Cash\n05/01/2025,Lunch,150,expense,Food,Cash\n"
    result = parse_csv(text, pool)

    assert [t.note for t in result.transactions] == ['Lunch']
    assert result.skipped == 1
    assert CsvTransactionParser().parse_date('2025-13-45') is None
