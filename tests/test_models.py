import pytest

from finance_ingest.core.models import Category, RawMessage, Transaction
from finance_ingest.core.signature import (
    compute_signature, hashed_document_id, sms_document_id, transaction_signature,
)

FOOD = Category('1', 'Food', '🍔', '#3b82f6')


def test_category_matching_ignores_case_and_spaces():
    assert FOOD.matches(' food ')
    assert not FOOD.matches('Foods')


def test_category_dict_round_trip():
    data = {'id': 7, 'label': 'Daycare', 'emoji': '🧸', 'color': '#000', 'isCustom': True}
    cat = Category.from_dict(data)

    assert cat.id == '7'
    assert cat.is_custom
    assert cat.to_dict()['isCustom'] is True


def test_raw_message_from_device_payload():
    message = RawMessage.from_dict({'address': 'AD-HDFCBK', 'body': 'Rs 5 paid', 'date': '1736000000000', '_id': 42})

    assert message.timestamp_ms == 1736000000000
    assert message.message_id == '42'


def test_raw_message_derived_id():
    message = RawMessage(sender='AD-SBIINB', body='Rs 1,000 debited from a/c', timestamp_ms=123)
    assert message.message_id == 'AD-SBIINB_123_Rs 1,000 debited fro'


@pytest.mark.parametrize('amount, txn_type', [(0, 'expense'), (-5, 'expense'), (10, 'transfer')])
def test_transaction_validation(amount, txn_type):
    with pytest.raises(ValueError):
        Transaction('2025-01-05T12:00:00', 'x', amount, txn_type, FOOD, 'UPI')


def test_transaction_record():
    txn = Transaction('2025-01-05T12:00:00', 'Swiggy', 250.0, 'expense', FOOD, 'UPI', sms_id=3)
    record = txn.to_record()

    assert record['paymentMethod'] == 'UPI'
    assert record['category']['label'] == 'Food'
    assert record['recurring'] == 'none'
    assert record['smsId'] == 3


def test_signature_ignores_time_and_note_spacing():
    a = Transaction('2025-01-05T09:00:00', 'Swiggy  Order', 250.0, 'expense', FOOD, 'UPI')
    b = Transaction('2025-01-05T21:30:00', ' swiggy order', 250, 'expense', FOOD, 'Card')

    assert transaction_signature(a) == transaction_signature(b) == '250.00-expense-2025-01-05-swiggy order'
    assert transaction_signature(a.to_record()) == transaction_signature(a)


def test_signature_distinguishes_direction():
    assert compute_signature(10, 'income', '2025-01-05', 'x') != compute_signature(10, 'expense', '2025-01-05', 'x')


def test_document_ids_are_deterministic():
    assert sms_document_id('77') == 'SMS_77'
    sig = compute_signature(10, 'expense', '2025-01-05', 'x')
    assert hashed_document_id('CSV', sig) == hashed_document_id('CSV', sig)
    assert len(hashed_document_id('CSV', sig)) == len('CSV_') + 20
