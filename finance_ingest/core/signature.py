"""
Transaction signatures and document ids

A signature identifies a transaction independently of where it came from,
so an SMS and a statement row for the same spend collapse to one record.
"""
import hashlib
import re
from typing import Iterable, Mapping, Set, Union

from .models import Transaction


def normalize_note(note: str) -> str:
    return re.sub(r'\s+', ' ', (note or '').strip().lower())


def compute_signature(amount: float, txn_type: str, date_iso: str, note: str) -> str:
    """amount-type-dateOnly-normalizedNote"""
    return f"{float(amount):.2f}-{txn_type}-{(date_iso or '')[:10]}-{normalize_note(note)}"


def transaction_signature(txn: Union[Transaction, Mapping]) -> str:
    """Signature of a Transaction or a persisted record dict"""
    if isinstance(txn, Transaction):
        return compute_signature(txn.amount, txn.type, txn.date, txn.note)
    return compute_signature(txn['amount'], txn['type'], txn['date'], txn.get('note', ''))


def signature_set(transactions: Iterable[Union[Transaction, Mapping]]) -> Set[str]:
    return {transaction_signature(t) for t in transactions}


def sms_document_id(message_id: str) -> str:
    """Deterministic id so re-syncing a message overwrites its record"""
    return f"SMS_{message_id}"


def hashed_document_id(prefix: str, signature: str) -> str:
    """Deterministic id for sources without their own ids (statements, CSV)"""
    digest = hashlib.sha256(signature.encode()).hexdigest()
    return f"{prefix}_{digest[:20]}"
