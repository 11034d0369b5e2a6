"""
Pipeline data structures

Categories, raw inputs (SMS messages, statement lines) and the transactions
the parsers produce.
"""
import time
import random
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional

INCOME = 'income'
EXPENSE = 'expense'
TRANSACTION_TYPES = (INCOME, EXPENSE)

GENERAL_LABEL = 'General'


def new_category_id() -> str:
    """Millisecond timestamp plus a random suffix, unique enough per user pool"""
    return f"{int(time.time() * 1000)}{random.randint(0, 999)}"


@dataclass(frozen=True)
class Category:
    """A user category"""
    id: str
    label: str
    emoji: str
    color: str
    is_custom: bool = False

    def matches(self, label: str) -> bool:
        return self.label.strip().lower() == label.strip().lower()

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'label': self.label,
            'emoji': self.emoji,
            'color': self.color,
            'isCustom': self.is_custom,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Category':
        return cls(
            id=str(data['id']),
            label=data['label'],
            emoji=data.get('emoji', ''),
            color=data.get('color', ''),
            is_custom=bool(data.get('isCustom', data.get('is_custom', False))),
        )


@dataclass(frozen=True)
class RawMessage:
    """An SMS as read from the device inbox"""
    sender: str
    body: str
    timestamp_ms: int
    id: Optional[str] = None

    @property
    def message_id(self) -> str:
        """Device id, or a stable id derived from sender, time and body prefix"""
        if self.id is not None:
            return str(self.id)
        return f"{self.sender}_{self.timestamp_ms}_{(self.body or '')[:20]}"

    @classmethod
    def from_dict(cls, data: Dict) -> 'RawMessage':
        """
        Build from the device payload: {address, body, date, _id?}
        """
        msg_id = data.get('_id', data.get('id'))
        return cls(
            sender=data.get('address') or '',
            body=data.get('body') or '',
            timestamp_ms=int(data.get('date') or data.get('dateSent') or 0),
            id=str(msg_id) if msg_id is not None else None,
        )


@dataclass
class StatementLine:
    """One balance-bearing row reconstructed from statement text"""
    date_text: str
    date: date
    balance: float
    raw_description: str
    note: str


@dataclass
class Transaction:
    """Structured transaction produced by every parser"""
    date: str  # ISO-8601
    note: str
    amount: float
    type: str
    category: Category
    payment_method: str
    source_id: Optional[str] = None
    sms_id: Optional[int] = None
    recurring: Optional[str] = 'none'
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def __post_init__(self):
        if self.type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type: {self.type}")
        if not self.amount or self.amount <= 0:
            raise ValueError(f"Amount must be positive, got {self.amount}")
        if self.category is None:
            raise ValueError("Transaction category is required")

    @property
    def is_income(self) -> bool:
        return self.type == INCOME

    @property
    def date_only(self) -> str:
        return self.date[:10]

    def to_record(self) -> Dict:
        """Shape written to persistence"""
        record = {
            'date': self.date,
            'note': self.note,
            'amount': self.amount,
            'type': self.type,
            'category': self.category.to_dict(),
            'paymentMethod': self.payment_method,
            'recurring': self.recurring,
            'createdAt': self.created_at,
        }
        if self.sms_id is not None:
            record['smsId'] = self.sms_id
        return record
