"""
CSV Import/Export

Reads and writes the app's own CSV layout:

    Date,Note,Amount,Type,Category,PaymentMethod

The header row is optional on import. Dates may be ISO (yyyy-mm-dd...) or
day-first (dd/mm/yyyy, dd-mm-yy).
"""
import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from ..exceptions import CsvFormatError
from .categories import FOLDER_STYLE, find_or_create
from .models import EXPENSE, GENERAL_LABEL, INCOME, Category, Transaction

logger = logging.getLogger(__name__)

CSV_COLUMNS = ['Date', 'Note', 'Amount', 'Type', 'Category', 'PaymentMethod']

DEFAULT_NOTE = 'Imported Transaction'
DEFAULT_PAYMENT_METHOD = 'Cash'


@dataclass
class CsvResult:
    transactions: List[Transaction] = field(default_factory=list)
    new_categories: List[Category] = field(default_factory=list)
    skipped: int = 0


class CsvTransactionParser:
    """Parser for the app's CSV export format"""

    def split_line(self, line: str) -> List[str]:
        """Split one CSV line, honoring quotes and doubled-quote escapes"""
        return next(csv.reader([line]), [])

    def is_header(self, line: str) -> bool:
        lower = line.lower()
        return 'date' in lower and 'amount' in lower

    def parse_date(self, date_str: str) -> Optional[datetime]:
        """Parse ISO or day-first dates; 2-digit years land in the 2000s"""
        if not date_str:
            return None

        if re.match(r'^\d{4}-\d{2}-\d{2}', date_str):
            try:
                return datetime.fromisoformat(date_str.replace('Z', '+00:00'))
            except ValueError:
                pass
            try:
                return datetime.strptime(date_str[:10], '%Y-%m-%d')
            except ValueError:
                return None

        parts = re.split(r'[/-]', date_str)
        if len(parts) != 3:
            return None

        try:
            day, month, year = (int(p) for p in parts)
            if year < 100:
                year += 2000
            return datetime(year, month, day)
        except ValueError:
            return None

    def parse_amount(self, amount_str: str) -> Optional[float]:
        """Strip currency symbols and separators"""
        cleaned = re.sub(r'[^\d.]', '', amount_str or '')
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None

    def parse_type(self, type_str: str) -> str:
        return INCOME if (type_str or '').strip().lower() in ('income', 'credit') else EXPENSE

    def parse(self, csv_text: str, pool: Sequence[Category]) -> CsvResult:
        """
        Parse CSV text into transactions

        Args:
            csv_text: UTF-8 CSV content
            pool: Existing categories

        Returns:
            CsvResult; unknown category labels are created and listed

        Raises:
            CsvFormatError: Fewer than two non-empty lines
        """
        lines = [line for line in re.split(r'\r?\n', csv_text or '') if line.strip()]
        if len(lines) < 2:
            raise CsvFormatError("CSV file is empty or invalid.")

        result = CsvResult()
        current_pool = list(pool)

        start = 1 if self.is_header(lines[0]) else 0

        for line in lines[start:]:
            row = self.split_line(line)
            if len(row) < 3:
                result.skipped += 1
                continue

            # Pad optional trailing columns
            row = row + [''] * (len(CSV_COLUMNS) - len(row))
            date_str, note, amount_str, type_str, category_label, method = (c.strip() for c in row[:6])

            txn_date = self.parse_date(date_str)
            amount = self.parse_amount(amount_str)
            if txn_date is None or not amount or amount <= 0:
                result.skipped += 1
                continue

            txn_type = self.parse_type(type_str)
            category, created = find_or_create(
                current_pool, category_label or GENERAL_LABEL, txn_type == INCOME, FOLDER_STYLE
            )
            if created:
                current_pool.append(category)
                result.new_categories.append(category)

            result.transactions.append(Transaction(
                date=txn_date.isoformat(),
                note=note or DEFAULT_NOTE,
                amount=amount,
                type=txn_type,
                category=category,
                payment_method=method or DEFAULT_PAYMENT_METHOD,
            ))

        if result.skipped:
            logger.info("Skipped %d unusable CSV rows", result.skipped)

        return result


def parse_csv(csv_text: str, pool: Sequence[Category]) -> CsvResult:
    return CsvTransactionParser().parse(csv_text, pool)


def generate_csv(transactions: Iterable[Transaction]) -> str:
    """
    Export transactions in the import layout (dates as DD/MM/YYYY)
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(CSV_COLUMNS)

    for txn in transactions:
        txn_date = datetime.strptime(txn.date[:10], '%Y-%m-%d')
        writer.writerow([
            txn_date.strftime('%d/%m/%Y'),
            txn.note or '',
            txn.amount,
            txn.type or EXPENSE,
            txn.category.label if txn.category else GENERAL_LABEL,
            txn.payment_method or DEFAULT_PAYMENT_METHOD,
        ])

    return output.getvalue()
