"""
Import Orchestrator

Runs each source through the pipeline and into the store:
1. SMS sync job (lookback window, session cache, per-message AI fallback)
2. Bank statement upload (rate limited, batch AI fallback)
3. CSV import
4. Manually pasted SMS (rate limited as a transaction add)

Every source deduplicates by signature and writes with deterministic
document ids in batches capped at 450 writes.
"""
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Sequence, Set

from .categories import find_in_pool
from .csv_parser import parse_csv
from .models import GENERAL_LABEL, Category, RawMessage, Transaction
from .persistence import MAX_BATCH_WRITES, BatchWriter, TransactionStore
from .rate_limiter import TRANSACTION_ADD, RateLimiter
from .signature import hashed_document_id, transaction_signature
from .sms_parser import is_bank_sms, parse_sms_transaction
from .statement_parser import process_bank_text

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
DEFAULT_LOOKBACK_DAYS = 30


class MessageSource(Protocol):
    def fetch_messages(self, since_ms: int) -> List[RawMessage]: ...


class ListMessageSource:
    """Messages already in memory (an inbox export, tests)"""

    def __init__(self, messages: Iterable[RawMessage]):
        self.messages = list(messages)

    def fetch_messages(self, since_ms: int) -> List[RawMessage]:
        return [m for m in self.messages if m.timestamp_ms > since_ms]


class SessionCache:
    """
    Message ids already handled in this session

    Owned by the caller: keep one per signed-in session, clear() on sign-out.
    Only an optimization; a new process starts empty.
    """

    def __init__(self, max_size: int = 500):
        self.max_size = max_size
        self._ids: "OrderedDict[str, None]" = OrderedDict()

    def add(self, message_id: str) -> None:
        self._ids[message_id] = None
        self._ids.move_to_end(message_id)
        while len(self._ids) > self.max_size:
            self._ids.popitem(last=False)

    def __contains__(self, message_id: str) -> bool:
        return message_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def clear(self) -> None:
        self._ids.clear()


@dataclass
class ImportResult:
    added: int = 0
    skipped: int = 0
    failed: int = 0
    new_categories: List[Category] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)


def _signatures(existing) -> Set[str]:
    """Accept signatures, Transactions or persisted record dicts"""
    result = set()
    for item in existing:
        result.add(item if isinstance(item, str) else transaction_signature(item))
    return result


class ImportOrchestrator:
    """
    Wires parsers, categorizer, rate limiter and store together
    """

    def __init__(self,
                 store: TransactionStore,
                 categorizer=None,
                 rate_limiter: Optional[RateLimiter] = None,
                 session_cache: Optional[SessionCache] = None,
                 batch_limit: int = MAX_BATCH_WRITES):
        """
        Args:
            store: Persistence collaborator
            categorizer: LLMCategorizer for "General" results (optional)
            rate_limiter: Gates statement uploads and manual adds (optional)
            session_cache: Processed SMS ids for this session
            batch_limit: Max writes per commit
        """
        self.store = store
        self.categorizer = categorizer
        self.rate_limiter = rate_limiter
        self.session_cache = session_cache if session_cache is not None else SessionCache()
        self.batch_limit = batch_limit

    def _existing(self, existing) -> Set[str]:
        if existing is None:
            return self.store.existing_signatures()
        return _signatures(existing)

    def _ai_recategorize(self, txn: Transaction, pool: Sequence[Category]) -> None:
        """Single-shot AI fallback for a transaction stuck in "General" """
        if self.categorizer is None or not txn.category.matches(GENERAL_LABEL):
            return
        label = self.categorizer.predict_category(txn.note, txn.amount, pool)
        if label and label != GENERAL_LABEL:
            cat = find_in_pool(pool, label)
            if cat is not None:
                txn.category = cat

    def sync_sms(self,
                 source: MessageSource,
                 pool: Sequence[Category],
                 existing: Optional[Iterable] = None,
                 lookback_days: int = DEFAULT_LOOKBACK_DAYS,
                 use_ai: bool = True,
                 now_ms: Optional[int] = None) -> ImportResult:
        """
        Pull recent bank SMS into the store

        Args:
            source: Inbox reader
            pool: User's categories
            existing: Signatures/transactions already stored (default: ask the store)
            lookback_days: How far back to read
            use_ai: Try AI classification for "General" results
            now_ms: Current epoch ms (tests)

        Returns:
            ImportResult; `failed` counts bank SMS with no extractable amount
        """
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        since_ms = now_ms - lookback_days * DAY_MS

        result = ImportResult()
        current_pool = list(pool)
        seen = self._existing(existing)
        writer = BatchWriter(self.store, self.batch_limit)
        handled: List[str] = []

        messages = source.fetch_messages(since_ms)
        logger.info("Read %d messages since %d", len(messages), since_ms)

        for message in messages:
            if message.timestamp_ms <= since_ms or not is_bank_sms(message):
                continue

            message_id = message.message_id
            if message_id in self.session_cache:
                result.skipped += 1
                continue

            try:
                parsed = parse_sms_transaction(message, current_pool)
            except Exception as e:
                logger.warning("⚠️  Failed to parse SMS %s: %s", message_id, e)
                result.failed += 1
                continue

            handled.append(message_id)
            if parsed is None:
                result.failed += 1
                continue

            txn = parsed.transaction
            signature = transaction_signature(txn)
            if signature in seen:
                result.skipped += 1
                continue

            if use_ai:
                self._ai_recategorize(txn, current_pool)

            # Keep synthesized categories only if the transaction still uses them
            for cat in parsed.created:
                if txn.category is cat:
                    current_pool.append(cat)
                    result.new_categories.append(cat)

            writer.set(txn.source_id, txn.to_record())
            seen.add(signature)
            result.added += 1
            result.transactions.append(txn)

        writer.flush()
        for message_id in handled:
            self.session_cache.add(message_id)

        if result.new_categories:
            self.store.merge_categories(result.new_categories)

        logger.info("SMS sync: %d added, %d skipped, %d failed",
                    result.added, result.skipped, result.failed)
        return result

    def _write_new(self,
                   transactions: Iterable[Transaction],
                   prefix: str,
                   existing: Optional[Iterable],
                   result: ImportResult) -> None:
        seen = self._existing(existing)
        writer = BatchWriter(self.store, self.batch_limit)

        for txn in transactions:
            signature = transaction_signature(txn)
            if signature in seen:
                result.skipped += 1
                continue
            txn.source_id = hashed_document_id(prefix, signature)
            writer.set(txn.source_id, txn.to_record())
            seen.add(signature)
            result.added += 1
            result.transactions.append(txn)

        writer.flush()
        if result.new_categories:
            self.store.merge_categories(result.new_categories)

    def import_statement(self,
                         text: str,
                         pool: Sequence[Category],
                         existing: Optional[Iterable] = None,
                         use_ai: bool = True) -> ImportResult:
        """
        Parse statement text and store its transactions

        Raises:
            RateLimitExceeded: Statement uploads are over quota
        """
        parsed = process_bank_text(
            text,
            pool,
            categorizer=self.categorizer if use_ai else None,
            rate_limiter=self.rate_limiter,
        )
        result = ImportResult(failed=parsed.failed, new_categories=list(parsed.new_categories))
        self._write_new(parsed.transactions, 'STMT', existing, result)
        logger.info("Statement import: %d added, %d skipped", result.added, result.skipped)
        return result

    def import_csv(self,
                   text: str,
                   pool: Sequence[Category],
                   existing: Optional[Iterable] = None) -> ImportResult:
        """
        Parse CSV text and store its transactions

        Raises:
            CsvFormatError: Empty or invalid CSV
        """
        parsed = parse_csv(text, pool)
        result = ImportResult(failed=parsed.skipped, new_categories=list(parsed.new_categories))
        self._write_new(parsed.transactions, 'CSV', existing, result)
        logger.info("CSV import: %d added, %d skipped", result.added, result.skipped)
        return result

    def add_manual_sms(self,
                       text: str,
                       pool: Sequence[Category],
                       use_ai: bool = True) -> Optional[Transaction]:
        """
        Parse a pasted SMS and store it

        Returns:
            The stored transaction, or None when no transaction could be parsed

        Raises:
            RateLimitExceeded: Too many manual adds
        """
        if self.rate_limiter is not None:
            self.rate_limiter.check_limit(TRANSACTION_ADD)

        message = RawMessage(sender='MANUAL_INPUT', body=text, timestamp_ms=int(time.time() * 1000))
        parsed = parse_sms_transaction(message, pool)
        if parsed is None:
            return None

        txn = parsed.transaction
        if use_ai:
            self._ai_recategorize(txn, pool)

        created = [c for c in parsed.created if txn.category is c]
        txn.source_id = hashed_document_id('MANUAL', transaction_signature(txn))

        writer = BatchWriter(self.store, self.batch_limit)
        writer.set(txn.source_id, txn.to_record())
        writer.flush()
        if created:
            self.store.merge_categories(created)
        return txn
