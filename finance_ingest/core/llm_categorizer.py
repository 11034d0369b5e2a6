"""
LLM Categorizer

Uses the Claude API to pick categories for transactions the rule-based
resolver could only put in "General".
Features:
- Batch processing in chunks of 20 (one request per chunk, sequential)
- Tolerant JSON array parsing (code fences, surrounding text)
- Labels mapped back onto the user's category pool
- Failures absorbed per chunk: every item falls back to "General"
"""
import json
import logging
import math
import os
import random
import re
from typing import Dict, List, Mapping, Optional, Sequence

import anthropic

from ..exceptions import RateLimitExceeded
from .models import GENERAL_LABEL, Category
from .rate_limiter import AI_REQUEST, RateLimiter

logger = logging.getLogger(__name__)

BATCH_SIZE = 20
DEFAULT_MODEL = 'claude-sonnet-4-20250514'

BATCH_SYSTEM_PROMPT = "You are a JSON generator. Output only a valid JSON array."
SINGLE_SYSTEM_PROMPT = "Output only the category name."

CLASSIFIER_RULES = """STRICT RULES:
1. Name + keyword: if a name is part of a shop name (e.g. "Ravi Medicals", "John's Cafe"), categorize by the shop type (Medical -> Health, Cafe -> Food).
2. Just a name: if it is only a person's name (e.g. "Rahul", "Priya") or a UPI transfer, assign "General".
3. Food: "Zomato", "Swiggy", "KFC", "Restaurant" -> Food.
4. Transport: "Uber", "Ola", "Petrol", "Fuel" -> Transport.
5. Medical: "Pharmacy", "Clinic", "Hospital", "Medicals" -> Healthcare.
6. Income: "Salary", "Credit Interest" -> an income category.
7. If unsure, assign "General"."""


def sanitize_text(value) -> str:
    """Strip markup, control characters and quotes before prompting"""
    if not value:
        return ''
    clean = re.sub(r'<[^>]*>', '', str(value))
    clean = re.sub(r'[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]', '', clean)
    clean = re.sub(r'["\']', '', clean)
    return clean.strip()


def sanitize_amount(value) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return abs(amount)


def _split_keys(raw: str) -> List[str]:
    return [k.strip() for k in raw.split(',') if k.strip()]


def _keys_from_env() -> List[str]:
    return _split_keys(os.environ.get('ANTHROPIC_API_KEYS') or os.environ.get('ANTHROPIC_API_KEY') or '')


def strip_code_fences(text: str) -> str:
    return re.sub(r'```(?:json)?', '', text).strip()


def extract_json_array(text: str) -> list:
    """
    Parse the first top-level JSON array in a model response

    Raises:
        ValueError: No array found, or the JSON is not a list
    """
    content = strip_code_fences(text)
    match = re.search(r'\[.*\]', content, re.DOTALL)
    if match:
        content = match.group(0)

    result = json.loads(content)
    if not isinstance(result, list):
        raise ValueError(f"Expected list, got {type(result).__name__}")
    return result


def map_to_pool(label, pool: Sequence[Category]) -> str:
    """Pool label matching `label` case-insensitively, else "General" """
    if not isinstance(label, str):
        return GENERAL_LABEL
    clean = label.strip().strip('"\'.').strip()
    for cat in pool:
        if cat.matches(clean):
            return cat.label
    return GENERAL_LABEL


class LLMCategorizer:
    """
    Categorizes transactions using Claude API
    """

    def __init__(self,
                 api_key: Optional[str] = None,
                 model: Optional[str] = None,
                 client=None,
                 rate_limiter: Optional[RateLimiter] = None,
                 batch_size: int = BATCH_SIZE):
        """
        Args:
            api_key: Anthropic API key, comma-separated for several (or ANTHROPIC_API_KEYS / ANTHROPIC_API_KEY env var)
            model: Model name (or FINANCE_AI_MODEL env var)
            client: Pre-built client exposing `messages.create` (tests)
            rate_limiter: Checked with AI_REQUEST before every request
            batch_size: Transactions per request
        """
        self.api_keys = _split_keys(api_key) if api_key else _keys_from_env()
        self.model = model or os.environ.get('FINANCE_AI_MODEL', DEFAULT_MODEL)
        self.rate_limiter = rate_limiter
        self.batch_size = batch_size
        self._client = client
        self._clients: Dict[str, anthropic.Anthropic] = {}

        self.enabled = client is not None or bool(self.api_keys)
        if not self.enabled:
            logger.info("No ANTHROPIC_API_KEY found. LLM categorization disabled.")

    def _get_client(self):
        if self._client is not None:
            return self._client
        # Spread load across configured keys
        key = random.choice(self.api_keys)
        if key not in self._clients:
            self._clients[key] = anthropic.Anthropic(api_key=key)
        return self._clients[key]

    def _complete(self, system: str, prompt: str, max_tokens: int) -> str:
        if self.rate_limiter is not None:
            self.rate_limiter.check_limit(AI_REQUEST)

        message = self._get_client().messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=0.1,
            system=system,
            messages=[{
                "role": "user",
                "content": prompt
            }]
        )
        return message.content[0].text.strip()

    def predict_category(self,
                         description: str,
                         amount: float,
                         pool: Sequence[Category]) -> Optional[str]:
        """
        Suggest a category for one transaction

        Returns:
            Pool label or "General", None if disabled or the call failed
        """
        if not self.enabled:
            return None

        labels = ', '.join(c.label for c in pool)
        prompt = f"""You are a strict financial classifier.
Categories: [{labels}]
Transaction: "{sanitize_text(description)}" (Amount: {sanitize_amount(amount)})

{CLASSIFIER_RULES}

Output ONLY the category name. No markdown."""

        try:
            predicted = self._complete(SINGLE_SYSTEM_PROMPT, prompt, max_tokens=20)
        except RateLimitExceeded as e:
            logger.warning("⚠️  AI categorization skipped: %s", e)
            return None
        except Exception as e:
            logger.warning("⚠️  AI categorization failed: %s", e)
            return None

        return map_to_pool(predicted, pool)

    def _categorize_chunk(self,
                          chunk: Sequence[Mapping],
                          pool: Sequence[Category],
                          chunk_num: int) -> List[str]:
        """
        Categorize one chunk; any failure yields "General" for every item
        """
        labels = ', '.join(c.label for c in pool)
        txn_list = '\n'.join(
            f"{i + 1}. {sanitize_text(t.get('description'))} ({sanitize_amount(t.get('amount'))})"
            for i, t in enumerate(chunk)
        )

        prompt = f"""You are a strict financial classifier.
Categories: [{labels}]

Transactions:
{txn_list}

Task: Return a JSON array of strings. One category per transaction, in order.

{CLASSIFIER_RULES}

Output ONLY the raw JSON array."""

        try:
            response_text = self._complete(BATCH_SYSTEM_PROMPT, prompt, max_tokens=1024)
            predictions = extract_json_array(response_text)
        except Exception as e:
            logger.warning("⚠️  Chunk %d failed, defaulting to %s: %s", chunk_num, GENERAL_LABEL, e)
            return [GENERAL_LABEL] * len(chunk)

        if len(predictions) != len(chunk):
            logger.warning("⚠️  Chunk %d: expected %d results, got %d",
                           chunk_num, len(chunk), len(predictions))

        mapped = [map_to_pool(p, pool) for p in predictions[:len(chunk)]]
        mapped.extend([GENERAL_LABEL] * (len(chunk) - len(mapped)))
        return mapped

    def predict_categories_batch(self,
                                 transactions: Sequence[Mapping],
                                 pool: Sequence[Category]) -> List[str]:
        """
        Categorize many transactions, one request per chunk

        Args:
            transactions: Dicts with 'description' and 'amount'
            pool: Allowed categories

        Returns:
            One label per transaction, same order as input
        """
        if not self.enabled or not transactions:
            return [GENERAL_LABEL] * len(transactions)

        results: List[str] = []
        total_chunks = (len(transactions) + self.batch_size - 1) // self.batch_size
        if total_chunks > 1:
            logger.info("📦 Processing %d transactions in %d batches", len(transactions), total_chunks)

        for i in range(0, len(transactions), self.batch_size):
            chunk = transactions[i:i + self.batch_size]
            results.extend(self._categorize_chunk(chunk, pool, i // self.batch_size + 1))

        return results
