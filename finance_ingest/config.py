"""
Configuration

Settings come from environment variables, with a local .env file loaded
first (python-dotenv).
"""
import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Settings:
    api_keys: List[str]
    ai_model: Optional[str]
    enable_llm: bool
    sms_lookback_days: int
    write_batch_limit: int
    rate_limit_fail_open: bool
    rate_limit_store: str  # memory | file | postgres
    rate_limit_file: str

    @classmethod
    def from_env(cls) -> 'Settings':
        raw_keys = os.getenv('ANTHROPIC_API_KEYS') or os.getenv('ANTHROPIC_API_KEY') or ''
        return cls(
            api_keys=[k.strip() for k in raw_keys.split(',') if k.strip()],
            ai_model=os.getenv('FINANCE_AI_MODEL') or None,
            enable_llm=_bool(os.getenv('ENABLE_LLM'), True),
            sms_lookback_days=int(os.getenv('SMS_LOOKBACK_DAYS', '30')),
            write_batch_limit=int(os.getenv('WRITE_BATCH_LIMIT', '450')),
            rate_limit_fail_open=_bool(os.getenv('RATE_LIMIT_FAIL_OPEN'), True),
            rate_limit_store=os.getenv('RATE_LIMIT_STORE', 'file').lower(),
            rate_limit_file=os.getenv('RATE_LIMIT_FILE', os.path.expanduser('~/.finance_ingest/rate_limits.json')),
        )


@dataclass
class DatabaseSettings:
    host: str
    port: int
    name: str
    user: str
    password: str
    url: Optional[str] = None  # DATABASE_URL wins over the parts

    @classmethod
    def from_env(cls) -> 'DatabaseSettings':
        return cls(
            host=os.getenv('DB_HOST', 'localhost'),
            port=int(os.getenv('DB_PORT', '5432')),
            name=os.getenv('DB_NAME', 'finance_db'),
            user=os.getenv('DB_USER', 'finance_user'),
            password=os.getenv('DB_PASSWORD', ''),
            url=os.getenv('DATABASE_URL') or None,
        )
