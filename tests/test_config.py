from finance_ingest.config import Settings


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv('ANTHROPIC_API_KEYS', 'key-one, key-two')
    monkeypatch.setenv('WRITE_BATCH_LIMIT', '100')
    monkeypatch.setenv('RATE_LIMIT_FAIL_OPEN', 'false')
    monkeypatch.setenv('RATE_LIMIT_STORE', 'Memory')

    settings = Settings.from_env()

    assert settings.api_keys == ['key-one', 'key-two']
    assert settings.write_batch_limit == 100
    assert not settings.rate_limit_fail_open
    assert settings.rate_limit_store == 'memory'


def test_settings_defaults(monkeypatch):
    for name in ('ANTHROPIC_API_KEYS', 'ANTHROPIC_API_KEY', 'ENABLE_LLM', 'SMS_LOOKBACK_DAYS',
                 'WRITE_BATCH_LIMIT', 'RATE_LIMIT_FAIL_OPEN', 'RATE_LIMIT_STORE'):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.api_keys == []
    assert settings.enable_llm
    assert settings.sms_lookback_days == 30
    assert settings.write_batch_limit == 450
    assert settings.rate_limit_fail_open
    assert settings.rate_limit_store == 'file'
