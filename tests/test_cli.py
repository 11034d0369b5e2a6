import json
import sys
import time

import pytest

from finance_ingest.cli import import_csv, sync_sms


def test_import_csv_dry_run(tmp_path, monkeypatch, capsys):
    csv_file = tmp_path / 'transactions.csv'
    csv_file.write_text("Date,Note,Amount,Type,Category\n05/01/2025,Lunch,200,expense,Food\n", encoding='utf-8')
    monkeypatch.setattr(sys, 'argv', ['finance-import-csv', str(csv_file), '--dry-run'])

    import_csv.main()

    out = capsys.readouterr().out
    assert 'DRY RUN' in out
    assert 'Added: 1' in out


def test_import_csv_missing_file(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, 'argv', ['finance-import-csv', str(tmp_path / 'missing.csv'), '--dry-run'])

    with pytest.raises(SystemExit):
        import_csv.main()


def test_sync_sms_dry_run(tmp_path, monkeypatch, capsys):
    now_ms = int(time.time() * 1000)
    inbox = [
        {'_id': 1, 'address': 'AD-HDFCBK', 'body': 'Rs 250 paid to SWIGGY via UPI', 'date': now_ms - 60000},
        {'_id': 2, 'address': 'AD-HDFCBK', 'body': 'Your OTP is 998877', 'date': now_ms - 60000},
    ]
    inbox_file = tmp_path / 'inbox.json'
    inbox_file.write_text(json.dumps(inbox), encoding='utf-8')
    monkeypatch.setenv('RATE_LIMIT_STORE', 'memory')
    monkeypatch.setattr(sys, 'argv', ['finance-sync-sms', str(inbox_file), '--dry-run', '--no-ai'])

    sync_sms.main()

    out = capsys.readouterr().out
    assert 'Added: 1' in out
    assert 'Swiggy' in out
