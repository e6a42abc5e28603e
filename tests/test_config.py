import json
from pathlib import Path

import pytest

from bank_sync.config import BankSyncConfig, load_config, parse_config
from bank_sync.errors import ConfigError


def test_defaults_when_nothing_is_set():
    config = load_config({})

    assert config == BankSyncConfig()
    assert config.storage.local_json is None
    assert config.storage.sql is None
    assert config.storage.web_post is None
    assert config.notifications.telegram is None
    assert config.options.scraping.transaction_hash_type == "unique_id"
    assert config.options.scraping.timezone == "Asia/Jerusalem"


def test_inline_camel_case_document():
    doc = {
        "options": {"scraping": {"transactionHashType": "legacy", "timezone": "UTC"}},
        "storage": {
            "localJson": {"directory": "/tmp/out"},
            "sql": {"databaseUrl": "sqlite:///x.db", "createSchema": True},
            "webPost": {"url": "https://hooks.example/tx", "authorizationToken": "Bearer t"},
        },
        "notifications": {"telegram": {"apiKey": "k", "chatId": "42"}},
    }

    config = load_config({"BANK_SYNC_CONFIG": json.dumps(doc)})

    assert config.options.scraping.transaction_hash_type == "legacy"
    assert config.storage.local_json.enabled is True
    assert config.storage.local_json.directory == Path("/tmp/out")
    assert config.storage.sql.create_schema is True
    assert config.storage.web_post.authorization_token == "Bearer t"
    assert config.storage.web_post.timeout_seconds == 30.0
    assert config.notifications.telegram.chat_id == "42"


def test_snake_case_keys_are_accepted():
    config = parse_config('{"storage": {"web_post": {"url": "http://localhost:8080"}}}')

    assert config.storage.web_post.url == "http://localhost:8080"


def test_config_file_path(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text('{"storage": {"localJson": {"enabled": false}}}', encoding="utf-8")

    config = load_config({"BANK_SYNC_CONFIG_PATH": str(path)})

    assert config.storage.local_json.enabled is False


def test_inline_wins_over_path(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text("not json", encoding="utf-8")

    config = load_config({"BANK_SYNC_CONFIG": "{}", "BANK_SYNC_CONFIG_PATH": str(path)})

    assert config == BankSyncConfig()


def test_reads_process_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("BANK_SYNC_CONFIG", '{"storage": {"localJson": {}}}')

    assert load_config().storage.local_json is not None


@pytest.mark.parametrize(
    "text",
    [
        "{not json",
        '{"storage": {"webPost": {}}}',
        '{"storage": {"webPost": {"url": "ftp://example"}}}',
        '{"storage": {"sqll": {}}}',
        '{"options": {"scraping": {"transactionHashType": "sha1"}}}',
        '{"options": {"scraping": {"timezone": "Mars/Olympus_Mons"}}}',
    ],
)
def test_invalid_documents_raise_config_error(text):
    with pytest.raises(ConfigError):
        load_config({"BANK_SYNC_CONFIG": text})


def test_unreadable_path_raises_config_error(tmp_path: Path):
    with pytest.raises(ConfigError) as ei:
        load_config({"BANK_SYNC_CONFIG_PATH": str(tmp_path / "missing.json")})

    assert "BANK_SYNC_CONFIG_PATH" in str(ei.value)
