import pytest

from bank_sync.config import parse_config
from bank_sync.registry import BackendRegistry, build_registry

from tests.helpers.fakes import FakeBackend, RecordingNotifier


def test_only_backends_that_can_save_are_kept_in_order():
    a, off, b = FakeBackend("A"), FakeBackend("Off", enabled=False), FakeBackend("B")

    registry = BackendRegistry([a, off, b])

    assert registry.names == ["A", "B"]
    assert list(registry) == [a, b]
    assert len(registry) == 2
    assert registry[1] is b


def test_can_save_is_evaluated_once():
    backend = FakeBackend("A")

    registry = BackendRegistry([backend])
    list(registry)
    len(registry)

    assert backend.can_save_calls == 1


def test_duplicate_names_are_rejected():
    with pytest.raises(ValueError):
        BackendRegistry([FakeBackend("A"), FakeBackend("A")])


def test_registry_is_immutable():
    registry = BackendRegistry([FakeBackend("A")])

    assert not hasattr(registry, "append")
    with pytest.raises(AttributeError):
        registry.extra = 1  # type: ignore[attr-defined]


def test_empty_config_has_no_backends():
    assert not build_registry(parse_config("{}"))


def test_build_registry_from_config(tmp_path):
    config = parse_config(
        '{"storage": {"localJson": {"directory": "%s"}, "webPost": {"url": "https://x.test/"}}}'
        % tmp_path.as_posix()
    )

    assert build_registry(config, notifier=RecordingNotifier()).names == ["Local JSON", "Web POST"]


def test_sql_backend_needs_a_database_url(monkeypatch: pytest.MonkeyPatch):
    config = parse_config('{"storage": {"sql": {}}}')
    assert build_registry(config).names == []

    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///unused.db")
    assert build_registry(config).names == ["SQL"]


def test_disabled_local_json_is_skipped():
    config = parse_config('{"storage": {"localJson": {"enabled": false}}}')

    assert build_registry(config).names == []
