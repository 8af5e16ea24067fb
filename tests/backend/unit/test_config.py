import pytest

from safarizone.backend.config import load_settings


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("SAFARI_SERVER_SALT", "salt-1")
    monkeypatch.setenv("SAFARI_DATABASE_URL", "postgresql://local")
    monkeypatch.setenv("SAFARI_HOST", "localhost")
    monkeypatch.setenv("SAFARI_PORT", "9000")
    monkeypatch.setenv("SAFARI_ADMIN_TOKEN", "admin-1")
    monkeypatch.setenv("SAFARI_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.server_salt == "salt-1"
    assert settings.database_url == "postgresql://local"
    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.admin_token == "admin-1"
    assert settings.log_level == "DEBUG"


def test_load_settings_applies_defaults(monkeypatch) -> None:
    for name in (
        "SAFARI_SERVER_SALT",
        "SAFARI_DATABASE_URL",
        "SAFARI_HOST",
        "SAFARI_PORT",
        "SAFARI_ADMIN_TOKEN",
        "SAFARI_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.server_salt == "dev-salt"
    assert settings.database_url is None
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.admin_token == "dev-admin"
    assert settings.log_level == "INFO"


def test_load_settings_treats_empty_database_url_as_missing(monkeypatch) -> None:
    monkeypatch.setenv("SAFARI_DATABASE_URL", "")

    settings = load_settings()

    assert settings.database_url is None


def test_migrate_requires_database_url(monkeypatch) -> None:
    from safarizone.backend import migrate

    monkeypatch.delenv("SAFARI_DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError, match="SAFARI_DATABASE_URL"):
        migrate.main()


def test_load_settings_rejects_non_numeric_port(monkeypatch) -> None:
    monkeypatch.setenv("SAFARI_PORT", "eighty")

    with pytest.raises(RuntimeError, match="SAFARI_PORT"):
        load_settings()


def test_apply_schema_executes_and_commits() -> None:
    from safarizone.backend.migrate import SCHEMA_PATH, apply_schema

    executed: list[str] = []

    class _Cursor:
        def execute(self, sql: str) -> None:
            executed.append(sql)

        def __enter__(self) -> "_Cursor":
            return self

        def __exit__(self, exc_type, exc, tb) -> None:
            return None

    class _Connection:
        committed = False

        def cursor(self) -> _Cursor:
            return _Cursor()

        def commit(self) -> None:
            self.committed = True

    conn = _Connection()
    schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")

    apply_schema(conn, schema_sql)

    assert conn.committed is True
    assert "CREATE TABLE IF NOT EXISTS safari_zones" in executed[0]
