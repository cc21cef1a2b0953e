from smart_queue.settings import AppSettings


def test_default_settings(monkeypatch):
    monkeypatch.delenv("DATABASE_DSN", raising=False)
    monkeypatch.delenv("REDIS_DSN", raising=False)
    settings = AppSettings(_env_file=None)  # type: ignore
    assert settings.DATABASE_URL is None
    assert settings.REDIS_URL is None
    assert settings.PORT == 3001
    assert settings.AVERAGE_MINUTES_PER_TICKET == 2
    assert settings.SEQUENCING_RETRY_LIMIT == 5


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_DSN", "postgres://queue:secret@db:5432/queue")
    monkeypatch.setenv("REDIS_DSN", "redis://cache:6379/0")
    monkeypatch.setenv("PORT", "8080")
    settings = AppSettings(_env_file=None)  # type: ignore
    assert settings.DATABASE_URL == "postgres://queue:secret@db:5432/queue"
    assert settings.REDIS_URL == "redis://cache:6379/0"
    assert settings.PORT == 8080


def test_invalid_dsn_is_logged_and_dropped(monkeypatch, caplog):
    monkeypatch.setenv("DATABASE_DSN", "not a dsn")
    monkeypatch.delenv("REDIS_DSN", raising=False)
    settings = AppSettings(_env_file=None)  # type: ignore
    assert settings.DATABASE_URL is None
    assert "DATABASE_DSN" in caplog.text
