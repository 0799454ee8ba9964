# tests/test_config.py
from libris.config import DEFAULT_SEED_PATH, OrphanPolicy, load_settings


def test_defaults(monkeypatch):
    for name in ("LIBRIS_SEED_SOURCE", "LIBRIS_PRUNE_ORPHAN_AUTHORS", "LIBRIS_PRUNE_ORPHAN_TAGS",
                 "LIBRIS_LOG_LEVEL", "LIBRIS_BUSY_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings("sqlite:///:memory:")

    assert settings.database_url == "sqlite:///:memory:"
    assert settings.seed_source == str(DEFAULT_SEED_PATH)
    assert settings.orphans == OrphanPolicy(authors=True, tags=False)
    assert settings.log_level == "WARNING"
    assert settings.busy_timeout == 5.0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LIBRIS_DATABASE_URL", "sqlite:///from-env.db")
    monkeypatch.setenv("LIBRIS_SEED_SOURCE", "https://example.com/seed.json")
    monkeypatch.setenv("LIBRIS_PRUNE_ORPHAN_AUTHORS", "no")
    monkeypatch.setenv("LIBRIS_PRUNE_ORPHAN_TAGS", "Yes")
    monkeypatch.setenv("LIBRIS_BUSY_TIMEOUT", "0.5")

    settings = load_settings()

    assert settings.database_url == "sqlite:///from-env.db"
    assert settings.seed_source == "https://example.com/seed.json"
    assert settings.orphans == OrphanPolicy(authors=False, tags=True)
    assert settings.busy_timeout == 0.5


def test_explicit_url_wins(monkeypatch):
    monkeypatch.setenv("LIBRIS_DATABASE_URL", "sqlite:///from-env.db")
    assert load_settings("sqlite:///given.db").database_url == "sqlite:///given.db"
