from __future__ import annotations

import os

import pytest
from app.config import DEFAULT_PUSH_URL, DEFAULT_VAPID_SUBJECT, get_database_settings, get_settings
from app.core.database import _database_url
from app.utils.env import load_env_file


@pytest.fixture
def fresh_settings():
  get_settings.cache_clear()
  get_database_settings.cache_clear()
  yield get_settings
  get_settings.cache_clear()
  get_database_settings.cache_clear()


def test_settings_read_vapid_configuration(fresh_settings, vapid_config):
  settings = fresh_settings()

  assert settings.vapid_config == vapid_config
  assert settings.allowed_origins == ("http://localhost:5173",)
  assert settings.push_default_url == DEFAULT_PUSH_URL
  assert settings.push_ttl_seconds == 86400
  assert settings.push_timeout_seconds == 10.0


def test_settings_default_subject(monkeypatch, fresh_settings):
  monkeypatch.delenv("LOCABOARD_VAPID_SUBJECT", raising=False)
  assert fresh_settings().vapid_subject == DEFAULT_VAPID_SUBJECT == "mailto:admin@locaboard.fr"


def test_settings_without_keys_have_no_vapid_config(monkeypatch, fresh_settings):
  monkeypatch.delenv("LOCABOARD_VAPID_PRIVATE_KEY", raising=False)
  assert fresh_settings().vapid_config is None


def test_settings_reject_unreachable_subject(monkeypatch, fresh_settings):
  monkeypatch.setenv("LOCABOARD_VAPID_SUBJECT", "admin@locaboard.fr")
  with pytest.raises(ValueError, match="LOCABOARD_VAPID_SUBJECT"):
    fresh_settings()


def test_settings_reject_wildcard_origins(monkeypatch, fresh_settings):
  monkeypatch.setenv("LOCABOARD_ALLOWED_ORIGINS", "https://locaboard.fr,*")
  with pytest.raises(ValueError, match="wildcard"):
    fresh_settings()


def test_settings_normalize_origins(monkeypatch, fresh_settings):
  monkeypatch.setenv("LOCABOARD_ALLOWED_ORIGINS", " https://locaboard.fr/ , http://localhost:5173")
  assert fresh_settings().allowed_origins == ("https://locaboard.fr", "http://localhost:5173")


def test_settings_reject_non_positive_timeout(monkeypatch, fresh_settings):
  monkeypatch.setenv("LOCABOARD_PUSH_TIMEOUT_SECONDS", "0")
  with pytest.raises(ValueError, match="LOCABOARD_PUSH_TIMEOUT_SECONDS"):
    fresh_settings()


@pytest.mark.parametrize(
  ("dsn", "expected"),
  [
    ("postgres://u:p@db:5432/locaboard", "postgresql+asyncpg://u:p@db:5432/locaboard"),
    ("postgresql://u:p@db/locaboard", "postgresql+asyncpg://u:p@db/locaboard"),
    ("postgresql+asyncpg://u:p@db/locaboard", "postgresql+asyncpg://u:p@db/locaboard"),
  ],
)
def test_database_url_uses_asyncpg_driver(monkeypatch, fresh_settings, dsn, expected):
  monkeypatch.setenv("LOCABOARD_PG_DSN", dsn)
  assert _database_url() == expected


def test_database_url_falls_back_to_database_url(monkeypatch, fresh_settings):
  monkeypatch.delenv("LOCABOARD_PG_DSN", raising=False)
  monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/locaboard")
  assert _database_url() == "postgresql+asyncpg://u:p@db/locaboard"


def test_load_env_file_respects_existing_values(monkeypatch, tmp_path):
  env_file = tmp_path / ".env"
  env_file.write_text('# local\nexport LOCABOARD_TEST_A="quoted value"\nLOCABOARD_TEST_B=plain\nnot a pair\n', encoding="utf-8")
  monkeypatch.delenv("LOCABOARD_TEST_A", raising=False)
  monkeypatch.setenv("LOCABOARD_TEST_B", "kept")

  load_env_file(env_file)

  assert os.environ["LOCABOARD_TEST_A"] == "quoted value"
  assert os.environ["LOCABOARD_TEST_B"] == "kept"
  monkeypatch.delenv("LOCABOARD_TEST_A")
