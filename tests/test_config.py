"""Tests for settings resolution."""

from __future__ import annotations

from pathlib import Path

from memberwatch.config import Settings, get_settings, reset_settings


class TestSettings:
    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        s = Settings()
        assert s.database.path == "data/memberwatch.db"
        assert s.whatsapp.auth_dir == "store"
        assert s.whatsapp.mark_online_on_connect is False

    def test_relative_paths_resolve_against_project_root(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        s = Settings()
        assert s.database_path == (tmp_path / "data" / "memberwatch.db").resolve()
        assert s.auth_dir == (tmp_path / "store").resolve()

    def test_absolute_paths_kept(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        db = tmp_path / "elsewhere" / "x.db"
        monkeypatch.setenv("DATABASE__PATH", str(db))
        assert Settings().database_path == db.resolve()

    def test_env_overrides_toml(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.toml").write_text(
            '[whatsapp]\nauth_dir = "from-toml"\nmark_online_on_connect = false\n'
        )
        monkeypatch.setenv("WHATSAPP__MARK_ONLINE_ON_CONNECT", "true")
        s = Settings()
        assert s.whatsapp.auth_dir == "from-toml"
        assert s.whatsapp.mark_online_on_connect is True

    def test_keyword_not_settable_from_env(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TARGET_KEYWORD", "other")
        assert Settings().TARGET_KEYWORD == "neol"

    def test_get_settings_is_cached_until_reset(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        first = get_settings()
        assert get_settings() is first
        reset_settings()
        assert get_settings() is not first
        assert isinstance(first.project_root, Path)
