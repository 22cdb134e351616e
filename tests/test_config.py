import locale
import logging

from tableview.config import Settings
from tableview.main import setup_collation


def test_default_settings():
    settings = Settings()
    assert settings.collation_locale == ""
    assert settings.data_dir is None
    assert settings.max_sessions >= 1


def test_settings_read_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("TABLEVIEW_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TABLEVIEW_MAX_SESSIONS", "3")
    settings = Settings()
    assert settings.data_dir == tmp_path
    assert settings.max_sessions == 3


def test_collation_untouched_without_locale(monkeypatch):
    calls = []
    monkeypatch.setattr(locale, "setlocale", lambda *args: calls.append(args))
    setup_collation(Settings(collation_locale=""))
    assert calls == []


def test_collation_locale_is_applied(monkeypatch):
    calls = []

    def fake_setlocale(category, value=None):
        calls.append((category, value))
        return value or "C"

    monkeypatch.setattr(locale, "setlocale", fake_setlocale)
    setup_collation(Settings(collation_locale="de_DE.UTF-8"))
    assert calls == [(locale.LC_COLLATE, "de_DE.UTF-8")]


def test_unavailable_locale_logs_warning(monkeypatch, caplog):
    def fake_setlocale(category, value=None):
        if value is not None:
            raise locale.Error("unsupported locale setting")
        return "C"

    monkeypatch.setattr(locale, "setlocale", fake_setlocale)
    with caplog.at_level(logging.WARNING, logger="tableview.main"):
        setup_collation(Settings(collation_locale="xx_XX.nope"))

    assert "locale 'xx_XX.nope' unavailable; sorting with 'C'" in caplog.text
