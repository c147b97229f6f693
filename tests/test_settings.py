import pytest
from pydantic import ValidationError

from date_slicer.core.presets import PresetId
from date_slicer.core.settings import AppSettings, EngineTiming, SlicerSettings, load_settings


def test_host_settings_accept_camel_case():
    s = SlicerSettings.model_validate(
        {"preset": "last30Days", "selectionStyle": "calendar", "popupMode": True, "headerText": "Orders", "extra": 1}
    )
    assert s.preset is PresetId.LAST_30_DAYS
    assert s.selection_style == "calendar"
    assert s.popup_mode
    assert s.header_text == "Orders"


def test_misspelled_calendar_style_is_accepted():
    assert SlicerSettings.model_validate({"selectionStyle": "Calender"}).selection_style == "calendar"


def test_unknown_preset_falls_back_to_none():
    assert SlicerSettings(preset="lastFortnight").preset is PresetId.NONE


@pytest.mark.parametrize("bad", [{"fontSize": 2}, {"selectionStyle": "dropdown"}])
def test_invalid_host_settings_raise(bad):
    with pytest.raises(ValidationError):
        SlicerSettings.model_validate(bad)


def test_engine_timing_defaults():
    t = EngineTiming()
    assert (t.local_change_timeout_ms, t.preset_write_timeout_ms, t.restore_timeout_ms, t.clear_all_timeout_ms) == (
        100, 500, 300, 150,
    )


def test_env_overrides_nested_settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATE_SLICER_TIMING__RESTORE_TIMEOUT_MS", "900")
    monkeypatch.setenv("DATE_SLICER_LOGGING__LEVEL", "DEBUG")
    s = AppSettings()
    assert s.timing.restore_timeout_ms == 900
    assert s.logging.level == "DEBUG"


def test_dotenv_file_is_read(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("DATE_SLICER_DEMO__ROWS=42\n", encoding="utf-8")
    assert AppSettings().demo.rows == 42


def test_load_settings_is_cached(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    load_settings.cache_clear()
    try:
        assert load_settings() is load_settings()
    finally:
        load_settings.cache_clear()
