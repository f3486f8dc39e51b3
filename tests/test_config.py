import json

import pytest
from pydantic import ValidationError

from vidrelay.config.settings import Config, LoggingConfig, load_config
from vidrelay.i18n import I18n
from vidrelay.utils.locale import get_locale, safe_url_for_log


def test_defaults(tmp_path):
    cfg = load_config(str(tmp_path / "missing.json"))

    assert cfg.site.base_url == "https://www.wow.xxx"
    assert cfg.site.max_pages == 10
    assert cfg.innertube.client_name == "ANDROID"
    assert cfg.proxy.default_content_type == "video/mp4"
    assert cfg.proxy.rewrite_urls is True


def test_load_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "site": {"base_url": "https://mirror.example.com", "max_pages": 4},
        "ytdlp": {"binary": "/opt/yt-dlp", "timeout_seconds": 12},
    }))

    cfg = Config.load_from_file(str(path))
    assert cfg.site.base_url == "https://mirror.example.com"
    assert cfg.site.max_pages == 4
    assert cfg.ytdlp.binary == "/opt/yt-dlp"
    assert cfg.ytdlp.timeout_seconds == 12


def test_broken_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    assert Config.load_from_file(str(path)).site.base_url == "https://www.wow.xxx"


def test_save_round_trip(tmp_path):
    path = tmp_path / "config.json"
    cfg = Config()
    cfg.innertube.client_version = "20.10.38"
    cfg.save_to_file(str(path))

    assert Config.load_from_file(str(path)).innertube.client_version == "20.10.38"


def test_env_override(monkeypatch, tmp_path):
    monkeypatch.setenv("VIDRELAY_SITE__BASE_URL", "https://env.example.com")
    monkeypatch.setenv("VIDRELAY_PROXY__REWRITE_URLS", "false")

    cfg = load_config(str(tmp_path / "missing.json"))
    assert cfg.site.base_url == "https://env.example.com"
    assert cfg.proxy.rewrite_urls is False


def test_max_pages_upper_bound():
    with pytest.raises(ValidationError):
        Config(site={"max_pages": 11})


def test_log_level_validation():
    assert LoggingConfig(level="debug").level == "DEBUG"
    with pytest.raises(ValidationError):
        LoggingConfig(level="LOUD")


def test_i18n_lookup_and_fallback():
    i18n = I18n()

    assert i18n.get("error.itag_not_found", itag="22") == "Format with itag 22 not found"
    assert i18n.get("error.not_found", locale="ja") != "Not found"
    assert i18n.get("error.not_found", locale="xx") == "Not found"
    assert i18n.get("error.does_not_exist") == "error.does_not_exist"


def test_i18n_missing_locale_dir(tmp_path):
    i18n = I18n(str(tmp_path / "nowhere"))
    assert i18n.get("error.not_found") == "error.not_found"


@pytest.mark.parametrize("header,expected", [
    (None, "en"),
    ("ja-JP,ja;q=0.9,en;q=0.8", "ja"),
    ("fr-FR,en;q=0.5", "en"),
    ("fr-FR", "en"),
])
def test_get_locale(header, expected):
    assert get_locale(header) == expected


def test_safe_url_for_log_hides_query():
    assert safe_url_for_log("https://cdn.example.com/v.mp4?sig=secret") == "https://cdn.example.com/v.mp4?..."
    assert safe_url_for_log("https://cdn.example.com/v.mp4") == "https://cdn.example.com/v.mp4"
