from pathlib import Path

import pytest

from wdasign.src.utils.config_loader import Settings, load_settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in (
        "WDASIGN_CONFIG",
        "WDASIGN_PROFILES_DIR",
        "WDASIGN_PROJECT_ROOT",
        "WDASIGN_BUILD_TIMEOUT",
        "WDASIGN_SIGN_COMMAND",
        "WDASIGN_SIGN_TIMEOUT",
    ):
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_config_file(tmp_path, monkeypatch):
    monkeypatch.setenv("WDASIGN_CONFIG", str(tmp_path / "missing.toml"))

    settings = load_settings()

    assert settings == Settings()
    assert settings.profiles_dir is None
    assert settings.build_timeout == 1800
    assert settings.sign_command == "applesign"


def test_reads_toml_sections(tmp_path):
    config = tmp_path / "config.toml"
    config.write_text(
        """
[paths]
profiles_dir = "/profiles"
project_search_root = "/opt/appium"

[build]
scheme = "WebDriverAgentRunner_tvOS"
timeout = 900

[sign]
command = "npx applesign"
timeout = 0
"""
    )

    settings = load_settings(config)

    assert settings.profiles_dir == Path("/profiles")
    assert settings.project_search_root == Path("/opt/appium")
    assert settings.scheme == "WebDriverAgentRunner_tvOS"
    assert settings.derived_data == "appium_wda_ios"
    assert settings.build_timeout == 900
    assert settings.sign_command == "npx applesign"
    assert settings.sign_timeout is None


def test_environment_wins_over_file(tmp_path, monkeypatch):
    config = tmp_path / "config.toml"
    config.write_text('[paths]\nprofiles_dir = "/profiles"\n[build]\ntimeout = 900\n')
    monkeypatch.setenv("WDASIGN_PROFILES_DIR", "/env/profiles")
    monkeypatch.setenv("WDASIGN_BUILD_TIMEOUT", "60")

    settings = load_settings(config)

    assert settings.profiles_dir == Path("/env/profiles")
    assert settings.build_timeout == 60


def test_config_path_from_environment(tmp_path, monkeypatch):
    config = tmp_path / "custom.toml"
    config.write_text('[sign]\ncommand = "/usr/local/bin/applesign"\n')
    monkeypatch.setenv("WDASIGN_CONFIG", str(config))

    assert load_settings().sign_command == "/usr/local/bin/applesign"


def test_malformed_config_is_rejected(tmp_path):
    config = tmp_path / "config.toml"
    config.write_text("[paths\nprofiles_dir = ")

    with pytest.raises(ValueError):
        load_settings(config)


def test_invalid_timeout_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("WDASIGN_CONFIG", str(tmp_path / "missing.toml"))
    monkeypatch.setenv("WDASIGN_SIGN_TIMEOUT", "soon")

    with pytest.raises(ValueError):
        load_settings()


def test_explicit_missing_config_is_rejected(tmp_path):
    with pytest.raises(ValueError) as excinfo:
        load_settings(tmp_path / "absent.toml")

    assert "absent.toml" in str(excinfo.value)
