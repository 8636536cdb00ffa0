from __future__ import annotations

import asyncio
import json

import pytest

from carevoice.core.config import Config, EnvSettings, VoiceConfig
from carevoice.core.exceptions import ConfigError


@pytest.fixture
def env_path(tmp_path):
    return tmp_path / "missing.env"


def write_config(path, data) -> None:
    path.write_text(json.dumps(data), encoding="utf-8")


def test_defaults_match_elderly_friendly_speech():
    config = Config()

    assert config.voice.language == "en-US"
    assert config.voice.continuous is True
    assert config.voice.restart.max_attempts == 5
    assert (config.speech.rate, config.speech.pitch, config.speech.volume) == (0.9, 1.0, 1.0)
    assert config.speech.confirmation_rate == 1.2


def test_missing_file_yields_defaults(tmp_path, env_path):
    config = Config.from_file(tmp_path / "nope.json", env_path=env_path)

    assert config.voice == VoiceConfig()
    assert Config.get_instance() is config


def test_file_values_are_loaded(tmp_path, env_path):
    path = tmp_path / "config.json"
    write_config(
        path,
        {
            "voice": {"language": "en-GB", "restart": {"max_attempts": 2}},
            "speech": {"rate": 0.8, "voice_name": "Daniel"},
            "web": {"max_sessions": 3},
        },
    )

    config = Config.from_file(path, env_path=env_path)

    assert config.voice.language == "en-GB"
    assert config.voice.restart.max_attempts == 2
    assert config.speech.rate == 0.8
    assert config.speech.voice_name == "Daniel"
    assert config.web.max_sessions == 3
    assert config.config_path == path


def test_invalid_json_raises(tmp_path, env_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid JSON"):
        Config.from_file(path, env_path=env_path)


def test_out_of_range_value_raises(tmp_path, env_path):
    path = tmp_path / "config.json"
    write_config(path, {"speech": {"volume": 3.0}})

    with pytest.raises(ConfigError, match="validation failed"):
        Config.from_file(path, env_path=env_path)


def test_get_instance_before_load_raises():
    with pytest.raises(ConfigError):
        Config.get_instance()


def test_env_overrides_log_level(monkeypatch):
    monkeypatch.setenv("CAREVOICE_LOG_LEVEL", "DEBUG")

    config = Config(env=EnvSettings())

    assert config.logging.level == "DEBUG"


def test_update_section_notifies_observers():
    config = Config()
    seen: list = []

    async def observer(section, old_value, new_value) -> None:
        seen.append((section, old_value.language, new_value.language))

    config.add_observer(observer)
    asyncio.run(config.update_section("voice", {"language": "es-ES"}))

    assert config.voice.language == "es-ES"
    assert seen == [("voice", "en-US", "es-ES")]

    config.remove_observer(observer)
    asyncio.run(config.update_section("voice", {"language": "en-US"}))
    assert len(seen) == 1


def test_update_section_rejects_bad_input():
    config = Config()

    with pytest.raises(ConfigError):
        asyncio.run(config.update_section("database", {}))
    with pytest.raises(ConfigError):
        asyncio.run(config.update_section("speech", {"rate": -1}))

    assert config.speech.rate == 0.9


def test_reload_from_file(tmp_path, env_path):
    path = tmp_path / "config.json"
    write_config(path, {"voice": {"language": "en-US"}})
    config = Config.from_file(path, env_path=env_path)
    changed: list[str] = []
    config.add_observer(lambda section, old, new: changed.append(section))

    write_config(path, {"voice": {"language": "fr-FR"}, "speech": {"rate": 1.0}})
    asyncio.run(config.reload_from_file())

    assert config.voice.language == "fr-FR"
    assert config.speech.rate == 1.0
    assert changed == ["voice", "speech"]


def test_reload_without_file_raises():
    with pytest.raises(ConfigError):
        asyncio.run(Config().reload_from_file())


def test_to_dict_has_every_section():
    assert set(Config().to_dict()) == {"voice", "speech", "web", "logging"}
