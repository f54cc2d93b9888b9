import json

import pytest

from voicewavegui import settings


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "_config_dir", lambda: str(tmp_path))
    return tmp_path


def test_first_launch_writes_defaults(config_dir):
    config = settings.load_config()
    assert config == settings.build_defaults()
    assert (config_dir / settings.CONFIG_FILENAME).is_file()


def test_new_keys_are_merged(config_dir):
    path = config_dir / settings.CONFIG_FILENAME
    path.write_text(json.dumps({"waveform": {"bar_gap": 2}, "gui": {"volume": 0.3}}),
                    encoding="utf-8")
    config = settings.load_config()
    assert config["waveform"]["bar_gap"] == 2
    assert config["waveform"]["envelope_blocks"] == 200
    assert config["gui"]["volume"] == 0.3


def test_corrupt_file_is_backed_up(config_dir):
    path = config_dir / settings.CONFIG_FILENAME
    path.write_text("{oops", encoding="utf-8")
    config = settings.load_config()
    assert config == settings.build_defaults()
    assert (config_dir / (settings.CONFIG_FILENAME + ".bak")).read_text(encoding="utf-8") == "{oops"


def test_invalid_waveform_section_reset_keeps_gui(config_dir):
    path = config_dir / settings.CONFIG_FILENAME
    path.write_text(json.dumps({"waveform": {"envelope_blocks": -1},
                                "gui": {"last_dir": "/music"}}), encoding="utf-8")
    config = settings.load_config()
    assert config["waveform"]["envelope_blocks"] == 200
    assert config["gui"]["last_dir"] == "/music"
