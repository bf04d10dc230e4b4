"""
Tests for YAML configuration loading.
"""

import pytest

from capgen.config_loader import DEFAULT_CONFIG, ConfigLoader
from capgen.exceptions import ConfigurationError


@pytest.fixture
def loader():
    return ConfigLoader()


def test_none_returns_defaults(loader):
    assert loader.load_config(None) == DEFAULT_CONFIG

def test_defaults_are_not_shared(loader):
    config = loader.load_config(None)
    config['output_format'] = 'vtt'
    assert DEFAULT_CONFIG['output_format'] == 'srt'

def test_file_overrides_defaults(loader, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("output_format: vtt\ntarget_language: es\n", encoding="utf-8")
    config = loader.load_config(str(path))
    assert config['output_format'] == 'vtt'
    assert config['target_language'] == 'es'
    assert config['avg_segment_duration'] == 4.0

def test_unknown_keys_ignored(loader, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("colour: blue\n", encoding="utf-8")
    assert 'colour' not in loader.load_config(str(path))

def test_empty_file_gives_defaults(loader, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    assert loader.load_config(str(path)) == DEFAULT_CONFIG

def test_missing_file(loader, tmp_path):
    with pytest.raises(FileNotFoundError):
        loader.load_config(str(tmp_path / "nope.yaml"))

def test_directory_rejected(loader, tmp_path):
    with pytest.raises(ConfigurationError):
        loader.load_config(str(tmp_path))

def test_non_mapping_root(loader, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        loader.load_config(str(path))

def test_invalid_yaml(loader, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("output_format: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        loader.load_config(str(path))

@pytest.mark.parametrize("content", [
    "output_format: ass\n",
    "recognizer: vosk\n",
    "translator: deepl\n",
    "avg_segment_duration: 0\n",
    "batch_concurrency: 0\n",
    "target_sample_rate: fast\n",
])
def test_invalid_values(loader, tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        loader.load_config(str(path))
