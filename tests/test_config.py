import json

import pytest

from storyloom.config import generation_settings, get_config, llm_from_config, update_config
from storyloom.llm import HttpLLM


@pytest.fixture(autouse=True)
def no_env_overrides(monkeypatch):
    for name in ("STORYLOOM_PROVIDER_URL", "STORYLOOM_API_KEY",
                 "STORYLOOM_PROVIDER_FORMAT", "STORYLOOM_MODEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file(tmp_path):
    config = get_config(tmp_path / "config.json")
    assert config["llm"]["provider_url"] == "http://localhost:5001"
    assert config["llm"]["provider_format"] == "koboldcpp"
    assert config["generation"]["choice_timeout"] == 15.0


def test_stored_values_merge_over_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"generation": {"choice_timeout": 5}}))
    config = get_config(path)
    assert config["generation"]["choice_timeout"] == 5
    assert config["generation"]["choice_delay"] == 0.5


def test_update_persists_only_given_fields(tmp_path):
    path = tmp_path / "config.json"
    config = update_config(path, {"llm": {"model": "mistral-7b"}})
    assert config["llm"]["model"] == "mistral-7b"
    assert json.loads(path.read_text()) == {"llm": {"model": "mistral-7b"}}


def test_update_merges_with_previous_update(tmp_path):
    path = tmp_path / "config.json"
    update_config(path, {"llm": {"model": "a"}})
    update_config(path, {"llm": {"api_key": "k"}})
    assert json.loads(path.read_text()) == {"llm": {"model": "a", "api_key": "k"}}


def test_env_overrides_connection(tmp_path, monkeypatch):
    monkeypatch.setenv("STORYLOOM_PROVIDER_URL", "http://gpu-box:5001")
    monkeypatch.setenv("STORYLOOM_PROVIDER_FORMAT", "openai")
    config = get_config(tmp_path / "config.json")
    assert config["llm"]["provider_url"] == "http://gpu-box:5001"
    assert config["llm"]["provider_format"] == "openai"


def test_generation_settings_from_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"generation": {"choices_enabled": False}}))
    settings = generation_settings(get_config(path))
    assert settings.choices_enabled is False
    assert settings.context_window == 5


def test_llm_from_config(tmp_path):
    llm = llm_from_config(get_config(tmp_path / "config.json"))
    assert isinstance(llm, HttpLLM)
