"""
Tests for settings loading and runtime wiring
"""

from pathlib import Path

import pytest

from chain_gateway.chains import InMemoryChainStore, YamlChainStore
from chain_gateway.config import Settings, load_settings
from chain_gateway.database import DatabaseChainStore
from chain_gateway.observability import DatabaseExecutionSink, JsonlExecutionSink
from chain_gateway.runtime import build_executor, build_sinks, build_store


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


def test_defaults_without_config_file(tmp_path):
    settings = load_settings(tmp_path / "missing.yaml", environ={})

    assert settings.max_chain_steps == 100
    assert settings.max_recursion_depth == 10
    assert settings.module_timeout_ms == 30000
    assert settings.chain_store == "yaml"
    assert settings.modules["character"] == "http://localhost:3031"
    assert settings.modules["storyteller"] == "http://localhost:3037"


def test_yaml_values_are_applied(tmp_path):
    path = write_config(tmp_path, """
modules:
  character: http://characters:9000
  weather: http://weather:9100
max_chain_steps: 20
chain_store: memory
record_history: false
""")
    settings = load_settings(path, environ={})

    assert settings.modules["character"] == "http://characters:9000"
    assert settings.modules["weather"] == "http://weather:9100"
    assert settings.modules["scene"] == "http://localhost:3033"
    assert settings.max_chain_steps == 20
    assert settings.chain_store == "memory"
    assert settings.record_history is False


def test_environment_overrides_yaml(tmp_path):
    path = write_config(tmp_path, "max_chain_steps: 20\nmodules:\n  scene: http://from-yaml\n")
    settings = load_settings(path, environ={
        "MAX_CHAIN_STEPS": "7",
        "MAX_RECURSION_DEPTH": "3",
        "SCENE_CONTROLLER_URL": "http://from-env",
        "CHAINS_DIR": str(tmp_path),
        "RECORD_HISTORY": "no",
    })

    assert settings.max_chain_steps == 7
    assert settings.max_recursion_depth == 3
    assert settings.modules["scene"] == "http://from-env"
    assert settings.chains_dir == Path(tmp_path)
    assert settings.record_history is False


def test_config_path_from_environment(tmp_path):
    path = write_config(tmp_path, "module_timeout_ms: 500\n")
    settings = load_settings(environ={"CHAIN_GATEWAY_CONFIG": str(path)})
    assert settings.module_timeout_ms == 500


@pytest.mark.parametrize("text, environ", [
    ("- not\n- a mapping\n", {}),
    ("", {"MAX_CHAIN_STEPS": "many"}),
    ("chain_store: redis\n", {}),
])
def test_malformed_settings_raise(tmp_path, text, environ):
    path = write_config(tmp_path, text)
    with pytest.raises(ValueError):
        load_settings(path, environ=environ)


def test_build_store_per_setting(tmp_path):
    assert isinstance(build_store(Settings(chain_store="memory")), InMemoryChainStore)
    assert isinstance(build_store(Settings(chain_store="database")), DatabaseChainStore)

    store = build_store(Settings(chain_store="yaml", chains_dir=tmp_path))
    assert isinstance(store, YamlChainStore)
    assert store.directory == tmp_path


def test_build_sinks_per_setting(tmp_path):
    assert build_sinks(Settings(record_history=False)) == []

    sinks = build_sinks(Settings(record_history=True, execution_log_dir=tmp_path))
    assert [type(sink) for sink in sinks] == [DatabaseExecutionSink, JsonlExecutionSink]


def test_build_executor_from_settings(tmp_path):
    settings = Settings(
        chain_store="yaml",
        chains_dir=Path(__file__).parent.parent / "chains",
        record_history=False,
        max_chain_steps=12,
        max_recursion_depth=4,
        module_timeout_ms=1500,
    )
    executor = build_executor(settings)

    assert executor.max_steps == 12
    assert executor.max_recursion_depth == 4
    assert executor.invoker.default_timeout_ms == 1500
    assert executor.caller.base_url("intent") == "http://localhost:3032"
    assert executor.sinks == []
