"""
Tests for chain stores
"""

import pytest

from chain_gateway.chains import ChainNotFoundError, InMemoryChainStore, YamlChainStore

from conftest import make_chain, module_step, run

CHAIN_YAML = """
id: {chain_id}
user_id: {user_id}
name: {name}
steps:
  - id: a
    module: svc
    endpoint: /a
"""


def test_in_memory_lookup_by_id_and_name():
    chain = make_chain(id=5, name="five", steps=[module_step("a")])
    store = InMemoryChainStore([chain])

    assert run(store.get_chain(5)) is chain
    assert run(store.get_chain("5")) is chain
    assert run(store.get_chain("five")) is chain
    assert run(store.list_chains()) == [chain]


def test_in_memory_unknown_chain_raises():
    store = InMemoryChainStore()
    with pytest.raises(ChainNotFoundError) as exc_info:
        run(store.get_chain("ghost"))
    assert exc_info.value.chain_id == "ghost"


def test_in_memory_filters_by_owner():
    mine = make_chain(id="mine", user_id="alice", steps=[module_step("a")])
    theirs = make_chain(id="theirs", user_id="bob", steps=[module_step("a")])
    store = InMemoryChainStore([mine, theirs])

    assert run(store.list_chains(user_id="alice")) == [mine]
    assert len(run(store.list_chains())) == 2


def test_yaml_store_reads_directory(tmp_path):
    (tmp_path / "one.yaml").write_text(CHAIN_YAML.format(chain_id="one", user_id="alice", name="First"))
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "two.yml").write_text(CHAIN_YAML.format(chain_id=2, user_id="bob", name="Second"))
    (tmp_path / "broken.yaml").write_text("name: broken\n")

    store = YamlChainStore(tmp_path)

    assert run(store.get_chain("one")).name == "First"
    assert run(store.get_chain(2)).name == "Second"
    assert run(store.get_chain("Second")).id == 2
    assert len(run(store.list_chains())) == 2
    with pytest.raises(ChainNotFoundError):
        run(store.get_chain("broken"))


def test_yaml_store_reload_picks_up_changes(tmp_path):
    store = YamlChainStore(tmp_path)
    assert run(store.list_chains()) == []

    (tmp_path / "late.yaml").write_text(CHAIN_YAML.format(chain_id="late", user_id="alice", name="Late"))

    assert store.reload() == 1
    assert run(store.get_chain("late")).name == "Late"


def test_yaml_store_missing_directory(tmp_path):
    store = YamlChainStore(tmp_path / "absent")
    assert run(store.list_chains()) == []
