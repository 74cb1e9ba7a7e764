"""
Tests for per-execution JSONL logs and the log reader
"""

from chain_gateway.chains import ChainExecutor
from chain_gateway.observability import (
    ExecutionLogReader,
    ExecutionLogger,
    JsonlExecutionSink,
    find_execution_logs,
    find_failed_executions,
    write_execution_log,
)

from conftest import failed, make_chain, module_step, ok, run


def nested_result(executor, store, caller):
    caller.route("svc", "/inner", ok({"v": 1}))
    caller.route("svc", "/outer", failed(500))
    store.add(make_chain(id="inner_chain", steps=[module_step("inner")]))
    chain = make_chain(id="outer_chain", steps=[
        {"id": "call", "type": "chain_call", "chain_id": "inner_chain"},
        module_step("guarded", condition={"field": "input.enabled", "operator": "equals", "value": True}),
        module_step("outer"),
    ])
    return run(executor.execute(chain, {"enabled": False}))


def test_log_contains_one_event_per_step(executor, store, caller, tmp_path):
    result = nested_result(executor, store, caller)

    logger = ExecutionLogger(result, tmp_path)
    path = logger.write()
    entries = logger.get_log_contents()

    assert path.parent == tmp_path
    assert path.name.endswith(f"_{result.execution_id}.jsonl")
    assert [entry["event"] for entry in entries] == [
        "execution.started",
        "step.completed",
        "step.completed",
        "step.skipped",
        "step.failed",
        "execution.finished",
    ]
    assert all(entry["execution_id"] == result.execution_id for entry in entries)
    assert entries[1]["step_id"] == "call"
    assert entries[2]["step_id"] == "inner"
    assert entries[2]["depth"] == 1
    assert entries[4]["level"] == "warning"
    assert entries[-1]["success"] is False
    assert "timestamp" in entries[0]


def test_reader_summary(executor, store, caller, tmp_path):
    result = nested_result(executor, store, caller)
    path = write_execution_log(result, tmp_path)

    reader = ExecutionLogReader(path)
    summary = reader.get_summary()

    assert summary["execution_id"] == result.execution_id
    assert summary["chain_id"] == "outer_chain"
    assert summary["status"] == "completed"
    assert summary["success"] is False
    assert summary["executed_steps"] == ["call", "guarded", "outer"]
    assert summary["failed_steps"] == ["outer"]
    assert [step["step_id"] for step in reader.get_steps(depth=1)] == ["inner"]


def test_jump_is_logged(executor, store, caller, tmp_path):
    caller.route("svc", "/A", ok({}))
    caller.route("svc", "/X", ok({}))
    store.add(make_chain(id="target", steps=[module_step("X")]))
    chain = make_chain(id="source", steps=[module_step("A", conditionalRouting=[{
        "condition": {"field": "A.success", "operator": "equals", "value": True},
        "action": "jump_to_chain",
        "target": "target",
    }])])
    result = run(executor.execute(chain))

    reader = ExecutionLogReader(write_execution_log(result, tmp_path))

    jumped = reader.get_events_by_type("chain.jumped")
    assert jumped[0]["target_chain_id"] == "target"
    assert [step["step_id"] for step in reader.get_steps()] == ["A", "X"]


def test_reader_skips_corrupt_lines(tmp_path):
    path = tmp_path / "20240101_000000_abc.jsonl"
    path.write_text('{"event": "execution.started", "execution_id": "abc"}\nnot json\n\n'
                    '{"event": "execution.finished", "success": true}\n')

    reader = ExecutionLogReader(path)

    assert len(reader.entries) == 2
    assert reader.get_finished()["success"] is True


def test_jsonl_sink_and_failed_search(store, caller, tmp_path):
    caller.route("svc", "/ok", ok({}))
    caller.route("svc", "/bad", failed(503))
    executor = ChainExecutor(store, caller, sinks=[JsonlExecutionSink(tmp_path)])

    good = run(executor.execute(make_chain(id="good", steps=[module_step("ok")])))
    bad = run(executor.execute(make_chain(id="bad", steps=[module_step("bad")])))

    assert len(find_execution_logs(tmp_path)) == 2
    failures = find_failed_executions(tmp_path)
    assert [failure["execution_id"] for failure in failures] == [bad.execution_id]
    assert good.success is True
    assert find_execution_logs(tmp_path / "absent") == []
