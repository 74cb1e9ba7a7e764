"""
Tests for the background run activity and the chain engine
"""

import pytest
from temporalio.testing import ActivityEnvironment

from chain_gateway.activities import ChainRunRequest, run_chain_activity
from chain_gateway.chains import ChainExecutor
from chain_gateway.chains.engine import ChainEngine
from chain_gateway.runtime import set_executor
from chain_gateway.workflows import ChainExecutionWorkflow

from conftest import make_chain, module_step, ok, run


@pytest.fixture
def shared_executor(store, caller):
    caller.route("svc", "/a", ok({"value": 3}))
    store.add(make_chain(id="saved", steps=[module_step("a")], output_template={"value": "{{a.response.value}}"}))
    executor = ChainExecutor(store, caller)
    set_executor(executor)
    yield executor
    set_executor(None)


def test_activity_runs_saved_chain(shared_executor):
    request = ChainRunRequest(chain_id="saved", input={"q": 1}, user_id="alice", execution_id="exec-1")

    result = run(ActivityEnvironment().run(run_chain_activity, request))

    assert result["execution_id"] == "exec-1"
    assert result["status"] == "completed"
    assert result["output"] == {"value": 3}
    assert result["user_id"] == "alice"


def test_activity_runs_ad_hoc_chain(shared_executor):
    chain = make_chain(name="inline", steps=[module_step("a")])
    request = ChainRunRequest(chain=chain.model_dump(mode="json", by_alias=True, exclude_none=True))

    result = run(ActivityEnvironment().run(run_chain_activity, request))

    assert result["chain_name"] == "inline"
    assert result["success"] is True


def test_activity_reports_unknown_chain_as_result(shared_executor):
    result = run(ActivityEnvironment().run(run_chain_activity, ChainRunRequest(chain_id="ghost")))

    assert result["error_code"] == "CHAIN_NOT_FOUND"
    assert result["success"] is False


def test_activity_requires_a_chain(shared_executor):
    with pytest.raises(ValueError):
        run(ActivityEnvironment().run(run_chain_activity, ChainRunRequest()))


class FakeHandle:
    def __init__(self, client, workflow_id):
        self.client = client
        self.workflow_id = workflow_id

    async def query(self, query):
        self.client.calls.append(("query", self.workflow_id, query))
        return {"status": "running"}

    async def result(self):
        self.client.calls.append(("result", self.workflow_id))
        return {"success": True}

    async def cancel(self):
        self.client.calls.append(("cancel", self.workflow_id))


class FakeTemporalClient:
    def __init__(self):
        self.calls = []

    async def start_workflow(self, workflow_run, request, id, task_queue):
        self.calls.append(("start", workflow_run, request, id, task_queue))

    def get_workflow_handle(self, workflow_id):
        return FakeHandle(self, workflow_id)


def test_engine_starts_saved_chain():
    client = FakeTemporalClient()
    engine = ChainEngine(client, task_queue="chains")

    workflow_id = run(engine.start_chain("character_context", {"userId": "u1"}, user_id="alice"))

    _, workflow_run, request, started_id, task_queue = client.calls[0]
    assert workflow_run == ChainExecutionWorkflow.run
    assert started_id == workflow_id
    assert workflow_id.startswith("chain-character_context-")
    assert task_queue == "chains"
    assert request.chain_id == "character_context"
    assert request.chain is None
    assert request.input == {"userId": "u1"}
    assert request.user_id == "alice"
    assert workflow_id.endswith(request.execution_id)


def test_engine_starts_ad_hoc_chain():
    client = FakeTemporalClient()
    engine = ChainEngine(client)

    chain = make_chain(name="my chain", steps=[module_step("a")])
    workflow_id = run(engine.start_chain(chain))

    request = client.calls[0][2]
    assert workflow_id.startswith("chain-my_chain-")
    assert request.chain_id is None
    assert request.chain["steps"][0]["id"] == "a"


def test_engine_status_result_and_cancel():
    client = FakeTemporalClient()
    engine = ChainEngine(client)

    assert run(engine.get_chain_status("wf-1")) == {"status": "running"}
    assert run(engine.get_chain_result("wf-1")) == {"success": True}
    run(engine.cancel_chain("wf-1"))

    assert client.calls == [
        ("query", "wf-1", ChainExecutionWorkflow.get_status),
        ("result", "wf-1"),
        ("cancel", "wf-1"),
    ]
