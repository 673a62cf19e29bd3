"""Run assembly, error aggregation and the workflow facade."""

import pytest

from nodeflow.constants import (
    DAY_MS,
    GENERIC_FAILURE_MESSAGE,
    NO_TRIGGER_NODE_MESSAGE,
    NODE_DISABLED_REASON,
    SUCCESS_MESSAGE,
)
from nodeflow.core.exceptions import NodeNotFoundError, WorkflowValidationError
from nodeflow.models import EntryStatus, ExecutionStatus

from conftest import make_edge, make_node


def chain(*nodes):
    """Edges linking ``nodes`` in sequence."""
    return [make_edge(a["id"], b["id"]) for a, b in zip(nodes, nodes[1:])]


# ==============================================================================
# Manual runs
# ==============================================================================

async def test_manual_trigger_then_computation(service, recorder, notifier):
    t1 = make_node("t1", "manual_trigger")
    n1 = make_node("n1", "computation", {"EXPRESSION_CODE": "10 % 3"})
    service.set_graph([t1, n1], chain(t1, n1))

    result = await service.run_workflow()

    assert result["success"] is True
    assert result["mode"] == "manual"
    execution = recorder.execution
    assert [e.node_id for e in execution.entries] == ["t1", "n1"]
    assert execution.entries[0].output == {"trigger": "manual_trigger"}
    assert execution.entries[1].output == {"result": 1}
    assert execution.status == ExecutionStatus.SUCCESS
    assert execution.trigger_description.startswith("Manual trigger at ")
    assert recorder.selected_entry.node_id == "t1"
    assert notifier.last.message == SUCCESS_MESSAGE


async def test_muted_node_is_skipped_without_halting(service, recorder, node_executor, monkeypatch):
    trigger = make_node("t", "manual_trigger")
    a = make_node("a", "computation", {"EXPRESSION_CODE": "1 / 0"}, muted=True)
    b = make_node("b", "computation", {"EXPRESSION_CODE": "2 + 2"})
    service.set_graph([trigger, a, b], chain(trigger, a, b))

    dispatched = []
    real_execute = node_executor.execute

    async def spy(node, context=None):
        dispatched.append(node.id)
        return await real_execute(node, context)

    monkeypatch.setattr(node_executor, "execute", spy)

    await service.run_workflow()

    entries = recorder.execution.entries
    assert len(entries) == 3
    assert entries[1].status == EntryStatus.SKIPPED
    assert entries[1].duration_ms == 0
    assert entries[1].output == {"skipped": True, "reason": NODE_DISABLED_REASON}
    assert entries[2].status == EntryStatus.SUCCESS
    assert entries[2].output == {"result": 4}
    assert dispatched == ["t", "b"]
    assert recorder.execution.status == ExecutionStatus.SUCCESS


async def test_script_error_is_non_fatal(service, recorder, notifier):
    trigger = make_node("t", "manual_trigger")
    before = make_node("c", "computation", {"EXPRESSION_CODE": "1 + 1"})
    script = make_node("r", "run_code", {"JAVASCRIPT_CODE": 'raise RuntimeError("script blew up")'})
    after = make_node("d", "computation", {"EXPRESSION_CODE": "3"})
    service.set_graph([trigger, before, script, after], chain(trigger, before, script, after))

    await service.run_workflow()

    execution = recorder.execution
    statuses = [e.status for e in execution.entries]
    assert statuses == [EntryStatus.SUCCESS, EntryStatus.SUCCESS, EntryStatus.ERROR, EntryStatus.SUCCESS]
    assert "script blew up" in execution.entries[2].output["error"]
    assert execution.status == ExecutionStatus.ERROR
    assert notifier.last.level == "error"
    assert "script blew up" in notifier.last.message


async def test_entry_input_is_user_input(service, recorder):
    trigger = make_node("t", "manual_trigger")
    n = make_node("n", "computation", {"EXPRESSION_CODE": "5"}, label="Five")
    service.set_graph([trigger, n], chain(trigger, n))

    await service.run_workflow()

    entry = recorder.execution.entries[1]
    assert entry.input == {"EXPRESSION_CODE": "5"}
    assert entry.node_name == "Five"


async def test_cycle_nodes_are_not_run(service, recorder):
    nodes = [make_node("t", "manual_trigger"), make_node("a", "computation", {"EXPRESSION_CODE": "1"}),
             make_node("b", "computation", {"EXPRESSION_CODE": "2"})]
    service.set_graph(nodes, [make_edge("t", "a"), make_edge("a", "b"), make_edge("b", "a")])

    await service.run_workflow()

    assert [e.node_id for e in recorder.execution.entries] == ["t"]


async def test_no_trigger_is_validation_error(service, recorder, notifier):
    service.set_graph([make_node("a", "computation", {"EXPRESSION_CODE": "1"})], [])

    result = await service.run_workflow()

    assert result["success"] is False
    assert result["error"] == NO_TRIGGER_NODE_MESSAGE
    assert not recorder.has_execution
    assert notifier.last.level == "error"
    assert service.state == "idle"


async def test_new_run_replaces_previous_execution(service, recorder):
    trigger = make_node("t", "manual_trigger")
    service.set_graph([trigger], [])

    await service.run_workflow()
    first = recorder.execution
    await service.run_workflow()

    assert recorder.execution is not first
    assert len(recorder.entries) == 1


# ==============================================================================
# Single node
# ==============================================================================

async def test_execute_single_node(service, recorder, notifier):
    service.set_graph([make_node("n", "computation", {"EXPRESSION_CODE": "7 * 6"})], [])

    entry = await service.execute_single_node("n")

    assert entry.output == {"result": 42}
    assert recorder.execution.entries == [entry]
    assert recorder.selected_entry is entry
    assert notifier.last.message == SUCCESS_MESSAGE


async def test_execute_single_node_error(service, recorder, notifier):
    service.set_graph([make_node("n", "computation", {"EXPRESSION_CODE": "1 +"})], [])

    entry = await service.execute_single_node("n")

    assert entry.status == EntryStatus.ERROR
    assert recorder.execution.status == ExecutionStatus.ERROR
    assert notifier.last.message == entry.output["error"]


async def test_execute_unknown_node(service, recorder):
    with pytest.raises(NodeNotFoundError):
        await service.execute_single_node("missing")
    assert not recorder.has_execution


async def test_error_without_message_uses_fallback(service, notifier, node_executor, monkeypatch):
    from nodeflow.models import NodeExecutionResult

    async def failing(node, context=None):
        return NodeExecutionResult(output={}, status=EntryStatus.ERROR)

    monkeypatch.setattr(node_executor, "execute", failing)
    service.set_graph([make_node("t", "manual_trigger")], [])

    await service.run_workflow()

    assert notifier.last.message == GENERIC_FAILURE_MESSAGE


# ==============================================================================
# Schedule
# ==============================================================================

async def test_schedule_trigger_arms_and_aborts(service, recorder, controller):
    controller.immediate_threshold_ms = DAY_MS
    trigger = make_node("s", "schedule_trigger", {
        "TRIGGER_ON": "min", "INTERVAL_BETWEEN_TRIGGER": "5", "TIME_TO_TRIGGER": "00:00",
    })
    n = make_node("n", "computation", {"EXPRESSION_CODE": "1"})
    service.set_graph([trigger, n], chain(trigger, n))

    result = await service.run_workflow()

    assert result["mode"] == "schedule"
    assert result["interval_ms"] == 300_000
    assert recorder.execution.entries[0].output == {"trigger": "schedule_trigger"}
    assert recorder.execution.trigger_description.startswith("Schedule trigger (every 5 min")
    assert service.is_trigger_armed
    assert service.state == "scheduled"

    assert service.abort() is True
    assert not service.is_trigger_armed
    assert service.state == "idle"


async def test_invalid_schedule_configuration(service, recorder):
    trigger = make_node("s", "schedule_trigger", {"INTERVAL_BETWEEN_TRIGGER": "often"})
    service.set_graph([trigger], [])

    result = await service.run_workflow()

    assert result["success"] is False
    assert not service.is_trigger_armed
    assert not recorder.has_execution


async def test_overflowing_schedule_interval_is_a_validation_error(service, recorder, notifier):
    trigger = make_node("s", "schedule_trigger", {"INTERVAL_BETWEEN_TRIGGER": "1e400"})
    service.set_graph([trigger], [])

    result = await service.run_workflow()

    assert result["success"] is False
    assert result["error"].startswith("Invalid schedule configuration")
    assert notifier.last.level == "error"
    assert not service.is_trigger_armed
    assert not recorder.has_execution


async def test_second_trigger_with_bad_config_is_pass_through(service, recorder, notifier):
    manual = make_node("t", "manual_trigger")
    extra = make_node("s", "schedule_trigger", {"INTERVAL_BETWEEN_TRIGGER": "abc"})
    service.set_graph([manual, extra], chain(manual, extra))

    await service.run_workflow()

    execution = recorder.execution
    assert [e.status for e in execution.entries] == [EntryStatus.SUCCESS, EntryStatus.SUCCESS]
    assert execution.entries[1].output == {"trigger": "schedule_trigger"}
    assert execution.status == ExecutionStatus.SUCCESS
    assert notifier.last.message == SUCCESS_MESSAGE


# ==============================================================================
# Graph operations
# ==============================================================================

def test_add_node_from_template(service):
    node = service.add_node_from_template("API Call", {"URL": "https://x.test", "METHOD": "GET", "BODY": "b"})
    assert node.data.action_type == "api_call"
    assert "BODY" not in node.user_input
    assert service.graph.get_node(node.id) is not None


def test_add_node_from_unknown_template(service):
    with pytest.raises(WorkflowValidationError):
        service.add_node_from_template("Send Fax")


def test_import_failure_is_notified(service, notifier):
    with pytest.raises(WorkflowValidationError):
        service.import_graph("{broken")
    assert notifier.last.level == "error"
    assert service.graph.node_count == 0
