"""Execution recorder."""

from nodeflow.models import EntryStatus, Execution, ExecutionEntry, ExecutionStatus


def _execution(n=2):
    entries = [
        ExecutionEntry(node_id=f"n{i}", node_name=f"Node {i}", input={}, output={"result": i},
                       duration_ms=1, status=EntryStatus.SUCCESS)
        for i in range(n)
    ]
    return Execution(started_at=0, duration_ms=2, status=ExecutionStatus.SUCCESS, entries=entries)


def test_starts_empty(recorder):
    assert not recorder.has_execution
    assert recorder.execution is None
    assert recorder.selected_entry is None
    assert recorder.entries == []


def test_set_execution_selects_first_entry(recorder):
    execution = _execution()
    recorder.set_execution(execution)
    assert recorder.execution is execution
    assert recorder.selected_entry.node_id == "n0"


def test_select_entry(recorder):
    execution = _execution()
    recorder.set_execution(execution)

    second = execution.entries[1]
    assert recorder.select_entry(second.id) is second
    assert recorder.selected_entry is second

    assert recorder.select_entry("nope") is None
    assert recorder.selected_entry is second


def test_new_execution_replaces_previous(recorder):
    recorder.set_execution(_execution())
    latest = _execution(1)
    recorder.set_execution(latest)
    assert recorder.execution is latest
    assert len(recorder.entries) == 1


def test_empty_execution_has_no_selection(recorder):
    recorder.set_execution(_execution(0))
    assert recorder.has_execution
    assert recorder.selected_entry is None


def test_clear(recorder):
    recorder.set_execution(_execution())
    recorder.clear_execution()
    assert not recorder.has_execution
    assert recorder.selected_entry is None


def test_entry_serialization():
    entry = _execution(1).entries[0]
    data = entry.to_dict()
    assert data["nodeId"] == "n0"
    assert data["durationMs"] == 1
    assert data["status"] == "success"
