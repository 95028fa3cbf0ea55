from core.services.memory_query import FilterSpec, get_memory, list_memories
from core.services.memory_storage import create_memory, delete_memory
from core.services.task_service import add_task_note, create_task, list_tasks, update_task_status


def test_create_and_list_tasks(store):
    task_id = create_task(store, "Write report", namespace="work")
    create_memory(store, content="not a task")

    tasks = list_tasks(store)

    assert tasks == [{"id": task_id, "title": "Write report", "status": "todo"}]
    item = get_memory(store, task_id)
    assert item["type"] == "task"
    assert item["content"] == "Write report"
    assert item["namespace"] == "work"


def test_list_tasks_includes_archived(store):
    open_id = create_task(store, "Open")
    archived_id = create_task(store, "Shelved")
    delete_memory(store, archived_id)

    assert {task["id"] for task in list_tasks(store)} == {open_id, archived_id}
    assert [item["id"] for item in list_memories(store, FilterSpec(types=["task"])).items] == [open_id]


def test_update_status_with_note(store):
    task_id = create_task(store, "Ship it")

    assert update_task_status(store, task_id, "done", note="shipped on time") is True

    assert list_tasks(store)[0]["status"] == "done"
    assert get_memory(store, task_id)["metadata"] == {"status": "done"}
    notes = list_memories(store, FilterSpec(types=["note"])).items
    assert [note["content"] for note in notes] == ["shipped on time"]
    assert notes[0]["refs"] == [task_id]


def test_update_status_rejects_missing_and_non_task(store):
    note_id = create_memory(store, content="plain note")

    assert update_task_status(store, "missing", "done") is False
    assert update_task_status(store, note_id, "done") is False
    assert get_memory(store, note_id)["metadata"] is None


def test_add_note_uses_task_namespace(store):
    task_id = create_task(store, "Plan", namespace="proj")

    note = get_memory(store, add_task_note(store, task_id, "first step"))

    assert note["type"] == "note"
    assert note["namespace"] == "proj"
    assert note["refs"] == [task_id]

    orphan = get_memory(store, add_task_note(store, "missing", "floating"))
    assert orphan["namespace"] == "default"
