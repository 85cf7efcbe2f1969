from datetime import datetime, time, timedelta

import pytest

from conftest import TODAY, USER
from ontology import TOOLS
from tool_dispatcher import TOOL_HANDLERS


def test_catalog_and_dispatch_table_agree():
    assert [tool["name"] for tool in TOOLS] == list(TOOL_HANDLERS)
    for tool in TOOLS:
        assert tool["parameters"]["type"] == "object"


def test_unknown_tool(dispatcher):
    assert dispatcher.execute("launch_rocket", {}) == "Unknown tool: launch_rocket"


def test_invalid_arguments_become_an_error_string(dispatcher):
    result = dispatcher.execute("create_time_block", {"start_time": "09:00", "end_time": "10:00", "block_type": "nap"})
    assert result.startswith("Error: Invalid arguments for create_time_block:")


def test_unexpected_failure_becomes_an_error_string(dispatcher, db, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(db, "add_task", broken)
    assert dispatcher.execute("add_task", {"title": "Anything"}) == "Error executing add_task: database is locked"


def test_not_found_ids(dispatcher):
    assert dispatcher.execute("delete_note", {"note_id": 42}) == "Error: Note not found"
    assert dispatcher.execute("complete_task", {"task_id": 42}) == "Error: Task not found"
    assert dispatcher.execute("delete_time_block", {"block_id": 42}) == "Error: Time block not found"
    assert dispatcher.execute("update_behavior", {"behavior_id": 42}) == "Error: Behavior not found"


# --- Time blocks ---

def test_create_time_block_defaults_to_today(dispatcher, db):
    result = dispatcher.execute("create_time_block", {
        "start_time": "09:00", "end_time": "10:30", "block_type": "deep_work", "task_title": "Write report",
    })
    assert result == 'Created deep_work block from 09:00 to 10:30 for "Write report"'
    blocks = db.get_time_blocks(USER, TODAY)
    assert [(b.start_time, b.end_time) for b in blocks] == [(time(9), time(10, 30))]


def test_create_time_block_reports_overlap(dispatcher, db):
    dispatcher.execute("create_time_block", {"start_time": "09:00", "end_time": "10:00", "block_type": "meeting"})
    result = dispatcher.execute("create_time_block", {
        "start_time": "09:30", "end_time": "10:15", "block_type": "deep_work",
    })
    assert result == "Error: Time block overlaps with existing block 09:00-10:00 (meeting)"
    assert len(db.get_time_blocks(USER, TODAY)) == 1


@pytest.mark.parametrize("midnight", ["00:00", "24:00"])
def test_time_block_can_run_until_midnight(dispatcher, db, midnight):
    result = dispatcher.execute("create_time_block", {
        "start_time": "23:00", "end_time": midnight, "block_type": "personal", "task_title": "Wind down",
    })
    assert result == 'Created personal block from 23:00 to 00:00 for "Wind down"'

    clash = dispatcher.execute("create_time_block", {"start_time": "23:30", "end_time": "23:45", "block_type": "break"})
    assert clash == "Error: Time block overlaps with existing block 23:00-00:00 (Wind down)"
    assert [(b.start_time, b.end_time) for b in db.get_time_blocks(USER, TODAY)] == [(time(23), time(0))]


def test_time_block_update_and_delete(dispatcher, db):
    block = db.create_time_block(USER, TODAY, time(9), time(10), "deep_work", "Focus")
    updated = dispatcher.execute("update_time_block", {"block_id": block.id, "completed": True})
    assert updated.startswith('Updated time block "Focus"')
    assert db.get_time_blocks(USER, TODAY)[0].completed is True

    deleted = dispatcher.execute("delete_time_block", {"block_id": block.id})
    assert deleted == 'Deleted time block "Focus" (09:00-10:00)'
    assert db.get_time_blocks(USER, TODAY) == []


# --- Tasks ---

def test_add_and_pull_task(dispatcher, db):
    assert dispatcher.execute("add_task", {"title": "Plan launch"}) == 'Added task "Plan launch" to queue at position 1'
    task = db.get_queued_tasks(USER)[0]
    assert dispatcher.execute("pull_task", {"task_id": task.id}) == 'Pulled task "Plan launch" to active status'
    assert dispatcher.execute("complete_task", {"task_id": task.id}) == 'Completed task "Plan launch"'


def test_pull_task_past_the_cap(dispatcher, db):
    tasks = [db.add_task(USER, f"Task {i}") for i in range(4)]
    for task in tasks[:3]:
        db.pull_task(USER, task.id)

    result = dispatcher.execute("pull_task", {"task_id": tasks[3].id})

    assert result == "Error: You already have 3 active tasks. Complete one before pulling another."
    assert [t.id for t in db.get_queued_tasks(USER)] == [tasks[3].id]


def test_update_and_delete_task(dispatcher, db):
    task = db.add_task(USER, "Draft")
    assert dispatcher.execute("update_task", {"task_id": task.id, "title": "Draft v2"}) == 'Updated task "Draft"'
    assert db.get_queued_tasks(USER)[0].title == "Draft v2"
    assert dispatcher.execute("delete_task", {"task_id": task.id}) == 'Deleted task "Draft v2"'
    assert db.get_queued_tasks(USER) == []


# --- Notes ---

def test_note_lifecycle(dispatcher, db):
    created = dispatcher.execute("create_note", {
        "title": "Deep Work", "content": "Focus is rare", "source_type": "book", "tags": ["focus", "attention"],
    })
    assert created == 'Created note "Deep Work" with tags: focus, attention'

    since = TODAY - timedelta(days=30)
    note = db.get_recent_notes(USER, since=datetime.combine(since, time()), limit=20)[0]
    updated = dispatcher.execute("update_note", {"note_id": note.id, "tags": ["habits"]})
    assert updated == 'Updated note "Deep Work" (tags: habits)'

    assert dispatcher.execute("delete_note", {"note_id": note.id}) == 'Deleted note "Deep Work"'


# --- Behaviors ---

def test_behavior_lifecycle(dispatcher, db):
    created = dispatcher.execute("create_behavior", {
        "behavior_name": "Read", "frequency": "daily", "is_rewarding": True,
    })
    assert created == 'Created rewarding behavior "Read" (daily)'
    behavior = db.get_behaviors(USER)[0]

    logged = dispatcher.execute("log_behavior_checkin", {
        "behavior_id": behavior.id, "completed": True, "reward_score": 8,
    })
    assert logged == 'Logged check-in for "Read" on 2025-01-15: completed (reward score: 8/10)'

    assert dispatcher.execute("update_behavior", {"behavior_id": behavior.id, "category": "health"}) == 'Updated behavior "Read"'
    assert dispatcher.execute("delete_behavior", {"behavior_id": behavior.id}) == \
        'Deleted behavior "Read" and all its check-ins'


def test_reward_score_is_bounded(dispatcher, db):
    behavior = db.create_behavior(USER, "Read", "daily", True)
    result = dispatcher.execute("log_behavior_checkin", {"behavior_id": behavior.id, "completed": True, "reward_score": 11})
    assert result.startswith("Error: Invalid arguments for log_behavior_checkin:")


# --- Plans & work hours ---

def test_weekly_plan_targets_current_week(dispatcher, db):
    result = dispatcher.execute("update_weekly_plan", {"plan_text": "Ship the beta"})
    assert result == "Updated weekly plan for week starting 2025-01-12"


def test_quarterly_plan(dispatcher, db):
    result = dispatcher.execute("update_quarterly_plan", {"quarter": "2025-Q1", "objectives": ["Launch", "Rest"]})
    assert result == "Updated quarterly plan for 2025-Q1 with 2 objectives"
    assert dispatcher.execute("update_quarterly_plan", {"quarter": "Q1", "objectives": []}).startswith("Error: Invalid")


@pytest.mark.parametrize("enabled, expected", [
    (True, "Set work hours for Monday: 09:00-17:00"),
    (False, "Disabled work hours for Monday"),
])
def test_set_work_hours(dispatcher, enabled, expected):
    result = dispatcher.execute("set_work_hours", {
        "day_of_week": 1, "start_time": "09:00", "end_time": "17:00", "is_enabled": enabled,
    })
    assert result == expected


# --- Analysis ---

def test_analyze_empty_day(dispatcher):
    assert dispatcher.execute("analyze_schedule", {"date": "2025-01-15"}) == "No time blocks scheduled for 2025-01-15."


def test_analyze_flags_deep_work_outside_peak_hours(dispatcher, db):
    db.create_time_block(USER, TODAY, time(14), time(16), "deep_work", "Architecture")
    result = dispatcher.execute("analyze_schedule", {"date": "2025-01-15"})
    assert "Optimization Score: 50%" in result
    assert 'High-energy block "Architecture" at 14:00 is outside peak hours (09:00-12:00)' in result


def test_task_insights_without_reviews(dispatcher):
    result = dispatcher.execute("get_task_insights", {})
    assert result.startswith("No reviews found in the last 30 days.")


def test_quarterly_plan_defaults_to_current_quarter(dispatcher, db):
    result = dispatcher.execute("update_quarterly_plan", {"objectives": ["Focus"]})
    assert result == "Updated quarterly plan for 2025-Q1 with 1 objectives"
    assert db.get_latest_quarterly_plan(USER).quarter == "2025-Q1"
