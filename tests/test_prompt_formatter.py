from datetime import date, time

import ontology
from prompt_formatter import block_line, format_system_prompt, note_excerpt

TODAY = date(2025, 1, 15)


def make_context(**overrides):
    values = dict(today=TODAY, display_date="Wednesday, January 15, 2025", current_time="2:00 PM")
    values.update(overrides)
    return ontology.AssistantContext(**values)


def make_block(block_id, start, end, block_type="deep_work", title=None, completed=False, day=TODAY):
    return ontology.TimeBlock(id=block_id, date=day, start_time=start, end_time=end,
                              block_type=block_type, task_title=title, completed=completed)


def make_task(task_id, title, status="backlog", position=None):
    return ontology.Task(id=task_id, title=title, status=status, queue_position=position)


def test_formatting_is_deterministic():
    context = make_context(
        time_blocks=[make_block(1, time(9), time(10), title="Write")],
        queued_tasks=[make_task(1, "Plan", position=1)],
    )
    assert format_system_prompt(context) == format_system_prompt(context)


def test_sections_appear_in_fixed_order():
    prompt = format_system_prompt(make_context())
    headers = [
        "CURRENT DATE/TIME:", "QUARTERLY OBJECTIVES:", "THIS WEEK'S PLAN:", "TODAY'S SCHEDULE:",
        "ACTIVE TASKS (0/3):", "QUEUED TASKS (0):", "UPCOMING SCHEDULE (Next 7 Days):",
        "RECENT NOTES (Last 30 Days - 0):", "BEHAVIOR TRACKING:", "RULES:", "YOUR FULL CAPABILITIES",
    ]
    positions = [prompt.index(header) for header in headers]
    assert positions == sorted(positions)


def test_empty_sections_use_placeholders():
    prompt = format_system_prompt(make_context())
    assert "QUARTERLY OBJECTIVES:\nNone set" in prompt
    assert "THIS WEEK'S PLAN:\nNo plan yet" in prompt
    assert "TODAY'S SCHEDULE:\nNo blocks scheduled" in prompt
    assert "USER PROFILE:" not in prompt
    assert "WORK PATTERNS" not in prompt


def test_block_line_marks_completion():
    assert block_line(make_block(1, time(9), time(10), title="Write", completed=True)) == "09:00-10:00: deep_work - Write ✓"
    assert block_line(make_block(2, time(13), time(13, 30), block_type="break")) == "13:00-13:30: break"


def test_tasks_and_plans_are_numbered():
    context = make_context(
        quarterly_plan=ontology.QuarterlyPlan(id=1, quarter="2025-Q1", objectives=["Launch", "Rest"]),
        active_tasks=[make_task(1, "Ship", status="active")],
        queued_tasks=[make_task(i, f"Queued {i}", position=i) for i in range(1, 8)],
    )
    prompt = format_system_prompt(context)
    assert "QUARTERLY OBJECTIVES:\n1. Launch\n2. Rest" in prompt
    assert "ACTIVE TASKS (1/3):\n1. Ship" in prompt
    assert "QUEUED TASKS (7):" in prompt
    assert "5. Queued 5" in prompt
    assert "Queued 6" not in prompt


def test_upcoming_blocks_are_grouped_by_day():
    context = make_context(future_blocks=[
        make_block(1, time(9), time(10), day=date(2025, 1, 16), title="Draft"),
        make_block(2, time(11), time(12), day=date(2025, 1, 16), block_type="meeting"),
        make_block(3, time(9), time(10), day=date(2025, 1, 20), completed=True),
    ])
    prompt = format_system_prompt(context)
    assert ("Thu, Jan 16:\n  09:00-10:00: deep_work - Draft\n  11:00-12:00: meeting\n"
            "Mon, Jan 20:\n  09:00-10:00: deep_work") in prompt


def test_note_excerpts_are_truncated():
    long_text = "x" * 200
    assert note_excerpt(long_text) == "x" * 150 + "..."
    assert note_excerpt("short") == "short"

    note = ontology.Note(id=1, title="Deep Work", content=long_text, source_type="book", source_name="Cal Newport",
                         tags=[ontology.NoteTag(tag_type="concept", tag_value="focus")])
    prompt = format_system_prompt(make_context(recent_notes=[note]))
    assert '1. "Deep Work" from Cal Newport [focus]\n   ' + "x" * 150 + "..." in prompt


def test_behaviors_show_counts_and_streaks():
    read = ontology.Behavior(id=1, behavior_name="Read", frequency="daily", is_rewarding=True)
    scroll = ontology.Behavior(id=2, behavior_name="Doomscroll", frequency="daily", is_rewarding=False)
    context = make_context(behaviors=[
        ontology.BehaviorSummary(behavior=read, completed_count=12, checkin_count=14, streak=3),
        ontology.BehaviorSummary(behavior=scroll, completed_count=2, checkin_count=5, streak=0),
    ])
    prompt = format_system_prompt(context)
    assert "- Read (daily) - 12 check-ins in last 30 days, 3-day streak" in prompt
    assert "- Doomscroll (daily) - 5 occurrences in last 30 days" in prompt
    assert "Doomscroll (daily) - 5 occurrences in last 30 days, " not in prompt


def test_profile_preferences_map_to_fragments():
    profile = ontology.UserProfile(
        user_id="user-1", display_name="Sam", ai_name="Ada", ai_personality="direct",
        reminder_style="minimal", wants_accountability=True, chronotype="early bird",
        peak_hours_start=time(8), peak_hours_end=time(11),
    )
    prompt = format_system_prompt(make_context(user_profile=profile))
    assert prompt.startswith("You are Ada, Sam's personal productivity assistant")
    assert "PERSONALITY: Be straightforward and honest." in prompt
    assert "REMINDER STYLE: Minimal" in prompt
    assert "HOLD USER ACCOUNTABLE: Yes" in prompt
    assert "PROACTIVE SUGGESTIONS" not in prompt
    assert "- Peak Hours: 08:00-11:00" in prompt
    assert "You have FULL ACCESS to manage Sam's productivity system" in prompt


def test_unknown_personality_uses_default_fragment():
    profile = ontology.UserProfile(user_id="user-1", ai_personality="sarcastic")
    prompt = format_system_prompt(make_context(user_profile=profile))
    assert "PERSONALITY: Be warm, encouraging, and positive." in prompt


def test_work_patterns_section_appears_with_reviews():
    review = ontology.Review(kind="task", subject="Refactor", tags=["coding"], enjoyment_rating=5,
                             energy_required="high", difficulty="hard")
    patterns = ontology.WorkPatterns(high_energy_tags=["coding"], enjoyed_tags=["coding"], preferred_difficulty="hard")
    prompt = format_system_prompt(make_context(reviews=[review], work_patterns=patterns))
    assert "WORK PATTERNS & PREFERENCES (from 1 completed reviews):" in prompt
    assert "Schedule high-energy work (coding) during peak hours (09:00-12:00)" in prompt
    assert prompt.index("WORK PATTERNS") < prompt.index("QUARTERLY OBJECTIVES:")
