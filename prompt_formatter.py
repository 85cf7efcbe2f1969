# FILE: prompt_formatter.py

from typing import List, Optional

import ontology
from config import (
    DEFAULT_AI_NAME, DEFAULT_USER_NAME, DEFAULT_PERSONALITY, DEFAULT_REMINDER_STYLE,
    PERSONALITY_INSTRUCTIONS, REMINDER_STYLE_INSTRUCTIONS,
    ACCOUNTABILITY_INSTRUCTION, SUGGESTIONS_INSTRUCTION, INSIGHTS_INSTRUCTION,
    IDENTITY_PROMPT, SCHEDULING_GUIDELINES_PROMPT, RULES_PROMPT, CAPABILITIES_PROMPT,
    MAX_ACTIVE_TASKS, QUEUED_TASKS_SHOWN, NOTES_SHOWN, NOTE_EXCERPT_CHARS, BEHAVIORS_SHOWN,
)
from insights import peak_hours
from time_utils import format_clock

DONE_MARKER = " ✓"


def _clock(value) -> str:
    return format_clock(value) if value else "Not specified"


def block_line(block: ontology.TimeBlock, show_done: bool = True) -> str:
    title = f" - {block.task_title}" if block.task_title else ""
    done = DONE_MARKER if show_done and block.completed else ""
    return f"{format_clock(block.start_time)}-{format_clock(block.end_time)}: {block.block_type}{title}{done}"


def note_excerpt(content: str) -> str:
    if len(content) > NOTE_EXCERPT_CHARS:
        return content[:NOTE_EXCERPT_CHARS] + "..."
    return content


def _identity_section(profile: Optional[ontology.UserProfile]) -> List[str]:
    ai_name = (profile.ai_name if profile else None) or DEFAULT_AI_NAME
    user_name = (profile.display_name if profile else None) or DEFAULT_USER_NAME
    personality = (profile.ai_personality if profile else None) or DEFAULT_PERSONALITY
    reminder_style = (profile.reminder_style if profile else None) or DEFAULT_REMINDER_STYLE

    lines = [
        IDENTITY_PROMPT.replace("{{ai_name}}", ai_name).replace("{{user_name}}", user_name),
        "",
        f"PERSONALITY: {PERSONALITY_INSTRUCTIONS.get(personality, PERSONALITY_INSTRUCTIONS[DEFAULT_PERSONALITY])}",
        f"REMINDER STYLE: {REMINDER_STYLE_INSTRUCTIONS.get(reminder_style, REMINDER_STYLE_INSTRUCTIONS[DEFAULT_REMINDER_STYLE])}",
    ]
    if profile and profile.wants_accountability:
        lines.append(ACCOUNTABILITY_INSTRUCTION)
    if profile and profile.wants_suggestions:
        lines.append(SUGGESTIONS_INSTRUCTION)
    if profile and profile.wants_insights:
        lines.append(INSIGHTS_INSTRUCTION)
    return lines


def _profile_section(profile: ontology.UserProfile) -> List[str]:
    lines = [
        "USER PROFILE:",
        f"- Name: {profile.display_name or DEFAULT_USER_NAME}",
        f"- Work Style: {profile.work_style or 'Not specified'}",
        f"- Chronotype: {profile.chronotype or 'Not specified'}",
        f"- Peak Hours: {_clock(profile.peak_hours_start)}-{_clock(profile.peak_hours_end)}",
    ]
    if profile.preferred_work_duration:
        lines.append(f"- Preferred Work Duration: {profile.preferred_work_duration} minutes")
    if profile.preferred_break_duration:
        lines.append(f"- Preferred Break Duration: {profile.preferred_break_duration} minutes")
    lines.append(f"- Employment: {profile.employment_type or 'Not specified'}")
    if profile.has_fixed_schedule:
        lines.append(f"- Fixed Schedule: {_clock(profile.typical_work_start)}-{_clock(profile.typical_work_end)}")
    if profile.motivations:
        lines.append(f"- Motivations: {', '.join(profile.motivations)}")
    if profile.goals_short_term:
        lines.append(f"- Short-term Goals: {profile.goals_short_term}")
    if profile.goals_long_term:
        lines.append(f"- Long-term Goals: {profile.goals_long_term}")
    if profile.health_considerations:
        lines.append(f"- Health Considerations: {', '.join(profile.health_considerations)}")
    if profile.accommodation_preferences:
        lines.append(f"- Accommodation Preferences: {profile.accommodation_preferences}")
    if profile.has_caregiving_responsibilities:
        lines.append("- Has Caregiving Responsibilities: Yes")
    return lines


def _work_patterns_section(context: ontology.AssistantContext) -> List[str]:
    patterns = context.work_patterns
    lines = [f"WORK PATTERNS & PREFERENCES (from {len(context.reviews)} completed reviews):"]
    if patterns.enjoyed_tags:
        lines.append(f"- Most Enjoyed Work: {', '.join(patterns.enjoyed_tags)}")
    if patterns.high_energy_tags:
        lines.append(f"- High Energy Required: {', '.join(patterns.high_energy_tags)}")
    if patterns.drained_by_tags:
        lines.append(f"- Draining Work (high energy, low enjoyment): {', '.join(patterns.drained_by_tags)}")
    if patterns.preferred_difficulty:
        lines.append(f"- Preferred Difficulty: {patterns.preferred_difficulty}")

    peak_start, peak_end = peak_hours(context.user_profile)
    lines.append("")
    lines.append(SCHEDULING_GUIDELINES_PROMPT
                 .replace("{{high_energy_tags}}", ", ".join(patterns.high_energy_tags) or "none identified yet")
                 .replace("{{peak_start}}", format_clock(peak_start))
                 .replace("{{peak_end}}", format_clock(peak_end)))
    return lines


def _numbered(items: List[str], empty: str) -> List[str]:
    if not items:
        return [empty]
    return [f"{i}. {item}" for i, item in enumerate(items, start=1)]


def _upcoming_section(blocks: List[ontology.TimeBlock]) -> List[str]:
    lines = ["UPCOMING SCHEDULE (Next 7 Days):"]
    if not blocks:
        lines.append("No future blocks scheduled")
        return lines
    current = None
    for block in blocks:
        if block.date != current:
            current = block.date
            lines.append(f"{current:%a}, {current:%b} {current.day}:")
        lines.append(f"  {block_line(block, show_done=False)}")
    return lines


def _notes_section(notes: List[ontology.Note]) -> List[str]:
    lines = [f"RECENT NOTES (Last 30 Days - {len(notes)}):"]
    if not notes:
        lines.append("No notes yet")
        return lines
    for i, note in enumerate(notes[:NOTES_SHOWN], start=1):
        tags = ", ".join(t.tag_value for t in note.tags) or "no tags"
        source = f" from {note.source_name}" if note.source_name else ""
        lines.append(f'{i}. "{note.title}"{source} [{tags}]')
        lines.append(f"   {note_excerpt(note.content)}")
    return lines


def _behavior_line(summary: ontology.BehaviorSummary, count: int, noun: str) -> str:
    behavior = summary.behavior
    line = f"- {behavior.behavior_name} ({behavior.frequency}) - {count} {noun} in last 30 days"
    if summary.streak:
        line += f", {summary.streak}-day streak"
    return line


def _behaviors_section(behaviors: List[ontology.BehaviorSummary]) -> List[str]:
    rewarding = [b for b in behaviors if b.behavior.is_rewarding]
    non_rewarding = [b for b in behaviors if not b.behavior.is_rewarding]

    lines = ["BEHAVIOR TRACKING:", f"Rewarding Behaviors ({len(rewarding)}):"]
    lines.extend([_behavior_line(b, b.completed_count, "check-ins") for b in rewarding[:BEHAVIORS_SHOWN]]
                 or ["- None tracked"])
    lines.append(f"Non-Rewarding Behaviors ({len(non_rewarding)}):")
    lines.extend([_behavior_line(b, b.checkin_count, "occurrences") for b in non_rewarding[:BEHAVIORS_SHOWN]]
                 or ["- None tracked"])
    return lines


def format_system_prompt(context: ontology.AssistantContext) -> str:
    """
    Renders the snapshot into the model's system instructions.

    Pure: the same context always yields the same text, and nothing here
    touches the database or the model.
    """
    profile = context.user_profile
    user_name = (profile.display_name if profile else None) or DEFAULT_USER_NAME
    sections = [
        _identity_section(profile),
        [f"CURRENT DATE/TIME: {context.display_date} {context.current_time}"],
    ]
    if profile:
        sections.append(_profile_section(profile))
    if context.reviews:
        sections.append(_work_patterns_section(context))

    objectives = context.quarterly_plan.objectives if context.quarterly_plan else []
    sections.append(["QUARTERLY OBJECTIVES:"] + _numbered(objectives, "None set"))

    plan_text = context.weekly_plan.plan_text if context.weekly_plan else ""
    sections.append(["THIS WEEK'S PLAN:", plan_text or "No plan yet"])

    sections.append(["TODAY'S SCHEDULE:"]
                    + ([block_line(b) for b in context.time_blocks] or ["No blocks scheduled"]))

    active = context.active_tasks[:MAX_ACTIVE_TASKS]
    sections.append([f"ACTIVE TASKS ({len(context.active_tasks)}/{MAX_ACTIVE_TASKS}):"]
                    + _numbered([t.title for t in active], "None"))

    queued = context.queued_tasks[:QUEUED_TASKS_SHOWN]
    sections.append([f"QUEUED TASKS ({len(context.queued_tasks)}):"]
                    + _numbered([t.title for t in queued], "None"))

    sections.append(_upcoming_section(context.future_blocks))
    sections.append(_notes_section(context.recent_notes))
    sections.append(_behaviors_section(context.behaviors))
    sections.append([RULES_PROMPT])
    sections.append([CAPABILITIES_PROMPT.replace("{{user_name}}", user_name)])

    return "\n\n".join("\n".join(section) for section in sections)
