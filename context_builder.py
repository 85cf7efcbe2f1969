# FILE: context_builder.py

import logging
from collections import defaultdict
from datetime import datetime, time, timedelta, timezone
from typing import Optional

import ontology
from config import (
    UPCOMING_DAYS, RECENT_DAYS, RECENT_NOTES_LIMIT, CONVERSATION_HISTORY_LIMIT,
    TASK_REVIEWS_LIMIT, PROJECT_REVIEWS_LIMIT, MAX_ACTIVE_TASKS,
)
from db_manager import DatabaseManager
from insights import calculate_work_patterns
from time_utils import derive_streak, local_now, week_start

logger = logging.getLogger(__name__)


def format_display_date(moment: datetime) -> str:
    return f"{moment:%A}, {moment:%B} {moment.day}, {moment.year}"


def format_display_time(moment: datetime) -> str:
    hour12 = moment.hour % 12 or 12
    period = "PM" if moment.hour >= 12 else "AM"
    return f"{hour12}:{moment.minute:02d} {period}"


def summarize_behaviors(behaviors, checkins, today) -> list:
    by_behavior = defaultdict(list)
    for checkin in checkins:
        by_behavior[checkin.behavior_id].append(checkin)

    summaries = []
    for behavior in behaviors:
        history = by_behavior.get(behavior.id, [])
        completed_dates = [c.date for c in history if c.completed]
        summaries.append(ontology.BehaviorSummary(
            behavior=behavior,
            completed_count=len(completed_dates),
            checkin_count=len(history),
            streak=derive_streak(completed_dates, today),
        ))
    return summaries


def build_context(db: DatabaseManager, user_id: str, now: Optional[datetime] = None,
                  timezone_name: Optional[str] = None) -> ontology.AssistantContext:
    """
    Collects everything the assistant may need for one chat turn.

    `now` is injected so every window below is computed from the same "today".
    Only the profile read is allowed to fail: the prompt falls back to
    defaults without it. Empty tables simply produce empty lists.
    """
    moment = local_now(now, timezone_name)
    today = moment.date()
    recent_day = today - timedelta(days=RECENT_DAYS)
    # Note timestamps are naive UTC.
    recent_since = (datetime.combine(recent_day, time.min, tzinfo=moment.tzinfo)
                    .astimezone(timezone.utc).replace(tzinfo=None))

    try:
        profile = db.get_user_profile(user_id)
    except Exception as e:
        logger.error("Failed to load profile for user %s, continuing with defaults. Error: %s", user_id, e)
        profile = None
    logger.info("User profile loaded: %s", "Yes" if profile else "No")

    behaviors = db.get_behaviors(user_id)
    checkins = db.get_checkins_since(user_id, recent_day)
    reviews = db.get_reviews(user_id, task_limit=TASK_REVIEWS_LIMIT, project_limit=PROJECT_REVIEWS_LIMIT)

    context = ontology.AssistantContext(
        today=today,
        display_date=format_display_date(moment),
        current_time=format_display_time(moment),
        user_profile=profile,
        quarterly_plan=db.get_latest_quarterly_plan(user_id),
        weekly_plan=db.get_weekly_plan(user_id, week_start(today)),
        time_blocks=db.get_time_blocks(user_id, today),
        future_blocks=db.get_time_blocks_between(user_id, today, today + timedelta(days=UPCOMING_DAYS)),
        active_tasks=db.get_active_tasks(user_id, limit=MAX_ACTIVE_TASKS),
        queued_tasks=db.get_queued_tasks(user_id),
        recent_notes=db.get_recent_notes(user_id, recent_since, RECENT_NOTES_LIMIT),
        behaviors=summarize_behaviors(behaviors, checkins, today),
        conversation_history=db.get_conversation_history(user_id, CONVERSATION_HISTORY_LIMIT),
        reviews=reviews,
        work_patterns=calculate_work_patterns(reviews),
    )
    logger.info("Context built for %s: %d block(s) today, %d active task(s), %d queued, %d note(s), %d behavior(s).",
                today, len(context.time_blocks), len(context.active_tasks), len(context.queued_tasks),
                len(context.recent_notes), len(context.behaviors))
    return context
