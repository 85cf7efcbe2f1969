# FILE: tool_dispatcher.py

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from pydantic import ValidationError

import ontology
import insights
from db_manager import DatabaseManager
from db_models import utcnow
from exceptions import DeepWorkError
from time_utils import format_clock, quarter_key, week_start

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# Tool name -> (argument model, handler method)
TOOL_HANDLERS = {
    "create_time_block": (ontology.CreateTimeBlockArguments, "_create_time_block"),
    "update_time_block": (ontology.UpdateTimeBlockArguments, "_update_time_block"),
    "delete_time_block": (ontology.DeleteTimeBlockArguments, "_delete_time_block"),
    "add_task": (ontology.AddTaskArguments, "_add_task"),
    "update_task": (ontology.UpdateTaskArguments, "_update_task"),
    "delete_task": (ontology.TaskIdArguments, "_delete_task"),
    "pull_task": (ontology.TaskIdArguments, "_pull_task"),
    "complete_task": (ontology.TaskIdArguments, "_complete_task"),
    "create_note": (ontology.CreateNoteArguments, "_create_note"),
    "update_note": (ontology.UpdateNoteArguments, "_update_note"),
    "delete_note": (ontology.DeleteNoteArguments, "_delete_note"),
    "create_behavior": (ontology.CreateBehaviorArguments, "_create_behavior"),
    "update_behavior": (ontology.UpdateBehaviorArguments, "_update_behavior"),
    "delete_behavior": (ontology.DeleteBehaviorArguments, "_delete_behavior"),
    "log_behavior_checkin": (ontology.LogBehaviorCheckinArguments, "_log_behavior_checkin"),
    "update_weekly_plan": (ontology.UpdateWeeklyPlanArguments, "_update_weekly_plan"),
    "update_quarterly_plan": (ontology.UpdateQuarterlyPlanArguments, "_update_quarterly_plan"),
    "set_work_hours": (ontology.SetWorkHoursArguments, "_set_work_hours"),
    "analyze_schedule": (ontology.AnalyzeScheduleArguments, "_analyze_schedule"),
    "get_task_insights": (ontology.GetTaskInsightsArguments, "_get_task_insights"),
}


def _block_label(block: ontology.TimeBlock) -> str:
    return block.task_title or block.block_type


class ToolDispatcher:
    """
    Executes the model's tool calls for one user and one request.

    `execute` never raises: rule rejections come back as "Error: ..." text,
    anything unexpected as "Error executing <tool>: ...", so the model can
    relay the outcome instead of the request failing.
    """

    def __init__(self, db: DatabaseManager, user_id: str, today: date, now: Optional[datetime] = None):
        self.db = db
        self.user_id = user_id
        self.today = today
        self.now = now or utcnow()

    def execute(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        entry = TOOL_HANDLERS.get(tool_name)
        if not entry:
            logger.warning("Model requested unknown tool '%s'.", tool_name)
            return f"Unknown tool: {tool_name}"
        ArgumentModel, handler_name = entry

        try:
            validated_args = ArgumentModel(**(arguments or {}))
            result = getattr(self, handler_name)(validated_args)
            logger.info("Tool %s executed: %s", tool_name, result)
            return result
        except ValidationError as e:
            logger.warning("Invalid arguments for %s: %s", tool_name, e)
            return f"Error: Invalid arguments for {tool_name}: {e}"
        except DeepWorkError as e:
            logger.info("Tool %s rejected: %s", tool_name, e)
            return f"Error: {e}"
        except Exception as e:
            logger.error("An unexpected error occurred executing %s: %s", tool_name, e, exc_info=True)
            return f"Error executing {tool_name}: {e}"

    # --- Time Blocks ---

    def _create_time_block(self, args: ontology.CreateTimeBlockArguments) -> str:
        block = self.db.create_time_block(self.user_id, args.date or self.today, args.start_time, args.end_time,
                                          args.block_type, args.task_title)
        suffix = f' for "{block.task_title}"' if block.task_title else ""
        return (f"Created {block.block_type} block from {format_clock(block.start_time)} "
                f"to {format_clock(block.end_time)}{suffix}")

    def _update_time_block(self, args: ontology.UpdateTimeBlockArguments) -> str:
        changes = args.model_dump(exclude={"block_id"}, exclude_unset=True)
        before, after = self.db.update_time_block(self.user_id, args.block_id, changes)
        return (f'Updated time block "{_block_label(before)}" '
                f"(now {after.date.isoformat()} {format_clock(after.start_time)}-{format_clock(after.end_time)}"
                f"{', completed' if after.completed else ''})")

    def _delete_time_block(self, args: ontology.DeleteTimeBlockArguments) -> str:
        block = self.db.delete_time_block(self.user_id, args.block_id)
        return (f'Deleted time block "{_block_label(block)}" '
                f"({format_clock(block.start_time)}-{format_clock(block.end_time)})")

    # --- Tasks ---

    def _add_task(self, args: ontology.AddTaskArguments) -> str:
        task = self.db.add_task(self.user_id, args.title, args.notes)
        return f'Added task "{task.title}" to queue at position {task.queue_position}'

    def _update_task(self, args: ontology.UpdateTaskArguments) -> str:
        changes = args.model_dump(exclude={"task_id"}, exclude_unset=True)
        before, after = self.db.update_task(self.user_id, args.task_id, changes, self.now)
        suffix = f" (status: {after.status})" if after.status != before.status else ""
        return f'Updated task "{before.title}"{suffix}'

    def _delete_task(self, args: ontology.TaskIdArguments) -> str:
        task = self.db.delete_task(self.user_id, args.task_id)
        return f'Deleted task "{task.title}"'

    def _pull_task(self, args: ontology.TaskIdArguments) -> str:
        task = self.db.pull_task(self.user_id, args.task_id)
        return f'Pulled task "{task.title}" to active status'

    def _complete_task(self, args: ontology.TaskIdArguments) -> str:
        task = self.db.complete_task(self.user_id, args.task_id, self.now)
        return f'Completed task "{task.title}"'

    # --- Notes ---

    def _create_note(self, args: ontology.CreateNoteArguments) -> str:
        note = self.db.create_note(self.user_id, args.title, args.content, args.source_type,
                                   args.source_name, args.tags)
        tags = [t.tag_value for t in note.tags]
        return f'Created note "{note.title}"' + (f" with tags: {', '.join(tags)}" if tags else "")

    def _update_note(self, args: ontology.UpdateNoteArguments) -> str:
        changes = args.model_dump(exclude={"note_id", "tags"}, exclude_unset=True)
        before, after = self.db.update_note(self.user_id, args.note_id, changes, args.tags)
        suffix = ""
        if args.tags is not None:
            suffix = f" (tags: {', '.join(t.tag_value for t in after.tags) or 'none'})"
        return f'Updated note "{before.title}"{suffix}'

    def _delete_note(self, args: ontology.DeleteNoteArguments) -> str:
        note = self.db.delete_note(self.user_id, args.note_id)
        return f'Deleted note "{note.title}"'

    # --- Behaviors ---

    def _create_behavior(self, args: ontology.CreateBehaviorArguments) -> str:
        behavior = self.db.create_behavior(self.user_id, args.behavior_name, args.frequency, args.is_rewarding,
                                           args.description, args.category)
        kind = "rewarding" if behavior.is_rewarding else "non-rewarding"
        return f'Created {kind} behavior "{behavior.behavior_name}" ({behavior.frequency})'

    def _update_behavior(self, args: ontology.UpdateBehaviorArguments) -> str:
        changes = args.model_dump(exclude={"behavior_id"}, exclude_unset=True)
        before, _ = self.db.update_behavior(self.user_id, args.behavior_id, changes)
        return f'Updated behavior "{before.behavior_name}"'

    def _delete_behavior(self, args: ontology.DeleteBehaviorArguments) -> str:
        behavior = self.db.delete_behavior(self.user_id, args.behavior_id)
        return f'Deleted behavior "{behavior.behavior_name}" and all its check-ins'

    def _log_behavior_checkin(self, args: ontology.LogBehaviorCheckinArguments) -> str:
        behavior, checkin = self.db.log_checkin(self.user_id, args.behavior_id, args.date or self.today,
                                                args.completed, args.outcome_notes, args.reward_score)
        outcome = "completed" if checkin.completed else "not completed"
        score = f" (reward score: {checkin.reward_score:g}/10)" if checkin.reward_score else ""
        return f'Logged check-in for "{behavior.behavior_name}" on {checkin.date.isoformat()}: {outcome}{score}'

    # --- Plans ---

    def _update_weekly_plan(self, args: ontology.UpdateWeeklyPlanArguments) -> str:
        plan = self.db.upsert_weekly_plan(self.user_id, week_start(self.today), args.plan_text)
        return f"Updated weekly plan for week starting {plan.week_start.isoformat()}"

    def _update_quarterly_plan(self, args: ontology.UpdateQuarterlyPlanArguments) -> str:
        plan = self.db.upsert_quarterly_plan(self.user_id, args.quarter or quarter_key(self.today), args.objectives)
        return f"Updated quarterly plan for {plan.quarter} with {len(plan.objectives)} objectives"

    # --- Work Hours ---

    def _set_work_hours(self, args: ontology.SetWorkHoursArguments) -> str:
        self.db.set_work_hours(self.user_id, args.day_of_week, args.start_time, args.end_time, args.is_enabled)
        day_name = DAY_NAMES[args.day_of_week]
        if not args.is_enabled:
            return f"Disabled work hours for {day_name}"
        return f"Set work hours for {day_name}: {format_clock(args.start_time)}-{format_clock(args.end_time)}"

    # --- Analysis ---

    def _analyze_schedule(self, args: ontology.AnalyzeScheduleArguments) -> str:
        blocks = self.db.get_time_blocks(self.user_id, args.date)
        profile = self.db.get_user_profile(self.user_id)
        return insights.analyze_schedule(args.date, blocks, profile)

    def _get_task_insights(self, args: ontology.GetTaskInsightsArguments) -> str:
        since = datetime.combine(self.today - timedelta(days=args.date_range_days), datetime.min.time())
        reviews = self.db.get_reviews(self.user_id, since=since)
        return insights.summarize_insights(reviews, args.date_range_days, args.tag_filter)
