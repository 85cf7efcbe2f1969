# FILE: db_manager.py

import ontology
import db_models
import logging
from sqlalchemy import create_engine, func
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager
from config import DATABASE_URL, MAX_ACTIVE_TASKS, NOTE_TAG_TYPE
from exceptions import (
    ActiveTaskLimitError, BlockOverlapError, DeepWorkError, InvalidTimeRangeError, RecordNotFoundError,
)
from time_utils import block_end, format_clock, intervals_overlap
from typing import Any, Dict, List, Optional, Tuple
from datetime import date, datetime, time

logger = logging.getLogger(__name__)

class DatabaseManager:
    """
    Every read and write the assistant performs goes through this class.
    Cross-row rules (no overlapping blocks, the active task cap, queue
    positions, plan upserts) live here so no mutation path can skip them.
    """

    def __init__(self, db_url: str = DATABASE_URL):
        connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
        self.engine = create_engine(db_url, connect_args=connect_args)
        self.Session = sessionmaker(bind=self.engine)

    def create_database(self):
        db_models.Base.metadata.create_all(self.engine)
        logger.info("Relational database tables checked/created.")

    @contextmanager
    def session_scope(self):
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _get_owned(self, session, model, record_id: int, user_id: str, entity: str):
        row = session.query(model).filter(model.id == record_id, model.user_id == user_id).first()
        if not row:
            raise RecordNotFoundError(entity)
        return row

    # --- Profile & Plans ---

    def get_user_profile(self, user_id: str) -> Optional[ontology.UserProfile]:
        with self.session_scope() as session:
            profile = session.query(db_models.UserProfile).filter(db_models.UserProfile.user_id == user_id).first()
            return ontology.UserProfile.model_validate(profile) if profile else None

    def get_latest_quarterly_plan(self, user_id: str) -> Optional[ontology.QuarterlyPlan]:
        with self.session_scope() as session:
            plan = (session.query(db_models.QuarterlyPlan)
                    .filter(db_models.QuarterlyPlan.user_id == user_id)
                    .order_by(db_models.QuarterlyPlan.created_at.desc(), db_models.QuarterlyPlan.id.desc())
                    .first())
            return ontology.QuarterlyPlan.model_validate(plan) if plan else None

    def get_weekly_plan(self, user_id: str, week_start: date) -> Optional[ontology.WeeklyPlan]:
        with self.session_scope() as session:
            plan = session.query(db_models.WeeklyPlan).filter(
                db_models.WeeklyPlan.user_id == user_id, db_models.WeeklyPlan.week_start == week_start
            ).first()
            return ontology.WeeklyPlan.model_validate(plan) if plan else None

    def upsert_weekly_plan(self, user_id: str, week_start: date, plan_text: str) -> ontology.WeeklyPlan:
        with self.session_scope() as session:
            latest_quarter = (session.query(db_models.QuarterlyPlan.id)
                              .filter(db_models.QuarterlyPlan.user_id == user_id)
                              .order_by(db_models.QuarterlyPlan.created_at.desc(), db_models.QuarterlyPlan.id.desc())
                              .first())
            plan = session.query(db_models.WeeklyPlan).filter(
                db_models.WeeklyPlan.user_id == user_id, db_models.WeeklyPlan.week_start == week_start
            ).first()
            if plan is None:
                plan = db_models.WeeklyPlan(user_id=user_id, week_start=week_start)
                session.add(plan)
            plan.plan_text = plan_text
            plan.quarterly_plan_id = latest_quarter[0] if latest_quarter else None
            session.flush()
            logger.info("Upserted weekly plan %d for week starting %s.", plan.id, week_start)
            return ontology.WeeklyPlan.model_validate(plan)

    def upsert_quarterly_plan(self, user_id: str, quarter: str, objectives: List[str]) -> ontology.QuarterlyPlan:
        with self.session_scope() as session:
            plan = session.query(db_models.QuarterlyPlan).filter(
                db_models.QuarterlyPlan.user_id == user_id, db_models.QuarterlyPlan.quarter == quarter
            ).first()
            if plan is None:
                plan = db_models.QuarterlyPlan(user_id=user_id, quarter=quarter)
                session.add(plan)
            plan.objectives = list(objectives)
            session.flush()
            logger.info("Upserted quarterly plan %d for %s with %d objectives.", plan.id, quarter, len(objectives))
            return ontology.QuarterlyPlan.model_validate(plan)

    def set_work_hours(self, user_id: str, day_of_week: int, start_time: time, end_time: time, is_enabled: bool):
        with self.session_scope() as session:
            row = session.query(db_models.UserWorkHours).filter(
                db_models.UserWorkHours.user_id == user_id, db_models.UserWorkHours.day_of_week == day_of_week
            ).first()
            if row is None:
                row = db_models.UserWorkHours(user_id=user_id, day_of_week=day_of_week)
                session.add(row)
            row.start_time = start_time
            row.end_time = end_time
            row.is_enabled = is_enabled
            logger.info("Set work hours for day %d: %s-%s (enabled=%s).", day_of_week, start_time, end_time, is_enabled)

    # --- Time Blocks ---

    def get_time_blocks(self, user_id: str, day: date) -> List[ontology.TimeBlock]:
        with self.session_scope() as session:
            blocks = (session.query(db_models.TimeBlock)
                      .filter(db_models.TimeBlock.user_id == user_id, db_models.TimeBlock.date == day)
                      .order_by(db_models.TimeBlock.start_time.asc())
                      .all())
            return [ontology.TimeBlock.model_validate(b) for b in blocks]

    def get_time_blocks_between(self, user_id: str, after: date, through: date) -> List[ontology.TimeBlock]:
        """Blocks with after < date <= through, ordered by date then start time."""
        with self.session_scope() as session:
            blocks = (session.query(db_models.TimeBlock)
                      .filter(db_models.TimeBlock.user_id == user_id,
                              db_models.TimeBlock.date > after,
                              db_models.TimeBlock.date <= through)
                      .order_by(db_models.TimeBlock.date.asc(), db_models.TimeBlock.start_time.asc())
                      .all())
            return [ontology.TimeBlock.model_validate(b) for b in blocks]

    def _check_block_slot(self, session, user_id: str, day: date, start: time, end: time, exclude_id: Optional[int] = None):
        if block_end(end) <= start:
            raise InvalidTimeRangeError(f"End time {format_clock(end)} must be after start time {format_clock(start)}")
        query = session.query(db_models.TimeBlock).filter(
            db_models.TimeBlock.user_id == user_id, db_models.TimeBlock.date == day
        )
        if exclude_id is not None:
            query = query.filter(db_models.TimeBlock.id != exclude_id)
        for block in query.order_by(db_models.TimeBlock.start_time.asc()).all():
            if intervals_overlap(start, end, block.start_time, block.end_time):
                raise BlockOverlapError(format_clock(block.start_time), format_clock(block.end_time),
                                        block.task_title or block.block_type)

    def create_time_block(self, user_id: str, day: date, start_time: time, end_time: time,
                          block_type: str, task_title: Optional[str] = None) -> ontology.TimeBlock:
        with self.session_scope() as session:
            self._check_block_slot(session, user_id, day, start_time, end_time)
            block = db_models.TimeBlock(
                user_id=user_id, date=day, start_time=start_time, end_time=end_time,
                block_type=block_type, task_title=task_title or None, completed=False,
            )
            session.add(block)
            session.flush()
            logger.info("Created %s block %d on %s %s-%s.", block_type, block.id, day, start_time, end_time)
            return ontology.TimeBlock.model_validate(block)

    def update_time_block(self, user_id: str, block_id: int, changes: Dict[str, Any]) -> Tuple[ontology.TimeBlock, ontology.TimeBlock]:
        """Applies `changes` and returns the block before and after. Rescheduling is overlap-checked."""
        with self.session_scope() as session:
            block = self._get_owned(session, db_models.TimeBlock, block_id, user_id, "Time block")
            before = ontology.TimeBlock.model_validate(block)
            day = changes.get("date") or block.date
            start = changes.get("start_time") or block.start_time
            end = changes.get("end_time") or block.end_time
            if (day, start, end) != (block.date, block.start_time, block.end_time):
                self._check_block_slot(session, user_id, day, start, end, exclude_id=block.id)
            for field in ("date", "start_time", "end_time", "block_type"):
                if changes.get(field) is not None:
                    setattr(block, field, changes[field])
            if "task_title" in changes:
                block.task_title = changes["task_title"]
            if changes.get("completed") is not None:
                block.completed = changes["completed"]
            session.flush()
            logger.info("Updated time block %d.", block.id)
            return before, ontology.TimeBlock.model_validate(block)

    def delete_time_block(self, user_id: str, block_id: int) -> ontology.TimeBlock:
        with self.session_scope() as session:
            block = self._get_owned(session, db_models.TimeBlock, block_id, user_id, "Time block")
            deleted = ontology.TimeBlock.model_validate(block)
            session.delete(block)
            logger.info("Deleted time block %d.", block_id)
            return deleted

    # --- Tasks ---

    def get_active_tasks(self, user_id: str, limit: Optional[int] = None) -> List[ontology.Task]:
        with self.session_scope() as session:
            query = (session.query(db_models.Task)
                     .filter(db_models.Task.user_id == user_id, db_models.Task.status == "active")
                     .order_by(db_models.Task.id.asc()))
            if limit:
                query = query.limit(limit)
            return [ontology.Task.model_validate(t) for t in query.all()]

    def get_queued_tasks(self, user_id: str, limit: Optional[int] = None) -> List[ontology.Task]:
        with self.session_scope() as session:
            query = (session.query(db_models.Task)
                     .filter(db_models.Task.user_id == user_id,
                             db_models.Task.status == "backlog",
                             db_models.Task.queue_position.isnot(None))
                     .order_by(db_models.Task.queue_position.asc()))
            if limit:
                query = query.limit(limit)
            return [ontology.Task.model_validate(t) for t in query.all()]

    def _next_queue_position(self, session, user_id: str) -> int:
        max_position = session.query(func.max(db_models.Task.queue_position)).filter(
            db_models.Task.user_id == user_id,
            db_models.Task.status == "backlog",
            db_models.Task.queue_position.isnot(None),
        ).scalar()
        return (max_position or 0) + 1

    def _count_active(self, session, user_id: str) -> int:
        return session.query(func.count(db_models.Task.id)).filter(
            db_models.Task.user_id == user_id, db_models.Task.status == "active"
        ).scalar()

    def add_task(self, user_id: str, title: str, notes: Optional[str] = None) -> ontology.Task:
        with self.session_scope() as session:
            position = self._next_queue_position(session, user_id)
            task = db_models.Task(user_id=user_id, title=title, notes=notes or None,
                                  status="backlog", queue_position=position, tags=[])
            session.add(task)
            session.flush()
            logger.info("Added task %d to queue at position %d.", task.id, position)
            return ontology.Task.model_validate(task)

    def _activate(self, session, user_id: str, task: db_models.Task):
        active = self._count_active(session, user_id)
        if active >= MAX_ACTIVE_TASKS:
            logger.info("Rejected activating task %d: %d tasks already active.", task.id, active)
            raise ActiveTaskLimitError(MAX_ACTIVE_TASKS)
        task.status = "active"
        task.queue_position = None

    def pull_task(self, user_id: str, task_id: int) -> ontology.Task:
        with self.session_scope() as session:
            task = self._get_owned(session, db_models.Task, task_id, user_id, "Task")
            if task.status == "active":
                raise DeepWorkError(f'Task "{task.title}" is already active')
            self._activate(session, user_id, task)
            session.flush()
            logger.info("Pulled task %d to active.", task.id)
            return ontology.Task.model_validate(task)

    def complete_task(self, user_id: str, task_id: int, completed_at: datetime) -> ontology.Task:
        with self.session_scope() as session:
            task = self._get_owned(session, db_models.Task, task_id, user_id, "Task")
            task.status = "completed"
            task.completed_at = completed_at
            task.queue_position = None
            session.flush()
            logger.info("Completed task %d.", task.id)
            return ontology.Task.model_validate(task)

    def update_task(self, user_id: str, task_id: int, changes: Dict[str, Any], now: datetime) -> Tuple[ontology.Task, ontology.Task]:
        with self.session_scope() as session:
            task = self._get_owned(session, db_models.Task, task_id, user_id, "Task")
            before = ontology.Task.model_validate(task)
            if changes.get("title"):
                task.title = changes["title"]
            if "notes" in changes:
                task.notes = changes["notes"]
            status = changes.get("status")
            if status and status != task.status:
                if status == "active":
                    self._activate(session, user_id, task)
                elif status == "backlog":
                    task.status = "backlog"
                    task.queue_position = self._next_queue_position(session, user_id)
                else:
                    task.status = status
                    task.queue_position = None
                    if status == "completed":
                        task.completed_at = now
            session.flush()
            logger.info("Updated task %d.", task.id)
            return before, ontology.Task.model_validate(task)

    def delete_task(self, user_id: str, task_id: int) -> ontology.Task:
        with self.session_scope() as session:
            task = self._get_owned(session, db_models.Task, task_id, user_id, "Task")
            deleted = ontology.Task.model_validate(task)
            session.delete(task)
            logger.info("Deleted task %d.", task_id)
            return deleted

    # --- Notes ---

    def get_recent_notes(self, user_id: str, since: datetime, limit: int) -> List[ontology.Note]:
        with self.session_scope() as session:
            notes = (session.query(db_models.Note)
                     .filter(db_models.Note.user_id == user_id, db_models.Note.created_at >= since)
                     .order_by(db_models.Note.created_at.desc(), db_models.Note.id.desc())
                     .limit(limit)
                     .all())
            return [ontology.Note.model_validate(n) for n in notes]

    @staticmethod
    def _build_tags(tags: List[str]) -> List[db_models.NoteTag]:
        return [db_models.NoteTag(tag_type=NOTE_TAG_TYPE, tag_value=t.strip()) for t in tags if t and t.strip()]

    def create_note(self, user_id: str, title: str, content: str, source_type: str = "general",
                    source_name: Optional[str] = None, tags: Optional[List[str]] = None) -> ontology.Note:
        # Note and tags commit together or not at all.
        with self.session_scope() as session:
            note = db_models.Note(user_id=user_id, title=title, content=content,
                                  source_type=source_type or "general", source_name=source_name or None)
            note.tags = self._build_tags(tags or [])
            session.add(note)
            session.flush()
            logger.info("Created note %d with %d tag(s).", note.id, len(note.tags))
            return ontology.Note.model_validate(note)

    def update_note(self, user_id: str, note_id: int, changes: Dict[str, Any],
                    tags: Optional[List[str]] = None) -> Tuple[ontology.Note, ontology.Note]:
        with self.session_scope() as session:
            note = self._get_owned(session, db_models.Note, note_id, user_id, "Note")
            before = ontology.Note.model_validate(note)
            for field in ("title", "content", "source_type"):
                if changes.get(field):
                    setattr(note, field, changes[field])
            if "source_name" in changes:
                note.source_name = changes["source_name"]
            if tags is not None:
                note.tags.clear()
                session.flush()
                note.tags.extend(self._build_tags(tags))
            note.updated_at = db_models.utcnow()
            session.flush()
            logger.info("Updated note %d.", note.id)
            return before, ontology.Note.model_validate(note)

    def delete_note(self, user_id: str, note_id: int) -> ontology.Note:
        with self.session_scope() as session:
            note = self._get_owned(session, db_models.Note, note_id, user_id, "Note")
            deleted = ontology.Note.model_validate(note)
            session.delete(note)
            logger.info("Deleted note %d.", note_id)
            return deleted

    # --- Behaviors ---

    def get_behaviors(self, user_id: str) -> List[ontology.Behavior]:
        with self.session_scope() as session:
            behaviors = (session.query(db_models.Behavior)
                         .filter(db_models.Behavior.user_id == user_id)
                         .order_by(db_models.Behavior.id.asc())
                         .all())
            return [ontology.Behavior.model_validate(b) for b in behaviors]

    def get_checkins_since(self, user_id: str, since: date) -> List[ontology.BehaviorCheckin]:
        with self.session_scope() as session:
            checkins = (session.query(db_models.BehaviorCheckin)
                        .filter(db_models.BehaviorCheckin.user_id == user_id, db_models.BehaviorCheckin.date >= since)
                        .order_by(db_models.BehaviorCheckin.date.desc())
                        .all())
            return [ontology.BehaviorCheckin.model_validate(c) for c in checkins]

    def create_behavior(self, user_id: str, behavior_name: str, frequency: str, is_rewarding: bool,
                        description: Optional[str] = None, category: Optional[str] = None) -> ontology.Behavior:
        with self.session_scope() as session:
            behavior = db_models.Behavior(user_id=user_id, behavior_name=behavior_name, frequency=frequency,
                                          is_rewarding=is_rewarding, description=description or None,
                                          category=category or None)
            session.add(behavior)
            session.flush()
            logger.info("Created behavior %d (%s).", behavior.id, frequency)
            return ontology.Behavior.model_validate(behavior)

    def update_behavior(self, user_id: str, behavior_id: int, changes: Dict[str, Any]) -> Tuple[ontology.Behavior, ontology.Behavior]:
        with self.session_scope() as session:
            behavior = self._get_owned(session, db_models.Behavior, behavior_id, user_id, "Behavior")
            before = ontology.Behavior.model_validate(behavior)
            if changes.get("behavior_name"):
                behavior.behavior_name = changes["behavior_name"]
            if changes.get("frequency"):
                behavior.frequency = changes["frequency"]
            if changes.get("is_rewarding") is not None:
                behavior.is_rewarding = changes["is_rewarding"]
            for field in ("description", "category"):
                if field in changes:
                    setattr(behavior, field, changes[field])
            session.flush()
            logger.info("Updated behavior %d.", behavior.id)
            return before, ontology.Behavior.model_validate(behavior)

    def delete_behavior(self, user_id: str, behavior_id: int) -> ontology.Behavior:
        with self.session_scope() as session:
            behavior = self._get_owned(session, db_models.Behavior, behavior_id, user_id, "Behavior")
            deleted = ontology.Behavior.model_validate(behavior)
            session.delete(behavior)
            logger.info("Deleted behavior %d and its check-ins.", behavior_id)
            return deleted

    def log_checkin(self, user_id: str, behavior_id: int, day: date, completed: bool,
                    outcome_notes: Optional[str] = None, reward_score: Optional[float] = None
                    ) -> Tuple[ontology.Behavior, ontology.BehaviorCheckin]:
        with self.session_scope() as session:
            behavior = self._get_owned(session, db_models.Behavior, behavior_id, user_id, "Behavior")
            checkin = session.query(db_models.BehaviorCheckin).filter(
                db_models.BehaviorCheckin.behavior_id == behavior.id, db_models.BehaviorCheckin.date == day
            ).first()
            if checkin is None:
                checkin = db_models.BehaviorCheckin(behavior_id=behavior.id, user_id=user_id, date=day)
                session.add(checkin)
            checkin.completed = completed
            checkin.outcome_notes = outcome_notes or None
            checkin.reward_score = reward_score
            session.flush()
            logger.info("Logged check-in for behavior %d on %s (completed=%s).", behavior.id, day, completed)
            return ontology.Behavior.model_validate(behavior), ontology.BehaviorCheckin.model_validate(checkin)

    # --- Conversations ---

    def get_conversation_history(self, user_id: str, limit: int) -> List[ontology.ConversationTurn]:
        """The most recent `limit` turns, returned oldest first."""
        with self.session_scope() as session:
            turns = (session.query(db_models.AIConversation)
                     .filter(db_models.AIConversation.user_id == user_id)
                     .order_by(db_models.AIConversation.created_at.desc(), db_models.AIConversation.id.desc())
                     .limit(limit)
                     .all())
            return [ontology.ConversationTurn.model_validate(t) for t in reversed(turns)]

    def save_conversation(self, user_id: str, message: str, response: str, actions: Optional[List[dict]] = None) -> int:
        with self.session_scope() as session:
            turn = db_models.AIConversation(user_id=user_id, message=message, response=response,
                                            action_taken=actions or None)
            session.add(turn)
            session.flush()
            logger.info("Saved conversation turn %d (%d action(s)).", turn.id, len(actions or []))
            return turn.id

    # --- Reviews ---

    def get_reviews(self, user_id: str, since: Optional[datetime] = None,
                    task_limit: Optional[int] = None, project_limit: Optional[int] = None) -> List[ontology.Review]:
        reviews = []
        with self.session_scope() as session:
            task_query = (session.query(db_models.TaskReview)
                          .filter(db_models.TaskReview.user_id == user_id)
                          .order_by(db_models.TaskReview.created_at.desc()))
            project_query = (session.query(db_models.ProjectReview)
                             .filter(db_models.ProjectReview.user_id == user_id)
                             .order_by(db_models.ProjectReview.created_at.desc()))
            if since is not None:
                task_query = task_query.filter(db_models.TaskReview.created_at >= since)
                project_query = project_query.filter(db_models.ProjectReview.created_at >= since)
            if task_limit:
                task_query = task_query.limit(task_limit)
            if project_limit:
                project_query = project_query.limit(project_limit)

            for r in task_query.all():
                reviews.append(ontology.Review(
                    kind="task", subject=r.task.title if r.task else "", tags=(r.task.tags if r.task else None) or [],
                    enjoyment_rating=r.enjoyment_rating, overall_rating=r.overall_rating,
                    energy_required=r.energy_required, difficulty=r.difficulty, created_at=r.created_at,
                ))
            for r in project_query.all():
                reviews.append(ontology.Review(
                    kind="project", subject=r.project.project_name if r.project else "",
                    tags=(r.project.tags if r.project else None) or [],
                    enjoyment_rating=r.enjoyment_rating, overall_rating=r.overall_rating,
                    energy_required=r.energy_required, difficulty=r.difficulty, created_at=r.created_at,
                ))
        return reviews
