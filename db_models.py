# FILE: db_models.py

from sqlalchemy import (
    Column, Integer, String, Text, Date, Time, DateTime, Boolean, Enum, Float, JSON,
    ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship, declarative_base
from datetime import datetime, timezone

Base = declarative_base()

BLOCK_TYPES = ("deep_work", "shallow_work", "break", "personal", "meeting")
TASK_STATUSES = ("backlog", "active", "completed", "archived")
FREQUENCIES = ("daily", "weekly", "monthly", "yearly")
SOURCE_TYPES = ("general", "book", "podcast", "idea")


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserProfile(Base):
    __tablename__ = 'user_profiles'
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, unique=True, index=True)
    display_name = Column(String, nullable=True)
    work_style = Column(String, nullable=True)
    chronotype = Column(String, nullable=True)
    peak_hours_start = Column(Time, nullable=True)
    peak_hours_end = Column(Time, nullable=True)
    preferred_work_duration = Column(Integer, default=90)
    preferred_break_duration = Column(Integer, default=15)
    employment_type = Column(String, nullable=True)
    has_fixed_schedule = Column(Boolean, default=False, nullable=False)
    typical_work_start = Column(Time, nullable=True)
    typical_work_end = Column(Time, nullable=True)
    motivations = Column(JSON, nullable=True)
    goals_short_term = Column(Text, nullable=True)
    goals_long_term = Column(Text, nullable=True)
    health_considerations = Column(JSON, nullable=True)
    accommodation_preferences = Column(Text, nullable=True)
    has_caregiving_responsibilities = Column(Boolean, default=False, nullable=False)
    ai_name = Column(String, nullable=True)
    ai_personality = Column(String, nullable=True)
    reminder_style = Column(String, nullable=True)
    wants_accountability = Column(Boolean, default=False, nullable=False)
    wants_suggestions = Column(Boolean, default=False, nullable=False)
    wants_insights = Column(Boolean, default=False, nullable=False)
    intake_completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

class QuarterlyPlan(Base):
    __tablename__ = 'quarterly_plans'
    __table_args__ = (UniqueConstraint('user_id', 'quarter', name='uq_quarterly_plan_user_quarter'),)
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    quarter = Column(String, nullable=False)
    objectives = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow)

class WeeklyPlan(Base):
    __tablename__ = 'weekly_plans'
    __table_args__ = (UniqueConstraint('user_id', 'week_start', name='uq_weekly_plan_user_week'),)
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    week_start = Column(Date, nullable=False)
    plan_text = Column(Text, nullable=False, default="")
    quarterly_plan_id = Column(Integer, ForeignKey('quarterly_plans.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    quarterly_plan = relationship("QuarterlyPlan")

class Project(Base):
    __tablename__ = 'projects'
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    project_name = Column(String, nullable=False)
    status = Column(Enum("active", "on_hold", "completed", "archived", name="project_status_enum"), default="active", nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    progress_percentage = Column(Integer, default=0, nullable=False)
    quarterly_plan_id = Column(Integer, ForeignKey('quarterly_plans.id', ondelete='SET NULL'), nullable=True)
    weekly_plan_id = Column(Integer, ForeignKey('weekly_plans.id', ondelete='SET NULL'), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow)

class Task(Base):
    __tablename__ = 'tasks'
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(Enum(*TASK_STATUSES, name="task_status_enum"), default="backlog", nullable=False)
    queue_position = Column(Integer, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime, nullable=True)

class TimeBlock(Base):
    __tablename__ = 'time_blocks'
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    block_type = Column(Enum(*BLOCK_TYPES, name="block_type_enum"), nullable=False)
    task_title = Column(String, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    task_id = Column(Integer, ForeignKey('tasks.id', ondelete='SET NULL'), nullable=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=utcnow)

class Note(Base):
    __tablename__ = 'notes'
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")
    source_type = Column(Enum(*SOURCE_TYPES, name="note_source_enum"), default="general", nullable=False)
    source_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    tags = relationship("NoteTag", back_populates="note", cascade="all, delete-orphan", order_by="NoteTag.id")

class NoteTag(Base):
    __tablename__ = 'note_tags'
    id = Column(Integer, primary_key=True)
    note_id = Column(Integer, ForeignKey('notes.id', ondelete='CASCADE'), nullable=False, index=True)
    tag_type = Column(String, nullable=False)
    tag_value = Column(String, nullable=False)

    note = relationship("Note", back_populates="tags")

class Behavior(Base):
    __tablename__ = 'behaviors'
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    behavior_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    frequency = Column(Enum(*FREQUENCIES, name="behavior_frequency_enum"), nullable=False)
    is_rewarding = Column(Boolean, nullable=False)
    category = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    checkins = relationship("BehaviorCheckin", back_populates="behavior", cascade="all, delete-orphan")

class BehaviorCheckin(Base):
    __tablename__ = 'behavior_checkins'
    __table_args__ = (UniqueConstraint('behavior_id', 'date', name='uq_checkin_behavior_date'),)
    id = Column(Integer, primary_key=True)
    behavior_id = Column(Integer, ForeignKey('behaviors.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    completed = Column(Boolean, default=True, nullable=False)
    outcome_notes = Column(Text, nullable=True)
    reward_score = Column(Float, nullable=True)

    behavior = relationship("Behavior", back_populates="checkins")

class UserWorkHours(Base):
    __tablename__ = 'user_work_hours'
    __table_args__ = (UniqueConstraint('user_id', 'day_of_week', name='uq_work_hours_user_day'),)
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)

class AIConversation(Base):
    __tablename__ = 'ai_conversations'
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    message = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    action_taken = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)

class TaskReview(Base):
    __tablename__ = 'task_reviews'
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    task_id = Column(Integer, ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False)
    enjoyment_rating = Column(Integer, nullable=True)
    overall_rating = Column(Integer, nullable=True)
    energy_required = Column(Enum("low", "medium", "high", name="energy_enum"), nullable=True)
    difficulty = Column(Enum("easy", "medium", "hard", name="difficulty_enum"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    task = relationship("Task")

class ProjectReview(Base):
    __tablename__ = 'project_reviews'
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    enjoyment_rating = Column(Integer, nullable=True)
    overall_rating = Column(Integer, nullable=True)
    energy_required = Column(Enum("low", "medium", "high", name="energy_enum"), nullable=True)
    difficulty = Column(Enum("easy", "medium", "hard", name="difficulty_enum"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    project = relationship("Project")
