# ontology.py

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Any, Optional, List, Dict, Literal
import datetime as dt

from time_utils import parse_clock

BlockType = Literal["deep_work", "shallow_work", "break", "personal", "meeting"]
TaskStatus = Literal["backlog", "active", "completed", "archived"]
Frequency = Literal["daily", "weekly", "monthly", "yearly"]
SourceType = Literal["general", "book", "podcast", "idea"]

# --- Core Data Structures ---

class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    display_name: Optional[str] = None
    work_style: Optional[str] = None
    chronotype: Optional[str] = None
    peak_hours_start: Optional[dt.time] = None
    peak_hours_end: Optional[dt.time] = None
    preferred_work_duration: Optional[int] = None
    preferred_break_duration: Optional[int] = None
    employment_type: Optional[str] = None
    has_fixed_schedule: bool = False
    typical_work_start: Optional[dt.time] = None
    typical_work_end: Optional[dt.time] = None
    motivations: Optional[List[str]] = None
    goals_short_term: Optional[str] = None
    goals_long_term: Optional[str] = None
    health_considerations: Optional[List[str]] = None
    accommodation_preferences: Optional[str] = None
    has_caregiving_responsibilities: bool = False
    ai_name: Optional[str] = None
    ai_personality: Optional[str] = None
    reminder_style: Optional[str] = None
    wants_accountability: bool = False
    wants_suggestions: bool = False
    wants_insights: bool = False

class QuarterlyPlan(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quarter: str
    objectives: List[str] = Field(default_factory=list)
    created_at: Optional[dt.datetime] = None

class WeeklyPlan(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    week_start: dt.date
    plan_text: str = ""
    quarterly_plan_id: Optional[int] = None

class TimeBlock(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    block_type: BlockType
    task_title: Optional[str] = None
    completed: bool = False
    task_id: Optional[int] = None
    project_id: Optional[int] = None

class Task(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    notes: Optional[str] = None
    status: TaskStatus
    queue_position: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    completed_at: Optional[dt.datetime] = None

class NoteTag(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tag_type: str
    tag_value: str

class Note(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str = ""
    source_type: SourceType = "general"
    source_name: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    tags: List[NoteTag] = Field(default_factory=list)

class BehaviorCheckin(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    behavior_id: int
    date: dt.date
    completed: bool
    outcome_notes: Optional[str] = None
    reward_score: Optional[float] = None

class Behavior(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    behavior_name: str
    description: Optional[str] = None
    frequency: Frequency
    is_rewarding: bool
    category: Optional[str] = None

class BehaviorSummary(BaseModel):
    """A behavior together with what the last 30 days of check-ins say about it."""
    behavior: Behavior
    completed_count: int = 0
    checkin_count: int = 0
    streak: int = 0

class ConversationTurn(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message: str
    response: str
    created_at: Optional[dt.datetime] = None

class Review(BaseModel):
    """A task or project review flattened together with the reviewed item's tags."""
    kind: Literal["task", "project"]
    subject: str
    tags: List[str] = Field(default_factory=list)
    enjoyment_rating: Optional[int] = None
    overall_rating: Optional[int] = None
    energy_required: Optional[Literal["low", "medium", "high"]] = None
    difficulty: Optional[Literal["easy", "medium", "hard"]] = None
    created_at: Optional[dt.datetime] = None

class TagStats(BaseModel):
    count: int = 0
    total_enjoyment: int = 0
    total_energy: int = 0

    @property
    def avg_enjoyment(self) -> float:
        return self.total_enjoyment / self.count if self.count else 0.0

    @property
    def avg_energy(self) -> float:
        return self.total_energy / self.count if self.count else 0.0

class WorkPatterns(BaseModel):
    high_energy_tags: List[str] = Field(default_factory=list)
    enjoyed_tags: List[str] = Field(default_factory=list)
    drained_by_tags: List[str] = Field(default_factory=list)
    preferred_difficulty: Optional[str] = None
    tag_stats: Dict[str, TagStats] = Field(default_factory=dict)

class AssistantContext(BaseModel):
    """Read-only snapshot of a user's data captured once per chat turn."""
    today: dt.date
    display_date: str
    current_time: str
    user_profile: Optional[UserProfile] = None
    quarterly_plan: Optional[QuarterlyPlan] = None
    weekly_plan: Optional[WeeklyPlan] = None
    time_blocks: List[TimeBlock] = Field(default_factory=list)
    future_blocks: List[TimeBlock] = Field(default_factory=list)
    active_tasks: List[Task] = Field(default_factory=list)
    queued_tasks: List[Task] = Field(default_factory=list)
    recent_notes: List[Note] = Field(default_factory=list)
    behaviors: List[BehaviorSummary] = Field(default_factory=list)
    conversation_history: List[ConversationTurn] = Field(default_factory=list)
    reviews: List[Review] = Field(default_factory=list)
    work_patterns: WorkPatterns = Field(default_factory=WorkPatterns)

# --- Chat API ---

class ChatRequest(BaseModel):
    message: str = ""
    timezone: Optional[str] = None

class ActionExecuted(BaseModel):
    tool: str
    input: Dict[str, Any] = Field(default_factory=dict)
    result: str

class ChatResponse(BaseModel):
    message: str
    actions_executed: List[ActionExecuted] = Field(default_factory=list)

# --- Tool Schemas for LLM ---

class _ClockArguments(BaseModel):
    """Accepts HH:MM or HH:MM:SS for every time-valued argument."""

    @field_validator("start_time", "end_time", mode="before", check_fields=False)
    @classmethod
    def _parse_clock(cls, value):
        if value is None or isinstance(value, dt.time):
            return value
        return parse_clock(value)

class CreateTimeBlockArguments(_ClockArguments):
    date: Optional[dt.date] = Field(None, description="Date in YYYY-MM-DD format. Defaults to today.")
    start_time: dt.time = Field(..., description="Start time in HH:MM format (24-hour).")
    end_time: dt.time = Field(..., description="End time in HH:MM format (24-hour).")
    block_type: BlockType = Field(..., description="Type of time block.")
    task_title: Optional[str] = Field(None, description="Optional title/description for the block.")

class UpdateTimeBlockArguments(_ClockArguments):
    block_id: int = Field(..., description="ID of the time block to update.")
    date: Optional[dt.date] = Field(None, description="New date in YYYY-MM-DD format.")
    start_time: Optional[dt.time] = Field(None, description="New start time in HH:MM format.")
    end_time: Optional[dt.time] = Field(None, description="New end time in HH:MM format.")
    block_type: Optional[BlockType] = Field(None, description="New block type.")
    task_title: Optional[str] = Field(None, description="New title for the block.")
    completed: Optional[bool] = Field(None, description="Mark as completed or not.")

class DeleteTimeBlockArguments(BaseModel):
    block_id: int = Field(..., description="ID of the time block to delete.")

class AddTaskArguments(BaseModel):
    title: str = Field(..., description="Task title.")
    notes: Optional[str] = Field(None, description="Optional notes about the task.")

class UpdateTaskArguments(BaseModel):
    task_id: int = Field(..., description="ID of the task to update.")
    title: Optional[str] = Field(None, description="New title.")
    notes: Optional[str] = Field(None, description="New notes.")
    status: Optional[TaskStatus] = Field(None, description="New status.")

class TaskIdArguments(BaseModel):
    task_id: int = Field(..., description="ID of the task.")

class CreateNoteArguments(BaseModel):
    title: str = Field(..., description="Note title.")
    content: str = Field(..., description="Note content (can include markdown/HTML).")
    source_type: SourceType = Field("general", description="Type of source.")
    source_name: Optional[str] = Field(None, description="Name of source (e.g., book title).")
    tags: List[str] = Field(default_factory=list, description="Array of tag strings.")

class UpdateNoteArguments(BaseModel):
    note_id: int = Field(..., description="ID of the note to update.")
    title: Optional[str] = Field(None, description="New title.")
    content: Optional[str] = Field(None, description="New content.")
    source_type: Optional[SourceType] = Field(None, description="New source type.")
    source_name: Optional[str] = Field(None, description="New source name.")
    tags: Optional[List[str]] = Field(None, description="New tags (replaces existing).")

class DeleteNoteArguments(BaseModel):
    note_id: int = Field(..., description="ID of the note to delete.")

class CreateBehaviorArguments(BaseModel):
    behavior_name: str = Field(..., description="Name of the behavior.")
    description: Optional[str] = Field(None, description="Description of the behavior.")
    frequency: Frequency = Field(..., description="How often to track.")
    is_rewarding: bool = Field(..., description="true if this behavior rewards the user, false if trying to reduce it.")
    category: Optional[str] = Field(None, description="Category like health, work, relationships, finance.")

class UpdateBehaviorArguments(BaseModel):
    behavior_id: int = Field(..., description="ID of the behavior to update.")
    behavior_name: Optional[str] = None
    description: Optional[str] = None
    frequency: Optional[Frequency] = None
    is_rewarding: Optional[bool] = None
    category: Optional[str] = None

class DeleteBehaviorArguments(BaseModel):
    behavior_id: int = Field(..., description="ID of the behavior to delete.")

class LogBehaviorCheckinArguments(BaseModel):
    behavior_id: int = Field(..., description="ID of the behavior.")
    date: Optional[dt.date] = Field(None, description="Date in YYYY-MM-DD format. Defaults to today.")
    completed: bool = Field(..., description="Whether the behavior was completed/occurred.")
    outcome_notes: Optional[str] = Field(None, description="Notes about how it went.")
    reward_score: Optional[float] = Field(None, ge=1, le=10, description="How rewarding it was (1-10).")

class UpdateWeeklyPlanArguments(BaseModel):
    plan_text: str = Field(..., description="The weekly plan text.")

class UpdateQuarterlyPlanArguments(BaseModel):
    quarter: Optional[str] = Field(None, pattern=r"^\d{4}-Q[1-4]$", description='Quarter identifier (e.g., "2025-Q1"). Defaults to the current quarter.')
    objectives: List[str] = Field(..., description="Array of objective strings.")

class SetWorkHoursArguments(_ClockArguments):
    day_of_week: int = Field(..., ge=0, le=6, description="Day of week (0=Sunday, 6=Saturday).")
    start_time: dt.time = Field(..., description="Start time in HH:MM format.")
    end_time: dt.time = Field(..., description="End time in HH:MM format.")
    is_enabled: bool = Field(..., description="Whether this is a work day.")

class AnalyzeScheduleArguments(BaseModel):
    date: dt.date = Field(..., description="Date to analyze in YYYY-MM-DD format.")

class GetTaskInsightsArguments(BaseModel):
    tag_filter: Optional[List[str]] = Field(None, description="Optional: Filter insights by specific tags.")
    date_range_days: int = Field(30, ge=1, description="Optional: Number of days to look back (default: 30).")

# --- Tool definitions for LLM function-calling ---

def _tool(name: str, description: str, arguments: type) -> dict:
    return {"name": name, "description": description, "parameters": arguments.model_json_schema()}

TOOLS = [
    _tool("create_time_block", "Create a new time block in the schedule. Validates no overlaps exist.", CreateTimeBlockArguments),
    _tool("update_time_block", "Update an existing time block. Validates no overlaps exist.", UpdateTimeBlockArguments),
    _tool("delete_time_block", "Delete a time block from the schedule.", DeleteTimeBlockArguments),
    _tool("add_task", "Add a new task to the backlog queue.", AddTaskArguments),
    _tool("update_task", "Update an existing task.", UpdateTaskArguments),
    _tool("delete_task", "Delete a task permanently.", TaskIdArguments),
    _tool("pull_task", "Pull a task from queue to active status. Enforces 3-task limit.", TaskIdArguments),
    _tool("complete_task", "Mark an active task as completed.", TaskIdArguments),
    _tool("create_note", "Create a new note in the notebook.", CreateNoteArguments),
    _tool("update_note", "Update an existing note.", UpdateNoteArguments),
    _tool("delete_note", "Delete a note permanently.", DeleteNoteArguments),
    _tool("create_behavior", "Create a new behavior to track.", CreateBehaviorArguments),
    _tool("update_behavior", "Update an existing behavior.", UpdateBehaviorArguments),
    _tool("delete_behavior", "Delete a behavior and its check-ins.", DeleteBehaviorArguments),
    _tool("log_behavior_checkin", "Log a check-in for a behavior (did it today, how rewarding was it).", LogBehaviorCheckinArguments),
    _tool("update_weekly_plan", "Create or update the weekly plan for the current week.", UpdateWeeklyPlanArguments),
    _tool("update_quarterly_plan", "Create or update the quarterly plan.", UpdateQuarterlyPlanArguments),
    _tool("set_work_hours", "Set work hours for a specific day of the week.", SetWorkHoursArguments),
    _tool("analyze_schedule", "Analyze time blocks for a date to identify optimization opportunities based on user review patterns and preferences. Returns optimization score and specific issues.", AnalyzeScheduleArguments),
    _tool("get_task_insights", "Analyze historical task/project reviews to provide insights on work patterns, preferences, and optimal timing for different types of work.", GetTaskInsightsArguments),
]
