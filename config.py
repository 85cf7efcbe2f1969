# FILE: config.py

# All settings, API keys, file paths, model IDs, limits, and prompt fragments
import os

# --- FILE PATHS ---
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_PATH = os.getenv("DEEPWORK_DB_PATH", os.path.join(BASE_DIR, 'deepwork.sqlite'))
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DB_PATH}")
LOG_PATH = os.getenv("DEEPWORK_LOG_PATH", os.path.join(BASE_DIR, 'deepwork.log'))
LOG_LEVEL = os.getenv("DEEPWORK_LOG_LEVEL", "INFO")

# --- SERVER SETTINGS ---
API_HOST = os.getenv("DEEPWORK_HOST", "0.0.0.0")
API_PORT = int(os.getenv("DEEPWORK_PORT", "8000"))
USER_ID_HEADER = "X-User-Id"

# --- LLM SETTINGS ---
# Any OpenAI-compatible chat completions endpoint works (hosted or LM Studio).
LLM_API_KEY = os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY")
LLM_API_BASE = os.getenv("LLM_API_BASE")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2000"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.5"))
LLM_TIMEOUT_SECONDS = int(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
MAX_TOOL_ROUNDS = int(os.getenv("MAX_TOOL_ROUNDS", "3"))

# --- DOMAIN LIMITS ---
MAX_ACTIVE_TASKS = 3
DEFAULT_TIMEZONE = os.getenv("DEEPWORK_DEFAULT_TIMEZONE", "America/New_York")

# --- CONTEXT WINDOWS ---
UPCOMING_DAYS = 7
RECENT_DAYS = 30
RECENT_NOTES_LIMIT = 20
CONVERSATION_HISTORY_LIMIT = 15
TASK_REVIEWS_LIMIT = 50
PROJECT_REVIEWS_LIMIT = 20

# --- PROMPT DISPLAY CAPS ---
QUEUED_TASKS_SHOWN = 5
NOTES_SHOWN = 10
NOTE_EXCERPT_CHARS = 150
BEHAVIORS_SHOWN = 5

# --- ASSISTANT DEFAULTS ---
DEFAULT_AI_NAME = "Claude"
DEFAULT_USER_NAME = "there"
DEFAULT_PERSONALITY = "supportive"
DEFAULT_REMINDER_STYLE = "gentle"
DEFAULT_PEAK_HOURS_START = "09:00"
DEFAULT_PEAK_HOURS_END = "12:00"
NOTE_TAG_TYPE = "concept"

# --- PREFERENCE FRAGMENTS ---
PERSONALITY_INSTRUCTIONS = {
    "supportive": "Be warm, encouraging, and positive. Celebrate wins and gently guide through challenges.",
    "direct": "Be straightforward and honest. Get to the point quickly without fluff.",
    "analytical": "Be data-driven and logical. Reference patterns and metrics when possible.",
    "motivational": "Be high-energy and inspiring. Use powerful language to motivate action.",
}

REMINDER_STYLE_INSTRUCTIONS = {
    "gentle": "Gentle - soft, encouraging reminders.",
    "assertive": "Assertive - direct, action-oriented nudges.",
    "minimal": "Minimal - only mention what is essential.",
    "none": "None - do not remind the user about anything unprompted.",
}

ACCOUNTABILITY_INSTRUCTION = "HOLD USER ACCOUNTABLE: Yes - check in on their progress and commitments."
SUGGESTIONS_INSTRUCTION = "PROACTIVE SUGGESTIONS: Yes - recommend improvements to their workflow."
INSIGHTS_INSTRUCTION = "SHARE INSIGHTS: Yes - help them understand their productivity patterns."

# --- SYSTEM PROMPT ---
IDENTITY_PROMPT = '''You are {{ai_name}}, {{user_name}}'s personal productivity assistant in the Deep Work app, focused on meaningful productivity and helping them not waste their life. When asked your name, say you are {{ai_name}}.'''

SCHEDULING_GUIDELINES_PROMPT = '''SCHEDULING GUIDELINES BASED ON REVIEWS:
1. Schedule high-energy work ({{high_energy_tags}}) during peak hours ({{peak_start}}-{{peak_end}})
2. Batch similar task types together (same tags) to reduce context switching
3. Avoid scheduling more than 2 consecutive high-energy tasks
4. Intersperse draining work with enjoyable tasks for motivation
5. Reference past review feedback when suggesting task timing or work planning'''

RULES_PROMPT = '''RULES:
1. Maximum 3 active tasks - enforce strictly
2. Time blocks cannot overlap
3. Reference quarterly goals when planning
4. Be concise and direct
5. Always confirm actions you've taken
6. Consider user's chronotype and peak hours when suggesting schedules
7. Respect any health accommodations mentioned in the profile
8. Use the user's preferred work/break durations as defaults
9. Only perform actions the user explicitly asks for - never modify or delete without clear instruction'''

CAPABILITIES_PROMPT = '''YOUR FULL CAPABILITIES (use tools to execute these):
- TIME BLOCKS: Create, update, delete, mark complete
- TASKS: Add to queue, update details, delete, pull to active (max 3), complete
- NOTES: Create new notes, update existing, delete, manage tags
- BEHAVIORS: Create trackers, update, delete, log daily check-ins with scores
- PLANS: Update weekly plans, update quarterly objectives
- WORK HOURS: Set work hours for any day of the week
- ANALYSIS: Analyze a day's schedule, summarize insights from task and project reviews

PROACTIVE CAPABILITIES:
- Identify blind spots in user's planning or patterns
- Notice when commitments don't align with stated goals
- Suggest optimizations based on their work style
- Celebrate progress and completed tasks
- Flag potential burnout or overcommitment

You have FULL ACCESS to manage {{user_name}}'s productivity system including their schedule, tasks, notes, behaviors, and plans. Execute any requested action immediately using your tools, and always confirm what you've done.'''
