# FILE: main.py

import logging
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request

import ontology
from config import API_HOST, API_PORT, USER_ID_HEADER
from context_builder import build_context
from db_manager import DatabaseManager
from db_models import utcnow
from exceptions import ModelCallError
from llm_interface import run_assistant
from logging_config import setup_logging
from prompt_formatter import format_system_prompt
from tool_dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)


def get_user_id(x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)) -> str:
    # The authenticating proxy in front of the service sets this header.
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


def process_chat(db: DatabaseManager, user_id: str, chat: ontology.ChatRequest) -> ontology.ChatResponse:
    now = utcnow()
    context = build_context(db, user_id, now=now, timezone_name=chat.timezone)
    system_prompt = format_system_prompt(context)
    logger.info("System prompt built (%d chars) for user %s.", len(system_prompt), user_id)

    dispatcher = ToolDispatcher(db, user_id, context.today, now)
    reply, actions = run_assistant(system_prompt, context.conversation_history, chat.message, dispatcher)
    logger.info("Assistant replied with %d action(s) executed.", len(actions))

    db.save_conversation(user_id, chat.message, reply, actions)
    return ontology.ChatResponse(message=reply, actions_executed=actions)


def create_app(db: Optional[DatabaseManager] = None) -> FastAPI:
    if db is None:
        db = DatabaseManager()
        db.create_database()

    app = FastAPI(title="Deep Work Assistant")
    app.state.db = db

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/chat", response_model=ontology.ChatResponse)
    def chat(chat_request: ontology.ChatRequest, request: Request, user_id: str = Depends(get_user_id)):
        if not chat_request.message.strip():
            raise HTTPException(status_code=400, detail="Message is required")

        logger.info("--- New Chat Message --- User: %s", user_id)
        try:
            return process_chat(request.app.state.db, user_id, chat_request)
        except ModelCallError as e:
            raise HTTPException(status_code=500, detail=f"Language model request failed: {e}")
        except Exception as e:
            logger.error("An unexpected error occurred handling chat: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e) or "Internal server error")

    return app


def main():
    setup_logging()
    logger.info("--- Deep Work Assistant starting ---")
    app = create_app()
    logger.info("Serving on %s:%d", API_HOST, API_PORT)
    uvicorn.run(app, host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
