# FILE: llm_interface.py

import json
import logging
from openai import OpenAI
from typing import Any, Dict, List, Optional, Tuple

import ontology
from config import (
    LLM_API_BASE, LLM_API_KEY, LLM_MODEL, LLM_MAX_TOKENS, LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS, MAX_TOOL_ROUNDS,
)
from exceptions import ModelCallError

logger = logging.getLogger(__name__)

_client: Optional[OpenAI] = None


def _get_client() -> OpenAI:
    global _client
    if _client is None:
        _client = OpenAI(base_url=LLM_API_BASE, api_key=LLM_API_KEY, timeout=LLM_TIMEOUT_SECONDS)
    return _client


def _get_openai_tools(tools_list: List[Dict]) -> List[Dict]:
    return [{"type": "function", "function": tool} for tool in tools_list]


def _safe_json_loads(content: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parses tool-call arguments; None means the model sent something that is not a JSON object."""
    if not content:
        return {}
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning("Could not parse tool arguments '%s'. Error: %s", content, e)
        return None
    return parsed if isinstance(parsed, dict) else None


def _clean_reply(content: Optional[str]) -> str:
    reply = content or ""
    if "<think>" in reply:
        reply = reply.split("</think>")[-1]
    return reply.strip()


def build_messages(system_prompt: str, history: List[ontology.ConversationTurn], message: str) -> List[Dict]:
    messages = [{"role": "system", "content": system_prompt}]
    for turn in history:
        messages.append({"role": "user", "content": turn.message})
        messages.append({"role": "assistant", "content": turn.response})
    messages.append({"role": "user", "content": message})
    return messages


def _call_model(messages: List[Dict], tools: Optional[List[Dict]]):
    kwargs = {}
    if tools:
        kwargs = {"tools": tools, "tool_choice": "auto"}
    try:
        response = _get_client().chat.completions.create(
            model=LLM_MODEL, messages=messages, max_tokens=LLM_MAX_TOKENS,
            temperature=LLM_TEMPERATURE, **kwargs,
        )
    except Exception as e:
        logger.error("[Model Error] Chat completion failed: %s", e)
        raise ModelCallError(str(e)) from e
    if not response.choices or not response.choices[0].message:
        raise ModelCallError("Model returned no choices.")
    return response.choices[0].message


def run_assistant(system_prompt: str, history: List[ontology.ConversationTurn], message: str,
                  dispatcher) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Drives one chat turn: calls the model, executes any tool calls it makes
    (in the order given) and feeds the results back until it answers in text.

    Returns the final reply and the list of executed actions. After
    MAX_TOOL_ROUNDS rounds of tool use the model is called once more without
    tools so it has to answer.
    """
    messages = build_messages(system_prompt, history, message)
    tools = _get_openai_tools(ontology.TOOLS)
    actions = []

    logger.info("Calling %s with %d message(s).", LLM_MODEL, len(messages))
    for round_number in range(MAX_TOOL_ROUNDS + 1):
        allow_tools = round_number < MAX_TOOL_ROUNDS
        reply = _call_model(messages, tools if allow_tools else None)
        tool_calls = reply.tool_calls or []
        if not tool_calls or not allow_tools:
            return _clean_reply(reply.content), actions

        logger.info("Round %d: model requested %d tool call(s).", round_number + 1, len(tool_calls))
        messages.append({
            "role": "assistant",
            "content": reply.content,
            "tool_calls": [
                {"id": call.id, "type": "function",
                 "function": {"name": call.function.name, "arguments": call.function.arguments}}
                for call in tool_calls
            ],
        })
        for call in tool_calls:
            name = call.function.name
            arguments = _safe_json_loads(call.function.arguments)
            if arguments is None:
                result = f"Error: Invalid arguments for {name}: arguments must be a JSON object"
                arguments = {}
            else:
                result = dispatcher.execute(name, arguments)
            actions.append({"tool": name, "input": arguments, "result": result})
            messages.append({"role": "tool", "tool_call_id": call.id, "content": result})

    return "", actions
