import json
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from db_manager import DatabaseManager
from tool_dispatcher import ToolDispatcher

USER = "user-1"
OTHER_USER = "user-2"
TODAY = date(2025, 1, 15)  # a Wednesday
NOW = datetime(2025, 1, 15, 14, 0)


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'deepwork_test.sqlite'}")
    manager.create_database()
    yield manager
    manager.engine.dispose()


@pytest.fixture
def dispatcher(db):
    return ToolDispatcher(db, USER, TODAY, NOW)


def tool_call(call_id, name, arguments):
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=raw))


def model_message(content=None, tool_calls=None):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content, tool_calls=tool_calls))])


class FakeCompletions:
    """Replays scripted responses and records what the service sent."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append({**kwargs, "messages": list(kwargs["messages"])})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(**kwargs)
        return response


class FakeOpenAI:
    def __init__(self, responses):
        self.completions = FakeCompletions(responses)
        self.chat = SimpleNamespace(completions=self.completions)
