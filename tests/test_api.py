import pytest
from fastapi.testclient import TestClient

import llm_interface
from config import MAX_TOOL_ROUNDS, USER_ID_HEADER
from conftest import USER, FakeOpenAI, model_message, tool_call
from main import create_app

HEADERS = {USER_ID_HEADER: USER}


@pytest.fixture
def make_client(db, monkeypatch):
    def factory(responses):
        fake = FakeOpenAI(responses)
        monkeypatch.setattr(llm_interface, "_get_client", lambda: fake)
        return TestClient(create_app(db)), fake.completions
    return factory


def test_health(make_client):
    client, _ = make_client([])
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_user_is_unauthorized(make_client):
    client, completions = make_client([])
    response = client.post("/api/chat", json={"message": "hi"})
    assert response.status_code == 401
    assert completions.calls == []


def test_empty_message_is_rejected(make_client):
    client, completions = make_client([])
    response = client.post("/api/chat", json={"message": "   "}, headers=HEADERS)
    assert response.status_code == 400
    assert completions.calls == []


def test_plain_reply_is_saved(make_client, db):
    client, completions = make_client([model_message("Hello! How can I help?")])

    response = client.post("/api/chat", json={"message": "hi", "timezone": "UTC"}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"message": "Hello! How can I help?", "actions_executed": []}
    sent = completions.calls[0]["messages"]
    assert sent[0]["role"] == "system"
    assert "ACTIVE TASKS (0/3):" in sent[0]["content"]
    assert sent[-1] == {"role": "user", "content": "hi"}
    history = db.get_conversation_history(USER, 15)
    assert [(t.message, t.response) for t in history] == [("hi", "Hello! How can I help?")]


def test_tool_call_round_trip(make_client, db):
    client, completions = make_client([
        model_message(None, [tool_call("call_1", "add_task", {"title": "Write report"})]),
        model_message("Added it to your queue."),
    ])

    response = client.post("/api/chat", json={"message": "Add a task to write the report"}, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Added it to your queue."
    assert body["actions_executed"] == [{
        "tool": "add_task",
        "input": {"title": "Write report"},
        "result": 'Added task "Write report" to queue at position 1',
    }]
    assert [t.title for t in db.get_queued_tasks(USER)] == ["Write report"]

    follow_up = completions.calls[1]["messages"]
    assert follow_up[-2]["tool_calls"][0]["function"]["name"] == "add_task"
    assert follow_up[-1] == {"role": "tool", "tool_call_id": "call_1",
                             "content": 'Added task "Write report" to queue at position 1'}


def test_tool_calls_run_in_order_and_rule_failures_reach_the_model(make_client, db):
    client, completions = make_client([
        model_message(None, [
            tool_call("a", "create_time_block", {"start_time": "09:00", "end_time": "10:00", "block_type": "deep_work"}),
            tool_call("b", "create_time_block", {"start_time": "09:30", "end_time": "10:30", "block_type": "meeting"}),
        ]),
        model_message("The second block overlapped, so I skipped it."),
    ])

    body = client.post("/api/chat", json={"message": "Plan my morning"}, headers=HEADERS).json()

    results = [action["result"] for action in body["actions_executed"]]
    assert results[0] == "Created deep_work block from 09:00 to 10:00"
    assert results[1] == "Error: Time block overlaps with existing block 09:00-10:00 (deep_work)"
    tool_messages = [m for m in completions.calls[1]["messages"] if m["role"] == "tool"]
    assert [m["tool_call_id"] for m in tool_messages] == ["a", "b"]


def test_malformed_tool_arguments(make_client):
    client, _ = make_client([
        model_message(None, [tool_call("x", "add_task", "{not json")]),
        model_message("Sorry, something went wrong."),
    ])

    body = client.post("/api/chat", json={"message": "add stuff"}, headers=HEADERS).json()

    assert body["actions_executed"][0]["result"] == \
        "Error: Invalid arguments for add_task: arguments must be a JSON object"


def test_history_is_replayed_before_the_new_message(make_client, db):
    db.save_conversation(USER, "earlier question", "earlier answer")
    client, completions = make_client([model_message("Sure.")])

    client.post("/api/chat", json={"message": "next"}, headers=HEADERS)

    sent = completions.calls[0]["messages"]
    assert sent[1:] == [
        {"role": "user", "content": "earlier question"},
        {"role": "assistant", "content": "earlier answer"},
        {"role": "user", "content": "next"},
    ]


def test_tool_rounds_are_bounded(make_client):
    def keep_calling_tools(**kwargs):
        if "tools" in kwargs:
            return model_message(None, [tool_call("t", "analyze_schedule", {"date": "2025-01-15"})])
        return model_message("Done analyzing.")

    client, completions = make_client([keep_calling_tools] * (MAX_TOOL_ROUNDS + 1))

    body = client.post("/api/chat", json={"message": "analyze"}, headers=HEADERS).json()

    assert body["message"] == "Done analyzing."
    assert len(body["actions_executed"]) == MAX_TOOL_ROUNDS
    assert len(completions.calls) == MAX_TOOL_ROUNDS + 1
    assert "tools" not in completions.calls[-1]


def test_model_failure_is_a_server_error(make_client, db):
    client, _ = make_client([RuntimeError("upstream unavailable")])

    response = client.post("/api/chat", json={"message": "hi"}, headers=HEADERS)

    assert response.status_code == 500
    assert "upstream unavailable" in response.json()["detail"]
    assert db.get_conversation_history(USER, 15) == []
