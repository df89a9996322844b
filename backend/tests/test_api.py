import re


def post(client, chat_id, sender, text, **extra):
    body = {"chatId": chat_id, "sender": sender, "text": text, **extra}
    response = client.post("/messages", json=body)
    assert response.status_code == 200, response.text
    return response.json()


def test_root_reports_storage_kind(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["storage"] == "memory"


def test_post_returns_stored_message(client):
    stored = post(client, "r1", "alice", "hello")

    assert stored["chatId"] == "r1"
    assert stored["sender"] == "alice"
    assert stored["text"] == "hello"
    assert isinstance(stored["id"], int)
    assert stored["createdAt"]
    assert re.fullmatch(r"\d{2}:\d{2}", stored["time"])


def test_post_keeps_client_time(client):
    stored = post(client, "r1", "alice", "hello", time="09:15")
    assert stored["time"] == "09:15"


def test_posted_message_is_listed(client):
    stored = post(client, "r1", "alice", "hello")

    response = client.get("/messages/r1")
    assert response.status_code == 200
    assert response.json() == [stored]


def test_unknown_room_is_empty(client):
    response = client.get("/messages/unknown-room")
    assert response.status_code == 200
    assert response.json() == []


def test_messages_listed_in_submission_order(client):
    for text in ("one", "two", "three"):
        post(client, "r1", "alice", text)

    messages = client.get("/messages/r1").json()
    assert [m["text"] for m in messages] == ["one", "two", "three"]
    created = [m["createdAt"] for m in messages]
    assert created == sorted(created)


def test_rooms_are_isolated(client):
    post(client, "a", "alice", "for a")
    post(client, "b", "bob", "for b")

    assert [m["text"] for m in client.get("/messages/a").json()] == ["for a"]
    assert [m["text"] for m in client.get("/messages/b").json()] == ["for b"]


def test_missing_field_is_rejected(client):
    response = client.post("/messages", json={"chatId": "r1", "sender": "alice"})
    assert response.status_code == 422


def test_empty_chat_id_is_rejected(client):
    response = client.post("/messages", json={"chatId": "", "sender": "alice", "text": "x"})
    assert response.status_code == 422


def test_storage_failure_on_get(failing_client):
    response = failing_client.get("/messages/r1")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to load messages"}


def test_storage_failure_on_post(failing_client):
    response = failing_client.post("/messages", json={"chatId": "r1", "sender": "a", "text": "hi"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to save message"}
