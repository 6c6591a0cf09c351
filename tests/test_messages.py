import pytest

from servicepro.db.models.notification import Notification


@pytest.fixture()
def conversation(client, customer, provider_account):
    r = client.post("/api/messages/conversations", json={"participant_ids": [provider_account[0].id]},
                    headers=customer[1])
    assert r.status_code == 201
    return r.json()


def send(client, headers, conversation_id, text="Hello, is Tuesday free?"):
    return client.post(f"/api/messages/conversations/{conversation_id}/messages", json={"text": text},
                       headers=headers)


def test_direct_conversation_is_reused(client, conversation, customer, provider_account):
    assert {p["user_id"] for p in conversation["participants"]} == {customer[0].id, provider_account[0].id}
    roles = {p["user_id"]: p["role"] for p in conversation["participants"]}
    assert roles[provider_account[0].id] == "provider"

    again = client.post("/api/messages/conversations", json={"participant_ids": [customer[0].id]},
                        headers=provider_account[1])
    assert again.json()["id"] == conversation["id"]


def test_conversation_needs_someone_else(client, customer):
    r = client.post("/api/messages/conversations", json={"participant_ids": [customer[0].id]}, headers=customer[1])
    assert r.status_code == 400
    r = client.post("/api/messages/conversations", json={"participant_ids": [customer[0].id, 999]},
                    headers=customer[1])
    assert r.status_code == 404


def test_send_and_read(client, db, conversation, customer, provider_account):
    r = send(client, customer[1], conversation["id"])
    assert r.status_code == 201
    message = r.json()
    assert message["recipient_id"] == provider_account[0].id
    assert message["is_read"] is False

    listed = client.get("/api/messages/conversations", headers=provider_account[1]).json()
    assert listed[0]["unread_count"] == 1
    assert listed[0]["last_message_content"] == "Hello, is Tuesday free?"

    note = db.query(Notification).one()
    assert note.notification_type == "message_received"
    assert note.extra["message_id"] == message["id"]

    # the sender reading does not mark anything
    client.get(f"/api/messages/conversations/{conversation['id']}/messages", headers=customer[1])
    msgs = client.get(f"/api/messages/conversations/{conversation['id']}/messages", headers=provider_account[1]).json()
    assert msgs[0]["is_read"] is True
    assert client.get("/api/messages/conversations", headers=provider_account[1]).json()[0]["unread_count"] == 0


def test_outsiders_are_kept_out(client, conversation, other_customer):
    url = f"/api/messages/conversations/{conversation['id']}/messages"
    assert client.get(url, headers=other_customer[1]).status_code == 403
    assert send(client, other_customer[1], conversation["id"]).status_code == 403


def test_messages_are_chronological_and_hide_deleted(client, conversation, customer, provider_account):
    first = send(client, customer[1], conversation["id"], "one").json()
    send(client, provider_account[1], conversation["id"], "two")
    send(client, customer[1], conversation["id"], "three")

    assert client.delete(f"/api/messages/{first['id']}", headers=provider_account[1]).status_code == 403
    assert client.delete(f"/api/messages/{first['id']}", headers=customer[1]).status_code == 200

    msgs = client.get(f"/api/messages/conversations/{conversation['id']}/messages", headers=customer[1]).json()
    assert [m["text"] for m in msgs] == ["two", "three"]


def test_edit_keeps_original(client, conversation, customer, provider_account):
    msg = send(client, customer[1], conversation["id"], "helo").json()
    assert client.put(f"/api/messages/{msg['id']}", json={"text": "x"}, headers=provider_account[1]).status_code == 403

    r = client.put(f"/api/messages/{msg['id']}", json={"text": "hello"}, headers=customer[1]).json()
    assert r["is_edited"] is True
    assert r["original_content"] == "helo"


def test_mark_read_by_recipient_only(client, conversation, customer, provider_account):
    msg = send(client, customer[1], conversation["id"]).json()
    assert client.put(f"/api/messages/{msg['id']}/read", headers=customer[1]).status_code == 403
    r = client.put(f"/api/messages/{msg['id']}/read", headers=provider_account[1])
    assert r.json()["status"] == "read"


def test_reactions(client, conversation, customer, provider_account):
    msg = send(client, customer[1], conversation["id"]).json()
    url = f"/api/messages/{msg['id']}/reactions"
    client.post(url, json={"emoji": "👍"}, headers=provider_account[1])
    r = client.post(url, json={"emoji": "🎉"}, headers=provider_account[1]).json()
    assert r["reactions"] == [{"user_id": provider_account[0].id, "emoji": "🎉"}]

    r = client.delete(url, headers=provider_account[1]).json()
    assert r["reactions"] == []


def test_archived_conversation_rejects_messages(client, conversation, customer):
    r = client.put(f"/api/messages/conversations/{conversation['id']}/archive", json={"reason": "done"},
                   headers=customer[1])
    assert r.json()["status"] == "archived"
    assert send(client, customer[1], conversation["id"]).status_code == 400
    assert client.get("/api/messages/conversations", headers=customer[1]).json() == []


def test_stats(client, conversation, customer, provider_account):
    send(client, customer[1], conversation["id"])
    send(client, customer[1], conversation["id"])
    stats = client.get("/api/messages/stats", headers=provider_account[1]).json()
    assert stats["received"] == 2
    assert stats["unread"] == 2
    assert stats["active_conversations"] == 1


def test_unknown_participant_is_404(client, customer):
    r = client.post("/api/messages/conversations", json={"participant_ids": [999]}, headers=customer[1])
    assert r.status_code == 404
