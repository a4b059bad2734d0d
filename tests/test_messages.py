import uuid


def direct_conversation(client, login, sender, receiver):
    login(sender)
    request_id = client.post("/friends/requests", json={"email": receiver["email"]}).json()["id"]
    login(receiver)
    return client.post(f"/friends/requests/{request_id}/accept").json()["conversation_id"]


def test_send_moves_last_message_pointer(client, login, db, alice, bob):
    convo = direct_conversation(client, login, alice, bob)

    login(alice)
    message = client.post(
        "/chat/messages", json={"conversation_id": convo, "content": "hello"}
    ).json()["message"]

    assert message["type"] == "text"
    assert db.find("conversations", id=convo)[0]["last_message_id"] == message["id"]
    membership = db.find("conversation_members", conversation_id=convo, member_id=alice["id"])[0]
    assert membership["last_seen_message_id"] == message["id"]


def test_history_is_oldest_first_with_usernames(client, login, alice, bob):
    convo = direct_conversation(client, login, alice, bob)

    for user, text in ((alice, "one"), (bob, "two"), (alice, "three")):
        login(user)
        client.post("/chat/messages", json={"conversation_id": convo, "content": text})

    messages = client.get(f"/chat/conversations/{convo}/messages").json()["messages"]
    assert [(m["sender_username"], m["content"]) for m in messages] == [
        ("alice", "one"),
        ("bob", "two"),
        ("alice", "three"),
    ]


def test_non_member_cannot_read_or_write(client, login, alice, bob, carol):
    convo = direct_conversation(client, login, alice, bob)

    login(carol)
    assert client.get(f"/chat/conversations/{convo}/messages").status_code == 403
    resp = client.post("/chat/messages", json={"conversation_id": convo, "content": "hi"})
    assert resp.status_code == 403


def test_unknown_conversation(client, login, alice):
    login(alice)
    resp = client.post("/chat/messages", json={"conversation_id": str(uuid.uuid4()), "content": "x"})
    assert resp.status_code == 404


def test_empty_message_rejected(client, login, alice, bob):
    convo = direct_conversation(client, login, alice, bob)
    login(alice)
    resp = client.post("/chat/messages", json={"conversation_id": convo, "content": "   "})
    assert resp.status_code == 422


def test_failed_send_leaves_pointer_untouched(client, login, db, alice, bob):
    convo = direct_conversation(client, login, alice, bob)
    db.fail_on("conversation_members", "update")

    login(alice)
    resp = client.post("/chat/messages", json={"conversation_id": convo, "content": "lost"})
    assert resp.status_code == 500
    assert db.find("messages", conversation_id=convo) == []
    assert db.find("conversations", id=convo)[0].get("last_message_id") is None


def test_mark_read_database_failure(client, login, db, alice, bob):
    convo = direct_conversation(client, login, alice, bob)
    login(alice)
    client.post("/chat/messages", json={"conversation_id": convo, "content": "ping"})
    db.fail_on("conversation_members", "update")

    login(bob)
    resp = client.post(f"/chat/conversations/{convo}/read")
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Failed to mark conversation as read"


def test_malformed_conversation_id_is_rejected(client, login, alice):
    login(alice)
    assert client.get("/chat/conversations/not-a-uuid/messages").status_code == 422
    assert client.post("/chat/conversations/not-a-uuid/read").status_code == 422
