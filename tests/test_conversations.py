from huddle.chat.aggregation import list_conversations
from huddle.chat.models import IMAGE_PREVIEW, DOCUMENT_PREVIEW, message_preview


def befriend(client, login, sender, receiver):
    login(sender)
    request_id = client.post("/friends/requests", json={"email": receiver["email"]}).json()["id"]
    login(receiver)
    return client.post(f"/friends/requests/{request_id}/accept").json()["conversation_id"]


def send(client, login, user, conversation_id, content, type="text"):
    login(user)
    resp = client.post(
        "/chat/messages",
        json={"conversation_id": conversation_id, "content": content, "type": type},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["message"]


def test_no_memberships_returns_empty_list(client, login, alice):
    login(alice)
    resp = client.get("/chat/conversations")
    assert resp.status_code == 200
    assert resp.json() == {"conversations": [], "skipped": []}


def test_unauthenticated_listing_is_rejected(client):
    resp = client.get("/chat/conversations")
    assert resp.status_code == 401


def test_missing_profile_is_user_not_found(client, auth_state):
    auth_state["payload"] = {"sub": "00000000-0000-0000-0000-000000000000"}
    resp = client.get("/chat/conversations")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "User not found"


def test_sorted_by_last_message_descending(client, login, alice, bob, carol):
    with_bob = befriend(client, login, alice, bob)
    with_carol = befriend(client, login, alice, carol)

    send(client, login, alice, with_carol, "first")
    send(client, login, bob, with_bob, "second")

    login(alice)
    items = client.get("/chat/conversations").json()["conversations"]
    assert [i["conversation"]["id"] for i in items] == [with_bob, with_carol]

    send(client, login, carol, with_carol, "third")
    login(alice)
    items = client.get("/chat/conversations").json()["conversations"]
    assert [i["conversation"]["id"] for i in items] == [with_carol, with_bob]


def test_conversations_without_messages_come_last(client, login, alice, bob, carol):
    quiet = befriend(client, login, alice, bob)
    active = befriend(client, login, alice, carol)
    send(client, login, carol, active, "hi")

    login(alice)
    items = client.get("/chat/conversations").json()["conversations"]
    assert [i["conversation"]["id"] for i in items] == [active, quiet]
    assert items[1]["conversation"]["last_message_at"] is None
    assert items[1]["last_message"] is None


def test_direct_conversation_has_other_member(client, login, alice, bob):
    befriend(client, login, alice, bob)

    login(alice)
    item = client.get("/chat/conversations").json()["conversations"][0]
    assert item["other_member"]["username"] == "bob"
    assert item["group_members"] is None

    login(bob)
    item = client.get("/chat/conversations").json()["conversations"][0]
    assert item["other_member"]["username"] == "alice"


def test_group_lists_member_usernames(client, login, alice, bob, carol):
    login(alice)
    client.post("/groups", json={"name": "Trio", "member_ids": [bob["id"], carol["id"]]})

    login(bob)
    item = client.get("/chat/conversations").json()["conversations"][0]
    assert item["conversation"]["name"] == "Trio"
    assert item["group_members"] == ["alice", "bob", "carol"]
    assert item["other_member"] is None


def test_last_message_preview_by_type(client, login, alice, bob):
    convo = befriend(client, login, alice, bob)

    send(client, login, bob, convo, "https://cdn/x.png", type="image")
    login(alice)
    preview = client.get("/chat/conversations").json()["conversations"][0]["last_message"]
    assert preview == {"content": IMAGE_PREVIEW, "sender": "bob"}

    send(client, login, bob, convo, "https://cdn/x.pdf", type="pdf")
    login(alice)
    preview = client.get("/chat/conversations").json()["conversations"][0]["last_message"]
    assert preview == {"content": DOCUMENT_PREVIEW, "sender": "bob"}

    send(client, login, alice, convo, "hello")
    preview = client.get("/chat/conversations").json()["conversations"][0]["last_message"]
    assert preview == {"content": "hello", "sender": "alice"}


def test_message_preview_mapping():
    assert message_preview("text", "hey") == "hey"
    assert message_preview("image", "url") == IMAGE_PREVIEW
    assert message_preview("audio", "url") == DOCUMENT_PREVIEW


def test_unseen_count_tracks_read_marker(client, login, alice, bob):
    convo = befriend(client, login, alice, bob)
    send(client, login, bob, convo, "one")
    send(client, login, bob, convo, "two")

    login(alice)
    item = client.get("/chat/conversations").json()["conversations"][0]
    assert item["unseen_count"] == 2

    assert client.post(f"/chat/conversations/{convo}/read").json()["success"] is True
    item = client.get("/chat/conversations").json()["conversations"][0]
    assert item["unseen_count"] == 0

    # the sender's own messages never count as unseen
    login(bob)
    item = client.get("/chat/conversations").json()["conversations"][0]
    assert item["unseen_count"] == 0


def test_failed_item_is_reported_not_fatal(client, login, db, alice, bob, carol):
    broken = befriend(client, login, alice, bob)
    healthy = befriend(client, login, alice, carol)

    db.fail_on("conversations", "select", id=broken)

    login(alice)
    body = client.get("/chat/conversations").json()
    assert [i["conversation"]["id"] for i in body["conversations"]] == [healthy]
    assert body["skipped"] == [
        {"conversation_id": broken, "reason": "conversation could not be fetched"}
    ]


def test_unfetchable_last_message_sorts_as_zero(client, login, db, alice, bob, carol):
    first = befriend(client, login, alice, bob)
    second = befriend(client, login, alice, carol)
    message = send(client, login, bob, first, "hi")

    db.fail_on("messages", "select", id=message["id"])

    login(alice)
    items = client.get("/chat/conversations").json()["conversations"]
    assert [i["conversation"]["id"] for i in items] == [first, second]
    assert items[0]["last_message"] is None


def test_direct_conversation_with_deleted_counterpart_is_skipped(client, login, db, alice, bob):
    convo = befriend(client, login, alice, bob)
    db.table("profiles").delete().eq("id", bob["id"]).execute()

    login(alice)
    body = client.get("/chat/conversations").json()
    assert body["conversations"] == []
    assert body["skipped"] == [{"conversation_id": convo, "reason": "other member not found"}]


def test_membership_query_failure_degrades_to_empty(client, login, db, alice, bob):
    befriend(client, login, alice, bob)
    db.fail_on("conversation_members", "select", member_id=alice["id"])

    login(alice)
    resp = client.get("/chat/conversations")
    assert resp.status_code == 200
    assert resp.json()["conversations"] == []


def test_list_conversations_ties_keep_membership_order(db, make_user):
    me = make_user("dora")
    others = [make_user(name) for name in ("eve", "finn", "gus")]

    ids = []
    for other in others:
        convo = db.table("conversations").insert({"is_group": False}).execute().data[0]
        db.table("conversation_members").insert(
            [
                {"conversation_id": convo["id"], "member_id": me["id"]},
                {"conversation_id": convo["id"], "member_id": other["id"]},
            ]
        ).execute()
        ids.append(convo["id"])

    listing = list_conversations(db, me["id"], max_workers=3)
    assert [s["conversation"]["id"] for s in listing.conversations] == ids
    assert listing.skipped == []


def test_single_conversation_summary(client, login, alice, bob, carol):
    convo = befriend(client, login, alice, bob)

    login(alice)
    resp = client.get(f"/chat/conversations/{convo}")
    assert resp.status_code == 200
    assert resp.json()["other_member"]["username"] == "bob"

    login(carol)
    assert client.get(f"/chat/conversations/{convo}").status_code == 403
