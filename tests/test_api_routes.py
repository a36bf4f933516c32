import json

from api.shared.exceptions import UpstreamFailureError

END = "event: end\ndata: {}\n\n"


def text_events(body: str) -> list:
    events = []
    for block in body.split("\n\n"):
        if block.startswith("data: "):
            payload = json.loads(block[len("data: "):])
            if "text" in payload:
                events.append(payload["text"])
    return events


async def create_user(client, username="alice") -> str:
    response = await client.post("/api/v1/users", json={"username": username})
    assert response.status_code == 200
    return response.json()["id"]


async def test_health_and_ready(client):
    assert (await client.get("/health")).json() == {"status": "ok"}
    ready = await client.get("/ready")
    assert ready.status_code == 200
    assert ready.json()["dependencies"]["database"] == "ok"


async def test_user_lookup_routes(client):
    user_id = await create_user(client)
    assert await create_user(client) == user_id

    found = await client.get("/api/v1/users", params={"username": "alice"})
    assert found.json()["id"] == user_id
    assert "createdAt" in found.json()

    missing = await client.get("/api/v1/users", params={"username": "nobody"})
    assert missing.status_code == 404
    assert "error" in missing.json()

    check = await client.get("/api/v1/users/check", params={"username": "alice"})
    assert check.json() == {"exists": True}

    blank = await client.post("/api/v1/users", json={"username": ""})
    assert blank.status_code == 400


async def test_chat_turn_streams_and_records_history(client):
    user_id = await create_user(client)

    response = await client.post(
        "/api/v1/chat", data={"message": "hi", "userId": user_id, "speed": "fast"}
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert text_events(response.text) == ["Hel", "lo"]
    assert response.text.endswith(END)
    conversation_id = response.headers["x-conversation-id"]

    listing = (await client.get("/api/v1/conversations", params={"userId": user_id})).json()
    assert [c["title"] for c in listing["items"]] == ["hi"]
    assert listing["pagination"] == {"page": 1, "pageSize": 10, "total": 1, "totalPages": 1}

    messages = await client.get(
        f"/api/v1/conversations/{conversation_id}/messages", params={"userId": user_id}
    )
    items = messages.json()["items"]
    assert [(m["role"], m["content"]) for m in items] == [("user", "hi"), ("assistant", "Hello")]
    assert items[0]["topicId"] == conversation_id


async def test_chat_with_unknown_topic_starts_a_new_conversation(client):
    user_id = await create_user(client)

    response = await client.post(
        "/api/v1/chat",
        data={"message": "hi", "userId": user_id, "topicId": "does-not-exist"},
    )

    assert response.status_code == 200
    assert response.text.endswith(END)
    conversation_id = response.headers["x-conversation-id"]
    assert conversation_id != "does-not-exist"

    listing = (await client.get("/api/v1/conversations", params={"userId": user_id})).json()
    assert [(c["id"], c["title"]) for c in listing["items"]] == [(conversation_id, "hi")]
    messages = await client.get(
        f"/api/v1/conversations/{conversation_id}/messages", params={"userId": user_id}
    )
    assert [(m["role"], m["content"]) for m in messages.json()["items"]] == [
        ("user", "hi"),
        ("assistant", "Hello"),
    ]


async def test_chat_fields_may_come_from_the_query_string(client):
    response = await client.post("/api/v1/chat", params={"message": "hello there"})
    assert response.status_code == 200
    assert text_events(response.text) == ["Hel", "lo"]


async def test_chat_image_upload(client, model_client):
    user_id = await create_user(client)
    response = await client.post(
        "/api/v1/chat",
        data={"userId": user_id},
        files={"image": ("cat.png", b"\x89PNG", "image/png")},
    )
    assert response.status_code == 200
    assert model_client.prompts[0].image.media_type == "image/png"
    assert model_client.prompts[0].image.data == b"\x89PNG"


async def test_chat_rejects_empty_turn(client):
    response = await client.post("/api/v1/chat", data={"message": "  "})
    assert response.status_code == 400
    assert response.json()["error"] == "Either a message or an image is required"


async def test_chat_without_credential(client, model_client):
    model_client.configured = False
    response = await client.post("/api/v1/chat", data={"message": "hi"})
    assert response.status_code == 500
    assert "MODEL_API_KEY" in response.json()["error"]


async def test_chat_upstream_rejected(client, model_client):
    model_client.open_error = UpstreamFailureError(
        "fake", "the configured model credential was rejected"
    )
    response = await client.post("/api/v1/chat", data={"message": "hi"})
    assert response.status_code == 500
    assert "rejected" in response.json()["error"]


async def test_conversation_crud_and_ownership(client):
    alice = await create_user(client, "alice")
    bob = await create_user(client, "bob")

    created = await client.post(
        "/api/v1/conversations", json={"userId": alice, "title": "Plans"}
    )
    assert created.status_code == 201
    conversation_id = created.json()["id"]

    first = await client.get("/api/v1/conversations", params={"userId": alice})
    assert first.json()["pagination"]["total"] == 1

    foreign = await client.get(f"/api/v1/conversations/{conversation_id}", params={"userId": bob})
    assert foreign.status_code == 403

    renamed = await client.patch(
        f"/api/v1/conversations/{conversation_id}", json={"userId": alice, "title": "Trips"}
    )
    assert renamed.json()["title"] == "Trips"

    # the rename cleared the coalescing cache
    listing = await client.get("/api/v1/conversations", params={"userId": alice})
    assert listing.json()["items"][0]["title"] == "Trips"

    deleted = await client.delete(
        f"/api/v1/conversations/{conversation_id}", params={"userId": alice}
    )
    assert deleted.json() == {"success": True}
    gone = await client.get(f"/api/v1/conversations/{conversation_id}", params={"userId": alice})
    assert gone.status_code == 404

    missing_field = await client.post("/api/v1/conversations", json={"userId": alice})
    assert missing_field.status_code == 400


async def test_clear_history(client):
    alice = await create_user(client)
    for title in ("a", "b"):
        await client.post("/api/v1/conversations", json={"userId": alice, "title": title})

    response = await client.delete("/api/v1/conversations", params={"userId": alice})
    assert response.json() == {"success": True, "deleted": 2}


async def test_message_routes(client):
    alice = await create_user(client, "alice")
    bob = await create_user(client, "bob")
    conversation_id = (
        await client.post("/api/v1/conversations", json={"userId": alice, "title": "t"})
    ).json()["id"]

    ids = []
    for index, (role, content) in enumerate(
        [("user", "find flights"), ("assistant", "which dates?"), ("user", "june")]
    ):
        response = await client.post(
            "/api/v1/messages",
            json={
                "topicId": conversation_id,
                "userId": alice,
                "role": role,
                "content": content,
                "metadata": {"n": index},
                "createdAt": f"2024-06-01T10:00:0{index}Z",
            },
        )
        assert response.status_code == 201
        ids.append(response.json()["id"])

    single = await client.get(f"/api/v1/messages/{ids[1]}", params={"userId": alice})
    assert single.json()["message"]["content"] == "which dates?"
    assert json.loads(single.json()["message"]["metadata"]) == {"n": 1}

    thread = await client.get(
        f"/api/v1/messages/{ids[1]}", params={"userId": alice, "thread": "true"}
    )
    assert [m["id"] for m in thread.json()["messages"]] == ids[:2]

    forbidden = await client.get(f"/api/v1/messages/{ids[0]}", params={"userId": bob})
    assert forbidden.status_code == 403

    edited = await client.patch(
        f"/api/v1/messages/{ids[2]}", json={"userId": alice, "content": "july"}
    )
    assert edited.json()["content"] == "july"

    search = await client.get("/api/v1/messages/search", params={"userId": alice, "q": "flight"})
    hits = search.json()["items"]
    assert [h["message"]["id"] for h in hits] == [ids[0]]
    assert hits[0]["conversation"]["title"] == "t"

    deleted = await client.delete(f"/api/v1/messages/{ids[0]}", params={"userId": alice})
    assert deleted.json()["success"] is True
    assert deleted.json()["deletedMessage"]["id"] == ids[0]

    missing = await client.get(f"/api/v1/messages/{ids[0]}", params={"userId": alice})
    assert missing.status_code == 404


async def test_create_message_validation(client):
    alice = await create_user(client)
    conversation_id = (
        await client.post("/api/v1/conversations", json={"userId": alice, "title": "t"})
    ).json()["id"]

    no_parent = await client.post(
        "/api/v1/messages", json={"userId": alice, "role": "user", "content": "x"}
    )
    assert no_parent.status_code == 400

    no_content = await client.post(
        "/api/v1/messages", json={"topicId": conversation_id, "userId": alice, "role": "user"}
    )
    assert no_content.status_code == 400

    bad_date = await client.post(
        "/api/v1/messages",
        json={
            "conversationId": conversation_id,
            "userId": alice,
            "role": "user",
            "content": "x",
            "createdAt": "not a date",
        },
    )
    assert bad_date.status_code == 400
    assert bad_date.json()["error"] == "Invalid created_at date format"


async def test_user_stats(client):
    alice = await create_user(client)
    await client.post("/api/v1/chat", data={"message": "hi", "userId": alice})

    stats = await client.get(f"/api/v1/users/{alice}/stats")
    body = stats.json()
    assert body["messageCount"] == 2
    assert body["firstMessage"] is not None

    unknown = await client.get("/api/v1/users/nobody/stats")
    assert unknown.status_code == 404
