"""Chat API tests — token rooms, replies, author edits and moderation."""

from datetime import timedelta

import pytest
import pytest_asyncio
from conftest import random_wallet, register
from sqlalchemy import select

from crossfun.db.models import ChatMessage, utcnow


async def new_token(client, owner) -> str:
    address = random_wallet()
    r = await client.post(
        "/api/tokens",
        headers=owner["headers"],
        json={
            "address": address,
            "name": "Chatty",
            "symbol": "CHAT",
            "creatorAddress": owner["user"]["primaryWallet"],
        },
    )
    assert r.status_code == 201
    return address


@pytest_asyncio.fixture()
async def room(client, user) -> str:
    return await new_token(client, user)


async def post(client, author, room, text="gm", **fields) -> dict:
    r = await client.post(f"/api/chat/{room}", headers=author["headers"], json={"message": text, **fields})
    assert r.status_code == 201, r.text
    assert r.json()["message"] == "Chat message added successfully"
    return r.json()["data"]


# ─── Posting ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_post_message_uses_primary_wallet(client, user, room):
    msg = await post(client, user, room, text="  wagmi  ")
    assert msg["message"] == "wagmi"
    assert msg["username"] == user["user"]["username"]
    assert msg["userAddress"] == user["user"]["primaryWallet"]
    assert msg["messageType"] == "text"
    assert msg["replyTo"] is None


@pytest.mark.asyncio
async def test_post_requires_auth(client, room):
    r = await client.post(f"/api/chat/{room}", json={"message": "hi"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_post_to_unknown_token(client, user):
    r = await client.post(f"/api/chat/{random_wallet()}", headers=user["headers"], json={"message": "hi"})
    assert r.status_code == 404
    assert r.json() == {"error": "Token not found"}


@pytest.mark.parametrize("text", ["", "   ", "x" * 1001])
@pytest.mark.asyncio
async def test_post_rejects_bad_length(client, user, room, text):
    r = await client.post(f"/api/chat/{room}", headers=user["headers"], json={"message": text})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_reply_within_room(client, user, room):
    parent = await post(client, user, room)
    reply = await post(client, user, room, text="reply", replyTo=parent["id"])
    assert reply["replyTo"] == parent["id"]


@pytest.mark.asyncio
async def test_reply_across_rooms_rejected(client, user, room):
    parent = await post(client, user, room)
    other_room = await new_token(client, user)
    r = await client.post(
        f"/api/chat/{other_room}",
        headers=user["headers"],
        json={"message": "wrong room", "replyTo": parent["id"]},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid reply message"}


# ─── Reading ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_room_sorting(client, user, room, db_session):
    first = await post(client, user, room, text="first")
    second = await post(client, user, room, text="second")

    result = await db_session.execute(select(ChatMessage).where(ChatMessage.message == "first"))
    result.scalars().one().created_at = utcnow() - timedelta(minutes=5)
    await db_session.commit()

    newest = (await client.get(f"/api/chat/{room}")).json()
    assert [m["id"] for m in newest["data"]] == [second["id"], first["id"]]

    oldest = (await client.get(f"/api/chat/{room}", params={"sort": "oldest"})).json()
    assert [m["id"] for m in oldest["data"]] == [first["id"], second["id"]]


@pytest.mark.asyncio
async def test_room_page_size_defaults_to_fifty(client, room):
    r = await client.get(f"/api/chat/{room}")
    assert r.status_code == 200
    assert r.json()["totalCount"] == 0
    assert r.json()["currentPage"] == 1

    r = await client.get(f"/api/chat/{random_wallet()}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_room_hides_deleted_and_moderated(client, user, moderator, room):
    keep = await post(client, user, room, text="keep")
    gone = await post(client, user, room, text="gone")
    spam = await post(client, user, room, text="spam")

    await client.delete(f"/api/chat/messages/{gone['id']}", headers=user["headers"])
    await client.post(
        f"/api/chat/messages/{spam['id']}/moderate",
        headers=moderator["headers"],
        json={"reason": "spam"},
    )

    feed = (await client.get(f"/api/chat/{room}")).json()
    assert [m["id"] for m in feed["data"]] == [keep["id"]]

    # The author's own history still shows what moderation took down
    history = (await client.get(f"/api/chat/user/{user['user']['primaryWallet']}")).json()
    assert {m["id"] for m in history["data"]} == {keep["id"], spam["id"]}


# ─── Edit / delete / moderate ───────────────────────────


@pytest.mark.asyncio
async def test_author_edits_message(client, user, room):
    msg = await post(client, user, room)
    r = await client.put(
        f"/api/chat/messages/{msg['id']}",
        headers=user["headers"],
        json={"message": "gm (edited)"},
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Message updated successfully"
    assert r.json()["data"]["message"] == "gm (edited)"
    assert r.json()["data"]["isEdited"] is True


@pytest.mark.asyncio
async def test_others_cannot_edit_or_delete(client, user, room):
    msg = await post(client, user, room)
    stranger = await register(client)

    r = await client.put(f"/api/chat/messages/{msg['id']}", headers=stranger["headers"], json={"message": "mine now"})
    assert r.status_code == 403
    assert r.json() == {"error": "You can only edit your own messages"}

    r = await client.delete(f"/api/chat/messages/{msg['id']}", headers=stranger["headers"])
    assert r.status_code == 403
    assert r.json() == {"error": "You can only delete your own messages"}


@pytest.mark.asyncio
async def test_moderator_deletes_any_message(client, user, moderator, room):
    msg = await post(client, user, room)
    r = await client.delete(f"/api/chat/messages/{msg['id']}", headers=moderator["headers"])
    assert r.status_code == 200
    assert r.json() == {"message": "Message deleted successfully"}


@pytest.mark.asyncio
async def test_missing_message_is_404(client, user):
    r = await client.delete(
        "/api/chat/messages/00000000-0000-0000-0000-000000000000",
        headers=user["headers"],
    )
    assert r.status_code == 404
    assert r.json() == {"error": "Message not found"}


@pytest.mark.asyncio
async def test_moderation_requires_moderator_and_reason(client, user, moderator, room):
    msg = await post(client, user, room)

    r = await client.post(f"/api/chat/messages/{msg['id']}/moderate", headers=user["headers"], json={"reason": "x"})
    assert r.status_code == 403

    r = await client.post(f"/api/chat/messages/{msg['id']}/moderate", headers=moderator["headers"], json={"reason": ""})
    assert r.status_code == 400

    r = await client.post(
        f"/api/chat/messages/{msg['id']}/moderate",
        headers=moderator["headers"],
        json={"reason": "off topic"},
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["isModerated"] is True
    assert data["moderationReason"] == "off topic"


# ─── Reactions ──────────────────────────────────────────


async def react(client, account, message_id, kind) -> dict:
    r = await client.post(f"/api/chat/messages/{message_id}/{kind}", headers=account["headers"])
    assert r.status_code == 200, r.text
    return r.json()


@pytest.mark.asyncio
async def test_like_dislike_and_remove(client, user, moderator, room):
    msg = await post(client, user, room)

    body = await react(client, user, msg["id"], "like")
    assert body == {"message": "Message liked successfully", "data": {"likeCount": 1, "dislikeCount": 0}}

    # liking twice is a no-op
    body = await react(client, user, msg["id"], "like")
    assert body["data"] == {"likeCount": 1, "dislikeCount": 0}

    body = await react(client, moderator, msg["id"], "dislike")
    assert body["message"] == "Message disliked successfully"
    assert body["data"] == {"likeCount": 1, "dislikeCount": 1}

    # switching kind moves the single reaction
    body = await react(client, user, msg["id"], "dislike")
    assert body["data"] == {"likeCount": 0, "dislikeCount": 2}

    r = await client.delete(f"/api/chat/messages/{msg['id']}/reaction", headers=user["headers"])
    assert r.status_code == 200
    assert r.json() == {
        "message": "Reaction removed successfully",
        "data": {"likeCount": 0, "dislikeCount": 1},
    }


@pytest.mark.asyncio
async def test_reactions_require_auth_and_message(client, user, room):
    msg = await post(client, user, room)
    r = await client.post(f"/api/chat/messages/{msg['id']}/like")
    assert r.status_code == 401

    r = await client.post(
        "/api/chat/messages/00000000-0000-0000-0000-000000000000/like",
        headers=user["headers"],
    )
    assert r.status_code == 404
    assert r.json() == {"error": "Message not found"}


@pytest.mark.asyncio
async def test_popular_sort_ranks_reactions_and_replies(client, user, moderator, room):
    discussed = await post(client, user, room, text="discussed")
    liked = await post(client, user, room, text="liked")
    disliked = await post(client, user, room, text="disliked")
    await post(client, moderator, room, text="re 1", replyTo=discussed["id"])
    await post(client, moderator, room, text="re 2", replyTo=discussed["id"])

    await react(client, user, liked["id"], "like")
    await react(client, moderator, liked["id"], "like")
    await react(client, moderator, disliked["id"], "dislike")

    r = await client.get(f"/api/chat/{room}", params={"sort": "popular"})
    assert r.status_code == 200
    ids = [m["id"] for m in r.json()["data"]]
    assert ids[:2] == [discussed["id"], liked["id"]]
    assert ids[-1] == disliked["id"]
    assert r.json()["totalCount"] == 5
