import pytest

from conftest import fetch, seed_user, seed_video, user_headers
from models.user import User
from models.video import Video
from services.identity import contains_id, dedupe_ids, without_id


def test_id_collection_helpers_keep_first_seen_order():
    assert dedupe_ids(["b", "a", "b", " a ", "", None, "c"]) == ["b", "a", "c"]
    assert contains_id(["x", "y"], " y")
    assert not contains_id([], "y")
    assert without_id(["x", "y", "x"], "x") == ["y"]


@pytest.mark.asyncio
async def test_subscribe_toggle_mirrors_both_users(integration_client):
    session_maker = integration_client._session_maker
    fan = await seed_user(session_maker, "fan_one")
    creator = await seed_user(session_maker, "creator_one")

    first = await integration_client.post(
        f"/api/v1/auth/user/subscribe/{creator.id}",
        headers=user_headers(fan.id),
    )
    assert first.status_code == 200
    assert first.json() == {"success": True, "data": {"isSubscribed": True, "subscribersCount": 1}}

    stored_fan = await fetch(session_maker, User, fan.id)
    stored_creator = await fetch(session_maker, User, creator.id)
    assert stored_fan.subscribed_to == [creator.id]
    assert stored_creator.subscribers == [fan.id]

    second = await integration_client.post(
        f"/api/v1/auth/user/subscribe/{creator.id}",
        headers=user_headers(fan.id),
    )
    assert second.status_code == 200
    assert second.json()["data"] == {"isSubscribed": False, "subscribersCount": 0}

    stored_fan = await fetch(session_maker, User, fan.id)
    stored_creator = await fetch(session_maker, User, creator.id)
    assert stored_fan.subscribed_to == []
    assert stored_creator.subscribers == []


@pytest.mark.asyncio
async def test_subscribe_to_self_is_rejected_without_mutation(integration_client):
    session_maker = integration_client._session_maker
    user = await seed_user(session_maker, "lonely")

    response = await integration_client.post(
        f"/api/v1/auth/user/subscribe/{user.id}",
        headers=user_headers(user.id),
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "You cannot subscribe to yourself"}

    stored = await fetch(session_maker, User, user.id)
    assert stored.subscribed_to == []
    assert stored.subscribers == []


@pytest.mark.asyncio
async def test_subscribe_to_missing_creator_returns_404(integration_client):
    fan = await seed_user(integration_client._session_maker, "fan_two")

    response = await integration_client.post(
        "/api/v1/auth/user/subscribe/does-not-exist",
        headers=user_headers(fan.id),
    )
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Creator not found"}


@pytest.mark.asyncio
async def test_subscribe_requires_authentication(integration_client):
    creator = await seed_user(integration_client._session_maker, "creator_two")

    response = await integration_client.post(f"/api/v1/auth/user/subscribe/{creator.id}")
    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_like_toggle_updates_video_and_user(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "maker")
    viewer = await seed_user(session_maker, "viewer")
    video = await seed_video(session_maker, creator.id, "Cooking pasta at home")

    liked = await integration_client.post(f"/api/v1/videos/{video.id}/like", headers=user_headers(viewer.id))
    assert liked.status_code == 200
    payload = liked.json()["data"]
    assert payload["isLiked"] is True
    assert payload["likesCount"] == 1
    assert payload["video"]["_id"] == video.id
    assert payload["video"]["likes"] == [viewer.id]
    assert payload["video"]["creator"]["username"] == "maker"

    stored_viewer = await fetch(session_maker, User, viewer.id)
    assert stored_viewer.liked_videos == [video.id]

    unliked = await integration_client.post(f"/api/v1/videos/{video.id}/like", headers=user_headers(viewer.id))
    assert unliked.status_code == 200
    assert unliked.json()["data"]["isLiked"] is False
    assert unliked.json()["data"]["likesCount"] == 0

    stored_video = await fetch(session_maker, Video, video.id)
    stored_viewer = await fetch(session_maker, User, viewer.id)
    assert stored_video.likes == []
    assert stored_viewer.liked_videos == []


@pytest.mark.asyncio
async def test_like_counts_each_user_once(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "maker_two")
    first = await seed_user(session_maker, "first_fan")
    second = await seed_user(session_maker, "second_fan")
    video = await seed_video(session_maker, creator.id, "Morning stretch routine")

    await integration_client.post(f"/api/v1/videos/{video.id}/like", headers=user_headers(first.id))
    response = await integration_client.post(f"/api/v1/videos/{video.id}/like", headers=user_headers(second.id))

    assert response.json()["data"]["likesCount"] == 2
    stored_video = await fetch(session_maker, Video, video.id)
    assert stored_video.likes == [first.id, second.id]


@pytest.mark.asyncio
async def test_stored_like_lists_are_deduplicated(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "maker_three")
    video = await seed_video(
        session_maker,
        creator.id,
        "Duplicate likes on save",
        likes=["u1", "u2", "u1"],
    )

    stored = await fetch(session_maker, Video, video.id)
    assert stored.likes == ["u1", "u2"]
    assert stored.likes_count == 2


@pytest.mark.asyncio
async def test_like_missing_video_returns_404(integration_client):
    viewer = await seed_user(integration_client._session_maker, "viewer_two")

    response = await integration_client.post("/api/v1/videos/missing/like", headers=user_headers(viewer.id))
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Video not found"}
