from types import SimpleNamespace

import pytest

from config import settings
from conftest import seed_user, seed_video
from models.category import Category
from services.discovery import like_pattern, merge_unique, prefilter_token, stem, text_match, text_relevance, text_terms


def _video(video_id, title="", description=""):
    return SimpleNamespace(id=video_id, title=title, description=description)


def test_text_terms_drop_stop_words_and_stem():
    assert text_terms("The cooking of pasta dishes") == ["cook", "pasta", "dish"]
    assert stem("is") == "is"
    assert text_terms("   ") == []


def test_plural_and_singular_forms_share_a_stem():
    assert stem("games") == stem("game") == "game"
    assert stem("makes") == stem("make")
    assert stem("cities") == stem("city")
    assert prefilter_token(stem("city")) in "city"


def test_text_relevance_prefers_repeated_and_dense_matches():
    terms = text_terms("pasta")
    focused = _video("a", title="Pasta pasta", description="")
    diluted = _video("b", title="Pasta with tomato basil and garlic bread", description="")
    unrelated = _video("c", title="Guitar lesson", description="chords")

    assert text_relevance(focused, terms) > text_relevance(diluted, terms) > 0
    assert text_relevance(unrelated, terms) == 0


def test_merge_unique_keeps_first_occurrence_and_truncates():
    a, b, c, d = (_video(name) for name in "abcd")
    merged = merge_unique([[a, b], [b, c, d]], limit=3)
    assert [video.id for video in merged] == ["a", "b", "c"]


def test_like_pattern_escapes_wildcards():
    assert like_pattern("50%_off") == "%50\\%\\_off%"


@pytest.mark.asyncio
async def test_search_with_blank_query_returns_nothing(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "searcher")
    await seed_video(session_maker, creator.id, "Anything at all")

    for query in ("", "   "):
        response = await integration_client.get("/api/v1/videos/search", params={"q": query})
        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 0, "data": []}

    missing = await integration_client.get("/api/v1/videos/search")
    assert missing.json() == {"success": True, "count": 0, "data": []}


@pytest.mark.asyncio
async def test_search_ranks_text_matches_before_substring_matches(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "chef")
    tagged = await seed_video(session_maker, creator.id, "Weekend vlog", tags=["cooking"], views=900, minutes=1)
    text_hit = await seed_video(session_maker, creator.id, "Cooking dinner fast", views=5, minutes=2)
    partial = await seed_video(session_maker, creator.id, "Precooking rice explained", views=50, minutes=3)
    await seed_video(session_maker, creator.id, "Cooking secret draft", status="pending", minutes=4)
    await seed_video(session_maker, creator.id, "Gardening basics", minutes=5)

    response = await integration_client.get("/api/v1/videos/search", params={"q": "cooking"})
    assert response.status_code == 200
    body = response.json()
    ids = [item["_id"] for item in body["data"]]

    assert ids[0] == text_hit.id
    assert set(ids) == {text_hit.id, tagged.id, partial.id}
    assert len(ids) == len(set(ids)) == body["count"]
    assert all(item["status"] == "approved" for item in body["data"])
    assert ids.index(tagged.id) < ids.index(partial.id)


@pytest.mark.asyncio
async def test_search_treats_keywords_literally(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "sales")
    sale = await seed_video(session_maker, creator.id, "Huge 50% sale today")
    await seed_video(session_maker, creator.id, "A 500 mile drive")

    response = await integration_client.get("/api/v1/videos/search", params={"q": "50%"})
    assert [item["_id"] for item in response.json()["data"]] == [sale.id]


@pytest.mark.asyncio
async def test_search_caps_results(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "prolific")
    for index in range(55):
        await seed_video(session_maker, creator.id, f"Yoga session {index}", minutes=index)

    response = await integration_client.get("/api/v1/videos/search", params={"q": "yoga"})
    body = response.json()
    assert body["count"] == 50
    assert len({item["_id"] for item in body["data"]}) == 50


@pytest.mark.asyncio
async def test_related_prefers_shared_category_and_tags(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "curator")
    async with session_maker() as session:
        category = Category(name="Music", slug="music", creator_id=creator.id, creator_kind="User")
        session.add(category)
        await session.commit()

    seed = await seed_video(session_maker, creator.id, "Piano scales", category_id=category.id, tags=["piano"])
    same_category = await seed_video(session_maker, creator.id, "Drum fills", category_id=category.id, views=10)
    same_tag = await seed_video(session_maker, creator.id, "Night ambience", tags=["piano"], views=500)
    await seed_video(
        session_maker,
        creator.id,
        "Hidden piano draft",
        category_id=category.id,
        status="rejected",
        views=999,
    )

    response = await integration_client.get(f"/api/v1/videos/{seed.id}/related")
    assert response.status_code == 200
    body = response.json()
    ids = [item["_id"] for item in body["data"]]

    assert seed.id not in ids
    assert ids[:2] == [same_tag.id, same_category.id]
    assert all(item["status"] == "approved" for item in body["data"])
    assert len(ids) == len(set(ids))


@pytest.mark.asyncio
async def test_related_falls_back_to_most_recent_approved(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "random")
    seed = await seed_video(session_maker, creator.id, "Zebra quantum xylophone", minutes=100)
    others = [
        await seed_video(session_maker, creator.id, f"Holiday clip {index}", minutes=index)
        for index in range(12)
    ]
    await seed_video(session_maker, creator.id, "Newest but pending", status="pending", minutes=200)

    response = await integration_client.get(f"/api/v1/videos/{seed.id}/related")
    body = response.json()

    expected = [video.id for video in reversed(others)][:10]
    assert body["count"] == 10
    assert [item["_id"] for item in body["data"]] == expected


@pytest.mark.asyncio
async def test_related_for_missing_video_returns_404(integration_client):
    response = await integration_client.get("/api/v1/videos/unknown-id/related")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Video not found with id of unknown-id"}


@pytest.mark.asyncio
async def test_search_matches_plural_query_to_singular_title(integration_client):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "host")
    board = await seed_video(session_maker, creator.id, "Board game night")
    pasta = await seed_video(session_maker, creator.id, "Make pasta at home")

    games = await integration_client.get("/api/v1/videos/search", params={"q": "games"})
    assert [item["_id"] for item in games.json()["data"]] == [board.id]

    makes = await integration_client.get("/api/v1/videos/search", params={"q": "makes"})
    assert [item["_id"] for item in makes.json()["data"]] == [pasta.id]

    cities = await seed_video(session_maker, creator.id, "Walking the city at dawn")
    walks = await integration_client.get("/api/v1/videos/search", params={"q": "cities"})
    assert [item["_id"] for item in walks.json()["data"]] == [cities.id]


@pytest.mark.asyncio
async def test_text_match_scores_only_the_most_viewed_candidates(integration_client, monkeypatch):
    session_maker = integration_client._session_maker
    creator = await seed_user(session_maker, "yogi")
    videos = [
        await seed_video(session_maker, creator.id, f"Yoga flow {index}", views=index, minutes=index)
        for index in range(1, 6)
    ]
    focused = await seed_video(session_maker, creator.id, "Yoga yoga yoga", views=0)

    unbounded = await text_match(session_maker, "yoga", 2)
    assert [video.id for video in unbounded] == [focused.id, videos[4].id]

    monkeypatch.setattr(settings, "TEXT_MATCH_SCAN_LIMIT", 3)
    bounded = await text_match(session_maker, "yoga", 2)
    assert [video.id for video in bounded] == [videos[4].id, videos[3].id]
