"""Tests for the public stories API."""
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from src.db.tables import StoryRow, StoryTagRow
from tests.conftest import get_test_session


def _payload(category, **overrides):
    body = {
        "title": "Ember and Ash",
        "genre": "Dark Fantasy",
        "length": 3400,
        "content": "The forge never cooled.",
        "description": "A smith's apprentice inherits a cursed hammer.",
        "category_id": category.id,
    }
    body.update(overrides)
    return body


async def test_create_story(client, category):
    resp = await client.post("/stories", json=_payload(category))
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Story created successfully"
    data = body["data"]
    assert data["title"] == "Ember and Ash"
    assert data["category"]["name"] == "Fantasy"
    assert data["tags"] == []
    assert len(data["id"]) == 36


async def test_create_story_with_tags_queues_them(client, category, tag):
    resp = await client.post("/stories", json=_payload(category, tags=[tag.id, tag.id]))
    assert resp.status_code == 201
    story_id = resp.json()["data"]["id"]
    # Submitted tags wait for a moderator and are not shown yet
    assert resp.json()["data"]["tags"] == []

    async with get_test_session() as session:
        rows = (await session.execute(
            select(StoryTagRow).where(StoryTagRow.story_id == story_id)
        )).scalars().all()
    assert [(r.tag_id, r.status) for r in rows] == [(tag.id, "pending")]


async def test_create_story_invalid_references(client, category):
    resp = await client.post("/stories", json=_payload(category, category_id=999, tags=[12345]))
    assert resp.status_code == 422
    errors = resp.json()["errors"]
    assert errors["category_id"] == ["The selected category id is invalid."]
    assert "tags.0" in errors


async def test_create_story_missing_title(client, category):
    body = _payload(category)
    del body["title"]
    resp = await client.post("/stories", json=body)
    assert resp.status_code == 422
    assert "title" in resp.json()["errors"]


async def test_show_story(client, story):
    resp = await client.get(f"/stories/{story.id}")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["content"] == "Snow fell for a hundred days."
    assert data["comments"] == []
    assert data["average_rating"] is None


async def test_show_missing_story(client):
    resp = await client.get("/stories/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Story not found"


async def test_partial_update(client, story):
    resp = await client.patch(f"/stories/{story.id}", json={"title": "The Longer Winter"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["title"] == "The Longer Winter"
    assert data["genre"] == "Epic Fantasy"
    assert resp.json()["message"] == "Story updated successfully"


async def test_update_rejects_unknown_category(client, story):
    resp = await client.put(f"/stories/{story.id}", json={"category_id": 4242})
    assert resp.status_code == 422
    assert "category_id" in resp.json()["errors"]


async def test_delete_story_removes_dependents(client, story, tag):
    await client.post(f"/stories/{story.id}/tags", json={"tag_id": tag.id})
    await client.post(f"/stories/{story.id}/ratings", json={"rating": 4})
    resp = await client.delete(f"/stories/{story.id}")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Story deleted successfully"
    assert (await client.get(f"/stories/{story.id}")).status_code == 404

    # The tag is free again once the story is gone
    assert (await client.delete(f"/tags/{tag.id}")).status_code == 200


async def test_list_is_paginated_newest_first(client, category):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    async with get_test_session() as session:
        for i in range(12):
            session.add(StoryRow(title=f"Story {i:02d}", category_id=category.id, created_at=base + timedelta(hours=i)))
        await session.commit()

    first = (await client.get("/stories")).json()
    assert len(first["data"]) == 10
    assert first["data"][0]["title"] == "Story 11"
    assert first["meta"] == {"current_page": 1, "per_page": 10, "total": 12, "last_page": 2, "has_more": True}

    second = (await client.get("/stories", params={"page": 2})).json()
    assert [s["title"] for s in second["data"]] == ["Story 01", "Story 00"]
    assert second["meta"]["has_more"] is False


async def test_list_item_shape(client, story):
    item = (await client.get("/stories")).json()["data"][0]
    assert set(item) == {"id", "title", "description", "category", "created_at_formatted"}
    # dd/mm/YYYY HH:MM
    assert len(item["created_at_formatted"]) == 16
    assert item["created_at_formatted"][2] == "/"


async def test_filter_by_title_substring(client, category):
    async with get_test_session() as session:
        session.add_all([
            StoryRow(title="The Glass Tower", category_id=category.id),
            StoryRow(title="Salt and Glass", category_id=category.id),
            StoryRow(title="100% Fiction", category_id=category.id),
        ])
        await session.commit()

    glass = (await client.get("/stories", params={"title": "glass"})).json()
    assert {s["title"] for s in glass["data"]} == {"The Glass Tower", "Salt and Glass"}

    # LIKE wildcards in the query are matched literally
    percent = (await client.get("/stories", params={"title": "%"})).json()
    assert [s["title"] for s in percent["data"]] == ["100% Fiction"]


async def test_filter_by_category(client, category, story):
    other = (await client.post("/categories", json={"name": "Horror"})).json()["data"]
    await client.post("/stories", json=_payload(category, category_id=other["id"], title="Night Visitors"))

    resp = (await client.get("/stories", params={"category_id": other["id"]})).json()
    assert [s["title"] for s in resp["data"]] == ["Night Visitors"]


async def test_filter_by_date_window_is_inclusive(client, category):
    async with get_test_session() as session:
        session.add_all([
            StoryRow(title="Before", category_id=category.id, created_at=datetime(2026, 3, 31, 23, 59)),
            StoryRow(title="First day", category_id=category.id, created_at=datetime(2026, 4, 1, 0, 0)),
            StoryRow(title="Last day", category_id=category.id, created_at=datetime(2026, 4, 30, 23, 59)),
            StoryRow(title="After", category_id=category.id, created_at=datetime(2026, 5, 1, 0, 0)),
        ])
        await session.commit()

    resp = (await client.get("/stories", params={"start_date": "2026-04-01", "end_date": "2026-04-30"})).json()
    assert {s["title"] for s in resp["data"]} == {"First day", "Last day"}


async def test_invalid_page_is_422(client):
    resp = await client.get("/stories", params={"page": 0})
    assert resp.status_code == 422
    assert "page" in resp.json()["errors"]


async def test_report_missing_story_is_404(client):
    resp = await client.post("/stories/missing/report", json={
        "reason": "spam", "user_id": "7f1d7c1e-2a9c-4f7e-9a55-0d3c8b1c2f10",
    })
    assert resp.status_code == 404
