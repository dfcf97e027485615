"""Tests for POST /api/get-image-url"""

from unittest.mock import MagicMock, patch

import pytest

from conftest import auth_headers
from paperink.services.story_service import start_new_story
from paperink.services.storage_service import hero_portrait_path, story_page_path


@pytest.fixture()
def signer():
    fake = MagicMock(side_effect=lambda bucket, key, *args, **kwargs: f"https://storage.test/{bucket}/{key}?sig=1")
    with patch("paperink.services.storage_service.sign_url", new=fake):
        yield fake


def test_storage_paths():
    assert hero_portrait_path("u1", "h1") == "u1/h1.png"
    assert story_page_path("u1", "s1", 3) == "u1/s1/page-3.png"


async def test_single_hero_portrait(client, make_character, signer):
    hero = await make_character()

    resp = await client.post("/api/get-image-url", json={"heroId": hero.id}, headers=auth_headers())

    assert resp.status_code == 200
    body = resp.json()
    assert body["storagePath"] == f"user-1/{hero.id}.png"
    assert body["signedUrl"].endswith(f"user-1/{hero.id}.png?sig=1")


async def test_single_hero_portrait_of_other_user_is_forbidden(client, make_character, signer):
    hero = await make_character(user_id="someone-else")

    resp = await client.post("/api/get-image-url", json={"heroId": hero.id}, headers=auth_headers())

    assert resp.status_code == 403
    signer.assert_not_called()


async def test_batch_omits_heroes_not_owned(client, make_character, signer):
    mine = await make_character(name="Mila")
    also_mine = await make_character(name="Noor")
    theirs = await make_character(user_id="someone-else", name="Zed")

    resp = await client.post(
        "/api/get-image-url",
        json={"heroIds": [mine.id, theirs.id, also_mine.id, "does-not-exist"]},
        headers=auth_headers(),
    )

    assert resp.status_code == 200
    urls = resp.json()["urls"]
    assert set(urls) == {mine.id, also_mine.id}
    assert signer.call_count == 2


async def test_batch_over_limit_is_rejected(client, signer):
    resp = await client.post(
        "/api/get-image-url",
        json={"heroIds": [f"hero-{i}" for i in range(51)]},
        headers=auth_headers(),
    )

    assert resp.status_code == 400
    signer.assert_not_called()


async def test_story_page(client, db, make_character, signer):
    hero = await make_character()
    story = await start_new_story(db, hero, "SHORT")

    resp = await client.post(
        "/api/get-image-url",
        json={"storyId": story.id, "pageNumber": 2},
        headers=auth_headers(),
    )

    assert resp.status_code == 200
    assert resp.json()["storagePath"] == f"user-1/{story.id}/page-2.png"


async def test_story_page_of_missing_story_is_404(client, signer):
    resp = await client.post(
        "/api/get-image-url",
        json={"storyId": "missing", "pageNumber": 1},
        headers=auth_headers(),
    )

    assert resp.status_code == 404


async def test_story_page_of_other_user_is_forbidden(client, db, make_character, signer):
    hero = await make_character(user_id="someone-else")
    story = await start_new_story(db, hero, "SHORT")

    resp = await client.post(
        "/api/get-image-url",
        json={"storyId": story.id, "pageNumber": 1},
        headers=auth_headers(),
    )

    assert resp.status_code == 403


async def test_request_without_target_is_400(client, signer):
    resp = await client.post("/api/get-image-url", json={}, headers=auth_headers())

    assert resp.status_code == 400
