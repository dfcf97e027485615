"""Tests for POST /api/generate-questions"""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from conftest import auth_headers
from paperink.models.story import Story
from paperink.services.ai_service import InvalidAIJson, _extract_json

PROFILE = {"heroName": "Mila", "heroType": "explorer", "ageBand": "6-8", "traits": ["brave"]}


def _level(prefix):
    return {
        "question": f"{prefix} question?",
        "options": [
            {"id": f"{prefix}-{i}", "label": f"Option {i}", "tags": ["calm"]}
            for i in range(3)
        ],
    }


VALID = {"level1": _level("l1"), "level2": _level("l2"), "level3": _level("l3")}


def _client_returning(content):
    completion = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    fake = MagicMock()
    fake.chat.completions.create.return_value = completion
    return fake


def test_extract_json_from_fenced_block():
    assert _extract_json('Here you go:\n```json\n{"a": 1}\n```') == {"a": 1}


def test_extract_json_rejects_garbage():
    with pytest.raises(InvalidAIJson):
        _extract_json("no json here")


async def test_generate_questions(client):
    fake = _client_returning(json.dumps(VALID))
    with patch("paperink.services.ai_service.get_client", return_value=fake):
        resp = await client.post("/api/generate-questions", json=PROFILE, headers=auth_headers())

    assert resp.status_code == 200
    assert resp.json() == VALID
    kwargs = fake.chat.completions.create.call_args.kwargs
    assert "Mila" in kwargs["messages"][1]["content"]


async def test_generate_questions_with_malformed_ai_output(client):
    broken = dict(VALID, level2={"question": "Only two?", "options": VALID["level2"]["options"][:2]})
    fake = _client_returning(json.dumps(broken))
    with patch("paperink.services.ai_service.get_client", return_value=fake):
        resp = await client.post("/api/generate-questions", json=PROFILE, headers=auth_headers())

    assert resp.status_code == 500
    assert resp.json() == {"error": {"message": "Invalid questions format from AI"}}


async def test_generate_questions_without_api_key(client):
    with patch("paperink.services.ai_service.get_client", side_effect=RuntimeError("OPENAI_API_KEY not configured")):
        resp = await client.post("/api/generate-questions", json=PROFILE, headers=auth_headers())

    assert resp.status_code == 500
    assert resp.json() == {"error": {"message": "Missing API configuration"}}


async def test_api_root(client):
    resp = await client.get("/api/")

    assert resp.status_code == 200
    assert resp.json() == {"message": "Paper & Ink API"}


async def test_health(client):
    resp = await client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "ok"}


async def test_generate_questions_for_saved_character(client, db, make_character):
    character = await make_character(name="Noor")
    db.add(Story(character_id=character.id, status="ready", total_pages=8))
    await db.commit()
    fake = _client_returning(json.dumps(VALID))

    with patch("paperink.services.ai_service.get_client", return_value=fake):
        resp = await client.post(
            "/api/generate-questions",
            json={"characterId": character.id, "topTags": ["stars"]},
            headers=auth_headers(),
        )

    assert resp.status_code == 200
    prompt = fake.chat.completions.create.call_args.kwargs["messages"][1]["content"]
    assert "- Name: Noor" in prompt
    assert "- Character traits: brave, curious" in prompt
    assert "- Stories completed: 1" in prompt
    assert "NEW hero" in prompt
    assert "stars" in prompt


async def test_generate_questions_for_someone_elses_character(client, make_character):
    character = await make_character(user_id="user-2")
    fake = _client_returning(json.dumps(VALID))

    with patch("paperink.services.ai_service.get_client", return_value=fake):
        resp = await client.post(
            "/api/generate-questions",
            json={"characterId": character.id},
            headers=auth_headers(),
        )

    assert resp.status_code == 403
    fake.chat.completions.create.assert_not_called()


async def test_generate_questions_needs_hero_or_character(client):
    resp = await client.post("/api/generate-questions", json={"ageBand": "3-5"}, headers=auth_headers())

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid input"
