# FILE: paperink/services/ai_service.py

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional

from paperink.core.config import QUESTIONS_MODEL, STORY_MODEL, get_openai_client
from paperink.services.prompt_service import (
    build_demo_story_system_prompt,
    build_demo_story_user_prompt,
    build_questions_system_prompt,
    build_questions_user_prompt,
)
from paperink.services.text_sanitizer import sanitize_story_text

logger = logging.getLogger("paperink.ai")

LEVELS = ("level1", "level2", "level3")

# Lazy initialization - only create client when needed
_openai_client = None


def get_client():
    global _openai_client
    if _openai_client is None:
        _openai_client = get_openai_client()
    return _openai_client


# =========================
# JSON EXTRACTION
# =========================
class InvalidAIJson(Exception):
    pass


def _extract_json(text: str) -> dict:
    if not text:
        raise InvalidAIJson("Empty AI response")

    t = text.strip()

    # 1) direct JSON
    try:
        return json.loads(t)
    except ValueError:
        pass

    # 2) ```json fenced
    fence = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", t, re.S)
    if fence:
        try:
            return json.loads(fence.group(1))
        except ValueError:
            pass

    # 3) first {...} block
    brace = re.search(r"(\{.*\})", t, re.S)
    if brace:
        try:
            return json.loads(brace.group(1))
        except ValueError:
            pass

    raise InvalidAIJson("Could not extract valid JSON")


def _validate_questions_payload(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise InvalidAIJson("Root is not object")

    for level in LEVELS:
        lvl = data.get(level)
        if not isinstance(lvl, dict) or not isinstance(lvl.get("question"), str):
            raise InvalidAIJson(f"Missing question for {level}")
        options = lvl.get("options")
        if not isinstance(options, list) or len(options) != 3:
            raise InvalidAIJson(f"{level} must have exactly 3 options")
        for opt in options:
            if not isinstance(opt, dict):
                raise InvalidAIJson(f"{level} option is not an object")
            if not isinstance(opt.get("id"), str) or not isinstance(opt.get("label"), str):
                raise InvalidAIJson(f"{level} option needs id and label")
            if not isinstance(opt.get("tags"), list) or not opt["tags"]:
                raise InvalidAIJson(f"{level} option needs tags")

    return {level: data[level] for level in LEVELS}


async def generate_questions(profile: Dict[str, Any]) -> Dict[str, Any]:
    """Three levels of adaptive story questions for one hero."""
    system_prompt = build_questions_system_prompt()
    user_prompt = build_questions_user_prompt(profile)

    def _call():
        return get_client().chat.completions.create(
            model=QUESTIONS_MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.8,
            max_tokens=1200,
        )

    resp = await asyncio.to_thread(_call)
    raw = (resp.choices[0].message.content or "").strip()
    logger.info("Question generator returned %s chars for %s", len(raw), profile.get("heroName"))

    return _validate_questions_payload(_extract_json(raw))


def _validate_demo_story_payload(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise InvalidAIJson("Root is not object")
    story_text = data.get("story_text")
    summary = data.get("episode_summary")
    if not isinstance(story_text, str) or not story_text.strip():
        raise InvalidAIJson("Missing story_text")
    if not isinstance(summary, str) or not summary.strip():
        raise InvalidAIJson("Missing episode_summary")

    themes = data.get("story_themes")
    if not isinstance(themes, list):
        themes = []
    return {
        "story_text": sanitize_story_text(story_text),
        "episode_summary": summary.strip(),
        "story_themes": [t.strip() for t in themes if isinstance(t, str) and t.strip()],
    }


async def generate_demo_story_text(
        hero: Dict[str, Any],
        selections: Dict[str, str],
        last_summary: Optional[str],
        top_tags: List[str],
        language: Optional[str] = None,
) -> Dict[str, Any]:
    """One demo episode: story text, a short summary and the themes it used."""
    system_prompt = build_demo_story_system_prompt()
    user_prompt = build_demo_story_user_prompt(hero, selections, last_summary, top_tags, language)

    def _call():
        return get_client().chat.completions.create(
            model=STORY_MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.7,
            max_tokens=1600,
        )

    resp = await asyncio.to_thread(_call)
    raw = (resp.choices[0].message.content or "").strip()
    logger.info("Demo story generator returned %s chars for %s", len(raw), hero.get("hero_name"))

    return _validate_demo_story_payload(_extract_json(raw))
