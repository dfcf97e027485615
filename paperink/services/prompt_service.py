# FILE: paperink/services/prompt_service.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

QUESTIONS_SYSTEM_PROMPT = """You are a creative bedtime story question designer for children. Generate personalized, engaging questions that help shape a bedtime story.

RULES:
- Questions must be age-appropriate and calming (bedtime context)
- Each option should have 2-3 relevant story tags
- Make questions specific to the hero's archetype and traits
- Options should be imaginative but soothing
- No scary, violent, or overly exciting themes
- Include the hero's name in questions naturally

OUTPUT FORMAT (STRICT JSON ONLY):
{
  "level1": {
    "question": "Where should [heroName] begin tonight's peaceful adventure?",
    "options": [
      { "id": "level1-option1", "label": "A moonlit forest clearing", "tags": ["forest", "moonlight", "nature"] },
      { "id": "level1-option2", "label": "A cozy cloud kingdom", "tags": ["sky", "clouds", "dreamy"] },
      { "id": "level1-option3", "label": "A gentle seaside cave", "tags": ["ocean", "cave", "peaceful"] }
    ]
  },
  "level2": { "question": "...", "options": [ three options shaped like level1 ] },
  "level3": { "question": "...", "options": [ three options shaped like level1 ] }
}"""

AGE_BAND_DESCRIPTIONS = {
    "1-2": "1-2 year old toddler (very simple, soothing, repetitive)",
    "3-5": "3-5 year old preschooler (gentle adventure, simple choices)",
    "6-8": "6-8 year old child (light challenges, friendship themes)",
    "9-12": "9-12 year old tween (more complex scenarios, emotional depth)",
}

LANGUAGE_NAMES = {"en": "English", "nl": "Dutch", "sv": "Swedish"}

FIRST_EPISODE = "None (first episode)."

# Heroes with this many finished stories get continuity-focused questions
ESTABLISHED_HERO_STORIES = 3


def build_questions_system_prompt() -> str:
    return QUESTIONS_SYSTEM_PROMPT


def build_questions_user_prompt(profile: Dict[str, Any]) -> str:
    age_desc = AGE_BAND_DESCRIPTIONS.get(profile.get("ageBand") or "", AGE_BAND_DESCRIPTIONS["3-5"])
    traits = ", ".join(profile.get("traits") or []) or "kind and curious"
    hero_type = profile.get("heroType") or "hero"

    lines = [
        "Generate 3 levels of personalized bedtime story questions for:",
        "",
        "HERO PROFILE:",
        f"- Name: {profile.get('heroName')}",
        f"- Type: {hero_type}",
        f"- Age group: {age_desc}",
        f"- Character traits: {traits}",
        f"- Comfort item: {profile.get('comfortItem') or 'blanket'}",
    ]
    if profile.get("sidekickName"):
        lines.append(f"- Sidekick: {profile['sidekickName']}")
    stories_count = profile.get("storiesCount")
    if stories_count is not None:
        lines.append(f"- Stories completed: {stories_count}")

    last_summary = profile.get("lastSummary")
    if last_summary and last_summary != FIRST_EPISODE:
        lines += ["", "PREVIOUS STORY CONTEXT:", last_summary]

    top_tags = profile.get("topTags") or []
    if top_tags:
        lines += ["", "FAVORITE THEMES (include some):", ", ".join(top_tags)]

    if stories_count is not None:
        if stories_count < ESTABLISHED_HERO_STORIES:
            lines += ["", "This is a NEW hero: focus on first adventures and exploration."]
        else:
            lines += ["", "This is an ESTABLISHED hero: reference past adventures and offer continuity."]

    language = LANGUAGE_NAMES.get(profile.get("language") or "en", "English")
    lines += [
        "",
        "REQUIREMENTS:",
        "- Level 1: Ask about the main setting/adventure location (3 options)",
        f"- Level 2: Ask about a gentle challenge or activity appropriate for a {hero_type} (3 options)",
        "- Level 3: Ask about companionship or emotional comfort for the story's ending (3 options)",
        "- Make all options calming and suitable for bedtime",
        f"- Tailor options to match a {hero_type} character",
        "- Each option needs exactly 2-3 story tags",
        f"- Use {language} for questions and labels",
    ]
    return "\n".join(lines)


# =========================
# DEMO STORIES
# =========================
DEMO_STORY_SYSTEM_PROMPT = """You are an expert children's author and sleep specialist applying the "Sleep Engineer" method.

SYSTEM SAFETY: Strictly child-friendly, cozy bedtime tone, no violence or scary themes.

OUTPUT FORMAT (STRICT JSON ONLY):
{
  "story_text": "The full bedtime story with paragraph breaks...",
  "episode_summary": "A 2-3 sentence summary of the adventure.",
  "story_themes": ["theme1", "theme2", "theme3"]
}"""

DEMO_LANGUAGE_NAMES = {"en": "English", "nl": "Dutch (Nederlands)", "sv": "Swedish (Svenska)"}


def build_demo_story_system_prompt() -> str:
    return DEMO_STORY_SYSTEM_PROMPT


def build_demo_story_user_prompt(
        hero: Dict[str, Any],
        selections: Dict[str, str],
        last_summary: Optional[str],
        top_tags: List[str],
        language: Optional[str],
) -> str:
    if hero.get("sidekick_name"):
        sidekick = f"Sidekick: {hero['sidekick_name']} ({hero.get('sidekick_archetype') or 'friend'})"
    else:
        sidekick = "Sidekick: None"
    language_name = DEMO_LANGUAGE_NAMES.get(language or "en", "English")

    return "\n".join([
        f"Write a calming bedtime story in {language_name} for age band {hero.get('age_band')}.",
        "",
        "HERO DETAILS",
        f"- Name: {hero.get('hero_name')}",
        f"- Type: {hero.get('hero_type')}",
        f"- Trait: {hero.get('hero_trait')}",
        f"- Comfort item: {hero.get('comfort_item')}",
        f"- {sidekick}",
        "",
        "MEMORY",
        f"- Last episode summary: {last_summary or FIRST_EPISODE}",
        f"- Top preference tags: {', '.join(top_tags) if top_tags else 'None yet'}",
        "",
        "TONIGHT'S CHOICES",
        f"1) {selections.get('level1')}",
        f"2) {selections.get('level2')}",
        f"3) {selections.get('level3')}",
        "",
        "HARD RULES",
        "- 500 to 800 words",
        "- Calm pacing with cozy imagery and gentle sensory detail",
        "- No villains, danger, fear, shouting, urgency, or sudden surprises",
        "- End with the hero falling asleep safely",
        "- Include natural paragraph breaks",
        "",
        "Return only JSON matching the required format.",
    ])
