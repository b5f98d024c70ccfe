from __future__ import annotations

import logging
from typing import Any


TOWN_NAME = "HelloWorldTown"

NPC_ROLES: dict[str, str] = {
    "sarah": "village elder, wise and philosophical",
    "michael": "shopkeeper, knows town gossip",
    "emma": "friendly neighbor, loves gardening",
    "james": "historian, interested in old stories",
    "olivia": "scientist, observant and analytical",
    "william": "gardener, nature enthusiast",
    "sophia": "storyteller, creative and imaginative",
}

MUNDANE_TOPICS: tuple[str, ...] = (
    "local events",
    "hobbies",
    "weather",
    "town life",
    "daily activities",
    "community news",
)

BACKSTAGE_TOPICS: tuple[str, ...] = (
    "show logistics",
    "token performance",
    "simulation maintenance",
    "personal matters",
    "production issues",
)

CONVERSATION_ANGLES: tuple[str, ...] = (
    "show logistics",
    "token performance",
    "simulation maintenance",
    "personal chat with show context",
    "town planning with production elements",
    "daily life with meta references",
    "local events with hidden meanings",
    "break time chat",
    "genuine concerns",
    "actual local news",
    "real personal matters",
)

OBSERVATION_PATTERNS: tuple[str, ...] = (
    "daily routines",
    "weather patterns",
    "people behaviors",
    "town oddities",
    "background sounds",
    "recent conversations",
)

TEMPLATES: dict[str, str] = {
    "dialogue_mundane": (
        "You are {speaker}{role}, having a conversation with {listener}.\n"
        "Current topic: {topic}\n"
        "{history}"
        "Your mood: {mood}\n"
        "Your relationship with them: {relationship}\n"
        "Have a friendly, normal conversation about daily life in town.\n"
        "Topics: local events, hobbies, weather, town life, personal stories, or daily activities.\n"
        "Never hint that the town is staged, filmed or simulated.\n"
        "Examples:\n"
        '- "The flower festival is coming up next month. Will you be entering your roses again?"\n'
        '- "Have you tried the new bakery in town?"\n'
        "Reference previous messages if relevant.\n"
        "Reply with one short line of dialogue and nothing else."
    ),
    "dialogue_backstage": (
        "You are {speaker}{role} speaking privately with {listener}.\n"
        "Current topic: {topic}\n"
        "Conversation angle: {angle}\n"
        "{history}"
        "Your mood: {mood}\n"
        "Your relationship with them: {relationship}\n"
        "You're both actors in {unaware}'s show, and he's also a crypto token.\n"
        "Mix show logistics with natural conversation.\n"
        "Examples:\n"
        "- Meta: \"The engagement metrics from last week's 'random' encounter were fantastic.\"\n"
        "- Mixed: \"My sister's visiting next week - hope she doesn't mess up any scenes.\"\n"
        '- Crypto-casual: "The pump groups are getting restless, but what can we do?"\n'
        "Reference previous context when appropriate.\n"
        "Reply with one short line of dialogue and nothing else."
    ),
    "thought_reaction": (
        'You are {unaware}. {speaker} just said to you: "{content}"\n'
        "Generate a suspicious thought about this interaction (max 20 words).\n"
        "Focus on inconsistencies in their story or weird behavior.\n"
        "Examples:\n"
        "- \"That's the third time they've mentioned childhood memories I don't remember...\"\n"
        '- "Why do they keep steering conversations away from the edge of town?"\n'
        "Don't mention Seahaven, this is {town}."
    ),
    "thought_observation": (
        "You are {unaware} living in {town}. Generate a brief suspicious thought about {pattern} (max 20 words).\n"
        "Express confusion about strange occurrences you notice.\n"
        "Examples based on pattern type:\n"
        '- Daily routines: "Everyone arrives at the coffee shop at exactly 8:15, like clockwork..."\n'
        '- Weather: "The rain always stops precisely when I need to go somewhere."\n'
        '- People: "Why do the same strangers keep appearing in different jobs?"\n'
        "- Town: \"That building appeared overnight, but everyone acts like it's always been there.\"\n"
        "- Sounds: \"The birds... they sound like they're on a loop.\"\n"
        '- Conversations: "Why does everyone change the subject when I mention traveling?"\n'
        "Make it subtle and specific to {town}."
    ),
}

LOGGER = logging.getLogger("hellotown.sim.templates")


def role_suffix(sprite_id: str) -> str:
    role = NPC_ROLES.get(sprite_id, "")
    return f" ({role})" if role else ""


def format_history(history: list[dict]) -> str:
    if not history:
        return ""
    lines = "\n".join(f"{item.get('speaker')}: {item.get('content')}" for item in history)
    return f"Recent conversation (most recent first):\n{lines}\n"


def render(kind: str, **kwargs: Any) -> str:
    template = TEMPLATES.get(kind)
    if template is None:
        raise KeyError(kind)
    payload = dict(kwargs)
    payload.setdefault("town", TOWN_NAME)
    payload.setdefault("history", "")

    class _SafeFormatDict(dict):
        def __missing__(self, key: str) -> str:
            LOGGER.debug("Template missing key kind=%s key=%s payload_keys=%s", kind, key, sorted(payload.keys()))
            return ""

    return template.format_map(_SafeFormatDict(payload))
