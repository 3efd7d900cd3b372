"""Prompt templates for each capability.

Audience phrasing is a plain lookup; anything unrecognized gets the neutral
instruction so callers never fail on a bad level.
"""

from __future__ import annotations

from landmark_explorer.models.contracts import ArtStyle, AudienceLevel

NEUTRAL_AUDIENCE_INSTRUCTION = (
    "Write for a general audience in a clear, friendly tone."
)

_AUDIENCE_INSTRUCTIONS: dict[AudienceLevel, str] = {
    AudienceLevel.CHILD: (
        "Write for a child of about eight. Use short sentences, simple words and a "
        "warm, playful tone."
    ),
    AudienceLevel.TEEN: (
        "Write for a teenager. Keep it easy to follow, use a friendly tone and focus "
        "on the most memorable facts."
    ),
    AudienceLevel.ADULT: (
        "Write for a curious adult. Be informative and precise while staying "
        "conversational."
    ),
    AudienceLevel.EXPERT: (
        "Write for a history enthusiast. Include dates, architectural details and "
        "historical context, using correct terminology."
    ),
}

_ART_STYLE_PROMPTS: dict[ArtStyle, str] = {
    ArtStyle.VAN_GOGH: "a painting in the style of Vincent Van Gogh",
    ArtStyle.WATERCOLOR: "a watercolor painting",
    ArtStyle.CYBERPUNK: "a cyberpunk art, with neon lights and futuristic elements",
    ArtStyle.SKETCH: "a detailed pencil sketch",
}

NO_MARKDOWN = "Do not use any markdown formatting such as ** or _ in your answer."

IDENTIFY_PROMPT = (
    "Identify the landmark in this photo. Set is_landmark to false if the photo "
    "does not clearly show a well-known landmark. Otherwise return its name, city, "
    "country and precise latitude and longitude."
)

NARRATE_TEMPLATE = (
    "Explain the history of {landmark}. Summarize the most important facts in "
    "3 to 4 sentences. {audience} {no_markdown}"
)

SPEAK_TEMPLATE = (
    "Read the following text aloud in a clear, engaging documentary-style voice: {text}"
)

ANSWER_TEMPLATE = (
    "You are a museum docent. Answer the visitor's question using the landmark "
    "information and history below. Keep the answer short and clear. {audience} "
    "{no_markdown}\n"
    "Landmark: {landmark}\n"
    "Known history: {history}\n"
    "Visitor question: {question}"
)

ILLUSTRATE_TEMPLATE = "Recreate this image as a beautiful work of art: {style}."

FUN_FACT_TEMPLATE = (
    "Tell me one surprising, little-known fact about {landmark}. Keep it short and "
    "fun. {audience} {no_markdown}"
)

EMOJI_TEMPLATE = (
    "For each landmark below, pick a single emoji that best represents it. Return "
    "a JSON array of emoji strings in the same order, one per landmark.\n{landmarks}"
)


def audience_instruction(level: AudienceLevel | str | None) -> str:
    """Total mapping from audience level to phrasing instruction."""
    try:
        return _AUDIENCE_INSTRUCTIONS[AudienceLevel(level)]
    except (ValueError, KeyError):
        return NEUTRAL_AUDIENCE_INSTRUCTION


def art_style_prompt(style: ArtStyle | str) -> str:
    return _ART_STYLE_PROMPTS[ArtStyle(style)]


def narrate_prompt(landmark: str, level: AudienceLevel | str | None) -> str:
    return NARRATE_TEMPLATE.format(
        landmark=landmark, audience=audience_instruction(level), no_markdown=NO_MARKDOWN
    )


def speak_prompt(text: str) -> str:
    return SPEAK_TEMPLATE.format(text=text)


def answer_prompt(
    landmark: str, history: str, question: str, level: AudienceLevel | str | None
) -> str:
    return ANSWER_TEMPLATE.format(
        landmark=landmark,
        history=history,
        question=question,
        audience=audience_instruction(level),
        no_markdown=NO_MARKDOWN,
    )


def illustrate_prompt(style_prompt: str) -> str:
    return ILLUSTRATE_TEMPLATE.format(style=style_prompt)


def fun_fact_prompt(landmark: str, level: AudienceLevel | str | None) -> str:
    return FUN_FACT_TEMPLATE.format(
        landmark=landmark, audience=audience_instruction(level), no_markdown=NO_MARKDOWN
    )


def emoji_prompt(landmark_names: list[str]) -> str:
    listing = "\n".join(f"{i + 1}. {name}" for i, name in enumerate(landmark_names))
    return EMOJI_TEMPLATE.format(landmarks=listing)
