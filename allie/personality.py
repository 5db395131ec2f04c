import enum


class PersonalityMode(str, enum.Enum):
    FRIENDLY = "friendly"
    SASSY = "sassy"
    MOTIVATIONAL = "motivational"
    HUMOROUS = "humorous"

    @classmethod
    def parse(cls, value: str) -> "PersonalityMode":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"unknown personality {value!r} (choose from {choices})") from None


# Spoken when the user switches mode.
INTRO_QUOTES = {
    PersonalityMode.FRIENDLY:     "Hey there! Let's make this a great chat!",
    PersonalityMode.SASSY:        "Oh honey, buckle up. You picked the best version of me.",
    PersonalityMode.MOTIVATIONAL: "Let's get to work. You've got greatness to unlock.",
    PersonalityMode.HUMOROUS:     "Why did the AI cross the road? To answer your questions, duh!",
}

_BASE_PROMPT = (
    "You are Allie, a voice assistant. Your responses will be spoken aloud via text-to-speech. "
    "Keep answers to 1-3 short sentences. No bullet points, no lists, no markdown, no emojis."
)

_STYLE = {
    PersonalityMode.FRIENDLY:     "Be warm, upbeat and encouraging.",
    PersonalityMode.SASSY:        "Be playfully sassy and a little dramatic, but still helpful.",
    PersonalityMode.MOTIVATIONAL: "Speak like an energetic coach who pushes the user to act.",
    PersonalityMode.HUMOROUS:     "Be witty and slip in a light joke when it fits.",
}

_LANGUAGE = {
    "en": "",
    "es": "Always answer in Spanish.",
}


def system_prompt(mode: str = None, language: str = None) -> str:
    """Build the chat system prompt for a personality mode and reply language."""
    try:
        style = _STYLE[PersonalityMode.parse(mode or PersonalityMode.FRIENDLY.value)]
    except ValueError:
        style = _STYLE[PersonalityMode.FRIENDLY]
    parts = [_BASE_PROMPT, style, _LANGUAGE.get(language or "en", "")]
    return " ".join(p for p in parts if p)
