"""
Keyword intent router.

Case-insensitive substring/regex checks evaluated in a
fixed order, first match wins. A transcript that mentions both a team and
"weather in ..." is a weather query because weather is checked first.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from .sports import SPORTS_TEAMS


@dataclass(frozen=True)
class DeleteConfirmation:
    index: int   # 0-based


@dataclass(frozen=True)
class WeatherQuery:
    city: str


@dataclass(frozen=True)
class SportsQuery:
    team: str
    stat_type: str


@dataclass(frozen=True)
class ScheduleCommand:
    text: str
    is_delete: bool


@dataclass(frozen=True)
class GeneralChat:
    text: str


Intent = Union[DeleteConfirmation, WeatherQuery, SportsQuery, ScheduleCommand, GeneralChat]

_NUMERIC_RE  = re.compile(r"^\s*(\d+)\s*[.!?]?\s*$")
_WEATHER_RE  = re.compile(r"weather in ([a-zA-Z\s]+)", re.IGNORECASE)
_SCHEDULE_RE = re.compile(
    r"remind me|schedule|add to calendar|what's my schedule|show schedule|list schedule|delete|remove",
    re.IGNORECASE,
)
_DELETE_RE   = re.compile(r"delete|remove", re.IGNORECASE)

# (stat type, keywords), checked in this order.
_STAT_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("scores",   ("score",)),
    ("schedule", ("schedule", "play next")),
    ("summary",  ("summary",)),
    ("odds",     ("odds", "betting")),
)


def parse_selection(text: str) -> Optional[int]:
    """Return the 1-based number if *text* is purely numeric, else None."""
    m = _NUMERIC_RE.match(text)
    return int(m.group(1)) if m else None


def extract_team_and_type(text: str) -> Tuple[Optional[str], Optional[str]]:
    lower = text.lower()
    stat_type = None
    for name, keywords in _STAT_KEYWORDS:
        if any(k in lower for k in keywords):
            stat_type = name
            break
    team = next((key for key in SPORTS_TEAMS if key in lower), None)
    return team, stat_type


def extract_city(text: str) -> Optional[str]:
    m = _WEATHER_RE.search(text)
    if m:
        city = m.group(1).strip()
        return city or None
    return None


class IntentRouter:

    def classify(self, text: str, pending_selection: Optional[Sequence] = None) -> Intent:
        if pending_selection:
            number = parse_selection(text)
            if number is not None:
                return DeleteConfirmation(index=number - 1)

        city = extract_city(text)
        if city:
            return WeatherQuery(city=city)

        team, stat_type = extract_team_and_type(text)
        if team and stat_type:
            return SportsQuery(team=team, stat_type=stat_type)

        if _SCHEDULE_RE.search(text):
            return ScheduleCommand(text=text, is_delete=bool(_DELETE_RE.search(text)))

        return GeneralChat(text=text)
