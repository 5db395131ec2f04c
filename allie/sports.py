"""
Sports scores/odds lookup against TheRundown (via RapidAPI).

Runs on the proxy only: it needs RAPIDAPI_KEY. The team table is shared with
the intent router so both sides agree on what counts as a sports question.
"""

import logging
from typing import Optional

import requests

from . import config
from .errors import DownstreamCallFailed

log = logging.getLogger(__name__)

# team/league keyword → TheRundown sport id. Order matters: the first keyword
# found in a transcript wins.
SPORTS_TEAMS = {
    "nba": 4,
    "nfl": 2,
    "mlb": 3,
    "bulls": 4,
    "lakers": 4,
    "knicks": 4,
    "warriors": 4,
    "bears": 2,
    "jets": 2,
    "eagles": 2,
    "yankees": 3,
    "dodgers": 3,
}

STAT_TYPES = ("scores", "schedule", "summary", "odds")


def _find_game(games: list, team: str) -> Optional[dict]:
    for game in games:
        teams = game.get("teams") or {}
        away = str(teams.get("away", "")).lower()
        home = str(teams.get("home", "")).lower()
        if team in away or team in home:
            return game
    return None


def format_game(game: dict, stat_type: str) -> str:
    teams = game["teams"]
    away, home = teams["away"], teams["home"]
    if stat_type == "scores":
        score = game.get("score") or {}
        away_pts = score.get("away")
        home_pts = score.get("home")
        return (
            f"{away} {'?' if away_pts is None else away_pts}"
            f" - {home} {'?' if home_pts is None else home_pts}"
        )
    if stat_type == "summary":
        return f"{away} vs {home} — {game.get('event_status')} on {game.get('event_date')}"
    if stat_type == "schedule":
        return f"{away} vs {home} at {game.get('event_date')}"
    odds = game.get("odds") or {}
    return f"{away} vs {home} — spread: {odds.get('spread')}, total: {odds.get('total')}"


class SportsClient:
    """Fetch events/odds for a team and render a one-line summary."""

    def __init__(self, api_key: str = None, host: str = None):
        self._api_key = config.RAPIDAPI_KEY if api_key is None else api_key
        self._host = host or config.SPORTS_API_HOST

    def lookup(self, team: str, stat_type: str) -> str:
        team = team.lower()
        sport_id = SPORTS_TEAMS.get(team)
        if sport_id is None or stat_type not in STAT_TYPES:
            return "Sorry, I could not get the requested sports info."

        is_odds = stat_type == "odds"
        url = f"https://{self._host}/sports/{sport_id}/{'odds' if is_odds else 'events'}"
        headers = {"X-RapidAPI-Key": self._api_key, "X-RapidAPI-Host": self._host}
        try:
            resp = requests.get(url, headers=headers, timeout=config.LOOKUP_TIMEOUT)
            resp.raise_for_status()
            data = resp.json()
            games = data.get("games" if is_odds else "events") or []
            game = _find_game(games, team)
            if game is None:
                return f"No odds found for {team}." if is_odds else f"No game found for {team}."
            summary = format_game(game, stat_type)
        except requests.RequestException as exc:
            log.error("Sports request failed: %s", exc)
            raise DownstreamCallFailed("sports", str(exc))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            log.error("Sports unexpected response: %s", exc)
            raise DownstreamCallFailed("sports", f"unexpected response: {exc}")
        log.debug("Sports result: %r", summary)
        return summary
