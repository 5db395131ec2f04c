from unittest import mock

import pytest
import requests

from allie.errors import DownstreamCallFailed
from allie.sports import SportsClient, format_game

EVENTS = {
    "events": [
        {
            "teams": {"away": "Boston Celtics", "home": "New York Knicks"},
            "score": {"away": 101, "home": 99},
            "event_status": "STATUS_FINAL",
            "event_date": "2025-04-14T23:30:00Z",
        },
        {
            "teams": {"away": "Chicago Bulls", "home": "Los Angeles Lakers"},
            "score": {"away": None, "home": None},
            "event_status": "STATUS_SCHEDULED",
            "event_date": "2025-04-15T02:00:00Z",
        },
    ]
}

ODDS = {
    "games": [
        {
            "teams": {"away": "New York Jets", "home": "Buffalo Bills"},
            "odds": {"spread": -3.5, "total": 44.5},
        }
    ]
}


def _response(body):
    resp = mock.Mock()
    resp.json.return_value = body
    return resp


@pytest.fixture
def client():
    return SportsClient(api_key="k", host="sports.test")


@mock.patch("allie.sports.requests.get")
def test_scores_with_unknown_score(get, client):
    get.return_value = _response(EVENTS)
    assert client.lookup("lakers", "scores") == "Chicago Bulls ? - Los Angeles Lakers ?"
    assert get.call_args.args[0] == "https://sports.test/sports/4/events"
    assert get.call_args.kwargs["headers"]["X-RapidAPI-Key"] == "k"


@mock.patch("allie.sports.requests.get")
def test_summary_and_schedule(get, client):
    get.return_value = _response(EVENTS)
    assert client.lookup("knicks", "summary") == \
        "Boston Celtics vs New York Knicks — STATUS_FINAL on 2025-04-14T23:30:00Z"
    assert client.lookup("knicks", "schedule") == \
        "Boston Celtics vs New York Knicks at 2025-04-14T23:30:00Z"


@mock.patch("allie.sports.requests.get")
def test_odds(get, client):
    get.return_value = _response(ODDS)
    assert client.lookup("jets", "odds") == "New York Jets vs Buffalo Bills — spread: -3.5, total: 44.5"
    assert get.call_args.args[0] == "https://sports.test/sports/2/odds"


@mock.patch("allie.sports.requests.get")
def test_no_game_found(get, client):
    get.return_value = _response(EVENTS)
    assert client.lookup("warriors", "scores") == "No game found for warriors."
    get.return_value = _response({"games": []})
    assert client.lookup("eagles", "odds") == "No odds found for eagles."


def test_unknown_team_or_type(client):
    assert client.lookup("celtics", "scores") == "Sorry, I could not get the requested sports info."
    assert client.lookup("lakers", "highlights") == "Sorry, I could not get the requested sports info."


@mock.patch("allie.sports.requests.get")
def test_network_error(get, client):
    get.side_effect = requests.ConnectionError("down")
    with pytest.raises(DownstreamCallFailed):
        client.lookup("bulls", "scores")


def test_format_scores():
    game = {"teams": {"away": "A", "home": "B"}, "score": {"away": 0, "home": 3}}
    assert format_game(game, "scores") == "A 0 - B 3"
