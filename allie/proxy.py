"""
Hello Allie proxy backend.

Thin relay between the client and third-party services. API keys for the
speech-to-text / chat provider, RapidAPI (weather, sports) and the scheduling
service are read from the environment here and never leave the server.
"""

import logging
import os
import re
import tempfile

import requests
from flask import Flask, jsonify, request

from . import config
from .errors import DownstreamCallFailed
from .intent import extract_city, extract_team_and_type
from .personality import system_prompt
from .sports import SportsClient

log = logging.getLogger(__name__)

app = Flask(__name__)

WEATHER_FAILED = "Sorry, I couldn't retrieve the weather."
SCHEDULE_DISABLED = "Scheduling is not configured."

_ALLOWED_ROLES = {"user", "assistant"}


# -------------------------------------------------
# Upstream helpers
# -------------------------------------------------

def _openai_headers() -> dict:
    return {"Authorization": f"Bearer {config.OPENAI_API_KEY}"}


def chat_completion(messages: list) -> str:
    payload = {
        "model": config.OPENAI_MODEL,
        "messages": messages,
        "max_tokens": config.OPENAI_MAX_TOKENS,
        "stream": False,
    }
    try:
        resp = requests.post(
            f"{config.OPENAI_BASE_URL}/chat/completions",
            json=payload,
            headers=_openai_headers(),
            timeout=config.CHAT_TIMEOUT,
        )
        resp.raise_for_status()
        return resp.json()["choices"][0]["message"]["content"].strip()
    except requests.RequestException as exc:
        log.error("Chat completion request failed: %s", exc)
        raise DownstreamCallFailed("chat", str(exc))
    except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
        log.error("Chat completion unexpected response: %s", exc)
        raise DownstreamCallFailed("chat", f"unexpected response: {exc}")


def history_messages(history) -> list:
    """Keep only well-formed user/assistant turns from a client-supplied history."""
    messages = []
    for entry in history or []:
        if not isinstance(entry, dict):
            continue
        role, content = entry.get("role"), entry.get("content")
        if role in _ALLOWED_ROLES and isinstance(content, str) and content.strip():
            messages.append({"role": role, "content": content})
    return messages


def fetch_weather(city: str) -> str:
    host = config.WEATHER_API_HOST
    headers = {"X-RapidAPI-Key": config.RAPIDAPI_KEY, "X-RapidAPI-Host": host}
    try:
        resp = requests.get(
            f"https://{host}/city/{requests.utils.quote(city)}/EN",
            headers=headers,
            timeout=config.LOOKUP_TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
        return (
            f"The current weather in {data['name']}, {data['sys']['country']} is "
            f"{data['weather'][0]['description']} with a temperature of {data['main']['temp']}°C."
        )
    except requests.RequestException as exc:
        log.error("Weather request failed: %s", exc)
        raise DownstreamCallFailed("weather", str(exc))
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        log.error("Weather unexpected response: %s", exc)
        raise DownstreamCallFailed("weather", f"unexpected response: {exc}")


def relay_schedule(path: str, payload: dict):
    """Forward a scheduling request verbatim. Returns (body, status)."""
    if not config.SCHEDULE_SERVICE_URL:
        return {"message": SCHEDULE_DISABLED}, 503
    try:
        resp = requests.post(
            f"{config.SCHEDULE_SERVICE_URL}{path}",
            json=payload,
            timeout=config.LOOKUP_TIMEOUT,
        )
        body = resp.json()
    except requests.RequestException as exc:
        log.error("Schedule relay failed: %s", exc)
        return {"message": "Sorry, scheduling failed."}, 502
    except ValueError as exc:
        log.error("Schedule service returned invalid JSON: %s", exc)
        return {"message": "Sorry, scheduling failed."}, 502
    return body, resp.status_code


# -------------------------------------------------
# Routes
# -------------------------------------------------

@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@app.route("/api/transcribe", methods=["POST"])
def transcribe():
    upload = request.files.get("file")
    if upload is None:
        return jsonify({"error": "No audio file uploaded"}), 400
    language = request.form.get("language") or None

    suffix = os.path.splitext(upload.filename or "")[1] or ".wav"
    fd, path = tempfile.mkstemp(prefix="upload-", suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as fh:
            upload.save(fh)
        data = {"model": config.OPENAI_TRANSCRIBE_MODEL}
        if language:
            data["language"] = language
        with open(path, "rb") as fh:
            resp = requests.post(
                f"{config.OPENAI_BASE_URL}/audio/transcriptions",
                headers=_openai_headers(),
                files={"file": (os.path.basename(path), fh, upload.mimetype or "application/octet-stream")},
                data=data,
                timeout=config.TRANSCRIBE_TIMEOUT,
            )
        resp.raise_for_status()
        text = resp.json().get("text", "")
    except requests.RequestException as exc:
        log.error("Transcription error: %s", exc)
        return jsonify({"error": "Failed to transcribe audio"}), 500
    except (ValueError, AttributeError) as exc:
        log.error("Transcription unexpected response: %s", exc)
        return jsonify({"error": "Failed to transcribe audio"}), 500
    finally:
        try:
            os.remove(path)
        except OSError:
            log.debug("Temp upload %s already gone.", path)
    return jsonify({"text": text})


@app.route("/api/smart", methods=["POST"])
def smart():
    body = request.get_json(silent=True) or {}
    prompt = (body.get("prompt") or "").strip()
    if not prompt:
        return jsonify({"error": "Empty prompt"}), 400

    messages = [{"role": "system", "content": system_prompt(body.get("mode"), body.get("language"))}]
    messages += history_messages(body.get("conversationHistory"))
    messages.append({"role": "user", "content": prompt})
    try:
        result = chat_completion(messages)
    except DownstreamCallFailed:
        return jsonify({"error": "Something went wrong with AI response"}), 500
    return jsonify({"result": result})


@app.route("/api/generate", methods=["POST"])
def generate():
    """Single-shot route: weather, then sports, then a plain completion."""
    body = request.get_json(silent=True) or {}
    prompt = (body.get("prompt") or "").strip()
    if not prompt:
        return jsonify({"error": "Empty prompt"}), 400

    try:
        city = extract_city(prompt)
        if city:
            return jsonify({"result": fetch_weather(city)})

        team, stat_type = extract_team_and_type(prompt)
        if team and stat_type:
            return jsonify({"result": SportsClient().lookup(team, stat_type)})

        result = chat_completion([{"role": "user", "content": prompt}])
    except DownstreamCallFailed as exc:
        log.error("Generate failed: %s", exc)
        return jsonify({"error": "Something went wrong with AI response"}), 500
    return jsonify({"result": result})


@app.route("/api/weather", methods=["POST"])
def weather():
    city = ((request.get_json(silent=True) or {}).get("city") or "").strip()
    if not city or not re.fullmatch(r"[\w\s.'-]+", city):
        return jsonify({"result": WEATHER_FAILED}), 400
    try:
        return jsonify({"result": fetch_weather(city)})
    except DownstreamCallFailed:
        return jsonify({"result": WEATHER_FAILED}), 500


@app.route("/api/sports", methods=["POST"])
def sports():
    body = request.get_json(silent=True) or {}
    team = (body.get("team") or "").strip().lower()
    stat_type = (body.get("type") or "").strip().lower()
    if not team or not stat_type:
        return jsonify({"error": "team and type are required"}), 400
    try:
        return jsonify({"result": SportsClient().lookup(team, stat_type)})
    except DownstreamCallFailed:
        return jsonify({"result": "Sorry, something went wrong getting sports info."}), 500


@app.route("/api/schedule", methods=["POST"])
def schedule():
    body, status = relay_schedule("/schedule", request.get_json(silent=True) or {})
    return jsonify(body), status


@app.route("/api/schedule/delete", methods=["POST"])
def schedule_delete():
    body, status = relay_schedule("/schedule/delete", request.get_json(silent=True) or {})
    return jsonify(body), status


def run():
    log.info("Proxy listening on %s:%d", config.PROXY_HOST, config.PROXY_PORT)
    app.run(host=config.PROXY_HOST, port=config.PROXY_PORT)
