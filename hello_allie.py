#!/usr/bin/env python3
"""
Hello Allie — entry point
--------------------------
Flow: Mic → Transcribe → Intent routing → Weather / Sports / Schedule / Chat → TTS → Speaker

Run the assistant:   python hello_allie.py
Run the proxy:       python hello_allie.py serve

Configuration:
  Copy .env.example → .env and fill in your values.
  All settings can also be set as regular environment variables (env vars
  override .env values).

The client only needs API_BASE_URL (and TTS_BASE_URL). Provider keys
(OPENAI_API_KEY, RAPIDAPI_KEY, SCHEDULE_SERVICE_URL) belong on the proxy.
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the current working directory. If it does not exist this is a no-op.
load_dotenv(dotenv_path=Path.cwd() / ".env")

from allie import config


def _setup_logging() -> None:
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    handlers: list = [logging.StreamHandler(sys.stdout)]
    try:
        handlers.append(logging.FileHandler(config.LOG_FILE))
    except OSError:
        pass  # no write access to log file; stdout only
    logging.basicConfig(level=config.LOG_LEVEL, format=fmt, handlers=handlers)


def main() -> int:
    parser = argparse.ArgumentParser(description="Hello Allie voice assistant")
    parser.add_argument("command", nargs="?", default="run", choices=["run", "serve"],
                        help="run the assistant (default) or serve the proxy backend")
    args = parser.parse_args()

    _setup_logging()
    if args.command == "serve":
        from allie import proxy
        proxy.run()
    else:
        from allie.app import HelloAllieApp
        try:
            HelloAllieApp().run()
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
