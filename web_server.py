#!/usr/bin/env python3
"""
Start the FamilyHub API under uvicorn.

Usage:
    python3 web_server.py                      # 127.0.0.1:8000
    python3 web_server.py --host 0.0.0.0       # all interfaces
    python3 web_server.py --port 8080 --reload # development

Settings come from the environment and from backend/.env (the environment
wins). See backend/src/config/settings.py for the FAMHUB_* variables.
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parent
APP_PATH = "backend.src.main:app"


def parse_arguments(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the FamilyHub calendar API")
    parser.add_argument("--host", default="127.0.0.1",
                        help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000,
                        help="Port to bind (default: 8000)")
    parser.add_argument("--reload", action="store_true",
                        help="Restart on code changes (development only)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_arguments(argv)

    # uvicorn imports the app by dotted path from the repo root
    if str(REPO_ROOT) not in sys.path:
        sys.path.insert(0, str(REPO_ROOT))
    load_dotenv(REPO_ROOT / "backend" / ".env", override=False)

    import uvicorn

    base_url = f"http://{args.host}:{args.port}"
    print(f"FamilyHub API on {base_url} (docs at {base_url}/docs)")
    print(f"Feed URLs look like {base_url}/api/feeds/calendar.ics?token=...")

    uvicorn.run(APP_PATH, host=args.host, port=args.port, reload=args.reload, log_level="info")
    return 0


if __name__ == "__main__":
    sys.exit(main())
