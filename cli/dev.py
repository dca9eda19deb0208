"""CLI wrapper: Serve the API with auto-reload.

Without a configured database the server uses a SQLite file in the working
directory. DEV_HOST and DEV_PORT override the bind address.
"""

from __future__ import annotations

import os
import sys

from cli._runner import run

LOCAL_DEFAULTS = {"APP_ENV": "local", "DATABASE_URL_APP": "sqlite:///./data-route.db"}


def main() -> None:
    host = os.getenv("DEV_HOST", "127.0.0.1")
    port = os.getenv("DEV_PORT", "8000")
    cmd = [sys.executable, "-m", "uvicorn", "app.main:app", "--reload"]
    run([*cmd, "--host", host, "--port", port, *sys.argv[1:]], env_defaults=LOCAL_DEFAULTS)
