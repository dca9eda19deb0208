"""CLI wrapper: Write the OpenAPI schema to a file (default: openapi.json)."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path


def main() -> None:
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("openapi.json")
    os.environ.setdefault("DATABASE_URL_APP", "sqlite://")

    from app.main import create_app

    spec = create_app().openapi()
    target.write_text(json.dumps(spec, indent=2) + "\n", encoding="utf-8")
    print(f"Wrote {target}")
