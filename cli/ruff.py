"""CLI wrappers: Lint and format the project with ruff."""

from __future__ import annotations

import sys

from cli._runner import run

SOURCES = ("app", "cli", "tests")


def lint() -> None:
    run([sys.executable, "-m", "ruff", "check", *SOURCES, *sys.argv[1:]])


def fmt() -> None:
    run([sys.executable, "-m", "ruff", "format", *SOURCES, *sys.argv[1:]])
