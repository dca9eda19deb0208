"""
Shared CLI runner helper.

Runs a command with the current interpreter's environment and propagates its
exit code, so every wrapper behaves the same.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence


def run(cmd: Sequence[str], env_defaults: Mapping[str, str] | None = None) -> None:
    """
    Run a command and exit with its return code.

    Args:
        cmd: Command and arguments to execute
        env_defaults: Environment variables set only when not already present

    Example:
        >>> run([sys.executable, "-m", "pytest", "-q"], {"APP_ENV": "test"})
    """
    env = dict(os.environ)
    for key, value in (env_defaults or {}).items():
        env.setdefault(key, value)
    result = subprocess.run(cmd, env=env)
    raise SystemExit(result.returncode)
