"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
import shlex
import shutil
import sys
from typing import Callable

import pytest

from awkit.session.runner import RunResult

requires_awk = pytest.mark.skipif(shutil.which("awk") is None, reason="awk is not installed")

# Runs the script with the current interpreter; ``exec`` keeps it the direct
# child of the shell so timeouts kill it.
PYTHON_TOOL = f"exec {shlex.quote(sys.executable)} -c"


class ScriptedRunner:
    """Runner stub that answers from a Python callable instead of a subprocess.

    ``respond`` receives ``(input_text, script)`` and returns a
    :class:`RunResult`. Set ``gate`` to an :class:`asyncio.Event` to hold a
    run open until the test releases it.

    Example:
        runner = ScriptedRunner(lambda text, script: ok(text.upper()))
        controller = TransformController(surface, runner=runner)
    """

    def __init__(self, respond: Callable[[str, str], RunResult] | None = None) -> None:
        self.respond = respond or (lambda text, script: ok(text))
        self.calls: list[tuple[str, str, str]] = []
        self.gate: asyncio.Event | None = None
        self.started: asyncio.Event | None = None

    async def run(self, input_text: str, script: str, tool_command: str = "awk") -> RunResult:
        self.calls.append((input_text, script, tool_command))
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        return self.respond(input_text, script)


class ExplodingRunner:
    """Runner stub whose run fails with an unexpected exception."""

    async def run(self, input_text: str, script: str, tool_command: str = "awk") -> RunResult:
        raise RuntimeError("runner exploded")


def ok(stdout: str) -> RunResult:
    return RunResult(exit_code=0, stdout=stdout, stderr="")


def failed(stderr: str, exit_code: int = 2) -> RunResult:
    return RunResult(exit_code=exit_code, stdout="", stderr=stderr)
