"""Run the external transformation tool over a region's text."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass

from ..core.errors import ToolLaunchError

LOGGER = logging.getLogger(__name__)

DEFAULT_TOOL_COMMAND = "awk"


@dataclass(slots=True, frozen=True)
class ExternalToolFailure:
    """A run that finished with a nonzero exit status."""

    exit_code: int
    stderr: str

    def summary(self) -> str:
        first_line = self.stderr.strip().splitlines()[0] if self.stderr.strip() else ""
        return f"exit status {self.exit_code}" + (f": {first_line}" if first_line else "")


@dataclass(slots=True, frozen=True)
class RunResult:
    """Captured outcome of one tool invocation."""

    exit_code: int
    stdout: str
    stderr: str
    command_line: str = ""
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def failure(self) -> ExternalToolFailure | None:
        if self.ok:
            return None
        return ExternalToolFailure(exit_code=self.exit_code, stderr=self.stderr)


def command_line(script: str, tool_command: str = DEFAULT_TOOL_COMMAND) -> str:
    """Return the shell command running ``script`` (already quote-escaped)."""

    return f"{tool_command} '{script}'"


class ProcessRunner:
    """Launches the tool through the shell without blocking the event loop."""

    def __init__(self, *, encoding: str = "utf-8", timeout: float | None = None) -> None:
        self._encoding = encoding
        self._timeout = timeout

    async def run(
        self,
        input_text: str,
        script: str,
        tool_command: str = DEFAULT_TOOL_COMMAND,
    ) -> RunResult:
        """Pipe ``input_text`` through ``tool_command`` running ``script``.

        A nonzero exit status is reported in the result, never raised.

        Raises:
            ToolLaunchError: if the shell itself could not be started.
        """

        line = command_line(script, tool_command)
        started = time.perf_counter()
        try:
            process = await asyncio.create_subprocess_shell(
                line,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ToolLaunchError(
                message=f"Could not start {tool_command!r}: {exc}",
                details={"tool_command": tool_command},
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(input_text.encode(self._encoding)),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            # The tool may exit on its own just as the timeout fires.
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            LOGGER.warning("Tool %r timed out after %.1fs", tool_command, self._timeout)
            return RunResult(
                exit_code=process.returncode or -1,
                stdout="",
                stderr=f"{tool_command}: timed out after {self._timeout}s",
                command_line=line,
                duration=time.perf_counter() - started,
            )

        result = RunResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(self._encoding, errors="replace"),
            stderr=stderr.decode(self._encoding, errors="replace"),
            command_line=line,
            duration=time.perf_counter() - started,
        )
        LOGGER.debug(
            "Tool %r exited with %d in %.3fs (%d bytes out, %d bytes err)",
            tool_command,
            result.exit_code,
            result.duration,
            len(stdout),
            len(stderr),
        )
        return result

    def run_sync(
        self,
        input_text: str,
        script: str,
        tool_command: str = DEFAULT_TOOL_COMMAND,
    ) -> RunResult:
        """Run once on a private event loop; for callers without a loop."""

        return asyncio.run(self.run(input_text, script, tool_command))


__all__ = [
    "DEFAULT_TOOL_COMMAND",
    "ExternalToolFailure",
    "ProcessRunner",
    "RunResult",
    "command_line",
]
