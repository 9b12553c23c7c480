"""Controller driving transformation sessions from start to commit or abort.

Typical flow::

    controller = TransformController(surface, settings=settings, clipboard=clipboard)
    session = controller.start(doc)        # prompt line appears above the selection
    surface.insert_text(doc, session.command.start, "$2")
    await controller.run(doc)              # output preview updated
    controller.commit(doc, "replace")      # region now holds the output
    controller.exit(doc, "discard")        # prompt removed, session over

``commit`` applies an action and keeps the session alive so the user can keep
iterating; ``exit`` commits the default action and ends the session;
``abort`` ends it without touching the region.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from ..core.errors import (
    AwkitError,
    EmptyOutputError,
    RunInProgressError,
    SessionAlreadyActiveError,
)
from ..core.ranges import TextRange
from ..editor.surface import Clipboard, EditingSurface, UndoHistory, grouped_change
from ..services.settings import Settings
from .command_builder import Mode, build
from .events import (
    EventBus,
    NoticePosted,
    RunCompleted,
    SessionCommitted,
    SessionEnded,
    SessionStarted,
)
from .runner import ProcessRunner, RunResult
from .state import CommitAction, Session, SessionRegistry, SessionState

LOGGER = logging.getLogger(__name__)


class TransformController:
    """Owns the session registry and applies run, commit and abort requests."""

    def __init__(
        self,
        surface: EditingSurface,
        *,
        settings: Settings | None = None,
        clipboard: Clipboard | None = None,
        history: UndoHistory | None = None,
        runner: ProcessRunner | None = None,
        registry: SessionRegistry | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._surface = surface
        self._settings = settings or Settings()
        self._clipboard = clipboard
        self._history = history
        self._runner = runner or ProcessRunner(timeout=self._settings.run_timeout)
        self._registry = registry or SessionRegistry()
        self._bus = bus or EventBus()
        self._preview_handles: dict[str, asyncio.TimerHandle] = {}
        self._preview_tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def mode(self) -> Mode:
        return Mode.parse(self._settings.mode)

    def set_mode(self, mode: Mode | str) -> Mode:
        resolved = Mode.parse(mode)
        self._settings.mode = resolved.value
        LOGGER.info("Transformation mode set to %s", resolved.value)
        return resolved

    def cycle_mode(self) -> Mode:
        return self.set_mode(self.mode.next_mode())

    def session(self, doc: Any) -> Session | None:
        return self._registry.get(self._surface, doc)

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def start(self, doc: Any, selection: Sequence[int] | TextRange | None = None) -> Session:
        """Start a session over ``selection`` (defaults to the surface selection).

        Raises:
            SessionAlreadyActiveError: if ``doc`` already has a live session.
            InvalidRangeError: if the selection lies outside the document.
        """

        key = self._surface.document_key(doc)
        if key in self._registry:
            exc = SessionAlreadyActiveError(document_key=key)
            self._notify(key, exc)
            raise exc

        span = TextRange.from_value(selection if selection is not None else self._surface.get_selection(doc))
        history = self._history if self._settings.group_undo else None
        if history is not None:
            history.begin_grouped_change(doc)
        try:
            session = self._registry.start(self._surface, doc, span.start, span.end)
        except Exception:
            if history is not None:
                history.end_grouped_change(doc)
            raise

        try:
            if history is not None:
                session.resources.callback(history.end_grouped_change, doc)
            if self._settings.live_preview:
                disconnect = self._surface.notify_on_edit(
                    doc,
                    lambda start, end, inserted: self._on_edit(session, start, end),
                )
                session.resources.callback(disconnect)
            self._bus.publish(SessionStarted(document_key=key, example_text=session.example_text))
        except Exception:
            LOGGER.exception("Session start failed for %s; aborting", key)
            self._finish(session, aborted=True)
            raise
        return session

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, doc: Any) -> RunResult:
        """Run the current command over the input region and update the previews.

        A result arriving after the session ended is returned but not applied.

        Raises:
            RunInProgressError: if a run for this session is still pending.
            HostEditConflictError: if the prompt or region was deleted.
        """

        session = self._registry.require(self._surface, doc)
        if session.run_pending:
            exc = RunInProgressError()
            self._notify(session.document_key, exc)
            raise exc
        try:
            code = session.current_command_text()
            session.require_range(session.input)
        except AwkitError as exc:
            self._notify(session.document_key, exc)
            raise

        settings = self._settings
        script = build(code, self.mode, settings.match_expression, settings.field_separator)
        session.run_pending = True
        try:
            result = await self._runner.run(session.input_text(), script, settings.tool_command)
        except Exception:
            LOGGER.exception("Run failed for %s; aborting session", session.document_key)
            if self._registry.is_live(session):
                self._finish(session, aborted=True)
            raise
        finally:
            session.run_pending = False

        if not self._registry.is_live(session):
            LOGGER.debug("Discarding result for ended session %s", session.document_key)
            return result
        self._apply_result(session, code, result)
        return result

    def _apply_result(self, session: Session, code: str, result: RunResult) -> None:
        session.last_code = code
        if result.ok:
            session.set_output(result.stdout)
            session.set_error(None)
        else:
            failure = result.failure
            session.set_output(None)
            session.set_error(result.stderr or (failure.summary() if failure else ""))
            LOGGER.info("Command %r failed with exit status %d", code, result.exit_code)
        self._bus.publish(
            RunCompleted(document_key=session.document_key, code=code, exit_code=result.exit_code)
        )

    # ------------------------------------------------------------------
    # Commit / Exit / Abort
    # ------------------------------------------------------------------

    def commit(self, doc: Any, action: CommitAction | str | None = None) -> CommitAction:
        """Apply ``action`` to the current output; the session stays active.

        Raises:
            EmptyOutputError: for replace/insert without output; nothing changes.
            HostEditConflictError: if the region was deleted.
        """

        session = self._registry.require(self._surface, doc)
        resolved = CommitAction.parse(action or self._settings.commit_action)
        output = session.output_text()
        if resolved.mutates_document:
            try:
                if not output:
                    raise EmptyOutputError(action=resolved.value)
                session.require_range(session.input)
            except AwkitError as exc:
                self._notify(session.document_key, exc)
                raise

        session.state = SessionState.COMMITTING
        try:
            if resolved.mutates_document:
                self._apply_to_document(session, resolved, output)
            elif resolved is CommitAction.COPY:
                if output and self._clipboard is not None:
                    self._clipboard.set_clipboard(output)
                else:
                    LOGGER.debug("Nothing copied for %s", session.document_key)
            session.set_output(None)
            session.is_committed = True
        finally:
            if session.state is SessionState.COMMITTING:
                session.state = SessionState.ACTIVE

        LOGGER.info("Committed %s for %s", resolved.value, session.document_key)
        self._bus.publish(
            SessionCommitted(document_key=session.document_key, action=resolved.value, length=len(output))
        )
        return resolved

    def _apply_to_document(self, session: Session, action: CommitAction, output: str) -> None:
        start, end = session.input.start, session.input.end
        length = len(output)
        history = self._history if self._settings.group_undo else None
        with grouped_change(history, session.doc):
            self._surface.insert_text(session.doc, start, output)
            if action is CommitAction.REPLACE:
                if end > start:
                    self._surface.delete_text(session.doc, start + length, end + length)
                session.tracker.set_span(session.input, start, start + length)
            else:
                session.tracker.set_span(session.input, start, end + length)
        session.refresh_highlights()

    def exit(self, doc: Any, action: CommitAction | str | None = None) -> CommitAction:
        """Commit ``action`` (default from settings) and end the session."""

        session = self._registry.require(self._surface, doc)
        resolved = self.commit(doc, action)
        self._finish(session, aborted=False)
        return resolved

    def abort(self, doc: Any) -> bool:
        """End the session without applying anything; ``False`` if none was live."""

        session = self._registry.get(self._surface, doc)
        if session is None:
            return False
        session.state = SessionState.ABORTING
        self._finish(session, aborted=True)
        return True

    def _finish(self, session: Session, *, aborted: bool) -> None:
        handle = self._preview_handles.pop(session.document_key, None)
        if handle is not None:
            handle.cancel()
        # Prompt removal below must not look like user typing.
        if session.state is SessionState.ACTIVE:
            session.state = SessionState.ABORTING if aborted else SessionState.COMMITTING
        if self._registry.end(session):
            self._bus.publish(SessionEnded(document_key=session.document_key, aborted=aborted))

    def strip_undo_markers(self, doc: Any) -> int:
        """Drop grouping markers left on the host's undo history."""

        if self._history is None:
            return 0
        return self._history.strip_sentinels(doc)

    # ------------------------------------------------------------------
    # Live preview
    # ------------------------------------------------------------------

    def _on_edit(self, session: Session, start: int, end: int) -> None:
        # Commit and teardown edits happen outside ACTIVE; an insert at
        # command.end lands in the region, not the prompt.
        if not self._registry.is_live(session) or session.state is not SessionState.ACTIVE:
            return
        command = session.command
        if command.vanished or not (command.start <= start < command.end):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; live preview skipped")
            return
        previous = self._preview_handles.pop(session.document_key, None)
        if previous is not None:
            previous.cancel()
        self._preview_handles[session.document_key] = loop.call_later(
            self._settings.preview_delay,
            self._launch_preview,
            session,
        )

    def _launch_preview(self, session: Session) -> None:
        self._preview_handles.pop(session.document_key, None)
        if not self._registry.is_live(session) or session.run_pending:
            return
        task = asyncio.get_running_loop().create_task(self._preview_run(session))
        self._preview_tasks.add(task)
        task.add_done_callback(self._preview_tasks.discard)

    async def _preview_run(self, session: Session) -> None:
        try:
            await self.run(session.doc)
        except AwkitError as exc:
            if not exc.recoverable:
                LOGGER.warning("Live preview stopped: %s", exc)
        except Exception:
            LOGGER.exception("Live preview failed for %s", session.document_key)

    async def wait_for_previews(self) -> None:
        """Wait until scheduled and running live previews have finished."""

        while self._preview_handles or self._preview_tasks:
            if self._preview_tasks:
                await asyncio.gather(*list(self._preview_tasks), return_exceptions=True)
            else:
                await asyncio.sleep(self._settings.preview_delay / 2 or 0.01)

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------

    def _notify(self, document_key: str, exc: AwkitError) -> None:
        self._bus.publish(
            NoticePosted(document_key=document_key, message=exc.message, error_code=exc.error_code)
        )


__all__ = ["TransformController"]
