"""Local persistence of session snapshots."""

import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from .errors import SessionImportError
from .models import GenerationSession, SessionSnapshot

log = logging.getLogger(__name__)

SESSION_ID = "promptcraft_session_v1"


class SessionStore:
    """Saves and loads the session snapshot kept under a fixed id."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.path = directory / f"{SESSION_ID}.json"

    def load(self) -> GenerationSession:
        """Return the saved session, or a fresh one.

        A corrupt snapshot is logged and ignored.
        """
        if not self.path.exists():
            return GenerationSession()
        try:
            snapshot = _read_snapshot(self.path)
        except SessionImportError as e:
            log.error("Failed to load session: %s", e)
            return GenerationSession()
        return GenerationSession.from_snapshot(snapshot)

    def save(self, session: GenerationSession) -> Path:
        _write_snapshot(session.to_snapshot(), self.path)
        log.debug("Session saved to %s", self.path)
        return self.path

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def export(self, session: GenerationSession, output_path: Path) -> Path:
        """Write the session snapshot to a standalone file."""
        _write_snapshot(session.to_snapshot(), output_path)
        return output_path

    def import_into(self, session: GenerationSession, input_path: Path) -> None:
        """Replace the session's persisted fields with those in ``input_path``.

        Raises:
            SessionImportError: If the file is missing or malformed; the
                session is left untouched.

        """
        snapshot = _read_snapshot(input_path)
        session.restore(snapshot)


def _read_snapshot(path: Path) -> SessionSnapshot:
    try:
        return SessionSnapshot.model_validate_json(path.read_bytes())
    except (OSError, UnicodeDecodeError, ValidationError) as e:
        msg = f"Failed to load session file {path}. It might be corrupted: {e}"
        raise SessionImportError(msg) from e


def _write_snapshot(snapshot: SessionSnapshot, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write(snapshot.model_dump_json(indent=2))


class DebouncedSaver:
    """Save a session once edits have been quiet for ``delay`` seconds."""

    def __init__(self, store: SessionStore, delay: float = 1.0) -> None:
        self.store = store
        self.delay = delay
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._pending: GenerationSession | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def touch(self, session: GenerationSession) -> None:
        """Note a change to ``session`` and restart the quiet period."""
        with self._lock:
            if self._timer:
                self._timer.cancel()
            self._pending = session
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            session, self._pending = self._pending, None
            self._timer = None
        if session is not None:
            self.store.save(session)

    def flush(self) -> None:
        """Save any pending change now."""
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
        self._fire()

    def cancel(self) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
            self._timer = None
            self._pending = None
