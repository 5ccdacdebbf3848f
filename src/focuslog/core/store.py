"""Session log persistence — a locked JSON file of finalized sessions."""

from __future__ import annotations

import fcntl
import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Protocol

from focuslog.core.errors import PersistenceError
from focuslog.core.record import SessionRecord

log = logging.getLogger(__name__)

SESSIONS_FILE = "sessions.json"

_DECODE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


class SessionStore(Protocol):
    def append(self, record: SessionRecord) -> None: ...

    def remove(self, index: int) -> SessionRecord: ...

    def list(self) -> list[SessionRecord]: ...

    def clear(self) -> None: ...


class JsonSessionStore:
    """Stores finalized sessions as a JSON array, newest first.

    The file layout matches the one written by earlier versions of the timer,
    so existing logs can be dropped in unchanged.  Every update reads and
    rewrites the file while holding one exclusive ``flock``; reads take a
    shared lock.  Malformed entries are hidden from :meth:`list` and
    :meth:`remove` but kept in the file.  A log that cannot be parsed at all is
    never overwritten by :meth:`append` or :meth:`remove`.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    # -- public API ----------------------------------------------------------

    def append(self, record: SessionRecord) -> None:
        """Add a finalized *record* at the head of the log."""
        if not record.is_finalized:
            raise ValueError("only finalized sessions can be stored")
        with self._update() as entries:
            entries.insert(0, record.to_dict())
        log.info(f"Logged session '{record.goal}' ({record.duration}s) to '{self._path}'")

    def remove(self, index: int) -> SessionRecord:
        """Delete and return the *index*-th session as returned by :meth:`list`."""
        with self._update() as entries:
            decoded = self._decode_all(entries)
            if not 0 <= index < len(decoded):
                raise IndexError(f"no session at index {index}")
            position, record = decoded[index]
            del entries[position]
        log.info(f"Removed session {index} ('{record.goal}') from '{self._path}'")
        return record

    def list(self) -> list[SessionRecord]:
        """Return all stored sessions, newest first.  Malformed entries are skipped."""
        return [record for _, record in self._decode_all(self._read())]

    def raw(self) -> list[dict[str, Any]]:
        """Return the stored JSON entries as-is."""
        return self._read()

    def clear(self) -> None:
        """Delete every stored session, including an unreadable log."""
        with self._update(strict=False) as entries:
            entries.clear()
        log.info(f"Cleared all sessions from '{self._path}'")

    # -- persistence ---------------------------------------------------------

    def _decode_all(self, entries: list[Any]) -> list[tuple[int, SessionRecord]]:
        """Return ``(position, record)`` for every entry that decodes."""
        decoded = []
        for position, raw in enumerate(entries):
            try:
                decoded.append((position, SessionRecord.from_dict(raw)))
            except _DECODE_ERRORS:
                log.warning(f"Skipping malformed session entry {position} in '{self._path}'", exc_info=True)
        return decoded

    def _parse(self, text: str) -> list[Any]:
        """Parse the file contents; raises ``ValueError`` if they are not a JSON array."""
        if not text.strip():
            return []
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError("session log is not a JSON array")
        return data

    def _read(self) -> list[Any]:
        """Load the JSON array, treating a missing or unreadable file as empty."""
        if not self._path.exists():
            return []
        try:
            with open(self._path, encoding="utf-8") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                return self._parse(f.read())
        except (OSError, ValueError):
            log.warning(f"Could not read session log '{self._path}', treating it as empty", exc_info=True)
            return []

    @contextmanager
    def _update(self, strict: bool = True) -> Iterator[list[Any]]:
        """Yield the stored entries for in-place editing, then write them back.

        The read and the rewrite happen under one exclusive lock.  With
        *strict*, an unparseable file raises :class:`PersistenceError` and is
        left untouched; otherwise it is replaced.  If the ``with`` body raises,
        nothing is written.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            f = open(self._path, "a+", encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"could not open session log '{self._path}': {exc}") from exc

        with f:
            try:
                fcntl.flock(f, fcntl.LOCK_EX)
                f.seek(0)
                entries = self._parse(f.read())
            except OSError as exc:
                raise PersistenceError(f"could not read session log '{self._path}': {exc}") from exc
            except ValueError as exc:
                if strict:
                    raise PersistenceError(
                        f"session log '{self._path}' is unreadable, refusing to overwrite it: {exc}"
                    ) from exc
                log.warning(f"Replacing unreadable session log '{self._path}'")
                entries = []

            yield entries

            try:
                f.seek(0)
                f.truncate()
                json.dump(entries, f, indent=2)
                f.flush()
            except (OSError, TypeError, ValueError) as exc:
                raise PersistenceError(f"could not write session log '{self._path}': {exc}") from exc
