"""Tests for the JSON session log and the record layout it persists."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from focuslog.core.errors import InvalidStateError, PersistenceError
from focuslog.core.record import SessionRecord
from focuslog.core.store import JsonSessionStore

_START = datetime(2025, 6, 11, 9, 0, 0, tzinfo=timezone.utc)


def _finished(goal: str, minutes: int = 25) -> SessionRecord:
    record = SessionRecord(goal=goal, start_time=_START)
    record.finalize(_START + timedelta(minutes=minutes))
    return record


@pytest.fixture()
def store(tmp_path: Path) -> JsonSessionStore:
    return JsonSessionStore(tmp_path / "sessions.json")


# ---------------------------------------------------------------------------
# SessionRecord
# ---------------------------------------------------------------------------


class TestSessionRecord:
    def test_finalize_computes_net_duration(self) -> None:
        record = SessionRecord(goal="Write report", start_time=_START)
        record.pause(_START + timedelta(seconds=100))
        record.resume(_START + timedelta(seconds=160))
        record.finalize(_START + timedelta(seconds=400))
        assert record.duration == 340
        assert record.is_finalized

    def test_finalize_rounds_half_up(self) -> None:
        record = SessionRecord(goal="Write report", start_time=_START)
        record.finalize(_START + timedelta(seconds=90, milliseconds=500))
        assert record.duration == 91

    def test_finalized_record_is_immutable(self) -> None:
        record = _finished("Write report")
        with pytest.raises(InvalidStateError):
            record.finalize(_START + timedelta(hours=1))
        with pytest.raises(InvalidStateError):
            record.pause(_START + timedelta(hours=1))

    def test_resume_without_pause_raises(self) -> None:
        record = SessionRecord(goal="Write report", start_time=_START)
        with pytest.raises(InvalidStateError):
            record.resume(_START)

    def test_reads_legacy_browser_entry(self) -> None:
        """Entries written by the browser version use millisecond Z timestamps."""
        record = SessionRecord.from_dict(
            {
                "goal": "Study",
                "startTime": "2025-06-11T11:15:30.123Z",
                "endTime": "2025-06-11T11:40:30.123Z",
                "duration": 1440,
                "pauses": [
                    {"pauseTime": "2025-06-11T11:20:00.000Z", "resumeTime": "2025-06-11T11:21:00.000Z"}
                ],
            }
        )
        assert record.goal == "Study"
        assert record.duration == 1440
        assert record.start_time.tzinfo is not None
        assert record.pauses[0].seconds() == 60.0


# ---------------------------------------------------------------------------
# JsonSessionStore
# ---------------------------------------------------------------------------


class TestJsonSessionStore:
    def test_missing_file_lists_empty(self, store: JsonSessionStore) -> None:
        assert store.list() == []

    def test_append_keeps_newest_first(self, store: JsonSessionStore) -> None:
        store.append(_finished("First"))
        store.append(_finished("Second"))
        assert [r.goal for r in store.list()] == ["Second", "First"]

    def test_append_rejects_unfinished_record(self, store: JsonSessionStore) -> None:
        with pytest.raises(ValueError):
            store.append(SessionRecord(goal="Write report", start_time=_START))

    def test_remove_by_index(self, store: JsonSessionStore) -> None:
        store.append(_finished("First"))
        store.append(_finished("Second"))
        removed = store.remove(0)
        assert removed.goal == "Second"
        assert [r.goal for r in store.list()] == ["First"]

    def test_remove_out_of_range(self, store: JsonSessionStore) -> None:
        with pytest.raises(IndexError):
            store.remove(3)

    def test_clear(self, store: JsonSessionStore) -> None:
        store.append(_finished("First"))
        store.clear()
        assert store.list() == []
        assert json.loads(store.path.read_text()) == []

    def test_corrupt_file_lists_empty(self, store: JsonSessionStore) -> None:
        store.path.write_text("{not json")
        assert store.list() == []

    def test_append_refuses_to_overwrite_corrupt_file(self, store: JsonSessionStore) -> None:
        store.path.write_text("{not json")
        with pytest.raises(PersistenceError):
            store.append(_finished("Lost"))
        assert store.path.read_text() == "{not json"

    def test_clear_replaces_corrupt_file(self, store: JsonSessionStore) -> None:
        store.path.write_text("{not json")
        store.clear()
        assert json.loads(store.path.read_text()) == []

    def test_non_list_file_is_treated_as_empty(self, store: JsonSessionStore) -> None:
        store.path.write_text(json.dumps({"sessions": []}))
        assert store.list() == []

    def test_append_refuses_to_overwrite_non_list_file(self, store: JsonSessionStore) -> None:
        store.path.write_text(json.dumps({"sessions": []}))
        with pytest.raises(PersistenceError):
            store.append(_finished("Lost"))

    def test_malformed_entry_is_skipped(self, store: JsonSessionStore) -> None:
        good = _finished("Good").to_dict()
        store.path.write_text(json.dumps([{"goal": "No start"}, good]))
        assert [r.goal for r in store.list()] == ["Good"]

    def test_remove_indexes_past_malformed_entries(self, store: JsonSessionStore) -> None:
        """remove(i) deletes the i-th session that list() shows, not the i-th raw entry."""
        broken = {"goal": "broken"}
        first = _finished("A").to_dict()
        second = _finished("B").to_dict()
        store.path.write_text(json.dumps([broken, first, second]))

        removed = store.remove(1)

        assert removed.goal == "B"
        assert [r.goal for r in store.list()] == ["A"]
        assert json.loads(store.path.read_text()) == [broken, first]

    def test_remove_out_of_range_leaves_file_untouched(self, store: JsonSessionStore) -> None:
        store.path.write_text(json.dumps([{"goal": "broken"}, _finished("A").to_dict()]))
        before = store.path.read_text()
        with pytest.raises(IndexError):
            store.remove(1)
        assert store.path.read_text() == before

    def test_append_keeps_entries_written_by_another_instance(self, store: JsonSessionStore) -> None:
        other = JsonSessionStore(store.path)
        other.append(_finished("From other"))
        store.append(_finished("Mine"))
        assert [r.goal for r in other.list()] == ["Mine", "From other"]

    def test_write_failure_raises_persistence_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = JsonSessionStore(blocker / "sessions.json")
        with pytest.raises(PersistenceError):
            store.append(_finished("Write report"))
