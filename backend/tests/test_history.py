"""History ledger ordering and reset semantics."""

import dataclasses

import pytest

from gas_script_assistant.history import ERROR_FIX, INITIAL, HistoryEntry, HistoryLedger


def test_append_keeps_call_order():
    ledger = HistoryLedger()
    ids = [
        ledger.append(HistoryEntry(kind=INITIAL, prompt="p0", script="s0")),
        ledger.append(HistoryEntry(kind=ERROR_FIX, prompt="p1", script="s1", error_description="boom")),
        ledger.append(HistoryEntry(kind=ERROR_FIX, prompt="p2", script="s2", error_description="again")),
    ]

    entries = ledger.all()
    assert [entry.prompt for entry in entries] == ["p0", "p1", "p2"]
    assert [entry.id for entry in entries] == ids
    assert len(set(ids)) == 3
    assert ledger.latest().script == "s2"
    assert len(ledger) == 3


def test_reset_empties_ledger():
    ledger = HistoryLedger()
    ledger.record(INITIAL, "p", "s")
    ledger.reset()

    assert ledger.all() == ()
    assert ledger.latest() is None


def test_entries_are_immutable():
    entry = HistoryEntry(kind=INITIAL, prompt="p", script="s")

    with pytest.raises(dataclasses.FrozenInstanceError):
        entry.script = "changed"


def test_all_returns_a_snapshot():
    ledger = HistoryLedger()
    ledger.record(INITIAL, "p", "s")
    snapshot = ledger.all()
    ledger.record(ERROR_FIX, "e", "s2", error_description="e")

    assert len(snapshot) == 1
    assert len(ledger.all()) == 2


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        HistoryEntry(kind="rewrite", prompt="p", script="s")


def test_labels():
    entry = HistoryEntry(kind=ERROR_FIX, prompt="p", script="s")
    assert entry.kind_label == "Error fix"
    assert len(entry.time_label) == len("2026-01-01 00:00:00")
