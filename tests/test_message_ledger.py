"""Tests for the message ledger."""
import logging

import pytest

from chatroom_client.chat_errors import LedgerError
from chatroom_client.chat_models import ChatMessage, ChatUser
from chatroom_client.message_ledger import MessageLedger, is_own


def msg(sender: str, text: str, client_id: str | None = None) -> ChatMessage:
    return ChatMessage(
        chat_room_id="R1", sender=sender, message=text,
        send_at="2024-01-01T00:00:00Z", client_message_id=client_id,
    )


def texts(ledger: MessageLedger) -> list[str]:
    return [m.message for m in ledger.current_view()]


def test_seed_then_append_keeps_arrival_order():
    ledger = MessageLedger()
    ledger.seed([msg("A", "one"), msg("B", "two")])
    ledger.append(msg("C", "three"))
    ledger.append(msg("A", "four"))
    assert texts(ledger) == ["one", "two", "three", "four"]


def test_live_arrivals_before_seed_are_buffered_and_replayed():
    ledger = MessageLedger()
    ledger.append(msg("B", "yo"))
    ledger.append(msg("C", "sup"))

    assert ledger.current_view() == ()
    assert ledger.pending_count == 2
    assert not ledger.is_seeded

    ledger.seed([msg("A", "hi")])

    assert texts(ledger) == ["hi", "yo", "sup"]
    assert ledger.pending_count == 0
    assert ledger.is_seeded


@pytest.mark.parametrize("split", [0, 1, 2, 3, 4])
def test_no_live_message_is_lost_or_reordered(split):
    backlog = [msg("A", f"b{i}") for i in range(3)]
    live = [msg("B", f"l{i}") for i in range(4)]

    ledger = MessageLedger()
    for message in live[:split]:
        ledger.append(message)
    ledger.seed(backlog)
    for message in live[split:]:
        ledger.append(message)

    assert list(ledger.current_view()) == backlog + live


def test_seed_twice_raises():
    ledger = MessageLedger()
    ledger.seed([])
    with pytest.raises(LedgerError):
        ledger.seed([msg("A", "late")])


def test_empty_seed_flushes_buffer():
    ledger = MessageLedger()
    ledger.append(msg("B", "yo"))
    ledger.seed([])
    assert texts(ledger) == ["yo"]


def test_duplicate_client_id_is_ignored():
    ledger = MessageLedger()
    ledger.seed([])
    assert ledger.append(msg("me", "hello", "id-1"))
    assert not ledger.append(msg("me", "hello", "id-1"))
    assert texts(ledger) == ["hello"]


def test_backlog_copy_wins_over_buffered_echo():
    ledger = MessageLedger()
    ledger.append(msg("me", "hello", "id-1"))
    ledger.append(msg("B", "after", "id-2"))
    ledger.seed([msg("A", "old"), msg("me", "hello", "id-1")])
    assert texts(ledger) == ["old", "hello", "after"]


def test_messages_without_id_are_not_deduplicated():
    ledger = MessageLedger()
    ledger.seed([msg("A", "hi")])
    ledger.append(msg("A", "hi"))
    assert texts(ledger) == ["hi", "hi"]


def test_observers_see_every_visible_change():
    ledger = MessageLedger()
    views = []
    ledger.add_observer(views.append)

    ledger.append(msg("B", "buffered"))
    assert views == []

    ledger.seed([msg("A", "hi")])
    ledger.append(msg("C", "live"))

    assert [len(v) for v in views] == [2, 3]
    assert views[-1] == ledger.current_view()

    ledger.remove_observer(views.append)
    ledger.append(msg("C", "unobserved"))
    assert len(views) == 2


def test_failing_observer_is_logged_not_raised(caplog):
    ledger = MessageLedger()

    def broken(view):
        raise RuntimeError("boom")

    ledger.add_observer(broken)
    with caplog.at_level(logging.ERROR, logger="chatroom_client.message_ledger"):
        ledger.seed([msg("A", "hi")])
    assert texts(ledger) == ["hi"]
    assert "Observer failed" in caplog.text


def test_current_view_is_a_snapshot():
    ledger = MessageLedger()
    ledger.seed([msg("A", "hi")])
    view = ledger.current_view()
    ledger.append(msg("B", "yo"))
    assert len(view) == 1
    assert len(ledger) == 2
    assert [m.message for m in ledger] == ["hi", "yo"]


def test_bounded_ledger_evicts_oldest():
    ledger = MessageLedger(max_messages=2)
    ledger.seed([msg("A", "1", "id-1"), msg("A", "2"), msg("A", "3")])
    assert texts(ledger) == ["2", "3"]
    ledger.append(msg("A", "4"))
    assert texts(ledger) == ["3", "4"]


def test_late_echo_of_evicted_message_is_still_a_duplicate():
    ledger = MessageLedger(max_messages=2)
    ledger.seed([msg("A", "1", "id-1"), msg("A", "2", "id-2")])
    ledger.append(msg("A", "3", "id-3"))
    assert texts(ledger) == ["2", "3"]

    assert ledger.append(msg("A", "1", "id-1")) is False
    assert texts(ledger) == ["2", "3"]


def test_evicted_ids_are_forgotten_beyond_the_bound():
    ledger = MessageLedger(max_messages=1)
    ledger.seed([msg("A", "1", "id-1")])
    ledger.append(msg("A", "2", "id-2"))
    ledger.append(msg("A", "3", "id-3"))

    assert ledger.append(msg("A", "2", "id-2")) is False
    assert ledger.append(msg("A", "1", "id-1")) is True
    assert texts(ledger) == ["1"]


def test_invalid_bound_rejected():
    with pytest.raises(ValueError):
        MessageLedger(max_messages=0)


def test_is_own():
    message = msg("alice", "hi")
    assert is_own(message, ChatUser(name="alice"))
    assert not is_own(message, ChatUser(name="bob"))
    assert not is_own(message, None)
