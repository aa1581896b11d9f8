from __future__ import annotations

import logging

import pytest

from builder_core.commands import Command, MoveElementCommand
from builder_core.history import HistoryManager
from builder_core.models import Document


class Counter:
    def __init__(self) -> None:
        self.value = 0


class Increment(Command):
    def __init__(self, counter: Counter, amount: int = 1):
        super().__init__(f"+{amount}")
        self.counter = counter
        self.amount = amount

    def execute(self) -> None:
        self.counter.value += self.amount

    def undo(self) -> None:
        self.counter.value -= self.amount


class Failing(Command):
    def __init__(self) -> None:
        super().__init__("fails")

    def execute(self) -> None:
        raise RuntimeError("boom")

    def undo(self) -> None:
        raise RuntimeError("boom")


class FakeSaver:
    def __init__(self) -> None:
        self.scheduled = 0

    def schedule(self) -> None:
        self.scheduled += 1


def test_undo_and_redo_on_empty_stacks_return_false() -> None:
    manager = HistoryManager()

    assert manager.undo() is False
    assert manager.redo() is False
    assert not manager.can_undo
    assert not manager.can_redo


def test_execute_undo_redo_cycle() -> None:
    counter = Counter()
    manager = HistoryManager()

    manager.execute(Increment(counter, 5))
    assert counter.value == 5
    assert manager.can_undo and not manager.can_redo

    assert manager.undo() is True
    assert counter.value == 0
    assert manager.can_redo

    assert manager.redo() is True
    assert counter.value == 5
    assert not manager.can_redo


def test_undo_is_lifo() -> None:
    counter = Counter()
    manager = HistoryManager()
    for amount in (1, 10, 100):
        manager.execute(Increment(counter, amount))

    manager.undo()
    assert counter.value == 11
    manager.undo()
    assert counter.value == 1
    assert [c.description for c in manager.future] == ["+100", "+10"]


def test_execute_clears_redo_branch() -> None:
    counter = Counter()
    manager = HistoryManager()
    manager.execute(Increment(counter))
    manager.execute(Increment(counter))
    manager.undo()
    manager.undo()

    manager.execute(Increment(counter, 7))

    assert not manager.can_redo
    assert manager.redo() is False
    assert counter.value == 7


def test_history_is_bounded_and_oldest_is_unrecoverable() -> None:
    counter = Counter()
    manager = HistoryManager(max_history=3)
    for _ in range(5):
        manager.execute(Increment(counter))

    assert len(manager.history) == 3

    while manager.undo():
        pass

    # The first two increments were evicted and can never be undone
    assert counter.value == 2


def test_max_history_must_be_positive() -> None:
    with pytest.raises(ValueError):
        HistoryManager(max_history=0)


def test_failed_execute_leaves_stacks_untouched() -> None:
    counter = Counter()
    manager = HistoryManager()
    manager.execute(Increment(counter))
    manager.undo()

    with pytest.raises(RuntimeError):
        manager.execute(Failing())

    assert not manager.can_undo
    assert manager.can_redo


def test_listeners_receive_action_and_command() -> None:
    counter = Counter()
    manager = HistoryManager()
    events: list[tuple[str, str]] = []
    manager.add_listener(lambda action, command: events.append((action, command.description)))

    manager.execute(Increment(counter))
    manager.undo()
    manager.redo()

    assert events == [("execute", "+1"), ("undo", "+1"), ("redo", "+1")]


def test_failing_listener_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    counter = Counter()
    manager = HistoryManager()
    seen: list[str] = []

    def broken(action: str, command: Command) -> None:
        raise RuntimeError("listener failed")

    manager.add_listener(broken)
    manager.add_listener(lambda action, command: seen.append(action))

    with caplog.at_level(logging.ERROR, logger="builder_core.history"):
        manager.execute(Increment(counter))

    assert seen == ["execute"]
    assert counter.value == 1
    assert manager.can_undo
    assert "Listener error" in caplog.text


def test_removed_listener_is_not_called() -> None:
    counter = Counter()
    manager = HistoryManager()
    calls: list[str] = []

    def listener(action: str, command: Command) -> None:
        calls.append(action)

    manager.add_listener(listener)
    manager.remove_listener(listener)
    manager.execute(Increment(counter))

    assert calls == []


def test_every_mutation_schedules_a_save() -> None:
    counter = Counter()
    saver = FakeSaver()
    manager = HistoryManager(saver=saver)  # type: ignore[arg-type]

    manager.execute(Increment(counter))
    manager.undo()
    manager.redo()
    manager.undo()
    manager.undo()  # no-op

    assert saver.scheduled == 4


def test_clear_history_keeps_document(document: Document) -> None:
    manager = HistoryManager()
    manager.execute(MoveElementCommand(document, "b1", 42, 43))
    manager.undo()
    manager.execute(MoveElementCommand(document, "b1", 44, 45))

    manager.clear_history()

    assert not manager.can_undo and not manager.can_redo
    assert (document.get_element("b1").x, document.get_element("b1").y) == (44, 45)


def test_history_info_describes_next_steps() -> None:
    counter = Counter()
    manager = HistoryManager()
    manager.execute(Increment(counter, 1))
    manager.execute(Increment(counter, 2))
    manager.undo()

    assert manager.history_info() == {
        "history_length": 1,
        "future_length": 1,
        "can_undo": True,
        "can_redo": True,
        "undo_description": "+1",
        "redo_description": "+2",
    }
