"""
Reversible commands - Every document mutation the editor can undo.

Each command captures the state it needs to invert itself when it is
constructed, so undo never has to re-derive what the document looked like
before. Commands keep a reference to the document, they never own it.
"""

from abc import ABC, abstractmethod
import copy
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .models import (
    Connection,
    ContainerElement,
    Document,
    ElementBase,
    element_label,
    parse_element,
)

_UNSET = object()

# Fields that define an element's identity and variant
_PROTECTED_PROPERTIES = frozenset({"id", "type"})


class Command(ABC):
    """An atomic, reversible mutation of a document."""

    def __init__(self, description: str):
        self.description = description
        self.timestamp = datetime.now(timezone.utc)

    @abstractmethod
    def execute(self) -> None:
        """Apply the forward effect."""

    @abstractmethod
    def undo(self) -> None:
        """Apply the inverse effect."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.description!r}>"


def _require_element(document: Document, element_id: str) -> ElementBase:
    element = document.get_element(element_id)
    if element is None:
        raise ValueError(f"Element not found: {element_id}")
    return element


def _resolve_property(element: ElementBase, prop: str) -> str:
    """Map a JSON alias (e.g. 'blockName') to the model attribute name."""
    fields = type(element).model_fields
    if prop in fields:
        return prop
    for name, info in fields.items():
        if info.alias == prop:
            return name
    return prop


# --- Element Commands ---

class AddElementCommand(Command):
    """Append an element to the document."""

    def __init__(self, document: Document, element: Any):
        element = parse_element(element)
        if document.get_element(element.id) is not None:
            raise ValueError(f"Element already exists: {element.id}")
        super().__init__(f"Add {element.type}: {element_label(element)}")
        self.document = document
        self.element = element.model_copy(deep=True)

    def execute(self) -> None:
        self.document.elements.append(self.element.model_copy(deep=True))

    def undo(self) -> None:
        self.document.elements[:] = [
            e for e in self.document.elements if e.id != self.element.id
        ]


class RemoveElementCommand(Command):
    """
    Remove an element together with every connection touching it.

    Connections addressed by position are shifted so they keep pointing at
    the same elements; undo shifts them back before re-inserting.
    """

    def __init__(self, document: Document, element_id: str):
        element = _require_element(document, element_id)
        super().__init__(f"Remove {element.type}: {element_label(element)}")
        self.document = document
        self.element_id = element_id
        self.element = element.model_copy(deep=True)
        self.position = document.index_of_element(element_id)
        self.removed_connections: list[tuple[int, Connection]] = []

    def execute(self) -> None:
        position = self.document.index_of_element(self.element_id)
        if position is None:
            raise ValueError(f"Element not found: {self.element_id}")
        self.position = position

        connections = self.document.connections
        self.removed_connections = [
            (index, c.model_copy(deep=True))
            for index, c in enumerate(connections)
            if c.touches(self.element_id, position)
        ]

        del self.document.elements[position]
        connections[:] = [
            c for c in connections if not c.touches(self.element_id, position)
        ]
        for connection in connections:
            _shift_endpoints(connection, above=position, delta=-1)

    def undo(self) -> None:
        for connection in self.document.connections:
            _shift_endpoints(connection, above=self.position - 1, delta=1)

        self.document.elements.insert(self.position, self.element.model_copy(deep=True))
        for index, connection in self.removed_connections:
            self.document.connections.insert(index, connection.model_copy(deep=True))


def _shift_endpoints(connection: Connection, above: int, delta: int) -> None:
    """Move index endpoints greater than `above` by `delta`."""
    if isinstance(connection.source, int) and connection.source > above:
        connection.source += delta
    if isinstance(connection.target, int) and connection.target > above:
        connection.target += delta


class MoveElementCommand(Command):
    """
    Move an element to a new position.

    `origin` is the position before the gesture started. Pass it when the UI
    already moved the element live during a drag.
    """

    def __init__(
        self,
        document: Document,
        element_id: str,
        x: float,
        y: float,
        origin: Optional[tuple[float, float]] = None,
    ):
        element = _require_element(document, element_id)
        super().__init__("Move element")
        self.document = document
        self.element_id = element_id
        self.from_pos = tuple(origin) if origin is not None else (element.x, element.y)
        self.to_pos = (x, y)

    def _apply(self, pos: tuple[float, float]) -> None:
        element = _require_element(self.document, self.element_id)
        element.x, element.y = pos

    def execute(self) -> None:
        self._apply(self.to_pos)

    def undo(self) -> None:
        self._apply(self.from_pos)


class ResizeElementCommand(Command):
    """Resize a container. Blocks have a fixed footprint."""

    def __init__(
        self,
        document: Document,
        element_id: str,
        width: float,
        height: float,
        origin: Optional[tuple[float, float]] = None,
    ):
        element = _require_element(document, element_id)
        if not isinstance(element, ContainerElement):
            raise ValueError(f"Only containers can be resized: {element_id}")
        if width <= 0 or height <= 0:
            raise ValueError("Width and height must be positive")
        super().__init__("Resize element")
        self.document = document
        self.element_id = element_id
        self.from_size = tuple(origin) if origin is not None else (element.width, element.height)
        self.to_size = (width, height)

    def _apply(self, size: tuple[float, float]) -> None:
        element = _require_element(self.document, self.element_id)
        element.width, element.height = size

    def execute(self) -> None:
        self._apply(self.to_size)

    def undo(self) -> None:
        self._apply(self.from_size)


class UpdatePropertyCommand(Command):
    """Set a single element property, by attribute name or JSON key."""

    def __init__(
        self,
        document: Document,
        element_id: str,
        prop: str,
        new_value: Any,
        old_value: Any = _UNSET,
    ):
        element = _require_element(document, element_id)
        attr = _resolve_property(element, prop)
        if attr in _PROTECTED_PROPERTIES:
            raise ValueError(f"Property cannot be updated: {prop}")
        super().__init__(f"Update {prop}")
        self.document = document
        self.element_id = element_id
        self.property = attr
        self.new_value = _validated_value(element, attr, new_value)

        extra = element.model_extra or {}
        if old_value is not _UNSET:
            self.existed = True
            self.old_value = old_value
        elif attr in type(element).model_fields or attr in extra:
            self.existed = True
            self.old_value = _copy_value(getattr(element, attr))
        else:
            self.existed = False
            self.old_value = None

    def execute(self) -> None:
        element = _require_element(self.document, self.element_id)
        setattr(element, self.property, _copy_value(self.new_value))

    def undo(self) -> None:
        element = _require_element(self.document, self.element_id)
        if self.existed:
            setattr(element, self.property, _copy_value(self.old_value))
        else:
            delattr(element, self.property)


def _validated_value(element: ElementBase, attr: str, value: Any) -> Any:
    """
    Check the element would still load with `attr` set to `value`.

    Raises a pydantic ValidationError (a ValueError) otherwise, and returns
    the coerced value.
    """
    fields = type(element).model_fields
    key = (fields[attr].alias or attr) if attr in fields else attr
    candidate = element.model_dump(by_alias=True)
    candidate[key] = value
    return getattr(type(element).model_validate(candidate), attr)


def _copy_value(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return copy.deepcopy(value)
    return value


# --- Connection Commands ---

def _resolve_endpoint(document: Document, endpoint: Any, label: str) -> int:
    """Position of the element an endpoint refers to."""
    if isinstance(endpoint, str):
        position = document.index_of_element(endpoint)
        if position is None:
            raise ValueError(f"Connection {label} is not an element: {endpoint!r}")
        return position
    if not 0 <= endpoint < len(document.elements):
        raise ValueError(
            f"Connection {label} {endpoint} out of range (max: {len(document.elements) - 1})"
        )
    return endpoint


class AddConnectionCommand(Command):
    """Append a connection to the document."""

    def __init__(self, document: Document, connection: Any):
        if not isinstance(connection, Connection):
            connection = Connection.model_validate(connection)
        if document.get_connection(connection.id) is not None:
            raise ValueError(f"Connection already exists: {connection.id}")
        source = _resolve_endpoint(document, connection.source, "source")
        target = _resolve_endpoint(document, connection.target, "target")
        if source == target:
            raise ValueError("Connection cannot link an element to itself")
        super().__init__("Add connection")
        self.document = document
        self.connection = connection.model_copy(deep=True)

    def execute(self) -> None:
        self.document.connections.append(self.connection.model_copy(deep=True))

    def undo(self) -> None:
        self.document.connections[:] = [
            c for c in self.document.connections if c.id != self.connection.id
        ]


class RemoveConnectionCommand(Command):
    """Remove a connection by id."""

    def __init__(self, document: Document, connection_id: str):
        position = document.index_of_connection(connection_id)
        if position is None:
            raise ValueError(f"Connection not found: {connection_id}")
        super().__init__("Remove connection")
        self.document = document
        self.connection_id = connection_id
        self.position = position
        self.connection = document.connections[position].model_copy(deep=True)

    def execute(self) -> None:
        position = self.document.index_of_connection(self.connection_id)
        if position is None:
            raise ValueError(f"Connection not found: {self.connection_id}")
        self.position = position
        del self.document.connections[position]

    def undo(self) -> None:
        self.document.connections.insert(self.position, self.connection.model_copy(deep=True))


# --- Composition ---

class BatchCommand(Command):
    """Group several commands into one undo step."""

    def __init__(self, commands: Iterable[Command], description: Optional[str] = None):
        commands = list(commands)
        super().__init__(description or f"Batch: {len(commands)} actions")
        self.commands = commands

    def execute(self) -> None:
        done: list[Command] = []
        try:
            for command in self.commands:
                command.execute()
                done.append(command)
        except Exception:
            # A failed batch leaves the document as it was
            for command in reversed(done):
                command.undo()
            raise

    def undo(self) -> None:
        # Undo in reverse order
        undone: list[Command] = []
        try:
            for command in reversed(self.commands):
                command.undo()
                undone.append(command)
        except Exception:
            for command in reversed(undone):
                command.execute()
            raise
