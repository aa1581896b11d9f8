"""
Editor Session - One open use case with its history, catalog and storage.

This module implements:
- Single use case state (one document open at a time)
- Command-based undo/redo via HistoryManager
- Debounced persistence of the application state
- Validation against the component catalog
"""

import logging
import threading
from typing import Any, Optional

from builder_core.catalog import ComponentCatalog
from builder_core.commands import (
    AddConnectionCommand,
    AddElementCommand,
    BatchCommand,
    MoveElementCommand,
    RemoveConnectionCommand,
    RemoveElementCommand,
    ResizeElementCommand,
    UpdatePropertyCommand,
)
from builder_core.config import BuilderSettings
from builder_core.history import DEFAULT_MAX_HISTORY, HistoryManager
from builder_core.models import Connection, Document, ElementBase
from builder_core.persistence import DEFAULT_SAVE_DELAY, DebouncedSaver, JsonStateStore
from builder_core.validation import (
    DiagramValidator,
    ImportValidationResult,
    ValidationReport,
    validate_import_payload,
)

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_NAME = "Neuer Use Case"


class EditorSession:
    """
    Owns the open document and routes every mutation through the history.

    All public methods run under one lock: execute/undo/redo and the
    document's lists form a single atomic unit, and the debounced save
    reads the document from its timer thread.
    """

    def __init__(
        self,
        document: Optional[Document] = None,
        *,
        catalog: Optional[ComponentCatalog] = None,
        store: Optional[JsonStateStore] = None,
        validator: Optional[DiagramValidator] = None,
        max_history: int = DEFAULT_MAX_HISTORY,
        save_delay: float = DEFAULT_SAVE_DELAY,
        validate_layout: bool = True,
    ):
        self._lock = threading.RLock()
        self._document = document or Document(name=DEFAULT_DOCUMENT_NAME)
        self._app_state: dict[str, Any] = {}  # Rest of the persisted blob
        self.catalog = catalog
        self.store = store
        self.saver = DebouncedSaver(self._save, save_delay) if store is not None else None
        self.history = HistoryManager(max_history=max_history, saver=self.saver)
        self.validator = validator or DiagramValidator(catalog)
        self.validate_layout = validate_layout

    @classmethod
    def from_settings(cls, settings: BuilderSettings) -> "EditorSession":
        """Build a session from settings and restore any saved state."""
        catalog = None
        if settings.catalog_path is not None:
            catalog = ComponentCatalog.from_json_file(settings.catalog_path)

        session = cls(
            catalog=catalog,
            store=JsonStateStore(settings.storage_dir, settings.storage_key),
            validator=DiagramValidator(
                catalog,
                max_distance=settings.suggestion_max_distance,
                max_suggestions=settings.max_suggestions,
                block_size=(settings.block_width, settings.block_height),
            ),
            max_history=settings.max_history,
            save_delay=settings.save_delay_seconds,
            validate_layout=settings.validate_layout,
        )
        session.load()
        return session

    # --- Properties ---

    @property
    def document(self) -> Document:
        return self._document

    # --- Persistence ---

    def state(self) -> dict:
        """The full application state, of which the document is a part."""
        with self._lock:
            return {**self._app_state, "useCase": self._document.to_json_dict()}

    def _save(self):
        self.store.save(self.state())

    def load(self) -> bool:
        """Restore the document from the store. Returns False if nothing was saved."""
        if self.store is None:
            return False

        state = self.store.load()
        if not isinstance(state, dict) or not isinstance(state.get("useCase"), dict):
            return False

        try:
            document = Document.from_json_dict(state["useCase"])
        except ValueError as e:
            logger.warning("Ignoring invalid saved use case in %s: %s", self.store.path, e)
            return False

        with self._lock:
            self._document = document
            self._app_state = {k: v for k, v in state.items() if k != "useCase"}
            self.history.clear_history()
        logger.info("Restored use case %r from %s", self._document.name, self.store.path)
        return True

    def flush(self) -> bool:
        """Write a pending save immediately."""
        return self.saver.flush() if self.saver is not None else False

    def replace_document(self, data: dict) -> Document:
        """Open a different use case. History does not carry over."""
        document = Document.from_json_dict(data)
        with self._lock:
            self._document = document
            self.history.clear_history()
        if self.saver is not None:
            self.saver.schedule()
        return document

    # --- Element Operations ---

    def add_element(self, data: dict) -> ElementBase:
        with self._lock:
            command = AddElementCommand(self._document, data)
            self.history.execute(command)
            return self._document.get_element(command.element.id)

    def remove_element(self, element_id: str) -> bool:
        """Delete an element and all connections touching it."""
        with self._lock:
            if self._document.get_element(element_id) is None:
                return False
            self.history.execute(RemoveElementCommand(self._document, element_id))
            return True

    def move_element(
        self,
        element_id: str,
        x: float,
        y: float,
        origin: Optional[tuple[float, float]] = None,
    ) -> Optional[ElementBase]:
        with self._lock:
            if self._document.get_element(element_id) is None:
                return None
            self.history.execute(
                MoveElementCommand(self._document, element_id, x, y, origin=origin)
            )
            return self._document.get_element(element_id)

    def resize_element(self, element_id: str, width: float, height: float) -> Optional[ElementBase]:
        with self._lock:
            if self._document.get_element(element_id) is None:
                return None
            self.history.execute(
                ResizeElementCommand(self._document, element_id, width, height)
            )
            return self._document.get_element(element_id)

    def update_element(self, element_id: str, properties: dict[str, Any]) -> Optional[ElementBase]:
        """Update several properties as one undo step."""
        with self._lock:
            if self._document.get_element(element_id) is None:
                return None
            commands = [
                UpdatePropertyCommand(self._document, element_id, prop, value)
                for prop, value in properties.items()
            ]
            if len(commands) == 1:
                self.history.execute(commands[0])
            else:
                self.history.execute(
                    BatchCommand(commands, f"Update {', '.join(properties)}")
                )
            return self._document.get_element(element_id)

    # --- Connection Operations ---

    def add_connection(self, data: dict) -> Connection:
        with self._lock:
            command = AddConnectionCommand(self._document, data)
            self.history.execute(command)
            return self._document.get_connection(command.connection.id)

    def remove_connection(self, connection_id: str) -> bool:
        with self._lock:
            if self._document.get_connection(connection_id) is None:
                return False
            self.history.execute(RemoveConnectionCommand(self._document, connection_id))
            return True

    # --- Undo/Redo ---

    def undo(self) -> bool:
        with self._lock:
            return self.history.undo()

    def redo(self) -> bool:
        with self._lock:
            return self.history.redo()

    # --- Validation ---

    def validate(self) -> ValidationReport:
        with self._lock:
            return self.validator.validate(self._document, validate_layout=self.validate_layout)

    def validate_import(self, payload: Any) -> ImportValidationResult:
        return validate_import_payload(payload, validator=self.validator)

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        with self._lock:
            return {
                "useCase": self._document.to_json_dict(),
                **self.history.history_info(),
            }
