"""
Data Platform Builder Core - Document models, undo/redo history and validation.

This module provides the core functionality used by the backend API and any
importer, ensuring a single source of truth for use case logic.
"""

from .models import (
    # Enums
    ElementKind,
    Anchor,
    # Core models
    ContainerElement,
    BlockElement,
    Element,
    Connection,
    Document,
    parse_element,
)

from .commands import (
    Command,
    AddElementCommand,
    RemoveElementCommand,
    MoveElementCommand,
    ResizeElementCommand,
    UpdatePropertyCommand,
    AddConnectionCommand,
    RemoveConnectionCommand,
    BatchCommand,
)
from .history import HistoryManager
from .persistence import DebouncedSaver, JsonStateStore
from .catalog import ComponentCatalog
from .validation import (
    DiagramValidator,
    ValidationIssue,
    ValidationReport,
    IssueSeverity,
    IssueKind,
    ImportValidationResult,
    levenshtein_distance,
    find_similar_names,
    validate_document,
    validate_import_payload,
)
from .config import BuilderSettings

__all__ = [
    # Enums
    "ElementKind",
    "Anchor",
    # Models
    "ContainerElement",
    "BlockElement",
    "Element",
    "Connection",
    "Document",
    "parse_element",
    # Commands
    "Command",
    "AddElementCommand",
    "RemoveElementCommand",
    "MoveElementCommand",
    "ResizeElementCommand",
    "UpdatePropertyCommand",
    "AddConnectionCommand",
    "RemoveConnectionCommand",
    "BatchCommand",
    # History & persistence
    "HistoryManager",
    "DebouncedSaver",
    "JsonStateStore",
    # Catalog
    "ComponentCatalog",
    # Validation
    "DiagramValidator",
    "ValidationIssue",
    "ValidationReport",
    "IssueSeverity",
    "IssueKind",
    "ImportValidationResult",
    "levenshtein_distance",
    "find_similar_names",
    "validate_document",
    "validate_import_payload",
    # Settings
    "BuilderSettings",
]
