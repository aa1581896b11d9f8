"""
Use case validation - Check documents for structural and semantic issues.

Provides validation that can be used by the backend, importers and tests to
ensure document integrity. The validator works on the JSON shape of a use
case, so it can report problems in payloads that would not even load into
the typed models (missing types, dangling indices, and so on).
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from .catalog import ComponentCatalog
from .models import VALID_ANCHORS, Document, ElementKind

DEFAULT_MAX_DISTANCE = 5
DEFAULT_MAX_SUGGESTIONS = 3
# Approximate footprint of a rendered block
DEFAULT_BLOCK_SIZE = (160.0, 120.0)

EXPORT_TYPE_USECASES = "usecases"


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, blocks validity
    WARNING = "warning"  # Potential problem, should review


class IssueKind(str, Enum):
    """What part of the use case an issue is about."""
    CRITICAL = "critical"
    FIELD = "field"
    ELEMENTS = "elements"
    ELEMENT = "element"
    CONNECTION = "connection"
    BLOCK_NAME = "blockName"
    LAYOUT = "layout"


@dataclass
class ValidationIssue:
    """A single validation issue found in a use case."""
    severity: IssueSeverity
    kind: IssueKind
    message: str
    index: int | None = None        # Element or connection index
    field: str | None = None        # Use case field, for FIELD issues
    block_name: str | None = None
    suggestions: list[str] = dataclasses.field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "type": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.index is not None:
            result["index"] = self.index
        if self.field:
            result["field"] = self.field
        if self.block_name:
            result["blockName"] = self.block_name
        if self.suggestions:
            result["suggestions"] = list(self.suggestions)
        return result


@dataclass
class ValidationReport:
    """Errors and warnings collected over all validation passes."""
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def summary(self) -> str:
        """Human-readable summary derived from the counts."""
        if not self.errors and not self.warnings:
            return "Use Case ist valide"

        parts = []
        if self.errors:
            parts.append(f"{len(self.errors)} Fehler")
        if self.warnings:
            parts.append(f"{len(self.warnings)} Warnungen")
        return ", ".join(parts)

    def error(self, kind: IssueKind, message: str, **details: Any):
        self.errors.append(ValidationIssue(IssueSeverity.ERROR, kind, message, **details))

    def warning(self, kind: IssueKind, message: str, **details: Any):
        self.warnings.append(ValidationIssue(IssueSeverity.WARNING, kind, message, **details))

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "summary": self.summary,
        }


# --- Fuzzy matching ---

def levenshtein_distance(a: str, b: str) -> int:
    """
    Case-insensitive edit distance between two strings.

    Insertions, deletions and substitutions each cost 1.
    """
    a, b = a.lower(), b.lower()
    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]

    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if a[i - 1] == b[j - 1]:
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = 1 + min(
                    dp[i - 1][j],      # deletion
                    dp[i][j - 1],      # insertion
                    dp[i - 1][j - 1],  # substitution
                )

    return dp[m][n]


def find_similar_names(
    name: str,
    candidates: Iterable[str],
    max_distance: int = DEFAULT_MAX_DISTANCE,
    limit: int = DEFAULT_MAX_SUGGESTIONS,
) -> list[str]:
    """Closest candidates within `max_distance`, nearest first (ties keep catalog order)."""
    scored = []
    for candidate in candidates:
        distance = levenshtein_distance(name, candidate)
        if distance <= max_distance:
            scored.append((distance, candidate))

    scored.sort(key=lambda item: item[0])
    return [candidate for _, candidate in scored[:limit]]


# --- Helpers over the JSON shape ---

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return not value


def _number(value: Any) -> Optional[float]:
    """The value as a float if it is a real number (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _is_container(element: Mapping[str, Any]) -> bool:
    return element.get("type") == ElementKind.CONTAINER.value


def _element_label(element: Mapping[str, Any], fallback: Any) -> Any:
    return element.get("name") or element.get("blockName") or fallback


def _endpoint(connection: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    """First endpoint key that is present and not null."""
    for key in keys:
        value = connection.get(key)
        if value is not None:
            return value
    return None


_FROM_KEYS = ("fromIndex", "from", "source")
_TO_KEYS = ("toIndex", "to", "target")


class DiagramValidator:
    """
    Validates use cases for consistency, completeness and correctness.

    Passes:
    - Use case fields (name required, metadata recommended)
    - Elements (ids, types, positions, container sizes, block identity)
    - Containment (blocks outside every container)
    - Connections (ids, endpoints, self-loops, anchors, duplicates)
    - Block names against the component catalog, with suggestions
    - Layout (overlapping blocks, negative positions), optional

    Every pass runs independently and adds to the same report.
    """

    def __init__(
        self,
        catalog: Optional[ComponentCatalog] = None,
        *,
        max_distance: int = DEFAULT_MAX_DISTANCE,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
        block_size: tuple[float, float] = DEFAULT_BLOCK_SIZE,
    ):
        self.catalog = catalog
        self.max_distance = max_distance
        self.max_suggestions = max_suggestions
        self.block_width, self.block_height = block_size

    def validate(self, document: Any, validate_layout: bool = True) -> ValidationReport:
        """
        Validate a use case.

        Args:
            document: A Document model or its JSON dict
            validate_layout: Run the overlap / negative position checks

        Returns:
            ValidationReport with errors and warnings
        """
        report = ValidationReport()

        if document is None:
            report.error(IssueKind.CRITICAL, "Use Case ist leer oder undefined")
            return report

        data = document.to_json_dict() if isinstance(document, Document) else document
        if not isinstance(data, Mapping):
            report.error(IssueKind.CRITICAL, "Use Case ist kein Objekt")
            return report

        self._validate_fields(data, report)
        self._validate_elements(data, report)
        self._validate_containment(data, report)
        self._validate_connections(data, report)
        if self.catalog is not None:
            self._validate_block_names(data, report)
        if validate_layout:
            self._validate_layout(data, report)

        return report

    # --- Passes ---

    def _validate_fields(self, data: Mapping[str, Any], report: ValidationReport):
        if _is_blank(data.get("name")):
            report.error(IssueKind.FIELD, "Use Case Name ist erforderlich", field="name")

        if not data.get("phaseId"):
            report.warning(IssueKind.FIELD, "Keine Phase zugewiesen", field="phaseId")

        for key, message in (
            ("description", "Beschreibung fehlt"),
            ("businessValue", "Business Value nicht definiert"),
            ("owner", "Kein Owner zugewiesen"),
        ):
            if _is_blank(data.get(key)):
                report.warning(IssueKind.FIELD, message, field=key)

    def _validate_elements(self, data: Mapping[str, Any], report: ValidationReport):
        elements = data.get("elements")
        if not isinstance(elements, list) or not elements:
            report.warning(IssueKind.ELEMENTS, "Keine Elemente vorhanden")
            return

        seen_ids: set = set()
        for index, element in enumerate(elements):
            if not isinstance(element, Mapping):
                report.error(IssueKind.ELEMENT, f"Element {index} ist kein Objekt", index=index)
                continue

            # Check for duplicate IDs
            element_id = element.get("id")
            if element_id is not None:
                if element_id in seen_ids:
                    report.error(
                        IssueKind.ELEMENT, f"Doppelte Element-ID: {element_id}", index=index
                    )
                seen_ids.add(element_id)

            if not element.get("type"):
                report.error(IssueKind.ELEMENT, f"Element {index} hat keinen Typ", index=index)

            if _number(element.get("x")) is None or _number(element.get("y")) is None:
                report.error(
                    IssueKind.ELEMENT, f"Element {index} hat keine Position (x/y)", index=index
                )

            if _is_container(element):
                if _is_blank(element.get("name")):
                    report.warning(
                        IssueKind.ELEMENT, f"Container {index} hat keinen Namen", index=index
                    )
                width = _number(element.get("width"))
                height = _number(element.get("height"))
                if not width or not height or width <= 0 or height <= 0:
                    report.error(
                        IssueKind.ELEMENT,
                        f"Container {index} hat keine Groesse (width/height)",
                        index=index,
                    )
            elif not element.get("blockName") and not element.get("blockId"):
                report.error(
                    IssueKind.ELEMENT,
                    f"Block {index} hat keinen blockName oder blockId",
                    index=index,
                )

    def _validate_containment(self, data: Mapping[str, Any], report: ValidationReport):
        elements = data.get("elements")
        if not isinstance(elements, list):
            return

        containers = []
        for element in elements:
            if isinstance(element, Mapping) and _is_container(element):
                x, y = _number(element.get("x")), _number(element.get("y"))
                if x is None or y is None:
                    continue
                width = _number(element.get("width")) or 0.0
                height = _number(element.get("height")) or 0.0
                containers.append((x, y, x + width, y + height))

        if not containers:
            return

        for index, element in enumerate(elements):
            if not isinstance(element, Mapping) or _is_container(element):
                continue
            x, y = _number(element.get("x")), _number(element.get("y"))
            if x is None or y is None:
                continue

            inside = any(
                left <= x <= right and top <= y <= bottom
                for left, top, right, bottom in containers
            )
            if not inside:
                block_name = element.get("blockName")
                report.warning(
                    IssueKind.LAYOUT,
                    f'Block "{block_name or index}" liegt ausserhalb aller Container',
                    index=index,
                    block_name=block_name,
                )

    def _validate_connections(self, data: Mapping[str, Any], report: ValidationReport):
        connections = data.get("connections")
        if not isinstance(connections, list):
            return

        elements = data.get("elements")
        elements = elements if isinstance(elements, list) else []
        element_count = len(elements)
        positions_by_id = {}
        for position, element in enumerate(elements):
            if isinstance(element, Mapping) and isinstance(element.get("id"), str):
                positions_by_id.setdefault(element["id"], position)

        seen_ids: set = set()
        pairs: list[tuple[int, Any, Any]] = []
        for index, connection in enumerate(connections):
            if not isinstance(connection, Mapping):
                report.error(
                    IssueKind.CONNECTION, f"Connection {index} ist kein Objekt", index=index
                )
                continue

            # Check for duplicate connection IDs
            connection_id = connection.get("id")
            if connection_id is not None:
                if connection_id in seen_ids:
                    report.error(
                        IssueKind.CONNECTION,
                        f"Doppelte Connection-ID: {connection_id}",
                        index=index,
                    )
                seen_ids.add(connection_id)

            source = self._check_endpoint(
                report, index, connection, _FROM_KEYS, "fromIndex/from",
                element_count, positions_by_id,
            )
            target = self._check_endpoint(
                report, index, connection, _TO_KEYS, "toIndex/to",
                element_count, positions_by_id,
            )

            # Check self-reference
            if source is not None and target is not None:
                if source == target:
                    report.error(
                        IssueKind.CONNECTION,
                        f"Connection {index}: Element kann nicht mit sich selbst verbunden sein",
                        index=index,
                    )
                pairs.append((index, source, target))

            for key in ("fromAnchor", "toAnchor"):
                anchor = connection.get(key)
                if anchor and anchor not in VALID_ANCHORS:
                    report.warning(
                        IssueKind.CONNECTION,
                        f'Connection {index}: Ungueltiger {key} "{anchor}"',
                        index=index,
                    )

        # Check for duplicate connections (same from -> to pair, direction-sensitive)
        seen_pairs: set = set()
        for index, source, target in pairs:
            pair = (source, target)
            if pair in seen_pairs:
                report.warning(
                    IssueKind.CONNECTION,
                    f"Doppelte Verbindung zwischen Element {source} und {target}",
                    index=index,
                )
            seen_pairs.add(pair)

    def _check_endpoint(
        self,
        report: ValidationReport,
        index: int,
        connection: Mapping[str, Any],
        keys: tuple[str, ...],
        label: str,
        element_count: int,
        positions_by_id: dict[str, int],
    ) -> Any:
        """
        Validate one endpoint and return a comparable key for it.

        Index endpoints must lie in [0, element_count); id endpoints must name
        an element. Returns the resolved position when possible, the raw
        value otherwise, or None if the endpoint is missing.
        """
        value = _endpoint(connection, keys)
        if value is None:
            report.error(
                IssueKind.CONNECTION, f"Connection {index} hat keinen {label}", index=index
            )
            return None

        if isinstance(value, str):
            if value not in positions_by_id:
                report.error(
                    IssueKind.CONNECTION,
                    f'Connection {index}: {label} "{value}" verweist auf kein Element',
                    index=index,
                )
                return value
            return positions_by_id[value]

        number = _number(value)
        if number is None or not number.is_integer():
            report.error(
                IssueKind.CONNECTION,
                f"Connection {index}: {label} {value!r} ist kein gueltiger Index",
                index=index,
            )
            return value

        position = int(number)
        if position < 0 or position >= element_count:
            report.error(
                IssueKind.CONNECTION,
                f"Connection {index}: {label} {position} ist ungueltig "
                f"(max: {element_count - 1})",
                index=index,
            )
        return position

    def _validate_block_names(self, data: Mapping[str, Any], report: ValidationReport):
        elements = data.get("elements")
        if not isinstance(elements, list):
            return

        valid_names = self.catalog.valid_block_names()
        exact = set(valid_names)
        # First catalog spelling wins for case-insensitive lookups
        by_lower: dict[str, str] = {}
        for name in valid_names:
            by_lower.setdefault(name.lower(), name)

        for index, element in enumerate(elements):
            if not isinstance(element, Mapping) or _is_container(element):
                continue

            block_name = element.get("blockName")
            if not block_name or not isinstance(block_name, str) or block_name in exact:
                continue

            canonical = by_lower.get(block_name.lower())
            if canonical is not None:
                report.warning(
                    IssueKind.BLOCK_NAME,
                    f'Block "{block_name}" - Schreibweise korrigieren zu "{canonical}"',
                    index=index,
                    block_name=block_name,
                    suggestions=[canonical],
                )
                continue

            similar = find_similar_names(
                block_name, valid_names, self.max_distance, self.max_suggestions
            )
            if similar:
                report.error(
                    IssueKind.BLOCK_NAME,
                    f'Block "{block_name}" existiert nicht in der Bibliothek. '
                    f"Meinten Sie: {', '.join(similar)}?",
                    index=index,
                    block_name=block_name,
                    suggestions=similar,
                )
            else:
                report.error(
                    IssueKind.BLOCK_NAME,
                    f'Block "{block_name}" existiert nicht in der Komponenten-Bibliothek',
                    index=index,
                    block_name=block_name,
                )

    def _validate_layout(self, data: Mapping[str, Any], report: ValidationReport):
        elements = data.get("elements")
        if not isinstance(elements, list):
            return

        blocks = []
        for index, element in enumerate(elements):
            if not isinstance(element, Mapping) or _is_container(element):
                continue
            x, y = _number(element.get("x")), _number(element.get("y"))
            if x is not None and y is not None:
                blocks.append((index, element, x, y))

        # Check for overlapping blocks (each unordered pair once)
        w, h = self.block_width, self.block_height
        for i, (index1, b1, x1, y1) in enumerate(blocks):
            for index2, b2, x2, y2 in blocks[i + 1:]:
                overlap = not (
                    x1 + w < x2 or x2 + w < x1 or y1 + h < y2 or y2 + h < y1
                )
                if overlap:
                    report.warning(
                        IssueKind.LAYOUT,
                        f'Bloecke "{b1.get("blockName") or index1}" und '
                        f'"{b2.get("blockName") or index2}" ueberlappen sich',
                        index=index1,
                    )

        # Check for negative positions
        for index, element in enumerate(elements):
            if not isinstance(element, Mapping):
                continue
            x, y = _number(element.get("x")), _number(element.get("y"))
            if (x is not None and x < 0) or (y is not None and y < 0):
                report.warning(
                    IssueKind.LAYOUT,
                    f'Element "{_element_label(element, index)}" hat negative Position',
                    index=index,
                )


# --- Import payloads ---

@dataclass
class ImportValidationResult:
    """Outcome of validating an export/import bundle."""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def summary(self) -> str:
        if self.errors:
            return f"{len(self.errors)} Fehler gefunden"
        if self.warnings:
            return f"Valide mit {len(self.warnings)} Warnungen"
        return "Valide"

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "summary": self.summary,
        }


def validate_import_payload(
    data: Any,
    catalog: Optional[ComponentCatalog] = None,
    validator: Optional[DiagramValidator] = None,
) -> ImportValidationResult:
    """
    Validate a JSON import bundle.

    Checks for:
    - Export type tag (unexpected value is a warning)
    - useCases list (missing is fatal, nothing else is checked)
    - Every use case, via DiagramValidator
    - Proposed new blocks (name required, category recommended)

    Args:
        data: The parsed JSON payload
        catalog: Catalog for block name checks, ignored if `validator` is given
        validator: Validator to use for each use case

    Returns:
        ImportValidationResult with one message per problem or use case
    """
    result = ImportValidationResult()

    # An empty object still gets the structural checks below
    if data is None or data in ("", 0):
        result.errors.append("Daten sind leer")
        return result
    if not isinstance(data, Mapping):
        result.errors.append("Daten sind kein Objekt")
        return result

    if data.get("exportType") != EXPORT_TYPE_USECASES:
        result.warnings.append(f"Unerwarteter exportType: {data.get('exportType')}")

    use_cases = data.get("useCases")
    if not isinstance(use_cases, list):
        result.errors.append("useCases Array fehlt oder ist ungueltig")
        return result

    if not use_cases:
        result.warnings.append("Keine Use Cases in der Datei")

    validator = validator or DiagramValidator(catalog)
    for index, use_case in enumerate(use_cases):
        name = use_case.get("name") if isinstance(use_case, Mapping) else None
        prefix = f'Use Case {index + 1} "{name or "Unbenannt"}"'

        report = validator.validate(use_case)
        if not report.valid:
            result.errors.append(f"{prefix}: {'; '.join(e.message for e in report.errors)}")
        if report.warning_count > 0:
            result.warnings.append(f"{prefix}: {'; '.join(w.message for w in report.warnings)}")

    new_blocks = data.get("newBlocks")
    if isinstance(new_blocks, list):
        for index, block in enumerate(new_blocks):
            block = block if isinstance(block, Mapping) else {}
            if not block.get("name"):
                result.errors.append(f"newBlocks[{index}]: Name fehlt")
            if not block.get("category"):
                result.warnings.append(
                    f'newBlocks[{index}] "{block.get("name") or "Unbenannt"}": Kategorie fehlt'
                )

    return result


def validate_document(
    document: Any,
    catalog: Optional[ComponentCatalog] = None,
    validate_layout: bool = True,
) -> ValidationReport:
    """Validate a single use case with default settings."""
    return DiagramValidator(catalog).validate(document, validate_layout=validate_layout)
