"""
Core data models for use-case documents.

These models define the canonical schema for a use case diagram:
- Elements are either containers (grouping regions) or blocks (catalog instances)
- Connections link two elements, addressed by index or by element id
- Metadata fields describe the use case itself

Field Naming Convention:
- Python attributes are snake_case, JSON keys are camelCase (aliases)
- Connections use `source` and `target` internally
- For backward compatibility, `fromIndex`/`toIndex` and `from`/`to` are
  accepted on input and converted
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
import uuid


class ElementKind(str, Enum):
    """Discriminant for the element variants."""
    CONTAINER = "container"
    BLOCK = "block"


class Anchor(str, Enum):
    """Sides of an element a connection may attach to."""
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


VALID_ANCHORS = frozenset(a.value for a in Anchor)

# An endpoint is a position in Document.elements or an element id
Endpoint = Union[int, str]


def generate_element_id() -> str:
    """Generate a unique element ID."""
    return f"el-{uuid.uuid4().hex[:8]}"


def generate_connection_id() -> str:
    """Generate a unique connection ID."""
    return f"conn-{uuid.uuid4().hex[:8]}"


class ElementBase(BaseModel):
    """Fields shared by every element on the canvas."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(default_factory=generate_element_id)
    x: float
    y: float


class ContainerElement(ElementBase):
    """A grouping region that blocks are placed into."""
    type: Literal["container"] = ElementKind.CONTAINER.value
    name: str
    width: float = Field(gt=0)
    height: float = Field(gt=0)

    def bounds(self) -> tuple[float, float, float, float]:
        """Get the bounding box (x, y, right, bottom)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def contains_point(self, x: float, y: float) -> bool:
        """Check whether a point lies inside the container (edges inclusive)."""
        left, top, right, bottom = self.bounds()
        return left <= x <= right and top <= y <= bottom


class BlockElement(ElementBase):
    """A placed instance of a catalog component."""
    type: Literal["block"] = ElementKind.BLOCK.value
    block_name: Optional[str] = Field(default=None, alias="blockName")
    block_id: Optional[str] = Field(default=None, alias="blockId")

    @model_validator(mode="after")
    def require_identity(self) -> "BlockElement":
        if not self.block_name and not self.block_id:
            raise ValueError("A block needs a blockName or a blockId")
        return self

    @property
    def label(self) -> str:
        return self.block_name or self.block_id or "Element"


Element = Annotated[Union[ContainerElement, BlockElement], Field(discriminator="type")]

_ELEMENT_ADAPTER: TypeAdapter = TypeAdapter(Element)


def parse_element(data: Any) -> ElementBase:
    """Build the right element variant from a model or a JSON dict."""
    if isinstance(data, ElementBase):
        return data
    return _ELEMENT_ADAPTER.validate_python(data)


def element_label(element: ElementBase) -> str:
    """Human readable name of an element, used in command descriptions."""
    if isinstance(element, ContainerElement):
        return element.name or "Element"
    if isinstance(element, BlockElement):
        return element.label
    return "Element"


class Connection(BaseModel):
    """
    A directed edge between two elements.

    Uses `source` and `target` as canonical field names.
    Accepts `fromIndex`/`toIndex` and `from`/`to` on input.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(default_factory=generate_connection_id)
    source: Endpoint
    target: Endpoint
    from_anchor: Optional[Anchor] = Field(default=None, alias="fromAnchor")
    to_anchor: Optional[Anchor] = Field(default=None, alias="toAnchor")

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert 'fromIndex'/'toIndex' and legacy 'from'/'to' to 'source'/'target'."""
        if isinstance(data, dict):
            data = dict(data)
            for key in ('fromIndex', 'from'):
                if key in data and 'source' not in data:
                    data['source'] = data.pop(key)
            for key in ('toIndex', 'to'):
                if key in data and 'target' not in data:
                    data['target'] = data.pop(key)
        return data

    def touches(self, element_id: str, position: int) -> bool:
        """Check whether either endpoint refers to the given element."""
        return any(
            _refers_to(endpoint, element_id, position)
            for endpoint in (self.source, self.target)
        )

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        result: dict[str, Any] = {"id": self.id}
        for endpoint, index_key, id_key in (
            (self.source, "fromIndex", "from"),
            (self.target, "toIndex", "to"),
        ):
            result[id_key if isinstance(endpoint, str) else index_key] = endpoint
        # Only include anchors if they're set
        if self.from_anchor:
            result["fromAnchor"] = self.from_anchor.value
        if self.to_anchor:
            result["toAnchor"] = self.to_anchor.value
        result.update(self.model_extra or {})
        return result


def _refers_to(endpoint: Endpoint, element_id: str, position: int) -> bool:
    if isinstance(endpoint, str):
        return endpoint == element_id
    return endpoint == position


class Document(BaseModel):
    """
    The complete use case structure.
    This is what gets saved to/loaded from JSON and validated.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(default_factory=lambda: f"uc-{uuid.uuid4().hex[:8]}")
    name: str
    description: str = ""
    owner: str = ""
    phase_id: Optional[str] = Field(default=None, alias="phaseId")
    business_value: str = Field(default="", alias="businessValue")
    elements: list[Element] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with proper field names."""
        result = self.model_dump(
            mode="json", by_alias=True, exclude={"elements", "connections"}
        )
        result["elements"] = [
            e.model_dump(mode="json", by_alias=True, exclude_none=True)
            for e in self.elements
        ]
        result["connections"] = [c.to_json_dict() for c in self.connections]
        return result

    @classmethod
    def from_json_dict(cls, data: dict) -> "Document":
        """Create a Document from a JSON dict (handles legacy connection keys)."""
        return cls.model_validate(data)

    def containers(self) -> list[ContainerElement]:
        return [e for e in self.elements if isinstance(e, ContainerElement)]

    def blocks(self) -> list[BlockElement]:
        return [e for e in self.elements if isinstance(e, BlockElement)]

    def index_of_element(self, element_id: str) -> Optional[int]:
        """Position of an element in `elements`, or None."""
        for index, element in enumerate(self.elements):
            if element.id == element_id:
                return index
        return None

    def get_element(self, element_id: str) -> Optional[ElementBase]:
        """Get an element by ID (O(n))."""
        index = self.index_of_element(element_id)
        return None if index is None else self.elements[index]

    def index_of_connection(self, connection_id: str) -> Optional[int]:
        for index, connection in enumerate(self.connections):
            if connection.id == connection_id:
                return index
        return None

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        """Get a connection by ID (O(n))."""
        index = self.index_of_connection(connection_id)
        return None if index is None else self.connections[index]


# --- API Request Models ---

class MoveElementRequest(BaseModel):
    """Request to move an element."""
    x: float
    y: float
    from_x: Optional[float] = None
    from_y: Optional[float] = None


class ResizeElementRequest(BaseModel):
    """Request to resize a container."""
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class UpdateElementRequest(BaseModel):
    """Request to update element properties (partial update)."""
    properties: dict[str, Any] = Field(min_length=1)
