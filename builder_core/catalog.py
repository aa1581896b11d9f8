"""
Component catalog - Read-only view over the library of block types.

The catalog is a mapping of category key to a category record:

    {"dataPlatform": {"categoryName": "DATA PLATFORM",
                      "components": [{"id": "...", "name": "...", "shortName": "..."}]}}

Only `name` and `shortName` matter for validation; the rest is carried
along for search and display.
"""

import copy
import json
from pathlib import Path
from typing import Any, Mapping, Optional


class ComponentCatalog:
    """Lookup helpers over a component catalog. Never mutates the source data."""

    def __init__(self, categories: Mapping[str, Any]):
        self._categories: dict[str, dict] = copy.deepcopy(dict(categories))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ComponentCatalog":
        return cls(data)

    @classmethod
    def from_json_file(cls, file_path: str | Path) -> "ComponentCatalog":
        """Load a catalog from a JSON file."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Catalog file not found: {path}")

        with open(path, 'r') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Catalog must be a JSON object: {path}")
        return cls(data)

    @property
    def category_keys(self) -> list[str]:
        return list(self._categories)

    def _components(self, category: Mapping[str, Any]) -> list[dict]:
        components = category.get("components") if isinstance(category, Mapping) else None
        return [c for c in components or [] if isinstance(c, Mapping)]

    def valid_block_names(self) -> list[str]:
        """Canonical and short names of every component, in catalog order."""
        names = []
        for category in self._categories.values():
            for component in self._components(category):
                if component.get("name"):
                    names.append(component["name"])
                if component.get("shortName"):
                    names.append(component["shortName"])
        return names

    def all_components(self) -> list[dict]:
        """Every component, annotated with its category key and display name."""
        result = []
        for key, category in self._categories.items():
            for component in self._components(category):
                result.append({
                    **copy.deepcopy(component),
                    "category": key,
                    "category_name": category.get("categoryName", key),
                })
        return result

    def get_component(self, component_id: str) -> Optional[dict]:
        """Find a component by its id."""
        for component in self.all_components():
            if component.get("id") == component_id:
                return component
        return None

    def components_in(self, category_key: str) -> list[dict]:
        """All components of one category (empty for unknown categories)."""
        category = self._categories.get(category_key)
        if category is None:
            return []
        return copy.deepcopy(self._components(category))

    def search(self, query: str) -> list[dict]:
        """Case-insensitive search over name, short name and description."""
        needle = query.lower()
        return [
            c for c in self.all_components()
            if any(
                needle in str(c.get(key) or "").lower()
                for key in ("name", "shortName", "description")
            )
        ]

    def category_stats(self) -> dict[str, dict]:
        """Display name, color and component count per category."""
        return {
            key: {
                "name": category.get("categoryName", key),
                "color": category.get("categoryColor"),
                "count": len(self._components(category)),
            }
            for key, category in self._categories.items()
        }

    def __len__(self) -> int:
        return sum(len(self._components(c)) for c in self._categories.values())
