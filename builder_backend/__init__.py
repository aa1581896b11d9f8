"""HTTP backend for the use case builder."""

from .main import create_app
from .session import EditorSession

__all__ = ["create_app", "EditorSession"]
