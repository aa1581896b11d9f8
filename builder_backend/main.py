"""
Data Platform Builder Backend - FastAPI Application

This is the main entry point for the builder backend.
It provides:
- REST API for use case editing (elements, connections, undo/redo)
- Validation of the open use case and of import bundles
- Catalog search for the block palette
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query

from builder_core.config import BuilderSettings
from builder_core.models import MoveElementRequest, ResizeElementRequest, UpdateElementRequest

from .session import EditorSession

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[BuilderSettings] = None,
    session: Optional[EditorSession] = None,
) -> FastAPI:
    """Build the API around one editor session."""
    settings = settings or BuilderSettings()
    logging.basicConfig(level=settings.log_level.upper())

    if session is None:
        session = EditorSession.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan handler for startup/shutdown tasks."""
        yield
        # Don't lose the last edits to a pending timer
        session.flush()

    app = FastAPI(
        title=settings.title,
        description="Backend API for the use case builder",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.session = session

    # --- Health Check ---

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    # --- Document State ---

    @app.get("/api/document")
    def get_document():
        """Get the current use case and history state."""
        return session.get_state()

    @app.put("/api/document")
    def replace_document(payload: dict[str, Any]):
        """Open a use case, discarding the undo history."""
        try:
            document = session.replace_document(payload)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True, "useCase": document.to_json_dict()}

    # --- Element Operations ---

    @app.post("/api/elements")
    def create_element(payload: dict[str, Any]):
        """Add a container or block."""
        try:
            element = session.add_element(payload)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True, "element": element.model_dump(mode="json", by_alias=True)}

    @app.delete("/api/elements/{element_id}")
    def delete_element(element_id: str):
        """Delete an element and its connections."""
        if session.remove_element(element_id):
            return {"success": True}
        raise HTTPException(status_code=404, detail="Element not found")

    @app.post("/api/elements/{element_id}/move")
    def move_element(element_id: str, request: MoveElementRequest):
        """Move an element; from_x/from_y give the drag origin if already applied."""
        origin = None
        if request.from_x is not None and request.from_y is not None:
            origin = (request.from_x, request.from_y)

        element = session.move_element(element_id, request.x, request.y, origin=origin)
        if element:
            return {"success": True, "element": element.model_dump(mode="json", by_alias=True)}
        raise HTTPException(status_code=404, detail="Element not found")

    @app.post("/api/elements/{element_id}/resize")
    def resize_element(element_id: str, request: ResizeElementRequest):
        """Resize a container."""
        try:
            element = session.resize_element(element_id, request.width, request.height)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if element:
            return {"success": True, "element": element.model_dump(mode="json", by_alias=True)}
        raise HTTPException(status_code=404, detail="Element not found")

    @app.patch("/api/elements/{element_id}")
    def update_element(element_id: str, request: UpdateElementRequest):
        """Update element properties in one undo step."""
        try:
            element = session.update_element(element_id, request.properties)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if element:
            return {"success": True, "element": element.model_dump(mode="json", by_alias=True)}
        raise HTTPException(status_code=404, detail="Element not found")

    # --- Connection Operations ---

    @app.post("/api/connections")
    def create_connection(payload: dict[str, Any]):
        """Connect two elements."""
        try:
            connection = session.add_connection(payload)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True, "connection": connection.to_json_dict()}

    @app.delete("/api/connections/{connection_id}")
    def delete_connection(connection_id: str):
        """Delete a connection."""
        if session.remove_connection(connection_id):
            return {"success": True}
        raise HTTPException(status_code=404, detail="Connection not found")

    # --- Undo/Redo ---

    @app.post("/api/undo")
    def undo():
        """Undo the last action."""
        if session.undo():
            return {"success": True, "useCase": session.document.to_json_dict()}
        return {"success": False, "message": "Nothing to undo"}

    @app.post("/api/redo")
    def redo():
        """Redo the last undone action."""
        if session.redo():
            return {"success": True, "useCase": session.document.to_json_dict()}
        return {"success": False, "message": "Nothing to redo"}

    @app.get("/api/history")
    def history_info():
        """Sizes of the undo/redo stacks and the next descriptions."""
        return session.history.history_info()

    # --- Validation ---

    @app.get("/api/validate")
    def validate_current_document():
        """
        Validate the open use case.

        Returns errors, warnings and a summary.
        """
        report = session.validate()
        return {"success": True, **report.to_dict()}

    @app.post("/api/validate/import")
    def validate_import(payload: dict[str, Any]):
        """Validate an import bundle without loading it."""
        result = session.validate_import(payload)
        return {"success": True, **result.to_dict()}

    # --- Catalog ---

    @app.get("/api/catalog/search")
    def search_catalog(q: str = Query(default="")):
        """Search the component catalog by name, short name or description."""
        if session.catalog is None:
            raise HTTPException(status_code=404, detail="No component catalog configured")
        return {"success": True, "components": session.catalog.search(q)}

    return app


# --- Run with uvicorn ---

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="127.0.0.1", port=8765)
