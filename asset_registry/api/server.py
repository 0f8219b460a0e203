"""
Asset Registry: HTTP API
========================

Presentation surface over the AssetRegistry facade. Every write goes
through the registry, never around it.

Endpoints (prefix /api/v1):
- GET    /nodes?q=            -> flat node list (optional search)
- GET    /tree                -> sorted hierarchy
- GET    /parent-options      -> admissible parents for a form
- GET    /audit               -> structural issues in the stored data
- POST   /nodes               -> add (201 / 409 decision / 422 error)
- PUT    /nodes/{id}          -> edit
- DELETE /nodes/{id}          -> delete (confirm_cascade=true for subtrees)
- DELETE /nodes?confirm=true  -> clear all
- POST   /sample?confirm=true  -> load the sample hierarchy (201)
- GET    /export/json|csv|pivot
- POST   /import?policy=      -> merge a JSON array

Decisions round-trip: a 409 response carries the choices; the client
repeats the call with `resolution` (or the confirmation flag) set.

Usage:
    uvicorn asset_registry.api.server:app --reload
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from ..contracts.nodes import NodeDraft, NodeType
from ..contracts.events import ImportPolicy, Resolution
from ..engine import AssetRegistry, RegistryConfig
from .mapper import (
    error_status, map_error, map_import_report, map_issue, map_node, map_nodes,
    map_outcome, render_tree
)


class NodeDraftModel(BaseModel):
    """Request body for add and edit."""
    name: str
    type: str
    level: Optional[int] = None
    parentId: Optional[str] = None
    resolution: Optional[Resolution] = None

    def to_draft(self) -> NodeDraft:
        return NodeDraft(
            name=self.name,
            type=self.type,
            level=self.level,
            parent_id=self.parentId or None
        )


def _export_filename(extension: str) -> str:
    stamp = datetime.now(timezone.utc).isoformat().replace(":", "-").replace(".", "-")
    return f"module1_assets_{stamp}.{extension}"


def get_registry(request: Request) -> AssetRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Registry not initialized")
    return registry


def create_app(registry: Optional[AssetRegistry] = None) -> FastAPI:
    """
    Build the API application.

    Without an explicit registry one is created at startup from
    environment configuration (RegistryConfig.from_env).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "registry", None) is None:
            config = RegistryConfig.from_env()
            print(f"[*] Initializing asset registry ({config.storage.backend_type} store)")
            app.state.registry = AssetRegistry(config)
            print(f"[*] Loaded {len(app.state.registry.nodes)} node(s)")
        yield
        print("[*] Shutting down asset registry.")

    app = FastAPI(
        title="Asset Registry API",
        version="0.1.0",
        description="System / Subsystem / Component hierarchy with structural consistency rules",
        lifespan=lifespan
    )
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    # =========================================================================
    # READ ENDPOINTS
    # =========================================================================

    @app.get("/health")
    async def health_check(registry: AssetRegistry = Depends(get_registry)):
        return {"status": "online", "nodeCount": len(registry.nodes)}

    @app.get("/api/v1/nodes")
    async def list_nodes(
        q: Optional[str] = None,
        registry: AssetRegistry = Depends(get_registry)
    ):
        return {"nodes": map_nodes(registry.search(q))}

    @app.get("/api/v1/nodes/{node_id}")
    async def get_node(node_id: str, registry: AssetRegistry = Depends(get_registry)):
        node = registry.get(node_id)
        if node is None:
            raise HTTPException(status_code=404, detail=f"Node {node_id} does not exist")
        return map_node(node)

    @app.get("/api/v1/tree")
    async def get_tree(registry: AssetRegistry = Depends(get_registry)):
        return Response(content=render_tree(registry.tree()), media_type="application/json")

    @app.get("/api/v1/parent-options")
    async def get_parent_options(
        type: str = Query(...),
        level: Optional[int] = None,
        editing_id: Optional[str] = None,
        registry: AssetRegistry = Depends(get_registry)
    ):
        if NodeType.parse(type) is None:
            raise HTTPException(status_code=422, detail=f"Unknown type: {type}")
        return {"options": map_nodes(registry.parent_options(type, level, editing_id))}

    @app.get("/api/v1/audit")
    async def get_audit(registry: AssetRegistry = Depends(get_registry)):
        return {"issues": [map_issue(issue) for issue in registry.audit()]}

    # =========================================================================
    # WRITE ENDPOINTS
    # =========================================================================

    @app.post("/api/v1/nodes")
    async def add_node(body: NodeDraftModel, registry: AssetRegistry = Depends(get_registry)):
        outcome = registry.add(body.to_draft(), body.resolution)
        status, content = map_outcome(outcome, applied_status=201)
        return JSONResponse(status_code=status, content=content)

    @app.put("/api/v1/nodes/{node_id}")
    async def edit_node(
        node_id: str,
        body: NodeDraftModel,
        registry: AssetRegistry = Depends(get_registry)
    ):
        outcome = registry.edit(node_id, body.to_draft(), body.resolution)
        status, content = map_outcome(outcome)
        return JSONResponse(status_code=status, content=content)

    @app.delete("/api/v1/nodes/{node_id}")
    async def delete_node(
        node_id: str,
        confirm_cascade: bool = False,
        registry: AssetRegistry = Depends(get_registry)
    ):
        status, content = map_outcome(registry.delete(node_id, confirm_cascade))
        return JSONResponse(status_code=status, content=content)

    @app.delete("/api/v1/nodes")
    async def clear_nodes(confirm: bool = False, registry: AssetRegistry = Depends(get_registry)):
        status, content = map_outcome(registry.clear(confirm))
        return JSONResponse(status_code=status, content=content)

    @app.post("/api/v1/sample")
    async def load_sample(confirm: bool = False, registry: AssetRegistry = Depends(get_registry)):
        status, content = map_outcome(registry.load_sample(confirm), applied_status=201)
        return JSONResponse(status_code=status, content=content)

    @app.post("/api/v1/import")
    async def import_nodes(
        request: Request,
        policy: Optional[ImportPolicy] = None,
        registry: AssetRegistry = Depends(get_registry)
    ):
        text = (await request.body()).decode("utf-8", errors="replace")
        result = registry.import_json(text, policy)
        if result.is_failure:
            return JSONResponse(status_code=error_status(result.error), content=map_error(result.error))
        return map_import_report(result.value)

    # =========================================================================
    # EXPORT ENDPOINTS
    # =========================================================================

    @app.get("/api/v1/export/json")
    async def export_json(registry: AssetRegistry = Depends(get_registry)):
        return Response(
            content=registry.export_json(),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{_export_filename("json")}"'}
        )

    @app.get("/api/v1/export/csv")
    async def export_csv(registry: AssetRegistry = Depends(get_registry)):
        return Response(
            content=registry.export_csv(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{_export_filename("csv")}"'}
        )

    @app.get("/api/v1/export/pivot")
    async def export_pivot(registry: AssetRegistry = Depends(get_registry)):
        return Response(
            content=registry.export_pivot_csv(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{_export_filename("pivot.csv")}"'}
        )

    return app


app = create_app()
