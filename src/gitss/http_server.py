"""
HTTP layer for GITSS.

Provides a lightweight FastAPI server exposing search, statistics,
drill-down filter and indexing endpoints under /api/v1.
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from gitss import __version__
from gitss.core.errors import (
    BackingStoreUnavailableError,
    ConflictingWriteError,
    GitssError,
    MalformedRecordError,
    NotFoundError,
)
from gitss.core.filters import FilterParams
from gitss.core.metadata import RefKind
from gitss.services.base_filters import base_filters
from gitss.services.container import ServicesContainer, create_services

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class IndexRequest(BaseModel):
    """Index one ref, or every ref of the repository when kind/name are omitted."""

    organization: str
    project: str
    repository: str
    kind: Optional[RefKind] = None
    name: Optional[str] = None


class DeleteRefsRequest(BaseModel):
    organization: str
    project: str
    repository: str
    branches: list[str] = []
    tags: list[str] = []


def _to_http_error(exc: GitssError) -> HTTPException:
    """Map a domain error to an HTTP error."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConflictingWriteError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, MalformedRecordError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, BackingStoreUnavailableError):
        return HTTPException(status_code=503, detail="Search backend unavailable")
    return HTTPException(status_code=500, detail="Internal Server Error")


def create_app(services: Optional[ServicesContainer] = None) -> FastAPI:
    """
    FastAPI application factory.

    Args:
        services: Pre-built services; created from configuration when omitted.
    """
    services = services or create_services()
    indexer_service = services.indexer_service
    repository_indexer = services.repository_indexer

    app = FastAPI(
        title="GITSS",
        version=__version__,
        description="HTTP interface for faceted search over indexed git repositories.",
    )

    @app.on_event("shutdown")
    async def shutdown_event():
        await services.document_store.close()

    @app.get(API_PREFIX + "/version")
    async def version():
        return {"version": __version__}

    @app.get(API_PREFIX + "/search")
    async def search(
        q: str = "",
        i: int = Query(1, description="1-based page number"),
        x: list[str] | None = Query(None),
        o: list[str] | None = Query(None),
        p: list[str] | None = Query(None),
        r: list[str] | None = Query(None),
        b: list[str] | None = Query(None),
        t: list[str] | None = Query(None),
    ):
        filters = FilterParams.from_query_params(
            {"x": x, "o": o, "p": p, "r": r, "b": b, "t": t}
        )
        try:
            result = await indexer_service.search_query(q, filters, i)
            return result.to_dict()
        except GitssError as exc:
            logger.error(f"Error in /search: {exc}", exc_info=True)
            raise _to_http_error(exc)
        except Exception as exc:
            logger.error(f"Error in /search: {exc}", exc_info=True)
            raise HTTPException(status_code=500, detail="Internal Server Error")

    @app.get(API_PREFIX + "/statistics")
    async def statistics():
        try:
            return {"count": await indexer_service.count()}
        except GitssError as exc:
            logger.error(f"Error in /statistics: {exc}", exc_info=True)
            raise _to_http_error(exc)

    @app.get(API_PREFIX + "/filters")
    @app.get(API_PREFIX + "/filters/{organization}")
    @app.get(API_PREFIX + "/filters/{organization}/{project}")
    @app.get(API_PREFIX + "/filters/{organization}/{project}/{repository}")
    async def get_filters(
        organization: Optional[str] = None,
        project: Optional[str] = None,
        repository: Optional[str] = None,
    ):
        try:
            result = await base_filters(services.git_reader, organization, project, repository)
            return result.to_dict()
        except GitssError as exc:
            logger.error(f"Error in /filters: {exc}", exc_info=True)
            raise _to_http_error(exc)

    @app.post(API_PREFIX + "/index")
    async def index(req: IndexRequest):
        if (req.kind is None) != (req.name is None):
            raise HTTPException(status_code=400, detail="kind and name must be given together")
        try:
            if req.kind is None:
                result = await repository_indexer.index_repository(
                    req.organization, req.project, req.repository
                )
            else:
                result = await repository_indexer.index_ref(
                    req.organization, req.project, req.repository, req.kind, req.name
                )
            return result.__dict__
        except GitssError as exc:
            logger.error(f"Error in /index: {exc}", exc_info=True)
            raise _to_http_error(exc)
        except Exception as exc:
            logger.error(f"Error in /index: {exc}", exc_info=True)
            raise HTTPException(status_code=500, detail="Internal Server Error")

    @app.post(API_PREFIX + "/refs/delete")
    async def delete_refs(req: DeleteRefsRequest):
        try:
            result = await repository_indexer.remove_refs(
                req.organization, req.project, req.repository, req.branches, req.tags
            )
            return {
                "matched": result.matched,
                "updated": result.updated,
                "deleted": result.deleted,
            }
        except GitssError as exc:
            logger.error(f"Error in /refs/delete: {exc}", exc_info=True)
            raise _to_http_error(exc)

    return app
