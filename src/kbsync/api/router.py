"""Knowledge base search and sync API."""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field

from ..config.factory import Engine
from ..entities.knowledge_chunk import Category, SourceType
from ..errors import NotFoundError
from ..retrieval.service import DEFAULT_SOURCE_TYPES, RetrievalService
from ..sync.service import KnowledgeBaseSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rag", tags=["rag"])


class SearchRequest(BaseModel):
    query: Optional[str] = None
    project_id: Optional[str] = None
    source_types: Optional[List[SourceType]] = None
    categories: Optional[List[Category]] = None
    limit: Optional[int] = Field(default=None, ge=1)
    similarity_threshold: Optional[float] = Field(default=None, ge=-1, le=1)
    report_type: Optional[str] = None


class SearchResultItem(BaseModel):
    document_id: str
    source_type: SourceType
    source_id: str
    project_id: Optional[str] = None
    title: str
    content: str
    similarity: float
    metadata: dict[str, Any]


class SearchResponse(BaseModel):
    results: List[SearchResultItem]
    total: int
    query: str
    context: Optional[str] = None


class SyncOrganizationRequest(BaseModel):
    source_types: Optional[List[str]] = None
    force_update: bool = False
    project_id: Optional[str] = None


class SyncProjectRequest(BaseModel):
    force_update: bool = False


def get_engine(request: Request) -> Engine:
    """Dependency: the engine attached to the application."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Knowledge base engine not initialized")
    return engine


def get_sync_service(engine: Engine = Depends(get_engine)) -> KnowledgeBaseSyncService:
    return engine.sync_service


def get_retrieval_service(engine: Engine = Depends(get_engine)) -> RetrievalService:
    return engine.retrieval_service


def get_organization_id(x_organization_id: Optional[str] = Header(default=None)) -> str:
    """Dependency: tenant scope of the request.

    Authentication lives in the host application; override this dependency
    to derive the organization from the authenticated user instead.
    """
    if not x_organization_id:
        raise HTTPException(status_code=400, detail="X-Organization-ID header is required")
    return x_organization_id


@router.post("/search", response_model=SearchResponse)
async def search(
    req: SearchRequest,
    organization_id: str = Depends(get_organization_id),
    retrieval: RetrievalService = Depends(get_retrieval_service),
):
    """Search the knowledge base for relevant documents"""
    if not req.query or not req.query.strip():
        raise HTTPException(status_code=400, detail="Search query is required")

    try:
        results = await retrieval.retrieve_relevant_documents(
            req.query,
            organization_id,
            project_id=req.project_id,
            source_types=req.source_types or DEFAULT_SOURCE_TYPES,
            limit=req.limit,
            similarity_threshold=req.similarity_threshold,
            categories=req.categories,
        )
    except Exception as e:
        logger.error(f"Knowledge base search failed for {organization_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail="Failed to search knowledge base")

    items = [
        SearchResultItem(
            document_id=doc.document_id,
            source_type=doc.source_type,
            source_id=doc.source_id,
            project_id=doc.project_id,
            title=doc.title,
            content=doc.content,
            similarity=doc.similarity,
            metadata=doc.metadata,
        )
        for doc in results
    ]
    context = retrieval.build_report_context(results, req.report_type) if req.report_type else None
    return SearchResponse(results=items, total=len(items), query=req.query, context=context)


@router.post("/sync/organization")
async def sync_organization(
    req: Optional[SyncOrganizationRequest] = None,
    organization_id: str = Depends(get_organization_id),
    sync: KnowledgeBaseSyncService = Depends(get_sync_service),
):
    """Sync organization data to the knowledge base"""
    req = req or SyncOrganizationRequest()
    try:
        summary = await sync.sync_organization(
            organization_id,
            source_types=req.source_types,
            force_update=req.force_update,
            project_id=req.project_id,
        )
    except Exception as e:
        logger.error(f"Organization sync failed for {organization_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail="Failed to sync organization data")

    return {"message": "Organization sync completed", "results": summary.to_dict()}


@router.post("/sync/project/{project_id}")
async def sync_project(
    project_id: str,
    req: Optional[SyncProjectRequest] = None,
    organization_id: str = Depends(get_organization_id),
    sync: KnowledgeBaseSyncService = Depends(get_sync_service),
):
    """Sync one project's data to the knowledge base"""
    req = req or SyncProjectRequest()
    try:
        project = await sync.repository.get_project(project_id)
        # Other tenants' projects are reported as missing
        if project is not None and str(project.get("organization_id")) != organization_id:
            raise NotFoundError(f"Project not found: {project_id}")
        summary = await sync.sync_project(project_id, force_update=req.force_update)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception as e:
        logger.error(f"Project sync failed for {project_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail="Failed to sync project data")

    return {"message": "Project sync completed", "results": summary.to_dict()}


@router.get("/sync/status")
async def sync_status(
    organization_id: str = Depends(get_organization_id),
    sync: KnowledgeBaseSyncService = Depends(get_sync_service),
):
    """Indexed chunk counts compared with live source records"""
    try:
        status = await sync.get_sync_status(organization_id)
    except Exception as e:
        logger.error(f"Sync status failed for {organization_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get sync status")
    return {"status": status.to_dict()}


@router.delete("/remove/project/{project_id}")
async def remove_project(
    project_id: str,
    organization_id: str = Depends(get_organization_id),
    sync: KnowledgeBaseSyncService = Depends(get_sync_service),
):
    """Remove a project's data from the knowledge base"""
    try:
        result = await sync.remove_project(project_id, organization_id=organization_id)
    except Exception as e:
        logger.error(f"Project removal failed for {project_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove project data")

    return {
        "message": "Project data removed from knowledge base",
        "results": {"removed": result.removed, "total_removed": result.total_removed},
    }


@router.get("/stats")
async def stats(
    organization_id: str = Depends(get_organization_id),
    sync: KnowledgeBaseSyncService = Depends(get_sync_service),
):
    """Knowledge base statistics"""
    try:
        kb_stats = await sync.get_knowledge_base_stats(organization_id)
    except Exception as e:
        logger.error(f"Stats failed for {organization_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get knowledge base stats")
    return {"stats": kb_stats.to_dict()}


@router.post("/regenerate-embeddings")
async def regenerate_embeddings(
    organization_id: str = Depends(get_organization_id),
    retrieval: RetrievalService = Depends(get_retrieval_service),
):
    """Purge and re-index an organization's knowledge base"""
    try:
        deleted, summary = await retrieval.regenerate_embeddings(organization_id)
    except Exception as e:
        logger.error(f"Embedding regeneration failed for {organization_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail="Failed to regenerate embeddings")

    return {
        "message": "Embeddings regenerated",
        "deleted_count": deleted,
        "regenerated_count": summary.processed,
        "results": summary.to_dict(),
    }
