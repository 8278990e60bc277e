"""
ShareLink API Routes.

REST endpoints for users, links and link analytics. Link views return HTML;
everything else returns JSON.
"""

from typing import Any, Dict, List, Optional

import asyncio

import structlog
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .db.base import get_db
from .db.repositories import SqlLinkRepository, UserRepository
from .lifecycle import LinkLifecycleManager
from .policy import AccessDecision, AccessPolicyEngine
from .primitives import is_valid_link_id
from .render import (
    build_presentation,
    render_denied_page,
    render_expired_page,
    render_link_page,
    render_not_found_page,
)
from .schemas import AnalyticsResponse, LinkCreatedResponse, LinkDraft, LinkPatch, UserCreate
from .storage import BlobStore, create_blob_store

logger = structlog.get_logger()

router = APIRouter(tags=["links"])


def blob_store_from_settings(settings: Settings) -> BlobStore:
    """Build the configured blob store."""
    return create_blob_store(
        settings.storage_uri,
        url_prefix=settings.uploads_url_prefix,
        s3_endpoint_url=settings.s3_endpoint_url,
        s3_region=settings.s3_region,
        s3_public_base_url=settings.s3_public_base_url,
    )


def get_blob_store(request: Request) -> BlobStore:
    """Dependency returning the blob store created at startup."""
    store = getattr(request.app.state, "blob_store", None)
    if store is None:
        store = blob_store_from_settings(get_settings())
        request.app.state.blob_store = store
    return store


def get_lifecycle_manager(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> LinkLifecycleManager:
    return LinkLifecycleManager(SqlLinkRepository(db), blob_store)


def get_access_engine(db: Session = Depends(get_db)) -> AccessPolicyEngine:
    return AccessPolicyEngine(SqlLinkRepository(db))


# =============================================================================
# User Endpoints
# =============================================================================


@router.post("/users", tags=["users"])
def create_user(user: UserCreate, db: Session = Depends(get_db)) -> JSONResponse:
    """Register a user unless the email is already known."""
    repository = UserRepository(db)

    if repository.get_by_email(user.email):
        return JSONResponse(status_code=200, content={"message": "User already exists"})

    db_user = repository.create(email=user.email, name=user.name, photo=user.photo)
    logger.info("User created", user_id=db_user.id)
    return JSONResponse(
        status_code=201,
        content={"message": "User created successfully", "user": db_user.to_dict()},
    )


# =============================================================================
# Link Endpoints
# =============================================================================


@router.get("/links")
def list_links(
    email: Optional[str] = None,
    manager: LinkLifecycleManager = Depends(get_lifecycle_manager),
) -> List[Dict[str, Any]]:
    """List links, optionally only those owned by ``email``."""
    return [link.to_dict() for link in manager.list(owner_email=email)]


@router.post("/links", status_code=201, response_model=LinkCreatedResponse)
async def create_link(
    file: Optional[UploadFile] = File(None),
    user_id: Optional[str] = Form(None, alias="userId"),
    user_email: Optional[str] = Form(None, alias="userEmail"),
    title: Optional[str] = Form(None),
    visibility: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    expiration: Optional[str] = Form(None),
    manager: LinkLifecycleManager = Depends(get_lifecycle_manager),
) -> LinkCreatedResponse:
    """Upload a file and create a shareable link for it."""
    content = await file.read() if file is not None else b""

    created = await manager.create(
        LinkDraft(
            owner_id=user_id,
            owner_email=user_email,
            title=title,
            visibility=visibility,
            password=password,
            expiration=expiration,
            filename=file.filename if file is not None else None,
            content_type=file.content_type if file is not None else None,
            content=content,
        )
    )
    return LinkCreatedResponse(id=created.id, fileUrl=created.file_url)


@router.get("/links/{link_id}", response_class=HTMLResponse)
async def view_link(
    link_id: str,
    password: Optional[str] = None,
    engine: AccessPolicyEngine = Depends(get_access_engine),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> HTMLResponse:
    """Show a link's file if the access policy allows it, counting the view."""
    if not is_valid_link_id(link_id):
        return HTMLResponse(render_not_found_page(link_id), status_code=404)

    result = await asyncio.to_thread(engine.authorize_view, link_id, password)

    if result.decision is AccessDecision.NOT_FOUND:
        return HTMLResponse(render_not_found_page(link_id), status_code=404)
    if result.decision is AccessDecision.EXPIRED:
        return HTMLResponse(render_expired_page(link_id), status_code=410)
    if result.decision is AccessDecision.DENIED:
        return HTMLResponse(
            render_denied_page(link_id, password_supplied=bool(password)),
            status_code=403,
        )

    presentation = await build_presentation(result.link, blob_store, settings)
    return HTMLResponse(render_link_page(result.link, presentation), status_code=200)


@router.put("/links/{link_id}")
def update_link(
    link_id: str,
    patch: LinkPatch,
    manager: LinkLifecycleManager = Depends(get_lifecycle_manager),
) -> Dict[str, Any]:
    """Patch a link's title, visibility, password or expiration."""
    link = manager.update(link_id, patch)
    return {"message": "Link updated successfully", "link": link.to_dict()}


@router.delete("/links/{link_id}")
async def delete_link(
    link_id: str,
    manager: LinkLifecycleManager = Depends(get_lifecycle_manager),
) -> Dict[str, str]:
    """Delete a link's file and then the link."""
    await manager.delete(link_id)
    return {"message": "Link deleted successfully"}


# =============================================================================
# Analytics Endpoints
# =============================================================================


@router.get("/analytics/{link_id}", tags=["analytics"], response_model=AnalyticsResponse)
def link_analytics(
    link_id: str,
    manager: LinkLifecycleManager = Depends(get_lifecycle_manager),
) -> AnalyticsResponse:
    """Return how many times a link was viewed."""
    return AnalyticsResponse(accessCount=manager.access_count(link_id))
