"""
Admin routes for project, content and entitlement management
Every endpoint sits behind the require_admin router dependency
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
import logging

from .auth import require_admin
from .db import get_db
from .db.models import Payment, User
from .schemas import (
    AdminUserDetailResponse,
    AdminUserResponse,
    ContentItemCreateRequest,
    ContentItemResponse,
    ContentMetadataUpdateRequest,
    DownloadHistoryEntry,
    EntitlementSummaryResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectUpdateRequest,
    ReassignProjectRequest,
    RevokePackageRequest,
)
from .services.content_repository import ContentRepository
from .services.download_service import DownloadService
from .services.entitlement_store import EntitlementStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


# ============================================================================
# Users
# ============================================================================

@router.get("/users", response_model=List[AdminUserResponse])
async def list_users(db: Session = Depends(get_db)):
    return db.query(User).order_by(User.created_at.desc()).all()


@router.get("/users/{user_id}", response_model=AdminUserDetailResponse)
async def get_user(user_id: int, db: Session = Depends(get_db)):
    """A user with their projects and download history"""
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    detail = AdminUserDetailResponse.model_validate(user)
    detail.projects = [ProjectResponse.model_validate(p) for p in ContentRepository(db).list_user_projects(user.id)]
    detail.downloads = [DownloadHistoryEntry.model_validate(d) for d in DownloadService(db).history(user.id)]
    return detail


# ============================================================================
# Projects
# ============================================================================

@router.get("/projects", response_model=List[ProjectResponse])
async def list_projects(db: Session = Depends(get_db)):
    return ContentRepository(db).list_projects()


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreateRequest,
    admin_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if db.get(User, request.owner_user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Owner user not found")

    fields = request.model_dump(exclude_none=True, exclude={"name", "owner_user_id"})
    project = ContentRepository(db).create_project(request.owner_user_id, request.name, **fields)
    logger.info(f"Admin {admin_user.id} created project {project.id}")
    return project


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    request: ProjectUpdateRequest,
    admin_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Change name, free limits or package prices"""
    project = ContentRepository(db).update_project(project_id, request.model_dump(exclude_unset=True))
    logger.info(f"Admin {admin_user.id} updated project {project_id}")
    return project


@router.patch("/projects/{project_id}/reassign", response_model=ProjectResponse)
async def reassign_project(
    project_id: str,
    request: ReassignProjectRequest,
    admin_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Move a project and its content to another client"""
    if db.get(User, request.user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    project = ContentRepository(db).reassign_project(project_id, request.user_id)
    logger.info(f"Admin {admin_user.id} reassigned project {project_id} to user {request.user_id}")
    return project


@router.delete("/projects/{project_id}")
async def delete_project(
    project_id: str,
    admin_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Delete a project and cascade its content, selections, payments and downloads"""
    counts = ContentRepository(db).delete_project(project_id)
    logger.warning(f"Admin {admin_user.id} deleted project {project_id}")
    return {"status": "deleted", "project_id": project_id, "removed": counts}


# ============================================================================
# Content
# ============================================================================

@router.post(
    "/projects/{project_id}/content",
    response_model=ContentItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_content_item(
    project_id: str,
    request: ContentItemCreateRequest,
    db: Session = Depends(get_db),
):
    """Register metadata for a content item whose file is already hosted"""
    fields = request.model_dump(exclude_none=True, exclude={"title", "type", "filename", "file_url"})
    return ContentRepository(db).create_content_item(
        project_id,
        title=request.title,
        content_type=request.type,
        filename=request.filename,
        file_url=request.file_url,
        **fields,
    )


@router.patch("/content/{content_id}", response_model=ContentItemResponse)
async def update_content_metadata(
    content_id: int,
    request: ContentMetadataUpdateRequest,
    db: Session = Depends(get_db),
):
    return ContentRepository(db).update_content_metadata(content_id, request.model_dump(exclude_unset=True))


@router.delete("/content/{content_id}")
async def delete_content_item(
    content_id: int,
    admin_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    counts = ContentRepository(db).delete_content_item(content_id)
    logger.warning(f"Admin {admin_user.id} deleted content item {content_id}")
    return {"status": "deleted", "content_item_id": content_id, "removed": counts}


# ============================================================================
# Entitlements and payments
# ============================================================================

@router.get("/projects/{project_id}/entitlements/{user_id}", response_model=EntitlementSummaryResponse)
async def get_user_entitlements(project_id: str, user_id: int, db: Session = Depends(get_db)):
    project = ContentRepository(db).require_project(project_id)
    return EntitlementStore(db).summary(user_id, project)


@router.post("/projects/{project_id}/revoke-package")
async def revoke_package(
    project_id: str,
    request: RevokePackageRequest,
    admin_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Explicitly clear a package flag. The only path that lowers entitlement."""
    ContentRepository(db).require_project(project_id)
    revoked = EntitlementStore(db).revoke_package(request.user_id, project_id, request.package_type)
    db.commit()
    logger.warning(
        f"Admin {admin_user.id} revoke {request.package_type} for user {request.user_id} "
        f"in project {project_id}: {'revoked' if revoked else 'not held'}"
    )
    return {"revoked": revoked}


@router.get("/payments")
async def list_payments(
    status_filter: Optional[str] = None,
    project_id: Optional[str] = None,
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    query = db.query(Payment)
    if status_filter:
        query = query.filter(Payment.status == status_filter)
    if project_id:
        query = query.filter(Payment.project_id == project_id)
    return [
        {
            "id": p.id,
            "user_id": p.user_id,
            "project_id": p.project_id,
            "content_item_id": p.content_item_id,
            "package_type": p.package_type,
            "payment_intent_id": p.external_payment_intent_id,
            "amount_cents": p.amount_cents,
            "currency": p.currency,
            "status": p.status,
            "created_at": p.created_at.isoformat(),
            "completed_at": p.completed_at.isoformat() if p.completed_at else None,
        }
        for p in query.order_by(Payment.created_at.desc()).all()
    ]
