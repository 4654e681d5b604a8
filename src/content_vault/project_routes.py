"""
Project API routes - package purchase, verification and entitlement lookups
"""
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .auth import get_current_user
from .db import get_db
from .db.models import User
from .schemas import (
    EntitlementSummaryResponse,
    PackageAccessResponse,
    PackagePaymentRequest,
    PackageResponse,
    PaymentIntentResponse,
    ProjectDetailResponse,
    ProjectResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from .services.content_repository import ContentRepository
from .services.entitlement_store import EntitlementStore
from .services.package_catalog import list_packages, price_for, to_cents
from .services.payment_gateway import PaymentProcessor, get_payment_processor
from .services.payment_lifecycle import PaymentLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["projects"])


@router.get("/packages", response_model=List[PackageResponse])
async def get_packages():
    """Package catalog with default prices"""
    return [
        PackageResponse(
            package_type=package.package_type.value,
            display_name=package.display_name,
            description=package.description,
            covers=sorted(c.value for c in package.covers),
            price_cents=package.default_price_cents,
        )
        for package in list_packages()
    ]


@router.get("/projects", response_model=List[ProjectResponse])
async def list_projects(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Projects the current user owns or holds entitlements in"""
    return ContentRepository(db).list_user_projects(current_user.id)


@router.get("/projects/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Project with its content and the caller's entitlement summary"""
    repo = ContentRepository(db)
    project = repo.require_project(project_id)
    detail = ProjectDetailResponse.model_validate(project)
    detail.entitlements = EntitlementSummaryResponse.model_validate(
        EntitlementStore(db).summary(current_user.id, project)
    )
    return detail


@router.get("/projects/{project_id}/entitlements", response_model=EntitlementSummaryResponse)
async def get_project_entitlements(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = ContentRepository(db).require_project(project_id)
    return EntitlementStore(db).summary(current_user.id, project)


@router.post("/projects/{project_id}/create-payment-intent", response_model=PaymentIntentResponse)
def create_package_payment_intent(
    project_id: str,
    request: PackagePaymentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    processor: PaymentProcessor = Depends(get_payment_processor),
):
    """
    Start a package purchase. The price is always resolved server-side;
    a client-quoted amount that disagrees is rejected.
    """
    quoted_cents = to_cents(request.amount) if request.amount is not None else None
    result = PaymentLifecycleManager(db, processor).create_package_payment_intent(
        current_user, project_id, request.package_type, quoted_cents
    )
    return PaymentIntentResponse(
        client_secret=result.client_secret,
        payment_id=result.payment_id,
        payment_intent_id=result.payment_intent_id,
        amount=result.amount_cents,
        currency=result.currency,
    )


@router.post("/projects/{project_id}/verify-payment", response_model=VerifyPaymentResponse)
def verify_payment(
    project_id: str,
    request: VerifyPaymentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    processor: PaymentProcessor = Depends(get_payment_processor),
):
    """
    Client-side confirmation after the payment form completes

    400 PAYMENT_NOT_COMPLETED while the processor has not reported success
    """
    result = PaymentLifecycleManager(db, processor).verify_payment(
        request.payment_intent_id, current_user, project_id=project_id
    )
    return VerifyPaymentResponse(
        success=True,
        status=result.status,
        payment_id=result.payment_id,
        package_type=result.granted_package,
        content_item_id=result.content_item_id,
    )


@router.get("/projects/{project_id}/package-access/{package_type}", response_model=PackageAccessResponse)
async def get_package_access(
    project_id: str,
    package_type: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ContentRepository(db).require_project(project_id)
    return PackageAccessResponse(
        has_access=EntitlementStore(db).has_package(current_user.id, project_id, package_type)
    )


@router.get("/projects/{project_id}/packages", response_model=List[PackageResponse])
async def get_project_packages(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Package catalog priced for this project"""
    project = ContentRepository(db).require_project(project_id)
    return [
        PackageResponse(
            package_type=package.package_type.value,
            display_name=package.display_name,
            description=package.description,
            covers=sorted(c.value for c in package.covers),
            price_cents=price_for(package.package_type, project),
        )
        for package in list_packages()
    ]
