"""
Request and response models for the public API
Field names follow the JSON the web client sends (camelCase aliases)
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict

from pydantic import BaseModel, EmailStr, Field


class CamelModel(BaseModel):
    class Config:
        populate_by_name = True
        from_attributes = True


class UserSignup(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")

    class Config:
        populate_by_name = True


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: int
    email: str
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    is_active: bool = Field(..., alias="isActive")
    is_admin: bool = Field(..., alias="isAdmin")


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserResponse


class ContentItemResponse(CamelModel):
    id: int
    project_id: str = Field(..., alias="projectId")
    title: str
    description: Optional[str] = None
    type: str
    category: Optional[str] = None
    filename: str
    price: Decimal
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    duration: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    aspect_ratio: Optional[str] = Field(None, alias="aspectRatio")
    created_at: datetime = Field(..., alias="createdAt")


class SelectionResponse(CamelModel):
    id: int
    user_id: int = Field(..., alias="userId")
    project_id: str = Field(..., alias="projectId")
    content_item_id: int = Field(..., alias="contentItemId")
    content_type: str = Field(..., alias="contentType")
    selection_type: str = Field(..., alias="selectionType")
    selected_at: datetime = Field(..., alias="selectedAt")


class SelectFreeRequest(CamelModel):
    # Optional; defaults to the item's own project
    project_id: Optional[str] = Field(None, alias="projectId")


class PackagePaymentRequest(CamelModel):
    package_type: str = Field(..., alias="packageType", description="additional_3_videos or all_remaining_content")
    amount: Optional[Decimal] = Field(None, description="Client-quoted price in dollars; must match the server price")


class VerifyPaymentRequest(CamelModel):
    payment_intent_id: str = Field(..., alias="paymentIntentId")


class PaymentIntentResponse(CamelModel):
    client_secret: str = Field(..., alias="clientSecret")
    payment_id: int = Field(..., alias="paymentId")
    payment_intent_id: str = Field(..., alias="paymentIntentId")
    amount: int = Field(..., description="Amount in cents")
    currency: str


class VerifyPaymentResponse(CamelModel):
    success: bool
    status: str
    payment_id: int = Field(..., alias="paymentId")
    package_type: Optional[str] = Field(None, alias="packageType")
    content_item_id: Optional[int] = Field(None, alias="contentItemId")


class PackageAccessResponse(CamelModel):
    has_access: bool = Field(..., alias="hasAccess")


class AccessResponse(CamelModel):
    has_access: bool = Field(..., alias="hasAccess")
    reason: str


class DownloadResponse(CamelModel):
    download_url: str = Field(..., alias="downloadUrl")
    filename: str


class DownloadHistoryEntry(CamelModel):
    id: int
    downloaded_at: datetime = Field(..., alias="downloadedAt")
    content_item: ContentItemResponse = Field(..., alias="contentItem")


class FreeQuota(BaseModel):
    used: int
    limit: int
    remaining: int


class EntitlementSummaryResponse(CamelModel):
    project_id: str = Field(..., alias="projectId")
    free_selections: Dict[str, FreeQuota] = Field(..., alias="freeSelections")
    has_additional_3_videos: bool = Field(..., alias="hasAdditional3Videos")
    has_all_remaining_content: bool = Field(..., alias="hasAllRemainingContent")


class ProjectResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_user_id: int = Field(..., alias="ownerUserId")
    free_video_limit: int = Field(..., alias="freeVideoLimit")
    free_headshot_limit: Optional[int] = Field(None, alias="freeHeadshotLimit")
    additional_3_videos_price: Decimal = Field(..., alias="additional3VideosPrice")
    all_content_price: Decimal = Field(..., alias="allContentPrice")
    created_at: datetime = Field(..., alias="createdAt")


class ProjectDetailResponse(ProjectResponse):
    content_items: List[ContentItemResponse] = Field(default_factory=list, alias="contentItems")
    entitlements: Optional[EntitlementSummaryResponse] = None


class PackageResponse(CamelModel):
    package_type: str = Field(..., alias="packageType")
    display_name: str = Field(..., alias="displayName")
    description: str
    covers: List[str]
    price_cents: int = Field(..., alias="priceCents")


# Admin

class ProjectCreateRequest(CamelModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    owner_user_id: int = Field(..., alias="ownerUserId")
    free_video_limit: Optional[int] = Field(None, ge=0, alias="freeVideoLimit")
    free_headshot_limit: Optional[int] = Field(None, ge=0, alias="freeHeadshotLimit")
    additional_3_videos_price: Optional[Decimal] = Field(None, gt=0, alias="additional3VideosPrice")
    all_content_price: Optional[Decimal] = Field(None, gt=0, alias="allContentPrice")


class ProjectUpdateRequest(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    free_video_limit: Optional[int] = Field(None, ge=0, alias="freeVideoLimit")
    free_headshot_limit: Optional[int] = Field(None, ge=0, alias="freeHeadshotLimit")
    additional_3_videos_price: Optional[Decimal] = Field(None, gt=0, alias="additional3VideosPrice")
    all_content_price: Optional[Decimal] = Field(None, gt=0, alias="allContentPrice")


class ContentItemCreateRequest(CamelModel):
    title: str = Field(..., min_length=1)
    type: str = Field(..., pattern="^(video|headshot)$")
    filename: str
    file_url: str = Field(..., alias="fileUrl")
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0)
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    duration: Optional[int] = Field(None, ge=0)
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)
    aspect_ratio: Optional[str] = Field(None, alias="aspectRatio")


class ContentMetadataUpdateRequest(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    duration: Optional[int] = Field(None, ge=0)
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)
    aspect_ratio: Optional[str] = Field(None, alias="aspectRatio")


class RevokePackageRequest(CamelModel):
    user_id: int = Field(..., alias="userId")
    package_type: str = Field(..., alias="packageType")


class ReassignProjectRequest(CamelModel):
    user_id: int = Field(..., alias="userId")


class AdminUserResponse(UserResponse):
    created_at: datetime = Field(..., alias="createdAt")


class AdminUserDetailResponse(AdminUserResponse):
    projects: List[ProjectResponse] = Field(default_factory=list)
    downloads: List[DownloadHistoryEntry] = Field(default_factory=list)
