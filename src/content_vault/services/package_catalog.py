"""
Package Catalog - static definition of purchasable packages
"""
import enum
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import FrozenSet, List, Optional

from ..config import config
from ..db.models import ContentType, Project
from ..exceptions import InvalidPackage


class PackageType(str, enum.Enum):
    """Purchasable package enum"""
    ADDITIONAL_3_VIDEOS = "additional_3_videos"
    ALL_REMAINING_CONTENT = "all_remaining_content"

    @classmethod
    def parse(cls, value: str) -> "PackageType":
        """Accept canonical names and the names older clients send"""
        if isinstance(value, cls):
            return value
        normalized = _ALIASES.get(value, value)
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidPackage(
                f"Unknown package type: {value}",
                details={"package_type": value, "allowed": [p.value for p in cls]},
            ) from None


_ALIASES = {
    "additional3Videos": PackageType.ADDITIONAL_3_VIDEOS.value,
    "additional_3": PackageType.ADDITIONAL_3_VIDEOS.value,
    "allRemainingContent": PackageType.ALL_REMAINING_CONTENT.value,
    "all_content": PackageType.ALL_REMAINING_CONTENT.value,
}


@dataclass(frozen=True)
class PackageDefinition:
    package_type: PackageType
    display_name: str
    description: str
    covers: FrozenSet[ContentType]
    # Extra videos unlocked beyond the free quota; None means unbounded
    video_quantity: Optional[int]
    default_price: Decimal

    @property
    def default_price_cents(self) -> int:
        return to_cents(self.default_price)


PACKAGES = {
    PackageType.ADDITIONAL_3_VIDEOS: PackageDefinition(
        package_type=PackageType.ADDITIONAL_3_VIDEOS,
        display_name="3 Additional Videos",
        description="3 more videos beyond the free quota, no headshots.",
        covers=frozenset({ContentType.VIDEO}),
        video_quantity=3,
        default_price=config.DEFAULT_ADDITIONAL_3_VIDEOS_PRICE,
    ),
    PackageType.ALL_REMAINING_CONTENT: PackageDefinition(
        package_type=PackageType.ALL_REMAINING_CONTENT,
        display_name="All Remaining Content",
        description="Every video and headshot in the project, superseding the other package.",
        covers=frozenset({ContentType.VIDEO, ContentType.HEADSHOT}),
        video_quantity=None,
        default_price=config.DEFAULT_ALL_CONTENT_PRICE,
    ),
}


def to_cents(amount) -> int:
    """Convert a decimal dollar amount to integer cents"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def get_package(package_type) -> PackageDefinition:
    return PACKAGES[PackageType.parse(package_type)]


def list_packages() -> List[PackageDefinition]:
    return list(PACKAGES.values())


def price_for(package_type, project: Optional[Project] = None) -> int:
    """
    Resolve package price in cents.

    The project's own price wins when set; otherwise the global default.
    """
    package = get_package(package_type)
    override = None
    if project is not None:
        if package.package_type == PackageType.ADDITIONAL_3_VIDEOS:
            override = project.additional_3_videos_price
        else:
            override = project.all_content_price
    if override is not None:
        return to_cents(override)
    return package.default_price_cents


def scope_covers(package_type, content_type) -> bool:
    """Whether owning the package unlocks items of this content type"""
    package = get_package(package_type)
    try:
        return ContentType(content_type) in package.covers
    except ValueError:
        return False

