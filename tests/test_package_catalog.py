"""
Tests for the package catalog and price resolution
"""
from decimal import Decimal

import pytest

from content_vault.db.models import ContentType, Project
from content_vault.exceptions import InvalidPackage
from content_vault.services.package_catalog import (
    PackageType,
    get_package,
    list_packages,
    price_for,
    scope_covers,
    to_cents,
)


class TestPackageType:

    @pytest.mark.parametrize("raw,expected", [
        ("additional_3_videos", PackageType.ADDITIONAL_3_VIDEOS),
        ("additional3Videos", PackageType.ADDITIONAL_3_VIDEOS),
        ("additional_3", PackageType.ADDITIONAL_3_VIDEOS),
        ("all_remaining_content", PackageType.ALL_REMAINING_CONTENT),
        ("allRemainingContent", PackageType.ALL_REMAINING_CONTENT),
        ("all_content", PackageType.ALL_REMAINING_CONTENT),
    ])
    def test_parse_accepts_known_names(self, raw, expected):
        assert PackageType.parse(raw) is expected

    def test_parse_passes_enum_through(self):
        assert PackageType.parse(PackageType.ALL_REMAINING_CONTENT) is PackageType.ALL_REMAINING_CONTENT

    def test_parse_rejects_unknown(self):
        with pytest.raises(InvalidPackage) as exc_info:
            PackageType.parse("premium_bundle")

        assert exc_info.value.code == "INVALID_PACKAGE"
        assert exc_info.value.details["package_type"] == "premium_bundle"
        assert set(exc_info.value.details["allowed"]) == {"additional_3_videos", "all_remaining_content"}


class TestCatalog:

    def test_two_packages(self):
        assert {p.package_type for p in list_packages()} == set(PackageType)

    def test_additional_videos_covers_videos_only(self):
        package = get_package("additional_3_videos")
        assert package.covers == frozenset({ContentType.VIDEO})
        assert package.video_quantity == 3
        assert package.default_price_cents == 19900

    def test_all_remaining_covers_everything(self):
        package = get_package("all_remaining_content")
        assert package.covers == frozenset({ContentType.VIDEO, ContentType.HEADSHOT})
        assert package.video_quantity is None
        assert package.default_price_cents == 49900

    def test_scope_covers(self):
        assert scope_covers("additional_3_videos", "video")
        assert not scope_covers("additional_3_videos", "headshot")
        assert scope_covers("all_remaining_content", "headshot")
        assert not scope_covers("all_remaining_content", "audio")


class TestPricing:

    @pytest.mark.parametrize("amount,cents", [
        (Decimal("199.00"), 19900),
        ("25", 2500),
        (0.1 + 0.2, 30),
        (Decimal("10.005"), 1001),
    ])
    def test_to_cents(self, amount, cents):
        assert to_cents(amount) == cents

    def test_default_price_without_project(self):
        assert price_for("additional_3_videos") == 19900
        assert price_for("all_remaining_content") == 49900

    def test_project_override_wins(self):
        project = Project(additional_3_videos_price=Decimal("149.50"), all_content_price=Decimal("399.00"))
        assert price_for("additional_3_videos", project) == 14950
        assert price_for("allRemainingContent", project) == 39900

    def test_unset_project_price_falls_back(self):
        project = Project(additional_3_videos_price=None, all_content_price=None)
        assert price_for("additional_3_videos", project) == 19900
