"""Tests for latest prepaid package resolution."""

from typing import Any

import httpx
import pytest

from ocs_report.core.exceptions import UpstreamException
from ocs_report.core.http import OCSClient
from ocs_report.services.packages import (
    PackageResolver,
    latest_package,
    package_one_time_cost,
    parse_package,
)


class TestPackageHelpers:
    """Test package selection and field extraction."""

    def test_latest_by_activation(self, packages_response: dict[str, Any]) -> None:
        packages = packages_response["listSubscriberPrepaidPackages"]["packages"]

        latest = latest_package(packages)

        assert latest is not None
        assert latest["subscriberprepaidpackageid"] == 502

    def test_equal_activation_keeps_list_order(self) -> None:
        packages = [
            {"id": 1, "tsactivationutc": "2025-06-01 00:00:00"},
            {"id": 2, "tsactivationutc": "2025-06-01 00:00:00"},
        ]
        assert latest_package(packages) == packages[1]

    def test_missing_activation_sorts_first(self) -> None:
        packages = [{"id": 1, "tsactivationutc": "2025-06-01 00:00:00"}, {"id": 2}]
        assert latest_package(packages) == packages[0]

    def test_no_packages(self) -> None:
        assert latest_package([]) is None

    @pytest.mark.parametrize(
        ("package", "expected"),
        [
            ({"cost": 4, "oneTimePrice": 9}, 4),
            ({"cost": "4", "oneTimePrice": 9}, 9),
            ({"activationFee": 2.5}, 2.5),
            ({"price": {"value": 11}}, 11),
            ({"cost": 0, "oneTimePrice": 9}, 0),
            ({"price": {"value": "11"}}, None),
            ({}, None),
        ],
    )
    def test_package_one_time_cost(self, package: dict[str, Any], expected: float | None) -> None:
        assert package_one_time_cost(package) == expected

    def test_alternate_template_field_names(self) -> None:
        info = parse_package({"packageTemplate": {"id": 70, "name": "Trial 100MB"}})

        assert info.prepaidpackagetemplateid == 70
        assert info.prepaidpackagetemplatename == "Trial 100MB"

    def test_non_numeric_byte_counts_become_null(self) -> None:
        info = parse_package({"pckdatabyte": "5GB", "useddatabyte": None})

        assert info.pckdatabyte is None
        assert info.useddatabyte is None
        assert info.prepaidpackagetemplateid is None


class TestPackageResolver:
    """Test the upstream package lookup."""

    @pytest.mark.asyncio
    async def test_resolves_latest_package(
        self,
        ocs_client: OCSClient,
        ocs_routes: dict[str, Any],
        ocs_calls: list[dict[str, Any]],
        packages_response: dict[str, Any],
    ) -> None:
        ocs_routes["listSubscriberPrepaidPackages"] = packages_response

        info = await PackageResolver(ocs_client).resolve_latest_package(1001)

        assert info is not None
        assert info.prepaidpackagetemplateid == 78
        assert info.prepaidpackagetemplatename == "Europe 10GB"
        assert info.tsactivationutc == "2025-07-03 09:00:00"
        assert info.tsexpirationutc == "2025-08-02 09:00:00"
        assert info.pckdatabyte == 10737418240
        assert info.useddatabyte == 1073741824
        assert info.package_one_time_cost == 25
        assert ocs_calls == [{"listSubscriberPrepaidPackages": {"subscriberId": 1001}}]

    @pytest.mark.asyncio
    async def test_no_packages_returns_none(
        self, ocs_client: OCSClient, ocs_routes: dict[str, Any]
    ) -> None:
        ocs_routes["listSubscriberPrepaidPackages"] = {"listSubscriberPrepaidPackages": {}}

        assert await PackageResolver(ocs_client).resolve_latest_package(1001) is None

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates(
        self, ocs_client: OCSClient, ocs_routes: dict[str, Any]
    ) -> None:
        ocs_routes["listSubscriberPrepaidPackages"] = httpx.Response(502, text="bad gateway")

        with pytest.raises(UpstreamException):
            await PackageResolver(ocs_client).resolve_latest_package(1001)
