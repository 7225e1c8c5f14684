"""Latest prepaid package lookup for a subscriber."""

from typing import Any

from ocs_report.core.http import OCSClient
from ocs_report.core.logging import get_logger
from ocs_report.core.utils import (
    as_list,
    dig,
    finite_number,
    first_present,
    text_or_none,
    timestamp_of,
)
from ocs_report.models.package import PackageInfo

logger = get_logger(__name__)


def package_one_time_cost(package: dict[str, Any]) -> float | int | None:
    """First numeric one-time charge on the package itself, if any."""
    for value in (
        package.get("cost"),
        package.get("oneTimePrice"),
        package.get("activationFee"),
        dig(package, "price", "value"),
    ):
        number = finite_number(value)
        if number is not None:
            return number
    return None


def latest_package(packages: list[Any]) -> dict[str, Any] | None:
    """Most recently activated package; equal activation times keep list order."""
    candidates = [p for p in packages if isinstance(p, dict)]
    if not candidates:
        return None
    return sorted(candidates, key=lambda p: timestamp_of(p.get("tsactivationutc")))[-1]


def parse_package(package: dict[str, Any]) -> PackageInfo:
    template = package.get("packageTemplate")
    if not isinstance(template, dict):
        template = {}
    template_id = first_present(template, ("prepaidpackagetemplateid", "id"))
    if isinstance(template_id, bool) or not isinstance(template_id, (int, str)):
        template_id = None

    return PackageInfo(
        prepaidpackagetemplatename=text_or_none(
            first_present(template, ("prepaidpackagetemplatename", "name"))
        ),
        prepaidpackagetemplateid=template_id,
        tsactivationutc=text_or_none(package.get("tsactivationutc")),
        tsexpirationutc=text_or_none(package.get("tsexpirationutc")),
        pckdatabyte=finite_number(package.get("pckdatabyte")),
        useddatabyte=finite_number(package.get("useddatabyte")),
        package_one_time_cost=package_one_time_cost(package),
    )


class PackageResolver:
    """Looks up a subscriber's prepaid packages and keeps the latest one."""

    def __init__(self, client: OCSClient):
        self.client = client

    async def resolve_latest_package(self, subscriber_id: int | str) -> PackageInfo | None:
        response = await self.client.call(
            {"listSubscriberPrepaidPackages": {"subscriberId": subscriber_id}}
        )
        packages = as_list(dig(response, "listSubscriberPrepaidPackages", "packages"))
        package = latest_package(packages)
        if package is None:
            logger.debug("no_prepaid_packages", subscriber_id=subscriber_id)
            return None
        return parse_package(package)
