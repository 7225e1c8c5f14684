"""Account-level aggregation: subscribers enriched with package, cost and usage."""

import math
from typing import Any

from ocs_report.config import settings
from ocs_report.core.concurrency import bounded_map
from ocs_report.core.http import OCSClient
from ocs_report.core.logging import get_logger
from ocs_report.core.utils import as_list, dig, finite_number, latest_by_date, text_or_none
from ocs_report.models.report import AggregatedRow, ReportTotals
from ocs_report.models.subscriber import SubscriberRecord
from ocs_report.services.packages import PackageResolver
from ocs_report.services.templates import TemplateCostResolver
from ocs_report.services.usage import UsageAggregator

logger = get_logger(__name__)


def _flag(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _subscriber_id(value: Any) -> int | str | None:
    if isinstance(value, bool) or not isinstance(value, (int, str)) or value == "":
        return None
    return value


def parse_subscriber(raw: dict[str, Any]) -> SubscriberRecord:
    """Build the base row from one ``subscriberList`` entry."""
    sim = raw.get("sim") if isinstance(raw.get("sim"), dict) else {}
    status = latest_by_date(raw.get("status"))

    return SubscriberRecord(
        subscriber_id=_subscriber_id(raw.get("subscriberId")),
        iccid=text_or_none(dig(raw, "imsiList", 0, "iccid") or sim.get("iccid")),
        imsi=text_or_none(dig(raw, "imsiList", 0, "imsi")),
        phone_number=text_or_none(dig(raw, "phoneNumberList", 0, "phoneNumber")),
        activation_date=text_or_none(raw.get("activationDate")),
        last_usage_date=text_or_none(raw.get("lastUsageDate")),
        subscriber_status=text_or_none(status.get("status")) if status else None,
        sim_status=text_or_none(sim.get("status")),
        esim=_flag(sim.get("esim")),
        smdp_server=text_or_none(sim.get("smdpServer")),
        activation_code=text_or_none(sim.get("activationCode")),
        prepaid=_flag(raw.get("prepaid")),
        balance=finite_number(raw.get("balance")),
        account=raw.get("account"),
        reseller=raw.get("reseller"),
        last_mcc=text_or_none(raw.get("lastMcc")),
        last_mnc=text_or_none(raw.get("lastMnc")),
    )


def project_row(record: SubscriberRecord) -> AggregatedRow:
    """Reduce an enriched subscriber to the nine exported columns."""
    return AggregatedRow(
        iccid=record.iccid,
        last_usage_date=record.last_usage_date,
        prepaidpackagetemplatename=record.prepaidpackagetemplatename,
        cost=record.one_time_cost,
        pckdatabyte=record.pckdatabyte,
        useddatabyte=record.useddatabyte,
        tsactivationutc=record.tsactivationutc,
        tsexpirationutc=record.tsexpirationutc,
        reseller_cost=record.reseller_cost,
    )


def summarize_rows(rows: list[AggregatedRow]) -> ReportTotals:
    """Total cost, total reseller cost and their difference (PNL)."""
    total_cost = math.fsum(r.cost for r in rows if r.cost is not None)
    total_reseller = math.fsum(r.reseller_cost for r in rows if r.reseller_cost is not None)
    return ReportTotals(
        total_cost=total_cost,
        total_reseller_cost=total_reseller,
        pnl=total_cost - total_reseller,
    )


class AccountAggregator:
    """Builds the per-subscriber report for one OCS account.

    The subscriber listing must succeed; after that every enrichment step
    (package, template cost, usage) is isolated per subscriber, so a failure
    only leaves that step's fields empty.
    """

    def __init__(
        self,
        client: OCSClient,
        templates: TemplateCostResolver,
        packages: PackageResolver,
        usage: UsageAggregator,
        concurrency: int | None = None,
    ):
        self.client = client
        self.templates = templates
        self.packages = packages
        self.usage = usage
        self.concurrency = concurrency or settings.enrichment_concurrency

    async def list_subscribers(self, account_id: int) -> list[SubscriberRecord]:
        response = await self.client.call({"listSubscriber": {"accountId": account_id}})
        subscribers = as_list(dig(response, "listSubscriber", "subscriberList"))
        return [parse_subscriber(s) for s in subscribers if isinstance(s, dict)]

    async def _apply_package(self, record: SubscriberRecord) -> None:
        package = await self.packages.resolve_latest_package(record.subscriber_id)
        if package is not None:
            for field, value in package.model_dump().items():
                setattr(record, field, value)

    async def _apply_template_cost(self, record: SubscriberRecord) -> None:
        template = await self.templates.resolve_cost(record.prepaidpackagetemplateid)
        if template is None:
            return
        if template.cost is not None:
            record.one_time_cost = template.cost
        if template.name and not record.prepaidpackagetemplatename:
            record.prepaidpackagetemplatename = template.name

    async def _apply_usage(self, record: SubscriberRecord) -> None:
        totals = await self.usage.aggregate_usage(record.subscriber_id)
        record.total_bytes = totals.sum_bytes
        record.reseller_cost = totals.sum_reseller_cost

    async def enrich(self, record: SubscriberRecord) -> SubscriberRecord:
        """Run the package, cost and usage steps for one subscriber."""
        if record.subscriber_id is None:
            return record

        steps = (
            ("package", self._apply_package),
            ("template_cost", self._apply_template_cost),
        )
        for step, apply in steps:
            try:
                await apply(record)
            except Exception as e:
                logger.warning(
                    "subscriber_enrichment_failed",
                    subscriber_id=record.subscriber_id,
                    step=step,
                    error=str(e),
                )

        # Template cost missing or zero: fall back to the package's own charge
        if not record.one_time_cost and record.package_one_time_cost is not None:
            record.one_time_cost = record.package_one_time_cost

        try:
            await self._apply_usage(record)
        except Exception as e:
            logger.warning(
                "subscriber_enrichment_failed",
                subscriber_id=record.subscriber_id,
                step="usage",
                error=str(e),
            )
        return record

    async def aggregate_account(self, account_id: int | str | None = None) -> list[AggregatedRow]:
        """Report rows for every subscriber of the account, in listing order."""
        resolved_id = settings.require_account_id(account_id)
        records = await self.list_subscribers(resolved_id)
        logger.info("subscribers_listed", account_id=resolved_id, count=len(records))

        enriched = await bounded_map(records, self.enrich, self.concurrency)
        return [project_row(record) for record in enriched]
