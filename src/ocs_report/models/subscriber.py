"""Subscriber models built from the OCS ``listSubscriber`` response."""

from typing import Any

from pydantic import BaseModel


class SubscriberRecord(BaseModel):
    """One subscriber row, created per request and enriched in place.

    Identity fields come from the subscriber listing; package, cost and usage
    fields start empty and are filled by the enrichment steps.
    """

    subscriber_id: int | str | None = None

    # Identity
    iccid: str | None = None
    imsi: str | None = None
    phone_number: str | None = None
    activation_date: str | None = None
    last_usage_date: str | None = None
    subscriber_status: str | None = None

    # SIM
    sim_status: str | None = None
    esim: bool | None = None
    smdp_server: str | None = None
    activation_code: str | None = None

    # Billing linkage
    prepaid: bool | None = None
    balance: float | None = None
    account: Any = None
    reseller: Any = None
    last_mcc: str | None = None
    last_mnc: str | None = None

    # Latest prepaid package
    prepaidpackagetemplatename: str | None = None
    prepaidpackagetemplateid: int | str | None = None
    tsactivationutc: str | None = None
    tsexpirationutc: str | None = None
    pckdatabyte: int | float | None = None
    useddatabyte: int | float | None = None
    package_one_time_cost: float | None = None

    # Resolved one-time cost (template first, package as fallback)
    one_time_cost: float | None = None

    # Totals since the usage range start
    total_bytes: int | float | None = None
    reseller_cost: float | None = None
