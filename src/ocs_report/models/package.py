"""Prepaid package and package template models."""

from pydantic import BaseModel


class PackageInfo(BaseModel):
    """Fields taken from a subscriber's most recently activated package."""

    prepaidpackagetemplatename: str | None = None
    prepaidpackagetemplateid: int | str | None = None
    tsactivationutc: str | None = None
    tsexpirationutc: str | None = None
    pckdatabyte: int | float | None = None
    useddatabyte: int | float | None = None
    package_one_time_cost: float | None = None


class TemplateCost(BaseModel):
    """Resolved one-time cost of a prepaid package template."""

    cost: float | None = None
    currency: str | None = None
    name: str | None = None
