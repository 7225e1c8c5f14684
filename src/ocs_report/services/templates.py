"""Prepaid package template cost resolution.

Template responses carry their one-time price under several undocumented
shapes: flat keys, nested price objects, or lists of tagged charge lines.
Candidates are collected by an ordered list of extraction rules and one
selection policy picks the cost, so a new upstream shape only needs a new
rule.
"""

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from ocs_report.core.exceptions import UpstreamException
from ocs_report.core.http import OCSClient
from ocs_report.core.logging import get_logger
from ocs_report.core.utils import KeyedCache, coerce_numeric, dig, first_present, text_or_none
from ocs_report.models.package import TemplateCost

logger = get_logger(__name__)

DIRECT_COST_KEYS = ("oneTimePrice", "activationFee", "subscriberCost", "cost", "price", "amount")
PRICE_CONTAINER_KEYS = ("price", "pricing", "prices", "priceList", "charges")
CHARGE_TYPE_KEYS = ("type", "kind", "chargeType", "category")
CHARGE_VALUE_KEYS = ("price", "value", "amount", "cost")
ONE_TIME_CHARGE = re.compile(r"one[-_]?time|onetime|activation|setup|fee", re.IGNORECASE)

# Candidate weights: tagged one-time charge lines outrank named price fields,
# which outrank a bare "cost" or an untagged value
WEIGHT_PLAIN = 0
WEIGHT_NAMED = 1
WEIGHT_ONE_TIME = 2


@dataclass(frozen=True)
class CostCandidate:
    value: float
    weight: int = WEIGHT_PLAIN

    @property
    def preferred(self) -> bool:
        return self.weight > WEIGHT_PLAIN


@dataclass(frozen=True)
class ExtractionRule:
    """Where to look in a template and how to turn it into candidates."""

    name: str
    predicate: Callable[[dict[str, Any]], bool]
    extract: Callable[[dict[str, Any]], Iterator[CostCandidate]]


def _direct_rule(key: str) -> ExtractionRule:
    weight = WEIGHT_PLAIN if key == "cost" else WEIGHT_NAMED

    def extract(template: dict[str, Any]) -> Iterator[CostCandidate]:
        value = coerce_numeric(template[key])
        if value is not None:
            yield CostCandidate(value, weight)

    return ExtractionRule(
        name=f"direct:{key}",
        predicate=lambda template: key in template,
        extract=extract,
    )


def charge_weight(item: Any) -> int:
    """Weight of a charge line from its free-text type/kind/category tag."""
    tag = ""
    if isinstance(item, dict):
        tag = next((str(item[k]) for k in CHARGE_TYPE_KEYS if item.get(k)), "")
    return WEIGHT_ONE_TIME if ONE_TIME_CHARGE.search(tag) else WEIGHT_PLAIN


def _container_rule(key: str) -> ExtractionRule:
    def extract(template: dict[str, Any]) -> Iterator[CostCandidate]:
        container = template[key]
        if not isinstance(container, list):
            value = coerce_numeric(container)
            if value is not None:
                yield CostCandidate(value, WEIGHT_PLAIN)
            return

        for item in container:
            raw = first_present(item, CHARGE_VALUE_KEYS)
            value = coerce_numeric(item if raw is None else raw)
            if value is not None:
                yield CostCandidate(value, charge_weight(item))

    return ExtractionRule(
        name=f"container:{key}",
        predicate=lambda template: bool(template.get(key)),
        extract=extract,
    )


EXTRACTION_RULES: tuple[ExtractionRule, ...] = (
    *(_direct_rule(key) for key in DIRECT_COST_KEYS),
    *(_container_rule(key) for key in PRICE_CONTAINER_KEYS),
)


def extract_candidates(
    template: dict[str, Any],
    rules: tuple[ExtractionRule, ...] = EXTRACTION_RULES,
) -> list[CostCandidate]:
    """Run every applicable rule against a template, in rule order."""
    candidates: list[CostCandidate] = []
    for rule in rules:
        if rule.predicate(template):
            candidates.extend(rule.extract(template))
    return candidates


def select_cost(candidates: list[CostCandidate]) -> float | None:
    """Pick the template cost from the collected candidates.

    Smallest positive preferred candidate, else smallest positive candidate,
    else 0 if any candidate is exactly zero, else None.
    """
    preferred = [c.value for c in candidates if c.value > 0 and c.preferred]
    if preferred:
        return min(preferred)
    positive = [c.value for c in candidates if c.value > 0]
    if positive:
        return min(positive)
    if any(c.value == 0 for c in candidates):
        return 0
    return None


def _single_template(value: Any) -> dict[str, Any] | None:
    """Templates come back either as a one-element list or as the object."""
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) and value else None


def _template_ref(template_id: int | str) -> int | str:
    try:
        return int(template_id)
    except (TypeError, ValueError):
        return template_id


class TemplateCostResolver:
    """Resolves and memoizes one-time costs of prepaid package templates."""

    def __init__(self, client: OCSClient, cache: KeyedCache[TemplateCost] | None = None):
        self.client = client
        self.cache: KeyedCache[TemplateCost] = cache if cache is not None else KeyedCache()

    async def _list_by_id(self, template_id: int | str) -> dict[str, Any] | None:
        response = await self.client.call(
            {"listPrepaidPackageTemplate": {"templateId": _template_ref(template_id)}}
        )
        return _single_template(
            dig(response, "listPrepaidPackageTemplateRsp", "prepaidPackageTemplate")
        )

    async def _get_by_id(self, template_id: int | str) -> dict[str, Any] | None:
        response = await self.client.call(
            {"getPrepaidPackageTemplate": {"prepaidPackageTemplateId": _template_ref(template_id)}}
        )
        return _single_template(
            first_present(
                response, ("prepaidPackageTemplate", "prepaidPackageTemplates", "template")
            )
        )

    async def fetch_template(self, template_id: int | str) -> dict[str, Any] | None:
        """Find the raw template, trying list-by-id first and get-by-id second.

        Upstream failures are treated as "not found" for that lookup.
        """
        for lookup in (self._list_by_id, self._get_by_id):
            try:
                template = await lookup(template_id)
            except UpstreamException as e:
                logger.warning(
                    "template_lookup_failed",
                    template_id=template_id,
                    lookup=lookup.__name__.lstrip("_"),
                    error=e.message,
                )
                continue
            if template is not None:
                return template
        return None

    async def resolve_cost(self, template_id: int | str | None) -> TemplateCost | None:
        """Resolve a template's one-time cost, currency and name.

        Returns None without calling upstream when ``template_id`` is empty.
        Results, including unresolved ones, are cached per template id.
        """
        if not template_id:
            return None
        if template_id in self.cache:
            return self.cache.get(template_id)

        template = await self.fetch_template(template_id) or {}
        candidates = extract_candidates(template)
        result = TemplateCost(
            cost=select_cost(candidates),
            currency=text_or_none(first_present(template, ("currency", "curr"))),
            name=text_or_none(first_present(template, ("name", "prepaidpackagetemplatename"))),
        )

        logger.debug(
            "template_cost_resolved",
            template_id=template_id,
            found=bool(template),
            candidates=len(candidates),
            cost=result.cost,
        )
        self.cache.set(template_id, result)
        return result
