"""
AWS month-to-date cost collection via Cost Explorer.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import FetchError, ParseError

logger = logging.getLogger(__name__)

METRIC = "UnblendedCost"
GRANULARITY = "MONTHLY"
TOTAL_LABEL = "Total"
TOTAL_UNIT = "*"
DATE_FORMAT = "%Y-%m-%d"

# Substring removal, not word-aware: "AWSLambda" becomes "Lambda".
_PROVIDER_NAMES = re.compile("AWS|Amazon")
# No surrounding whitespace, digit separators, or inf/nan.
_AMOUNT = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\Z")


@dataclass(frozen=True)
class CostEntry:
    label: str
    amount: float
    unit: str


def clean_label(label: str) -> str:
    """Strip provider names from a service label and trim whitespace."""
    return _PROVIDER_NAMES.sub("", label or "").strip()


def parse_amount(amount: str, service: str = "") -> float:
    if not _AMOUNT.match(str(amount)):
        raise ParseError(f"failed to parse amount {amount!r} for service {service!r}")
    return float(amount)


def month_window(now: Optional[datetime] = None) -> Tuple[str, str]:
    """Return (start, end) of the current UTC calendar month, end exclusive."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)

    start = date(now.year, now.month, 1)
    if now.month == 12:
        end = date(now.year + 1, 1, 1)
    else:
        end = date(now.year, now.month + 1, 1)
    return start.strftime(DATE_FORMAT), end.strftime(DATE_FORMAT)


def build_request(start: str, end: str) -> Dict[str, Any]:
    """Build the get_cost_and_usage arguments for one window."""
    return {
        "TimePeriod": {"Start": start, "End": end},
        "Granularity": GRANULARITY,
        "Metrics": [METRIC],
        "GroupBy": [{"Type": "DIMENSION", "Key": "SERVICE"}],
    }


def _group_fields(group: Dict[str, Any]) -> Tuple[str, str, str]:
    keys = group.get("Keys") or []
    service = keys[0] if keys else ""

    metric = (group.get("Metrics") or {}).get(METRIC) or {}
    amount = metric.get("Amount") or ""
    unit = metric.get("Unit") or ""
    return service, amount, unit


def parse_groups(results_by_time: List[Dict[str, Any]]) -> List[CostEntry]:
    """Turn ResultsByTime into a ranked list headed by the Total row."""
    costs: List[CostEntry] = []
    for result in results_by_time:
        for group in result.get("Groups", []):
            service, amount, unit = _group_fields(group)
            value = parse_amount(amount, service)
            costs.append(CostEntry(label=clean_label(service), amount=value, unit=unit.strip()))

    costs.sort(key=lambda c: c.amount, reverse=True)

    total = sum(c.amount for c in costs)
    return [CostEntry(label=TOTAL_LABEL, amount=total, unit=TOTAL_UNIT)] + costs


def query_cost_and_usage(client, request: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Call Cost Explorer, following NextPageToken, and return all ResultsByTime."""
    results: List[Dict[str, Any]] = []
    token: Optional[str] = None

    while True:
        kwargs = dict(request)
        if token:
            kwargs["NextPageToken"] = token

        try:
            response = client.get_cost_and_usage(**kwargs)
        except (BotoCoreError, ClientError) as e:
            raise FetchError(f"failed to get cost and usage {json.dumps(request)}") from e

        logger.info(
            "cost and usage: %s",
            json.dumps({"in": kwargs, "out": response}, default=str),
        )
        results.extend(response.get("ResultsByTime", []))

        token = response.get("NextPageToken")
        if not token:
            break

    return results


def fetch_costs(client=None, now: Optional[datetime] = None) -> List[CostEntry]:
    """Fetch this month's unblended cost per service, Total first."""
    if client is None:
        client = boto3.client("ce")

    start, end = month_window(now)
    logger.info(f"Querying Cost Explorer for {start} to {end}")

    results = query_cost_and_usage(client, build_request(start, end))
    entries = parse_groups(results)

    logger.info(f"Retrieved costs for {len(entries) - 1} services")
    return entries
