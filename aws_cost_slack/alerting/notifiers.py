"""
Webhook delivery for the cost report.
"""

import json
import logging
from typing import Any, Dict, List

import requests

from ..errors import SendError
from ..monitor.aws_monitor import CostEntry
from ..report.formatter import DEFAULT_TITLE, build_payload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15


def send_slack(webhook_url: str, payload: Dict[str, Any], timeout: float = DEFAULT_TIMEOUT) -> str:
    """POST a JSON payload to the webhook and return the response body."""
    try:
        response = requests.post(webhook_url, json=payload, timeout=timeout)
        body = response.text
    except requests.RequestException as e:
        logger.error(f"Error sending Slack notification: {e}")
        raise SendError(f"failed to send request: {e}") from e

    logger.info(
        "slack: %s",
        json.dumps({"req body": payload, "res body": body, "status": response.status_code}),
    )

    if response.status_code != 200:
        logger.error(f"Failed to send Slack notification: {response.status_code}")
        raise SendError(f"invalid status {response.status_code} {response.reason}", status=response.status_code)

    logger.info("Slack notification sent successfully")
    return body


def send_cost_report(
    webhook_url: str,
    channel: str,
    entries: List[CostEntry],
    title: str = DEFAULT_TITLE,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """Format the cost entries and deliver them to the webhook."""
    payload = build_payload(channel, entries, title=title)
    send_slack(webhook_url, payload, timeout=timeout)
