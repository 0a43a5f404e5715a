"""
Pipeline entry points: the Lambda handler and the local one-shot run.
"""

import functools
import logging
import sys
from typing import Any, List, Optional

from .alerting.notifiers import send_cost_report
from .config import Config, load_config
from .errors import CostReportError, FetchError, SendError
from .monitor.aws_monitor import CostEntry, fetch_costs

logger = logging.getLogger(__name__)


def run(config: Config, client=None) -> List[CostEntry]:
    """Fetch this month's costs and post them to the configured webhook."""
    try:
        entries = fetch_costs(client=client)
    except FetchError as e:
        logger.error(f"Failed to get cost: {e}")
        raise type(e)(f"failed to get cost: {e}") from e

    try:
        send_cost_report(
            config.webhook_url,
            config.channel,
            entries,
            title=config.title,
            timeout=config.timeout,
        )
    except SendError as e:
        logger.error(f"Failed to send cost into slack: {e}")
        raise SendError(f"failed to send cost into slack: {e}", status=e.status) from e

    return entries


@functools.lru_cache(maxsize=1)
def _lambda_config() -> Config:
    # Decrypted once per container; KMS is not called on warm invocations.
    return load_config()


def lambda_handler(event: Any, context: Any) -> None:
    """AWS Lambda entry point, invoked by the scheduled event."""
    logging.getLogger().setLevel(logging.INFO)
    try:
        run(_lambda_config())
    except CostReportError:
        logger.exception("Cost report run failed")
        raise


def start(config_path: Optional[str] = None) -> int:
    """Run once locally and return the process exit code."""
    try:
        run(load_config(path=config_path))
    except CostReportError as e:
        logger.error(f"Fatal error: {e}")
        return 1
    return 0


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    sys.exit(start())
