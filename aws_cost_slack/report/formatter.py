"""
Plain-text rendering of the cost report and the webhook payload around it.
"""

from typing import Any, Dict, Iterable, List

from ..monitor.aws_monitor import CostEntry, clean_label

DEFAULT_TITLE = "AWS Cost and Usage"
LINE_FORMAT = "%-40s : %10.3f %s"


def format_line(entry: CostEntry) -> str:
    """Render one entry as a fixed-width line."""
    unit = (entry.unit or "").strip()
    return LINE_FORMAT % (clean_label(entry.label), entry.amount, unit)


def render_lines(entries: Iterable[CostEntry]) -> List[str]:
    return [format_line(entry) for entry in entries]


def render_block(entries: Iterable[CostEntry]) -> str:
    """Render all entries inside a fenced code block for monospace display."""
    return "```\n%s\n```" % "\n".join(render_lines(entries))


def build_payload(channel: str, entries: Iterable[CostEntry], title: str = DEFAULT_TITLE) -> Dict[str, Any]:
    """Build the webhook message body."""
    return {
        "text": title,
        "channelName": channel,
        "attachments": [
            {
                "text": render_block(entries),
            }
        ],
    }
