"""
AWS Cost Slack.

Posts the current month's AWS cost breakdown by service to a Slack-compatible webhook.
"""

__version__ = "1.0.0"
__author__ = "Platform Engineering"
