from unittest.mock import Mock

import pytest


def ce_response(groups, token=None):
    response = {
        "ResultsByTime": [
            {
                "TimePeriod": {"Start": "2026-10-01", "End": "2026-11-01"},
                "Groups": [
                    {
                        "Keys": [service],
                        "Metrics": {"UnblendedCost": {"Amount": amount, "Unit": unit}},
                    }
                    for service, amount, unit in groups
                ],
            }
        ]
    }
    if token:
        response["NextPageToken"] = token
    return response


@pytest.fixture
def ce_client() -> Mock:
    client = Mock()
    client.get_cost_and_usage.return_value = ce_response(
        [("Amazon EC2", "120.456", "USD"), ("AWS Lambda", "30.1", "USD")]
    )
    return client
