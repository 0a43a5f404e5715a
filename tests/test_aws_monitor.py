from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from aws_cost_slack.errors import FetchError, ParseError
from aws_cost_slack.monitor.aws_monitor import (
    CostEntry,
    build_request,
    fetch_costs,
    month_window,
    parse_amount,
    parse_groups,
)

from conftest import ce_response

NOW = datetime(2026, 10, 15, 3, 0, tzinfo=timezone.utc)


def test_month_window_mid_month() -> None:
    assert month_window(NOW) == ("2026-10-01", "2026-11-01")


def test_month_window_december_rolls_year() -> None:
    assert month_window(datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc)) == ("2026-12-01", "2027-01-01")


def test_month_window_converts_to_utc() -> None:
    # 2026-11-01 01:00 at +09:00 is still October in UTC
    jst = timezone(timedelta(hours=9))
    assert month_window(datetime(2026, 11, 1, 1, 0, tzinfo=jst)) == ("2026-10-01", "2026-11-01")


def test_build_request_shape() -> None:
    assert build_request("2026-10-01", "2026-11-01") == {
        "TimePeriod": {"Start": "2026-10-01", "End": "2026-11-01"},
        "Granularity": "MONTHLY",
        "Metrics": ["UnblendedCost"],
        "GroupBy": [{"Type": "DIMENSION", "Key": "SERVICE"}],
    }


def test_fetch_costs_end_to_end(ce_client: Mock) -> None:
    entries = fetch_costs(client=ce_client, now=NOW)

    assert [e.label for e in entries] == ["Total", "EC2", "Lambda"]
    assert entries[0].amount == pytest.approx(150.556)
    assert entries[0].unit == "*"
    assert entries[1] == CostEntry("EC2", 120.456, "USD")
    assert entries[2] == CostEntry("Lambda", 30.1, "USD")

    ce_client.get_cost_and_usage.assert_called_once_with(**build_request("2026-10-01", "2026-11-01"))


def test_total_first_and_rest_sorted_descending() -> None:
    groups = [("S3", "1.5", "USD"), ("EC2", "99.0", "USD"), ("KMS", "0.0", "USD"), ("RDS", "42.25", "USD")]
    entries = parse_groups(ce_response(groups)["ResultsByTime"])

    assert entries[0].label == "Total"
    assert sum(1 for e in entries if e.label == "Total") == 1
    assert entries[0].amount == pytest.approx(sum(e.amount for e in entries[1:]))
    amounts = [e.amount for e in entries[1:]]
    assert amounts == sorted(amounts, reverse=True)


def test_ties_keep_api_order() -> None:
    groups = [("B", "5", "USD"), ("A", "5", "USD"), ("C", "7", "USD")]
    entries = parse_groups(ce_response(groups)["ResultsByTime"])
    assert [e.label for e in entries] == ["Total", "C", "B", "A"]


def test_empty_response_yields_zero_total() -> None:
    assert parse_groups([]) == [CostEntry("Total", 0.0, "*")]


def test_missing_keys_and_metric_fields() -> None:
    results = [{"Groups": [{"Keys": [], "Metrics": {"UnblendedCost": {"Amount": "2"}}}]}]
    assert parse_groups(results)[1] == CostEntry("", 2.0, "")


def test_non_numeric_amount_raises_parse_error(ce_client: Mock) -> None:
    ce_client.get_cost_and_usage.return_value = ce_response(
        [("Amazon EC2", "120.456", "USD"), ("AWS Lambda", "abc", "USD")]
    )
    with pytest.raises(ParseError, match="abc"):
        fetch_costs(client=ce_client, now=NOW)


def test_missing_metric_raises_parse_error() -> None:
    results = [{"Groups": [{"Keys": ["Amazon S3"], "Metrics": {}}]}]
    with pytest.raises(ParseError):
        parse_groups(results)


def test_parse_error_is_a_fetch_error() -> None:
    assert issubclass(ParseError, FetchError)


def test_api_error_raises_fetch_error_without_retry(ce_client: Mock) -> None:
    ce_client.get_cost_and_usage.side_effect = ClientError(
        {"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}},
        "GetCostAndUsage",
    )
    with pytest.raises(FetchError) as excinfo:
        fetch_costs(client=ce_client, now=NOW)

    assert isinstance(excinfo.value.__cause__, ClientError)
    assert ce_client.get_cost_and_usage.call_count == 1


def test_pagination_is_followed(ce_client: Mock) -> None:
    ce_client.get_cost_and_usage.side_effect = [
        ce_response([("Amazon EC2", "10", "USD")], token="page-2"),
        ce_response([("Amazon S3", "20", "USD")]),
    ]
    entries = fetch_costs(client=ce_client, now=NOW)

    assert [e.label for e in entries] == ["Total", "S3", "EC2"]
    assert entries[0].amount == pytest.approx(30.0)
    second_call = ce_client.get_cost_and_usage.call_args_list[1]
    assert second_call.kwargs["NextPageToken"] == "page-2"


def test_labels_and_units_are_cleaned_at_fetch() -> None:
    group = {
        "Keys": ["  Amazon Simple Storage Service "],
        "Metrics": {"UnblendedCost": {"Amount": "1", "Unit": " USD "}},
    }
    results = [{"Groups": [group]}]
    assert parse_groups(results)[1] == CostEntry("Simple Storage Service", 1.0, "USD")


@pytest.mark.parametrize("amount", ["1_000", " 12 ", "12 ", "", "abc", "1,000", "inf", "nan", "0x10"])
def test_malformed_amounts_raise_parse_error(amount: str) -> None:
    with pytest.raises(ParseError):
        parse_groups(ce_response([("Amazon S3", amount, "USD")])["ResultsByTime"])


@pytest.mark.parametrize(
    "amount, expected",
    [("0", 0.0), ("120.456", 120.456), ("-3.5", -3.5), (".5", 0.5), ("7.", 7.0), ("1.2e-05", 1.2e-05)],
)
def test_well_formed_amounts_parse(amount: str, expected: float) -> None:
    assert parse_amount(amount) == pytest.approx(expected)
