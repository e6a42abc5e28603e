from decimal import Decimal

import pytest
from pydantic import ValidationError

from bank_sync.errors import MalformedTransactionError
from bank_sync.models import TransactionStatus
from bank_sync.normalize import parse_results, results_to_transactions

from tests.helpers.fakes import make_results, raw_tx, results_payload


def _five_with_one_undated():
    return [
        raw_tx(description="one"),
        raw_tx(description="two"),
        raw_tx(description="three", date=None),
        raw_tx(description="four"),
        raw_tx(description="five"),
    ]


def test_malformed_record_is_dropped_and_reported_once():
    calls: list[tuple[Exception, str]] = []

    out = results_to_transactions(
        make_results(_five_with_one_undated()),
        on_error=lambda e, ctx: calls.append((e, ctx)),
    )

    assert [r.description for r in out.transactions] == ["one", "two", "four", "five"]
    assert len(out.failures) == 1
    assert len(calls) == 1
    error, context = calls[0]
    assert isinstance(error, MalformedTransactionError)
    assert error.field == "date"
    assert context.startswith("Failed to process transaction for hapoalim account 12-345:\n")
    # The raw payload is embedded so the record can be fixed by hand.
    assert '"description": "three"' in context


def test_failed_results_contribute_nothing():
    payload = results_payload([raw_tx()], company_id="leumi", success=False)
    payload += results_payload([raw_tx(description="ok")], company_id="max")
    calls = []

    out = results_to_transactions(parse_results(payload), on_error=lambda *a: calls.append(a))

    assert [r.company_id for r in out.transactions] == ["max"]
    assert calls == []


def test_order_is_institution_account_transaction():
    payload = [
        {
            "companyId": "hapoalim",
            "result": {
                "success": True,
                "accounts": [
                    {"accountNumber": "A", "txns": [raw_tx(description="a1"), raw_tx(description="a2")]},
                    {"accountNumber": "B", "txns": [raw_tx(description="b1")]},
                ],
            },
        },
        *results_payload([raw_tx(description="c1")], company_id="max", account="C"),
    ]

    out = results_to_transactions(parse_results(payload))

    assert [(r.company_id, r.account, r.description) for r in out.transactions] == [
        ("hapoalim", "A", "a1"),
        ("hapoalim", "A", "a2"),
        ("hapoalim", "B", "b1"),
        ("max", "C", "c1"),
    ]


def test_row_carries_keys_and_optional_fields():
    tx = raw_tx(identifier="777", memo="m", chargedAmount=-12.3, status="pending")

    (row,) = results_to_transactions(make_results([tx])).transactions

    assert row.unique_id == "2024-03-10_hapoalim_12-345_-12.3_777"
    assert row.hash.endswith("_-12.3_Coffee Shop_m_hapoalim_12-345")
    assert row.charged_amount == Decimal("-12.3")
    assert row.original_amount == Decimal("-50")
    assert row.original_currency == "ILS"
    assert row.identifier == "777"
    assert row.status is TransactionStatus.PENDING
    assert row.is_pending
    assert row.raw["identifier"] == "777"


def test_blank_memo_becomes_none_but_status_defaults_to_completed():
    tx = raw_tx(memo="  ")
    del tx["status"]

    (row,) = results_to_transactions(make_results([tx])).transactions

    assert row.memo is None
    assert row.status is TransactionStatus.COMPLETED


def test_unknown_status_and_non_mapping_records_are_dropped():
    out = results_to_transactions(
        make_results([raw_tx(status="reversed"), "garbage", raw_tx(description="kept")])
    )

    assert [r.description for r in out.transactions] == ["kept"]
    assert [f.error.field for f in out.failures] == ["status", "transaction"]


def test_rows_are_immutable_and_with_extra_copies():
    (row,) = results_to_transactions(make_results([raw_tx()])).transactions

    with pytest.raises(AttributeError):
        row.description = "changed"  # type: ignore[misc]
    with pytest.raises(TypeError):
        row.raw["description"] = "changed"  # type: ignore[index]

    linked = row.with_extra(documentUrl="https://docs.example/1")
    assert linked.to_dict()["documentUrl"] == "https://docs.example/1"
    assert "documentUrl" not in row.to_dict()
    assert linked.unique_id == row.unique_id


def test_timezone_is_configurable():
    (row,) = results_to_transactions(make_results([raw_tx()]), tz="UTC").transactions

    assert row.unique_id.startswith("2024-03-09_")


def test_empty_input_yields_empty_result():
    out = results_to_transactions([])

    assert out.transactions == ()
    assert out.failures == ()


def test_parse_results_rejects_malformed_envelope():
    with pytest.raises(ValidationError):
        parse_results([{"result": {"success": True}}])  # companyId missing


@pytest.mark.parametrize(
    "edge_date",
    ["9999-12-31T23:59:50Z", "9999-12-31T23:00:00Z", "0001-01-01T00:00:00+02:00"],
)
def test_date_at_edge_of_range_drops_only_that_record(edge_date):
    calls = []

    out = results_to_transactions(
        make_results(
            [raw_tx(description="before"), raw_tx(description="edge", date=edge_date), raw_tx(description="after")]
        ),
        on_error=lambda e, ctx: calls.append(e),
    )

    assert [r.description for r in out.transactions] == ["before", "after"]
    assert len(out.failures) == 1
    assert out.failures[0].error.field == "date"
    assert "out of range" in str(calls[0])
