from decimal import Decimal

import pytest
from conftest import FakeResponse

from app.core.tier_editor import CommissionTier, TierEditor, TierValidationError, parse_amount

D = Decimal


def _editor(*bands, applies_to="influencer") -> TierEditor:
    """Build an editor from ``(min, max, pct)`` tuples; ``None`` max means open-ended."""
    editor = TierEditor(applies_to=applies_to)
    for low, high, pct in bands:
        editor.tiers.append(
            CommissionTier(
                min_sales_value=D(low),
                max_sales_value=None if high is None else D(high),
                commission_percentage=D(pct),
                applies_to=applies_to,
            )
        )
    return editor


def _bounds(editor):
    return [(t.min_sales_value, t.max_sales_value) for t in editor.tiers]


def test_parse_amount_quantizes_to_cents():
    assert parse_amount("10") == D("10.00")
    assert parse_amount("1,5") == D("1.50")
    assert parse_amount(" ") is None
    assert parse_amount(None) is None
    with pytest.raises(TierValidationError):
        parse_amount("abc")


def test_unknown_partition_is_rejected():
    with pytest.raises(ValueError):
        TierEditor(applies_to="admin")


def test_add_to_empty_list_creates_open_tier():
    editor = _editor()
    editor.add_tier("0")
    assert _bounds(editor) == [(D("0.00"), None)]
    assert editor.tiers[0].commission_percentage == D("0")


def test_add_closes_previous_last_tier_one_cent_below():
    editor = _editor(("0", None, "5"))
    editor.add_tier("1000")
    assert _bounds(editor) == [(D("0"), D("999.99")), (D("1000.00"), None)]
    editor.validate()


def test_add_after_closed_and_open_tiers_closes_only_the_last():
    editor = _editor(("0", "999.99", "5"), ("1000", None, "10"))
    editor.add_tier("2000")
    assert _bounds(editor) == [(D("0"), D("999.99")), (D("1000"), D("1999.99")), (D("2000.00"), None)]
    assert [t.commission_percentage for t in editor.tiers] == [D("5"), D("10"), D("0")]
    editor.validate()


def test_add_rejects_minimum_not_above_previous_minimum():
    editor = _editor(("0", "999.99", "5"), ("1000", None, "7"))
    with pytest.raises(TierValidationError):
        editor.add_tier("1000")
    assert _bounds(editor) == [(D("0"), D("999.99")), (D("1000"), None)]
    assert editor.new_min_value == "1000"


@pytest.mark.parametrize("raw", ["", "-5", "abc", "1e30"])
def test_add_rejects_missing_or_negative_minimum(raw):
    editor = _editor(("0", None, "5"))
    with pytest.raises(TierValidationError):
        editor.add_tier(raw)
    assert len(editor.tiers) == 1


def test_remove_last_tier_reopens_new_last():
    editor = _editor(("0", "999.99", "5"), ("1000", "4999.99", "7"), ("5000", None, "10"))
    editor.remove_tier(2)
    assert _bounds(editor) == [(D("0"), D("999.99")), (D("1000"), None)]
    editor.validate()


def test_remove_first_tier_hands_minimum_to_next():
    editor = _editor(("0", "999.99", "5"), ("1000", "4999.99", "7"), ("5000", None, "10"))
    editor.remove_tier(0)
    assert _bounds(editor) == [(D("0"), D("4999.99")), (D("5000"), None)]
    editor.validate()


def test_remove_middle_tier_extends_previous():
    editor = _editor(("0", "999.99", "5"), ("1000", "4999.99", "7"), ("5000", None, "10"))
    editor.remove_tier(1)
    assert _bounds(editor) == [(D("0"), D("4999.99")), (D("5000"), None)]
    assert editor.tiers[0].commission_percentage == D("5")
    editor.validate()


def test_cannot_remove_only_tier():
    editor = _editor(("0", None, "5"))
    with pytest.raises(TierValidationError):
        editor.remove_tier(0)


def test_editing_max_moves_next_minimum():
    editor = _editor(("0", "999.99", "5"), ("1000", None, "7"))
    editor.edit_field(0, "max_sales_value", "1499.99")
    assert _bounds(editor) == [(D("0"), D("1499.99")), (D("1500.00"), None)]
    editor.validate()


def test_derived_minimum_and_last_maximum_are_not_editable():
    editor = _editor(("0", "999.99", "5"), ("1000", None, "7"))
    with pytest.raises(TierValidationError):
        editor.edit_field(1, "min_sales_value", "900")
    with pytest.raises(TierValidationError):
        editor.edit_field(1, "max_sales_value", "2000")


@pytest.mark.parametrize(
    "bands",
    [
        [("0", "999.99", "5"), ("1000.01", None, "7")],
        [("0", "999.99", "5"), ("999.99", None, "7")],
        [("0", "999.99", "5"), ("1000", "2000", "7")],
        [("0", None, "5"), ("1000", None, "7")],
        [("0", "999.99", "105"), ("1000", None, "7")],
        [("500", "100", "5"), ("100.01", None, "7")],
    ],
    ids=["gap", "overlap", "closed-last", "open-middle", "percentage", "inverted"],
)
def test_validate_rejects_broken_lists(bands):
    with pytest.raises(TierValidationError):
        _editor(*bands).validate()


def test_from_form_derives_minimums_and_opens_last():
    editor = TierEditor.from_form(
        "manager",
        ["0", "123", "456"],
        ["999.99", "4999.99", "7000"],
        ["5", "7", "10"],
    )
    assert _bounds(editor) == [(D("0.00"), D("999.99")), (D("1000.00"), D("4999.99")), (D("5000.00"), None)]
    assert [t.applies_to for t in editor.tiers] == ["manager"] * 3
    editor.validate()


def test_from_form_records_unparseable_cells():
    editor = TierEditor.from_form("influencer", ["0", ""], ["abc", ""], ["5", "7"])
    with pytest.raises(TierValidationError, match="Faixa 1"):
        editor.validate()


def test_from_form_records_out_of_range_cells():
    editor = TierEditor.from_form("influencer", ["0", ""], ["1e30", ""], ["5", "7"])
    assert (0, "max_sales_value") in editor.field_errors
    with pytest.raises(TierValidationError):
        editor.validate()


def test_submit_invalid_list_makes_no_request(api, backend):
    editor = _editor(("0", "999.99", "5"), ("2000", None, "7"))
    result = editor.submit(api)
    assert not result.success
    assert editor.error
    assert backend.calls == []


def test_submit_sends_bulk_replacement(api, backend):
    backend.on(
        "POST",
        "/api/commissions/tiers/bulk",
        FakeResponse(200, [
            {"_id": "t1", "minSalesValue": 0, "maxSalesValue": 999.99, "commissionPercentage": 5, "appliesTo": "influencer"},
            {"_id": "t2", "minSalesValue": 1000, "commissionPercentage": 7, "appliesTo": "influencer"},
        ]),
    )
    editor = _editor(("0", "999.99", "5"), ("1000", None, "7"))
    result = editor.submit(api)

    assert result.success
    assert editor.error is None
    body = backend.calls[0].json
    assert body == {
        "tiers": [
            {"minSalesValue": 0.0, "maxSalesValue": 999.99, "commissionPercentage": 5.0, "appliesTo": "influencer"},
            {"minSalesValue": 1000.0, "commissionPercentage": 7.0, "appliesTo": "influencer"},
        ]
    }
    assert [t.id for t in editor.tiers] == ["t1", "t2"]


def test_submit_failure_keeps_local_list(api, backend):
    backend.on("POST", "/api/commissions/tiers/bulk", FakeResponse(400, {"message": "Faixas sobrepostas"}))
    editor = _editor(("0", "999.99", "5"), ("1000", None, "7"))
    result = editor.submit(api)
    assert not result.success
    assert editor.error == "Faixas sobrepostas"
    assert len(editor.tiers) == 2


def test_load_sorts_by_minimum(api, backend):
    backend.on(
        "GET",
        "/api/commissions/tiers",
        FakeResponse(200, [
            {"_id": "b", "minSalesValue": 1000, "commissionPercentage": 7},
            {"_id": "a", "minSalesValue": 0, "maxSalesValue": 999.99, "commissionPercentage": 5},
        ]),
    )
    editor = TierEditor(applies_to="manager")
    editor.load(api)
    assert [t.id for t in editor.tiers] == ["a", "b"]
    assert backend.calls[0].params == {"appliesTo": "manager"}
    assert editor.tiers[0].applies_to == "manager"


def test_load_then_submit_without_edits_keeps_values(api, backend):
    stored = [
        {"_id": "a", "minSalesValue": 0, "maxSalesValue": 999.99, "commissionPercentage": 5, "appliesTo": "influencer"},
        {"_id": "b", "minSalesValue": 1000, "commissionPercentage": 10, "appliesTo": "influencer"},
    ]
    backend.on("GET", "/api/commissions/tiers", FakeResponse(200, stored))
    backend.on("POST", "/api/commissions/tiers/bulk", FakeResponse(200, stored))
    editor = TierEditor(applies_to="influencer")
    editor.load(api)
    before = [(t.min_sales_value, t.max_sales_value, t.commission_percentage) for t in editor.tiers]

    assert editor.submit(api).success

    after = [(t.min_sales_value, t.max_sales_value, t.commission_percentage) for t in editor.tiers]
    assert after == before
    sent = backend.calls_to("POST", "/api/commissions/tiers/bulk")[0].json["tiers"]
    assert [(t["minSalesValue"], t.get("maxSalesValue"), t["commissionPercentage"]) for t in sent] == [
        (0.0, 999.99, 5.0),
        (1000.0, None, 10.0),
    ]
