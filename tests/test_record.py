import math

import pytest

from bqcgen.docgen.record import (
    DEFAULT_NOTE_TO,
    LOT_WISE,
    SINGLE_ESTIMATE,
    from_payload,
    normalize,
    normalize_methodology,
    normalize_tender_type,
    to_bool,
    to_number,
    to_payload,
    to_text_list,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 0.0),
        ("", 0.0),
        ("  ", 0.0),
        ("abc", 0.0),
        ("1,250.5", 1250.5),
        (3, 3.0),
        (True, 1.0),
        (math.nan, 0.0),
        (math.inf, 0.0),
    ],
)
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_to_bool_and_text_list():
    assert to_bool("Yes") is True
    assert to_bool("false") is False
    assert to_bool(1) is True
    assert to_text_list("OEM, Dealer,") == ["OEM", "Dealer"]
    assert to_text_list(None) == []


@pytest.mark.parametrize(
    "value, expected",
    [
        (5, ["5"]),
        (True, ["True"]),
        ([" OEM ", None, 7], ["OEM", "7"]),
        (False, []),
    ],
)
def test_to_text_list_wraps_scalars(value, expected):
    assert to_text_list(value) == expected


def test_from_payload_tolerates_scalar_list_fields():
    record = from_payload({"manufacturerTypes": 5, "commercialEvaluationMethod": True, "lots": 3})
    assert record.manufacturer_types == ["5"]
    assert record.commercial_evaluation_method == ["True"]
    assert record.lots == []


@pytest.mark.parametrize(
    "value, expected",
    [
        ("LCS", SINGLE_ESTIMATE),
        ("single-estimate", SINGLE_ESTIMATE),
        ("Lot-wise", LOT_WISE),
        ("lot wise", LOT_WISE),
        ("", SINGLE_ESTIMATE),
        ("anything else", SINGLE_ESTIMATE),
    ],
)
def test_normalize_methodology(value, expected):
    assert normalize_methodology(value) == expected


def test_normalize_tender_type():
    assert normalize_tender_type("services") == "Service"
    assert normalize_tender_type("WORKS") == "Works"
    assert normalize_tender_type(None) == "Goods"


def test_from_payload_reads_camel_case_fields(lot_wise_payload):
    lot_wise_payload["id"] = "12"
    lot_wise_payload["hasEMDExplanatoryNote"] = "true"
    lot_wise_payload["emdExplanatoryNote"] = "<b>Exempt</b>"
    lot_wise_payload["unknownKey"] = "ignored"
    record = from_payload(lot_wise_payload)

    assert record.id == 12
    assert record.ref_number == "CPO-2024-003"
    assert record.is_lot_wise is True
    assert [lot.lot_number for lot in record.lots] == ["Lot 1", "Lot 2"]
    assert record.lots[1].amc_deduction == 0.5
    assert record.note("emd").is_active is True
    assert record.note("financial").is_active is False


def test_missing_lot_number_is_derived_from_position():
    record = from_payload({"evaluationMethodology": "Lot-wise", "lots": [{}, {"cecEstimateInclGst": "2"}]})
    assert [lot.lot_number for lot in record.lots] == ["Lot 1", "Lot 2"]
    assert record.lots[1].cec_estimate_incl_gst == 2.0


def test_supplying_capacity_accepts_number_or_object():
    assert from_payload({"supplyingCapacity": 25}).supplying_capacity.final == 25
    capacity = from_payload({"supplyingCapacity": {"calculated": 30, "final": 28, "mseAdjusted": 25.5}}).supplying_capacity
    assert (capacity.calculated, capacity.final, capacity.mse_adjusted) == (30, 28, 25.5)


def test_to_payload_preserves_field_values(goods_payload):
    data = to_payload(from_payload(goods_payload))
    for key, value in goods_payload.items():
        assert data[key] == value
    assert data["lots"] == []


def test_normalize_fills_empty_narrative_fields():
    record = normalize(from_payload({"refNumber": "X-1", "noteTo": "", "contractDurationYears": 0}))
    assert record.tender_description == "N/A"
    assert record.budget_details == "N/A"
    assert record.escalation_clause == ""
    assert record.note_to == DEFAULT_NOTE_TO
    assert record.contract_duration_years == 1.0


def test_normalize_clears_lots_for_single_estimate(goods_payload):
    goods_payload["lots"] = [{"cecEstimateInclGst": 5}]
    record = from_payload(goods_payload)
    normalized = normalize(record)
    assert normalized.lots == []
    assert len(record.lots) == 1


def test_signatories_follow_approval_chain(goods_payload):
    roles = [s.role for s in from_payload(goods_payload).signatories()]
    assert roles == ["Proposed by", "Recommended by", "Concurred by", "Approved by"]
