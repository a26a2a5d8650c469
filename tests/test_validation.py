from bqcgen.docgen.record import from_payload
from bqcgen.docgen.validation import validate_record


def _fields(errors):
    return {error["field"] for error in errors}


def test_complete_goods_record_is_valid(goods_payload):
    assert validate_record(from_payload(goods_payload)) == []


def test_complete_service_record_is_valid(service_payload):
    assert validate_record(from_payload(service_payload)) == []


def test_complete_lot_wise_record_is_valid(lot_wise_payload):
    assert validate_record(from_payload(lot_wise_payload)) == []


def test_empty_record_reports_required_fields():
    fields = _fields(validate_record(from_payload({})))
    assert {"refNumber", "tenderDescription", "prReference", "budgetDetails", "scopeOfWork"} <= fields
    assert {"cecEstimateInclGst", "cecEstimateExclGst"} <= fields


def test_estimate_incl_gst_must_cover_excl_gst(goods_payload):
    goods_payload.update(cecEstimateInclGst=1.0, cecEstimateExclGst=1.5)
    errors = validate_record(from_payload(goods_payload))
    assert errors == [
        {
            "field": "cecEstimateInclGst",
            "message": "CEC Estimate (incl. GST) must be greater than or equal to CEC Estimate (excl. GST)",
        }
    ]


def test_lot_wise_requires_a_positive_lot(lot_wise_payload):
    lot_wise_payload["lots"] = []
    assert _fields(validate_record(from_payload(lot_wise_payload))) == {"lots"}


def test_lot_wise_checks_each_lot(lot_wise_payload):
    lot_wise_payload["lots"][1]["cecEstimateExclGst"] = 4.0
    errors = validate_record(from_payload(lot_wise_payload))
    assert _fields(errors) == {"lots[1].cecEstimateInclGst"}
    assert errors[0]["message"].startswith("Lot 2:")


def test_goods_specific_fields(goods_payload):
    goods_payload.update(deliveryPeriod="", warrantyPeriod=" ", manufacturerTypes=[])
    fields = _fields(validate_record(from_payload(goods_payload)))
    assert fields == {"deliveryPeriod", "warrantyPeriod", "manufacturerTypes"}


def test_service_requires_similar_work_definition(service_payload):
    service_payload["similarWorkDefinition"] = ""
    assert _fields(validate_record(from_payload(service_payload))) == {"similarWorkDefinition"}


def test_amc_requires_period_and_value(goods_payload):
    goods_payload.update(hasAmc=True, amcPeriod="", amcValue=0)
    assert _fields(validate_record(from_payload(goods_payload))) == {"amcPeriod", "amcValue"}


def test_contract_duration_must_be_positive(goods_payload):
    goods_payload["contractDurationYears"] = 0
    assert _fields(validate_record(from_payload(goods_payload))) == {"contractDurationYears"}
