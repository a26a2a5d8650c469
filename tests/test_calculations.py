import pytest

from bqcgen.docgen.calculations import (
    MSE_FACTOR,
    calculate_annualized_value,
    calculate_derived,
    calculate_emd,
    calculate_experience,
    calculate_lot_wise_totals,
    calculate_turnover,
    past_performance,
    past_performance_units,
    standard_performance_security,
)
from bqcgen.docgen.record import from_payload


@pytest.mark.parametrize(
    "amount, expected",
    [(0.4, 0.0), (0.6, 0.0), (1.0, 0.0), (1.2, 2.5), (5.0, 2.5), (7.0, 5.0), (12.0, 7.5), (20.0, 10.0), (30.0, 20.0)],
)
def test_goods_emd_tiers(amount, expected):
    assert calculate_emd(amount, "Goods") == expected


def test_service_and_works_pay_emd_in_first_tier():
    assert calculate_emd(0.6, "Service") == 1.0
    assert calculate_emd(1.0, "Works") == 1.0
    assert calculate_emd(0.49, "Works") == 0.0


def test_goods_emd_is_monotonic():
    amounts = [0.1, 0.5, 0.9, 1.5, 4.9, 6, 11, 16, 26, 100]
    values = [calculate_emd(amount, "Goods") for amount in amounts]
    assert values == sorted(values)


def test_emd_for_unknown_tender_type_is_zero():
    assert calculate_emd(30, "Consultancy") == 0.0


def test_emd_treats_missing_amount_as_zero():
    assert calculate_emd(None, "Goods") == 0.0
    assert calculate_emd("", "Service") == 0.0


def test_turnover_uses_cec_excl_gst_without_amc(goods_payload):
    record = from_payload(goods_payload)
    turnover = calculate_turnover(record)
    assert turnover.amount == 0.3 * 1.8
    assert turnover.percentage == pytest.approx(30)
    assert turnover.annualized is False


def test_turnover_deducts_amc_from_cec_incl_gst(goods_payload):
    goods_payload.update(hasAmc=True, amcValue=0.4)
    turnover = calculate_turnover(from_payload(goods_payload))
    assert turnover.amount == pytest.approx(0.3 * (2.0 - 0.4))


def test_turnover_ignores_amc_flag_without_value(goods_payload):
    goods_payload.update(hasAmc=True, amcValue=0)
    assert calculate_turnover(from_payload(goods_payload)).amount == 0.3 * 1.8


def test_divisible_turnover_applies_correction_factor(goods_payload):
    goods_payload.update(divisibility="Divisible", correctionFactor=0.2)
    turnover = calculate_turnover(from_payload(goods_payload))
    assert turnover.amount == pytest.approx(0.3 * 1.2 * 1.8)
    assert turnover.percentage == pytest.approx(36)
    assert "correction factor" in turnover.description


def test_turnover_is_annualized_over_contract_years(goods_payload):
    goods_payload["contractDurationYears"] = 3
    turnover = calculate_turnover(from_payload(goods_payload))
    assert turnover.amount == pytest.approx(0.3 * 1.8 / 3)
    assert turnover.annualized is True


def test_non_positive_duration_counts_as_one_year(goods_payload):
    goods_payload["contractDurationYears"] = 0
    assert calculate_turnover(from_payload(goods_payload)).amount == 0.3 * 1.8


def test_lot_wise_turnover_sums_lots_net_of_amc(lot_wise_payload):
    turnover = calculate_turnover(from_payload(lot_wise_payload))
    assert turnover.amount == pytest.approx(0.3 * (1.2 + (3.0 - 0.5)))


def test_experience_options_for_service(service_payload):
    experience = calculate_experience(from_payload(service_payload))
    assert experience.mse_relaxed is False
    assert experience.option_a.value == pytest.approx(4.0)
    assert experience.option_b.value == pytest.approx(5.0)
    assert experience.option_c.value == pytest.approx(8.0)
    assert [req.percentage for _, req in experience.options()] == pytest.approx([40, 50, 80])


def test_experience_is_annualized_for_multi_year_service(service_payload):
    service_payload["contractDurationYears"] = 2
    experience = calculate_experience(from_payload(service_payload))
    assert experience.option_a.value == pytest.approx(2.0)


def test_goods_experience_is_not_annualized(goods_payload):
    goods_payload["contractDurationYears"] = 2
    experience = calculate_experience(from_payload(goods_payload))
    assert experience.option_a.value == pytest.approx(0.8)


def test_relaxed_experience_and_unrelaxed_division(service_payload):
    service_payload["mseRelaxation"] = True
    relaxed = calculate_experience(from_payload(service_payload))
    unrelaxed = relaxed.unrelaxed()

    assert relaxed.mse_relaxed is True
    assert relaxed.option_a.value == pytest.approx(4.0 * MSE_FACTOR)
    for (_, low), (_, high) in zip(relaxed.options(), unrelaxed.options()):
        assert high.value == low.value / 0.85


def test_experience_is_never_relaxed_in_lot_wise_mode(lot_wise_payload):
    lot_wise_payload.update(tenderType="Works", mseRelaxation=True)
    assert calculate_experience(from_payload(lot_wise_payload)).mse_relaxed is False


@pytest.mark.parametrize("quantity", [0, 1, 7, 100, 333, 12345.5])
def test_past_performance_relaxation_ratio(quantity):
    assert past_performance(quantity, True) == past_performance(quantity, False) * 0.85


def test_past_performance_units_round_half_up():
    assert past_performance_units(100, False) == 30
    assert past_performance_units(5, False) == 2
    assert past_performance_units(100, True) == 26


def test_lot_wise_totals(lot_wise_payload):
    totals = calculate_lot_wise_totals(from_payload(lot_wise_payload))
    assert totals.total_cec_incl_gst == pytest.approx(4.2)
    assert totals.total_cec_excl_gst == pytest.approx(3.5)
    assert totals.total_past_performance == 30 + 15


def test_single_estimate_totals_ignore_lots(goods_payload):
    goods_payload["lots"] = [{"cecEstimateInclGst": 99, "cecEstimateExclGst": 90}]
    totals = calculate_lot_wise_totals(from_payload(goods_payload))
    assert totals.total_cec_incl_gst == 2.0
    assert totals.total_cec_excl_gst == 1.8


def test_annualized_value_only_for_long_contracts():
    assert calculate_annualized_value(12, 24) == pytest.approx(6)
    assert calculate_annualized_value(12, 12) == 12


def test_standard_performance_security():
    assert standard_performance_security("Goods") == 5
    assert standard_performance_security("Service") == 5
    assert standard_performance_security("Works") == 10


def test_derived_values_end_to_end_goods(goods_payload):
    derived = calculate_derived(from_payload(goods_payload))
    assert derived.emd == 2.5
    assert derived.turnover.amount == 0.3 * 1.8
    assert derived.past_performance_units == round(100 * 0.3)
    assert derived.lots == ()


def test_derived_values_per_lot(lot_wise_payload):
    derived = calculate_derived(from_payload(lot_wise_payload))
    assert [item.emd for item in derived.lots] == [2.5, 2.5]
    assert derived.total_lot_emd == 5.0
    assert derived.lots[1].turnover == pytest.approx(0.3 * 2.5)
    assert derived.total_lot_turnover == pytest.approx(derived.turnover.amount)
