# tests/test_strength.py
# 득령/득지/득세 + 합 반영

import pytest

from saju_config import DEFAULT_CONFIG, CalculationConfig, HiddenStemScope, SaryeongMode
from saju_core import PillarSet
from saju_haphwa import HapState, evaluate
from saju_strength import StrengthLevel, analyze, calc_deukryeong, classify_level

def chart(*ganzhi):
    return PillarSet.from_ganzhi(ganzhi)

def test_strong_wood_chart():
    r = analyze(chart("甲寅", "壬卯", "甲寅", "壬亥"))
    assert r.day_master == "甲"
    assert r.score.deukryeong == pytest.approx(40.0)
    assert r.score.deukji == pytest.approx(14.1667, abs=1e-3)
    assert r.score.deukse == pytest.approx(17.0)
    assert r.score.total_support == pytest.approx(71.1667, abs=1e-3)
    assert r.score.total_oppose == pytest.approx(28.8333, abs=1e-3)
    assert r.level == StrengthLevel.VERY_STRONG
    assert r.is_strong
    assert r.details[0].startswith("[득령]")
    assert r.details[-1].startswith("[종합]")

def test_weak_chart():
    r = analyze(chart("庚申", "庚申", "甲申", "庚午"))
    assert r.score.deukryeong == 0.0
    assert r.score.deukji == pytest.approx(3.5)
    assert r.score.deukse == 0.0
    assert r.level == StrengthLevel.VERY_WEAK
    assert not r.is_strong

def test_total_is_sum_of_parts():
    r = analyze(chart("丙子", "辛卯", "癸巳", "戊午"))
    s = r.score
    assert s.total_support == pytest.approx(s.deukryeong + s.deukji + s.deukse)
    assert min(s.deukryeong, s.deukji, s.deukse) >= 0

@pytest.mark.parametrize("total, level", [
    (70.0, StrengthLevel.VERY_STRONG),
    (62.4, StrengthLevel.VERY_STRONG),
    (50.0, StrengthLevel.STRONG),
    (40.0, StrengthLevel.SLIGHTLY_STRONG),
    (30.0, StrengthLevel.SLIGHTLY_WEAK),
    (15.0, StrengthLevel.WEAK),
    (14.9, StrengthLevel.VERY_WEAK),
])
def test_classify_level(total, level):
    assert classify_level(total, DEFAULT_CONFIG) == level

def test_bound_stem_removed_from_deukse():
    p = chart("甲子", "己寅", "戊午", "丁未")
    evaluations = evaluate(p)
    assert [e.state for e in evaluations] == [HapState.HAPGEO]

    base = analyze(p)
    bound = analyze(p, evaluations=evaluations)
    assert base.score.deukse == pytest.approx(12.0)
    assert bound.score.deukse == pytest.approx(5.0)
    assert bound.score.total_support == pytest.approx(base.score.total_support - 7.0)
    assert any(line.startswith("[합거]") for line in bound.details)

def test_transformed_stem_is_reclassified():
    p = chart("甲子", "己辰", "丙寅", "丁卯")
    evaluations = evaluate(p)
    assert evaluations[0].state == HapState.HAPWHA

    base = analyze(p)
    transformed = analyze(p, evaluations=evaluations)
    # 甲(편인 5점)이 토(식상)로 바뀌어 빠진다
    assert base.score.deukse == pytest.approx(12.0)
    assert transformed.score.deukse == pytest.approx(7.0)
    assert any(line.startswith("[합화]") for line in transformed.details)

@pytest.mark.parametrize("ganzhi", [
    ("甲子", "丙寅", "丁卯", "己巳"),   # 불성립만 존재
    ("丙子", "丙寅", "丙午", "丙申"),   # 합 후보 없음
])
def test_empty_or_not_established_evaluations_are_no_ops(ganzhi):
    p = chart(*ganzhi)
    evaluations = evaluate(p)
    assert all(e.state == HapState.NOT_ESTABLISHED for e in evaluations)
    assert analyze(p) == analyze(p, evaluations=()) == analyze(p, evaluations=evaluations)

def test_saryeong_by_day_in_month():
    config = CalculationConfig(saryeong_mode=SaryeongMode.BY_DAY_IN_MONTH)
    p = chart("壬子", "甲寅", "甲子", "壬申")
    early, _ = calc_deukryeong(p, config, 3)    # 戊 사령 → 편재
    late, _ = calc_deukryeong(p, config, 20)    # 甲 사령 → 비견
    assert early == 0.0
    assert late == 40.0
    # 일수가 없으면 본기 기준
    assert calc_deukryeong(p, config)[0] == 40.0

def test_proportional_deukryeong():
    config = CalculationConfig(proportional_deukryeong=True)
    value, line = calc_deukryeong(chart("壬子", "甲寅", "甲子", "壬申"), config)
    assert value == pytest.approx(40 * 16 / 30)
    assert "16일" in line

def test_jeonggi_only_scope():
    config = CalculationConfig(hidden_stem_scope_for_strength=HiddenStemScope.JEONGGI_ONLY)
    r = analyze(chart("甲寅", "壬卯", "甲寅", "壬亥"), config)
    # 寅 甲16, 卯 乙20, 寅 甲16, 亥 壬16 모두 일간을 돕는다
    assert r.score.deukji == pytest.approx((16 + 20 + 16 + 16) / 30 * 5)
