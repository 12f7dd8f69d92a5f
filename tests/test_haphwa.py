# tests/test_haphwa.py
# 천간합 판정 골든 케이스

import pytest

from saju_config import HapHwaStrictness
from saju_core import PillarSet
from saju_haphwa import (
    COND_DAY_MASTER, COND_PRESENCE, HapState, StemRelationHit, StemRelationType, detect_stem_hits, evaluate,
    has_season_support, presence_bonus,
)

def chart(*ganzhi):
    return PillarSet.from_ganzhi(ganzhi)

def test_adjacent_gap_gi_in_jin_month_transforms_to_earth():
    [e] = evaluate(chart("甲子", "己辰", "丙寅", "丁卯"))
    assert e.state == HapState.HAPWHA
    assert e.result_element == "earth"
    assert e.positions == ("year", "month")
    assert e.confidence >= 0.70
    # 토 지지 辰 하나 → 0.025 가산
    assert e.confidence == pytest.approx(0.725)
    assert e.day_master_involved is False
    assert e.reasoning

def test_non_adjacent_pair_is_not_established():
    [e] = evaluate(chart("甲子", "丙寅", "丁卯", "己巳"))
    assert e.state == HapState.NOT_ESTABLISHED
    assert e.confidence == 1.0
    assert e.positions == ("year", "hour")
    assert any("인접" in c for c in e.conditions_failed)

def test_day_master_protection():
    p = chart("丙子", "己丑", "甲寅", "丙寅")
    [e] = evaluate(p)
    assert e.state == HapState.NOT_ESTABLISHED
    assert e.confidence == 1.0
    assert e.day_master_involved is True
    assert COND_DAY_MASTER in e.conditions_failed

    [unprotected] = evaluate(p, protect_day_master=False)
    assert unprotected.day_master_involved is False
    assert unprotected.state == HapState.HAPWHA

@pytest.mark.parametrize("ganzhi, strictness, state, confidence", [
    # 월령 실패, 무극 통과
    (("甲子", "己寅", "丙午", "丁未"), HapHwaStrictness.STRICT, HapState.HAPGEO, 0.50),
    # 월령 통과, 乙이 토를 극함
    (("甲子", "己辰", "丙午", "乙未"), HapHwaStrictness.STRICT, HapState.HAPGEO, 0.60),
    # 둘 다 실패
    (("甲子", "己寅", "丙午", "乙未"), HapHwaStrictness.MODERATE, HapState.HAPGEO, 0.50),
])
def test_bound_confidence(ganzhi, strictness, state, confidence):
    [e] = evaluate(chart(*ganzhi), strictness)
    assert e.state == state
    assert e.confidence == confidence

@pytest.mark.parametrize("ganzhi, strictness, ceiling", [
    (("甲子", "己寅", "丙午", "丁未"), HapHwaStrictness.MODERATE, 0.90),
    (("甲子", "己辰", "丙午", "乙未"), HapHwaStrictness.MODERATE, 0.90),
    (("甲子", "己寅", "丙午", "乙未"), HapHwaStrictness.LENIENT, 0.85),
])
def test_relaxed_tiers_promote(ganzhi, strictness, ceiling):
    [e] = evaluate(chart(*ganzhi), strictness)
    assert e.state == HapState.HAPWHA
    assert e.confidence <= ceiling

def test_presence_bonus_is_capped():
    p = chart("甲辰", "己丑", "戊戌", "戊未")
    assert presence_bonus(p, "year", "month", "earth") == pytest.approx(0.15)
    [e] = evaluate(p)
    assert e.state == HapState.HAPWHA
    assert e.confidence == pytest.approx(0.85)

@pytest.mark.parametrize("ganzhi, state, confidence", [
    # 토 천간/지지 없음, 월령 실패
    (("甲子", "己寅", "丙子", "丁子"), HapState.HAPGEO, 0.50),
    # 월지 卯만 목 → 0.025
    (("丁子", "壬卯", "戊子", "己子"), HapState.HAPWHA, 0.725),
    # 수 지지 4개 → 0.10
    (("丙子", "辛亥", "甲子", "乙子"), HapState.HAPWHA, 0.80),
    # 수 천간 2개 + 지지 4개 → 상한 0.15
    (("丙子", "辛亥", "壬亥", "癸子"), HapState.HAPWHA, 0.85),
])
def test_presence_bonus_golden(ganzhi, state, confidence):
    [e] = evaluate(chart(*ganzhi))
    assert e.state == state
    assert e.confidence == pytest.approx(confidence)

def test_missing_presence_is_listed_as_failed():
    [e] = evaluate(chart("甲子", "己寅", "丙子", "丁子"))
    assert any(c.startswith(COND_PRESENCE) for c in e.conditions_failed)
    assert not any(c.startswith(COND_PRESENCE) for c in e.conditions_met)

    [w] = evaluate(chart("丁子", "壬卯", "戊子", "己子"))
    assert f"{COND_PRESENCE} (부분)" in w.conditions_met
    assert not any(c.startswith(COND_PRESENCE) for c in w.conditions_failed)

def test_symmetry_of_stem_order():
    [a] = evaluate(chart("甲子", "己辰", "丙寅", "丁卯"))
    [b] = evaluate(chart("己子", "甲辰", "丙寅", "丁卯"))
    assert (a.state, a.confidence, a.result_element) == (b.state, b.confidence, b.result_element)

def test_repeated_stem_yields_one_evaluation_per_counterpart():
    evals = evaluate(chart("甲子", "己丑", "庚寅", "甲午"))
    assert len(evals) == 2
    assert {e.positions for e in evals} == {("year", "month"), ("month", "hour")}

def test_no_combination_members_gives_empty_list():
    assert evaluate(chart("丙子", "丙寅", "丙午", "丙申")) == []

def test_idempotent():
    p = chart("甲子", "己辰", "丙寅", "丁卯")
    assert evaluate(p) == evaluate(p)

@pytest.mark.parametrize("branch, element, expected", [
    ("辰", "earth", True), ("丑", "earth", True), ("未", "earth", True), ("戌", "earth", True),
    ("子", "earth", False), ("寅", "earth", False),
    ("申", "metal", True), ("子", "water", True), ("卯", "wood", True), ("午", "fire", True),
    ("酉", "wood", False),
])
def test_season_support(branch, element, expected):
    assert has_season_support(branch, element) is expected

def test_detect_stem_hits():
    hits = detect_stem_hits(chart("甲子", "己辰", "庚寅", "丁卯"))
    assert [(h.type, h.note) for h in hits] == [
        (StemRelationType.HAP, "甲己합"),
        (StemRelationType.CHUNG, "甲庚충"),
    ]

def test_stem_relation_hit_validation():
    with pytest.raises(ValueError):
        StemRelationHit(StemRelationType.HAP, frozenset({"甲"}))
