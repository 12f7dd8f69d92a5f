# tests/test_gyeokguk.py
# 격국: 내격 → 화격 → 종격, 성격/파격

import pytest

from saju_config import DEFAULT_CONFIG, HapHwaStrictness
from saju_core import PillarSet
from saju_gyeokguk import (
    FormationProfile, GyeokgukCategory, GyeokgukQuality, GyeokgukType, assess_formation,
    build_element_profile, check_hwagyeok, check_jonggyeok, determine, determine_naegyeok,
    jonggang_confidence, jongyak_confidence,
)
from saju_haphwa import HapState, evaluate
from saju_strength import StrengthLevel, StrengthResult, StrengthScore, analyze

def chart(*ganzhi):
    return PillarSet.from_ganzhi(ganzhi)

def strength_of(pillars, total: float) -> StrengthResult:
    return StrengthResult(
        day_master=pillars.day_master,
        score=StrengthScore(0.0, 0.0, total, total, max(0.0, 100 - total)),
        level=StrengthLevel.VERY_STRONG if total >= 50 else StrengthLevel.VERY_WEAK,
        is_strong=total >= 50,
        details=(),
    )

# -------------------------
# 종격
# -------------------------
def test_jonggang_at_threshold():
    p = chart("甲寅", "乙卯", "甲寅", "乙卯")
    assert build_element_profile(p).count("bigyeop") == 7
    r = determine(p, strength_of(p, 62.4))
    assert r.category == GyeokgukCategory.JONGGYEOK
    assert r.type == GyeokgukType.JONGGANG
    assert r.confidence == pytest.approx(0.85)
    assert "62.4" in r.reasoning
    assert "비겁" in r.reasoning
    assert r.formation.quality == GyeokgukQuality.NOT_ASSESSED

def test_jonga():
    p = chart("甲寅", "乙卯", "壬午", "丙寅")
    profile = build_element_profile(p)
    assert (profile.count("siksang"), profile.count("jae"), profile.count("gwan")) == (5, 2, 0)
    r = determine(p, strength_of(p, 5.0))
    assert r.type == GyeokgukType.JONGA
    assert r.category == GyeokgukCategory.JONGGYEOK
    assert r.confidence == pytest.approx(0.85)
    assert "식상" in r.reasoning and "5.0" in r.reasoning

def test_jongse_on_tie():
    p = chart("甲寅", "丙卯", "壬午", "戊巳")
    profile = build_element_profile(p)
    assert (profile.count("siksang"), profile.count("jae"), profile.count("gwan")) == (3, 3, 1)
    r = determine(p, strength_of(p, 5.0))
    assert r.type == GyeokgukType.JONGSE

def test_self_support_blocks_jongyak():
    p = chart("甲寅", "乙卯", "壬午", "壬寅")
    assert check_jonggyeok(p, strength_of(p, 5.0)) is None
    assert determine(p, strength_of(p, 5.0)).category == GyeokgukCategory.NAEGYEOK

def test_wealth_blocks_jonggang():
    p = chart("甲寅", "乙卯", "甲寅", "戊辰")
    assert check_jonggyeok(p, strength_of(p, 70.0)) is None

@pytest.mark.parametrize("total", [15.1, 30.0, 62.3])
def test_dead_zone_never_jonggyeok(total):
    p = chart("甲寅", "乙卯", "甲寅", "乙卯")
    assert check_jonggyeok(p, strength_of(p, total)) is None

def test_confidence_monotonic_and_saturating():
    strong = [jonggang_confidence(62.4 + d, 62.4) for d in (0, 5, 10, 18.6, 30)]
    assert strong == sorted(strong)
    assert strong[-1] == strong[-2] == pytest.approx(0.95)

    weak = [jongyak_confidence(15.0 - d, 15.0) for d in (0, 5, 10, 15)]
    assert weak == sorted(weak)
    assert weak[-1] == pytest.approx(0.90)

# -------------------------
# 화격
# -------------------------
def test_single_transformation_becomes_hwagyeok():
    p = chart("甲子", "己辰", "丙寅", "丁卯")
    evaluations = evaluate(p)
    r = determine(p, None, evaluations)
    assert r.category == GyeokgukCategory.HWAGYEOK
    assert r.type == GyeokgukType.HAPWHA_EARTH
    assert r.confidence == evaluations[0].confidence
    # 강약 결과가 있어도 화격이 우선
    assert determine(p, strength_of(p, 70.0), evaluations).type == GyeokgukType.HAPWHA_EARTH

def test_two_transformations_do_not_make_hwagyeok():
    p = chart("甲子", "己辰", "甲寅", "丙卯")
    evaluations = evaluate(p, HapHwaStrictness.LENIENT, protect_day_master=False)
    assert [e.state for e in evaluations] == [HapState.HAPWHA, HapState.HAPWHA]
    assert check_hwagyeok(evaluations) is None
    assert determine(p, None, evaluations).category == GyeokgukCategory.NAEGYEOK

# -------------------------
# 내격
# -------------------------
def test_naegyeok_falls_back_to_principal_stem():
    r = determine_naegyeok(chart("丙寅", "戊子", "甲午", "庚午"))
    assert r.type == GyeokgukType.JEONGIN
    assert r.base_ten_god == "JEONG_IN"
    assert r.confidence == 1.0

def test_naegyeok_exposed_junggi():
    r = determine_naegyeok(chart("丙子", "壬寅", "庚午", "己卯"))
    assert r.type == GyeokgukType.PYEONGWAN
    assert r.confidence == pytest.approx(0.90)

def test_bound_stem_cannot_expose():
    p = chart("丙子", "辛寅", "庚午", "戊卯")
    evaluations = evaluate(p)
    assert evaluations[0].state == HapState.HAPGEO
    assert determine_naegyeok(p).type == GyeokgukType.PYEONGWAN
    # 丙이 묶여 빠지고 시간 戊(여기)가 투출
    bound = determine_naegyeok(p, evaluations)
    assert bound.type == GyeokgukType.PYEONIN
    assert bound.confidence == pytest.approx(0.90)

def test_transformed_stem_exposes_under_new_identity():
    p = chart("甲子", "己辰", "丙寅", "丁卯")
    plain = determine_naegyeok(p)
    assert "본기" in plain.reasoning
    retargeted = determine_naegyeok(p, evaluate(p))
    assert retargeted.type == GyeokgukType.SIKSIN
    assert retargeted.confidence == 1.0
    assert "합화" in retargeted.reasoning

def test_null_strength_skips_jonggyeok():
    p = chart("甲寅", "乙卯", "甲寅", "乙卯")
    r = determine(p, None)
    assert r.category == GyeokgukCategory.NAEGYEOK
    assert r.formation is None

# -------------------------
# 성격/파격
# -------------------------
@pytest.mark.parametrize("ganzhi, quality, reason_head", [
    (("丁卯", "辛酉", "甲子", "戊辰"), GyeokgukQuality.BROKEN, "정관격 파격(破格): 상관견관(傷官見官)"),
    (("丁卯", "辛酉", "甲子", "癸酉"), GyeokgukQuality.RESCUED, "정관격 파격 구응(救應)"),
    (("戊辰", "辛酉", "甲子", "癸酉"), GyeokgukQuality.WELL_FORMED, "정관격 성격(成格)"),
])
def test_jeonggwan_formation(ganzhi, quality, reason_head):
    p = chart(*ganzhi)
    evaluations = evaluate(p)
    r = determine(p, analyze(p, DEFAULT_CONFIG, evaluations=evaluations), evaluations)
    assert r.type == GyeokgukType.JEONGGWAN
    assert r.formation.quality == quality
    assert r.formation.reasoning.startswith(reason_head)

def test_siksin_broken_by_pyeonin():
    p = chart("丙子", "壬巳", "甲午", "庚午")
    r = determine(p, analyze(p))
    assert r.type == GyeokgukType.SIKSIN
    assert r.formation.quality == GyeokgukQuality.BROKEN
    assert r.formation.breaking_factors[0].startswith("효신탈식")

def test_unchecked_seven_killings():
    profile = FormationProfile(frozenset({"PYEON_GWAN"}), frozenset(), {"gwan": 1}, False)
    f = assess_formation(GyeokgukType.PYEONGWAN, profile)
    assert f.quality == GyeokgukQuality.BROKEN
    assert f.breaking_factors[0].startswith("칠살무제")
    assert len(f.breaking_factors) == 2
    assert f.rescue_factors == ()

def test_rescue_of_seven_killings():
    profile = FormationProfile(
        frozenset({"SIK_SIN", "PYEON_IN", "PYEON_JAE", "PYEON_GWAN"}), frozenset(),
        {"siksang": 1, "inseong": 1, "jae": 1, "gwan": 1}, True,
    )
    f = assess_formation(GyeokgukType.PYEONGWAN, profile)
    assert f.quality == GyeokgukQuality.WELL_FORMED

def test_formation_not_assessed_for_non_naegyeok():
    profile = FormationProfile(frozenset(), frozenset(), {}, True)
    assert assess_formation(GyeokgukType.JONGGANG, profile).quality == GyeokgukQuality.NOT_ASSESSED

def test_profile_counts_are_read_only():
    source = {"gwan": 1}
    profile = FormationProfile(frozenset(), frozenset(), source, False)
    source["gwan"] = 5
    assert profile.n("gwan") == 1
    with pytest.raises(TypeError):
        profile.counts["gwan"] = 2

    element_profile = build_element_profile(chart("甲寅", "乙卯", "甲寅", "乙卯"))
    with pytest.raises(TypeError):
        element_profile.counts["bigyeop"] = 0
    assert element_profile.count("bigyeop") == 7
