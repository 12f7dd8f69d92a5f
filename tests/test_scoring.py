# tests/test_scoring.py

import pytest

from saju_core import PillarSet
from saju_haphwa import HapState, detect_stem_hits, evaluate
from saju_relations import RelationHit, RelationType, resolve
from saju_scoring import BASE_SCORES, base_score_for, final_score, score_branch_relation, score_stem_relation

def chart(*ganzhi):
    return PillarSet.from_ganzhi(ganzhi)

def test_base_score_order():
    s = BASE_SCORES
    assert s[RelationType.BANGHAP] >= s[RelationType.SAMHAP] > s[RelationType.CHUNG] == 70
    assert s[RelationType.CHUNG] > s[RelationType.YUKHAP] == 60
    assert s[RelationType.YUKHAP] > s[RelationType.HYEONG] == 55
    assert s[RelationType.HYEONG] > s[RelationType.HAE] >= s[RelationType.PA] > s[RelationType.WONJIN]
    assert s[RelationType.WONJIN] == min(s.values())

@pytest.mark.parametrize("note, expected", [
    ("saeng-wang", 45), ("wang-go", 40), ("saeng-go", 35), ("", 40), ("申子 생왕 반합", 45),
])
def test_banhap_subtype(note, expected):
    assert base_score_for(RelationType.BANHAP, note) == expected

@pytest.mark.parametrize("base, bonus, mult, expected", [
    (95, 10, 1.3, 100),   # 상한
    (70, 10, 0.5, 40),
    (60, 10, 0.0, 0),
    (55, 0, 1.3, 71),     # floor(71.5)
])
def test_final_score(base, bonus, mult, expected):
    assert final_score(base, bonus, mult) == expected

def test_branch_scores_follow_resolution():
    p = chart("甲丑", "丙子", "戊午", "庚卯")
    yukhap = RelationHit(RelationType.YUKHAP, frozenset("子丑"))
    chung = RelationHit(RelationType.CHUNG, frozenset("子午"))
    scores = {r.hit: score_branch_relation(r, p) for r in resolve([yukhap, chung], p)}
    assert scores[yukhap].final_score == 0
    assert scores[yukhap].adjacency_bonus == 10
    assert scores[chung].final_score == 80

def test_weakened_clash_without_adjacency():
    p = chart("甲亥", "丙卯", "戊未", "庚酉")
    samhap = RelationHit(RelationType.SAMHAP, frozenset("亥卯未"))
    chung = RelationHit(RelationType.CHUNG, frozenset("卯酉"))
    scores = {r.hit: score_branch_relation(r, p) for r in resolve([samhap, chung], p)}
    assert scores[chung].adjacency_bonus == 0
    assert scores[chung].final_score == 35
    assert scores[samhap].final_score == 100
    assert "삼합" in scores[samhap].rationale

def test_stem_hap_score_uses_evaluation_state():
    p = chart("甲子", "己辰", "丙寅", "丁卯")
    evaluations = evaluate(p)
    assert evaluations[0].state == HapState.HAPWHA
    hap = detect_stem_hits(p)[0]
    scored = score_stem_relation(hap, p, evaluations)
    assert scored.base_score == 90
    assert scored.final_score == 100
    assert "합화" in scored.rationale

    assert score_stem_relation(hap, p).base_score == 50

def test_stem_chung_score():
    p = chart("甲子", "己辰", "庚寅", "丁卯")
    chung = [h for h in detect_stem_hits(p) if h.note == "甲庚충"][0]
    scored = score_stem_relation(chung, p)
    assert scored.base_score == 65
    assert scored.adjacency_bonus == 0
    assert scored.final_score == 65
