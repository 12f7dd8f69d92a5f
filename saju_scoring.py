# saju_scoring.py
# 관계 점수: 지지 관계(해소 결과 반영) + 천간 합/충

import math
from dataclasses import dataclass

from saju_core import POSITIONS
from saju_haphwa import HAP_STATE_KO, HapState, STEM_RELATION_KO, StemRelationType
from saju_relations import (
    OUTCOME_KO, InteractionOutcome, RELATION_TYPE_KO, RelationType, members_adjacent,
)

BASE_SCORES = {
    RelationType.BANGHAP: 100,
    RelationType.SAMHAP: 95,
    RelationType.CHUNG: 70,
    RelationType.YUKHAP: 60,
    RelationType.HYEONG: 55,
    RelationType.BANHAP: 40,
    RelationType.HAE: 40,
    RelationType.PA: 35,
    RelationType.WONJIN: 25,
}
# 반합 세부: 생지+왕지 > 왕지+고지 > 생지+고지
BANHAP_SUBTYPE_SCORES = [
    (("생왕", "saeng-wang"), 45),
    (("왕고", "wang-go"), 40),
    (("생고", "saeng-go"), 35),
]
OUTCOME_MULTIPLIER = {
    InteractionOutcome.ACTIVE: 1.0,
    InteractionOutcome.STRENGTHENED: 1.3,
    InteractionOutcome.WEAKENED: 0.5,
    InteractionOutcome.BROKEN: 0.0,
}
ADJACENCY_BONUS = 10

STEM_HAP_SCORES = {
    HapState.HAPWHA: 90,
    HapState.HAPGEO: 70,
    HapState.NOT_ESTABLISHED: 30,
}
STEM_HAP_DEFAULT_SCORE = 50
STEM_CHUNG_SCORE = 65

@dataclass(frozen=True)
class InteractionScore:
    base_score: int
    adjacency_bonus: int
    outcome_multiplier: float
    final_score: int
    rationale: str

def base_score_for(rel_type: RelationType, note: str = "") -> int:
    if rel_type == RelationType.BANHAP and note:
        for keys, score in BANHAP_SUBTYPE_SCORES:
            if any(k in note for k in keys):
                return score
    return BASE_SCORES[rel_type]

def final_score(base: int, bonus: int, multiplier: float) -> int:
    return max(0, min(100, math.floor((base + bonus) * multiplier)))

def _rationale(label: str, type_ko: str, base: int, bonus: int, outcome_ko: str,
               multiplier: float, final: int) -> str:
    return (
        f"{label}({type_ko}): 기본점수 {base}점 + 인접보너스 {bonus}점 "
        f"× {outcome_ko}배율({multiplier}) = 최종 {final}점"
    )

# -------------------------
# 지지 관계 점수
# -------------------------
def score_branch_relation(resolved, pillars) -> InteractionScore:
    hit = resolved.hit
    base = base_score_for(hit.type, hit.note)
    bonus = ADJACENCY_BONUS if members_adjacent(hit, pillars) else 0
    multiplier = OUTCOME_MULTIPLIER[resolved.outcome]
    final = final_score(base, bonus, multiplier)
    return InteractionScore(
        base, bonus, multiplier, final,
        _rationale(hit.label, RELATION_TYPE_KO[hit.type], base, bonus,
                   OUTCOME_KO[resolved.outcome], multiplier, final),
    )

# -------------------------
# 천간 관계 점수
# -------------------------
def _stem_members_adjacent(members, pillars) -> bool:
    idx = [i for i, pos in enumerate(POSITIONS) if pillars.stem_at(pos) in members]
    stems = pillars.stems()
    return any(b - a == 1 and stems[a] != stems[b] for a in idx for b in idx)

def find_evaluation(members, evaluations):
    return next((e for e in evaluations if e.members == frozenset(members)), None)

def score_stem_relation(hit, pillars, evaluations=()) -> InteractionScore:
    label = hit.note or "".join(sorted(hit.members))
    state_note = ""
    if hit.type == StemRelationType.HAP:
        evaluation = find_evaluation(hit.members, evaluations)
        if evaluation is None:
            base = STEM_HAP_DEFAULT_SCORE
        else:
            base = STEM_HAP_SCORES[evaluation.state]
            state_note = f"({HAP_STATE_KO[evaluation.state]})"
    else:
        base = STEM_CHUNG_SCORE
    bonus = ADJACENCY_BONUS if _stem_members_adjacent(hit.members, pillars) else 0
    multiplier = OUTCOME_MULTIPLIER[InteractionOutcome.ACTIVE]
    final = final_score(base, bonus, multiplier)
    return InteractionScore(
        base, bonus, multiplier, final,
        _rationale(f"{label}{state_note}", STEM_RELATION_KO[hit.type], base, bonus,
                   OUTCOME_KO[InteractionOutcome.ACTIVE], multiplier, final),
    )
