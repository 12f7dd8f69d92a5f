# saju_haphwa.py
# 천간합(天干合) 판정: 불성립 / 합거(合去) / 합화(合化)

from dataclasses import dataclass
from enum import Enum

from saju_config import HapHwaStrictness
from saju_core import (
    BRANCH_TO_WUXING_MAIN, POSITIONS, STEM_POSITION_KOR, STEM_TO_WUXING, ZHI_LIST,
    controlled_by, is_adjacent, label_gan, label_wuxing, label_zhi,
)

class HapState(str, Enum):
    NOT_ESTABLISHED = "NOT_ESTABLISHED"
    HAPGEO = "HAPGEO"
    HAPWHA = "HAPWHA"

HAP_STATE_KO = {
    HapState.NOT_ESTABLISHED: "불성립",
    HapState.HAPGEO: "합거",
    HapState.HAPWHA: "합화",
}

# -------------------------
# 상수 테이블
# -------------------------
STEM_HAP_TABLE = {
    frozenset({"甲","己"}): "earth",
    frozenset({"乙","庚"}): "metal",
    frozenset({"丙","辛"}): "water",
    frozenset({"丁","壬"}): "wood",
    frozenset({"戊","癸"}): "fire",
}
STEM_CHUNG_PAIRS = [
    frozenset({"甲","庚"}),
    frozenset({"乙","辛"}),
    frozenset({"丙","壬"}),
    frozenset({"丁","癸"}),
]

# 월령이 화신(化神) 오행을 돕는 지지
ELEMENT_SEASON_BRANCHES = {
    "earth": ("辰","戌","丑","未"),
    "metal": ("申","酉"),
    "water": ("亥","子"),
    "wood":  ("寅","卯"),
    "fire":  ("巳","午"),
}
# 12지지 × 5오행 = 60칸
SEASON_SUPPORT = {
    zhi: {el: zhi in branches for el, branches in ELEMENT_SEASON_BRANCHES.items()}
    for zhi in ZHI_LIST
}

# 등급별 (기본 신뢰도, 상한)
TRANSFORM_CONFIDENCE = {
    HapHwaStrictness.STRICT:   (0.70, 0.95),
    HapHwaStrictness.MODERATE: (0.65, 0.90),
    HapHwaStrictness.LENIENT:  (0.55, 0.85),
}
BOUND_CONFIDENCE_NO_SEASON = 0.50
BOUND_CONFIDENCE_OPPOSED = 0.60
PRESENCE_BONUS_CAP = 0.15
PRESENCE_PER_STEM = 0.05
PRESENCE_PER_BRANCH = 0.025

COND_ADJACENT = "인접 조건"
COND_SEASON = "월령 조건"
COND_NO_OPPOSITION = "무극 조건"
COND_DAY_MASTER = "일간보호 (일간은 합거/합화 불가)"
COND_PRESENCE = "세력/투출 조건"

@dataclass(frozen=True)
class HapHwaEvaluation:
    stem1: str
    stem2: str
    position1: str
    position2: str
    result_element: str
    state: HapState
    confidence: float
    conditions_met: tuple[str, ...]
    conditions_failed: tuple[str, ...]
    reasoning: str
    day_master_involved: bool = False

    @property
    def positions(self) -> tuple[str, str]:
        return (self.position1, self.position2)

    @property
    def members(self) -> frozenset:
        return frozenset({self.stem1, self.stem2})

def hap_result_element(stem1: str, stem2: str) -> str | None:
    return STEM_HAP_TABLE.get(frozenset({stem1, stem2}))

# -------------------------
# 조건 판정
# -------------------------
def has_season_support(month_branch: str, element: str) -> bool:
    return SEASON_SUPPORT[month_branch][element]

def opposing_stems(pillars, pos1: str, pos2: str, element: str) -> list[str]:
    """합의 두 당사자를 제외한 천간 중 화신 오행을 극하는 것"""
    enemy = controlled_by(element)
    return [
        pillars.stem_at(pos) for pos in POSITIONS
        if pos not in (pos1, pos2) and STEM_TO_WUXING[pillars.stem_at(pos)] == enemy
    ]

def presence_bonus(pillars, pos1: str, pos2: str, element: str) -> float:
    # 투출: 다른 천간 1개당 0.05 / 세력: 지지 본래 오행이 같으면 1개당 0.025
    exposed = sum(
        1 for pos in POSITIONS
        if pos not in (pos1, pos2) and STEM_TO_WUXING[pillars.stem_at(pos)] == element
    )
    rooted = sum(1 for zhi in pillars.branches() if BRANCH_TO_WUXING_MAIN[zhi] == element)
    return min(PRESENCE_BONUS_CAP, exposed * PRESENCE_PER_STEM + rooted * PRESENCE_PER_BRANCH)

# -------------------------
# 판정 본체
# -------------------------
def _conclusion(state: HapState, element: str) -> str:
    if state == HapState.HAPWHA:
        return f"결론: 합화(合化)가 성립하여 {label_wuxing(element)}(으)로 변화합니다."
    if state == HapState.HAPGEO:
        return "결론: 합거(合去)로 두 천간이 묶여 본래 기능을 잃습니다."
    return "결론: 합이 불성립(不成立)하여 각 천간이 본래 기능을 유지합니다."

def _evaluate_pair(pillars, pos1: str, pos2: str, element: str,
                   strictness: HapHwaStrictness, protect_day_master: bool) -> HapHwaEvaluation:
    stem1, stem2 = pillars.stem_at(pos1), pillars.stem_at(pos2)
    head = (
        f"{STEM_POSITION_KOR[pos1]} {label_gan(stem1)}과 {STEM_POSITION_KOR[pos2]} {label_gan(stem2)}의 "
        f"합({label_wuxing(element)})."
    )

    def build(state, confidence, met, failed, notes, dm=False):
        return HapHwaEvaluation(
            stem1=stem1, stem2=stem2, position1=pos1, position2=pos2,
            result_element=element, state=state, confidence=round(confidence, 4),
            conditions_met=tuple(met), conditions_failed=tuple(failed),
            reasoning=" ".join([head, *notes, _conclusion(state, element)]),
            day_master_involved=dm,
        )

    # 1) 일간 보호
    if protect_day_master and "day" in (pos1, pos2):
        return build(
            HapState.NOT_ESTABLISHED, 1.0, [], [COND_DAY_MASTER],
            ["일간은 합으로 묶이거나 변하지 않는다. [근거: 삼명통회 -- 일간보호 원칙, dayMasterNeverHapGeo=true]"],
            dm=True,
        )

    # 2) 인접
    if not is_adjacent(pos1, pos2):
        return build(
            HapState.NOT_ESTABLISHED, 1.0, [], [f"{COND_ADJACENT} (두 천간이 떨어져 있음)"],
            ["두 천간이 이웃한 주(柱)에 있지 않아 합이 맺어지지 않는다."],
        )

    met = [COND_ADJACENT]
    failed = []
    notes = ["두 천간이 이웃하여 합이 맺어진다."]

    # 3) 월령
    month_branch = pillars.branch_at("month")
    season_ok = has_season_support(month_branch, element)
    if season_ok:
        met.append(COND_SEASON)
        notes.append(f"월지 {label_zhi(month_branch)}이(가) {label_wuxing(element)}을(를) 돕는다.")
    else:
        failed.append(f"{COND_SEASON} (월지가 화신 오행을 돕지 않음)")
        notes.append(f"월지 {label_zhi(month_branch)}은(는) {label_wuxing(element)}의 계절이 아니다.")

    # 4) 무극
    enemies = opposing_stems(pillars, pos1, pos2, element)
    no_opposition = not enemies
    if no_opposition:
        met.append(COND_NO_OPPOSITION)
    else:
        failed.append(f"{COND_NO_OPPOSITION} (결과 오행을 극하는 천간 존재)")
        notes.append(
            f"{', '.join(label_gan(s) for s in enemies)}이(가) {label_wuxing(element)}을(를) 극한다."
        )

    # 5) 세력/투출
    bonus = presence_bonus(pillars, pos1, pos2, element)
    if bonus > 0:
        met.append(COND_PRESENCE if bonus >= PRESENCE_BONUS_CAP else f"{COND_PRESENCE} (부분)")
    else:
        failed.append(f"{COND_PRESENCE} (화신 오행이 천간/지지에 없음)")

    # 6) 등급별 결합
    if strictness == HapHwaStrictness.STRICT:
        transformed = season_ok and no_opposition
    elif strictness == HapHwaStrictness.MODERATE:
        transformed = season_ok or no_opposition
    else:
        transformed = True

    if transformed:
        base, ceiling = TRANSFORM_CONFIDENCE[strictness]
        return build(HapState.HAPWHA, min(base + bonus, ceiling), met, failed, notes)

    confidence = BOUND_CONFIDENCE_OPPOSED if season_ok else BOUND_CONFIDENCE_NO_SEASON
    return build(HapState.HAPGEO, confidence, met, failed, notes)

def evaluate(pillars, strictness: HapHwaStrictness = HapHwaStrictness.STRICT,
             protect_day_master: bool = True) -> list[HapHwaEvaluation]:
    """
    원국의 네 천간에서 합 후보 쌍을 모두 찾아 판정한다.
    같은 천간이 두 번 나오면 상대 천간마다 따로 평가한다.
    """
    out = []
    for i, pos1 in enumerate(POSITIONS):
        for pos2 in POSITIONS[i + 1:]:
            s1, s2 = pillars.stem_at(pos1), pillars.stem_at(pos2)
            if s1 == s2:
                continue
            element = hap_result_element(s1, s2)
            if element is None:
                continue
            out.append(_evaluate_pair(pillars, pos1, pos2, element, strictness, protect_day_master))
    return out

def evaluate_with_config(pillars, config) -> list[HapHwaEvaluation]:
    return evaluate(pillars, config.hap_hwa_strictness, config.day_master_never_hap_geo)

# -------------------------
# 천간 관계 후보(합/충)
# -------------------------
class StemRelationType(str, Enum):
    HAP = "HAP"
    CHUNG = "CHUNG"

STEM_RELATION_KO = {StemRelationType.HAP: "천간합", StemRelationType.CHUNG: "천간충"}

@dataclass(frozen=True)
class StemRelationHit:
    type: StemRelationType
    members: frozenset
    note: str = ""

    def __post_init__(self):
        if len(self.members) != 2 or any(s not in STEM_TO_WUXING for s in self.members):
            raise ValueError(f"천간 관계는 서로 다른 천간 2개여야 합니다: {sorted(self.members)}")

def detect_stem_hits(pillars) -> list[StemRelationHit]:
    present = set(pillars.stems())
    hits = []
    for pair in STEM_HAP_TABLE:
        if pair <= present:
            a, b = sorted(pair, key=lambda s: POSITIONS.index(_first_position(pillars, s)))
            hits.append(StemRelationHit(StemRelationType.HAP, pair, f"{a}{b}합"))
    for pair in STEM_CHUNG_PAIRS:
        if pair <= present:
            a, b = sorted(pair, key=lambda s: POSITIONS.index(_first_position(pillars, s)))
            hits.append(StemRelationHit(StemRelationType.CHUNG, pair, f"{a}{b}충"))
    return hits

def _first_position(pillars, stem: str) -> str:
    return next(pos for pos in POSITIONS if pillars.stem_at(pos) == stem)
