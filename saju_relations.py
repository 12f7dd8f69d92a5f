# saju_relations.py
# 지지 관계(합·충·형·파·해·원진) 상호작용 해소

from dataclasses import dataclass
from enum import Enum

from saju_core import BRANCH_TO_WUXING_MAIN, ZHI_LIST

class RelationType(str, Enum):
    SAMHAP = "SAMHAP"
    BANGHAP = "BANGHAP"
    YUKHAP = "YUKHAP"
    BANHAP = "BANHAP"
    CHUNG = "CHUNG"
    HYEONG = "HYEONG"
    PA = "PA"
    HAE = "HAE"
    WONJIN = "WONJIN"

# 숫자가 작을수록 우선
RELATION_PRIORITY = {
    RelationType.SAMHAP: 1,
    RelationType.BANGHAP: 2,
    RelationType.YUKHAP: 3,
    RelationType.BANHAP: 4,
    RelationType.CHUNG: 5,
    RelationType.HYEONG: 6,
    RelationType.PA: 7,
    RelationType.HAE: 8,
    RelationType.WONJIN: 9,
}
RELATION_TYPE_KO = {
    RelationType.SAMHAP: "삼합",
    RelationType.BANGHAP: "방합",
    RelationType.YUKHAP: "육합",
    RelationType.BANHAP: "반합",
    RelationType.CHUNG: "충",
    RelationType.HYEONG: "형",
    RelationType.PA: "파",
    RelationType.HAE: "해",
    RelationType.WONJIN: "원진",
}
HARMONY_TYPES = {RelationType.SAMHAP, RelationType.BANGHAP, RelationType.YUKHAP, RelationType.BANHAP}
FULL_HARMONY_TYPES = {RelationType.SAMHAP, RelationType.BANGHAP}

class InteractionOutcome(str, Enum):
    ACTIVE = "ACTIVE"
    WEAKENED = "WEAKENED"
    STRENGTHENED = "STRENGTHENED"
    BROKEN = "BROKEN"

OUTCOME_KO = {
    InteractionOutcome.ACTIVE: "성립",
    InteractionOutcome.WEAKENED: "약화",
    InteractionOutcome.STRENGTHENED: "강화",
    InteractionOutcome.BROKEN: "깨짐",
}
# 병합 시 더 심한 쪽이 이긴다
OUTCOME_SEVERITY = {
    InteractionOutcome.ACTIVE: 0,
    InteractionOutcome.STRENGTHENED: 1,
    InteractionOutcome.WEAKENED: 2,
    InteractionOutcome.BROKEN: 3,
}

def relation_priority(rel_type: RelationType) -> int:
    return RELATION_PRIORITY[rel_type]

@dataclass(frozen=True)
class RelationHit:
    type: RelationType
    members: frozenset
    note: str = ""

    def __post_init__(self):
        members = frozenset(self.members)
        object.__setattr__(self, "members", members)
        if not 1 <= len(members) <= 3:
            raise ValueError(f"지지 관계의 구성원은 1~3개여야 합니다: {sorted(members)}")
        unknown = [m for m in members if m not in BRANCH_TO_WUXING_MAIN]
        if unknown:
            raise ValueError(f"알 수 없는 지지입니다: {unknown}")

    @property
    def label(self) -> str:
        return self.note or f"{''.join(sorted(self.members, key=ZHI_LIST.index))}{RELATION_TYPE_KO[self.type]}"

    def sort_key(self) -> tuple:
        return (RELATION_PRIORITY[self.type], tuple(sorted(ZHI_LIST.index(m) for m in self.members)), self.note)

@dataclass(frozen=True)
class ResolvedRelation:
    hit: RelationHit
    outcome: InteractionOutcome
    interacts_with: tuple[RelationHit, ...]
    reasoning: str

@dataclass(frozen=True)
class _Interaction:
    outcome: InteractionOutcome
    reason: str

def branch_positions(pillars) -> dict[str, list[int]]:
    out: dict[str, list[int]] = {}
    for idx, zhi in enumerate(pillars.branches()):
        out.setdefault(zhi, []).append(idx)
    return out

def _branches_adjacent(a: str, b: str, position_map: dict) -> bool:
    return any(abs(i - j) == 1 for i in position_map.get(a, []) for j in position_map.get(b, []))

def _attacker_adjacent(yukhap: RelationHit, chung: RelationHit, position_map: dict) -> bool:
    shared = yukhap.members & chung.members
    attackers = chung.members - shared
    return any(_branches_adjacent(att, s, position_map) for att in attackers for s in shared)

# -------------------------
# 쌍별 규칙
# -------------------------
def _yukhap_vs_chung(target: RelationHit, other: RelationHit, position_map: dict) -> _Interaction | None:
    if target.type == RelationType.YUKHAP and other.type == RelationType.CHUNG:
        yukhap, chung = target, other
    elif target.type == RelationType.CHUNG and other.type == RelationType.YUKHAP:
        yukhap, chung = other, target
    else:
        return None
    if len(yukhap.members & chung.members) != 1:
        return None

    broken = _attacker_adjacent(yukhap, chung, position_map)
    if target is yukhap:
        if broken:
            return _Interaction(
                InteractionOutcome.BROKEN,
                f"{chung.label}의 충하는 지지가 인접하여 {yukhap.label}이(가) 깨집니다.",
            )
        return _Interaction(
            InteractionOutcome.ACTIVE,
            f"충하는 지지가 떨어져 있어 {yukhap.label}이(가) 유지되고 {chung.label}을(를) 해소합니다.",
        )
    if broken:
        return _Interaction(
            InteractionOutcome.ACTIVE,
            f"{chung.label}이(가) 인접한 자리에서 {yukhap.label}을(를) 깨뜨립니다.",
        )
    return _Interaction(
        InteractionOutcome.WEAKENED,
        f"{yukhap.label}이(가) 충을 풀어 {chung.label}이(가) 약화됩니다 (탐합망충).",
    )

def _static_rule(target: RelationHit, other: RelationHit) -> _Interaction | None:
    t, o = target.type, other.type
    same_pair = len(target.members) == 2 and target.members == other.members

    # 완전한 삼합/방합은 충에 흔들리지 않는다
    if t in FULL_HARMONY_TYPES and o == RelationType.CHUNG and len(target.members) == 3:
        return _Interaction(InteractionOutcome.ACTIVE, f"완전한 {target.label}은(는) {other.label}에도 유지됩니다.")
    if t == RelationType.CHUNG and o in FULL_HARMONY_TYPES and len(other.members) == 3:
        return _Interaction(InteractionOutcome.WEAKENED, f"완전한 {other.label}에 의해 {target.label}이(가) 약화됩니다.")

    # 반합은 충에 깨지고 충은 약화된다
    if t == RelationType.BANHAP and o == RelationType.CHUNG:
        return _Interaction(InteractionOutcome.BROKEN, f"{other.label}이(가) 반합의 구성 지지를 쳐서 {target.label}이(가) 깨집니다.")
    if t == RelationType.CHUNG and o == RelationType.BANHAP:
        return _Interaction(InteractionOutcome.WEAKENED, f"{other.label}과(와) 얽혀 {target.label}의 힘이 약화됩니다.")

    # 형은 합에 의해 약화되지 않는다
    if t == RelationType.HYEONG and o in HARMONY_TYPES:
        return _Interaction(InteractionOutcome.ACTIVE, f"{target.label}은(는) {other.label}이(가) 있어도 그대로 작용합니다.")
    if t in HARMONY_TYPES and o == RelationType.HYEONG:
        return _Interaction(InteractionOutcome.ACTIVE, f"{target.label}과(와) {other.label}이(가) 함께 작용합니다.")

    # 같은 두 지지의 충과 형은 형을 강화한다
    if same_pair and t == RelationType.HYEONG and o == RelationType.CHUNG:
        return _Interaction(InteractionOutcome.STRENGTHENED, f"같은 지지 쌍의 {other.label}이(가) {target.label}을(를) 강화합니다.")
    if same_pair and t == RelationType.CHUNG and o == RelationType.HYEONG:
        return _Interaction(InteractionOutcome.ACTIVE, f"{target.label}은(는) {other.label}과(와) 겹쳐 그대로 작용합니다.")

    # 해는 육합을 약화한다
    if t == RelationType.YUKHAP and o == RelationType.HAE:
        return _Interaction(InteractionOutcome.WEAKENED, f"{other.label}이(가) {target.label}을(를) 방해하여 약화됩니다.")
    if t == RelationType.HAE and o == RelationType.YUKHAP:
        return _Interaction(InteractionOutcome.ACTIVE, f"{target.label}이(가) {other.label}을(를) 방해합니다.")

    # 같은 두 지지의 파는 합을 약화한다
    if t in HARMONY_TYPES and o == RelationType.PA and same_pair:
        return _Interaction(InteractionOutcome.WEAKENED, f"같은 지지 쌍의 {other.label}이(가) {target.label}을(를) 약화합니다.")
    if t == RelationType.PA and o in HARMONY_TYPES and same_pair:
        return _Interaction(InteractionOutcome.ACTIVE, f"{target.label}이(가) {other.label}을(를) 깨뜨립니다.")

    return None

def _hyeong_subset(target: RelationHit, other: RelationHit) -> _Interaction | None:
    if target.type == other.type == RelationType.HYEONG \
            and len(target.members) == 2 and len(other.members) == 3 \
            and target.members < other.members:
        return _Interaction(InteractionOutcome.STRENGTHENED, f"완전한 {other.label}이(가) {target.label}을(를) 강화합니다.")
    return None

def _priority_rule(target: RelationHit, other: RelationHit) -> _Interaction | None:
    if RELATION_PRIORITY[target.type] > RELATION_PRIORITY[other.type]:
        return _Interaction(
            InteractionOutcome.WEAKENED,
            f"우선순위가 높은 {other.label}과(와) 겹쳐 {target.label}이(가) 약화됩니다.",
        )
    return None

def evaluate_interaction(target: RelationHit, other: RelationHit, position_map: dict) -> _Interaction | None:
    return (
        _yukhap_vs_chung(target, other, position_map)
        or _static_rule(target, other)
        or _hyeong_subset(target, other)
        or _priority_rule(target, other)
    )

def _merge(current: InteractionOutcome, new: InteractionOutcome) -> InteractionOutcome:
    return new if OUTCOME_SEVERITY[new] > OUTCOME_SEVERITY[current] else current

# -------------------------
# 해소 본체
# -------------------------
def resolve(hits, pillars) -> list[ResolvedRelation]:
    """각 관계를 겹치는(지지를 공유하는) 다른 관계들과 비교해 최종 상태를 정한다."""
    hits = list(hits)
    position_map = branch_positions(pillars)
    out = []
    for i, hit in enumerate(hits):
        overlapping = sorted(
            (other for j, other in enumerate(hits) if j != i and hit.members & other.members),
            key=RelationHit.sort_key,
        )
        outcome = InteractionOutcome.ACTIVE
        interacts = []
        reasons = []
        for other in overlapping:
            result = evaluate_interaction(hit, other, position_map)
            if result is None:
                continue
            interacts.append(other)
            reasons.append(result.reason)
            outcome = _merge(outcome, result.outcome)

        if not interacts:
            reasoning = f"{hit.label} 관계가 단독으로 성립합니다."
        else:
            reasoning = " ".join(reasons) or f"{hit.label} 관계가 성립합니다."
        out.append(ResolvedRelation(hit, outcome, tuple(interacts), reasoning))
    return out

def hit_positions(hit: RelationHit, pillars) -> list[int]:
    return [i for i, zhi in enumerate(pillars.branches()) if zhi in hit.members]

def members_adjacent(hit: RelationHit, pillars) -> bool:
    # 자형(自刑)처럼 구성원이 하나면 같은 지지끼리의 인접도 인정
    branches = pillars.branches()
    idx = hit_positions(hit, pillars)
    single = len(hit.members) == 1
    return any(b - a == 1 and (single or branches[a] != branches[b]) for a in idx for b in idx)
