# saju_yongshin.py
# 용신(用神) 결정: 억부/조후/통관/격국/전왕/병약/합화 추천 → 최종 용신·희신·기신·구신

from dataclasses import dataclass
from enum import Enum

from saju_config import DEFAULT_CONFIG, CalculationConfig, JonggyeokYongshinMode, YongshinPriority
from saju_core import (
    CATEGORY_KOR, category_element, controlled_by, controls, generated_by, generates,
    label_gan, label_wuxing, label_zhi, principal_stem, stem_element,
)
from saju_gyeokguk import (
    GYEOKGUK_NAME_KO, HAPWHA_TYPE_BY_ELEMENT, GyeokgukCategory, GyeokgukType, effective_visible_stems,
)
from saju_haphwa import HapState

class YongshinType(str, Enum):
    EOKBU = "EOKBU"
    JOHU = "JOHU"
    TONGGWAN = "TONGGWAN"
    GYEOKGUK = "GYEOKGUK"
    JEONWANG = "JEONWANG"
    BYEONGYAK = "BYEONGYAK"
    HAPWHA = "HAPWHA"

YONGSHIN_TYPE_KO = {
    YongshinType.EOKBU: "억부용신",
    YongshinType.JOHU: "조후용신",
    YongshinType.TONGGWAN: "통관용신",
    YongshinType.GYEOKGUK: "격국용신",
    YongshinType.JEONWANG: "전왕용신",
    YongshinType.BYEONGYAK: "병약용신",
    YongshinType.HAPWHA: "합화용신",
}

class YongshinAgreement(str, Enum):
    FULL_AGREE = "FULL_AGREE"
    PARTIAL_AGREE = "PARTIAL_AGREE"
    DISAGREE = "DISAGREE"

AGREEMENT_CONFIDENCE = {
    YongshinAgreement.FULL_AGREE: 0.95,
    YongshinAgreement.PARTIAL_AGREE: 0.75,
    YongshinAgreement.DISAGREE: 0.55,
}
AGREEMENT_KO = {
    YongshinAgreement.FULL_AGREE: "완전 일치",
    YongshinAgreement.PARTIAL_AGREE: "부분 일치",
    YongshinAgreement.DISAGREE: "불일치",
}

EOKBU_CONFIDENCE = 0.70
JOHU_CONFIDENCE = 0.80
GYEOKGUK_CONFIDENCE = 0.65
GYEOKGUK_TIEBREAK_CONFIDENCE = 0.70
JEONWANG_CONFIDENCE = 0.75
BYEONGYAK_CONFIDENCE = 0.55
BYEONGYAK_DISEASE_MIN = 4
BYEONGYAK_CRITICAL_MIN = 5
BYEONGYAK_OVERRIDE_CONFIDENCE = 0.75
CONFIDENCE_FLOOR = 0.75
CONFIDENCE_CEILING = 0.95
PRIMARY_MATCH_BONUS = 0.15
SECONDARY_MATCH_BONUS = 0.05

@dataclass(frozen=True)
class YongshinRecommendation:
    type: YongshinType
    primary_element: str
    secondary_element: str | None
    confidence: float
    reasoning: str

@dataclass(frozen=True)
class YongshinResult:
    final_element: str
    final_confidence: float
    secondary_elements: tuple[str, ...]
    agreement: YongshinAgreement
    recommendations: tuple[YongshinRecommendation, ...]
    gisin: str
    gusin: str
    reasoning: str

# -------------------------
# 원국 오행 집계 (천간 3 + 지지 본기 4)
# -------------------------
def count_chart_elements(pillars, evaluations=()) -> dict:
    counts = {}
    stems = list(effective_visible_stems(pillars, evaluations).values())
    stems += [principal_stem(zhi) for zhi in pillars.branches()]
    for stem in stems:
        el = stem_element(stem)
        counts[el] = counts.get(el, 0) + 1
    return counts

# -------------------------
# 억부
# -------------------------
def eokbu_yongshin(day_master_element: str, is_strong: bool) -> YongshinRecommendation:
    dm = label_wuxing(day_master_element)
    if is_strong:
        primary, secondary = generates(day_master_element), controls(day_master_element)
        reasoning = (
            f"신강(身强): 일간 {dm} 과강하여 식상({label_wuxing(primary)})으로 설기, "
            f"재성({label_wuxing(secondary)})으로 소모 필요"
        )
    else:
        primary, secondary = generated_by(day_master_element), day_master_element
        reasoning = (
            f"신약(身弱): 일간 {dm} 약하여 인성({label_wuxing(primary)})으로 생조, "
            f"비겁({label_wuxing(secondary)})으로 부조 필요"
        )
    return YongshinRecommendation(YongshinType.EOKBU, primary, secondary, EOKBU_CONFIDENCE, reasoning)

# -------------------------
# 조후
# -------------------------
WINTER_BRANCHES = ("亥","子","丑")
SUMMER_BRANCHES = ("巳","午","未")
# 일간별 우선 조후 천간 (궁통보감 요약)
JOHU_PREFERRED_STEM = {
    "甲":"庚", "乙":"癸", "丙":"壬", "丁":"甲", "戊":"甲",
    "己":"丙", "庚":"丁", "辛":"壬", "壬":"戊", "癸":"辛",
}

def johu_elements(day_master: str, month_branch: str) -> tuple[str, str | None]:
    preferred = stem_element(JOHU_PREFERRED_STEM[day_master])
    if month_branch in WINTER_BRANCHES:
        primary = "fire"
    elif month_branch in SUMMER_BRANCHES:
        primary = "water"
    else:
        return preferred, None
    return primary, (preferred if preferred != primary else None)

def johu_yongshin(day_master: str, month_branch: str) -> YongshinRecommendation:
    primary, secondary = johu_elements(day_master, month_branch)
    reasoning = (
        f"조후(調候): {label_gan(day_master)} 일간 {label_zhi(month_branch)}월생, "
        f"궁통보감 기준 {label_wuxing(primary)} 필요"
    )
    if secondary is not None:
        reasoning += f", 보조 {label_wuxing(secondary)}"
    return YongshinRecommendation(YongshinType.JOHU, primary, secondary, JOHU_CONFIDENCE, reasoning)

# -------------------------
# 통관
# -------------------------
# (역할1, 역할2, 통관 역할, 문턱, 신뢰도)
TONGGWAN_PATTERNS = [
    ("gwan", "bigyeop", "inseong", 3, 0.60),
    ("inseong", "siksang", "bigyeop", 3, 0.50),
    ("bigyeop", "jae", "siksang", 4, 0.45),
    ("siksang", "gwan", "jae", 4, 0.45),
    ("jae", "inseong", "gwan", 4, 0.45),
]

def tonggwan_yongshin(day_master_element: str, counts: dict) -> YongshinRecommendation | None:
    for left, right, mediator, threshold, confidence in TONGGWAN_PATTERNS:
        left_el = category_element(day_master_element, left)
        right_el = category_element(day_master_element, right)
        if counts.get(left_el, 0) < threshold or counts.get(right_el, 0) < threshold:
            continue
        mediator_el = category_element(day_master_element, mediator)
        return YongshinRecommendation(
            YongshinType.TONGGWAN, mediator_el, None, confidence,
            f"통관(通關): {label_wuxing(left_el)}({CATEGORY_KOR[left]})과 "
            f"{label_wuxing(right_el)}({CATEGORY_KOR[right]})의 상극이 강하여 "
            f"{label_wuxing(mediator_el)}({CATEGORY_KOR[mediator]})이(가) 통관 역할로 필요",
        )
    return None

# -------------------------
# 격국용신 (내격)
# -------------------------
GYEOKGUK_YONGSHIN_TABLE = {
    GyeokgukType.JEONGGWAN: ("jae", "inseong", "순용: 재성이 관을 생하고(재생관), 인성이 관인상생으로 보호"),
    GyeokgukType.JEONGJAE: ("gwan", "siksang", "순용: 관성이 재를 보호(재생관), 식상이 재를 생(식상생재)"),
    GyeokgukType.PYEONJAE: ("gwan", "siksang", "순용: 관성이 재를 보호, 식상이 재를 생"),
    GyeokgukType.JEONGIN: ("gwan", None, "순용: 관성이 인을 생하여 관인상생으로 보호"),
    GyeokgukType.SIKSIN: ("jae", "bigyeop", "순용: 재성이 식신의 힘을 이어받고(식신생재), 비겁이 식신을 보조"),
    GyeokgukType.GEONROK: ("gwan", "jae", "순용: 관성으로 비겁 과다를 제어, 재성으로 설기"),
    GyeokgukType.PYEONGWAN: ("siksang", "inseong", "역용: 식신이 칠살을 제어(식신제살), 인성이 화살(化殺)"),
    GyeokgukType.SANGGWAN: ("inseong", "jae", "역용: 인성이 상관을 제어(상관패인), 재성으로 상관생재도 가능"),
    GyeokgukType.PYEONIN: ("jae", None, "역용: 편재가 편인을 제어하여 도식(倒食) 방지"),
    GyeokgukType.YANGIN: ("gwan", None, "역용: 관살이 양인을 제어(양인합살)"),
}

def gyeokguk_yongshin(day_master_element: str, pattern) -> YongshinRecommendation | None:
    rule = GYEOKGUK_YONGSHIN_TABLE.get(pattern.type)
    if rule is None:
        return None
    primary_cat, secondary_cat, reasoning = rule
    secondary = category_element(day_master_element, secondary_cat) if secondary_cat else None
    return YongshinRecommendation(
        YongshinType.GYEOKGUK,
        category_element(day_master_element, primary_cat),
        secondary,
        GYEOKGUK_CONFIDENCE,
        f"격국용신(格局用神): {GYEOKGUK_NAME_KO[pattern.type]}, {reasoning}",
    )

# -------------------------
# 전왕 (종격)
# -------------------------
def _same(element: str) -> str:
    return element

# 유형 → 모드 → (용신 변환, 희신 변환, 설명)
JEONWANG_RULES = {
    GyeokgukType.JONGGANG: {
        JonggyeokYongshinMode.FOLLOW_DOMINANT: (_same, generated_by, "종강격: 비겁({p})이 극강하므로 순종하여 부조"),
        JonggyeokYongshinMode.COUNTER_DOMINANT: (controlled_by, generates, "종강격(역종): 비겁이 극강하나 관성({p})으로 억제"),
    },
    GyeokgukType.JONGA: {
        JonggyeokYongshinMode.FOLLOW_DOMINANT: (generates, controls, "종아격: 식상({p})이 지배적이므로 순종"),
        JonggyeokYongshinMode.COUNTER_DOMINANT: (generated_by, _same, "종아격(역종): 식상이 지배적이나 인성({p})으로 억제"),
    },
    GyeokgukType.JONGJAE: {
        JonggyeokYongshinMode.FOLLOW_DOMINANT: (controls, generates, "종재격: 재성({p})이 지배적이므로 순종"),
        JonggyeokYongshinMode.COUNTER_DOMINANT: (_same, generated_by, "종재격(역종): 재성이 지배적이나 비겁({p})으로 대항"),
    },
    GyeokgukType.JONGSAL: {
        JonggyeokYongshinMode.FOLLOW_DOMINANT: (controlled_by, generates, "종살격: 관성({p})이 지배적이므로 순종"),
        JonggyeokYongshinMode.COUNTER_DOMINANT: (generates, generated_by, "종살격(역종): 관성이 지배적이나 식상({p})으로 설기"),
    },
    GyeokgukType.JONGSE: {
        JonggyeokYongshinMode.FOLLOW_DOMINANT: (generates, controls, "종세격: 식상/재/관이 고루 강하므로 식상({p})으로 순종"),
        JonggyeokYongshinMode.COUNTER_DOMINANT: (generated_by, _same, "종세격(역종): 식상/재/관이 강하나 인성({p})으로 일간 부조"),
    },
}

def jeonwang_yongshin(day_master_element: str, pattern, mode: JonggyeokYongshinMode) -> YongshinRecommendation | None:
    rule = JEONWANG_RULES.get(pattern.type, {}).get(mode)
    if rule is None:
        return None
    primary_fn, secondary_fn, template = rule
    primary = primary_fn(day_master_element)
    return YongshinRecommendation(
        YongshinType.JEONWANG, primary, secondary_fn(day_master_element), JEONWANG_CONFIDENCE,
        "전왕(專旺): " + template.format(p=label_wuxing(primary)),
    )

# -------------------------
# 병약
# -------------------------
def find_disease(counts: dict) -> tuple[str | None, int]:
    disease, best = None, 0
    for el, n in counts.items():
        if n >= BYEONGYAK_DISEASE_MIN and n > best:
            disease, best = el, n
    return disease, best

def byeongyak_yongshin(day_master_element: str, is_strong: bool, counts: dict) -> YongshinRecommendation | None:
    disease, n = find_disease(counts)
    if disease is None:
        return None
    medicine = controlled_by(disease)
    if medicine == day_master_element and not is_strong:
        return None
    return YongshinRecommendation(
        YongshinType.BYEONGYAK, medicine, generates(medicine), BYEONGYAK_CONFIDENCE,
        f"병약(病藥): {label_wuxing(disease)}이(가) {n}개로 과다(병), "
        f"{label_wuxing(medicine)}이(가) 이를 제어(약). 유병방귀(有病方貴), 무약불귀(無藥不貴).",
    )

# -------------------------
# 합화용신 (화격)
# -------------------------
HAPWHA_ELEMENT_BY_TYPE = {t: el for el, t in HAPWHA_TYPE_BY_ELEMENT.items()}

def transformed_evaluation(evaluations=(), element: str | None = None):
    return next(
        (e for e in evaluations or ()
         if e.state == HapState.HAPWHA and (element is None or e.result_element == element)),
        None,
    )

def hapwha_yongshin(pattern, evaluations=()) -> YongshinRecommendation | None:
    element = HAPWHA_ELEMENT_BY_TYPE.get(pattern.type)
    if element is None:
        return None
    hap = transformed_evaluation(evaluations, element)
    # 판정 기록이 없으면 화격 신뢰도(합화 판정 신뢰도와 같음)로 대신한다
    confidence = hap.confidence if hap is not None else pattern.confidence
    pair = f"{label_gan(hap.stem1)}{label_gan(hap.stem2)} " if hap is not None else ""
    return YongshinRecommendation(
        YongshinType.HAPWHA, element, generated_by(element),
        min(max(confidence, CONFIDENCE_FLOOR), CONFIDENCE_CEILING),
        f"합화용신(合化用神): {GYEOKGUK_NAME_KO[pattern.type]}, {pair}합화 결과 "
        f"{label_wuxing(element)}. 화신을 따르고 {label_wuxing(generated_by(element))}이(가) 이를 생함.",
    )

# -------------------------
# 종합
# -------------------------
def assess_agreement(eokbu: YongshinRecommendation, johu: YongshinRecommendation) -> YongshinAgreement:
    if eokbu.primary_element == johu.primary_element:
        return YongshinAgreement.FULL_AGREE
    if eokbu.secondary_element == johu.primary_element or johu.secondary_element == eokbu.primary_element:
        return YongshinAgreement.PARTIAL_AGREE
    return YongshinAgreement.DISAGREE

def resolve_final(eokbu: YongshinRecommendation, johu: YongshinRecommendation,
                  priority: YongshinPriority) -> str:
    if eokbu.primary_element == johu.primary_element:
        return eokbu.primary_element
    if eokbu.secondary_element == johu.primary_element:
        return johu.primary_element
    if johu.secondary_element == eokbu.primary_element:
        return eokbu.primary_element
    if priority == YongshinPriority.JOHU_FIRST:
        return johu.primary_element
    if priority == YongshinPriority.EOKBU_FIRST:
        return eokbu.primary_element
    return johu.primary_element if johu.confidence >= eokbu.confidence else eokbu.primary_element

def resolve_heesin(final: str, eokbu: YongshinRecommendation, johu: YongshinRecommendation) -> str:
    for candidate in (johu.secondary_element, eokbu.secondary_element):
        if candidate is not None and candidate != final:
            return candidate
    other = eokbu.primary_element if final == johu.primary_element else johu.primary_element
    if other != final:
        return other
    return generated_by(final)

def _category_override(rec: YongshinRecommendation, eokbu, johu) -> float:
    bonus = 0.0
    if rec.primary_element in (eokbu.primary_element, johu.primary_element):
        bonus = PRIMARY_MATCH_BONUS
    elif rec.primary_element in (eokbu.secondary_element, johu.secondary_element):
        bonus = SECONDARY_MATCH_BONUS
    return min(rec.confidence + bonus, CONFIDENCE_CEILING)

def resolve_all(recs: dict, eokbu, johu, config: CalculationConfig,
                pattern=None, disease_count: int = 0) -> tuple[str, float, str]:
    """(용신, 신뢰도, 근거)"""
    if pattern is not None and pattern.category == GyeokgukCategory.HWAGYEOK and YongshinType.HAPWHA in recs:
        rec = recs[YongshinType.HAPWHA]
        return rec.primary_element, rec.confidence, "화격: 합화 오행을 용신으로 확정"
    if pattern is not None and pattern.category == GyeokgukCategory.JONGGYEOK and YongshinType.JEONWANG in recs:
        rec = recs[YongshinType.JEONWANG]
        return rec.primary_element, round(_category_override(rec, eokbu, johu), 4), "종격: 전왕 용신 우선"

    byeongyak = recs.get(YongshinType.BYEONGYAK)
    if byeongyak is not None and disease_count >= BYEONGYAK_CRITICAL_MIN:
        return byeongyak.primary_element, BYEONGYAK_OVERRIDE_CONFIDENCE, "병약: 한 오행이 극도로 편중되어 병약 용신 우선"

    disagree = eokbu.primary_element != johu.primary_element
    tonggwan = recs.get(YongshinType.TONGGWAN)
    if tonggwan is not None and disagree:
        return tonggwan.primary_element, tonggwan.confidence, "통관: 억부와 조후가 엇갈려 통관 용신 채택"

    gyeokguk = recs.get(YongshinType.GYEOKGUK)
    if gyeokguk is not None and disagree:
        for rec in (eokbu, johu):
            if gyeokguk.primary_element == rec.primary_element:
                return rec.primary_element, GYEOKGUK_TIEBREAK_CONFIDENCE, \
                    f"격국용신이 {YONGSHIN_TYPE_KO[rec.type]}과 일치하여 채택"

    agreement = assess_agreement(eokbu, johu)
    final = resolve_final(eokbu, johu, config.yongshin_priority)
    return final, AGREEMENT_CONFIDENCE[agreement], f"억부·조후 {AGREEMENT_KO[agreement]} ({config.yongshin_priority.value})"

def decide(pillars, is_strong: bool, day_master_element: str,
           config: CalculationConfig = DEFAULT_CONFIG, pattern=None, evaluations=()) -> YongshinResult:
    """
    억부·조후를 기본으로 두고, 격국 종류와 원국 편중에 따라
    화격 → 종격 → 병약 → 통관 → 격국 → 억부/조후 순으로 최종 용신을 고른다.
    """
    evaluations = tuple(evaluations or ())
    counts = count_chart_elements(pillars, evaluations)
    eokbu = eokbu_yongshin(day_master_element, is_strong)
    johu = johu_yongshin(pillars.day_master, pillars.branch_at("month"))

    recs = [eokbu, johu]
    optional = [
        tonggwan_yongshin(day_master_element, counts),
        byeongyak_yongshin(day_master_element, is_strong, counts),
    ]
    if pattern is not None:
        if pattern.category == GyeokgukCategory.NAEGYEOK:
            optional.append(gyeokguk_yongshin(day_master_element, pattern))
        elif pattern.category == GyeokgukCategory.JONGGYEOK:
            optional.append(jeonwang_yongshin(day_master_element, pattern, config.jonggyeok_yongshin_mode))
        else:
            optional.append(hapwha_yongshin(pattern, evaluations))
    recs += [r for r in optional if r is not None]
    by_type = {r.type: r for r in recs}

    _, disease_count = find_disease(counts)
    final, confidence, why = resolve_all(by_type, eokbu, johu, config, pattern, disease_count)
    heesin = resolve_heesin(final, eokbu, johu)
    gisin = controlled_by(final)
    return YongshinResult(
        final_element=final,
        final_confidence=confidence,
        secondary_elements=(heesin,),
        agreement=assess_agreement(eokbu, johu),
        recommendations=tuple(recs),
        gisin=gisin,
        gusin=generated_by(gisin),
        reasoning=f"{why} → 용신 {label_wuxing(final)}, 희신 {label_wuxing(heesin)}",
    )
