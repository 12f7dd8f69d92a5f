# saju_gyeokguk.py
# 격국(格局) 판정: 내격 → 화격(합화) → 종격, 내격 성격/파격 평가

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from saju_config import DEFAULT_CONFIG, CalculationConfig
from saju_core import (
    CATEGORY_KOR, HIDDEN_ROLE_KOR, JEONGGI, STEM_POSITION_KOR, TEN_GOD_CATEGORY, TEN_GOD_LABELS_KO,
    hidden_stems_for_branch, is_yang_stem, label_gan, label_wuxing, label_zhi,
    principal_stem, role_category, stem_element, stem_of, ten_god_for,
)
from saju_haphwa import HapState
from saju_strength import active_hap_by_position

class GyeokgukCategory(str, Enum):
    NAEGYEOK = "NAEGYEOK"
    JONGGYEOK = "JONGGYEOK"
    HWAGYEOK = "HWAGYEOK"

class GyeokgukType(str, Enum):
    # 내격
    GEONROK = "GEONROK"
    YANGIN = "YANGIN"
    SIKSIN = "SIKSIN"
    SANGGWAN = "SANGGWAN"
    PYEONJAE = "PYEONJAE"
    JEONGJAE = "JEONGJAE"
    PYEONGWAN = "PYEONGWAN"
    JEONGGWAN = "JEONGGWAN"
    PYEONIN = "PYEONIN"
    JEONGIN = "JEONGIN"
    # 종격
    JONGGANG = "JONGGANG"
    JONGA = "JONGA"
    JONGJAE = "JONGJAE"
    JONGSAL = "JONGSAL"
    JONGSE = "JONGSE"
    # 화격
    HAPWHA_WOOD = "HAPWHA_WOOD"
    HAPWHA_FIRE = "HAPWHA_FIRE"
    HAPWHA_EARTH = "HAPWHA_EARTH"
    HAPWHA_METAL = "HAPWHA_METAL"
    HAPWHA_WATER = "HAPWHA_WATER"

GYEOKGUK_NAME_KO = {
    GyeokgukType.GEONROK: "건록격",
    GyeokgukType.YANGIN: "양인격",
    GyeokgukType.SIKSIN: "식신격",
    GyeokgukType.SANGGWAN: "상관격",
    GyeokgukType.PYEONJAE: "편재격",
    GyeokgukType.JEONGJAE: "정재격",
    GyeokgukType.PYEONGWAN: "편관격(칠살격)",
    GyeokgukType.JEONGGWAN: "정관격",
    GyeokgukType.PYEONIN: "편인격",
    GyeokgukType.JEONGIN: "정인격",
    GyeokgukType.JONGGANG: "종강격",
    GyeokgukType.JONGA: "종아격",
    GyeokgukType.JONGJAE: "종재격",
    GyeokgukType.JONGSAL: "종살격",
    GyeokgukType.JONGSE: "종세격",
    GyeokgukType.HAPWHA_WOOD: "정임화목격",
    GyeokgukType.HAPWHA_FIRE: "무계화화격",
    GyeokgukType.HAPWHA_EARTH: "갑기화토격",
    GyeokgukType.HAPWHA_METAL: "을경화금격",
    GyeokgukType.HAPWHA_WATER: "병신화수격",
}

TEN_GOD_TO_GYEOKGUK = {
    "BI_GYEON": GyeokgukType.GEONROK,
    "GYEOB_JAE": GyeokgukType.YANGIN,
    "SIK_SIN": GyeokgukType.SIKSIN,
    "SANG_GWAN": GyeokgukType.SANGGWAN,
    "PYEON_JAE": GyeokgukType.PYEONJAE,
    "JEONG_JAE": GyeokgukType.JEONGJAE,
    "PYEON_GWAN": GyeokgukType.PYEONGWAN,
    "JEONG_GWAN": GyeokgukType.JEONGGWAN,
    "PYEON_IN": GyeokgukType.PYEONIN,
    "JEONG_IN": GyeokgukType.JEONGIN,
}
HAPWHA_TYPE_BY_ELEMENT = {
    "wood": GyeokgukType.HAPWHA_WOOD,
    "fire": GyeokgukType.HAPWHA_FIRE,
    "earth": GyeokgukType.HAPWHA_EARTH,
    "metal": GyeokgukType.HAPWHA_METAL,
    "water": GyeokgukType.HAPWHA_WATER,
}
# 종약격: 지배 역할 → 유형
JONG_WEAK_TYPE_BY_CATEGORY = {
    "siksang": GyeokgukType.JONGA,
    "jae": GyeokgukType.JONGJAE,
    "gwan": GyeokgukType.JONGSAL,
}

JONGGANG_MIN_BIGYEOP = 4
JONG_DOMINANT_MIN = 3
JONGSE_MIN_SUM = 5
JONGGANG_CONFIDENCE = (0.85, 0.10, 18.6)  # (기본, 가산 폭, 포화 거리)
JONGYAK_CONFIDENCE = (0.75, 0.15, 15.0)
TOUCHUL_CONFIDENCE_JEONGGI = 1.0
TOUCHUL_CONFIDENCE_OTHER = 0.90

class GyeokgukQuality(str, Enum):
    WELL_FORMED = "WELL_FORMED"
    BROKEN = "BROKEN"
    RESCUED = "RESCUED"
    NOT_ASSESSED = "NOT_ASSESSED"

@dataclass(frozen=True)
class GyeokgukFormation:
    quality: GyeokgukQuality
    breaking_factors: tuple[str, ...] = ()
    rescue_factors: tuple[str, ...] = ()
    reasoning: str = ""

@dataclass(frozen=True)
class GyeokgukResult:
    type: GyeokgukType
    category: GyeokgukCategory
    base_ten_god: str | None
    confidence: float
    reasoning: str
    formation: GyeokgukFormation | None = None

@dataclass(frozen=True)
class ElementProfile:
    """일간을 제외한 천간 3개(합 반영) + 지지 본기 4개의 역할 분포"""
    counts: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "counts", MappingProxyType(dict(self.counts)))

    def count(self, category: str) -> int:
        return self.counts.get(category, 0)

# -------------------------
# 합 반영 천간
# -------------------------
def effective_visible_stems(pillars, evaluations=()) -> dict:
    """
    연/월/시 천간의 실효 천간.
      - 합거: 제외
      - 합화: 화신 오행 + 원래 음양의 천간으로 대체
    """
    haps = active_hap_by_position(evaluations)
    out = {}
    for position in ("year", "month", "hour"):
        stem = pillars.stem_at(position)
        hap = haps.get(position)
        if hap is not None and hap.state == HapState.HAPGEO:
            continue
        if hap is not None and hap.state == HapState.HAPWHA:
            out[position] = stem_of(hap.result_element, is_yang_stem(stem))
        else:
            out[position] = stem
    return out

def build_element_profile(pillars, evaluations=()) -> ElementProfile:
    dm_element = stem_element(pillars.day_master)
    elements = [stem_element(s) for s in effective_visible_stems(pillars, evaluations).values()]
    elements += [stem_element(principal_stem(zhi)) for zhi in pillars.branches()]
    counts = {"bigyeop": 0, "siksang": 0, "jae": 0, "gwan": 0, "inseong": 0}
    for el in elements:
        counts[role_category(dm_element, el)] += 1
    return ElementProfile(counts)

# -------------------------
# 1단계: 내격
# -------------------------
def determine_naegyeok(pillars, evaluations=(), config: CalculationConfig = DEFAULT_CONFIG) -> GyeokgukResult:
    dm = pillars.day_master
    month_branch = pillars.branch_at("month")
    exposed = effective_visible_stems(pillars, evaluations)
    entries = hidden_stems_for_branch(month_branch, config.hidden_stem_day_allocation.value,
                                      config.no_residual_earth)

    # 정기 → 중기 → 여기 순으로 투출 확인
    for hidden in reversed(entries):
        positions = [pos for pos, s in exposed.items() if s == hidden.stem]
        if not positions:
            continue
        tg = ten_god_for(dm, hidden.stem)
        gtype = TEN_GOD_TO_GYEOKGUK[tg]
        transformed = [pos for pos in positions if pillars.stem_at(pos) != hidden.stem]
        via = " (합화로 드러남)" if len(transformed) == len(positions) else ""
        return GyeokgukResult(
            type=gtype,
            category=GyeokgukCategory.NAEGYEOK,
            base_ten_god=tg,
            confidence=TOUCHUL_CONFIDENCE_JEONGGI if hidden.role == JEONGGI else TOUCHUL_CONFIDENCE_OTHER,
            reasoning=(
                f"월지 {label_zhi(month_branch)}의 {HIDDEN_ROLE_KOR[hidden.role]} {label_gan(hidden.stem)}이(가) "
                f"{STEM_POSITION_KOR[positions[0]]}에 투출{via}. "
                f"일간 {label_gan(dm)} 기준 {TEN_GOD_LABELS_KO[tg]} → {GYEOKGUK_NAME_KO[gtype]}."
            ),
        )

    main = principal_stem(month_branch)
    tg = ten_god_for(dm, main)
    gtype = TEN_GOD_TO_GYEOKGUK[tg]
    return GyeokgukResult(
        type=gtype,
        category=GyeokgukCategory.NAEGYEOK,
        base_ten_god=tg,
        confidence=1.0,
        reasoning=(
            f"투출한 월지 지장간이 없어 월지 {label_zhi(month_branch)} 본기 {label_gan(main)} 기준. "
            f"일간 {label_gan(dm)} 기준 {TEN_GOD_LABELS_KO[tg]} → {GYEOKGUK_NAME_KO[gtype]}."
        ),
    )

# -------------------------
# 2단계: 화격
# -------------------------
def check_hwagyeok(evaluations=()) -> GyeokgukResult | None:
    transformed = [e for e in evaluations or () if e.state == HapState.HAPWHA]
    if len(transformed) != 1:
        return None
    hap = transformed[0]
    gtype = HAPWHA_TYPE_BY_ELEMENT[hap.result_element]
    return GyeokgukResult(
        type=gtype,
        category=GyeokgukCategory.HWAGYEOK,
        base_ten_god=None,
        confidence=hap.confidence,
        reasoning=(
            f"{STEM_POSITION_KOR[hap.position1]} {label_gan(hap.stem1)}과 "
            f"{STEM_POSITION_KOR[hap.position2]} {label_gan(hap.stem2)}이(가) "
            f"{label_wuxing(hap.result_element)}(으)로 합화하여 {GYEOKGUK_NAME_KO[gtype]}을(를) 이룹니다."
        ),
        formation=GyeokgukFormation(GyeokgukQuality.NOT_ASSESSED, reasoning="화격은 성격/파격을 따로 평가하지 않음."),
    )

# -------------------------
# 3단계: 종격
# -------------------------
def jonggang_confidence(total_support: float, threshold: float) -> float:
    base, span, saturation = JONGGANG_CONFIDENCE
    return base + min(1.0, max(0.0, total_support - threshold) / saturation) * span

def jongyak_confidence(total_support: float, threshold: float) -> float:
    base, span, saturation = JONGYAK_CONFIDENCE
    return base + min(1.0, max(0.0, threshold - total_support) / saturation) * span

def _jong_result(gtype: GyeokgukType, confidence: float, reasoning: str) -> GyeokgukResult:
    return GyeokgukResult(
        type=gtype,
        category=GyeokgukCategory.JONGGYEOK,
        base_ten_god=None,
        confidence=round(confidence, 4),
        reasoning=reasoning,
        formation=GyeokgukFormation(GyeokgukQuality.NOT_ASSESSED, reasoning="종격은 성격/파격을 따로 평가하지 않음."),
    )

def check_jonggyeok(pillars, strength, evaluations=(),
                    config: CalculationConfig = DEFAULT_CONFIG) -> GyeokgukResult | None:
    support = strength.score.total_support
    profile = build_element_profile(pillars, evaluations)
    bigyeop = profile.count("bigyeop")
    inseong = profile.count("inseong")
    siksang, jae, gwan = profile.count("siksang"), profile.count("jae"), profile.count("gwan")

    # 종강격
    if support >= config.jonggyeok_strong_threshold:
        if bigyeop >= JONGGANG_MIN_BIGYEOP and jae + gwan == 0:
            return _jong_result(
                GyeokgukType.JONGGANG,
                jonggang_confidence(support, config.jonggyeok_strong_threshold),
                f"종강격(從强格): 비겁 {bigyeop}개가 원국을 장악하고 재성·관성이 없음 "
                f"(총부조점수: {support:.1f}, 기준 {config.jonggyeok_strong_threshold:.1f} 이상)",
            )
        return None

    # 종약격 (종아/종재/종살/종세)
    if support > config.jonggyeok_weak_threshold or bigyeop > 0 or inseong > 0:
        return None
    confidence = jongyak_confidence(support, config.jonggyeok_weak_threshold)
    ranked = sorted((("siksang", siksang), ("jae", jae), ("gwan", gwan)), key=lambda x: -x[1])
    (top_cat, top), (_, second) = ranked[0], ranked[1]
    if top >= JONG_DOMINANT_MIN and top > second:
        gtype = JONG_WEAK_TYPE_BY_CATEGORY[top_cat]
        return _jong_result(
            gtype, confidence,
            f"{GYEOKGUK_NAME_KO[gtype]}: 일간을 돕는 기운이 없고 {CATEGORY_KOR[top_cat]} {top}개가 지배적 "
            f"(총부조점수: {support:.1f}, 기준 {config.jonggyeok_weak_threshold:.1f} 이하)",
        )
    if siksang + jae + gwan >= JONGSE_MIN_SUM:
        return _jong_result(
            GyeokgukType.JONGSE, confidence,
            f"종세격(從勢格): 일간을 돕는 기운이 없고 식상 {siksang}·재성 {jae}·관성 {gwan}이 세력을 나눔 "
            f"(총부조점수: {support:.1f}, 기준 {config.jonggyeok_weak_threshold:.1f} 이하)",
        )
    return None


# -------------------------
# 내격 성격(成格)/파격(破格)
# -------------------------
@dataclass(frozen=True)
class FormationProfile:
    visible: frozenset
    hidden: frozenset
    counts: Mapping[str, int]
    is_strong: bool

    def __post_init__(self):
        object.__setattr__(self, "counts", MappingProxyType(dict(self.counts)))

    def has(self, *ten_gods: str) -> bool:
        return any(tg in self.visible for tg in ten_gods)

    def cat(self, category: str) -> bool:
        return self.counts.get(category, 0) > 0

    def n(self, category: str) -> int:
        return self.counts.get(category, 0)

    def latent(self, ten_god: str) -> bool:
        # 천간엔 없고 지지 본기에만 있는 십성
        return ten_god not in self.visible and ten_god in self.hidden

def build_formation_profile(pillars, strength, evaluations=()) -> FormationProfile:
    dm = pillars.day_master
    visible = [ten_god_for(dm, s) for s in effective_visible_stems(pillars, evaluations).values()]
    hidden = {ten_god_for(dm, principal_stem(zhi)) for zhi in pillars.branches() if principal_stem(zhi) != dm}
    counts = {}
    for tg in visible:
        counts[TEN_GOD_CATEGORY[tg]] = counts.get(TEN_GOD_CATEGORY[tg], 0) + 1
    return FormationProfile(frozenset(visible), frozenset(hidden), counts, strength.is_strong)

# (격 이름, 성격 조건, 파격 규칙, 구응 규칙, 성격 지지 조건)
_JAE_RULE = (
    "재생관(財生官) 또는 식신생재(食神生財)+신강",
    [
        (lambda p: p.n("bigyeop") >= 2, "군겁쟁재(群劫爭財): 비겁이 과다하여 재성을 빼앗김"),
        (lambda p: p.latent("GYEOB_JAE"), "지장간 잠재 겁재: 지지 본기의 겁재가 운에서 투출하면 쟁재 위험"),
        (lambda p: p.has("PYEON_GWAN"), "재투칠살(財透七殺): 재성이 칠살을 생함"),
    ],
    [
        (lambda p: p.n("bigyeop") >= 2 and p.cat("gwan"), "관성이 비겁을 제어하여 재성 보호(官制劫護財)"),
        (lambda p: p.n("bigyeop") >= 2 and p.has("SIK_SIN"), "식신이 비겁의 기운을 설기하여 재를 생(食化劫生財)"),
        (lambda p: p.has("PYEON_GWAN") and p.has("SIK_SIN"), "식신이 칠살을 제어하여 재를 보호(食制殺護財)"),
    ],
    lambda p: (p.cat("siksang") and p.is_strong) or p.cat("gwan"),
)
_IN_RULE = (
    "관인상생(官印相生), 인경봉살(印輕逢殺), 또는 식상 설기(食傷泄氣)",
    [
        (lambda p: not p.is_strong and p.cat("jae"), "인경봉재(印輕逢財): 인성이 약한데 재성이 극함"),
        (lambda p: p.is_strong and p.n("inseong") >= 2 and p.has("PYEON_GWAN") and not p.cat("siksang"),
         "신강인중투살(身強印重透殺): 일간이 강하고 인성이 과한데 칠살이 인을 기름"),
    ],
    [
        (lambda p: not p.is_strong and p.cat("jae") and p.cat("bigyeop"), "비겁이 재성을 극하여 인성 보호(劫財護印)"),
    ],
    lambda p: (p.cat("gwan") and p.cat("inseong")) or (p.has("PYEON_GWAN") and not p.is_strong)
              or (p.is_strong and p.cat("siksang")),
)
NAEGYEOK_FORMATION_RULES = {
    GyeokgukType.JEONGGWAN: (
        "재생관(財生官) 또는 관인상생(官印相生)",
        [
            (lambda p: p.has("SANG_GWAN"), "상관견관(傷官見官): 상관이 투출하여 정관을 극함"),
            (lambda p: p.has("JEONG_GWAN") and p.has("PYEON_GWAN"), "관살혼잡(官殺混雜): 정관과 편관이 함께 투출"),
            (lambda p: p.latent("SANG_GWAN"), "지장간 잠재 상관: 지지 본기의 상관이 운에서 투출하면 상관견관 위험"),
        ],
        [(lambda p: p.has("SANG_GWAN") and p.cat("inseong"), "인성이 상관을 제압하여 정관 보호(印制傷官)")],
        lambda p: (p.cat("jae") and not p.has("SANG_GWAN")) or (p.cat("inseong") and not p.cat("jae")),
    ),
    GyeokgukType.JEONGJAE: _JAE_RULE,
    GyeokgukType.PYEONJAE: _JAE_RULE,
    GyeokgukType.SIKSIN: (
        "식신생재(食神生財) 또는 식신제살(食神制殺)",
        [
            (lambda p: p.has("PYEON_IN"), "효신탈식(梟神奪食): 편인이 투출하여 식신을 극함"),
            (lambda p: p.latent("PYEON_IN"), "지장간 잠재 편인: 지지 본기의 편인이 운에서 투출하면 효신탈식 위험"),
            (lambda p: p.cat("jae") and p.has("PYEON_GWAN") and p.n("siksang") < 2,
             "식신생재 노살(生財露殺): 재성이 칠살을 기르나 식신의 제어가 부족"),
        ],
        [(lambda p: p.has("PYEON_IN") and p.has("PYEON_JAE"), "편재가 편인을 제압하여 식신 보호(制梟護食)")],
        lambda p: True,
    ),
    GyeokgukType.SANGGWAN: (
        "상관생재(傷官生財), 상관패인(傷官佩印), 또는 상관제살(傷官制殺)",
        [
            (lambda p: p.has("JEONG_GWAN"), "상관견관(傷官見官): 상관격에서 정관이 투출"),
            (lambda p: p.cat("jae") and p.has("PYEON_GWAN"), "상관생재 대살(生財帶殺): 재성이 칠살을 기름"),
            (lambda p: p.cat("inseong") and p.is_strong and not p.has("PYEON_GWAN") and not p.cat("jae"),
             "상경신왕(傷輕身旺): 일간이 왕하여 인성이 불필요"),
        ],
        [(lambda p: p.has("JEONG_GWAN") and p.cat("inseong"), "인성이 상관을 억제하여 정관 보호(印制傷護官)")],
        lambda p: p.cat("jae") or (p.cat("inseong") and not p.is_strong) or (p.has("PYEON_GWAN") and not p.cat("jae")),
    ),
    GyeokgukType.PYEONGWAN: (
        "식신제살(食神制殺), 살인상생(殺印相生), 또는 양인가살(羊刃駕殺)",
        [
            (lambda p: not p.has("SIK_SIN") and not p.cat("inseong") and not p.has("GYEOB_JAE"),
             "칠살무제(七殺無制): 칠살을 제어할 식신·인성·양인이 없음"),
            (lambda p: p.cat("jae") and not p.has("SIK_SIN") and not p.cat("inseong"),
             "재생살무제(財生殺無制): 재성이 칠살을 기르나 제어 수단이 없음"),
            (lambda p: p.has("SIK_SIN") and p.cat("inseong") and not p.cat("jae"),
             "인탈식(印奪食): 인성이 칠살을 제어하는 식신을 극함"),
            (lambda p: not p.is_strong and not p.cat("inseong") and not p.has("GYEOB_JAE"),
             "신약무조(身弱無助): 일간이 약하여 칠살을 감당할 수 없음"),
        ],
        [(lambda p: p.has("SIK_SIN") and p.cat("inseong") and p.cat("jae"), "재성이 인성을 극하여 식신 보호(財去印存食)")],
        lambda p: p.has("SIK_SIN") or p.cat("inseong") or p.has("GYEOB_JAE"),
    ),
    GyeokgukType.JEONGIN: _IN_RULE,
    GyeokgukType.PYEONIN: (
        "살인상생(殺印相生) 또는 재성 제어(財制偏印)",
        [
            (lambda p: p.has("SIK_SIN"), "효신탈식(梟神奪食): 편인이 식신을 극함"),
            (lambda p: not p.is_strong and p.cat("jae"), "인경봉재(印輕逢財): 인성이 약한데 재성이 극함"),
            (lambda p: p.n("inseong") >= 3 and not p.cat("jae"), "인과다무제(印過多無制): 편인이 과도하나 재성의 제어가 없음"),
        ],
        [
            (lambda p: p.has("SIK_SIN") and p.has("PYEON_JAE"), "편재가 편인을 제압하여 식신 보호(制梟護食)"),
            (lambda p: not p.is_strong and p.cat("jae") and p.cat("bigyeop"), "비겁이 재성을 극하여 인성 보호(劫財護印)"),
        ],
        lambda p: (p.has("PYEON_GWAN") and p.cat("inseong")) or (p.cat("jae") and p.is_strong),
    ),
    GyeokgukType.GEONROK: (
        "투관봉재인(透官逢財印), 투재봉식상(透財逢食傷), 또는 투살봉제복(透殺逢制伏)",
        [
            (lambda p: not p.cat("jae") and not p.cat("gwan") and not p.cat("siksang"),
             "무재관식상(無財官食傷): 재성·관성·식상이 모두 없어 비겁만 남음"),
            (lambda p: p.has("JEONG_GWAN") and p.has("SANG_GWAN") and not p.cat("inseong"),
             "투관봉상(透官逢傷): 정관이 상관에 극을 받고 인성의 보호가 없음"),
            (lambda p: p.has("PYEON_GWAN") and p.cat("inseong") and not p.has("SIK_SIN") and not p.cat("jae"),
             "투살투인무식(透殺透印無食): 칠살을 제어할 식신이 없음"),
        ],
        [(lambda p: p.has("JEONG_GWAN") and p.has("SANG_GWAN") and p.cat("inseong"), "인성이 상관을 제압하여 정관 보호(印制傷護官)")],
        lambda p: (p.has("JEONG_GWAN") and (p.cat("jae") or p.cat("inseong")))
                  or (p.cat("jae") and p.cat("siksang")) or (p.has("PYEON_GWAN") and p.has("SIK_SIN")),
    ),
    GyeokgukType.YANGIN: (
        "관살이 양인을 제어(官殺制刃)",
        [
            (lambda p: not p.cat("gwan"), "양인무관살(羊刃無官殺): 관살이 없어 양인(겁재)을 제어할 수 없음"),
            (lambda p: p.has("SANG_GWAN") and p.has("JEONG_GWAN") and not p.cat("inseong"),
             "상관견관(傷官見官): 상관이 양인격의 관을 극하고 인성 보호가 없음"),
            (lambda p: p.cat("siksang") and p.cat("gwan") and not p.cat("inseong"),
             "식상제관(食傷制官): 식상이 관살을 극하여 양인 통제력 상실"),
        ],
        [
            (lambda p: p.has("SANG_GWAN") and p.cat("inseong"), "인성이 상관을 제압하여 관 보호(印護官制傷)"),
            (lambda p: p.cat("siksang") and p.cat("inseong"), "인성이 식상을 억제하여 관살 보호(重印護官)"),
        ],
        lambda p: p.cat("gwan") and not p.has("SANG_GWAN"),
    ),
}

def assess_formation(gtype: GyeokgukType, profile: FormationProfile) -> GyeokgukFormation:
    rule = NAEGYEOK_FORMATION_RULES.get(gtype)
    if rule is None:
        return GyeokgukFormation(GyeokgukQuality.NOT_ASSESSED, reasoning="해당 격국의 성격/파격 규칙이 없음.")
    condition, breaking_rules, rescue_rules, support = rule
    name = GYEOKGUK_NAME_KO[gtype]
    breaking = tuple(msg for pred, msg in breaking_rules if pred(profile))
    rescue = tuple(msg for pred, msg in rescue_rules if pred(profile))

    if not breaking:
        # 파격 요인이 없으면 성격
        note = "" if support(profile) else " (뚜렷한 상신은 없음)"
        return GyeokgukFormation(
            GyeokgukQuality.WELL_FORMED, breaking, rescue,
            f"{name} 성격(成格): {condition} 조건에 어긋나는 요인이 없음{note}.",
        )
    cause = breaking[0].split(":")[0]
    if rescue:
        return GyeokgukFormation(
            GyeokgukQuality.RESCUED, breaking, rescue,
            f"{name} 파격 구응(救應): {cause}이(가) 있으나 {rescue[0].split('(')[0]}(으)로 구원됨.",
        )
    return GyeokgukFormation(
        GyeokgukQuality.BROKEN, breaking, rescue,
        f"{name} 파격(破格): {cause}. 격국의 핵심 기능이 손상됨.",
    )

# -------------------------
# 판정 본체
# -------------------------
def determine(pillars, strength=None, evaluations=(),
              config: CalculationConfig = DEFAULT_CONFIG) -> GyeokgukResult:
    """
    1) 월지 기준 내격을 먼저 정하고
    2) 합화가 정확히 하나면 화격으로 확정
    3) 강약 결과가 있으면 종격(종강/종아/종재/종살/종세)을 검사
    어느 것도 해당하지 않으면 내격이 그대로 남는다.
    """
    evaluations = tuple(evaluations or ())
    naegyeok = determine_naegyeok(pillars, evaluations, config)

    hwagyeok = check_hwagyeok(evaluations)
    if hwagyeok is not None:
        return hwagyeok

    if strength is None:
        return naegyeok

    jong = check_jonggyeok(pillars, strength, evaluations, config)
    if jong is not None:
        return jong

    formation = assess_formation(naegyeok.type, build_formation_profile(pillars, strength, evaluations))
    return GyeokgukResult(
        type=naegyeok.type,
        category=naegyeok.category,
        base_ten_god=naegyeok.base_ten_god,
        confidence=naegyeok.confidence,
        reasoning=naegyeok.reasoning,
        formation=formation,
    )
