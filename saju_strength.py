# saju_strength.py
# 일간 강약: 득령(得令) + 득지(得地) + 득세(得勢), 합화/합거 반영

from dataclasses import dataclass
from enum import Enum

from saju_config import DEFAULT_CONFIG, CalculationConfig, HiddenStemScope, SaryeongMode
from saju_core import (
    CATEGORY_KOR, HIDDEN_ROLE_KOR, POSITION_KOR, STEM_POSITION_KOR, TEN_GOD_CATEGORY,
    TEN_GOD_LABELS_KO, hidden_stems_for_branch, label_gan, label_wuxing, label_zhi,
    principal_stem, role_category, saryeong_stem, stem_element, supports_day_master,
    ten_god_for,
)
from saju_haphwa import HapState

class StrengthLevel(str, Enum):
    VERY_STRONG = "VERY_STRONG"
    STRONG = "STRONG"
    SLIGHTLY_STRONG = "SLIGHTLY_STRONG"
    SLIGHTLY_WEAK = "SLIGHTLY_WEAK"
    WEAK = "WEAK"
    VERY_WEAK = "VERY_WEAK"

STRENGTH_LEVEL_KO = {
    StrengthLevel.VERY_STRONG: "극신강",
    StrengthLevel.STRONG: "신강",
    StrengthLevel.SLIGHTLY_STRONG: "중화신강",
    StrengthLevel.SLIGHTLY_WEAK: "중화신약",
    StrengthLevel.WEAK: "신약",
    StrengthLevel.VERY_WEAK: "극신약",
}

TOTAL_BUDGET = 100.0
DEUKSE_POSITIONS = ("year", "month", "hour")

@dataclass(frozen=True)
class StrengthScore:
    deukryeong: float
    deukji: float
    deukse: float
    total_support: float
    total_oppose: float

@dataclass(frozen=True)
class StrengthResult:
    day_master: str
    score: StrengthScore
    level: StrengthLevel
    is_strong: bool
    details: tuple[str, ...]

# -------------------------
# 득령
# -------------------------
def calc_deukryeong(pillars, config: CalculationConfig,
                    days_since_season_boundary: int | None = None) -> tuple[float, str]:
    dm = pillars.day_master
    month_branch = pillars.branch_at("month")
    allocation = config.hidden_stem_day_allocation.value
    weight = config.deukryeong_weight

    if config.proportional_deukryeong:
        entries = hidden_stems_for_branch(month_branch, allocation, config.no_residual_earth)
        total_days = sum(h.days for h in entries)
        support_days = sum(h.days for h in entries if supports_day_master(dm, h.stem))
        value = weight * support_days / total_days
        return value, (
            f"[득령] 월지 {label_zhi(month_branch)} 지장간 {total_days}일 중 "
            f"일간을 돕는 기운 {support_days}일 → {value:.2f}점"
        )

    if config.saryeong_mode == SaryeongMode.BY_DAY_IN_MONTH and days_since_season_boundary is not None:
        commander = saryeong_stem(month_branch, days_since_season_boundary,
                                  allocation, config.no_residual_earth)
        source = f"절입 {days_since_season_boundary}일째 사령 {label_gan(commander.stem)}({HIDDEN_ROLE_KOR[commander.role]})"
        stem = commander.stem
    else:
        stem = principal_stem(month_branch)
        source = f"월지 {label_zhi(month_branch)} 본기 {label_gan(stem)}"

    tg = ten_god_for(dm, stem)
    value = weight if TEN_GOD_CATEGORY[tg] in ("bigyeop", "inseong") else 0.0
    verdict = "득령" if value > 0 else "실령"
    return value, f"[득령] {source} = {TEN_GOD_LABELS_KO[tg]} → {verdict} {value:.2f}점"

# -------------------------
# 득지
# -------------------------
def _branch_hidden_for_strength(pillars, position: str, config: CalculationConfig,
                                days_since_season_boundary: int | None):
    zhi = pillars.branch_at(position)
    allocation = config.hidden_stem_day_allocation.value
    entries = hidden_stems_for_branch(zhi, allocation, config.no_residual_earth)
    scope = config.hidden_stem_scope_for_strength
    if scope == HiddenStemScope.ALL_THREE:
        return entries
    if scope == HiddenStemScope.SARYEONG_BASED and position == "month" and days_since_season_boundary is not None:
        return (saryeong_stem(zhi, days_since_season_boundary, allocation, config.no_residual_earth),)
    return entries[-1:]

def calc_deukji(pillars, config: CalculationConfig,
                days_since_season_boundary: int | None = None) -> tuple[float, list[str]]:
    dm = pillars.day_master
    total = 0.0
    lines = []
    for position in ("year", "month", "day", "hour"):
        entries = _branch_hidden_for_strength(pillars, position, config, days_since_season_boundary)
        support_days = sum(h.days for h in entries if supports_day_master(dm, h.stem))
        value = support_days / 30 * config.deukji_per_branch
        total += value
        stems = ",".join(h.stem for h in entries if supports_day_master(dm, h.stem)) or "-"
        lines.append(
            f"[득지] {POSITION_KOR[position]} {label_zhi(pillars.branch_at(position))}: "
            f"돕는 지장간 {stems} {support_days}일 → {value:.2f}점"
        )
    return total, lines

# -------------------------
# 득세 (천간 합 반영)
# -------------------------
def active_hap_by_position(evaluations) -> dict:
    out = {}
    for e in evaluations or ():
        if e.state != HapState.NOT_ESTABLISHED:
            out.setdefault(e.position1, e)
            out.setdefault(e.position2, e)
    return out

def _deukse_value(category: str, config: CalculationConfig) -> float:
    if category == "bigyeop":
        return config.deukse_bigyeop
    if category == "inseong":
        return config.deukse_inseong
    return 0.0

def calc_deukse(pillars, config: CalculationConfig, evaluations=()) -> tuple[float, list[str]]:
    dm = pillars.day_master
    dm_element = stem_element(dm)
    haps = active_hap_by_position(evaluations)
    total = 0.0
    lines = []
    for position in DEUKSE_POSITIONS:
        stem = pillars.stem_at(position)
        hap = haps.get(position)
        if hap is not None and hap.state == HapState.HAPGEO:
            lines.append(f"[합거] {STEM_POSITION_KOR[position]} {label_gan(stem)}: 합으로 묶여 득세에서 제외 → 0.00점")
            continue
        if hap is not None and hap.state == HapState.HAPWHA:
            category = role_category(dm_element, hap.result_element)
            value = _deukse_value(category, config)
            lines.append(
                f"[합화] {STEM_POSITION_KOR[position]} {label_gan(stem)}: {label_wuxing(hap.result_element)}(으)로 변화, "
                f"{CATEGORY_KOR[category]} → {value:.2f}점"
            )
        else:
            tg = ten_god_for(dm, stem)
            value = _deukse_value(TEN_GOD_CATEGORY[tg], config)
            lines.append(f"[득세] {STEM_POSITION_KOR[position]} {label_gan(stem)} = {TEN_GOD_LABELS_KO[tg]} → {value:.2f}점")
        total += value
    return total, lines

# -------------------------
# 강약 등급
# -------------------------
def classify_level(total_support: float, config: CalculationConfig) -> StrengthLevel:
    threshold = config.strength_threshold
    max_theoretical = config.deukryeong_weight + config.deukji_per_branch * 4 + config.deukse_bigyeop * 3
    if total_support >= threshold + (max_theoretical - threshold) * 0.4:
        return StrengthLevel.VERY_STRONG
    if total_support >= threshold:
        return StrengthLevel.STRONG
    if total_support >= threshold * 0.8:
        return StrengthLevel.SLIGHTLY_STRONG
    if total_support >= threshold * 0.6:
        return StrengthLevel.SLIGHTLY_WEAK
    if total_support >= threshold * 0.3:
        return StrengthLevel.WEAK
    return StrengthLevel.VERY_WEAK

def analyze(pillars, config: CalculationConfig = DEFAULT_CONFIG,
            days_since_season_boundary: int | None = None, evaluations=()) -> StrengthResult:
    """
    득령·득지·득세를 더해 일간 강약을 판정한다.
    합거된 천간은 득세에서 빠지고, 합화된 천간은 화신 오행 기준으로 다시 분류된다.
    """
    deukryeong, ryeong_line = calc_deukryeong(pillars, config, days_since_season_boundary)
    deukji, ji_lines = calc_deukji(pillars, config, days_since_season_boundary)
    deukse, se_lines = calc_deukse(pillars, config, evaluations)

    total_support = deukryeong + deukji + deukse
    total_oppose = max(0.0, TOTAL_BUDGET - total_support)
    is_strong = total_support >= config.strength_threshold
    level = classify_level(total_support, config)

    details = [
        ryeong_line,
        *ji_lines,
        *se_lines,
        f"[종합] 부조 {total_support:.2f}점 / 억제 {total_oppose:.2f}점, "
        f"기준 {config.strength_threshold:.1f}점 → {STRENGTH_LEVEL_KO[level]}",
    ]
    return StrengthResult(
        day_master=pillars.day_master,
        score=StrengthScore(deukryeong, deukji, deukse, total_support, total_oppose),
        level=level,
        is_strong=is_strong,
        details=tuple(details),
    )
