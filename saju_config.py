# saju_config.py
# 계산 설정(CalculationConfig) + 유파 프리셋 + 환경변수(.env) 로딩

import os
import logging
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger("saju_config")

# -------------------------
# 선택지(tagged variants)
# -------------------------
class HiddenStemScope(str, Enum):
    ALL_THREE = "ALL_THREE"
    JEONGGI_ONLY = "JEONGGI_ONLY"
    SARYEONG_BASED = "SARYEONG_BASED"

class SaryeongMode(str, Enum):
    ALWAYS_JEONGGI = "ALWAYS_JEONGGI"
    BY_DAY_IN_MONTH = "BY_DAY_IN_MONTH"

class HiddenStemDayAllocation(str, Enum):
    YEONHAE_JAPYEONG = "YEONHAE_JAPYEONG"
    SAMMYEONG_TONGHOE = "SAMMYEONG_TONGHOE"

class HiddenStemVariant(str, Enum):
    STANDARD = "STANDARD"
    NO_RESIDUAL_EARTH = "NO_RESIDUAL_EARTH"

class YongshinPriority(str, Enum):
    JOHU_FIRST = "JOHU_FIRST"
    EOKBU_FIRST = "EOKBU_FIRST"
    EQUAL_WEIGHT = "EQUAL_WEIGHT"

class JonggyeokYongshinMode(str, Enum):
    FOLLOW_DOMINANT = "FOLLOW_DOMINANT"
    COUNTER_DOMINANT = "COUNTER_DOMINANT"

class HapHwaStrictness(str, Enum):
    STRICT = "STRICT"
    MODERATE = "MODERATE"
    LENIENT = "LENIENT"

# -------------------------
# 설정 스키마
# -------------------------
class CalculationConfig(BaseModel):
    # 득령/득지/득세 가중치
    deukryeong_weight: float = Field(40.0, ge=0)
    proportional_deukryeong: bool = False
    strength_threshold: float = Field(50.0, ge=0)
    hidden_stem_scope_for_strength: HiddenStemScope = HiddenStemScope.ALL_THREE
    deukji_per_branch: float = Field(5.0, ge=0)
    deukse_bigyeop: float = Field(7.0, ge=0)
    deukse_inseong: float = Field(5.0, ge=0)

    # 지장간/사령
    saryeong_mode: SaryeongMode = SaryeongMode.ALWAYS_JEONGGI
    hidden_stem_day_allocation: HiddenStemDayAllocation = HiddenStemDayAllocation.YEONHAE_JAPYEONG
    hidden_stem_variant: HiddenStemVariant = HiddenStemVariant.STANDARD

    # 용신/종격
    yongshin_priority: YongshinPriority = YongshinPriority.JOHU_FIRST
    jonggyeok_yongshin_mode: JonggyeokYongshinMode = JonggyeokYongshinMode.FOLLOW_DOMINANT
    jonggyeok_weak_threshold: float = Field(15.0, ge=0, le=100)
    jonggyeok_strong_threshold: float = Field(62.4, ge=0, le=100)

    # 합화/합거
    hap_hwa_strictness: HapHwaStrictness = HapHwaStrictness.STRICT
    allow_banhap: bool = True
    day_master_never_hap_geo: bool = True

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "strength_threshold": 50.0,
                "saryeong_mode": "BY_DAY_IN_MONTH",
                "hap_hwa_strictness": "MODERATE",
                "jonggyeok_yongshin_mode": "COUNTER_DOMINANT",
            }
        },
    )

    @model_validator(mode="after")
    def _check_jonggyeok_thresholds(self):
        if self.jonggyeok_weak_threshold >= self.jonggyeok_strong_threshold:
            raise ValueError(
                "종격 약 임계값은 강 임계값보다 작아야 합니다 "
                f"(weak={self.jonggyeok_weak_threshold}, strong={self.jonggyeok_strong_threshold})"
            )
        return self

    @property
    def no_residual_earth(self) -> bool:
        return self.hidden_stem_variant == HiddenStemVariant.NO_RESIDUAL_EARTH

DEFAULT_CONFIG = CalculationConfig()

# -------------------------
# 유파 프리셋
# -------------------------
SCHOOL_PRESETS = {
    "korean_mainstream": DEFAULT_CONFIG,
    "traditional_chinese": CalculationConfig(
        saryeong_mode=SaryeongMode.BY_DAY_IN_MONTH,
        deukryeong_weight=50.0,
        proportional_deukryeong=True,
        hidden_stem_scope_for_strength=HiddenStemScope.JEONGGI_ONLY,
        yongshin_priority=YongshinPriority.EOKBU_FIRST,
        hap_hwa_strictness=HapHwaStrictness.STRICT,
        allow_banhap=False,
        day_master_never_hap_geo=False,
    ),
    "modern_integrated": CalculationConfig(
        saryeong_mode=SaryeongMode.BY_DAY_IN_MONTH,
        proportional_deukryeong=True,
        yongshin_priority=YongshinPriority.EQUAL_WEIGHT,
        jonggyeok_weak_threshold=20.0,
        jonggyeok_strong_threshold=58.0,
        hap_hwa_strictness=HapHwaStrictness.MODERATE,
    ),
}

def preset(name: str) -> CalculationConfig:
    key = name.strip().lower().replace("-", "_")
    if key not in SCHOOL_PRESETS:
        raise ValueError(f"알 수 없는 유파 프리셋입니다: {name!r} (가능: {', '.join(SCHOOL_PRESETS)})")
    return SCHOOL_PRESETS[key]

# =========================
# ENV 로딩 (dotenv)
# =========================
ENV_PREFIX = "SAJU_"

def _load_env_file(env_file: str | Path | None) -> Path | None:
    path = Path(env_file) if env_file is not None else Path.cwd() / ".env"
    if not path.exists():
        if env_file is not None:
            raise ValueError(f"설정 파일을 찾을 수 없습니다: {path}")
        return None
    load_dotenv(dotenv_path=path, override=True, encoding="utf-8")
    logger.info("dotenv loaded: %s", path)
    return path

def load_config_from_env(env_file: str | Path | None = None) -> CalculationConfig:
    """
    환경변수로 설정을 만든다.
      - SAJU_SCHOOL_PRESET : 기반 프리셋 (기본 korean_mainstream)
      - SAJU_<필드명 대문자> : 개별 필드 덮어쓰기 (예: SAJU_HAP_HWA_STRICTNESS=MODERATE)
    값 검증은 pydantic이 설정 생성 시점에 수행한다.
    """
    _load_env_file(env_file)

    preset_name = os.environ.get(f"{ENV_PREFIX}SCHOOL_PRESET", "korean_mainstream")
    base = preset(preset_name)

    overrides = {}
    for field_name in CalculationConfig.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if raw is not None and raw.strip():
            overrides[field_name] = raw.strip()

    config = CalculationConfig.model_validate({**base.model_dump(), **overrides})
    logger.info("config loaded: preset=%s overrides=%s", preset_name, sorted(overrides))
    return config
