# saju_engine.py
# 원국 분석 파이프라인: 천간합 → 지지 관계 해소 → 점수 → 강약 → 격국 → 용신
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

import saju_gyeokguk
import saju_haphwa
import saju_relations
import saju_strength
import saju_yongshin
from saju_config import DEFAULT_CONFIG, CalculationConfig, preset
from saju_core import PillarSet, stem_element
from saju_relations import RelationHit, RelationType
from saju_scoring import InteractionScore, score_branch_relation, score_stem_relation

logger = logging.getLogger("saju_engine")

@dataclass(frozen=True)
class ScoredRelation:
    resolved: saju_relations.ResolvedRelation
    score: InteractionScore

@dataclass(frozen=True)
class ScoredStemRelation:
    hit: saju_haphwa.StemRelationHit
    score: InteractionScore

@dataclass(frozen=True)
class SajuAnalysis:
    pillars: PillarSet
    config: CalculationConfig
    hap_evaluations: tuple[saju_haphwa.HapHwaEvaluation, ...]
    relations: tuple[ScoredRelation, ...]
    stem_relations: tuple[ScoredStemRelation, ...]
    strength: saju_strength.StrengthResult
    gyeokguk: saju_gyeokguk.GyeokgukResult
    yongshin: saju_yongshin.YongshinResult

    def to_dict(self) -> dict:
        """JSON 직렬화용 dict (Enum은 값, frozenset은 정렬된 list로)"""
        out = {k: _plain(v) for k, v in asdict(self).items() if k not in ("pillars", "config")}
        out["pillars"] = self.pillars.label()
        out["config"] = self.config.model_dump(mode="json")
        return out

def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, frozenset):
        return sorted(value)
    return value

# -------------------------
# 파이프라인
# -------------------------
def analyze_chart(pillars: PillarSet, relation_hits=(), config: CalculationConfig = DEFAULT_CONFIG,
                  days_since_season_boundary: int | None = None) -> SajuAnalysis:
    """
    지지 관계 후보(relation_hits)는 외부 탐지기가 넘겨준 것을 그대로 해소한다.
    각 단계는 앞 단계 결과만 읽고 새 레코드를 만든다.
    """
    evaluations = tuple(saju_haphwa.evaluate_with_config(pillars, config))
    logger.debug("천간합 판정 %d건: %s", len(evaluations),
                 [(e.stem1 + e.stem2, e.state.value, e.confidence) for e in evaluations])

    hits = list(relation_hits)
    if not config.allow_banhap:
        dropped = [h for h in hits if h.type == RelationType.BANHAP]
        hits = [h for h in hits if h.type != RelationType.BANHAP]
        if dropped:
            logger.debug("반합 비허용 설정으로 %d건 제외", len(dropped))

    resolved = saju_relations.resolve(hits, pillars)
    relations = tuple(ScoredRelation(r, score_branch_relation(r, pillars)) for r in resolved)
    for rel in relations:
        logger.debug("지지 관계 %s → %s (%d점)", rel.resolved.hit.label,
                     rel.resolved.outcome.value, rel.score.final_score)

    stem_relations = tuple(
        ScoredStemRelation(hit, score_stem_relation(hit, pillars, evaluations))
        for hit in saju_haphwa.detect_stem_hits(pillars)
    )

    strength = saju_strength.analyze(pillars, config, days_since_season_boundary, evaluations)
    logger.debug("강약: 부조 %.2f → %s", strength.score.total_support, strength.level.value)

    gyeokguk = saju_gyeokguk.determine(pillars, strength, evaluations, config)
    logger.debug("격국: %s (%s, %.2f)", gyeokguk.type.value, gyeokguk.category.value, gyeokguk.confidence)

    yongshin = saju_yongshin.decide(
        pillars, strength.is_strong, stem_element(pillars.day_master), config, gyeokguk, evaluations,
    )
    logger.debug("용신: %s (%.2f)", yongshin.final_element, yongshin.final_confidence)

    return SajuAnalysis(
        pillars=pillars,
        config=config,
        hap_evaluations=evaluations,
        relations=relations,
        stem_relations=stem_relations,
        strength=strength,
        gyeokguk=gyeokguk,
        yongshin=yongshin,
    )

# -------------------------
# 요청 스키마 (외부 호출용)
# -------------------------
class RelationHitInput(BaseModel):
    type: RelationType
    members: Annotated[list[str], Field(min_length=1, max_length=3)]
    note: str = ""

class ChartRequest(BaseModel):
    pillars: Annotated[list[str], Field(min_length=4, max_length=4)]   # ["甲子","丙寅",...] 연/월/일/시
    relation_hits: list[RelationHitInput] = []
    days_since_season_boundary: Annotated[int | None, Field(ge=1)] = None
    school_preset: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "pillars": ["甲子", "己辰", "丙午", "丁酉"],
                "relation_hits": [{"type": "CHUNG", "members": ["子", "午"], "note": ""}],
                "days_since_season_boundary": 12,
                "school_preset": "korean_mainstream",
            }
        }
    )

    def to_pillars(self) -> PillarSet:
        return PillarSet.from_ganzhi(self.pillars)

    def to_hits(self) -> list[RelationHit]:
        return [RelationHit(h.type, frozenset(h.members), h.note) for h in self.relation_hits]

def analyze_request(req: ChartRequest, config: CalculationConfig | None = None) -> SajuAnalysis:
    if config is None:
        config = preset(req.school_preset) if req.school_preset else DEFAULT_CONFIG
    return analyze_chart(req.to_pillars(), req.to_hits(), config, req.days_since_season_boundary)
