# saju_core.py
# 천간/지지/오행 상수 + 지장간(일수) + 사령 + 십성 + 원국(PillarSet)

from dataclasses import dataclass

# -------------------------
# 1단계: 천간·지지·오행
# -------------------------
GAN_LIST = ["甲","乙","丙","丁","戊","己","庚","辛","壬","癸"]
ZHI_LIST = ["子","丑","寅","卯","辰","巳","午","未","申","酉","戌","亥"]

GAN_TO_KOR = {
    "甲":"갑","乙":"을","丙":"병","丁":"정","戊":"무",
    "己":"기","庚":"경","辛":"신","壬":"임","癸":"계",
}
ZHI_TO_KOR = {
    "子":"자","丑":"축","寅":"인","卯":"묘","辰":"진","巳":"사",
    "午":"오","未":"미","申":"신","酉":"유","戌":"술","亥":"해",
}
WUXING_LIST = ["wood","fire","earth","metal","water"]
WUXING_KOR = {
    "wood":"목(木)","fire":"화(火)","earth":"토(土)","metal":"금(金)","water":"수(水)",
}

STEM_TO_WUXING = {
    "甲":"wood","乙":"wood",
    "丙":"fire","丁":"fire",
    "戊":"earth","己":"earth",
    "庚":"metal","辛":"metal",
    "壬":"water","癸":"water",
}
BRANCH_TO_WUXING_MAIN = {
    "子":"water","丑":"earth","寅":"wood","卯":"wood",
    "辰":"earth","巳":"fire","午":"fire","未":"earth",
    "申":"metal","酉":"metal","戌":"earth","亥":"water",
}
YANG_STEMS = {"甲","丙","戊","庚","壬"}

# 상생: wood→fire→earth→metal→water→wood / 상극: wood→earth→water→fire→metal→wood
WUXING_SHENG = {"wood":"fire","fire":"earth","earth":"metal","metal":"water","water":"wood"}
WUXING_KE    = {"wood":"earth","earth":"water","water":"fire","fire":"metal","metal":"wood"}
WUXING_SHENG_BY = {v: k for k, v in WUXING_SHENG.items()}
WUXING_KE_BY    = {v: k for k, v in WUXING_KE.items()}

def is_yang_stem(stem: str) -> bool:
    return stem in YANG_STEMS

def stem_element(stem: str) -> str:
    return STEM_TO_WUXING[stem]

def generates(element: str) -> str:
    return WUXING_SHENG[element]

def generated_by(element: str) -> str:
    return WUXING_SHENG_BY[element]

def controls(element: str) -> str:
    return WUXING_KE[element]

def controlled_by(element: str) -> str:
    return WUXING_KE_BY[element]

def stem_of(element: str, yang: bool) -> str:
    """오행 + 음양 → 천간 (예: earth, 양 → 戊)"""
    for stem in GAN_LIST:
        if STEM_TO_WUXING[stem] == element and is_yang_stem(stem) == yang:
            return stem
    raise ValueError(f"알 수 없는 오행입니다: {element}")

def label_gan(stem: str) -> str:
    return f"{stem}({GAN_TO_KOR.get(stem, '?')})"

def label_zhi(branch: str) -> str:
    return f"{branch}({ZHI_TO_KOR.get(branch, '?')})"

def label_wuxing(element: str) -> str:
    return WUXING_KOR.get(element, element)

# -------------------------
# 2단계: 주(柱) 위치
# -------------------------
POSITIONS = ("year", "month", "day", "hour")
POSITION_KOR = {"year":"연주","month":"월주","day":"일주","hour":"시주"}
STEM_POSITION_KOR = {"year":"연간","month":"월간","day":"일간","hour":"시간"}

def position_index(position: str) -> int:
    try:
        return POSITIONS.index(position)
    except ValueError:
        raise ValueError(f"알 수 없는 주(柱) 위치입니다: {position!r}") from None

def is_adjacent(pos1: str, pos2: str) -> bool:
    return abs(position_index(pos1) - position_index(pos2)) == 1

# -------------------------
# 3단계: 지장간(地藏干) + 일수
# -------------------------
# 순서: 여기(餘氣) → 중기(中氣) → 정기(正氣)
YEOGI, JUNGGI, JEONGGI = "yeogi", "junggi", "jeonggi"
HIDDEN_ROLE_KOR = {YEOGI:"여기", JUNGGI:"중기", JEONGGI:"정기"}

@dataclass(frozen=True)
class HiddenStem:
    stem: str
    role: str
    days: int

def _table(raw: dict) -> dict:
    out = {}
    for zhi, entries in raw.items():
        roles = [YEOGI, JEONGGI] if len(entries) == 2 else [YEOGI, JUNGGI, JEONGGI]
        out[zhi] = tuple(HiddenStem(stem, role, days) for (stem, days), role in zip(entries, roles))
    return out

# 연해자평(淵海子平) 기준
HIDDEN_STEMS_YEONHAE = _table({
    "子": [("壬",10), ("癸",20)],
    "丑": [("癸",9), ("辛",3), ("己",18)],
    "寅": [("戊",7), ("丙",7), ("甲",16)],
    "卯": [("甲",10), ("乙",20)],
    "辰": [("乙",9), ("癸",3), ("戊",18)],
    "巳": [("戊",7), ("庚",7), ("丙",16)],
    "午": [("丙",10), ("己",9), ("丁",11)],
    "未": [("丁",9), ("乙",3), ("己",18)],
    "申": [("戊",7), ("壬",7), ("庚",16)],
    "酉": [("庚",10), ("辛",20)],
    "戌": [("辛",9), ("丁",3), ("戊",18)],
    "亥": [("戊",7), ("甲",7), ("壬",16)],
})

# 삼명통회(三命通會) 기준
HIDDEN_STEMS_SAMMYEONG = _table({
    "子": [("壬",7), ("癸",23)],
    "丑": [("癸",7), ("庚",5), ("己",18)],
    "寅": [("戊",5), ("丙",5), ("甲",20)],
    "卯": [("甲",7), ("乙",23)],
    "辰": [("乙",7), ("壬",5), ("戊",18)],
    "巳": [("戊",7), ("庚",5), ("丙",18)],
    "午": [("丙",7), ("丁",23)],
    "未": [("丁",7), ("甲",5), ("己",18)],
    "申": [("己",5), ("壬",5), ("庚",20)],
    "酉": [("庚",7), ("辛",23)],
    "戌": [("辛",7), ("丙",5), ("戊",18)],
    "亥": [("戊",5), ("甲",5), ("壬",20)],
})

HIDDEN_STEM_TABLES = {
    "YEONHAE_JAPYEONG": HIDDEN_STEMS_YEONHAE,
    "SAMMYEONG_TONGHOE": HIDDEN_STEMS_SAMMYEONG,
}
# 생지(寅巳申亥)의 戊 여기를 두지 않는 유파
RESIDUAL_EARTH_BRANCHES = {"寅","巳","申","亥"}

def hidden_stems_for_branch(zhi: str, allocation: str = "YEONHAE_JAPYEONG",
                            no_residual_earth: bool = False) -> tuple[HiddenStem, ...]:
    entries = HIDDEN_STEM_TABLES[allocation][zhi]
    if no_residual_earth and zhi in RESIDUAL_EARTH_BRANCHES:
        entries = tuple(h for h in entries if not (h.role == YEOGI and h.stem == "戊"))
    return entries

def principal_stem(zhi: str) -> str:
    # 본기는 두 표에서 동일
    return HIDDEN_STEMS_YEONHAE[zhi][-1].stem

def saryeong_stem(zhi: str, day_in_month: int, allocation: str = "YEONHAE_JAPYEONG",
                  no_residual_earth: bool = False) -> HiddenStem:
    """
    사령(司令): 절입 후 경과 일수로 당령한 지장간을 찾는다.
    여기 → 중기 → 정기 순으로 일수를 누적하며, 범위를 넘으면 정기가 사령한다.
    """
    if day_in_month < 1:
        raise ValueError(f"절입 후 일수는 1 이상이어야 합니다: {day_in_month}")
    entries = hidden_stems_for_branch(zhi, allocation, no_residual_earth)
    elapsed = 0
    for h in entries:
        elapsed += h.days
        if day_in_month <= elapsed:
            return h
    return entries[-1]

# -------------------------
# 4단계: 십성(十神)
# -------------------------
TEN_GOD_LABELS_KO = {
    "BI_GYEON":"비견","GYEOB_JAE":"겁재",
    "SIK_SIN":"식신","SANG_GWAN":"상관",
    "PYEON_JAE":"편재","JEONG_JAE":"정재",
    "PYEON_GWAN":"편관","JEONG_GWAN":"정관",
    "PYEON_IN":"편인","JEONG_IN":"정인",
}
# 십성 → 역할 범주(비겁/식상/재성/관성/인성)
TEN_GOD_CATEGORY = {
    "BI_GYEON":"bigyeop","GYEOB_JAE":"bigyeop",
    "SIK_SIN":"siksang","SANG_GWAN":"siksang",
    "PYEON_JAE":"jae","JEONG_JAE":"jae",
    "PYEON_GWAN":"gwan","JEONG_GWAN":"gwan",
    "PYEON_IN":"inseong","JEONG_IN":"inseong",
}
CATEGORY_KOR = {"bigyeop":"비겁","siksang":"식상","jae":"재성","gwan":"관성","inseong":"인성"}

def role_category(dm_element: str, element: str) -> str:
    if element == dm_element:
        return "bigyeop"
    if WUXING_SHENG[dm_element] == element:
        return "siksang"
    if WUXING_KE[dm_element] == element:
        return "jae"
    if WUXING_KE[element] == dm_element:
        return "gwan"
    return "inseong"

def category_element(dm_element: str, category: str) -> str:
    return {
        "bigyeop": dm_element,
        "siksang": generates(dm_element),
        "jae": controls(dm_element),
        "gwan": controlled_by(dm_element),
        "inseong": generated_by(dm_element),
    }[category]

_CATEGORY_TEN_GODS = {
    "bigyeop": ("BI_GYEON", "GYEOB_JAE"),
    "siksang": ("SIK_SIN", "SANG_GWAN"),
    "jae": ("PYEON_JAE", "JEONG_JAE"),
    "gwan": ("PYEON_GWAN", "JEONG_GWAN"),
    "inseong": ("PYEON_IN", "JEONG_IN"),
}

def ten_god_for_element(day_stem: str, element: str, yang: bool) -> str:
    same_polarity = is_yang_stem(day_stem) == yang
    pair = _CATEGORY_TEN_GODS[role_category(stem_element(day_stem), element)]
    return pair[0] if same_polarity else pair[1]

def ten_god_for(day_stem: str, target_stem: str) -> str:
    return ten_god_for_element(day_stem, stem_element(target_stem), is_yang_stem(target_stem))

def supports_day_master(day_stem: str, target_stem: str) -> bool:
    # 비겁·인성은 일간을 돕는다
    return TEN_GOD_CATEGORY[ten_god_for(day_stem, target_stem)] in ("bigyeop", "inseong")

# -------------------------
# 5단계: 원국(四柱)
# -------------------------
@dataclass(frozen=True)
class Pillar:
    gan: str
    zhi: str

    def __post_init__(self):
        if self.gan not in STEM_TO_WUXING:
            raise ValueError(f"알 수 없는 천간입니다: {self.gan!r}")
        if self.zhi not in BRANCH_TO_WUXING_MAIN:
            raise ValueError(f"알 수 없는 지지입니다: {self.zhi!r}")

    @classmethod
    def parse(cls, text: str) -> "Pillar":
        if not isinstance(text, str) or len(text) != 2:
            raise ValueError(f"간지는 두 글자여야 합니다: {text!r}")
        return cls(text[0], text[1])

    def label(self) -> str:
        return f"{self.gan}{self.zhi}({GAN_TO_KOR[self.gan]}{ZHI_TO_KOR[self.zhi]})"

@dataclass(frozen=True)
class PillarSet:
    year: Pillar
    month: Pillar
    day: Pillar
    hour: Pillar

    def __post_init__(self):
        for pos in POSITIONS:
            if not isinstance(getattr(self, pos), Pillar):
                raise ValueError(f"{POSITION_KOR[pos]}는 Pillar여야 합니다: {getattr(self, pos)!r}")

    @classmethod
    def from_ganzhi(cls, pillars) -> "PillarSet":
        """("甲子","乙丑","丙寅","丁卯") 처럼 연/월/일/시 순서의 간지 4개로 생성"""
        items = list(pillars)
        if len(items) != 4:
            raise ValueError(f"사주는 정확히 4개의 주(柱)가 필요합니다: {len(items)}개 입력됨")
        return cls(*(p if isinstance(p, Pillar) else Pillar.parse(p) for p in items))

    @property
    def day_master(self) -> str:
        return self.day.gan

    def pillar_at(self, position: str) -> Pillar:
        position_index(position)
        return getattr(self, position)

    def stem_at(self, position: str) -> str:
        return self.pillar_at(position).gan

    def branch_at(self, position: str) -> str:
        return self.pillar_at(position).zhi

    def stems(self) -> tuple[str, str, str, str]:
        return (self.year.gan, self.month.gan, self.day.gan, self.hour.gan)

    def branches(self) -> tuple[str, str, str, str]:
        return (self.year.zhi, self.month.zhi, self.day.zhi, self.hour.zhi)

    def label(self) -> str:
        return " ".join(getattr(self, pos).label() for pos in POSITIONS)
