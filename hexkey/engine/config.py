from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional, Tuple


# 评分常量
PHRASE_BASE_SCORE = 150
CHAR_BASE_SCORE = 50
FOCUSED_BASE_SCORE = 100
RAW_BASE_SCORE = 0
CHAR_MODE_BONUS = 200       # 字模式下单字大幅加权
WORD_MODE_BONUS = 50        # 词模式下词组适度加权
LENGTH_WEIGHT = 5           # 每个字 +5，偏好更长的匹配
USAGE_WEIGHT = 10           # 每次选用 +10，不衰减

PHRASE_SEPARATOR = "'"


@dataclass
class EngineConfig:
    """引擎配置"""
    max_buffer_len: int = 20                 # 待定键序列上限，限制切分路径爆炸
    max_segmentations: Optional[int] = 2048  # segment() 最多列出的切分方案数（None 不限），不影响候选
    max_phrase_syllables: int = 4            # 词组最多拼接的音节数
    tie_break_step: float = 0.01             # 词典顺序惩罚步长
    cache_size: int = 256
    top_k: int = 0                           # 快照中的候选数量（0 不限）
    log_level: str = "INFO"


class CandidateKind(str, Enum):
    PHRASE = "phrase"
    CHARACTER = "character"
    RAW = "raw"


class CandidateMode(str, Enum):
    """候选偏好：词 / 字"""
    WORD = "word"
    CHARACTER = "character"

    def toggled(self) -> "CandidateMode":
        return CandidateMode.CHARACTER if self is CandidateMode.WORD else CandidateMode.WORD


class CompositionState(str, Enum):
    IDLE = "idle"
    COMPOSING = "composing"


@dataclass(frozen=True)
class KeyGroup:
    """
    一个物理按键

    chars 为该键包含的字母（顺序即显示/滑动顺序）；action 键（退格、空格等）没有字母
    """
    label: str
    chars: Tuple[str, ...] = ()
    action: Optional[str] = None
    sub_label: Optional[str] = None
    type: str = "char-group"   # char-group / action / placeholder

    def __post_init__(self):
        # 列表、字符串一律转成元组，保证可哈希
        object.__setattr__(self, "chars", tuple(self.chars or ()))

    @property
    def first_char(self) -> str:
        return self.chars[0] if self.chars else "?"

    @property
    def is_letter_group(self) -> bool:
        return self.action is None and len(self.chars) > 1


@dataclass(frozen=True)
class Segment:
    """一个音节：拼音串 + 消耗的按键数"""
    text: str
    length: int

    def __str__(self):
        return self.text


@dataclass(frozen=True)
class Candidate:
    """候选结果"""
    display: str
    value: str
    score: float
    consumed_len: int
    kind: CandidateKind = CandidateKind.CHARACTER


@dataclass
class SelectionRecord:
    """一次上屏前的选择，用于撤销"""
    text: str
    keys: List[KeyGroup]


@dataclass
class UserContext:
    """跨输入过程保留的用户状态（进程内，不落盘）"""
    candidate_mode: CandidateMode = CandidateMode.WORD
    usage_history: Dict[str, int] = field(default_factory=dict)

    def record_usage(self, value: str):
        self.usage_history[value] = self.usage_history.get(value, 0) + 1


@dataclass
class CompositionSnapshot:
    """提供给展示层的只读快照"""
    state: CompositionState = CompositionState.IDLE
    staged_text: str = ""
    pending_keys: List[str] = field(default_factory=list)
    pending_display: List[Segment] = field(default_factory=list)
    candidates: List[Candidate] = field(default_factory=list)
    available_prefixes: List[Segment] = field(default_factory=list)
    focused_syllable: Optional[Segment] = None
    candidate_mode: CandidateMode = CandidateMode.WORD


class EventKind(str, Enum):
    LETTER_GROUP = "letter_group"
    LITERAL = "literal"
    BACKSPACE = "backspace"
    SPACE = "space"
    ENTER = "enter"
    CANCEL = "cancel"
    TOGGLE_MODE = "toggle_mode"
    FOCUS_SYLLABLE = "focus_syllable"
    SELECT_CANDIDATE = "select_candidate"
    SLIDE_PICK = "slide_pick"


@dataclass(frozen=True)
class KeyEvent:
    """输入事件（每个事件处理完才接受下一个）"""
    kind: EventKind
    group: Optional[KeyGroup] = None
    char: Optional[str] = None
    segment: Optional[Segment] = None
    candidate: Optional[Candidate] = None
    index: Optional[int] = None

    @classmethod
    def letter_group(cls, group: KeyGroup) -> "KeyEvent":
        return cls(EventKind.LETTER_GROUP, group=group)

    @classmethod
    def literal(cls, char: str) -> "KeyEvent":
        return cls(EventKind.LITERAL, char=char)

    @classmethod
    def focus(cls, segment: Optional[Segment]) -> "KeyEvent":
        return cls(EventKind.FOCUS_SYLLABLE, segment=segment)

    @classmethod
    def select(cls, candidate: Candidate) -> "KeyEvent":
        return cls(EventKind.SELECT_CANDIDATE, candidate=candidate)

    @classmethod
    def slide(cls, group: KeyGroup, index: int) -> "KeyEvent":
        return cls(EventKind.SLIDE_PICK, group=group, index=index)
