from typing import List, Mapping, Optional, Sequence, Set, Tuple

from .config import (
    Candidate, CandidateKind, CandidateMode, EngineConfig, KeyGroup, Segment,
    PHRASE_BASE_SCORE, CHAR_BASE_SCORE, FOCUSED_BASE_SCORE, RAW_BASE_SCORE,
    CHAR_MODE_BONUS, WORD_MODE_BONUS, LENGTH_WEIGHT, USAGE_WEIGHT,
)
from .dictionary import Dictionary
from .segmenter import SegmentLattice


def raw_reading(buffer: Sequence[KeyGroup]) -> str:
    """各按键组的首字母拼接（无字母的组记为 ?）"""
    return ''.join(g.first_char for g in buffer)


class CandidateGenerator:
    """候选生成器（词组 / 单字 / 原始字母兜底），纯函数，不持有状态"""

    def __init__(self, dictionary: Dictionary, config: EngineConfig = None):
        self.dictionary = dictionary
        self.config = config or EngineConfig()

    def rank(
        self,
        buffer: Sequence[KeyGroup],
        lattice: SegmentLattice,
        focused: Optional[Segment] = None,
        mode: CandidateMode = CandidateMode.WORD,
        usage: Optional[Mapping[str, int]] = None,
    ) -> List[Candidate]:
        """
        生成候选，按分数降序

        沿切分网格从位置 0 往后走：每条可达的音节前缀查一次词组，
        首音节出单字；词典里没有更长词组以当前前缀开头时不再往下走，
        所以不需要展开全部切分方案。
        同一 (value, consumed_len) 只保留第一次出现的候选

        Args:
            buffer: 待定按键组
            lattice: buffer 的切分网格
            focused: 用户锁定的音节（只出该音节的单字）
            mode: 词 / 字偏好
            usage: 选用次数

        Returns:
            候选列表
        """
        if not buffer:
            return []

        usage = usage or {}
        candidates: List[Candidate] = []
        seen: Set[Tuple[str, int]] = set()

        def add(value: str, base: float, consumed: int, kind: CandidateKind, index: int = 0):
            key = (value, consumed)
            if key in seen:
                return
            seen.add(key)
            score = self._score(value, base, kind, index, mode, usage)
            candidates.append(Candidate(value, value, score, consumed, kind))

        if focused is not None:
            # 锁定音节时只出单字，不拼词组
            for i, char in enumerate(self.dictionary.get_chars(focused.text)):
                add(char, FOCUSED_BASE_SCORE, focused.length, CandidateKind.CHARACTER, i)
            return self._sorted(candidates)

        max_depth = self.config.max_phrase_syllables

        def walk(pos: int, syllables: List[str]):
            for seg in lattice.edges_at(pos):
                key = Dictionary.phrase_key(syllables + [seg.text])
                consumed = pos + seg.length
                depth = len(syllables) + 1

                # 1. 词组：前 depth 个音节拼成的键
                for i, phrase in enumerate(self.dictionary.get_phrases(key)):
                    add(phrase, PHRASE_BASE_SCORE, consumed, CandidateKind.PHRASE, i)

                # 2. 首音节单字
                if depth == 1:
                    for i, char in enumerate(self.dictionary.get_chars(seg.text)):
                        add(char, CHAR_BASE_SCORE, seg.length, CandidateKind.CHARACTER, i)

                if depth < max_depth and self.dictionary.has_phrase_prefix(key):
                    walk(consumed, syllables + [seg.text])

        walk(0, [])

        # 3. 兜底：无法切分时给出原始字母
        if not lattice.segmentable and not candidates:
            raw = raw_reading(buffer)
            add(raw, RAW_BASE_SCORE, len(buffer), CandidateKind.RAW)

        return self._sorted(candidates)

    def _score(
        self,
        value: str,
        base: float,
        kind: CandidateKind,
        index: int,
        mode: CandidateMode,
        usage: Mapping[str, int],
    ) -> float:
        score = base

        # 模式加权
        if mode == CandidateMode.CHARACTER and kind == CandidateKind.CHARACTER:
            score += CHAR_MODE_BONUS
        elif mode == CandidateMode.WORD and kind == CandidateKind.PHRASE:
            score += WORD_MODE_BONUS

        score += len(value) * LENGTH_WEIGHT
        score += usage.get(value, 0) * USAGE_WEIGHT

        # 词典顺序惩罚最后扣除，只用于打破平分
        score -= index * self.config.tie_break_step
        return score

    @staticmethod
    def _sorted(candidates: List[Candidate]) -> List[Candidate]:
        # 稳定排序：同分时保持生成顺序
        return sorted(candidates, key=lambda c: c.score, reverse=True)
