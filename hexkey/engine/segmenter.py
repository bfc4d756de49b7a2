"""
按键组切分模块

功能：
1. 判断一段按键组能否打出某个音节（逐字母匹配）
2. 构建切分网格：每个位置只保留后缀仍可切分的音节
3. 按需列出整个待定按键序列的切分方案
4. 列出按键序列开头能打出的所有音节（音节选择栏）
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from .cache import LRUCache
from .config import EngineConfig, KeyGroup, Segment
from .dictionary import Dictionary


SegmentPath = Tuple[Segment, ...]


def matches_groups(syllable: str, groups: Sequence[KeyGroup]) -> bool:
    """
    音节的第 i 个字母必须属于第 i 个按键组（忽略大小写）

    长度不等、或按键组没有字母（标点、功能键）时一律返回 False，不抛异常
    """
    if len(syllable) != len(groups):
        return False
    for letter, group in zip(syllable, groups):
        chars = getattr(group, 'chars', None)
        if not chars:
            return False
        letter = letter.lower()
        if not any(letter == c.lower() for c in chars):
            return False
    return True


def _cache_key(buffer: Sequence[KeyGroup]) -> Tuple[Tuple[str, ...], ...]:
    # 切分只取决于每组的字母
    return tuple(tuple(getattr(g, 'chars', None) or ()) for g in buffer)


@dataclass(frozen=True)
class SegmentLattice:
    """
    切分网格

    edges[i] 是从位置 i 开始、且剩余按键仍能完整切分的音节（按长度递增）。
    从位置 0 沿 edges 走到末尾的每条路线都是一个完整切分方案，
    不必把方案全部展开也能知道有哪些首音节、哪些词组前缀可达。
    """
    edges: Tuple[Tuple[Segment, ...], ...]

    @property
    def length(self) -> int:
        return len(self.edges)

    @property
    def segmentable(self) -> bool:
        """空 buffer 视为可切分（唯一方案是空方案）"""
        return not self.edges or bool(self.edges[0])

    def edges_at(self, pos: int) -> Tuple[Segment, ...]:
        if pos >= len(self.edges):
            return ()
        return self.edges[pos]

    def paths(self, limit: Optional[int] = None) -> Iterator[SegmentPath]:
        """按字典序（先短音节）逐个给出完整切分方案，最多 limit 个"""
        if not self.segmentable:
            return
        count = 0
        for path in self._walk(0):
            if limit is not None and count >= limit:
                return
            yield path
            count += 1

    def _walk(self, pos: int) -> Iterator[SegmentPath]:
        if pos == len(self.edges):
            yield ()
            return
        for seg in self.edges[pos]:
            for suffix in self._walk(pos + seg.length):
                yield (seg,) + suffix


class KeyGroupSegmenter:
    """按键组切分器"""

    def __init__(self, dictionary: Dictionary, config: EngineConfig = None):
        self.dictionary = dictionary
        self.config = config or EngineConfig()
        self.max_syllable_len = dictionary.max_syllable_len
        self.cache = LRUCache(self.config.cache_size)

    def lattice(self, buffer: Sequence[KeyGroup]) -> SegmentLattice:
        """
        构建 buffer 的切分网格

        自后向前动态规划：ok[i] 表示 buffer[i:] 可以完整切分，
        位置 i 只保留落点 ok 的音节，所以网格里每条边都在某个完整方案上。

        Args:
            buffer: 按键组序列

        Returns:
            SegmentLattice（按字母相同的 buffer 共用缓存）
        """
        key = _cache_key(buffer)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        n = len(buffer)
        ok = [False] * (n + 1)
        ok[n] = True
        edges: List[Tuple[Segment, ...]] = [()] * n

        for i in range(n - 1, -1, -1):
            reachable = tuple(seg for seg in self._match_at(buffer, i) if ok[i + seg.length])
            edges[i] = reachable
            ok[i] = bool(reachable)

        lattice = SegmentLattice(tuple(edges))
        self.cache.put(key, lattice)
        return lattice

    def segment(self, buffer: Sequence[KeyGroup]) -> List[SegmentPath]:
        """
        列出 buffer 的切分方案

        空 buffer 返回一个空方案；非空且无法切分时返回空列表。
        方案总数受 max_segmentations 限制；生成候选不依赖这个列表。

        Args:
            buffer: 按键组序列

        Returns:
            切分方案列表，每个方案是 Segment 元组，长度之和等于 len(buffer)
        """
        return list(self.lattice(buffer).paths(self.config.max_segmentations))

    def available_prefixes(self, buffer: Sequence[KeyGroup]) -> List[Segment]:
        """
        buffer 开头 1..6 个按键能打出的所有音节

        不要求剩余按键可切分，按长度、字母序排列
        """
        results = [
            seg
            for length in range(1, min(self.max_syllable_len, len(buffer)) + 1)
            for seg in self._match_chunk(buffer[:length])
        ]
        results.sort(key=lambda s: (s.length, s.text))
        return results

    def best_path_display(self, buffer: Sequence[KeyGroup]) -> List[Segment]:
        """首选切分；无法切分时退化为各键首字母拼成的一段"""
        if not buffer:
            return []
        first = next(self.lattice(buffer).paths(1), None)
        if first:
            return list(first)
        raw = ''.join(g.first_char for g in buffer)
        return [Segment(raw, len(buffer))]

    def _match_at(self, buffer: Sequence[KeyGroup], index: int) -> List[Segment]:
        """从 index 开始、按长度递增列出能匹配的音节"""
        remaining = len(buffer) - index
        matches = []
        for length in range(1, min(self.max_syllable_len, remaining) + 1):
            matches.extend(self._match_chunk(buffer[index:index + length]))
        return matches

    def _match_chunk(self, chunk: Sequence[KeyGroup]) -> List[Segment]:
        length = len(chunk)
        return [
            Segment(s, length)
            for s in self.dictionary.syllables_of_length(length)
            if matches_groups(s, chunk)
        ]

    def clear_cache(self):
        self.cache.clear()


def create_segmenter(dictionary: Dictionary = None, config: EngineConfig = None) -> KeyGroupSegmenter:
    """
    创建切分器

    Args:
        dictionary: 字典（默认使用自带词典）
        config: 引擎配置

    Returns:
        KeyGroupSegmenter 实例
    """
    if dictionary is None:
        from .dictionary import get_dict_service
        dictionary = get_dict_service()
    return KeyGroupSegmenter(dictionary, config)
