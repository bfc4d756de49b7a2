"""
字典服务模块

提供合法音节表、音节→汉字映射、多音节→词组映射。
字典只加载一次，之后只读；列表内顺序即候选的默认排序，加载时原样保留。
"""

import orjson
import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import PHRASE_SEPARATOR
from .logging import log_execution_time


# 包内自带词典
DEFAULT_DICT_DIR = Path(__file__).resolve().parent.parent / 'data' / 'dicts'

SYLLABLE_TABLE = 'pinyin_table.txt'
CHAR_DICT = 'char_dict.json'
PHRASE_DICT = 'phrase_dict.json'


class Dictionary:
    """字典主类"""

    def __init__(
        self,
        syllables: Iterable[str] = (),
        chars: Optional[Mapping[str, Sequence[str]]] = None,
        phrases: Optional[Mapping[str, Sequence[str]]] = None,
        source: str = "<memory>",
    ):
        self.source = source
        self._char_dict: Dict[str, Tuple[str, ...]] = {
            k.lower(): tuple(v) for k, v in (chars or {}).items()
        }
        self._phrase_dict: Dict[str, Tuple[str, ...]] = {
            k.lower(): tuple(v) for k, v in (phrases or {}).items()
        }

        # 合法音节（保留书写顺序，去重）
        ordered = list(dict.fromkeys(s.strip().lower() for s in syllables if s.strip()))
        # 音节表为空时从单字表提取
        if not ordered:
            ordered = list(self._char_dict.keys())
        self._syllables: Tuple[str, ...] = tuple(ordered)
        self._syllable_set = frozenset(ordered)

        # 按长度分桶，切分时只比较等长音节
        buckets: Dict[int, List[str]] = {}
        for s in ordered:
            buckets.setdefault(len(s), []).append(s)
        self._by_length: Dict[int, Tuple[str, ...]] = {n: tuple(v) for n, v in buckets.items()}

        # 词组键的真前缀（按音节截断），生成候选时用来剪枝
        self._phrase_prefixes = frozenset(
            PHRASE_SEPARATOR.join(parts[:k])
            for parts in (key.split(PHRASE_SEPARATOR) for key in self._phrase_dict)
            for k in range(1, len(parts))
        )

    @classmethod
    @log_execution_time()
    def load(cls, dict_dir=None) -> "Dictionary":
        """从目录加载字典（缺失的文件按空表处理）"""
        dict_dir = Path(dict_dir) if dict_dir else DEFAULT_DICT_DIR

        syllables: List[str] = []
        table_path = dict_dir / SYLLABLE_TABLE
        if table_path.exists():
            with open(table_path, 'r', encoding='utf-8') as f:
                syllables = [line.strip() for line in f if line.strip() and not line.startswith('#')]

        return cls(
            syllables,
            _load_json(dict_dir / CHAR_DICT),
            _load_json(dict_dir / PHRASE_DICT),
            source=str(dict_dir),
        )

    # ===== 查询 =====

    @property
    def syllables(self) -> Tuple[str, ...]:
        return self._syllables

    @property
    def max_syllable_len(self) -> int:
        return max(self._by_length) if self._by_length else 0

    @property
    def syllable_count(self) -> int:
        return len(self._syllables)

    @property
    def char_count(self) -> int:
        return sum(len(v) for v in self._char_dict.values())

    @property
    def phrase_count(self) -> int:
        return sum(len(v) for v in self._phrase_dict.values())

    def is_valid_syllable(self, syllable: str) -> bool:
        return syllable.lower() in self._syllable_set

    def syllables_of_length(self, length: int) -> Tuple[str, ...]:
        return self._by_length.get(length, ())

    def get_chars(self, syllable: str) -> Tuple[str, ...]:
        """音节 → 单字列表（词典顺序）"""
        return self._char_dict.get(syllable.lower(), ())

    def get_phrases(self, key: str) -> Tuple[str, ...]:
        """音节键（如 ni'hao） → 词组列表（词典顺序）"""
        return self._phrase_dict.get(key.lower(), ())

    def has_phrase_prefix(self, key: str) -> bool:
        """是否有更长的词组以 key（完整音节）开头"""
        return key.lower() in self._phrase_prefixes

    @staticmethod
    def phrase_key(syllables: Sequence[str]) -> str:
        return PHRASE_SEPARATOR.join(syllables)

    def __repr__(self):
        return (f"Dictionary(source={self.source!r}, syllables={self.syllable_count}, "
                f"chars={self.char_count}, phrases={self.phrase_count})")


def _load_json(path: Path) -> dict:
    """加载 JSON 文件"""
    if path.exists():
        with open(path, 'rb') as f:
            return orjson.loads(f.read())
    return {}


# 全局单例
_dict_service: Optional[Dictionary] = None


def get_dict_service(dict_dir: str = None) -> Dictionary:
    """获取字典单例（仅首次调用时的目录生效）"""
    global _dict_service
    if _dict_service is None:
        _dict_service = Dictionary.load(dict_dir or os.getenv('HEXKEY_DICT_DIR') or None)
    return _dict_service
