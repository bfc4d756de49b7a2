"""
字典构建

从词表（每行一个词，按常用程度排列，可带 "词 频率"）生成：
- char_dict.json   - 音节→字 映射
- phrase_dict.json - 音节键（ni'hao）→词 映射
- pinyin_table.txt - 合法音节列表（未给出时由字表和词组键生成）

列表顺序即输入顺序（先出现者在前），构建器不重排。
"""

import re
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

import orjson
import pypinyin

from hexkey.engine.config import PHRASE_SEPARATOR
from hexkey.engine.dictionary import CHAR_DICT, PHRASE_DICT, SYLLABLE_TABLE
from hexkey.engine.logging import get_logger, log_execution_time

logger = get_logger('hexkey.dictbuild')


def is_chinese(text: str) -> bool:
    """检查是否为纯中文"""
    return bool(text) and all('\u4e00' <= c <= '\u9fff' for c in text)


def word_to_pinyin(word: str) -> List[str]:
    """获取词语的拼音列表（无声调，ü 记作 v）"""
    pys = pypinyin.lazy_pinyin(word, style=pypinyin.Style.NORMAL, v_to_u=False)
    result = []
    for py in pys:
        py = re.sub(r'[^a-z]', '', py.lower().replace('ü', 'v'))
        if py:
            result.append(py)
    return result


def read_word_list(path: Path) -> List[str]:
    """读取词表：跳过空行与 # 注释，只取每行第一列"""
    words = []
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            words.append(line.split()[0])
    return words


def build_tables(words: Iterable[str]) -> Tuple[Dict[str, List[str]], Dict[str, List[str]]]:
    """
    词表 → (字表, 词组表)

    非中文词条、拼音数与字数不符的词条被跳过
    """
    char_dict: Dict[str, List[str]] = {}
    phrase_dict: Dict[str, List[str]] = {}
    skipped = 0

    for word in words:
        if not is_chinese(word):
            skipped += 1
            continue
        syllables = word_to_pinyin(word)
        if len(syllables) != len(word):
            skipped += 1
            continue

        if len(word) == 1:
            bucket = char_dict.setdefault(syllables[0], [])
        else:
            bucket = phrase_dict.setdefault(PHRASE_SEPARATOR.join(syllables), [])
        if word not in bucket:
            bucket.append(word)

    if skipped:
        logger.info(f"跳过 {skipped} 个词条")
    return char_dict, phrase_dict


def collect_syllables(char_dict: Dict[str, List[str]], phrase_dict: Dict[str, List[str]]) -> List[str]:
    """字表的音节加上只在词组里出现的音节（先出现者在前）"""
    ordered = dict.fromkeys(char_dict)
    for key in phrase_dict:
        ordered.update(dict.fromkeys(key.split(PHRASE_SEPARATOR)))
    return list(ordered)


def write_tables(
    output_dir: Path,
    char_dict: Dict[str, List[str]],
    phrase_dict: Dict[str, List[str]],
    syllables: Iterable[str] = None,
):
    """写出字典文件"""
    output_dir.mkdir(parents=True, exist_ok=True)
    with open(output_dir / CHAR_DICT, 'wb') as f:
        f.write(orjson.dumps(char_dict, option=orjson.OPT_INDENT_2))
    with open(output_dir / PHRASE_DICT, 'wb') as f:
        f.write(orjson.dumps(phrase_dict, option=orjson.OPT_INDENT_2))

    if syllables is None:
        syllables = collect_syllables(char_dict, phrase_dict)
    with open(output_dir / SYLLABLE_TABLE, 'w', encoding='utf-8') as f:
        for s in syllables:
            f.write(s + '\n')


@log_execution_time(logger)
def build_dict(word_list: Path, output_dir: Path, syllable_table: Path = None) -> Dict[str, int]:
    """
    构建字典

    Args:
        word_list: 词表文件
        output_dir: 输出目录
        syllable_table: 现成的音节表（可选，否则由字表和词组键生成）

    Returns:
        统计信息
    """
    words = read_word_list(word_list)
    logger.info(f"读取 {word_list}: {len(words):,} 个词条")
    char_dict, phrase_dict = build_tables(words)

    if syllable_table is not None:
        with open(syllable_table, 'r', encoding='utf-8') as f:
            syllables = [line.strip() for line in f if line.strip()]
    else:
        syllables = collect_syllables(char_dict, phrase_dict)

    write_tables(output_dir, char_dict, phrase_dict, syllables)
    stats = {
        'syllables': len(syllables),
        'chars': sum(len(v) for v in char_dict.values()),
        'phrases': sum(len(v) for v in phrase_dict.values()),
    }
    logger.info(f"字典已写入 {output_dir}: {stats}")
    return stats
