"""
默认键盘布局（六脉神键）

26 个字母分在 6 个按键组上，另有标点键与功能键
"""

from typing import Dict, List, Optional, Sequence

from .config import KeyGroup


# 功能键
BACKSPACE = 'backspace'
SPACE = 'space'
ENTER = 'enter'
CANCEL = 'cancel'
TOGGLE_MODE = 'toggle_mode'

LETTER_GROUPS = ('qwert', 'yuiop', 'asdfg', 'hjkl', 'zxcvb', 'nm')


def group_from_letters(letters: str, label: Optional[str] = None) -> KeyGroup:
    """由字母串构造按键组，如 'qwert'"""
    chars = tuple(letters.lower())
    return KeyGroup(label=label or letters.upper(), chars=chars)


def _punct(char: str) -> KeyGroup:
    return KeyGroup(label=char, chars=(char,))


def _action(name: str, label: str, sub_label: str = None) -> KeyGroup:
    return KeyGroup(label=label, action=name, sub_label=sub_label, type='action')


ROW_1 = [group_from_letters('qwert'), group_from_letters('yuiop'), _action(BACKSPACE, '⌫', 'Del')]
ROW_2 = [group_from_letters('asdfg'), group_from_letters('hjkl'), _punct('，')]
ROW_3 = [group_from_letters('zxcvb'), group_from_letters('nm'), _punct('。')]
ROW_4 = [
    _action(TOGGLE_MODE, '词/字'),
    _punct('？'),
    _action(SPACE, '空格'),
    _punct('！'),
    _action(ENTER, '⏎', 'Enter'),
]
TOP_UTILITY = [_action(CANCEL, '收起', 'close')]

DEFAULT_ROWS = [ROW_1, ROW_2, ROW_3, ROW_4]

_LETTER_INDEX: Dict[str, KeyGroup] = {
    c: key for row in DEFAULT_ROWS for key in row if key.is_letter_group for c in key.chars
}
_ACTION_INDEX: Dict[str, KeyGroup] = {
    key.action: key for row in DEFAULT_ROWS + [TOP_UTILITY] for key in row if key.action
}


def group_for_letter(letter: str) -> Optional[KeyGroup]:
    """字母所在的按键组"""
    return _LETTER_INDEX.get(letter.lower())


def groups_for_text(text: str) -> List[KeyGroup]:
    """
    把一串字母换成实际按下的按键组

    非字母字符被忽略，如 'ni hao' → [NM, YUIOP, HJKL, ASDFG, YUIOP]
    """
    return [group_for_letter(c) for c in text if group_for_letter(c) is not None]


def action_key(name: str) -> KeyGroup:
    """按名称取功能键"""
    try:
        return _ACTION_INDEX[name]
    except KeyError:
        raise ValueError(f"未知功能键: {name}") from None


def slide_letter(group: KeyGroup, index: int) -> str:
    """长按滑动选字母：按位置查表，越界时取两端"""
    if not group.chars:
        raise ValueError(f"按键 {group.label} 没有字母")
    index = max(0, min(index, len(group.chars) - 1))
    return group.chars[index]


def default_slide_index(group: KeyGroup) -> int:
    """长按时初始停在中间字母"""
    return len(group.chars) // 2


def parse_groups(parts: Sequence[str]) -> List[KeyGroup]:
    """'qwert,yuiop' 拆分后的字母串 → 按键组（空串跳过）"""
    return [group_from_letters(s.strip()) for s in parts if s.strip()]
