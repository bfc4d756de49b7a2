"""
键盘布局测试
"""

import pytest

from hexkey.engine.layout import (
    DEFAULT_ROWS, LETTER_GROUPS, TOP_UTILITY, action_key, default_slide_index, group_for_letter, group_from_letters,
    groups_for_text, parse_groups, slide_letter,
)


class TestLayout:

    def test_every_letter_in_one_group(self):
        letter_keys = [k for row in DEFAULT_ROWS for k in row if k.is_letter_group]
        assert len(letter_keys) == len(LETTER_GROUPS)
        letters = ''.join(c for k in letter_keys for c in k.chars)
        assert sorted(letters) == [chr(c) for c in range(ord('a'), ord('z') + 1)]

    def test_group_for_letter(self):
        assert group_for_letter('m').chars == ('n', 'm')
        assert group_for_letter('Q').label == 'QWERT'
        assert group_for_letter('1') is None

    def test_groups_for_text(self):
        labels = [g.label for g in groups_for_text('ni hao')]
        assert labels == ['NM', 'YUIOP', 'HJKL', 'ASDFG', 'YUIOP']

    def test_punctuation_keys(self):
        punct = [k.chars[0] for row in DEFAULT_ROWS for k in row if len(k.chars) == 1]
        assert punct == ['，', '。', '？', '！']

    def test_action_key(self):
        assert action_key('backspace').label == '⌫'
        assert action_key('cancel') is TOP_UTILITY[0]
        with pytest.raises(ValueError):
            action_key('shift')

    def test_parse_groups(self):
        groups = parse_groups(['qwert', ' yuiop ', ''])
        assert [g.label for g in groups] == ['QWERT', 'YUIOP']

    def test_group_from_letters_label(self):
        assert group_from_letters('ABC', label='x').chars == ('a', 'b', 'c')
        assert group_from_letters('ABC', label='x').label == 'x'


class TestSlide:

    def test_slide_letter(self):
        group = group_from_letters('qwert')
        assert slide_letter(group, 0) == 'q'
        assert slide_letter(group, 4) == 't'

    def test_slide_clamped(self):
        group = group_from_letters('nm')
        assert slide_letter(group, -3) == 'n'
        assert slide_letter(group, 10) == 'm'

    def test_slide_without_letters(self):
        with pytest.raises(ValueError):
            slide_letter(action_key('space'), 0)

    def test_default_index(self):
        assert default_slide_index(group_from_letters('qwert')) == 2
        assert default_slide_index(group_from_letters('hjkl')) == 2
