"""
字典构建测试
"""

from hexkey.dictbuild import build_dict, build_tables, collect_syllables, is_chinese, read_word_list, word_to_pinyin
from hexkey.engine import Dictionary, create_engine
from hexkey.engine.layout import groups_for_text


class TestPinyin:

    def test_word_to_pinyin(self):
        assert word_to_pinyin('普瑞') == ['pu', 'rui']
        assert word_to_pinyin('你好') == ['ni', 'hao']

    def test_u_umlaut_as_v(self):
        assert word_to_pinyin('绿') == ['lv']

    def test_is_chinese(self):
        assert is_chinese('中国')
        assert not is_chinese('中a')
        assert not is_chinese('')


class TestBuildTables:

    def test_chars_and_phrases(self):
        chars, phrases = build_tables(['普', '铺', '普瑞', '你好', 'hello', '你好'])
        assert chars == {'pu': ['普', '铺']}
        assert phrases == {"pu'rui": ['普瑞'], "ni'hao": ['你好']}

    def test_order_preserved(self):
        chars, _ = build_tables(['铺', '普'])
        assert chars['pu'] == ['铺', '普']

    def test_syllables_from_phrases(self):
        chars, phrases = build_tables(['普', '你好', '普瑞'])
        assert collect_syllables(chars, phrases) == ['pu', 'ni', 'hao', 'rui']


class TestBuildDict:

    def test_read_word_list(self, tmp_path):
        path = tmp_path / 'words.txt'
        path.write_text('# 常用词\n你好 100\n\n普瑞\n', encoding='utf-8')
        assert read_word_list(path) == ['你好', '普瑞']

    def test_round_trip_with_engine(self, tmp_path):
        words = tmp_path / 'words.txt'
        words.write_text('你\n好\n你好\n', encoding='utf-8')
        stats = build_dict(words, tmp_path / 'dicts')
        assert stats == {'syllables': 2, 'chars': 2, 'phrases': 1}

        d = Dictionary.load(tmp_path / 'dicts')
        assert d.syllables == ('ni', 'hao')
        assert d.get_phrases("ni'hao") == ('你好',)

    def test_given_syllable_table(self, tmp_path):
        words = tmp_path / 'words.txt'
        words.write_text('你\n', encoding='utf-8')
        table = tmp_path / 'table.txt'
        table.write_text('ni\nhao\nma\n', encoding='utf-8')
        stats = build_dict(words, tmp_path / 'dicts', table)
        assert stats['syllables'] == 3
        assert Dictionary.load(tmp_path / 'dicts').is_valid_syllable('ma')

    def test_phrase_only_syllables(self, tmp_path):
        """只在词组里出现的音节也进音节表，词组可以打出来"""
        words = tmp_path / 'words.txt'
        words.write_text('你好\n', encoding='utf-8')
        stats = build_dict(words, tmp_path / 'dicts')
        assert stats == {'syllables': 2, 'chars': 0, 'phrases': 1}

        engine = create_engine(dicts_dir=str(tmp_path / 'dicts'))
        for group in groups_for_text('nihao'):
            engine.press_key(group)
        assert [c.value for c in engine.candidates] == ['你好']
