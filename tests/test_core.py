"""
输入过程状态机测试
"""

import pytest

from hexkey.engine import (
    BufferSink, CandidateKind, CandidateMode, CompositionEngine, CompositionError, CompositionState, Dictionary,
    EngineConfig, EventKind, KeyEvent, Segment, StaleCandidateError, UserContext,
)
from hexkey.engine.layout import action_key, group_from_letters, groups_for_text


def type_text(engine, text):
    for group in groups_for_text(text):
        assert engine.press_key(group)


def select_value(engine, value):
    """按字选择候选"""
    for candidate in engine.candidates:
        if candidate.value == value:
            engine.select_candidate(candidate)
            return candidate
    raise AssertionError(f"没有候选 {value}: {[c.value for c in engine.candidates]}")


class TestState:
    """空闲 / 输入中"""

    def test_initial(self, engine):
        assert engine.state == CompositionState.IDLE
        assert engine.pending_keys == ()
        assert engine.staged_text == ""
        assert engine.candidates == []
        assert engine.segmentations == []

    def test_composing(self, engine):
        type_text(engine, 'pu')
        assert engine.state == CompositionState.COMPOSING
        assert engine.is_composing
        assert [k.label for k in engine.pending_keys] == ['YUIOP', 'YUIOP']

    def test_snapshot(self, engine):
        type_text(engine, 'purui')
        snap = engine.snapshot()
        assert snap.state == CompositionState.COMPOSING
        assert snap.pending_keys == ['YUIOP', 'YUIOP', 'QWERT', 'YUIOP', 'YUIOP']
        assert [s.text for s in snap.pending_display] == ['pu', 'rui']
        assert snap.candidates[0].value == '普瑞'
        assert snap.available_prefixes == [Segment('pu', 2), Segment('yi', 2)]
        assert snap.candidate_mode == CandidateMode.WORD

    def test_snapshot_top_k(self, small_dict):
        engine = CompositionEngine(small_dict, EngineConfig(top_k=2))
        type_text(engine, 'purui')
        assert len(engine.snapshot().candidates) == 2
        assert len(engine.candidates) == 5


class TestPressKey:

    def test_buffer_limit(self, small_dict):
        engine = CompositionEngine(small_dict, EngineConfig(max_buffer_len=3))
        groups = groups_for_text('nihao')
        assert all(engine.press_key(g) for g in groups[:3])
        assert engine.press_key(groups[3]) is False
        assert len(engine.pending_keys) == 3
        assert engine.get_stats()['rejected'] == 1

    def test_punctuation_key_is_literal(self, engine, sink):
        assert engine.press_key(group_from_letters('，'))
        assert sink.text == '，'

    def test_action_key(self, engine, sink):
        type_text(engine, 'qq')
        assert engine.press_key(action_key('enter'))
        assert sink.text == 'qq'

    def test_group_without_letters(self, engine):
        assert engine.press_key(group_from_letters('')) is False


class TestSelect:
    """选择候选"""

    def test_partial_selection_stages(self, engine, sink):
        type_text(engine, 'purui')
        select_value(engine, '普')
        assert engine.staged_text == '普'
        assert [k.label for k in engine.pending_keys] == ['QWERT', 'YUIOP', 'YUIOP']
        assert len(engine.selection_history) == 1
        assert sink.commits == []
        assert [c.value for c in engine.candidates] == ['瑞', '锐']

    def test_full_selection_commits(self, engine, sink):
        type_text(engine, 'purui')
        select_value(engine, '普')
        select_value(engine, '瑞')
        assert sink.commits == ['普瑞']
        assert engine.state == CompositionState.IDLE
        assert engine.selection_history == ()

    def test_phrase_commits_at_once(self, engine, sink):
        type_text(engine, 'purui')
        engine.select_index(0)
        assert sink.commits == ['普瑞']

    def test_stale_candidate(self, engine):
        type_text(engine, 'purui')
        phrase = engine.candidates[0]
        select_value(engine, '普')
        with pytest.raises(StaleCandidateError):
            engine.select_candidate(phrase)
        # 被拒绝后状态不变
        assert engine.staged_text == '普'
        assert len(engine.pending_keys) == 3

    def test_select_when_idle(self, engine):
        with pytest.raises(StaleCandidateError):
            engine.select_index(0)

    def test_stale_is_composition_error(self):
        assert issubclass(StaleCandidateError, CompositionError)

    def test_usage_recorded(self, engine):
        type_text(engine, 'pu')
        select_value(engine, '铺')
        assert engine.usage_history == {'铺': 1}
        type_text(engine, 'pu')
        assert engine.candidates[0].value == '铺'

    def test_usage_shared_context(self, small_dict):
        context = UserContext()
        first = CompositionEngine(small_dict, context=context)
        type_text(first, 'pu')
        select_value(first, '铺')
        second = CompositionEngine(small_dict, context=context)
        type_text(second, 'pu')
        assert second.candidates[0].value == '铺'

    def test_round_trip(self, engine, sink):
        """选到按键用完时，上屏文本等于各次选择的拼接"""
        type_text(engine, 'nihaoma')
        chosen = [select_value(engine, v).value for v in ('你', '好', '吗')]
        assert sink.commits == [''.join(chosen)]

    def test_scenario_phrase_then_char(self, engine, sink):
        type_text(engine, 'nihaoma')
        assert [c.value for c in engine.candidates][:2] == ['你好吗', '你好']
        select_value(engine, '你好')
        assert engine.staged_text == '你好'
        assert [c.value for c in engine.candidates] == ['吗', '那', '妈', '拿']
        engine.select_index(0)
        assert sink.text == '你好吗'


class TestDelete:
    """退格优先级"""

    def test_undo_restores_state(self, engine):
        type_text(engine, 'nihaoma')
        keys_before = engine.pending_keys
        select_value(engine, '你')
        select_value(engine, '好')
        assert engine.staged_text == '你好'

        engine.delete()
        assert engine.staged_text == '你'
        assert len(engine.pending_keys) == 5

        engine.delete()
        assert engine.staged_text == ''
        assert engine.pending_keys == keys_before
        assert engine.selection_history == ()
        assert engine.get_stats()['undos'] == 2

    def test_drop_last_key(self, engine):
        type_text(engine, 'pu')
        engine.delete()
        assert len(engine.pending_keys) == 1
        engine.delete()
        assert engine.state == CompositionState.IDLE

    def test_host_delete_when_idle(self, small_dict):
        sink = BufferSink('你好')
        engine = CompositionEngine(small_dict, sink=sink)
        engine.delete()
        assert sink.host_deletes == 1
        assert sink.text == '你'

    def test_clear_focus_first(self, engine):
        type_text(engine, 'purui')
        engine.focus_syllable(Segment('yi', 2))
        engine.delete()
        assert engine.focused_syllable is None
        assert len(engine.pending_keys) == 5

    def test_backspace_key(self, engine):
        type_text(engine, 'pu')
        engine.press_key(action_key('backspace'))
        assert len(engine.pending_keys) == 1


class TestCommitKeys:
    """空格 / 回车 / 取消 / 直接输入"""

    def test_space_selects_best(self, engine, sink):
        type_text(engine, 'purui')
        engine.space()
        assert sink.text == '普瑞'

    def test_space_selects_raw(self, engine, sink):
        type_text(engine, 'qq')
        assert engine.candidates[0].kind == CandidateKind.RAW
        engine.space()
        assert sink.text == 'qq'

    def test_space_without_candidates(self, sink):
        """音节合法但字典里没有字"""
        engine = CompositionEngine(Dictionary(['xi']), sink=sink)
        type_text(engine, 'xi')
        assert engine.segmentations == [(Segment('xi', 2),)]
        assert engine.candidates == []
        engine.space()
        assert sink.commits == [' ']
        assert len(engine.pending_keys) == 2
        assert engine.state == CompositionState.COMPOSING

    def test_space_without_candidates_flushes_staged(self, sink):
        """暂存文本加空格上屏，剩余按键保留"""
        engine = CompositionEngine(Dictionary(['ni', 'xi'], chars={'ni': ['你']}), sink=sink)
        type_text(engine, 'nixi')
        select_value(engine, '你')
        assert engine.candidates == []
        engine.space()
        assert sink.commits == ['你 ']
        assert engine.staged_text == ''
        assert engine.selection_history == ()
        assert len(engine.pending_keys) == 2
        assert engine.state == CompositionState.COMPOSING

    def test_space_when_idle(self, engine, sink):
        engine.space()
        assert sink.text == ' '

    def test_enter_commits_raw(self, engine, sink):
        type_text(engine, 'purui')
        select_value(engine, '普')
        engine.enter()
        assert sink.text == '普qyy'
        assert engine.state == CompositionState.IDLE

    def test_enter_when_idle(self, engine, sink):
        engine.enter()
        assert sink.text == '\n'

    def test_cancel(self, engine, sink):
        type_text(engine, 'purui')
        select_value(engine, '普')
        engine.toggle_mode()
        engine.cancel()
        assert engine.state == CompositionState.IDLE
        assert sink.commits == []
        assert engine.candidate_mode == CandidateMode.CHARACTER

    def test_literal_when_idle(self, engine, sink):
        engine.input_literal('。')
        assert sink.commits == ['。']

    def test_literal_resolves_composition(self, engine, sink):
        type_text(engine, 'nihao')
        engine.input_literal('，')
        assert sink.commits == ['你好，']
        assert engine.state == CompositionState.IDLE

    def test_literal_keeps_staged(self, engine, sink):
        type_text(engine, 'nihaoma')
        select_value(engine, '你好')
        engine.input_literal('！')
        assert sink.commits == ['你好吗！']

    def test_literal_with_unmatched_keys(self, engine, sink):
        type_text(engine, 'qq')
        engine.input_literal('？')
        assert sink.commits == ['qq？']


class TestModeAndFocus:

    def test_toggle_mode(self, engine):
        assert engine.toggle_mode() == CandidateMode.CHARACTER
        type_text(engine, 'nihaoma')
        assert engine.candidates[0].value == '你'
        assert engine.toggle_mode() == CandidateMode.WORD
        assert engine.candidates[0].value == '你好吗'

    def test_focus_syllable(self, engine):
        type_text(engine, 'purui')
        engine.focus_syllable(Segment('yi', 2))
        assert engine.focused_syllable == Segment('yi', 2)
        assert [c.value for c in engine.candidates] == ['一', '以']

    def test_focus_same_syllable_clears(self, engine):
        type_text(engine, 'purui')
        engine.focus_syllable(Segment('yi', 2))
        engine.focus_syllable(Segment('yi', 2))
        assert engine.focused_syllable is None

    def test_focus_unknown_syllable(self, engine):
        type_text(engine, 'purui')
        with pytest.raises(CompositionError):
            engine.focus_syllable(Segment('ni', 2))

    def test_focus_cleared_by_key(self, engine):
        type_text(engine, 'pu')
        engine.focus_syllable(Segment('pu', 2))
        type_text(engine, 'rui')
        assert engine.focused_syllable is None

    def test_focused_selection(self, engine, sink):
        type_text(engine, 'purui')
        engine.focus_syllable(Segment('yi', 2))
        engine.select_index(0)
        assert engine.staged_text == '一'
        assert engine.focused_syllable is None
        engine.select_index(0)
        assert sink.text == '一瑞'


class TestSlidePick:

    def test_slide_commits_letter(self, engine, sink):
        engine.slide_pick(group_from_letters('asdfg'), 2)
        assert sink.text == 'd'

    def test_slide_flushes_staged(self, engine, sink):
        type_text(engine, 'nihaoma')
        select_value(engine, '你好')
        engine.slide_pick(group_from_letters('qwert'), 99)
        assert sink.commits == ['你好t']
        assert engine.state == CompositionState.IDLE


class TestHandle:
    """事件分派"""

    def test_event_sequence(self, engine, sink):
        for group in groups_for_text('nihao'):
            engine.handle(KeyEvent.letter_group(group))
        engine.handle(KeyEvent(EventKind.SELECT_CANDIDATE, index=0))
        engine.handle(KeyEvent.literal('。'))
        assert sink.text == '你好。'
        assert engine.get_stats()['events'] == 7

    def test_select_event_with_candidate(self, engine, sink):
        type_text(engine, 'pu')
        engine.handle(KeyEvent.select(engine.candidates[1]))
        assert sink.text == '一'

    def test_select_event_without_target(self, engine):
        with pytest.raises(CompositionError):
            engine.handle(KeyEvent(EventKind.SELECT_CANDIDATE))

    def test_focus_and_slide_events(self, engine, sink):
        type_text(engine, 'purui')
        engine.handle(KeyEvent.focus(Segment('pu', 2)))
        assert engine.focused_syllable == Segment('pu', 2)
        engine.handle(KeyEvent.focus(None))
        assert engine.focused_syllable is None
        engine.handle(KeyEvent.slide(group_from_letters('nm'), 1))
        assert sink.text == 'm'

    def test_action_events(self, engine, sink):
        engine.handle(KeyEvent(EventKind.TOGGLE_MODE))
        assert engine.candidate_mode == CandidateMode.CHARACTER
        engine.handle(KeyEvent(EventKind.SPACE))
        engine.handle(KeyEvent(EventKind.ENTER))
        engine.handle(KeyEvent(EventKind.BACKSPACE))
        engine.handle(KeyEvent(EventKind.CANCEL))
        assert sink.text == ' '
