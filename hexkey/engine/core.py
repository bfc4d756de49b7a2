from typing import Callable, Dict, List, Optional, Protocol, Tuple

from .config import (
    Candidate, CandidateMode, CompositionSnapshot, CompositionState, EngineConfig,
    EventKind, KeyEvent, KeyGroup, Segment, SelectionRecord, UserContext,
)
from .dictionary import Dictionary, get_dict_service
from .generator import CandidateGenerator, raw_reading
from .layout import BACKSPACE, CANCEL, ENTER, SPACE, TOGGLE_MODE, slide_letter
from .logging import get_engine_logger
from .segmenter import KeyGroupSegmenter, SegmentLattice, SegmentPath

logger = get_engine_logger()


class CompositionError(Exception):
    """调用方违反输入过程约定"""


class StaleCandidateError(CompositionError):
    """候选已过期（按键序列变化后仍被选择）"""


class CommitSink(Protocol):
    """上屏接口"""

    def emit(self, text: str) -> None:
        ...

    def request_host_delete(self) -> None:
        ...


class BufferSink:
    """内存中的宿主文本框"""

    def __init__(self, text: str = ""):
        self.text = text
        self.commits: List[str] = []
        self.host_deletes = 0

    def emit(self, text: str) -> None:
        self.commits.append(text)
        self.text += text

    def request_host_delete(self) -> None:
        self.host_deletes += 1
        self.text = self.text[:-1]


class CompositionEngine:
    """
    输入过程状态机

    持有待定按键、暂存文本、选择历史（撤销用）、锁定音节；
    候选等派生数据每次都从当前状态重新计算，不做增量修补。
    """

    def __init__(
        self,
        dictionary: Dictionary = None,
        config: EngineConfig = None,
        sink: CommitSink = None,
        context: UserContext = None,
    ):
        self.config = config or EngineConfig()
        self.dictionary = dictionary or get_dict_service()
        self.segmenter = KeyGroupSegmenter(self.dictionary, self.config)
        self.generator = CandidateGenerator(self.dictionary, self.config)
        self.sink = sink if sink is not None else BufferSink()
        self.context = context or UserContext()

        self._pending: List[KeyGroup] = []
        self._staged = ""
        self._history: List[SelectionRecord] = []
        self._focused: Optional[Segment] = None

        # 统计
        self.stats = {'events': 0, 'commits': 0, 'selections': 0, 'undos': 0, 'rejected': 0}

        self._handlers: Dict[EventKind, Callable[[KeyEvent], object]] = {
            EventKind.LETTER_GROUP: lambda e: self.press_key(e.group),
            EventKind.LITERAL: lambda e: self.input_literal(e.char),
            EventKind.BACKSPACE: lambda e: self.delete(),
            EventKind.SPACE: lambda e: self.space(),
            EventKind.ENTER: lambda e: self.enter(),
            EventKind.CANCEL: lambda e: self.cancel(),
            EventKind.TOGGLE_MODE: lambda e: self.toggle_mode(),
            EventKind.FOCUS_SYLLABLE: lambda e: self.focus_syllable(e.segment),
            EventKind.SELECT_CANDIDATE: self._select_event,
            EventKind.SLIDE_PICK: lambda e: self.slide_pick(e.group, e.index or 0),
        }
        self._actions: Dict[str, Callable[[], object]] = {
            BACKSPACE: self.delete,
            SPACE: self.space,
            ENTER: self.enter,
            CANCEL: self.cancel,
            TOGGLE_MODE: self.toggle_mode,
        }

        logger.debug(f"输入引擎就绪: {self.dictionary!r}")

    # ===== 只读视图 =====

    @property
    def pending_keys(self) -> Tuple[KeyGroup, ...]:
        return tuple(self._pending)

    @property
    def staged_text(self) -> str:
        return self._staged

    @property
    def selection_history(self) -> Tuple[SelectionRecord, ...]:
        return tuple(self._history)

    @property
    def focused_syllable(self) -> Optional[Segment]:
        return self._focused

    @property
    def candidate_mode(self) -> CandidateMode:
        return self.context.candidate_mode

    @property
    def usage_history(self) -> Dict[str, int]:
        return dict(self.context.usage_history)

    @property
    def state(self) -> CompositionState:
        if self._pending or self._staged:
            return CompositionState.COMPOSING
        return CompositionState.IDLE

    @property
    def is_composing(self) -> bool:
        return self.state is CompositionState.COMPOSING

    @property
    def segmentations(self) -> List[SegmentPath]:
        if not self._pending:
            return []
        return self.segmenter.segment(self._pending)

    @property
    def lattice(self) -> SegmentLattice:
        return self.segmenter.lattice(self._pending)

    @property
    def available_prefixes(self) -> List[Segment]:
        return self.segmenter.available_prefixes(self._pending)

    @property
    def candidates(self) -> List[Candidate]:
        return self.generator.rank(
            self._pending,
            self.lattice,
            self._focused,
            self.context.candidate_mode,
            self.context.usage_history,
        )

    def snapshot(self) -> CompositionSnapshot:
        """当前状态的只读快照"""
        candidates = self.candidates
        if self.config.top_k:
            candidates = candidates[:self.config.top_k]
        return CompositionSnapshot(
            state=self.state,
            staged_text=self._staged,
            pending_keys=[k.label for k in self._pending],
            pending_display=self.segmenter.best_path_display(self._pending),
            candidates=candidates,
            available_prefixes=self.available_prefixes,
            focused_syllable=self._focused,
            candidate_mode=self.context.candidate_mode,
        )

    # ===== 事件入口 =====

    def handle(self, event: KeyEvent):
        """处理一个输入事件"""
        self.stats['events'] += 1
        logger.debug(f"事件: {event.kind.value} | 状态={self.state.value} 待定={len(self._pending)}")
        return self._handlers[event.kind](event)

    def press_key(self, group: KeyGroup) -> bool:
        """
        按下一个键

        功能键分派到对应操作；单字母键（标点）按直接输入处理；
        多字母键追加到待定序列。超过长度上限的按键被拒绝。

        Returns:
            按键是否被接受
        """
        if group.action:
            handler = self._actions.get(group.action)
            if handler is None:
                logger.debug(f"忽略功能键: {group.action}")
                return False
            handler()
            return True

        if not group.chars:
            return False

        if len(group.chars) == 1:
            self.input_literal(group.chars[0])
            return True

        if len(self._pending) >= self.config.max_buffer_len:
            self.stats['rejected'] += 1
            logger.warning(f"待定按键已达上限 {self.config.max_buffer_len}，忽略 {group.label}")
            return False

        self._set_pending(self._pending + [group])
        return True

    def input_literal(self, char: str):
        """直接输入（标点等）；输入中时先用首选候选结束当前输入"""
        if not self.is_composing:
            self._emit(char)
            return
        text = self._staged + self._auto_resolve() + char
        self._reset()
        self._emit(text)

    def select_candidate(self, candidate: Candidate):
        """
        选择候选

        按键用完则连同暂存文本一起上屏；否则暂存并记录历史，等待后续选择
        """
        consumed_len = candidate.consumed_len
        if consumed_len < 1 or consumed_len > len(self._pending):
            logger.warning(f"候选已过期: {candidate.value} 需要 {consumed_len} 键, 当前 {len(self._pending)} 键")
            raise StaleCandidateError(
                f"候选 {candidate.value!r} 需要 {consumed_len} 个按键，当前只有 {len(self._pending)} 个"
            )

        self.stats['selections'] += 1
        self.context.record_usage(candidate.value)

        staged = self._staged + candidate.value
        consumed = self._pending[:consumed_len]
        remaining = self._pending[consumed_len:]

        if not remaining:
            self._reset()
            self._emit(staged)
            return

        self._history.append(SelectionRecord(candidate.value, consumed))
        self._staged = staged
        self._set_pending(remaining)

    def select_index(self, index: int):
        """按当前候选列表中的序号选择"""
        candidates = self.candidates
        if not 0 <= index < len(candidates):
            raise StaleCandidateError(f"候选序号 {index} 越界（共 {len(candidates)} 个）")
        self.select_candidate(candidates[index])

    def delete(self):
        """
        退格，按优先级：
        1. 取消锁定音节
        2. 撤销上一次选择
        3. 删除最后一个待定按键
        4. 删除暂存文本最后一个字
        5. 交给宿主删除
        """
        if self._focused is not None:
            self._focused = None
        elif self._history:
            last = self._history.pop()
            self._staged = self._staged[:-len(last.text)] if last.text else self._staged
            self._set_pending(last.keys + self._pending)
            self.stats['undos'] += 1
        elif self._pending:
            self._set_pending(self._pending[:-1])
        elif self._staged:
            self._staged = self._staged[:-1]
        else:
            self.sink.request_host_delete()

    def space(self):
        """
        空格：有候选时选首选；否则把暂存文本加空格上屏（剩余按键保留），
        没有暂存文本时输入一个空格，输入过程不变
        """
        candidates = self.candidates if self._pending else []
        if candidates:
            self.select_candidate(candidates[0])
        elif self._staged:
            text = self._staged + ' '
            self._staged = ''
            self._history = []
            self._emit(text)
        else:
            self._emit(' ')

    def enter(self):
        """回车：输入中时暂存文本加剩余按键首字母直接上屏；否则换行"""
        if self.is_composing:
            text = self._staged + raw_reading(self._pending).lower()
            self._reset()
            self._emit(text)
        else:
            self._emit('\n')

    def cancel(self):
        """放弃当前输入（保留候选模式和选用记录）"""
        if self.is_composing:
            logger.debug(f"放弃输入: 暂存='{self._staged}' 待定={len(self._pending)}")
        self._reset()

    def toggle_mode(self) -> CandidateMode:
        self.context.candidate_mode = self.context.candidate_mode.toggled()
        return self.context.candidate_mode

    def set_mode(self, mode: CandidateMode):
        self.context.candidate_mode = CandidateMode(mode)

    def focus_syllable(self, segment: Optional[Segment]):
        """锁定 / 取消锁定一个音节；再次锁定同一音节即取消"""
        if segment is None or segment == self._focused:
            self._focused = None
            return
        if segment not in self.available_prefixes:
            raise CompositionError(f"音节 {segment.text!r}({segment.length}) 不在当前可选音节中")
        self._focused = segment

    def slide_pick(self, group: KeyGroup, index: int):
        """长按滑动选出单个字母：放弃待定按键，暂存文本连同字母一起上屏"""
        letter = slide_letter(group, index).lower()
        text = self._staged + letter
        self._reset()
        self._emit(text)

    # ===== 内部 =====

    def _select_event(self, event: KeyEvent):
        if event.candidate is not None:
            return self.select_candidate(event.candidate)
        if event.index is not None:
            return self.select_index(event.index)
        raise CompositionError("选择事件缺少候选")

    def _auto_resolve(self) -> str:
        """依次选首选候选直到按键用完；无候选的剩余按键按首字母输出"""
        resolved = ""
        while self._pending:
            candidates = self.candidates
            if not candidates:
                if self._focused is not None:
                    self._focused = None
                    continue
                resolved += raw_reading(self._pending).lower()
                break
            best = candidates[0]
            self.stats['selections'] += 1
            self.context.record_usage(best.value)
            resolved += best.value
            self._set_pending(self._pending[best.consumed_len:])
        return resolved

    def _set_pending(self, keys: List[KeyGroup]):
        # 按键序列变化时锁定音节失效
        self._pending = list(keys)
        self._focused = None

    def _reset(self):
        self._pending = []
        self._staged = ""
        self._history = []
        self._focused = None

    def _emit(self, text: str):
        self.stats['commits'] += 1
        logger.debug(f"上屏: {text!r}")
        self.sink.emit(text)

    def get_stats(self) -> Dict:
        """获取统计"""
        return {
            **self.stats,
            'cache_hit_rate': round(self.segmenter.cache.hit_rate, 3),
            'usage_entries': len(self.context.usage_history),
            'candidate_mode': self.context.candidate_mode.value,
        }
