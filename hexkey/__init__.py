"""
HexKey - 六键拼音输入引擎

多个字母共用一个按键，由引擎切分音节并给出汉字候选
"""

__version__ = "0.1.0"

from hexkey.engine import (
    CompositionEngine,
    create_engine,
    CompositionError,
    StaleCandidateError,
    BufferSink,
    EngineConfig,
    KeyGroup,
    Segment,
    Candidate,
    CandidateKind,
    CandidateMode,
    CompositionState,
    KeyEvent,
    EventKind,
    Dictionary,
    get_dict_service,
    KeyGroupSegmenter,
    matches_groups,
    CandidateGenerator,
)

__all__ = [
    "__version__",
    # 引擎
    "CompositionEngine",
    "create_engine",
    "CompositionError",
    "StaleCandidateError",
    "BufferSink",
    "EngineConfig",
    # 类型
    "KeyGroup",
    "Segment",
    "Candidate",
    "CandidateKind",
    "CandidateMode",
    "CompositionState",
    "KeyEvent",
    "EventKind",
    # 字典 / 切分 / 候选
    "Dictionary",
    "get_dict_service",
    "KeyGroupSegmenter",
    "matches_groups",
    "CandidateGenerator",
]
