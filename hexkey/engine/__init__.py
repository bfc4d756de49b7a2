from .config import (
    EngineConfig,
    KeyGroup,
    Segment,
    Candidate,
    CandidateKind,
    CandidateMode,
    CompositionState,
    CompositionSnapshot,
    SelectionRecord,
    UserContext,
    EventKind,
    KeyEvent,
)
from .core import (
    CompositionEngine,
    CompositionError,
    StaleCandidateError,
    CommitSink,
    BufferSink,
)
from .dictionary import Dictionary, get_dict_service
from .segmenter import KeyGroupSegmenter, SegmentLattice, matches_groups, create_segmenter
from .generator import CandidateGenerator, raw_reading
from .logging import setup_logging, get_logger, get_api_logger, get_engine_logger


def create_engine(config: EngineConfig = None, dicts_dir: str = None, sink: CommitSink = None) -> CompositionEngine:
    """
    创建输入引擎

    Args:
        config: 引擎配置
        dicts_dir: 词典目录路径（可选，默认使用包内 data/dicts）
        sink: 上屏接口（默认内存文本框）

    Returns:
        CompositionEngine 实例
    """
    dictionary = Dictionary.load(dicts_dir) if dicts_dir else get_dict_service()
    return CompositionEngine(dictionary, config, sink)


__all__ = [
    # 引擎
    'CompositionEngine',
    'create_engine',
    'CompositionError',
    'StaleCandidateError',
    'CommitSink',
    'BufferSink',
    # 类型
    'EngineConfig',
    'KeyGroup',
    'Segment',
    'Candidate',
    'CandidateKind',
    'CandidateMode',
    'CompositionState',
    'CompositionSnapshot',
    'SelectionRecord',
    'UserContext',
    'EventKind',
    'KeyEvent',
    # 字典
    'Dictionary',
    'get_dict_service',
    # 切分
    'KeyGroupSegmenter',
    'SegmentLattice',
    'matches_groups',
    'create_segmenter',
    # 候选
    'CandidateGenerator',
    'raw_reading',
    # 日志
    'setup_logging',
    'get_logger',
    'get_api_logger',
    'get_engine_logger',
]
