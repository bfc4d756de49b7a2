"""
HexKey FastAPI 服务

每个会话是一个独立的输入过程（共享同一份字典），一次请求处理一个事件
"""

import os
import time
import uuid
from typing import Dict, List, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from hexkey.engine import (
    BufferSink,
    CandidateMode,
    CompositionEngine,
    CompositionError,
    CompositionSnapshot,
    EventKind,
    KeyEvent,
    EngineConfig,
    KeyGroupSegmenter,
    CandidateGenerator,
    Segment,
    get_api_logger,
    get_dict_service,
)
from hexkey.engine.cache import LRUCache
from hexkey.engine.layout import group_from_letters, parse_groups
from hexkey.engine.logging import session_logger

logger = get_api_logger()


# ===== 请求/响应模型 =====

class SegmentItem(BaseModel):
    """音节"""
    text: str
    length: int = Field(..., ge=1)


class CandidateItem(BaseModel):
    """候选项"""
    display: str
    value: str
    score: float
    consumed_len: int
    kind: str


class KeyEventRequest(BaseModel):
    """输入事件"""
    kind: str = Field(..., description="letter_group / literal / backspace / space / enter / cancel / "
                                         "toggle_mode / focus_syllable / select_candidate / slide_pick")
    letters: Optional[str] = Field(None, description="按键组字母，如 'qwert'")
    char: Optional[str] = Field(None, max_length=1, description="直接输入的字符")
    index: Optional[int] = Field(None, ge=0, description="候选序号 / 滑动位置")
    segment: Optional[SegmentItem] = Field(None, description="锁定的音节（为空表示取消锁定）")


class SnapshotResponse(BaseModel):
    """输入过程快照"""
    session_id: str
    state: str
    staged_text: str
    pending_keys: List[str]
    pending_display: List[str]
    candidates: List[CandidateItem]
    available_prefixes: List[SegmentItem]
    focused_syllable: Optional[SegmentItem] = None
    candidate_mode: str
    committed: str = ""
    text: str = ""


class SegmentResponse(BaseModel):
    """无状态切分查询结果"""
    keys: List[str]
    segmentations: List[List[str]]
    prefixes: List[SegmentItem]
    candidates: List[CandidateItem]


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str
    version: str
    sessions: int


# ===== 会话 =====

class Session:
    def __init__(self, engine: CompositionEngine, sink: BufferSink):
        self.engine = engine
        self.sink = sink


# 会话表有上限，满了挤掉最久未使用的会话
MAX_SESSIONS = max(1, int(os.getenv("MAX_SESSIONS", "256")))
sessions = LRUCache(MAX_SESSIONS)
config = EngineConfig(top_k=int(os.getenv("TOP_K", "0")))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("=" * 50)
    logger.info("HexKey API 服务启动")
    dictionary = get_dict_service()
    logger.info(f"  词典: {dictionary!r}")
    logger.info("=" * 50)

    yield

    logger.info(f"正在关闭, 丢弃 {len(sessions)} 个会话")
    sessions.clear()
    logger.info("HexKey API 服务已停止")


# ===== FastAPI 应用 =====
app = FastAPI(
    title="HexKey API",
    description="六键拼音输入引擎 API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===== 请求日志中间件 =====

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """记录所有请求的详细日志"""
    request_id = str(uuid.uuid4())[:8]
    start_time = time.perf_counter()

    client_ip = request.client.host if request.client else "unknown"
    logger.info(f"[{request_id}] --> {request.method} {request.url.path} | IP: {client_ip}")

    try:
        response = await call_next(request)
    except Exception as e:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"[{request_id}] <-- ERROR | {elapsed_ms:.2f}ms | {type(e).__name__}: {e}")
        raise

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    status_code = response.status_code
    log_level = "info" if status_code < 400 else "warning" if status_code < 500 else "error"
    getattr(logger, log_level)(f"[{request_id}] <-- {status_code} | {elapsed_ms:.2f}ms")

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
    return response


# ===== 工具函数 =====

def _candidate_items(candidates) -> List[CandidateItem]:
    return [
        CandidateItem(
            display=c.display, value=c.value, score=round(c.score, 4),
            consumed_len=c.consumed_len, kind=c.kind.value,
        )
        for c in candidates
    ]


def _segment_item(seg: Optional[Segment]) -> Optional[SegmentItem]:
    return SegmentItem(text=seg.text, length=seg.length) if seg else None


def _to_response(session_id: str, session: Session, snapshot: CompositionSnapshot, committed: str = "") -> SnapshotResponse:
    return SnapshotResponse(
        session_id=session_id,
        state=snapshot.state.value,
        staged_text=snapshot.staged_text,
        pending_keys=snapshot.pending_keys,
        pending_display=[s.text for s in snapshot.pending_display],
        candidates=_candidate_items(snapshot.candidates),
        available_prefixes=[_segment_item(s) for s in snapshot.available_prefixes],
        focused_syllable=_segment_item(snapshot.focused_syllable),
        candidate_mode=snapshot.candidate_mode.value,
        committed=committed,
        text=session.sink.text,
    )


def _get_session(session_id: str) -> Session:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"会话不存在: {session_id}")
    return session


def _to_event(event: KeyEventRequest) -> KeyEvent:
    """把请求映射为引擎事件"""
    try:
        kind = EventKind(event.kind)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"未知事件: {event.kind}") from None

    if kind in (EventKind.LETTER_GROUP, EventKind.SLIDE_PICK) and not event.letters:
        raise HTTPException(status_code=400, detail=f"{kind.value} 需要 letters")
    if kind == EventKind.LITERAL and not event.char:
        raise HTTPException(status_code=400, detail="literal 需要 char")
    if kind == EventKind.SELECT_CANDIDATE and event.index is None:
        raise HTTPException(status_code=400, detail="select_candidate 需要 index")

    if kind == EventKind.LETTER_GROUP:
        return KeyEvent.letter_group(group_from_letters(event.letters))
    if kind == EventKind.LITERAL:
        return KeyEvent.literal(event.char)
    if kind == EventKind.FOCUS_SYLLABLE:
        seg = event.segment
        return KeyEvent.focus(Segment(seg.text, seg.length) if seg else None)
    if kind == EventKind.SLIDE_PICK:
        return KeyEvent.slide(group_from_letters(event.letters), event.index or 0)
    return KeyEvent(kind, index=event.index)


# ===== API 路由 =====

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """健康检查"""
    from hexkey import __version__
    return HealthResponse(status="healthy", version=__version__, sessions=len(sessions))


@app.post("/sessions", response_model=SnapshotResponse)
async def create_session(mode: CandidateMode = CandidateMode.WORD):
    """创建输入会话"""
    sink = BufferSink()
    engine = CompositionEngine(get_dict_service(), config, sink)
    engine.set_mode(mode)
    session_id = uuid.uuid4().hex[:12]
    session = Session(engine, sink)
    evicted = sessions.put(session_id, session)
    if evicted is not None:
        session_logger(evicted[0]).warning(f"会话数达到上限 {sessions.capacity}，回收最久未使用的会话")
    session_logger(session_id).info(f"新建会话 (mode={mode.value})")
    return _to_response(session_id, session, engine.snapshot())


@app.get("/sessions/{session_id}", response_model=SnapshotResponse)
async def get_session(session_id: str):
    """读取会话快照（不改变状态）"""
    session = _get_session(session_id)
    return _to_response(session_id, session, session.engine.snapshot())


@app.post("/sessions/{session_id}/events", response_model=SnapshotResponse)
async def post_event(session_id: str, event: KeyEventRequest):
    """处理一个输入事件，返回新快照与本次上屏文本"""
    session = _get_session(session_id)
    engine = session.engine
    log = session_logger(session_id)
    before = len(session.sink.commits)

    try:
        engine.handle(_to_event(event))
    except HTTPException:
        raise
    except (CompositionError, ValueError) as e:
        log.warning(f"事件被拒绝: {event.kind} | {e}", extra={'event': event.kind})
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        log.error(f"事件处理失败: {event.kind} | {e}", extra={'event': event.kind}, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    committed = "".join(session.sink.commits[before:])
    if committed:
        log.debug(f"上屏: {committed!r}", extra={'event': event.kind})
    return _to_response(session_id, session, engine.snapshot(), committed)


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """关闭会话"""
    _get_session(session_id)
    sessions.pop(session_id)
    session_logger(session_id).info("关闭会话")
    return {"session_id": session_id, "deleted": True}


@app.get("/segment", response_model=SegmentResponse)
async def segment_query(keys: str, mode: CandidateMode = CandidateMode.WORD, top_k: int = 20):
    """无状态查询：逗号分隔的按键组 → 切分方案与候选"""
    groups = parse_groups(keys.split(","))
    if not groups:
        raise HTTPException(status_code=400, detail="按键不能为空")
    if len(groups) > config.max_buffer_len:
        raise HTTPException(status_code=400, detail=f"按键数超过上限 {config.max_buffer_len}")

    dictionary = get_dict_service()
    segmenter = KeyGroupSegmenter(dictionary, config)
    generator = CandidateGenerator(dictionary, config)
    lattice = segmenter.lattice(groups)
    candidates = generator.rank(groups, lattice, None, mode, {})

    return SegmentResponse(
        keys=[g.label for g in groups],
        segmentations=[[s.text for s in path] for path in lattice.paths(top_k)],
        prefixes=[_segment_item(s) for s in segmenter.available_prefixes(groups)],
        candidates=_candidate_items(candidates[:top_k]),
    )


@app.get("/stats")
async def get_stats():
    """获取统计信息"""
    totals: Dict[str, int] = {'sessions': len(sessions), 'events': 0, 'commits': 0, 'selections': 0, 'undos': 0}
    for session in sessions.values():
        stats = session.engine.get_stats()
        for key in ('events', 'commits', 'selections', 'undos'):
            totals[key] += stats[key]
    logger.info(f"统计查询: {totals}")
    return totals


# ===== 启动入口 =====

def main():
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    logger.info(f"启动 HexKey API 服务: http://{host}:{port}")
    logger.info(f"API 文档: http://{host}:{port}/docs")
    logger.info(f"日志级别: {log_level.upper()}")

    uvicorn.run(
        "hexkey.api.server:app",
        host=host,
        port=port,
        reload=False,
        workers=1,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
