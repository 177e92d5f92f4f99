"""
Smart notes generation: chunk the source, call the model for every chunk at
once, recover JSON from each answer and merge the notes in chunk order.

A chunk that fails (provider error, empty answer, unparseable JSON or any
other exception) only contributes no notes. The outcome of every chunk is
kept in a ChunkResult so callers can see what was dropped.
"""
from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from smartnotes.services.chunking import DEFAULT_CHUNK_LENGTH, Chunk, chunk_text
from smartnotes.services.errors import EmptyCompletionError, JsonParseError, ProviderError
from smartnotes.services.json_recovery import recover_json
from smartnotes.services.logging import log_performance
from smartnotes.services.monitoring import CHUNK_OUTCOMES
from smartnotes.services.prompts import (
    NOTES_SYSTEM_PROMPT,
    enhance_notes_prompt,
    ssc_fact_chrono_prompt,
    upsc_keyword_engine_prompt,
)
from smartnotes.services.providers import DEFAULT_MODEL

logger = structlog.get_logger(__name__)

NOTES_TEMPERATURE = 0.5


class ExamTrack(str, enum.Enum):
    SSC = "SSC"
    UPSC = "UPSC"


@dataclass
class ChunkError:
    kind: str  # provider | empty | parse | unexpected
    message: str
    status_code: Optional[int] = None


@dataclass
class ChunkResult:
    index: int
    notes: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[ChunkError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class GenerationSummary:
    total: int = 0
    ssc_count: int = 0
    upsc_count: int = 0
    both_count: int = 0
    high_priority_count: int = 0
    key_topics: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "ssc_count": self.ssc_count,
            "upsc_count": self.upsc_count,
            "both_count": self.both_count,
            "high_priority_count": self.high_priority_count,
            "key_topics": list(self.key_topics),
        }


@dataclass
class NotesResult:
    notes: List[Dict[str, Any]]
    summary: GenerationSummary
    chunk_results: List[ChunkResult] = field(default_factory=list)

    @property
    def failed_chunks(self) -> List[ChunkResult]:
        return [r for r in self.chunk_results if not r.ok]


def importance_of(note: Dict[str, Any]) -> int:
    """Importance as an int; models sometimes send "4" or 4.0. Unreadable or non-finite is 0."""
    try:
        return int(float(note.get("importance", 0)))
    except (TypeError, ValueError, OverflowError):
        # float("Infinity") parses, int() of it overflows; NaN raises ValueError
        return 0


def is_valid_note(note: Any) -> bool:
    if not isinstance(note, dict):
        return False
    topic = note.get("topic")
    return isinstance(topic, str) and bool(topic.strip())


def extract_notes(parsed: Any) -> List[Any]:
    """Normalise the accepted response shapes into a flat list.

    Accepted, in order: {"notes": [...]} and a bare [...] array. Anything
    else yields no notes.
    """
    if isinstance(parsed, dict) and isinstance(parsed.get("notes"), list):
        return list(parsed["notes"])
    if isinstance(parsed, list):
        return list(parsed)
    return []


def summarize_notes(notes: List[Dict[str, Any]]) -> GenerationSummary:
    """Counts over the final note list; model-reported summaries are ignored."""
    key_topics: List[str] = []
    for note in notes:
        topic = note["topic"].strip()
        if topic not in key_topics:
            key_topics.append(topic)
    relevance = [str(n.get("examRelevance", "")).upper() for n in notes]
    return GenerationSummary(
        total=len(notes),
        ssc_count=relevance.count("SSC"),
        upsc_count=relevance.count("UPSC"),
        both_count=relevance.count("BOTH"),
        high_priority_count=sum(1 for n in notes if importance_of(n) >= 4),
        key_topics=key_topics,
    )


def select_prompt(chunk: str, exam_track: ExamTrack, focus: Optional[str] = None,
                  style: Optional[str] = None) -> str:
    if focus:
        return enhance_notes_prompt(chunk, focus, style or "SSC")
    if exam_track == ExamTrack.UPSC:
        return upsc_keyword_engine_prompt(chunk)
    return ssc_fact_chrono_prompt(chunk)


async def _process_chunk(invoker, chunk: Chunk, total: int, model_id: str, credential: Optional[str],
                         focus: Optional[str], style: Optional[str], exam_track: ExamTrack) -> ChunkResult:
    log = logger.bind(chunk_index=chunk.index, chunks=total, model_id=model_id)
    log.info("chunk_started", chars=len(chunk.text))
    prompt = select_prompt(chunk.text, exam_track, focus, style)
    try:
        completion = await invoker.invoke(
            model_id, NOTES_SYSTEM_PROMPT, prompt,
            credential=credential, temperature=NOTES_TEMPERATURE,
        )
        parsed = recover_json(completion.text)
    except ProviderError as e:
        log.error("chunk_failed", kind="provider", error=str(e))
        CHUNK_OUTCOMES.labels(status="provider_error").inc()
        return ChunkResult(chunk.index, error=ChunkError("provider", str(e), e.status_code))
    except EmptyCompletionError as e:
        log.warning("chunk_failed", kind="empty", error=str(e))
        CHUNK_OUTCOMES.labels(status="empty").inc()
        return ChunkResult(chunk.index, error=ChunkError("empty", str(e)))
    except JsonParseError as e:
        log.error("chunk_failed", kind="parse", error=str(e))
        CHUNK_OUTCOMES.labels(status="parse_failed").inc()
        return ChunkResult(chunk.index, error=ChunkError("parse", str(e)))
    except Exception as e:
        # every chunk ends in a ChunkResult, gather never sees an exception
        log.exception("chunk_failed", kind="unexpected", error=str(e))
        CHUNK_OUTCOMES.labels(status="unexpected").inc()
        return ChunkResult(chunk.index, error=ChunkError("unexpected", f"{type(e).__name__}: {e}"))

    notes = extract_notes(parsed)
    log.info("chunk_completed", notes=len(notes))
    CHUNK_OUTCOMES.labels(status="ok").inc()
    return ChunkResult(chunk.index, notes=notes)


@log_performance("generate_notes")
async def generate_notes(
    invoker,
    source_text: str,
    model_id: str = DEFAULT_MODEL,
    credential: Optional[str] = None,
    focus: Optional[str] = None,
    style: Optional[str] = None,
    exam_track: ExamTrack = ExamTrack.SSC,
    max_chunk_length: int = DEFAULT_CHUNK_LENGTH,
) -> NotesResult:
    """Generate smart notes for the whole source text.

    Raises ProviderError only when every chunk failed on the transport; any
    other mix of failures just yields fewer (possibly zero) notes.
    """
    chunks = [c for c in chunk_text(source_text or "", max_chunk_length) if c.text]
    logger.info("notes_generation_started", chunks=len(chunks), model_id=model_id,
                exam_track=ExamTrack(exam_track).value, focus=focus)

    # asyncio.gather cancels the pending chunk calls if this coroutine is cancelled
    results: List[ChunkResult] = await asyncio.gather(*(
        _process_chunk(invoker, chunk, len(chunks), model_id, credential, focus, style, ExamTrack(exam_track))
        for chunk in chunks
    ))
    results.sort(key=lambda r: r.index)

    if results and all(r.error is not None and r.error.kind == "provider" for r in results):
        last = results[-1].error
        raise ProviderError(f"All {len(results)} chunks failed: {last.message}", status_code=last.status_code)

    merged: List[Dict[str, Any]] = []
    for result in results:
        merged.extend(result.notes)
    valid = [n for n in merged if is_valid_note(n)]
    if len(valid) != len(merged):
        logger.info("notes_dropped", dropped=len(merged) - len(valid))

    summary = summarize_notes(valid)
    logger.info("notes_generation_completed", notes=summary.total,
                successful_chunks=sum(1 for r in results if r.ok), chunks=len(results))
    return NotesResult(notes=valid, summary=summary, chunk_results=results)
