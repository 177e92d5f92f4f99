from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import structlog

from smartnotes.services.errors import JsonParseError
from smartnotes.services.json_recovery import recover_json
from smartnotes.services.logging import log_performance
from smartnotes.services.notes_generator import ExamTrack
from smartnotes.services.prompts import MCQ_SYSTEM_PROMPT, mcq_from_notes_prompt, upsc_mcq_prompt
from smartnotes.services.providers import DEFAULT_MODEL

logger = structlog.get_logger(__name__)

MCQ_TEMPERATURE = 0.7
OPTION_COUNT = 4
MAX_NOTES_JSON_CHARS = 10000


@dataclass
class MCQResult:
    questions: List[Dict[str, Any]]
    trap_concepts: List[Any] = field(default_factory=list)


def mcq_target_count(note_count: int) -> int:
    """Roughly one question per note, never fewer than 12."""
    return max(12, math.ceil(note_count * 1.1))


def serialize_notes(notes: Any) -> str:
    """Compact Topic/Sub/Content blocks instead of full JSON, to save prompt budget."""
    if isinstance(notes, Mapping) and isinstance(notes.get("notes"), list):
        notes = notes["notes"]
    if isinstance(notes, (list, tuple)):
        blocks = []
        for note in notes:
            if not isinstance(note, Mapping):
                continue
            blocks.append(
                f"Topic: {note.get('topic')}\nSub: {note.get('subtopic')}\nContent: {note.get('content')}\n---"
            )
        return "\n".join(blocks)
    return json.dumps(notes, indent=2, ensure_ascii=False, default=str)[:MAX_NOTES_JSON_CHARS]


def is_valid_mcq(mcq: Any) -> bool:
    """question, four string options and an answer equal to one of them."""
    if not isinstance(mcq, dict):
        return False
    question = mcq.get("question")
    options = mcq.get("options")
    answer = mcq.get("answer")
    if not isinstance(question, str) or not question.strip():
        return False
    if not isinstance(options, list) or len(options) != OPTION_COUNT:
        return False
    if not all(isinstance(o, str) and o.strip() for o in options):
        return False
    if not isinstance(answer, str) or not answer.strip():
        return False
    return answer in options


def extract_questions(parsed: Any, exam_track: ExamTrack = ExamTrack.SSC) -> MCQResult:
    """Normalise the accepted response shapes.

    Accepted, in order: a bare [...] array, {"questions": [...]} and
    {"mcqs": [...]}. "trapConcepts" is only read next to "questions" on the
    UPSC track.
    """
    if isinstance(parsed, list):
        return MCQResult(questions=list(parsed))
    if isinstance(parsed, dict):
        if isinstance(parsed.get("questions"), list):
            traps = parsed.get("trapConcepts")
            if exam_track == ExamTrack.UPSC and isinstance(traps, list):
                return MCQResult(questions=list(parsed["questions"]), trap_concepts=list(traps))
            return MCQResult(questions=list(parsed["questions"]))
        if isinstance(parsed.get("mcqs"), list):
            return MCQResult(questions=list(parsed["mcqs"]))
    return MCQResult(questions=[])


@log_performance("generate_mcqs")
async def generate_mcqs(
    invoker,
    notes: Any,
    style: str,
    level: str,
    target_count: int = 20,
    model_id: str = DEFAULT_MODEL,
    credential: Optional[str] = None,
    focus: Optional[str] = None,
    exam_track: ExamTrack = ExamTrack.SSC,
) -> MCQResult:
    """One completion for the whole note set.

    Provider errors, empty completions and JSON that survives neither parse
    nor repair propagate to the caller. Malformed questions are dropped one
    by one.
    """
    exam_track = ExamTrack(exam_track)
    notes_text = serialize_notes(notes)

    if exam_track == ExamTrack.UPSC:
        prompt = upsc_mcq_prompt(notes_text, focus or "the topic", target_count, exam_track.value)
    else:
        prompt = mcq_from_notes_prompt(notes_text, style, level, target_count, focus, exam_track.value)

    logger.info("mcq_generation_started", target_count=target_count, model_id=model_id,
                exam_track=exam_track.value, focus=focus)
    completion = await invoker.invoke(
        model_id, MCQ_SYSTEM_PROMPT, prompt,
        credential=credential, temperature=MCQ_TEMPERATURE,
    )
    try:
        parsed = recover_json(completion.text)
    except JsonParseError:
        logger.error("mcq_raw_completion", model_id=model_id, raw=completion.text[:2000])
        raise

    result = extract_questions(parsed, exam_track)
    valid = [q for q in result.questions if is_valid_mcq(q)]
    if len(valid) != len(result.questions):
        logger.warning("mcqs_dropped", dropped=len(result.questions) - len(valid))
    logger.info("mcq_generation_completed", questions=len(valid), trap_concepts=len(result.trap_concepts))
    return MCQResult(questions=valid, trap_concepts=result.trap_concepts)
