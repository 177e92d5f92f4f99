from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlmodel import Session
from typing import List, Optional
import enum

import structlog

from smartnotes.db import get_session
from smartnotes.deps import get_invoker
from smartnotes.middleware.rate_limit import ai_generation_limit
from smartnotes.services.errors import GenerationError, MaterialNotFound, ProviderError
from smartnotes.services.llm import ModelInvoker
from smartnotes.services.mcq_generator import generate_mcqs, mcq_target_count
from smartnotes.services.monitoring import AI_GENERATION_REQUESTS
from smartnotes.services.notes_generator import ExamTrack, generate_notes, summarize_notes
from smartnotes.services.providers import DEFAULT_MODEL
from smartnotes.services.repository import (
    get_material, insert_mcq, insert_note, list_notes, note_to_prompt_dict,
)

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["generation"])


class GenerationType(str, enum.Enum):
    BOTH = "BOTH"
    NOTES = "NOTES"
    MCQS = "MCQS"


class GenerateRequest(BaseModel):
    material_id: int
    level: str = "Medium"
    style: str = "SSC CGL 2024"
    model_id: Optional[str] = None
    account_index: int = 1
    generation_type: GenerationType = GenerationType.BOTH
    exam_track: ExamTrack = ExamTrack.SSC
    focus: Optional[str] = None


def resolve_credential_or_401(invoker: ModelInvoker, model_id: Optional[str], account_index: int) -> str:
    spec = invoker.registry.get(model_id)
    credential = invoker.registry.resolve_credential(spec, account_index=account_index)
    if not credential:
        logger.error("missing_api_key", provider=spec.provider.value)
        raise HTTPException(
            status_code=401,
            detail=f"API Key for {spec.provider.value} is not configured in production settings.",
        )
    return credential


def generation_error_to_http(e: GenerationError, what: str) -> HTTPException:
    if isinstance(e, ProviderError):
        return HTTPException(status_code=502, detail=f"{what} failed: {e}")
    return HTTPException(status_code=500, detail=f"{what} failed: {e}")


@router.get("/models")
def list_models(invoker: ModelInvoker = Depends(get_invoker)):
    return {
        "default": DEFAULT_MODEL,
        "models": [
            {
                "id": spec.id,
                "name": spec.name,
                "description": spec.description,
                "provider": spec.provider.value,
                "supports_json_mode": spec.supports_json_mode,
                "supports_extended_reasoning": spec.supports_extended_reasoning,
            }
            for spec in invoker.registry.all()
        ],
    }


@router.post("/generate-mcq")
@ai_generation_limit()
async def generate_content(
    request: Request,
    body: GenerateRequest,
    session: Session = Depends(get_session),
    invoker: ModelInvoker = Depends(get_invoker),
):
    """Generate smart notes and/or MCQs for a material and store them."""
    model_id = body.model_id or DEFAULT_MODEL
    credential = resolve_credential_or_401(invoker, model_id, body.account_index)

    try:
        material = get_material(session, body.material_id)
    except MaterialNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    wants_notes = body.generation_type in (GenerationType.NOTES, GenerationType.BOTH)
    wants_mcqs = body.generation_type in (GenerationType.MCQS, GenerationType.BOTH)

    notes_for_mcqs: Optional[List[dict]] = None
    saved_notes = []
    summary = {}
    failed_chunks = 0

    # Reuse stored notes so MCQs stay consistent with what the student already sees
    if wants_mcqs:
        existing = list_notes(session, material.id)
        if existing:
            logger.info("reusing_existing_notes", material_id=material.id, notes=len(existing))
            saved_notes = existing
            notes_for_mcqs = [note_to_prompt_dict(n) for n in existing]
            summary = summarize_notes(notes_for_mcqs).to_dict()

    if notes_for_mcqs is None:
        try:
            result = await generate_notes(
                invoker, material.raw_text, model_id, credential,
                focus=body.focus, style=body.style, exam_track=body.exam_track,
            )
        except GenerationError as e:
            AI_GENERATION_REQUESTS.labels(type="notes", status="error").inc()
            raise generation_error_to_http(e, "Smart notes generation")
        AI_GENERATION_REQUESTS.labels(type="notes", status="success").inc()

        notes_for_mcqs = result.notes
        summary = result.summary.to_dict()
        failed_chunks = len(result.failed_chunks)
        if wants_notes:
            for note in result.notes:
                saved_notes.append(insert_note(session, material.id, note))

    saved_mcqs = []
    trap_concepts = []
    if wants_mcqs and notes_for_mcqs:
        target = mcq_target_count(len(notes_for_mcqs))
        try:
            mcq_result = await generate_mcqs(
                invoker, notes_for_mcqs, body.style, body.level, target, model_id, credential,
                focus=body.focus, exam_track=body.exam_track,
            )
        except GenerationError as e:
            AI_GENERATION_REQUESTS.labels(type="mcqs", status="error").inc()
            raise generation_error_to_http(e, "MCQ generation")
        AI_GENERATION_REQUESTS.labels(type="mcqs", status="success").inc()

        trap_concepts = mcq_result.trap_concepts
        for mcq in mcq_result.questions:
            saved_mcqs.append(insert_mcq(session, material.id, mcq, body.level, body.style))
    elif wants_mcqs:
        logger.warning("mcq_generation_skipped", material_id=material.id, reason="no notes")

    return {
        "success": True,
        "smart_notes": {
            "count": len(saved_notes),
            "summary": summary,
            "notes": saved_notes,
            "failed_chunks": failed_chunks,
        },
        "mcqs": {
            "count": len(saved_mcqs),
            "questions": saved_mcqs,
            "trap_concepts": trap_concepts,
        },
    }
