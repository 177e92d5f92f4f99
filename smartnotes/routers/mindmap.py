from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlmodel import Session
from typing import Optional

from smartnotes.db import get_session
from smartnotes.deps import get_invoker
from smartnotes.middleware.rate_limit import ai_generation_limit
from smartnotes.routers.generate import generation_error_to_http, resolve_credential_or_401
from smartnotes.services.errors import GenerationError, MaterialNotFound
from smartnotes.services.llm import ModelInvoker
from smartnotes.services.mindmap_generator import MindMapFormat, generate_mind_map
from smartnotes.services.monitoring import AI_GENERATION_REQUESTS
from smartnotes.services.providers import DEFAULT_MODEL
from smartnotes.services.repository import delete_mind_map, fetch_material_text, insert_mind_map


router = APIRouter(prefix="/mindmap", tags=["mindmap"])


class MindMapRequest(BaseModel):
    model_id: Optional[str] = None
    account_index: int = 1
    focus: Optional[str] = None
    format: MindMapFormat = MindMapFormat.MERMAID


@router.post("/{material_id}")
@ai_generation_limit()
async def create_mind_map(
    request: Request,
    material_id: int,
    body: MindMapRequest,
    session: Session = Depends(get_session),
    invoker: ModelInvoker = Depends(get_invoker),
):
    model_id = body.model_id or DEFAULT_MODEL
    credential = resolve_credential_or_401(invoker, model_id, body.account_index)
    try:
        source_text = fetch_material_text(session, material_id)
    except MaterialNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        content = await generate_mind_map(
            invoker, source_text, model_id, credential, focus=body.focus, fmt=body.format,
        )
    except GenerationError as e:
        AI_GENERATION_REQUESTS.labels(type="mindmap", status="error").inc()
        raise generation_error_to_http(e, "Mind map generation")
    AI_GENERATION_REQUESTS.labels(type="mindmap", status="success").inc()

    mind_map = insert_mind_map(session, material_id, content, body.format.value, body.focus)
    return {"success": True, "mind_map": mind_map}


@router.delete("/{mind_map_id}")
def remove_mind_map(mind_map_id: int, session: Session = Depends(get_session)):
    if not delete_mind_map(session, mind_map_id):
        raise HTTPException(status_code=404, detail="Mind map not found")
    return {"success": True, "message": "Mind Map deleted"}
