from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session
from typing import Dict, List, Optional

from smartnotes.db import get_session
from smartnotes.models import SmartNote
from smartnotes.services.repository import delete_note, list_notes, update_note


router = APIRouter(prefix="/smart-notes", tags=["smart-notes"])


class NoteUpdate(BaseModel):
    topic: Optional[str] = None
    content: Optional[str] = None
    subtopic: Optional[str] = None


@router.get("/{material_id}")
def get_smart_notes(material_id: int, exam: Optional[str] = None, session: Session = Depends(get_session)):
    notes = list_notes(session, material_id, exam)

    by_topic: Dict[str, List[SmartNote]] = {}
    for note in notes:
        by_topic.setdefault(note.topic, []).append(note)

    # Stored notes tagged BOTH count towards either exam
    summary = {
        "total": len(notes),
        "ssc_count": sum(1 for n in notes if n.exam_relevance in ("SSC", "BOTH")),
        "upsc_count": sum(1 for n in notes if n.exam_relevance in ("UPSC", "BOTH")),
        "high_priority_count": sum(1 for n in notes if n.importance >= 4),
    }
    return {"notes": notes, "by_topic": by_topic, "summary": summary}


@router.patch("/note/{note_id}")
def edit_note(note_id: int, body: NoteUpdate, session: Session = Depends(get_session)):
    """Edit topic, content or subtopic. Empty topic/content are ignored; subtopic may be cleared with null."""
    changes = {}
    if body.topic:
        changes["topic"] = body.topic
    if body.content:
        changes["content"] = body.content
    if "subtopic" in body.model_fields_set:
        changes["subtopic"] = body.subtopic
    if not changes:
        raise HTTPException(status_code=400, detail="At least one field is required")

    note = update_note(session, note_id, changes)
    if not note:
        raise HTTPException(status_code=404, detail="Smart Note not found")
    return note


@router.delete("/note/{note_id}")
def remove_note(note_id: int, session: Session = Depends(get_session)):
    if not delete_note(session, note_id):
        raise HTTPException(status_code=404, detail="Note not found")
    return {"success": True}
