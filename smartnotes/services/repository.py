"""
Persistence for materials and generated content.

Every insert commits on its own; a batch that fails halfway leaves the rows
written so far in place.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import delete
from sqlmodel import Session, col, select

from smartnotes.models import MCQ, Material, MindMap, SmartNote, utc_now
from smartnotes.services.errors import MaterialNotFound
from smartnotes.services.notes_generator import importance_of

EXAM_FILTERS = ("SSC", "UPSC", "BOTH")


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        return "\n".join(str(v) for v in value) or None
    return str(value)


def create_material(session: Session, title: str, raw_text: str, classroom_id: Optional[str] = None) -> Material:
    material = Material(title=title, raw_text=raw_text, classroom_id=classroom_id)
    session.add(material)
    session.commit()
    session.refresh(material)
    return material


def get_material(session: Session, material_id: int) -> Material:
    material = session.get(Material, material_id)
    if not material:
        raise MaterialNotFound(material_id)
    return material


def fetch_material_text(session: Session, material_id: int) -> str:
    return get_material(session, material_id).raw_text


def delete_material(session: Session, material_id: int) -> None:
    """Delete a material together with its notes, MCQs and mind maps."""
    material = get_material(session, material_id)
    for table in (SmartNote, MCQ, MindMap):
        session.execute(delete(table).where(table.material_id == material_id))
    session.delete(material)
    session.commit()


def insert_note(session: Session, material_id: int, note: Dict[str, Any]) -> SmartNote:
    """Persist one generated note (camelCase model output)."""
    importance = importance_of(note)
    memory = note.get("memoryTechnique")
    row = SmartNote(
        material_id=material_id,
        topic=note["topic"].strip(),
        subtopic=_text_or_none(note.get("subtopic")),
        content=_text_or_none(note.get("content")) or "",
        exam_relevance=str(note.get("examRelevance") or "BOTH").upper(),
        importance=min(max(importance, 1), 5) if importance else 3,
        memory_technique=memory if isinstance(memory, dict) else None,
        exam_tips=_text_or_none(note.get("examTips")),
        common_mistakes=_text_or_none(note.get("commonMistakes")),
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def list_notes(session: Session, material_id: int, exam: Optional[str] = None) -> List[SmartNote]:
    """Notes of a material, most important first. exam keeps that exam's notes plus BOTH."""
    query = select(SmartNote).where(SmartNote.material_id == material_id)
    if exam and exam.upper() in EXAM_FILTERS:
        query = query.where(col(SmartNote.exam_relevance).in_([exam.upper(), "BOTH"]))
    query = query.order_by(col(SmartNote.importance).desc(), col(SmartNote.topic).asc())
    return list(session.exec(query).all())


EDITABLE_NOTE_FIELDS = ("topic", "subtopic", "content")


def update_note(session: Session, note_id: int, changes: Dict[str, Any]) -> Optional[SmartNote]:
    """Apply a manual edit to a stored note. None when the note does not exist."""
    note = session.get(SmartNote, note_id)
    if not note:
        return None
    for name, value in changes.items():
        if name not in EDITABLE_NOTE_FIELDS:
            raise ValueError(f"{name} is not an editable note field")
        setattr(note, name, value)
    note.updated_at = utc_now()
    session.add(note)
    session.commit()
    session.refresh(note)
    return note


def delete_note(session: Session, note_id: int) -> bool:
    note = session.get(SmartNote, note_id)
    if not note:
        return False
    session.delete(note)
    session.commit()
    return True


def note_to_prompt_dict(note: SmartNote) -> Dict[str, Any]:
    """Stored note back in the generated shape, for MCQ prompts."""
    return {
        "topic": note.topic,
        "subtopic": note.subtopic,
        "content": note.content,
        "examRelevance": note.exam_relevance,
        "importance": note.importance,
        "memoryTechnique": note.memory_technique,
    }


def insert_mcq(session: Session, material_id: int, mcq: Dict[str, Any], level: str, style: str) -> MCQ:
    """Persist one validated MCQ."""
    importance = importance_of(mcq)
    row = MCQ(
        material_id=material_id,
        question=mcq["question"],
        options=list(mcq["options"]),
        answer=mcq["answer"],
        explanation=_text_or_none(mcq.get("explanation")) or "",
        level=mcq.get("level") or level,
        pyq_context=mcq.get("pyqContext") or f"{style} style question",
        exam_relevance=_text_or_none(mcq.get("examRelevance")),
        importance=importance or None,
        source_note=_text_or_none(mcq.get("sourceNote")),
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def list_mcqs(session: Session, material_id: int) -> List[MCQ]:
    query = select(MCQ).where(MCQ.material_id == material_id).order_by(col(MCQ.created_at).desc(), col(MCQ.id).desc())
    return list(session.exec(query).all())


def insert_mind_map(session: Session, material_id: int, content: str, fmt: str,
                    focus: Optional[str] = None) -> MindMap:
    row = MindMap(material_id=material_id, content=content, format=fmt, focus=focus)
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def delete_mind_map(session: Session, mind_map_id: int) -> bool:
    mind_map = session.get(MindMap, mind_map_id)
    if not mind_map:
        return False
    session.delete(mind_map)
    session.commit()
    return True
