from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Material(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    classroom_id: Optional[str] = Field(default=None, index=True)
    raw_text: str
    created_at: datetime = Field(default_factory=utc_now)


class SmartNote(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    material_id: int = Field(foreign_key="material.id", index=True)
    topic: str
    subtopic: Optional[str] = None
    content: str = ""
    exam_relevance: str = Field(default="BOTH", description="SSC, UPSC or BOTH")
    importance: int = 3
    memory_technique: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    exam_tips: Optional[str] = None
    common_mistakes: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None


class MCQ(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    material_id: int = Field(foreign_key="material.id", index=True)
    question: str
    options: List[str] = Field(sa_column=Column(JSON))
    answer: str
    explanation: str = ""
    level: str = "Medium"
    pyq_context: Optional[str] = None
    exam_relevance: Optional[str] = None
    importance: Optional[int] = None
    source_note: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class MindMap(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    material_id: int = Field(foreign_key="material.id", index=True)
    format: str = Field(default="MERMAID", description="MERMAID or TEXT")
    focus: Optional[str] = None
    content: str
    created_at: datetime = Field(default_factory=utc_now)
