from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from smartnotes.db import get_session
from smartnotes.services.errors import MaterialNotFound
from smartnotes.services.repository import get_material, list_mcqs


router = APIRouter(prefix="/quiz", tags=["quiz"])


@router.get("/{material_id}")
def get_quiz(material_id: int, session: Session = Depends(get_session)):
    try:
        material = get_material(session, material_id)
    except MaterialNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    mcqs = list_mcqs(session, material_id)
    return {"mcqs": mcqs, "source": material.title or "Chapter Quiz", "type": "Chapter Quiz"}
