from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from sqlmodel import Session
from typing import Optional
import io

from smartnotes.db import get_session
from smartnotes.middleware.rate_limit import general_api_limit
from smartnotes.services.errors import MaterialNotFound
from smartnotes.services.repository import create_material, delete_material


router = APIRouter(prefix="/materials", tags=["materials"])


def extract_pdf_text(content: bytes, start_page: int, end_page: int) -> str:
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(content))
    total_pages = len(reader.pages)
    first = max(1, start_page)
    if first > total_pages:
        raise HTTPException(status_code=400, detail=f"Start page {first} exceeds total pages {total_pages}")
    last = min(end_page, total_pages)
    pages = []
    for page in reader.pages[first - 1:last]:
        pages.append(page.extract_text() or "")
    return "\n\n".join(pages).strip()


@router.post("/upload")
@general_api_limit()
async def upload_material(
    request: Request,
    title: str = Form(...),
    classroom_id: Optional[str] = Form(None),
    start_page: int = Form(1),
    end_page: int = Form(5),
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    content = await file.read()
    if (file.filename or "").lower().endswith(".pdf"):
        try:
            text = extract_pdf_text(content, start_page, end_page)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=400, detail=f"PDF parse error: {e}")
    else:
        text = content.decode("utf-8", errors="ignore").strip()

    if not text:
        raise HTTPException(status_code=400, detail="No text could be extracted from the selected range.")

    material = create_material(session, title=title, raw_text=text, classroom_id=classroom_id)
    return {"material_id": material.id, "title": material.title, "chars": len(text)}


@router.delete("/{material_id}")
def remove_material(material_id: int, session: Session = Depends(get_session)):
    try:
        delete_material(session, material_id)
    except MaterialNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": "Material deleted successfully", "material_id": material_id}
