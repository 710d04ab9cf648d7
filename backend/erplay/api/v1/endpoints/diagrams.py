from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from erplay.core.database import get_db
from erplay.models.diagram import Diagram
from erplay.models.user import User
from erplay.modules.auth.dependencies import get_current_user, require_supervisor
from erplay.schemas.diagram import parse_questions_field
from erplay.services.diagram_service import DiagramService


router = APIRouter()


@router.get("")
@router.get("/", include_in_schema=False)
async def list_diagrams(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Diagrams newest first with their approved question count"""
    return await DiagramService(db).list_diagrams()


@router.get("/public")
async def list_public_diagrams(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Diagram).order_by(Diagram.created_at.desc()))
    return [{"id": d.id, "title": d.title, "path": d.path} for d in result.scalars().all()]


@router.get("/{diagram_id}")
async def get_diagram(
    diagram_id: str,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    return await DiagramService(db).get_diagram_detail(diagram_id)


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_diagram(
    title: str = Form(""),
    questions: str = Form(""),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    """Multipart form: title, questions (JSON array) and image"""
    parsed = parse_questions_field(questions)
    return await DiagramService(db).create_diagram(title, parsed, image, current_user)


@router.put("/{diagram_id}")
async def update_diagram(
    diagram_id: str,
    title: str = Form(""),
    questions: str = Form(""),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    parsed = parse_questions_field(questions)
    await DiagramService(db).update_diagram(diagram_id, title, parsed, image, current_user)
    return {"message": "Updated"}


@router.delete("/{diagram_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_diagram(
    diagram_id: str,
    current_user: User = Depends(require_supervisor),
    db: AsyncSession = Depends(get_db)
):
    await DiagramService(db).delete_diagram(diagram_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
