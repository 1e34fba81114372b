"""Projects (sites): client, address, consultants and the site team."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from sitebook.database import get_db
from sitebook import crud, schemas

router = APIRouter(prefix="/api/projects", tags=["projects"])

RESPONSE_404 = {404: {"description": "Project not found"}}


async def _get_or_404(db: AsyncSession, project_id: int):
    p = await crud.get_project(db, project_id)
    if not p:
        raise HTTPException(status_code=404, detail="Project not found")
    return p


@router.get("", response_model=List[schemas.ProjectRead])
async def list_projects(db: AsyncSession = Depends(get_db)):
    return await crud.list_projects(db)


@router.post("", response_model=schemas.ProjectRead, status_code=201)
async def create_project(data: schemas.ProjectCreate, db: AsyncSession = Depends(get_db)):
    return await crud.create_project(db, data)


@router.get("/{project_id}", response_model=schemas.ProjectRead, responses={**RESPONSE_404})
async def get_project(project_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_or_404(db, project_id)


@router.patch("/{project_id}", response_model=schemas.ProjectRead, responses={**RESPONSE_404})
async def update_project(project_id: int, data: schemas.ProjectUpdate, db: AsyncSession = Depends(get_db)):
    p = await _get_or_404(db, project_id)
    return await crud.update_project(db, p, data)


@router.delete("/{project_id}", status_code=204, responses={**RESPONSE_404})
async def delete_project(project_id: int, db: AsyncSession = Depends(get_db)):
    await crud.delete_project(db, await _get_or_404(db, project_id))
