# examprep/api/v1/endpoints/materials.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from examprep.db.session import get_db
from examprep.schemas.material import MaterialCreate, MaterialPublic
from examprep.services import material_service

router = APIRouter(prefix="/courses/{course_id}/materials", tags=["materials"])


@router.post("/", response_model=MaterialPublic, status_code=status.HTTP_201_CREATED)
def register_material(
    course_id: str,
    obj_in: MaterialCreate,
    db: Session = Depends(get_db),
):
    """
    登记课程资料（文件已在对象存储中）。
    """
    return material_service.create_material(db, course_id=course_id, obj_in=obj_in)


@router.get("/", response_model=List[MaterialPublic])
def list_materials(
    course_id: str,
    db: Session = Depends(get_db),
    user_id: str | None = None,
):
    return material_service.list_materials_for_course(db, course_id=course_id, user_id=user_id)
