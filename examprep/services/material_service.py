# examprep/services/material_service.py
from typing import List, Optional

from sqlalchemy.orm import Session

from examprep.models.resource_material import ResourceMaterial
from examprep.schemas.material import MaterialCreate


def create_material(db: Session, *, course_id: str, obj_in: MaterialCreate) -> ResourceMaterial:
    db_obj = ResourceMaterial(
        course_id=course_id,
        user_id=obj_in.user_id,
        file_name=obj_in.file_name,
        file_path=obj_in.file_path,
        file_size=obj_in.file_size,
        resource_type=obj_in.resource_type,
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def list_materials_for_course(
    db: Session,
    *,
    course_id: str,
    user_id: Optional[str] = None,
) -> List[ResourceMaterial]:
    query = db.query(ResourceMaterial).filter(ResourceMaterial.course_id == course_id)
    if user_id is not None:
        query = query.filter(ResourceMaterial.user_id == user_id)
    return query.order_by(ResourceMaterial.created_at.asc()).all()
