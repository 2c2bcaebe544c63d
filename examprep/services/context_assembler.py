# examprep/services/context_assembler.py
from typing import List, Optional

from sqlalchemy.orm import Session

from examprep.models.resource_material import ResourceMaterial


def list_material_names(db: Session, course_id: str) -> List[str]:
    rows = (
        db.query(ResourceMaterial.file_name)
        .filter(ResourceMaterial.course_id == course_id)
        .order_by(ResourceMaterial.created_at.asc())
        .all()
    )
    return [name for (name,) in rows if name]


def assemble_course_context(db: Session, course_id: str) -> Optional[str]:
    """File names only; the material contents are never read here."""
    names = list_material_names(db, course_id)
    if not names:
        return None
    return ", ".join(names)
