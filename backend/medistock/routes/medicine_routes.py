from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..db import get_db
from ..substitution.service import find_alternatives
from .ai_routes import substitution_out

router = APIRouter(prefix="/medicines", tags=["Medicines"])


@router.get("/{medicine_id}/alternatives", response_model=schemas.SubstitutionOut)
def list_alternatives(
    medicine_id: int,
    pharmacy_id: int,
    limit: int = Query(5, ge=1, le=20),
    db: Session = Depends(get_db),
):
    try:
        result = find_alternatives(db, medicine_id, pharmacy_id, max_alternatives=limit)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medicine not found") from exc
    return substitution_out(result)
