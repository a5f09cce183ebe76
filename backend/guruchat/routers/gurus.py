from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from guruchat.db import get_db
from guruchat.deps import get_current_user_id
from guruchat.schemas import GuruDetailResponse, GuruListResponse
from guruchat.services.guru_service import get_guru, list_gurus, to_guru_response

router = APIRouter(
    prefix="/api/gurus",
    tags=["gurus"],
    dependencies=[Depends(get_current_user_id)],
)


@router.get("", response_model=GuruListResponse)
def read_gurus(db: Session = Depends(get_db)):
    return GuruListResponse(data=[to_guru_response(g) for g in list_gurus(db)])


@router.get("/{guru_id}", response_model=GuruDetailResponse)
def read_guru(guru_id: str, db: Session = Depends(get_db)):
    return GuruDetailResponse(data=to_guru_response(get_guru(db, guru_id)))
