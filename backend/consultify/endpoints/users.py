# consultify/endpoints/users.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from consultify.database import get_db
from consultify.services.consultation_service import user_stats

router = APIRouter(prefix="/user", tags=["Users"])


@router.get("/stats")
def stats(userId: str = Query(...), userRole: str = Query(...), db: Session = Depends(get_db)):
    return user_stats(db, userId, userRole)
