import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health(request: Request, db: Session = Depends(get_db)):
    rid = getattr(request.state, "request_id", None)
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.exception("[health] database check failed")
        database = "unavailable"
    return {"status": "ok", "database": database, "request_id": rid}
