from datetime import datetime, timedelta, timezone
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from typing import Optional

from app.core.database import get_db
from app.core.config import settings
from app.models.worker import Worker

router = APIRouter()
security = HTTPBearer()

# Tokens are issued by the identity service; this API only verifies them.
SECRET_KEY = settings.jwt_secret_key
ALGORITHM = settings.jwt_algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Create a JWT access token (scripts and tests)."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Worker:
    """Resolve the bearer token's subject to an active worker."""
    payload = decode_token(credentials.credentials)
    worker_id = payload.get("sub")
    if worker_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    try:
        worker = db.get(Worker, UUID(worker_id))
    except ValueError:
        worker = None
    if worker is None or not worker.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Worker not found or inactive",
        )
    return worker


@router.get("/me")
def get_current_user_info(current_worker: Worker = Depends(get_current_actor)):
    """Get current authenticated worker info."""
    return {
        "worker_id": str(current_worker.worker_id),
        "employee_code": current_worker.employee_code,
        "full_name": current_worker.full_name,
        "role": current_worker.role.value,
        "group_id": str(current_worker.group_id) if current_worker.group_id else None,
    }
