"""JWT 기반 관리 API 인증과 Content API 프로젝트 접근 검사 의존성입니다."""

import hmac
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from headless_cms.database import get_db
from headless_cms.models.project import Project
from headless_cms.models.user import User
from headless_cms.config import settings

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = db.query(User).filter(User.user_id == int(user_id), User.is_active == True).first()  # noqa: E712
    if not user:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


def require_roles(*roles: str):
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(roles)}",
            )
        return current_user
    return checker


def get_api_project(
    project_uuid: str,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Session = Depends(get_db),
) -> Project:
    """공개 API가 켜져 있거나 Bearer 토큰이 프로젝트 API 토큰과 같을 때만 프로젝트를 돌려줍니다."""
    project = (
        db.query(Project)
        .filter(Project.uuid == project_uuid, Project.deleted_at.is_(None))
        .first()
    )
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    if project.public_api:
        return project

    token = credentials.credentials if credentials is not None else None
    if not token or not project.api_token or not hmac.compare_digest(token, project.api_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API token")
    return project


def get_api_write_project(
    project: Project = Depends(get_api_project),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Project:
    """쓰기 요청은 공개 API 여부와 무관하게 API 토큰이 필요합니다."""
    token = credentials.credentials if credentials is not None else None
    if not token or not project.api_token or not hmac.compare_digest(token, project.api_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API token")
    return project
