from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

import jwt

from entaneer_mind.auth import jwt_handler
from entaneer_mind.database import get_db
from entaneer_mind.models.user import STATUS_SUSPENDED, User

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    account = payload.get("sub")
    if not account:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = db.query(User).filter(User.account == account).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if user.status == STATUS_SUSPENDED:
        raise HTTPException(status_code=403, detail="Account is suspended")
    return user


def ensure_role(user: User, *roles: str) -> None:
    if user.role not in roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only {' or '.join(roles)} accounts can do this.",
        )
