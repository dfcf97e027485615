# FILE: paperink/api/deps.py

import jwt

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.core.database import get_db
from paperink.core.config import AUTH_JWT_SECRET, AUTH_JWT_ALGORITHM, AUTH_JWT_AUDIENCE
from paperink.services.credit_service import ensure_profile

security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    if AUTH_JWT_AUDIENCE:
        return jwt.decode(token, AUTH_JWT_SECRET, algorithms=[AUTH_JWT_ALGORITHM], audience=AUTH_JWT_AUDIENCE)
    return jwt.decode(
        token,
        AUTH_JWT_SECRET,
        algorithms=[AUTH_JWT_ALGORITHM],
        options={"verify_aud": False},
    )


async def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: AsyncSession = Depends(get_db),
):
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_token(credentials.credentials.strip())
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    # Auth provider puts the user id in `sub`
    user_id = payload.get("sub") or payload.get("user_id") or payload.get("id")
    if not user_id or not isinstance(user_id, str):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    email = payload.get("email")
    profile = await ensure_profile(db, user_id, email)

    return {
        "id": user_id,
        "email": email or profile.email,
        "language": profile.language,
    }
