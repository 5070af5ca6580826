import logging
import secrets
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported by us as 401, not by FastAPI
bearer_scheme = HTTPBearer(auto_error=False)


def is_valid_token(token: str, expected: str) -> bool:
    # An empty configured secret never matches
    if not expected:
        return False
    return secrets.compare_digest(token.encode(), expected.encode())


# Gate every API route behind the single shared secret
async def require_token(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
):
    if credentials is None or not credentials.credentials:
        logger.error("No token provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not is_valid_token(credentials.credentials, settings.AUTH_TOKEN):
        logger.error("Invalid token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Invalid token",
        )
