from fastapi import APIRouter, Depends

from app.api.endpoints import diagrams, query
from app.core.security import require_token

# Every route below needs the shared bearer token
api_router = APIRouter(dependencies=[Depends(require_token)])

# Combine all sub-routers into one
api_router.include_router(query.router)
api_router.include_router(diagrams.router)
