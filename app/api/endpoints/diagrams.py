import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.ai_feature.service import DiagramGenerationError
from app.core import schemas
from app.core.services import Services, get_services

router = APIRouter(tags=["Diagrams"])

services_dep = Annotated[Services, Depends(get_services)]

logger = logging.getLogger(__name__)


def diagram_cache_key(data) -> str:
    return "mermaid:" + json.dumps(data, sort_keys=True, default=str)


@router.post("/generate-mermaid", response_model=schemas.DiagramResponse)
async def generate_mermaid(payload: schemas.DiagramRequest, services: services_dep):
    """
    Generate a Mermaid diagram for arbitrary JSON data and keep its PNG under
    /diagrams. Either step failing is a 500; there is no partial result here.
    """
    data = payload.data
    # Falsy scalars (null, "", 0, false) count as missing; empty lists and objects do not
    if data is None or (not data and not isinstance(data, (list, dict))):
        logger.error("No data provided for Mermaid diagram generation")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No data provided"
        )

    cache_key = diagram_cache_key(data)
    cached_result = services.cache.get(cache_key)
    if cached_result is not None:
        logger.info(f"Cache hit for data: {cache_key}")
        return cached_result

    try:
        mermaid_diagram = await services.synthesizer.synthesize(data)
    except DiagramGenerationError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate Mermaid diagram",
        )

    try:
        image_name = await services.renderer.render_file(mermaid_diagram)
    except DiagramGenerationError:
        logger.warning("Failed to generate image from Mermaid diagram")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate image from Mermaid diagram",
        )

    base_url = services.settings.PUBLIC_BASE_URL.rstrip("/")
    result = schemas.DiagramResponse(
        mermaid_diagram=mermaid_diagram,
        image_url=f"{base_url}/diagrams/{image_name}",
    )

    services.cache.set(cache_key, result)
    return result
