import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.ai_feature.service import DiagramGenerationError
from app.core import schemas
from app.core.database import QueryExecutionError
from app.core.services import Services, get_services
from app.core.validation import QueryValidationError, validate_select_query

router = APIRouter(tags=["Query"])

services_dep = Annotated[Services, Depends(get_services)]

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = (
    "No data found for the given query. Please check your query and try again."
)
NO_DIAGRAM_MESSAGE = "Diagram could not be generated for this result."


def check_query(sql, services: Services) -> str:
    logger.info(f"Received SQL query: {sql}")
    try:
        return validate_select_query(
            sql, max_length=services.settings.MAX_QUERY_LENGTH
        )
    except QueryValidationError as error:
        logger.error(f"Rejected SQL query: {error}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))


async def fetch_rows(sql: str, services: Services):
    try:
        return await services.fetcher.fetch(sql)
    except QueryExecutionError:
        # The store's message is already logged and stays server-side
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )


# Run a query and return the raw rows
@router.post(
    "/sql-query",
    response_model=schemas.SqlQueryResponse,
    response_model_exclude_none=True,
)
async def sql_query(payload: schemas.SqlQueryRequest, services: services_dep):
    sql = check_query(payload.sql, services)

    cache_key = f"sql:{sql}"
    cached_rows = services.cache.get(cache_key)
    if cached_rows is not None:
        logger.info(f"Cache hit for query: {sql}")
        return schemas.SqlQueryResponse(sql=sql, data=cached_rows)

    rows = await fetch_rows(sql, services)
    if not rows:
        logger.info("No data found for the given query.")
        return schemas.SqlQueryResponse(sql=sql, message=NO_DATA_MESSAGE)

    services.cache.set(cache_key, rows)
    return schemas.SqlQueryResponse(sql=sql, data=rows)


@router.post(
    "/query",
    response_model=schemas.QueryResponse,
    response_model_exclude_none=True,
)
async def query_with_diagram(payload: schemas.SqlQueryRequest, services: services_dep):
    """
    Run a query, then describe its rows as a Mermaid diagram rendered to PNG.

    A failed diagram still returns the rows, and that partial response is
    cached like a complete one.
    """
    sql = check_query(payload.sql, services)

    cache_key = f"query:{sql}"
    cached_response = services.cache.get(cache_key)
    if cached_response is not None:
        logger.info(f"Cache hit for query: {sql}")
        return cached_response

    rows = await fetch_rows(sql, services)
    if not rows:
        logger.info("No data found for the given query.")
        return schemas.QueryResponse(sql=sql, message=NO_DATA_MESSAGE)

    try:
        mermaid_diagram = await services.synthesizer.synthesize(rows)
        image_base64 = await services.renderer.render_base64(mermaid_diagram)
        response = schemas.QueryResponse(
            sql=sql,
            data=rows,
            mermaid_diagram=mermaid_diagram,
            image_base64=image_base64,
        )
    except DiagramGenerationError as error:
        logger.warning(f"Returning rows without a diagram: {error}")
        response = schemas.QueryResponse(sql=sql, data=rows, message=NO_DIAGRAM_MESSAGE)

    services.cache.set(cache_key, response)
    return response
