from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =========================
# REQUESTS
# =========================
class SqlQueryRequest(BaseModel):
    # Optional so a missing query is reported as 400 by the validator, not 422
    sql: Optional[str] = None


class DiagramRequest(BaseModel):
    data: Any = None


# =========================
# RESPONSES
# =========================
class SqlQueryResponse(BaseModel):
    sql: str
    data: Optional[List[Dict[str, Any]]] = None
    message: Optional[str] = None


class QueryResponse(SqlQueryResponse):
    """Rows plus, when generation succeeded, the diagram and its PNG."""

    mermaid_diagram: Optional[str] = Field(default=None, alias="mermaidDiagram")
    image_base64: Optional[str] = Field(default=None, alias="imageBase64")

    model_config = ConfigDict(populate_by_name=True)


class DiagramResponse(BaseModel):
    mermaid_diagram: str = Field(alias="mermaidDiagram")
    image_url: str = Field(alias="imageUrl")

    model_config = ConfigDict(populate_by_name=True)
