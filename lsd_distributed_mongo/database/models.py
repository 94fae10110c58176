"""
Database Models
===============
Pydantic models for intercepted interactions.

Python attributes are snake_case; the persisted document uses the
camelCase aliases (``traceId``, ``createdAt``...). Either name is
accepted on input.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InteractionType(Enum):
    """Kind of captured exchange."""
    REQUEST = "REQUEST"
    RESPONSE = "RESPONSE"
    PUBLISH = "PUBLISH"
    CONSUME = "CONSUME"


class InterceptedInteraction(BaseModel):
    """
    A single captured request/response exchange.

    Attributes:
        trace_id: Correlation id shared by every interaction of one flow
        created_at: When the interaction was captured (timezone-aware)
        interaction_type: REQUEST, RESPONSE, PUBLISH or CONSUME
        body: Request or response body, as captured
        request_headers: Multi-valued request headers
        response_headers: Multi-valued response headers
        service_name: Service that captured the interaction
        target: The other participant
        path: URL path, or topic/queue name for messaging
        http_status: Response status line, e.g. "200 OK"
        http_method: Request method, e.g. "GET"
        profile: Interaction naming/grouping profile
        elapsed_time: Round trip time in milliseconds
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    trace_id: str = Field(..., alias="traceId", min_length=1)
    created_at: datetime = Field(..., alias="createdAt")
    interaction_type: InteractionType = Field(..., alias="interactionType")

    body: Optional[str] = None
    request_headers: Dict[str, List[str]] = Field(default_factory=dict, alias="requestHeaders")
    response_headers: Dict[str, List[str]] = Field(default_factory=dict, alias="responseHeaders")
    service_name: Optional[str] = Field(None, alias="serviceName")
    target: Optional[str] = None
    path: Optional[str] = None
    http_status: Optional[str] = Field(None, alias="httpStatus")
    http_method: Optional[str] = Field(None, alias="httpMethod")
    profile: Optional[str] = None
    elapsed_time: int = Field(0, alias="elapsedTime", ge=0)

    @field_validator('trace_id')
    @classmethod
    def trace_id_not_blank(cls, v):
        if not v.strip():
            raise ValueError("traceId must not be blank")
        return v

    @field_validator('created_at')
    @classmethod
    def created_at_is_aware(cls, v):
        """Naive timestamps have no offset to preserve; reject them."""
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("createdAt must be timezone-aware")
        return v

    @field_validator('interaction_type', mode='before')
    @classmethod
    def interaction_type_by_name(cls, v):
        if isinstance(v, str):
            return InteractionType(v.upper())
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Alias-keyed dict with Python values (datetimes, enums kept as-is)."""
        return self.model_dump(by_alias=True)
