"""
FastAPI dependencies for the gateway routes.

Request payloads are read from the query string with the JSON body merged on
top, then validated against the route's request model.
"""
import json
from typing import Any, Callable, Dict, Type, TypeVar

import pydantic
from fastapi import Request
from pydantic.alias_generators import to_camel

from feed_gateway.core.config import Settings, get_settings
from feed_gateway.core.exceptions import ValidationError
from feed_gateway.feeds.client import FeedsClient

RequestModel = TypeVar("RequestModel", bound=pydantic.BaseModel)

_REQUIRED_ERROR_TYPES = {"missing", "string_too_short"}


async def get_feeds_client(request: Request) -> FeedsClient:
    """Shared feed service client (for dependency injection)"""
    client = getattr(request.app.state, "feeds_client", None)
    if client is None:
        raise RuntimeError("Feed client not initialized")
    return client


async def read_payload(request: Request) -> Dict[str, Any]:
    """Merge query parameters and the JSON body; body keys win."""
    payload: Dict[str, Any] = dict(request.query_params)
    body = await request.body()
    if not body.strip():
        return payload
    
    try:
        data = json.loads(body)
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    
    payload.update(data)
    return payload


def parse_payload(model: Type[RequestModel], payload: Dict[str, Any]) -> RequestModel:
    """
    Validate a payload against a request model.
    
    Raises:
        ValidationError: naming the first offending field
    """
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "body"
        missing = error["type"] in _REQUIRED_ERROR_TYPES
        if missing or (error.get("input") is None and _is_required(model, error["loc"])):
            raise ValidationError.missing(field)
        raise ValidationError(f"{field}: {error['msg']}", field=field)


def _is_required(model: Type[pydantic.BaseModel], loc) -> bool:
    """True when ``loc`` names a top-level field declared without a default"""
    if len(loc) != 1:
        return False
    for name, info in model.model_fields.items():
        if loc[0] in (name, info.alias, to_camel(name)):
            return info.is_required()
    return False


def payload_of(model: Type[RequestModel]) -> Callable:
    """Build a dependency that yields a validated ``model`` instance"""
    
    async def dependency(request: Request) -> RequestModel:
        return parse_payload(model, await read_payload(request))
    
    return dependency


async def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with"""
    return getattr(request.app.state, "settings", None) or get_settings()
