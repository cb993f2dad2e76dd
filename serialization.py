import json
from typing import Any

from pydantic import BaseModel

from errors import PayloadError


def parse_json_object(raw: bytes) -> dict[str, Any]:
    """Decode a request body that must be a JSON object."""
    try:
        data = json.loads(raw or b"null")
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PayloadError(f"Invalid JSON body: {exc}") from exc
    if not isinstance(data, dict):
        raise PayloadError("Request body must be a JSON object")
    return data


def apply_payload(entity: Any, payload: BaseModel) -> Any:
    """Copy the fields present in ``payload`` onto ``entity`` in place."""
    for field in payload.model_fields_set:
        setattr(entity, field, getattr(payload, field))
    return entity


def dump(schema: type[BaseModel], obj: Any) -> dict[str, Any]:
    """Serialize an ORM object through ``schema`` into camelCase JSON data."""
    return schema.model_validate(obj, from_attributes=True).model_dump(
        mode="json", by_alias=True
    )
