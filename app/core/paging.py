import base64, json
from fastapi import Query
from pydantic import BaseModel
from app.core.errors import ValidationFailure

def encode_cursor(obj: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(obj, separators=(",",":")).encode()).decode()

def decode_cursor(token: str | None) -> dict | None:
    if not token: return None
    try:
        data = json.loads(base64.urlsafe_b64decode(token.encode()).decode())
    except (ValueError, UnicodeDecodeError):
        raise ValidationFailure("Invalid cursor", errors=[{"field": "cursor", "message": "malformed cursor"}])
    if not isinstance(data, dict):
        raise ValidationFailure("Invalid cursor", errors=[{"field": "cursor", "message": "malformed cursor"}])
    return data


class OffsetPage(BaseModel):
    limit: int = 50
    offset: int = 0

def offset_page(limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0)) -> OffsetPage:
    return OffsetPage(limit=limit, offset=offset)
