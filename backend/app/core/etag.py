"""Conditional GET support for single-resource responses.

The entity tag is a strong validator over the request path and the JSON
body: MD5, base64-encoded, quoted. A matching ``If-None-Match`` yields an
empty 304.
"""

import base64
import hashlib
import json

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def compute_etag(path: str, body: bytes) -> str:
    """Quoted entity tag for a path and serialized body."""
    digest = hashlib.md5(path.encode() + body, usedforsecurity=False).digest()
    return f'"{base64.b64encode(digest).decode()}"'


def _matches(if_none_match: str | None, etag: str) -> bool:
    if not if_none_match:
        return False
    candidates = [tag.strip() for tag in if_none_match.split(",")]
    return "*" in candidates or etag in candidates


def etag_response(request: Request, model: BaseModel) -> Response:
    """Serialize ``model`` with an ETag, or answer 304 when the client has it."""
    content = model.model_dump(mode="json", by_alias=True)
    body = json.dumps(content, separators=(",", ":")).encode()
    etag = compute_etag(request.url.path, body)

    if _matches(request.headers.get("If-None-Match"), etag):
        return Response(status_code=304, headers={"ETag": etag})

    return JSONResponse(content=content, headers={"ETag": etag})
