from typing import Any

from pydantic import BaseModel


class CacheStats(BaseModel):
    name: str
    size: int
    keys: list[str] = []
    hits: int = 0
    misses: int = 0


class CachedResponse(BaseModel):
    data: Any
    headers: dict[str, str] = {}
    cached_at: float


class CacheActionResult(BaseModel):
    success: bool
    message: str | None = None
    stats: dict[str, CacheStats] | None = None
