from pydantic import BaseModel

from mr_hygiene.models.gitlab import MergeRequest, PageMetadata


class HygieneMetadata(PageMetadata):
    threshold: int
    last_refreshed: str


class HygieneResult(BaseModel):
    items: list[MergeRequest]
    metadata: HygieneMetadata
