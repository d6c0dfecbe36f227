"""
Database Schemas

Pydantic models for the documents this app keeps in the document store.
Collections live under the tenant scope ``artifacts/<app_id>/public/data``:
- VisitStats -> "simulated_redis_stats" (single document "global_stats")
- ContentItem -> "simulated_obs_content_v2" (documents "doc_<id>")
- Identity -> "identity" (top level, keyed by uid)
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ContentType(str, Enum):
    """Catalog entry kind; decides how the detail view renders content."""

    ARTICLE = "article"
    CODE = "code"
    VIDEO = "video"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ContentType":
        """Unknown kinds are presented as articles."""
        try:
            return cls(value)
        except ValueError:
            return cls.ARTICLE

    @property
    def label(self) -> str:
        return _TYPE_PRESENTATION[self][1]

    @property
    def icon(self) -> str:
        return _TYPE_PRESENTATION[self][0]


# icon, label
_TYPE_PRESENTATION = {
    ContentType.ARTICLE: ("file-text", "Article"),
    ContentType.CODE: ("code", "Code Snippet"),
    ContentType.VIDEO: ("video", "Video Tutorial"),
}


class ContentItem(BaseModel):
    """
    Simulated object-storage catalog entry
    Collection name: "simulated_obs_content_v2"
    """
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str] = Field(..., description="Stable identifier, unique within a snapshot")
    type: str = Field(ContentType.ARTICLE.value, description="article | code | video")
    title: str
    summary: str
    content: str = Field(..., description="Full body: text, source code or a video placeholder")
    date: str = Field(..., description="Display date, never parsed")
    source: str = Field(..., description="obs:// locator of the simulated object")
    tags: List[str] = Field(..., min_length=1)

    @property
    def content_type(self) -> ContentType:
        return ContentType.parse(self.type)


class VisitStats(BaseModel):
    """
    Global visit counter
    Collection name: "simulated_redis_stats", document "global_stats"
    """
    total_visits: int = Field(0, alias="totalVisits")
    last_visit_time: Optional[datetime] = Field(None, alias="lastVisitTime")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Identity(BaseModel):
    """
    Signed-in user
    Collection name: "identity"
    """
    uid: str
    is_anonymous: bool = True
    created_at: Optional[datetime] = None
    # Raw session token, only populated on the identity returned by sign-in
    token: Optional[str] = Field(None, exclude=True)
