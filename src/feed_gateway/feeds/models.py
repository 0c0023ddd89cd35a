"""
Feed service entities.

Transient records built per request and handed to the remote client. None of
them is persisted or mutated after the remote call; ``to_payload`` produces
the wire shape the feed service expects.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class FeedSelector(BaseModel):
    """Reference to a remote feed: ``<feed_group>:<feed_id>``."""
    
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    
    feed_group: str = Field(..., min_length=1, description="Feed group, e.g. 'user' or 'timeline'")
    feed_id: str = Field(..., min_length=1, description="Feed id within the group")
    
    @property
    def fid(self) -> str:
        return f"{self.feed_group}:{self.feed_id}"
    
    @classmethod
    def parse(cls, fid: str) -> "FeedSelector":
        """Parse ``"group:id"``. Raises ValueError on a malformed reference."""
        group, sep, feed_id = (fid or "").partition(":")
        if not sep or not group or not feed_id:
            raise ValueError(f"Invalid feed reference '{fid}', expected 'group:id'")
        return cls(feed_group=group, feed_id=feed_id)
    
    def __str__(self) -> str:
        return self.fid


class UserRecord(BaseModel):
    """User profile upserted into the feed service."""
    
    id: str = Field(..., min_length=1)
    role: str = Field(default="user")
    custom: Dict[str, Any] = Field(default_factory=dict)
    banned: bool = Field(default=False)
    online: bool = Field(default=True)
    teams_role: Dict[str, str] = Field(default_factory=dict)
    
    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump()


class MembershipEntry(BaseModel):
    """Feed membership, upsert only."""
    
    user_id: str = Field(..., min_length=1)
    role: str = Field(default="member")
    joined_at: date = Field(default_factory=date.today)
    
    def to_payload(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "role": self.role,
            "custom": {"joined": self.joined_at.isoformat()},
        }


class Activity(BaseModel):
    """Activity posted to one or more feeds."""
    
    text: str
    type: str = Field(default="post")
    feeds: List[FeedSelector] = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    
    @field_validator("feeds", mode="before")
    @classmethod
    def parse_feeds(cls, v):
        if isinstance(v, (list, tuple, set)):
            return [FeedSelector.parse(item) if isinstance(item, str) else item for item in v]
        return v
    
    def to_payload(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "type": self.type,
            "feeds": [feed.fid for feed in self.feeds],
            "user_id": self.user_id,
        }


# Feed group configuration records. The feed service interprets them; the
# gateway only forwards them.

class ActivityProcessor(BaseModel):
    type: str


class ActivitySelector(BaseModel):
    type: str
    filter: Optional[Dict[str, Any]] = None


class Ranking(BaseModel):
    type: str = "recency"
    score: Optional[str] = None


class FeedGroupConfig(BaseModel):
    """Selector, processor and ranking setup for a feed group."""
    
    activity_processors: Optional[List[ActivityProcessor]] = None
    activity_selectors: Optional[List[ActivitySelector]] = None
    ranking: Optional[Ranking] = None
    custom: Optional[Dict[str, Any]] = None
    
    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


DEFAULT_FEED_GROUP_CONFIG = FeedGroupConfig(
    activity_processors=[
        ActivityProcessor(type="text_interest_tags"),
        ActivityProcessor(type="image_interest_tags"),
    ],
    activity_selectors=[
        ActivitySelector(type="popular"),
        ActivitySelector(type="following"),
        ActivitySelector(type="interest"),
    ],
    ranking=Ranking(
        type="interest",
        score="decay_linear(time) * interest_score * decay_linear(popularity)",
    ),
)
