"""
API Request and Response Models

Request bodies arrive in camelCase. Required fields are declared without a
default; a missing, null or empty value is reported as ``"<field> is required"``.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from feed_gateway.feeds.models import (
    DEFAULT_FEED_GROUP_CONFIG,
    ActivityProcessor,
    ActivitySelector,
    FeedGroupConfig,
    FeedSelector,
    Ranking,
)


class GatewayRequest(BaseModel):
    """Base for request payloads: camelCase aliases, unknown keys ignored."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# Tokens and users

class TokenRequest(GatewayRequest):
    user_id: str = Field(..., min_length=1)
    validity_in_seconds: Optional[int] = Field(default=None, ge=1)


class TokenResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    
    token: str
    user_id: str


class CreateUserRequest(GatewayRequest):
    user_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    image: Optional[str] = None
    role: str = "user"
    custom: Dict[str, Any] = Field(default_factory=dict)
    teams_role: Dict[str, str] = Field(default_factory=dict)


class DeleteUserRequest(GatewayRequest):
    user_id: str = Field(..., min_length=1)
    mode: Literal["hard", "soft"] = "hard"


class RestoreUserRequest(GatewayRequest):
    user_id: str = Field(..., min_length=1)


# Moderation

class ReportRequest(GatewayRequest):
    activity_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
    moderator_id: Optional[str] = None


# Follows

class FollowRequest(GatewayRequest):
    source_feed: FeedSelector
    target_feed: FeedSelector
    
    @field_validator("source_feed", "target_feed", mode="before")
    @classmethod
    def parse_feed_reference(cls, v):
        if isinstance(v, str):
            return FeedSelector.parse(v)
        return v


class QueryFollowRequest(FollowRequest):
    limit: int = 25


# Feeds

class AddMemberRequest(GatewayRequest):
    group_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)


class GetFeedRequest(GatewayRequest):
    feed_group: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    feed_group_id: str = Field(..., min_length=1)
    limit: int = 10


class UpdateFeedRequest(GatewayRequest):
    group_id: str = Field(..., min_length=1)
    feed_id: str = Field(..., min_length=1)
    data: Optional[Dict[str, Any]] = None
    custom: Optional[Dict[str, Any]] = None


class DeleteFeedRequest(GatewayRequest):
    group_id: str = Field(..., min_length=1)
    feed_id: str = Field(..., min_length=1)
    hard_delete: bool = False


class AddMembersToFeedRequest(GatewayRequest):
    user_id: str = Field(..., min_length=1)
    feed_group_id: str = Field(..., min_length=1)
    feed_id: str = Field(..., min_length=1)
    create_feed: bool = False
    role: str = "member"


class UpdateUserRoleRequest(GatewayRequest):
    user_id: str = Field(..., min_length=1)
    feed_group: str = Field(..., min_length=1)
    feed_id: str = Field(..., min_length=1)
    new_role: str = Field(..., min_length=1)


class CreateFeedWithoutUserRequest(GatewayRequest):
    user_id: str = Field(..., min_length=1)
    feed_group: str = Field(default="community", min_length=1)
    feed_id: str = Field(default="public", min_length=1)
    name: str = "apple"
    description: str = "Apple stock updates"
    visibility: str = "public"


class FeedViewRequest(GatewayRequest):
    user_id: str = Field(..., min_length=1)
    view_id: str = Field(default="user-view", min_length=1)


# Feed groups

class FeedGroupQuery(GatewayRequest):
    group_id: str = Field(default="mmt", min_length=1)


class FeedGroupRequest(GatewayRequest):
    group_id: str = Field(..., min_length=1)
    activity_processors: Optional[List[ActivityProcessor]] = None
    activity_selectors: Optional[List[ActivitySelector]] = None
    ranking: Optional[Ranking] = None
    custom: Optional[Dict[str, Any]] = None
    
    def config(self) -> FeedGroupConfig:
        return FeedGroupConfig(
            activity_processors=self.activity_processors,
            activity_selectors=self.activity_selectors,
            ranking=self.ranking,
            custom=self.custom,
        )


class CreateFeedGroupRequest(FeedGroupRequest):
    def config(self) -> FeedGroupConfig:
        """Unset selector, processor and ranking fields fall back to the default config."""
        return FeedGroupConfig(
            activity_processors=self.activity_processors or DEFAULT_FEED_GROUP_CONFIG.activity_processors,
            activity_selectors=self.activity_selectors or DEFAULT_FEED_GROUP_CONFIG.activity_selectors,
            ranking=self.ranking or DEFAULT_FEED_GROUP_CONFIG.ranking,
            custom=self.custom,
        )


# Activities and comments

class AddActivityRequest(GatewayRequest):
    user_id: str = Field(..., min_length=1)
    text: Optional[str] = None
    type: str = "post"
    feeds: List[FeedSelector] = Field(
        default_factory=lambda: [FeedSelector(feed_group="community", feed_id="public")],
        min_length=1
    )

    @field_validator("feeds", mode="before")
    @classmethod
    def parse_feed_references(cls, v):
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list):
            return [FeedSelector.parse(item) if isinstance(item, str) else item for item in v]
        return v


class CommentsQuery(GatewayRequest):
    object_id: Optional[str] = None
    object_type: str = "activity"
    sort: str = "best"
    depth: int = 3
    limit: int = 25


__all__ = [
    "GatewayRequest",
    "TokenRequest",
    "TokenResponse",
    "CreateUserRequest",
    "DeleteUserRequest",
    "RestoreUserRequest",
    "ReportRequest",
    "FollowRequest",
    "QueryFollowRequest",
    "AddMemberRequest",
    "GetFeedRequest",
    "UpdateFeedRequest",
    "DeleteFeedRequest",
    "AddMembersToFeedRequest",
    "UpdateUserRoleRequest",
    "CreateFeedWithoutUserRequest",
    "FeedViewRequest",
    "FeedGroupQuery",
    "FeedGroupRequest",
    "CreateFeedGroupRequest",
    "AddActivityRequest",
    "CommentsQuery",
]
