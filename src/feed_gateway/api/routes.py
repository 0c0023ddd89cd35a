"""
Feed Gateway API Routes
One route per feed service operation: validate the request, make the remote
call, return its result as JSON.
"""
import inspect
from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends

from feed_gateway import __version__
from feed_gateway.api.dependencies import get_app_settings, get_feeds_client, payload_of
from feed_gateway.api.models import (
    AddActivityRequest,
    AddMemberRequest,
    AddMembersToFeedRequest,
    CommentsQuery,
    CreateFeedGroupRequest,
    CreateFeedWithoutUserRequest,
    CreateUserRequest,
    DeleteFeedRequest,
    DeleteUserRequest,
    FeedGroupQuery,
    FeedGroupRequest,
    FeedViewRequest,
    FollowRequest,
    GetFeedRequest,
    QueryFollowRequest,
    ReportRequest,
    RestoreUserRequest,
    TokenRequest,
    TokenResponse,
    UpdateFeedRequest,
    UpdateUserRoleRequest,
)
from feed_gateway.core.config import Settings
from feed_gateway.core.exceptions import GatewayError, RemoteCallError
from feed_gateway.core.logging import get_logger
from feed_gateway.feeds.client import FeedsClient
from feed_gateway.feeds.models import (
    DEFAULT_FEED_GROUP_CONFIG,
    Activity,
    ActivitySelector,
    FeedSelector,
    MembershipEntry,
    UserRecord,
)

logger = get_logger(__name__)

router = APIRouter()


async def call_remote(operation: str, func: Callable, *args, **kwargs) -> Any:
    """
    Invoke one feed client operation.
    
    Any failure other than a gateway error is re-raised as RemoteCallError
    carrying the original message.
    """
    try:
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
    except GatewayError:
        raise
    except Exception as e:
        logger.error(f"Feed service call failed: {e}", operation=operation)
        raise RemoteCallError(str(e), operation=operation) from e


@router.get("/health", tags=["health"], summary="Health Check")
async def health_check(settings: Settings = Depends(get_app_settings)):
    """Check if the gateway is running"""
    return {
        "status": "healthy",
        "service": "feed-gateway",
        "version": __version__,
        "environment": "development" if settings.DEBUG else "production"
    }


# Tokens and users

@router.post("/generate-token", tags=["users"], summary="Generate User Token", response_model=TokenResponse)
async def generate_token(
    body: TokenRequest = Depends(payload_of(TokenRequest)),
    client: FeedsClient = Depends(get_feeds_client),
    settings: Settings = Depends(get_app_settings)
):
    """Issue a signed access token for userId with a bounded validity window"""
    validity = body.validity_in_seconds or settings.TOKEN_VALIDITY_SECONDS
    token = await call_remote("create_token", client.create_token, body.user_id, validity_in_seconds=validity)
    logger.info("Generated user token", user_id=body.user_id, validity_in_seconds=validity)
    return TokenResponse(token=token, user_id=body.user_id)


@router.post("/create-user", tags=["users"], summary="Create User")
async def create_user(
    body: CreateUserRequest = Depends(payload_of(CreateUserRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """Upsert a user record with the default role and profile"""
    custom = dict(body.custom)
    custom.setdefault("name", body.name or body.user_id)
    if body.image:
        custom.setdefault("image", body.image)
    
    user = UserRecord(id=body.user_id, role=body.role, custom=custom, teams_role=body.teams_role)
    response = await call_remote("upsert_users", client.upsert_users, [user])
    return {"message": "User created successfully", "response": response}


@router.post("/delete-user", tags=["users"], summary="Delete User")
async def delete_user(
    body: DeleteUserRequest = Depends(payload_of(DeleteUserRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """Delete a user; ``mode`` selects a hard (default) or soft delete"""
    response = await call_remote(
        "delete_users", client.delete_users, [body.user_id], hard=body.mode == "hard"
    )
    logger.info("User deleted", user_id=body.user_id, mode=body.mode)
    return {"message": "User deleted successfully", "response": response}


@router.post("/restore-user", tags=["users"], summary="Restore User")
async def restore_user(
    body: RestoreUserRequest = Depends(payload_of(RestoreUserRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """Restore a soft-deleted user"""
    response = await call_remote("restore_users", client.restore_users, [body.user_id])
    return {"message": "User restored successfully", "response": response}


# Moderation

@router.post("/report", tags=["moderation"], summary="Flag Content")
async def report(
    body: ReportRequest = Depends(payload_of(ReportRequest)),
    client: FeedsClient = Depends(get_feeds_client),
    settings: Settings = Depends(get_app_settings)
):
    """Flag an entity on behalf of the moderator identity"""
    moderator_id = body.moderator_id or settings.MODERATOR_USER_ID
    response = await call_remote(
        "flag",
        client.flag,
        entity_type=body.type,
        entity_id=body.activity_id,
        reason=body.reason,
        user_id=moderator_id,
        entity_creator_id=body.user_id
    )
    logger.info(
        "Entity flagged",
        entity_type=body.type,
        entity_id=body.activity_id,
        moderator_id=moderator_id
    )
    return {"message": "Reported successfully", "response": response}


# Follows

@router.post("/follow", tags=["follows"], summary="Follow Feed")
async def follow(
    body: FollowRequest = Depends(payload_of(FollowRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    response = await call_remote("follow", client.follow, body.source_feed, body.target_feed)
    return {"message": "Followed successfully", "response": response}


@router.post("/unfollow", tags=["follows"], summary="Unfollow Feed")
async def unfollow(
    body: FollowRequest = Depends(payload_of(FollowRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    response = await call_remote("unfollow", client.unfollow, body.source_feed, body.target_feed)
    return {"message": "Unfollowed successfully", "response": response}


@router.post("/query-follow", tags=["follows"], summary="Query Follows")
async def query_follow(
    body: QueryFollowRequest = Depends(payload_of(QueryFollowRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """List follow edges between two feeds"""
    filter: Dict[str, Any] = {
        "source_feed": body.source_feed.fid,
        "target_feed": body.target_feed.fid
    }
    return await call_remote("query_follows", client.query_follows, filter, limit=body.limit)


# Feeds

@router.post("/add-member", tags=["feeds"], summary="Add Member")
async def add_member(
    body: AddMemberRequest = Depends(payload_of(AddMemberRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """Resolve the group's private feed reference; no membership is written"""
    feed = await call_remote("feed", client.feed, "private", body.group_id)
    return {"message": "Member added successfully", "feed": feed.fid}


@router.post("/getFeed", tags=["feeds"], summary="Get Feed")
async def get_feed(
    body: GetFeedRequest = Depends(payload_of(GetFeedRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """
    Get or create ``feedGroup:feedGroupId`` as seen by userId.
    
    feedGroup is the group name ("user", "timeline", "community", ...) and
    feedGroupId the feed inside it, e.g. "community" / "public".
    """
    feed = FeedSelector(feed_group=body.feed_group, feed_id=body.feed_group_id)
    return await call_remote(
        "get_or_create_feed",
        client.get_or_create_feed,
        feed,
        limit=body.limit,
        user_id=body.user_id,
        followers_pagination={"limit": body.limit},
        following_pagination={"limit": body.limit}
    )


@router.api_route("/update-feed", methods=["PUT", "POST"], tags=["feeds"], summary="Update Feed")
async def update_feed(
    body: UpdateFeedRequest = Depends(payload_of(UpdateFeedRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    changes: Dict[str, Any] = {}
    if body.data is not None:
        changes["data"] = body.data
    if body.custom is not None:
        changes["custom"] = body.custom
    
    feed = FeedSelector(feed_group=body.group_id, feed_id=body.feed_id)
    response = await call_remote("update_feed", client.update_feed, feed, **changes)
    return {"message": "Feed updated successfully", "response": response}


@router.api_route("/delete-feed", methods=["DELETE", "POST"], tags=["feeds"], summary="Delete Feed")
async def delete_feed(
    body: DeleteFeedRequest = Depends(payload_of(DeleteFeedRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    feed = FeedSelector(feed_group=body.group_id, feed_id=body.feed_id)
    response = await call_remote("delete_feed", client.delete_feed, feed, hard_delete=body.hard_delete)
    logger.info("Feed deleted", fid=feed.fid, hard_delete=body.hard_delete)
    return {"message": "Feed deleted successfully", "response": response}


@router.post("/add-members-to-feed", tags=["feeds"], summary="Add Members To Feed")
async def add_members_to_feed(
    body: AddMembersToFeedRequest = Depends(payload_of(AddMembersToFeedRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """Upsert userId as a member, creating the feed first when createFeed is set"""
    feed = FeedSelector(feed_group=body.feed_group_id, feed_id=body.feed_id)
    if body.create_feed:
        await call_remote("get_or_create_feed", client.get_or_create_feed, feed, user_id=body.user_id)
    
    member = MembershipEntry(user_id=body.user_id, role=body.role)
    response = await call_remote(
        "update_feed_members", client.update_feed_members, feed, [member], operation="upsert"
    )
    logger.info("Members added", fid=feed.fid, user_id=body.user_id)
    return {"message": "Members added successfully", "feed": response}


@router.post("/update-user-role", tags=["feeds"], summary="Update Member Role")
async def update_user_role(
    body: UpdateUserRoleRequest = Depends(payload_of(UpdateUserRoleRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    feed = FeedSelector(feed_group=body.feed_group, feed_id=body.feed_id)
    member = MembershipEntry(user_id=body.user_id, role=body.new_role)
    response = await call_remote(
        "update_feed_members", client.update_feed_members, feed, [member], operation="upsert"
    )
    return {"message": "User role updated successfully", "response": response}


@router.post("/create-feed-without-user", tags=["feeds"], summary="Create Feed Without User")
async def create_feed_without_user(
    body: CreateFeedWithoutUserRequest = Depends(payload_of(CreateFeedWithoutUserRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """Get or create a shared feed with descriptive metadata instead of an owner"""
    feed = FeedSelector(feed_group=body.feed_group, feed_id=body.feed_id)
    response = await call_remote(
        "get_or_create_feed",
        client.get_or_create_feed,
        feed,
        user_id=body.user_id,
        data={
            "description": body.description,
            "name": body.name,
            "visibility": body.visibility
        },
        activity_selector_options={"popular": {}, "following": {}, "interest": {}}
    )
    return {"message": "Feed created successfully", "response": response}


@router.post("/create-feed-view", tags=["feeds"], summary="Create Feed View")
async def create_feed_view(
    body: FeedViewRequest = Depends(payload_of(FeedViewRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    selector = ActivitySelector(type="following", filter={"user_id": body.user_id})
    return await call_remote(
        "get_or_create_feed_view",
        client.get_or_create_feed_view,
        body.view_id,
        activity_selectors=[selector.model_dump(exclude_none=True)],
        ranking={"type": "recency"}
    )


# Feed groups

@router.get("/feeds", tags=["feed-groups"], summary="Get Feed Group")
async def get_feed_group(
    query: FeedGroupQuery = Depends(payload_of(FeedGroupQuery)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """Get or create a named feed group with the default ranking and processors"""
    response = await call_remote(
        "get_or_create_feed_group",
        client.get_or_create_feed_group,
        query.group_id,
        DEFAULT_FEED_GROUP_CONFIG.to_payload()
    )
    logger.debug("Feed group fetched", group_id=query.group_id)
    return response


@router.put("/feed-group", tags=["feed-groups"], summary="Update Feed Group")
async def update_feed_group(
    body: FeedGroupRequest = Depends(payload_of(FeedGroupRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    response = await call_remote(
        "update_feed_group", client.update_feed_group, body.group_id, body.config().to_payload()
    )
    return {"message": "Feed group updated successfully", "response": response}


@router.post("/feed-group", tags=["feed-groups"], summary="Get Or Create Feed Group")
async def get_or_create_feed_group(
    body: FeedGroupRequest = Depends(payload_of(FeedGroupRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    return await call_remote(
        "get_or_create_feed_group", client.get_or_create_feed_group, body.group_id, body.config().to_payload()
    )


@router.api_route("/create-feed", methods=["GET", "POST"], tags=["feed-groups"], summary="Create Feed Group")
async def create_feed(
    body: CreateFeedGroupRequest = Depends(payload_of(CreateFeedGroupRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """Create a feed group; selectors, processors and ranking default to the interest setup"""
    response = await call_remote(
        "create_feed_group", client.create_feed_group, body.group_id, body.config().to_payload()
    )
    return {"message": "Feed created successfully", "response": response}


# Activities and comments

@router.post("/add-activity", tags=["activities"], summary="Add Activity")
async def add_activity(
    body: AddActivityRequest = Depends(payload_of(AddActivityRequest)),
    client: FeedsClient = Depends(get_feeds_client)
):
    """Post a text activity; targets community:public unless feeds are given"""
    activity = Activity(
        text=body.text or f"An activity be node backend {body.user_id}",
        type=body.type,
        feeds=body.feeds,
        user_id=body.user_id
    )
    response = await call_remote("add_activity", client.add_activity, activity)
    return {"message": "Activity added successfully", "response": response}


@router.get("/comments", tags=["activities"], summary="List Comments")
async def list_comments(
    query: CommentsQuery = Depends(payload_of(CommentsQuery)),
    client: FeedsClient = Depends(get_feeds_client),
    settings: Settings = Depends(get_app_settings)
):
    return await call_remote(
        "get_comments",
        client.get_comments,
        object_id=query.object_id or settings.COMMENTS_OBJECT_ID,
        object_type=query.object_type,
        sort=query.sort,
        depth=query.depth,
        limit=query.limit
    )
