"""
Feed Service Client
Async REST client for the remote activity-feed service. One instance is built
at startup and shared by every request handler.
"""
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import httpx

from feed_gateway.core.config import Settings
from feed_gateway.core.exceptions import RemoteCallError
from feed_gateway.core.logging import get_logger
from feed_gateway.feeds.models import Activity, FeedSelector, MembershipEntry, UserRecord
from feed_gateway.feeds.tokens import create_server_token, create_user_token

logger = get_logger(__name__)

CLIENT_HEADER = "feed-gateway-python-0.1.0"


class FeedsClient:
    """Client for the feed service REST API with a pooled HTTP connection"""
    
    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = "https://feeds.stream-io-api.com",
        timeout: float = 6.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self._api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            params={"api_key": api_key},
            headers={
                "Authorization": create_server_token(api_secret),
                "stream-auth-type": "jwt",
                "X-Stream-Client": CLIENT_HEADER,
                "Accept": "application/json"
            },
            transport=transport
        )
    
    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "FeedsClient":
        return cls(
            api_key=settings.STREAM_API_KEY,
            api_secret=settings.STREAM_API_SECRET,
            base_url=settings.STREAM_BASE_URL,
            timeout=settings.STREAM_TIMEOUT,
            **kwargs
        )
    
    async def __aenter__(self):
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
    
    async def aclose(self) -> None:
        """Close the underlying connection pool"""
        await self.http_client.aclose()
    
    # Local operations
    
    def create_token(self, user_id: str, validity_in_seconds: Optional[int] = None) -> str:
        """Issue a signed user token. Signing is local; no request is made."""
        return create_user_token(user_id, self._api_secret, validity_in_seconds)
    
    def feed(self, feed_group: str, feed_id: str) -> FeedSelector:
        """Resolve a feed reference without contacting the service"""
        return FeedSelector(feed_group=feed_group, feed_id=feed_id)
    
    # Users
    
    async def upsert_users(self, users: Iterable[UserRecord]) -> Dict[str, Any]:
        payload = {"users": {user.id: user.to_payload() for user in users}}
        return await self._request("upsert_users", "POST", "/api/v2/users", json=payload)
    
    async def delete_users(self, user_ids: List[str], hard: bool = True) -> Dict[str, Any]:
        payload = {"user_ids": user_ids, "user": "hard" if hard else "soft"}
        return await self._request("delete_users", "POST", "/api/v2/users/delete", json=payload)
    
    async def restore_users(self, user_ids: List[str]) -> Dict[str, Any]:
        return await self._request(
            "restore_users", "POST", "/api/v2/users/restore", json={"user_ids": user_ids}
        )
    
    # Feeds
    
    async def get_or_create_feed(self, feed: FeedSelector, **body: Any) -> Dict[str, Any]:
        return await self._request("get_or_create_feed", "POST", self._feed_path(feed), json=body)
    
    async def update_feed(self, feed: FeedSelector, **body: Any) -> Dict[str, Any]:
        return await self._request("update_feed", "PUT", self._feed_path(feed), json=body)
    
    async def delete_feed(self, feed: FeedSelector, hard_delete: bool = False) -> Dict[str, Any]:
        return await self._request(
            "delete_feed", "DELETE", self._feed_path(feed),
            params={"hard_delete": str(hard_delete).lower()}
        )
    
    async def update_feed_members(
        self,
        feed: FeedSelector,
        members: Iterable[MembershipEntry],
        operation: str = "upsert"
    ) -> Dict[str, Any]:
        payload = {
            "operation": operation,
            "members": [member.to_payload() for member in members]
        }
        return await self._request(
            "update_feed_members", "PATCH", f"{self._feed_path(feed)}/members", json=payload
        )
    
    # Feed groups and views
    
    async def create_feed_group(self, group_id: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = {"id": group_id, **(config or {})}
        return await self._request("create_feed_group", "POST", "/api/v2/feeds/feed_groups", json=payload)
    
    async def update_feed_group(self, group_id: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._request(
            "update_feed_group", "PUT", f"/api/v2/feeds/feed_groups/{_segment(group_id)}", json=config or {}
        )
    
    async def get_or_create_feed_group(
        self, group_id: str, config: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "get_or_create_feed_group", "POST", f"/api/v2/feeds/feed_groups/{_segment(group_id)}",
            json=config or {}
        )
    
    async def get_or_create_feed_view(self, view_id: str, **body: Any) -> Dict[str, Any]:
        return await self._request(
            "get_or_create_feed_view", "POST", f"/api/v2/feeds/feed_views/{_segment(view_id)}", json=body
        )
    
    # Activities and comments
    
    async def add_activity(self, activity: Activity) -> Dict[str, Any]:
        return await self._request("add_activity", "POST", "/api/v2/feeds/activities", json=activity.to_payload())
    
    async def get_comments(
        self,
        object_id: str,
        object_type: str = "activity",
        sort: Optional[str] = None,
        depth: Optional[int] = None,
        limit: Optional[int] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"object_id": object_id, "object_type": object_type}
        if sort is not None:
            params["sort"] = sort
        if depth is not None:
            params["depth"] = depth
        if limit is not None:
            params["limit"] = limit
        return await self._request("get_comments", "GET", "/api/v2/feeds/comments", params=params)
    
    # Follows
    
    async def follow(self, source: FeedSelector, target: FeedSelector) -> Dict[str, Any]:
        payload = {"source": source.fid, "target": target.fid}
        return await self._request("follow", "POST", "/api/v2/feeds/follows", json=payload)
    
    async def unfollow(self, source: FeedSelector, target: FeedSelector) -> Dict[str, Any]:
        path = f"/api/v2/feeds/follows/{_segment(source.fid)}/{_segment(target.fid)}"
        return await self._request("unfollow", "DELETE", path)
    
    async def query_follows(self, filter: Dict[str, Any], limit: Optional[int] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"filter": filter}
        if limit is not None:
            payload["limit"] = limit
        return await self._request("query_follows", "POST", "/api/v2/feeds/follows/query", json=payload)
    
    # Moderation
    
    async def flag(
        self,
        entity_type: str,
        entity_id: str,
        reason: str,
        user_id: str,
        entity_creator_id: Optional[str] = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "reason": reason,
            "user_id": user_id
        }
        if entity_creator_id:
            payload["entity_creator_id"] = entity_creator_id
        return await self._request("flag", "POST", "/api/v2/moderation/flag", json=payload)
    
    # Transport
    
    @staticmethod
    def _feed_path(feed: FeedSelector) -> str:
        return f"/api/v2/feeds/feed_groups/{_segment(feed.feed_group)}/feeds/{_segment(feed.feed_id)}"
    
    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Send one request to the feed service.
        
        Raises:
            RemoteCallError: on transport failure or a non-2xx response
        """
        logger.debug("Calling feed service", operation=operation, method=method, path=path)
        try:
            response = await self.http_client.request(method, path, json=json, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message, code = _error_details(e.response)
            logger.warning(
                "Feed service rejected request",
                operation=operation,
                status_code=e.response.status_code,
                error_code=code
            )
            raise RemoteCallError(
                message,
                operation=operation,
                upstream_status=e.response.status_code,
                error_code=code
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Feed service unreachable: {e}", operation=operation)
            raise RemoteCallError(str(e) or e.__class__.__name__, operation=operation) from e
        
        if not response.content:
            return {}
        return response.json()


def _segment(value: str) -> str:
    return quote(value, safe="")


def _error_details(response: httpx.Response):
    """Extract ``(message, code)`` from a feed service error response"""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"]), body.get("code")
    return response.text or f"Feed service returned HTTP {response.status_code}", None
