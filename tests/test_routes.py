"""
Tests for the gateway routes.

The app is built around a mocked feed client so every test can assert the
exact remote call a request produced.
"""
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from feed_gateway.core.config import Settings
from feed_gateway.core.exceptions import RemoteCallError
from feed_gateway.feeds.client import FeedsClient
from feed_gateway.feeds.models import Activity, FeedSelector, MembershipEntry, UserRecord
from feed_gateway.main import create_app


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def feeds_client():
    """Feed client mock; async methods become AsyncMocks through the spec"""
    client = Mock(spec=FeedsClient)
    client.create_token.return_value = "signed-token"
    client.feed.side_effect = lambda group, feed_id: FeedSelector(feed_group=group, feed_id=feed_id)
    return client


@pytest.fixture
def test_client(feeds_client, settings):
    app = create_app(feeds_client=feeds_client, settings=settings)
    return TestClient(app)


class TestGenerateToken:
    """Token issuance"""
    
    def test_missing_user_id(self, test_client, feeds_client):
        response = test_client.post("/generate-token", json={})
        
        assert response.status_code == 400
        assert response.json() == {"error": "userId is required"}
        feeds_client.create_token.assert_not_called()
    
    def test_empty_user_id(self, test_client):
        response = test_client.post("/generate-token", json={"userId": ""})
        
        assert response.status_code == 400
        assert response.json() == {"error": "userId is required"}
    
    def test_token_issued(self, test_client, feeds_client):
        response = test_client.post("/generate-token", json={"userId": "u1"})
        
        assert response.status_code == 200
        assert response.json() == {"token": "signed-token", "userId": "u1"}
        feeds_client.create_token.assert_called_once_with("u1", validity_in_seconds=7600000)
    
    def test_validity_override(self, test_client, feeds_client):
        test_client.post("/generate-token", json={"userId": "u1", "validityInSeconds": 60})
        
        feeds_client.create_token.assert_called_once_with("u1", validity_in_seconds=60)
    
    def test_signing_failure(self, test_client, feeds_client):
        feeds_client.create_token.side_effect = ValueError("bad secret")
        
        response = test_client.post("/generate-token", json={"userId": "u1"})
        
        assert response.status_code == 500
        assert response.json() == {"error": "bad secret"}
    
    def test_real_client_signs_token(self, settings):
        """A real client signs locally, so no feed service is needed"""
        client = FeedsClient.from_settings(settings)
        app = create_app(feeds_client=client, settings=settings)
        
        response = TestClient(app).post("/generate-token", json={"userId": "u1"})
        
        assert response.status_code == 200
        body = response.json()
        assert body["userId"] == "u1"
        assert isinstance(body["token"], str) and body["token"]


class TestRequiredFields:
    """Every route names the first missing field"""
    
    @pytest.mark.parametrize("method,path,payload,field", [
        ("POST", "/create-user", {}, "userId"),
        ("POST", "/add-member", {"userId": "u1"}, "groupId"),
        ("POST", "/report", {"activityId": "a1", "userId": "u1", "type": "activity"}, "reason"),
        ("POST", "/follow", {"sourceFeed": "user:u1"}, "targetFeed"),
        ("POST", "/unfollow", {"targetFeed": "user:u2"}, "sourceFeed"),
        ("POST", "/query-follow", {"sourceFeed": "user:u1"}, "targetFeed"),
        ("POST", "/delete-user", {}, "userId"),
        ("POST", "/restore-user", {"userId": None}, "userId"),
        ("POST", "/getFeed", {"feedGroup": "user", "userId": "u1"}, "feedGroupId"),
        ("PUT", "/feed-group", {}, "groupId"),
        ("POST", "/feed-group", {}, "groupId"),
        ("POST", "/create-feed", {}, "groupId"),
        ("PUT", "/update-feed", {"groupId": "user"}, "feedId"),
        ("POST", "/delete-feed", {"feedId": "f1"}, "groupId"),
        ("POST", "/create-feed-view", {}, "userId"),
        ("POST", "/add-members-to-feed", {"userId": "u1", "feedGroupId": "community"}, "feedId"),
        ("POST", "/update-user-role", {"userId": "u1", "feedGroup": "community", "feedId": "public"}, "newRole"),
        ("POST", "/create-feed-without-user", {}, "userId"),
        ("POST", "/add-activity", {}, "userId"),
    ])
    def test_missing_field(self, test_client, feeds_client, method, path, payload, field):
        response = test_client.request(method, path, json=payload)
        
        assert response.status_code == 400
        assert response.json() == {"error": f"{field} is required"}
        assert feeds_client.method_calls == []
    
    def test_malformed_json(self, test_client):
        response = test_client.post(
            "/create-user", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        
        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be valid JSON"}
    
    def test_invalid_feed_reference(self, test_client, feeds_client):
        response = test_client.post("/follow", json={"sourceFeed": "user", "targetFeed": "user:u2"})
        
        assert response.status_code == 400
        assert response.json()["error"].startswith("sourceFeed:")
        feeds_client.follow.assert_not_called()


class TestRemoteFailures:
    """Remote failures surface as 500 with the remote message"""
    
    def test_exception_message_echoed(self, test_client, feeds_client):
        feeds_client.add_activity.side_effect = RuntimeError("feed service down")
        
        response = test_client.post("/add-activity", json={"userId": "u1"})
        
        assert response.status_code == 500
        assert response.json() == {"error": "feed service down"}
        feeds_client.add_activity.assert_awaited_once()
    
    def test_remote_call_error_echoed(self, test_client, feeds_client):
        feeds_client.get_or_create_feed.side_effect = RemoteCallError(
            "Feed group does not exist", operation="get_or_create_feed", upstream_status=404
        )
        
        response = test_client.post(
            "/getFeed", json={"feedGroup": "nope", "userId": "u1", "feedGroupId": "f1"}
        )
        
        assert response.status_code == 500
        assert response.json() == {"error": "Feed group does not exist"}
    
    @pytest.mark.parametrize("method,path,payload,operation", [
        ("POST", "/create-user", {"userId": "u1"}, "upsert_users"),
        ("POST", "/delete-user", {"userId": "u1"}, "delete_users"),
        ("POST", "/unfollow", {"sourceFeed": "timeline:u1", "targetFeed": "user:u2"}, "unfollow"),
        ("GET", "/feeds", None, "get_or_create_feed_group"),
        ("GET", "/comments", None, "get_comments"),
    ])
    def test_failure_on_any_route(self, test_client, feeds_client, method, path, payload, operation):
        getattr(feeds_client, operation).side_effect = Exception("boom")
        
        response = test_client.request(method, path, json=payload)
        
        assert response.status_code == 500
        assert response.json() == {"error": "boom"}


class TestUserRoutes:
    
    def test_create_user_defaults(self, test_client, feeds_client):
        feeds_client.upsert_users.return_value = {"users": {"u1": {"id": "u1"}}}
        
        response = test_client.post("/create-user", json={"userId": "u1", "name": "Kuldeep"})
        
        assert response.status_code == 200
        assert response.json() == {
            "message": "User created successfully",
            "response": {"users": {"u1": {"id": "u1"}}}
        }
        (users,), _ = feeds_client.upsert_users.await_args
        assert users == [UserRecord(id="u1", custom={"name": "Kuldeep"})]
        assert users[0].role == "user"
        assert users[0].banned is False
        assert users[0].online is True
    
    def test_delete_user_is_hard_by_default(self, test_client, feeds_client):
        feeds_client.delete_users.return_value = {"task_id": "t1"}
        
        response = test_client.post("/delete-user", json={"userId": "u1"})
        
        assert response.status_code == 200
        assert response.json()["response"] == {"task_id": "t1"}
        feeds_client.delete_users.assert_awaited_once_with(["u1"], hard=True)
        feeds_client.restore_users.assert_not_called()
    
    def test_soft_delete(self, test_client, feeds_client):
        feeds_client.delete_users.return_value = {}
        
        test_client.post("/delete-user", json={"userId": "u1", "mode": "soft"})
        
        feeds_client.delete_users.assert_awaited_once_with(["u1"], hard=False)
    
    def test_invalid_delete_mode(self, test_client, feeds_client):
        response = test_client.post("/delete-user", json={"userId": "u1", "mode": "restore"})
        
        assert response.status_code == 400
        assert response.json()["error"].startswith("mode:")
    
    def test_restore_user(self, test_client, feeds_client):
        feeds_client.restore_users.return_value = {"duration": "1ms"}
        
        response = test_client.post("/restore-user", json={"userId": "u1"})
        
        assert response.json() == {"message": "User restored successfully", "response": {"duration": "1ms"}}
        feeds_client.restore_users.assert_awaited_once_with(["u1"])
        feeds_client.delete_users.assert_not_called()


class TestModerationAndFollows:
    
    def test_report_flags_as_moderator(self, test_client, feeds_client):
        feeds_client.flag.return_value = {"item_id": "r1"}
        
        response = test_client.post("/report", json={
            "activityId": "a1", "userId": "u1", "type": "activity", "reason": "spam"
        })
        
        assert response.status_code == 200
        assert response.json() == {"message": "Reported successfully", "response": {"item_id": "r1"}}
        feeds_client.flag.assert_awaited_once_with(
            entity_type="activity",
            entity_id="a1",
            reason="spam",
            user_id="moderator",
            entity_creator_id="u1"
        )
    
    def test_follow(self, test_client, feeds_client):
        feeds_client.follow.return_value = {"follow": {"status": "accepted"}}
        
        response = test_client.post("/follow", json={"sourceFeed": "timeline:u1", "targetFeed": "user:u2"})
        
        assert response.status_code == 200
        feeds_client.follow.assert_awaited_once_with(
            FeedSelector(feed_group="timeline", feed_id="u1"),
            FeedSelector(feed_group="user", feed_id="u2")
        )
    
    def test_query_follow_returns_payload_unmodified(self, test_client, feeds_client):
        payload = {"follows": [{"source_feed": {"fid": "timeline:u1"}}], "next": None}
        feeds_client.query_follows.return_value = payload
        
        response = test_client.post("/query-follow", json={"sourceFeed": "timeline:u1", "targetFeed": "user:u2"})
        
        assert response.json() == payload
        feeds_client.query_follows.assert_awaited_once_with(
            {"source_feed": "timeline:u1", "target_feed": "user:u2"}, limit=25
        )


class TestFeedRoutes:
    
    def test_add_member_resolves_private_feed(self, test_client, feeds_client):
        response = test_client.post("/add-member", json={"groupId": "g1", "userId": "u1"})
        
        assert response.status_code == 200
        assert response.json() == {"message": "Member added successfully", "feed": "private:g1"}
        feeds_client.feed.assert_called_once_with("private", "g1")
        feeds_client.update_feed_members.assert_not_called()
    
    def test_get_feed(self, test_client, feeds_client):
        feeds_client.get_or_create_feed.return_value = {"activities": [], "created": True}
        
        response = test_client.post(
            "/getFeed", json={"feedGroup": "community", "userId": "u1", "feedGroupId": "public"}
        )
        
        assert response.json() == {"activities": [], "created": True}
        feeds_client.get_or_create_feed.assert_awaited_once_with(
            FeedSelector(feed_group="community", feed_id="public"),
            limit=10,
            user_id="u1",
            followers_pagination={"limit": 10},
            following_pagination={"limit": 10}
        )
    
    def test_update_feed(self, test_client, feeds_client):
        feeds_client.update_feed.return_value = {"feed": {"id": "f1"}}
        
        response = test_client.put(
            "/update-feed", json={"groupId": "user", "feedId": "f1", "custom": {"color": "red"}}
        )
        
        assert response.json()["message"] == "Feed updated successfully"
        feeds_client.update_feed.assert_awaited_once_with(
            FeedSelector(feed_group="user", feed_id="f1"), custom={"color": "red"}
        )
    
    def test_delete_feed_with_delete_method(self, test_client, feeds_client):
        feeds_client.delete_feed.return_value = {}
        
        response = test_client.request(
            "DELETE", "/delete-feed", json={"groupId": "user", "feedId": "f1", "hardDelete": True}
        )
        
        assert response.status_code == 200
        feeds_client.delete_feed.assert_awaited_once_with(
            FeedSelector(feed_group="user", feed_id="f1"), hard_delete=True
        )
    
    def test_add_members_without_creating_feed(self, test_client, feeds_client):
        feeds_client.update_feed_members.return_value = {"added": ["u1"]}
        
        response = test_client.post("/add-members-to-feed", json={
            "userId": "u1", "feedGroupId": "community", "feedId": "public"
        })
        
        assert response.json() == {"message": "Members added successfully", "feed": {"added": ["u1"]}}
        feeds_client.get_or_create_feed.assert_not_called()
        feed, members = feeds_client.update_feed_members.await_args.args
        assert feed.fid == "community:public"
        assert members[0].user_id == "u1"
        assert members[0].role == "member"
        assert feeds_client.update_feed_members.await_args.kwargs == {"operation": "upsert"}
    
    def test_add_members_creates_feed_first(self, test_client, feeds_client):
        calls = []
        feeds_client.get_or_create_feed.side_effect = lambda *a, **kw: calls.append("create") or {}
        feeds_client.update_feed_members.side_effect = lambda *a, **kw: calls.append("members") or {}
        
        response = test_client.post("/add-members-to-feed", json={
            "userId": "u1", "feedGroupId": "community", "feedId": "public", "createFeed": True
        })
        
        assert response.status_code == 200
        assert calls == ["create", "members"]
    
    def test_update_user_role(self, test_client, feeds_client):
        feeds_client.update_feed_members.return_value = {}
        
        test_client.post("/update-user-role", json={
            "userId": "u1", "feedGroup": "community", "feedId": "public", "newRole": "admin"
        })
        
        _, members = feeds_client.update_feed_members.await_args.args
        assert members == [MembershipEntry(user_id="u1", role="admin", joined_at=members[0].joined_at)]
    
    def test_create_feed_without_user_defaults(self, test_client, feeds_client):
        feeds_client.get_or_create_feed.return_value = {"feed": {"fid": "community:public"}}
        
        response = test_client.post("/create-feed-without-user", json={"userId": "u1"})
        
        assert response.json() == {
            "message": "Feed created successfully",
            "response": {"feed": {"fid": "community:public"}}
        }
        args, kwargs = feeds_client.get_or_create_feed.await_args
        assert args[0].fid == "community:public"
        assert kwargs["data"] == {"description": "Apple stock updates", "name": "apple", "visibility": "public"}
        assert kwargs["user_id"] == "u1"
    
    def test_create_feed_view(self, test_client, feeds_client):
        feeds_client.get_or_create_feed_view.return_value = {"feed_view": {"id": "user-view"}}
        
        response = test_client.post("/create-feed-view", json={"userId": "u1"})
        
        assert response.json() == {"feed_view": {"id": "user-view"}}
        args, kwargs = feeds_client.get_or_create_feed_view.await_args
        assert args == ("user-view",)
        assert kwargs["activity_selectors"] == [{"type": "following", "filter": {"user_id": "u1"}}]


class TestFeedGroupRoutes:
    
    def test_feeds_default_group(self, test_client, feeds_client):
        feeds_client.get_or_create_feed_group.return_value = {"feed_group": {"id": "mmt"}}
        
        response = test_client.get("/feeds")
        
        assert response.json() == {"feed_group": {"id": "mmt"}}
        group_id, config = feeds_client.get_or_create_feed_group.await_args.args
        assert group_id == "mmt"
        assert config["ranking"]["type"] == "interest"
    
    def test_feeds_group_from_query(self, test_client, feeds_client):
        feeds_client.get_or_create_feed_group.return_value = {}
        
        test_client.get("/feeds", params={"groupId": "news"})
        
        assert feeds_client.get_or_create_feed_group.await_args.args[0] == "news"
    
    def test_create_feed_uses_default_config(self, test_client, feeds_client):
        feeds_client.create_feed_group.return_value = {"feed_group": {"id": "mytimeline"}}
        
        response = test_client.get("/create-feed", params={"groupId": "mytimeline"})
        
        assert response.json()["message"] == "Feed created successfully"
        group_id, config = feeds_client.create_feed_group.await_args.args
        assert group_id == "mytimeline"
        assert config["activity_selectors"] == [{"type": "popular"}, {"type": "following"}, {"type": "interest"}]
        assert config["activity_processors"] == [{"type": "text_interest_tags"}, {"type": "image_interest_tags"}]
    
    def test_update_feed_group_passes_config_verbatim(self, test_client, feeds_client):
        feeds_client.update_feed_group.return_value = {}
        
        test_client.put("/feed-group", json={"groupId": "news", "ranking": {"type": "recency"}})
        
        feeds_client.update_feed_group.assert_awaited_once_with("news", {"ranking": {"type": "recency"}})
        feeds_client.get_or_create_feed_group.assert_not_called()
    
    def test_post_feed_group_gets_or_creates(self, test_client, feeds_client):
        feeds_client.get_or_create_feed_group.return_value = {"was_created": False}
        
        response = test_client.post("/feed-group", json={"groupId": "news"})
        
        assert response.json() == {"was_created": False}
        feeds_client.get_or_create_feed_group.assert_awaited_once_with("news", {})


class TestActivityRoutes:
    
    def test_add_activity_targets_public_community(self, test_client, feeds_client):
        feeds_client.add_activity.return_value = {"activity": {"id": "act1"}}
        
        response = test_client.post("/add-activity", json={"userId": "u1"})
        
        assert response.status_code == 200
        assert response.json() == {
            "message": "Activity added successfully",
            "response": {"activity": {"id": "act1"}}
        }
        feeds_client.add_activity.assert_awaited_once()
        (activity,), _ = feeds_client.add_activity.await_args
        assert isinstance(activity, Activity)
        assert activity.to_payload() == {
            "text": "An activity be node backend u1",
            "type": "post",
            "feeds": ["community:public"],
            "user_id": "u1"
        }
    
    def test_add_activity_custom_feeds(self, test_client, feeds_client):
        feeds_client.add_activity.return_value = {}
        
        test_client.post("/add-activity", json={"userId": "u1", "text": "hi", "feeds": ["user:u1", "news:tech"]})
        
        (activity,), _ = feeds_client.add_activity.await_args
        assert [feed.fid for feed in activity.feeds] == ["user:u1", "news:tech"]
        assert activity.text == "hi"
    
    def test_comments_defaults(self, test_client, feeds_client):
        feeds_client.get_comments.return_value = {"comments": []}
        
        response = test_client.get("/comments")
        
        assert response.json() == {"comments": []}
        feeds_client.get_comments.assert_awaited_once_with(
            object_id="public-activity", object_type="activity", sort="best", depth=3, limit=25
        )
    
    def test_comments_query_parameters(self, test_client, feeds_client):
        feeds_client.get_comments.return_value = {"comments": []}
        
        test_client.get("/comments", params={"objectId": "a9", "sort": "last", "depth": "1"})
        
        kwargs = feeds_client.get_comments.await_args.kwargs
        assert kwargs["object_id"] == "a9"
        assert kwargs["sort"] == "last"
        assert kwargs["depth"] == 1


def test_health(test_client):
    response = test_client.get("/health")
    
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestRequestShapes:
    """Wire shapes accepted by the request models"""
    
    def test_feed_object_in_camel_case(self, test_client, feeds_client):
        feeds_client.follow.return_value = {}
        
        response = test_client.post("/follow", json={
            "sourceFeed": {"feedGroup": "timeline", "feedId": "u1"},
            "targetFeed": "user:u2"
        })
        
        assert response.status_code == 200
        feeds_client.follow.assert_awaited_once_with(
            FeedSelector(feed_group="timeline", feed_id="u1"),
            FeedSelector(feed_group="user", feed_id="u2")
        )
    
    def test_feed_object_missing_part(self, test_client, feeds_client):
        response = test_client.post("/unfollow", json={
            "sourceFeed": {"feedGroup": "timeline"},
            "targetFeed": "user:u2"
        })
        
        assert response.status_code == 400
        assert response.json() == {"error": "sourceFeed.feedId is required"}
    
    def test_activity_feeds_as_objects(self, test_client, feeds_client):
        feeds_client.add_activity.return_value = {}
        
        test_client.post("/add-activity", json={
            "userId": "u1",
            "feeds": [{"feedGroup": "news", "feedId": "tech"}, "user:u1"]
        })
        
        (activity,), _ = feeds_client.add_activity.await_args
        assert activity.to_payload()["feeds"] == ["news:tech", "user:u1"]
    
    def test_null_optional_field_is_not_reported_missing(self, test_client, feeds_client):
        response = test_client.post("/add-members-to-feed", json={
            "userId": "u1", "feedGroupId": "community", "feedId": "public", "createFeed": None
        })
        
        assert response.status_code == 400
        assert response.json()["error"].startswith("createFeed:")
        assert "required" not in response.json()["error"]
    
    def test_null_required_field_is_reported_missing(self, test_client):
        response = test_client.post("/getFeed", json={"feedGroup": "user", "userId": None, "feedGroupId": "f1"})
        
        assert response.json() == {"error": "userId is required"}
    
    def test_comment_options_passed_verbatim(self, test_client, feeds_client):
        feeds_client.get_comments.return_value = {"comments": []}
        
        response = test_client.get("/comments", params={"sort": "newest", "depth": "7", "limit": "500"})
        
        assert response.status_code == 200
        kwargs = feeds_client.get_comments.await_args.kwargs
        assert kwargs["sort"] == "newest"
        assert kwargs["depth"] == 7
        assert kwargs["limit"] == 500
    
    def test_ranking_type_passed_verbatim(self, test_client, feeds_client):
        feeds_client.update_feed_group.return_value = {}
        
        test_client.put("/feed-group", json={
            "groupId": "news", "ranking": {"type": "custom_rank", "score": "popularity"}
        })
        
        feeds_client.update_feed_group.assert_awaited_once_with(
            "news", {"ranking": {"type": "custom_rank", "score": "popularity"}}
        )
    
    def test_remote_rejection_of_option_is_500(self, test_client, feeds_client):
        feeds_client.get_comments.side_effect = RemoteCallError("invalid sort", operation="get_comments")
        
        response = test_client.get("/comments", params={"sort": "sideways"})
        
        assert response.status_code == 500
        assert response.json() == {"error": "invalid sort"}
