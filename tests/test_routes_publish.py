"""
Tests for POST /api/publish/{platform}.

The whole flow runs against in-memory stores and a scripted platform API:
authorization, extraction, the double-publish guard, claim release on
failure and the recorded activity and schedule rows.
"""

import unittest
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.social import PlatformCapability, PlatformRegistry, PublishService, extract_twitter
from src.types.content import ActivityAction, Content, ContentStatus, ScheduleStatus
from src.types.social import SocialPlatform
from tests.fakes import OUTSIDER_ID, OWNER_ID, TEAM_ID, FakeStores


@pytest.fixture
def twitter_account(stores, team):
    return stores.accounts.add(
        team_id=TEAM_ID,
        platform="twitter",
        account_id="x-user-1",
        access_token="x-token",
    )


@pytest.fixture
def linkedin_account(stores, team):
    return stores.accounts.add(
        team_id=TEAM_ID,
        platform="linkedin",
        account_id="li-member-1",
        access_token="li-token",
    )


def publish(client, platform, content_id, account_id):
    return client.post(
        f"/api/publish/{platform}",
        json={"contentId": content_id, "platformAccountId": account_id},
    )


class TestPublishValidation:

    def test_requires_authentication(self, client, platform_api, make_content, twitter_account):
        make_content()
        response = publish(client, "twitter", "content-1", twitter_account.id)

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_requires_both_ids(self, client, platform_api, sign_in):
        sign_in(OWNER_ID)

        missing_account = client.post("/api/publish/twitter", json={"contentId": "content-1"})
        no_body = client.post("/api/publish/twitter")

        assert missing_account.status_code == 400
        assert missing_account.json()["error"] == "contentId and platformAccountId are required"
        assert no_body.status_code == 400

    def test_unknown_content(self, client, platform_api, sign_in, twitter_account):
        sign_in(OWNER_ID)
        response = publish(client, "twitter", "missing", twitter_account.id)

        assert response.status_code == 404
        assert response.json()["error"] == "Content not found"

    def test_non_member_is_denied(self, client, stores, platform_api, sign_in, make_content, twitter_account):
        make_content(status=ContentStatus.APPROVED)
        sign_in(OUTSIDER_ID)
        response = publish(client, "twitter", "content-1", twitter_account.id)

        assert response.status_code == 403
        assert response.json()["error"] == "Access denied"
        content = stores.content.items["content-1"]
        assert content.status == ContentStatus.APPROVED
        assert content.published_at is None
        assert stores.content.activities == []
        assert stores.content.schedules == []
        assert platform_api.requests == []

    def test_account_of_another_team(self, client, stores, platform_api, sign_in, make_content):
        make_content()
        foreign = stores.accounts.add(
            team_id="team-2", platform="twitter", account_id="x", access_token="t"
        )
        sign_in(OWNER_ID)
        response = publish(client, "twitter", "content-1", foreign.id)

        assert response.status_code == 404
        assert response.json()["error"] == "Platform account not found"

    def test_unsupported_platform(self, client, platform_api, sign_in, make_content, twitter_account):
        make_content()
        sign_in(OWNER_ID)
        response = publish(client, "MySpace", "content-1", twitter_account.id)

        assert response.status_code == 400
        assert response.json()["error"] == "Unsupported platform: MySpace"
        assert response.json()["error_code"] == "UNSUPPORTED_PLATFORM"

    def test_no_content_is_a_server_error(
        self, client, stores, platform_api, sign_in, make_content, twitter_account
    ):
        make_content(blocks=[{"id": "i", "type": "image", "content": {"url": "https://x/a.png"}}])
        sign_in(OWNER_ID)
        response = publish(client, "twitter", "content-1", twitter_account.id)

        # Same status as an upstream failure, told apart by the code
        assert response.status_code == 500
        assert response.json()["error"] == "No content to post"
        assert response.json()["error_code"] == "NO_CONTENT"
        assert stores.content.items["content-1"].status == ContentStatus.DRAFT
        assert platform_api.requests == []


class TestPublishFlow:

    def test_publishes_thread_and_records_rows(
        self, client, stores, platform_api, sign_in, make_content, twitter_account
    ):
        make_content(
            blocks=[{"id": "t", "type": "thread", "content": {"tweets": ["one", "two"]}}],
            status=ContentStatus.APPROVED,
        )
        platform_api.queue(
            httpx.Response(201, json={"data": {"id": "tw-1"}}),
            httpx.Response(201, json={"data": {"id": "tw-2"}}),
        )
        sign_in(OWNER_ID)

        response = publish(client, "Twitter", "content-1", twitter_account.id)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["platformPostId"] == "tw-1"
        assert body["publishedAt"]

        content = stores.content.items["content-1"]
        assert content.status == ContentStatus.PUBLISHED
        assert content.published_at is not None

        [activity] = stores.content.activities
        assert activity.action == ActivityAction.STATUS_CHANGED
        assert activity.from_status == ContentStatus.APPROVED
        assert activity.to_status == ContentStatus.PUBLISHED
        assert activity.user_id == OWNER_ID
        assert activity.metadata == {"source": "publish", "platform": "twitter"}

        [schedule] = stores.content.schedules
        assert schedule.status == ScheduleStatus.SENT
        assert schedule.platform_account_id == twitter_account.id
        assert schedule.platform_post_id == "tw-1"

    def test_linkedin_article(
        self, client, stores, platform_api, sign_in, make_content, linkedin_account
    ):
        make_content(blocks=[{
            "id": "l",
            "type": "link",
            "content": {"url": "https://example.com", "title": "T", "description": "D"},
        }])
        platform_api.queue(httpx.Response(201, headers={"x-restli-id": "urn:li:share:1"}))
        sign_in(OWNER_ID)

        response = publish(client, "linkedin", "content-1", linkedin_account.id)

        assert response.status_code == 200
        assert response.json()["platformPostId"] == "urn:li:share:1"
        assert stores.content.activities[0].metadata["platform"] == "linkedin"

    def test_second_publish_conflicts(
        self, client, stores, platform_api, sign_in, make_content, twitter_account
    ):
        make_content()
        sign_in(OWNER_ID)

        first = publish(client, "twitter", "content-1", twitter_account.id)
        second = publish(client, "twitter", "content-1", twitter_account.id)

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["error"] == "Content is already published"
        assert len(platform_api.requests) == 1
        assert len(stores.content.activities) == 1

    def test_platform_failure_releases_claim(
        self, client, stores, platform_api, sign_in, make_content, twitter_account
    ):
        make_content(status=ContentStatus.SCHEDULED)
        platform_api.queue(httpx.Response(403, json={"detail": "Forbidden by X"}))
        sign_in(OWNER_ID)

        response = publish(client, "twitter", "content-1", twitter_account.id)

        assert response.status_code == 500
        assert response.json()["error"] == "Forbidden by X"
        content = stores.content.items["content-1"]
        assert content.status == ContentStatus.SCHEDULED
        assert content.published_at is None
        assert stores.content.activities == []
        assert stores.content.schedules == []

    def test_credential_lookup_outage_releases_claim(
        self, client, stores, platform_api, sign_in, make_content, twitter_account
    ):
        make_content(status=ContentStatus.APPROVED)
        load_account = stores.accounts.get_account

        async def lookup_down_for_adapter(account_id, team_id, platform=None):
            if platform:
                raise httpx.ConnectError("connection refused")
            return await load_account(account_id, team_id, platform)

        stores.accounts.get_account = lookup_down_for_adapter
        sign_in(OWNER_ID)

        response = publish(client, "twitter", "content-1", twitter_account.id)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to post to X"
        assert stores.content.items["content-1"].status == ContentStatus.APPROVED
        assert stores.content.activities == []
        assert platform_api.requests == []

    def test_wrong_platform_for_account(
        self, client, stores, platform_api, sign_in, make_content, linkedin_account
    ):
        make_content()
        sign_in(OWNER_ID)

        response = publish(client, "twitter", "content-1", linkedin_account.id)

        assert response.status_code == 500
        assert response.json()["error"] == "X credentials not found"
        assert stores.content.items["content-1"].status == ContentStatus.DRAFT

    def test_failed_recording_is_a_database_error(
        self, client, stores, platform_api, sign_in, make_content, twitter_account
    ):
        make_content()
        stores.content.fail_record = True
        sign_in(OWNER_ID)

        response = publish(client, "twitter", "content-1", twitter_account.id)

        assert response.status_code == 500
        assert response.json()["error_code"] == "DATABASE_ERROR"
        assert "record" not in response.json()["error"]


class TestPublishServiceClaimRelease(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.stores = FakeStores()
        self.stores.content.add(Content(
            id="content-1",
            team_id=TEAM_ID,
            blocks=[{"id": "b1", "type": "text", "content": {"text": "We shipped it."}}],
            status=ContentStatus.SCHEDULED,
            member_ids=[OWNER_ID],
        ))
        self.account = self.stores.accounts.add(
            team_id=TEAM_ID, platform="twitter", account_id="x", access_token="t"
        )
        self.adapter = MagicMock()
        self.adapter.post = AsyncMock(side_effect=RuntimeError("client has been closed"))
        registry = PlatformRegistry()
        registry.register(PlatformCapability(
            platform=SocialPlatform.TWITTER,
            extractor=extract_twitter,
            adapter=self.adapter,
        ))
        self.service = PublishService(self.stores.content, self.stores.accounts, registry)

    async def test_unexpected_error_releases_claim(self):
        with self.assertRaises(RuntimeError):
            await self.service.publish("twitter", "content-1", self.account.id, OWNER_ID)

        content = self.stores.content.items["content-1"]
        self.assertEqual(content.status, ContentStatus.SCHEDULED)
        self.assertIsNone(content.published_at)
        self.assertEqual(self.stores.content.activities, [])
        self.adapter.post.assert_awaited_once()
