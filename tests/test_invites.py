"""
Tests for team invite links: the service against the in-memory team store,
then the two HTTP endpoints.
"""

import asyncio
import hashlib
import re
import unittest
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

from src.teams.invites import (
    INVITE_EXPIRY_DAYS,
    InvalidInviteError,
    InviteAlreadyUsedError,
    InviteEmailMismatchError,
    InviteExpiredError,
    InviteForbiddenError,
    InviteService,
    TeamNotFoundError,
    generate_invite_token,
    hash_invite_token,
    normalize_invite_role,
)
from src.types.team import TeamRole
from tests.fakes import (
    EDITOR_ID,
    OUTSIDER_ID,
    OWNER_ID,
    TEAM_ID,
    VIEWER_ID,
    FakeTeamStore,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestInviteTokens(unittest.TestCase):

    def test_token_is_url_safe_without_padding(self):
        token = generate_invite_token()
        self.assertEqual(len(token), 32)
        self.assertRegex(token, r"^[A-Za-z0-9_-]+$")

    def test_tokens_are_unique(self):
        self.assertEqual(len({generate_invite_token() for _ in range(50)}), 50)

    def test_hash_is_sha256_hex(self):
        self.assertEqual(
            hash_invite_token("abc"),
            hashlib.sha256(b"abc").hexdigest(),
        )

    def test_role_normalization(self):
        self.assertEqual(normalize_invite_role("editor"), TeamRole.EDITOR)
        self.assertEqual(normalize_invite_role(" Admin "), TeamRole.ADMIN)
        self.assertEqual(normalize_invite_role("OWNER"), TeamRole.VIEWER)
        self.assertEqual(normalize_invite_role("superuser"), TeamRole.VIEWER)
        self.assertEqual(normalize_invite_role(None), TeamRole.VIEWER)
        self.assertEqual(normalize_invite_role(7), TeamRole.VIEWER)


class InviteServiceTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.now = NOW
        self.teams = FakeTeamStore()
        self.teams.add_team(TEAM_ID, "acme", members={
            OWNER_ID: TeamRole.OWNER,
            EDITOR_ID: TeamRole.EDITOR,
            VIEWER_ID: TeamRole.VIEWER,
        })
        self.service = InviteService(self.teams, clock=lambda: self.now)

    async def invite(self, role="EDITOR", email=None):
        return await self.service.create_invite(TEAM_ID, OWNER_ID, role=role, email=email)


class TestCreateInvite(InviteServiceTestCase):

    async def test_stores_only_the_hash(self):
        created = await self.invite()

        stored = self.teams.invites[created.invite.id]
        self.assertEqual(stored.token_hash, hash_invite_token(created.token))
        self.assertNotIn(created.token, stored.model_dump_json())

    async def test_expires_after_seven_days(self):
        created = await self.invite()
        self.assertEqual(INVITE_EXPIRY_DAYS, 7)
        self.assertEqual(created.invite.expires_at, NOW + timedelta(days=7))

    async def test_invalid_role_becomes_viewer(self):
        created = await self.invite(role="OWNER")
        self.assertEqual(created.invite.invite_role, TeamRole.VIEWER)

    async def test_email_is_lowercased(self):
        created = await self.invite(email="  Sam@Example.COM ")
        self.assertEqual(created.invite.invited_email, "sam@example.com")

    async def test_only_owners_and_admins(self):
        for user_id in (EDITOR_ID, VIEWER_ID, OUTSIDER_ID):
            with self.assertRaises(InviteForbiddenError):
                await self.service.create_invite(TEAM_ID, user_id)
        self.assertEqual(self.teams.invites, {})


class TestAcceptInvite(InviteServiceTestCase):

    async def test_joins_with_invite_role(self):
        created = await self.invite(role="EDITOR")

        team = await self.service.accept_invite(TEAM_ID, created.token, OUTSIDER_ID)

        self.assertEqual(team.slug, "acme")
        self.assertEqual(self.teams.roles[(TEAM_ID, OUTSIDER_ID)], TeamRole.EDITOR)
        stored = self.teams.invites[created.invite.id]
        self.assertEqual(stored.used_at, NOW)
        self.assertEqual(stored.used_by, OUTSIDER_ID)

    async def test_unknown_team(self):
        created = await self.invite()
        with self.assertRaises(TeamNotFoundError):
            await self.service.accept_invite("team-404", created.token, OUTSIDER_ID)

    async def test_wrong_token(self):
        await self.invite()
        with self.assertRaises(InvalidInviteError):
            await self.service.accept_invite(TEAM_ID, "not-the-token", OUTSIDER_ID)

    async def test_token_is_bound_to_its_team(self):
        self.teams.add_team("team-2", "other")
        created = await self.invite()
        with self.assertRaises(InvalidInviteError):
            await self.service.accept_invite("team-2", created.token, OUTSIDER_ID)

    async def test_single_use(self):
        created = await self.invite()
        await self.service.accept_invite(TEAM_ID, created.token, OUTSIDER_ID)

        with self.assertRaises(InviteAlreadyUsedError):
            await self.service.accept_invite(TEAM_ID, created.token, "user-late")
        self.assertNotIn((TEAM_ID, "user-late"), self.teams.roles)

    async def test_expired(self):
        created = await self.invite()
        self.now = NOW + timedelta(days=7)
        with self.assertRaises(InviteExpiredError):
            await self.service.accept_invite(TEAM_ID, created.token, OUTSIDER_ID)

    async def test_used_is_reported_before_expired(self):
        created = await self.invite()
        await self.service.accept_invite(TEAM_ID, created.token, OUTSIDER_ID)
        self.now = NOW + timedelta(days=30)
        with self.assertRaises(InviteAlreadyUsedError):
            await self.service.accept_invite(TEAM_ID, created.token, "user-late")

    async def test_email_must_match(self):
        created = await self.invite(email="sam@example.com")

        with self.assertRaises(InviteEmailMismatchError):
            await self.service.accept_invite(TEAM_ID, created.token, OUTSIDER_ID, "kim@example.com")
        with self.assertRaises(InviteEmailMismatchError):
            await self.service.accept_invite(TEAM_ID, created.token, OUTSIDER_ID, None)

        team = await self.service.accept_invite(
            TEAM_ID, created.token, OUTSIDER_ID, "SAM@example.com"
        )
        self.assertEqual(team.id, TEAM_ID)

    async def test_existing_member_keeps_role(self):
        created = await self.invite(role="ADMIN")

        await self.service.accept_invite(TEAM_ID, created.token, VIEWER_ID)

        self.assertEqual(self.teams.roles[(TEAM_ID, VIEWER_ID)], TeamRole.VIEWER)
        self.assertTrue(self.teams.invites[created.invite.id].is_used)

    async def test_losing_a_race_undoes_the_new_membership(self):
        created = await self.invite()
        self.teams.lose_mark_race = True

        with self.assertRaises(InviteAlreadyUsedError):
            await self.service.accept_invite(TEAM_ID, created.token, OUTSIDER_ID)

        self.assertNotIn((TEAM_ID, OUTSIDER_ID), self.teams.roles)
        self.assertEqual(self.teams.removed, [(TEAM_ID, OUTSIDER_ID)])

    async def test_losing_a_race_keeps_an_existing_membership(self):
        created = await self.invite()
        self.teams.lose_mark_race = True

        with self.assertRaises(InviteAlreadyUsedError):
            await self.service.accept_invite(TEAM_ID, created.token, EDITOR_ID)

        self.assertEqual(self.teams.roles[(TEAM_ID, EDITOR_ID)], TeamRole.EDITOR)
        self.assertEqual(self.teams.removed, [])

    async def test_double_submit_keeps_the_membership(self):
        teams = DelayedFirstMarkTeamStore()
        teams.add_team(TEAM_ID, "acme", members={OWNER_ID: TeamRole.OWNER})
        service = InviteService(teams, clock=lambda: self.now)
        created = await service.create_invite(TEAM_ID, OWNER_ID, role="EDITOR")

        results = await asyncio.gather(
            service.accept_invite(TEAM_ID, created.token, OUTSIDER_ID),
            service.accept_invite(TEAM_ID, created.token, OUTSIDER_ID),
            return_exceptions=True,
        )

        self.assertIsInstance(results[0], InviteAlreadyUsedError)
        self.assertEqual(results[1].id, TEAM_ID)
        self.assertEqual(teams.roles[(TEAM_ID, OUTSIDER_ID)], TeamRole.EDITOR)
        self.assertEqual(teams.removed, [])
        self.assertEqual(teams.invites[created.invite.id].used_by, OUTSIDER_ID)


class DelayedFirstMarkTeamStore(FakeTeamStore):
    """The first mark_invite_used call waits until a second one has finished."""

    def __init__(self):
        super().__init__()
        self.mark_calls = 0
        self.second_mark_done = asyncio.Event()

    async def mark_invite_used(self, invite_id, user_id, used_at):
        self.mark_calls += 1
        if self.mark_calls == 1:
            await self.second_mark_done.wait()
            return await super().mark_invite_used(invite_id, user_id, used_at)
        try:
            return await super().mark_invite_used(invite_id, user_id, used_at)
        finally:
            self.second_mark_done.set()


class TestInviteRoutes:

    def test_owner_creates_invite(self, client, stores, team, sign_in):
        sign_in(OWNER_ID)

        response = client.post(f"/api/teams/{TEAM_ID}/invites", json={"role": "editor"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["role"] == "EDITOR"
        assert data["expiresAt"]
        url = urlparse(data["inviteUrl"])
        assert f"{url.scheme}://{url.netloc}" == "http://localhost:3004"
        assert url.path == f"/invite/{TEAM_ID}"
        token = parse_qs(url.query)["token"][0]
        assert re.fullmatch(r"[A-Za-z0-9_-]{32}", token)

    def test_create_without_body_defaults_to_viewer(self, client, stores, team, sign_in):
        sign_in(OWNER_ID)
        response = client.post(f"/api/teams/{TEAM_ID}/invites")
        assert response.status_code == 200
        assert response.json()["data"]["role"] == "VIEWER"

    def test_viewer_cannot_invite(self, client, stores, team, sign_in):
        sign_in(VIEWER_ID)
        response = client.post(f"/api/teams/{TEAM_ID}/invites", json={})
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    def test_anonymous_cannot_invite(self, client, stores, team):
        response = client.post(f"/api/teams/{TEAM_ID}/invites", json={})
        assert response.status_code == 401

    def test_accept_round_trip(self, client, stores, team, sign_in):
        sign_in(OWNER_ID)
        invite_url = client.post(f"/api/teams/{TEAM_ID}/invites", json={}).json()["data"]["inviteUrl"]
        token = parse_qs(urlparse(invite_url).query)["token"][0]

        sign_in(OUTSIDER_ID)
        accepted = client.post(f"/api/invite/{TEAM_ID}/accept", json={"token": token})
        reused = client.post(f"/api/invite/{TEAM_ID}/accept", json={"token": token})

        assert accepted.status_code == 200
        assert accepted.json() == {"data": {"slug": "acme"}}
        assert reused.status_code == 400
        assert reused.json()["error"] == "Invite link has already been used"

    def test_accept_requires_token(self, client, stores, team, sign_in):
        sign_in(OUTSIDER_ID)

        blank = client.post(f"/api/invite/{TEAM_ID}/accept", json={"token": "  "})
        missing = client.post(f"/api/invite/{TEAM_ID}/accept")

        assert blank.status_code == 400
        assert blank.json()["error"] == "Invite token is required"
        assert missing.status_code == 400

    def test_accept_unknown_team(self, client, stores, team, sign_in):
        sign_in(OUTSIDER_ID)
        response = client.post("/api/invite/team-404/accept", json={"token": "abc"})
        assert response.status_code == 404
        assert response.json()["error"] == "Team not found"

    def test_accept_invalid_token(self, client, stores, team, sign_in):
        sign_in(OUTSIDER_ID)
        response = client.post(f"/api/invite/{TEAM_ID}/accept", json={"token": "abc"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid invite link"

    def test_accept_for_another_email(self, client, stores, team, sign_in):
        sign_in(OWNER_ID)
        invite_url = client.post(
            f"/api/teams/{TEAM_ID}/invites", json={"email": "sam@example.com"}
        ).json()["data"]["inviteUrl"]
        token = parse_qs(urlparse(invite_url).query)["token"][0]

        sign_in(OUTSIDER_ID, email="kim@example.com")
        response = client.post(f"/api/invite/{TEAM_ID}/accept", json={"token": token})

        assert response.status_code == 403
        assert response.json()["error"] == "This invite was sent to a different account"


if __name__ == "__main__":
    unittest.main()
