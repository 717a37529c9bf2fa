# =============================================================================
# tests/test_moderation.py - Reports, Moderation Actions and Appeals
# =============================================================================
# Run with: pytest tests/test_moderation.py -v
# =============================================================================

from datetime import timedelta
from uuid import uuid4

import pytest

from app.config import settings
from core.services.moderation_service import ModerationService
from lib.utils import utc_now
from tests.conftest import API

MOD = f"{API}/moderation"


@pytest.fixture
def owner(make_user):
    """Creator and so moderator of the community."""
    return make_user(username="owner")


@pytest.fixture
def author(make_user):
    return make_user(username="author")


@pytest.fixture
def community(client, owner):
    return client.post(f"{API}/communities", headers=owner.headers, json={
        "name": "gardening",
        "title": "Gardening",
    }).json()


@pytest.fixture
def post(client, author, community):
    return client.post(f"{API}/communities/{community['id']}/posts", headers=author.headers, json={
        "title": "Buy cheap pills",
    }).json()


@pytest.fixture
def global_mod(make_user):
    return make_user(role="moderator")


def act(client, user, **payload):
    payload.setdefault("reason", "Against the rules")
    return client.post(f"{MOD}/actions", headers=user.headers, json=payload)


def report_post(client, reporter, post, category="spam"):
    return client.post(f"{MOD}/reports", headers=reporter.headers, json={
        "target_type": "post",
        "target_id": post["id"],
        "category": category,
    }).json()


class TestReports:
    """Filing reports and working the queue."""

    def test_report_and_queue_visibility(self, client, make_user, owner, post):
        reporter = make_user()

        created = client.post(f"{MOD}/reports", headers=reporter.headers, json={
            "target_type": "post",
            "target_id": post["id"],
            "category": "spam",
        })
        queue = client.get(f"{MOD}/reports", headers=owner.headers).json()
        outsider_queue = client.get(f"{MOD}/reports", headers=make_user().headers)

        assert created.status_code == 201
        assert created.json()["status"] == "pending"
        assert created.json()["target_user_id"] == post["author_id"]
        assert [r["id"] for r in queue["data"]] == [created.json()["id"]]
        assert outsider_queue.status_code == 403

    def test_duplicate_open_report(self, client, make_user, post):
        reporter = make_user()
        body = {"target_type": "post", "target_id": post["id"], "category": "spam"}

        client.post(f"{MOD}/reports", headers=reporter.headers, json=body)
        response = client.post(f"{MOD}/reports", headers=reporter.headers, json=body)

        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_REPORT"

    def test_cannot_report_own_content(self, client, author, post):
        response = client.post(f"{MOD}/reports", headers=author.headers, json={
            "target_type": "post",
            "target_id": post["id"],
            "category": "other",
        })

        assert response.json()["code"] == "SELF_REPORT"

    def test_status_transitions(self, client, make_user, owner, post):
        reporter = make_user()
        report = client.post(f"{MOD}/reports", headers=reporter.headers, json={
            "target_type": "post",
            "target_id": post["id"],
            "category": "spam",
        }).json()
        url = f"{MOD}/reports/{report['id']}"

        review = client.patch(url, headers=owner.headers, json={"status": "under_review"})
        no_note = client.patch(url, headers=owner.headers, json={"status": "dismissed"})
        dismissed = client.patch(url, headers=owner.headers, json={
            "status": "dismissed",
            "resolution_note": "Not spam",
        })
        reopened = client.patch(url, headers=owner.headers, json={"status": "under_review"})

        assert review.json()["status"] == "under_review"
        assert no_note.json()["code"] == "RESOLUTION_NOTE_REQUIRED"
        assert dismissed.json()["resolved_at"] is not None
        assert reopened.json()["code"] == "REPORT_CLOSED"

    def test_reporter_sees_own_reports(self, client, make_user, post):
        reporter = make_user()
        client.post(f"{MOD}/reports", headers=reporter.headers, json={
            "target_type": "post",
            "target_id": post["id"],
            "category": "spam",
        })

        mine = client.get(f"{MOD}/reports/mine", headers=reporter.headers).json()

        assert mine["pagination"]["records"] == 1

    def test_queue_created_range(self, client, fake_db, make_user, owner, post):
        old = report_post(client, make_user(), post)
        new = report_post(client, make_user(), post)
        fake_db.set("reports", old["id"], created_at="2020-03-01T00:00:00+00:00")
        fake_db.set("reports", new["id"], created_at="2024-06-01T00:00:00+00:00")

        since = client.get(f"{MOD}/reports", headers=owner.headers, params={
            "created_from": "2024-01-01T00:00:00+00:00",
        }).json()
        until = client.get(f"{MOD}/reports", headers=owner.headers, params={
            "created_to": "2021-01-01T00:00:00+00:00",
        }).json()

        assert [r["id"] for r in since["data"]] == [new["id"]]
        assert [r["id"] for r in until["data"]] == [old["id"]]


class TestActions:
    """Applying moderation actions."""

    def test_remove_content_resolves_report(self, client, fake_db, make_user, owner, author, post):
        reporter = make_user()
        report = client.post(f"{MOD}/reports", headers=reporter.headers, json={
            "target_type": "post",
            "target_id": post["id"],
            "category": "spam",
        }).json()

        response = act(
            client, owner,
            action_type="remove_content", target_type="post", target_id=post["id"], report_id=report["id"],
        )

        assert response.status_code == 201
        assert response.json()["target_user_id"] == author.id
        assert client.get(f"{API}/posts/{post['id']}").status_code == 404
        assert fake_db.row("reports", id=report["id"])["status"] == "resolved"
        assert fake_db.row("notifications", user_id=author.id)["type"] == "moderation_action"

    def test_closed_report_blocks_ban(self, client, fake_db, make_user, owner, admin, author, post):
        report = report_post(client, make_user(), post)
        client.patch(f"{MOD}/reports/{report['id']}", headers=owner.headers, json={
            "status": "dismissed",
            "resolution_note": "Not spam",
        })

        response = act(
            client, admin,
            action_type="ban", target_user_id=author.id, is_appealable=False, report_id=report["id"],
        )

        assert response.status_code == 400
        assert response.json()["code"] == "REPORT_CLOSED"
        assert not fake_db.row("users", id=author.id).get("is_banned")
        assert fake_db.rows("moderation_actions") == []
        assert client.get(f"{API}/auth/me", headers=author.headers).status_code == 200

    def test_unknown_report_leaves_no_suspension(self, client, fake_db, global_mod, author):
        response = act(
            client, global_mod,
            action_type="suspend", target_user_id=author.id, duration_days=3, report_id=str(uuid4()),
        )

        assert response.status_code == 404
        assert response.json()["code"] == "REPORT_NOT_FOUND"
        assert fake_db.row("users", id=author.id)["suspended_until"] is None
        assert fake_db.rows("moderation_actions") == []

    def test_report_about_other_post(self, client, fake_db, make_user, owner, author, community, post):
        other = client.post(f"{API}/communities/{community['id']}/posts", headers=author.headers, json={
            "title": "Tomato season",
        }).json()
        report = report_post(client, make_user(), post)

        response = act(
            client, owner,
            action_type="remove_content", target_type="post", target_id=other["id"], report_id=report["id"],
        )

        assert response.json()["code"] == "REPORT_MISMATCH"
        assert client.get(f"{API}/posts/{other['id']}").status_code == 200
        assert fake_db.row("reports", id=report["id"])["status"] == "pending"

    def test_restore_content(self, client, owner, post):
        act(client, owner, action_type="remove_content", target_type="post", target_id=post["id"])

        response = act(client, owner, action_type="restore_content", target_type="post", target_id=post["id"])

        assert response.status_code == 201
        assert response.json()["is_appealable"] is False
        assert client.get(f"{API}/posts/{post['id']}").status_code == 200

    def test_outsider_cannot_remove(self, client, make_user, post):
        response = act(client, make_user(), action_type="remove_content", target_type="post", target_id=post["id"])

        assert response.status_code == 403
        assert response.json()["code"] == "NOT_A_MODERATOR"

    def test_community_moderator_cannot_suspend(self, client, owner, author):
        response = act(client, owner, action_type="suspend", target_user_id=author.id, duration_days=3)

        assert response.json()["code"] == "FORBIDDEN_ROLE"

    def test_suspension_blocks_participation(self, client, global_mod, author, community):
        response = act(client, global_mod, action_type="suspend", target_user_id=author.id, duration_days=3)

        blocked = client.post(f"{API}/communities/{community['id']}/posts", headers=author.headers, json={
            "title": "Am I back?",
        })

        assert response.json()["expires_at"] is not None
        assert blocked.json()["code"] == "ACCOUNT_SUSPENDED"
        # Reading still works
        assert client.get(f"{API}/auth/me", headers=author.headers).status_code == 200

    def test_moderator_suspension_limit(self, client, global_mod, author):
        response = act(client, global_mod, action_type="suspend", target_user_id=author.id, duration_days=90)

        assert response.json()["code"] == "DURATION_TOO_LONG"

    def test_moderator_cannot_act_on_staff(self, client, make_user, global_mod):
        other_mod = make_user(role="moderator")

        response = act(client, global_mod, action_type="suspend", target_user_id=other_mod.id, duration_days=1)

        assert response.json()["code"] == "INSUFFICIENT_RANK"

    def test_nobody_acts_on_themselves(self, client, admin):
        response = act(client, admin, action_type="warn", target_user_id=admin.id)

        assert response.json()["code"] == "SELF_ACTION"

    def test_only_admins_ban(self, client, global_mod, author):
        response = act(client, global_mod, action_type="ban", target_user_id=author.id)

        assert response.json()["code"] == "FORBIDDEN_ROLE"

    def test_ban_revokes_sessions(self, client, admin, author):
        response = act(client, admin, action_type="ban", target_user_id=author.id, is_appealable=False)

        assert response.status_code == 201
        assert client.get(f"{API}/auth/me", headers=author.headers).status_code == 401
        login = client.post(f"{API}/auth/login", json={"email": author.email, "password": author.password})
        assert login.json()["code"] == "ACCOUNT_BANNED"

    def test_target_sees_own_history(self, client, admin, author):
        act(client, admin, action_type="warn", target_user_id=author.id)

        mine = client.get(f"{MOD}/actions/mine", headers=author.headers).json()

        assert [a["action_type"] for a in mine["data"]] == ["warn"]

    def test_lift_expired_suspensions(self, fake_db, author):
        past = (utc_now() - timedelta(hours=1)).isoformat()
        fake_db.set("users", author.id, suspended_until=past)

        assert ModerationService.lift_expired_suspensions() == 1
        assert fake_db.row("users", id=author.id)["suspended_until"] is None


class TestAppeals:
    """Appealing actions and deciding appeals."""

    @pytest.fixture
    def suspension(self, client, global_mod, author):
        return act(client, global_mod, action_type="suspend", target_user_id=author.id, duration_days=7).json()

    def appeal(self, client, user, action_id):
        return client.post(f"{MOD}/appeals", headers=user.headers, json={
            "moderation_action_id": action_id,
            "explanation": "That was a different account of mine",
        })

    def test_overturned_appeal_lifts_suspension(self, client, fake_db, admin, author, suspension):
        appeal = self.appeal(client, author, suspension["id"]).json()

        response = client.post(f"{MOD}/appeals/{appeal['id']}/decision", headers=admin.headers, json={
            "decision": "overturned",
            "decision_reasoning": "Mistaken identity",
        })

        assert response.json()["status"] == "overturned"
        assert fake_db.row("users", id=author.id)["suspended_until"] is None
        assert fake_db.row("moderation_actions", id=suspension["id"])["is_reversed"] is True
        assert fake_db.row("notifications", user_id=author.id, type="appeal_decision") is not None

    def test_upheld_appeal_keeps_action(self, client, fake_db, admin, author, suspension):
        appeal = self.appeal(client, author, suspension["id"]).json()

        client.post(f"{MOD}/appeals/{appeal['id']}/decision", headers=admin.headers, json={
            "decision": "upheld",
            "decision_reasoning": "Clear violation",
        })

        assert fake_db.row("users", id=author.id)["suspended_until"] is not None

    def test_only_target_may_appeal(self, client, make_user, suspension):
        response = self.appeal(client, make_user(), suspension["id"])

        assert response.json()["code"] == "NOT_YOUR_ACTION"

    def test_one_appeal_per_action_until_withdrawn(self, client, author, suspension):
        first = self.appeal(client, author, suspension["id"]).json()

        duplicate = self.appeal(client, author, suspension["id"])
        client.post(f"{MOD}/appeals/{first['id']}/withdraw", headers=author.headers)
        refiled = self.appeal(client, author, suspension["id"])

        assert duplicate.json()["code"] == "APPEAL_EXISTS"
        assert refiled.status_code == 201

    def test_window_closes(self, client, fake_db, author, suspension):
        fake_db.set("moderation_actions", suspension["id"], created_at="2020-01-01T00:00:00+00:00")

        response = self.appeal(client, author, suspension["id"])

        assert response.json()["code"] == "APPEAL_WINDOW_CLOSED"

    def test_non_appealable_ban(self, client, fake_db, admin, author):
        ban = act(client, admin, action_type="ban", target_user_id=author.id, is_appealable=False).json()
        # Let the account log in; the recorded action stays non-appealable
        fake_db.set("users", author.id, ban_appealable=True)
        tokens = client.post(f"{API}/auth/login", json={"email": author.email, "password": author.password}).json()
        headers = {"Authorization": f"Bearer {tokens['token']['access']}"}

        response = client.post(f"{MOD}/appeals", headers=headers, json={
            "moderation_action_id": ban["id"],
            "explanation": "Please reconsider this ban",
        })

        assert response.json()["code"] == "NOT_APPEALABLE"

    def test_appealable_ban_can_be_appealed_after_login(self, client, admin, author):
        ban = act(client, admin, action_type="ban", target_user_id=author.id).json()
        tokens = client.post(f"{API}/auth/login", json={"email": author.email, "password": author.password}).json()
        headers = {"Authorization": f"Bearer {tokens['token']['access']}"}

        response = client.post(f"{MOD}/appeals", headers=headers, json={
            "moderation_action_id": ban["id"],
            "explanation": "I was hacked, sorry about that",
        })

        assert response.status_code == 201

    def test_pending_appeal_limit(self, monkeypatch, client, global_mod, author):
        monkeypatch.setattr(settings, "MAX_ACTIVE_APPEALS", 1)
        first = act(client, global_mod, action_type="warn", target_user_id=author.id).json()
        second = act(client, global_mod, action_type="warn", target_user_id=author.id).json()

        accepted = self.appeal(client, author, first["id"])
        rejected = self.appeal(client, author, second["id"])

        assert accepted.status_code == 201
        assert rejected.status_code == 400
        assert rejected.json()["code"] == "TOO_MANY_APPEALS"

    def test_decided_appeal_is_frozen(self, client, admin, author, suspension):
        appeal = self.appeal(client, author, suspension["id"]).json()
        client.post(f"{MOD}/appeals/{appeal['id']}/decision", headers=admin.headers, json={
            "decision": "upheld",
            "decision_reasoning": "Clear violation",
        })

        edited = client.patch(f"{MOD}/appeals/{appeal['id']}", headers=author.headers, json={
            "explanation": "Adding a few more details here",
        })
        withdrawn = client.post(f"{MOD}/appeals/{appeal['id']}/withdraw", headers=author.headers)

        assert edited.json()["code"] == "APPEAL_NOT_PENDING"
        assert withdrawn.json()["code"] == "APPEAL_NOT_PENDING"

    def test_overturned_ban_unbans(self, client, fake_db, admin, author):
        ban = act(client, admin, action_type="ban", target_user_id=author.id).json()
        tokens = client.post(f"{API}/auth/login", json={"email": author.email, "password": author.password}).json()
        headers = {"Authorization": f"Bearer {tokens['token']['access']}"}
        appeal = client.post(f"{MOD}/appeals", headers=headers, json={
            "moderation_action_id": ban["id"],
            "explanation": "I was hacked, sorry about that",
        }).json()

        client.post(f"{MOD}/appeals/{appeal['id']}/decision", headers=admin.headers, json={
            "decision": "overturned",
            "decision_reasoning": "Account was compromised",
        })

        assert fake_db.row("users", id=author.id)["is_banned"] is False
        assert fake_db.row("moderation_actions", id=ban["id"])["is_reversed"] is True

    def test_overturned_removal_restores_post(self, client, admin, owner, author, post):
        removal = act(client, owner, action_type="remove_content", target_type="post", target_id=post["id"]).json()
        appeal = self.appeal(client, author, removal["id"]).json()

        client.post(f"{MOD}/appeals/{appeal['id']}/decision", headers=admin.headers, json={
            "decision": "overturned",
            "decision_reasoning": "Not spam after all",
        })

        assert client.get(f"{API}/posts/{post['id']}").status_code == 200

    def test_only_admins_decide(self, client, global_mod, author, suspension):
        appeal = self.appeal(client, author, suspension["id"]).json()

        response = client.post(f"{MOD}/appeals/{appeal['id']}/decision", headers=global_mod.headers, json={
            "decision": "upheld",
            "decision_reasoning": "Fine",
        })

        assert response.status_code == 403

    def test_decision_must_be_final_state(self, client, admin, author, suspension):
        appeal = self.appeal(client, author, suspension["id"]).json()

        response = client.post(f"{MOD}/appeals/{appeal['id']}/decision", headers=admin.headers, json={
            "decision": "withdrawn",
            "decision_reasoning": "Hmm",
        })

        assert response.json()["code"] == "INVALID_DECISION"
