# =============================================================================
# tests/test_community.py - Communities, Posts, Comments and Votes
# =============================================================================
# Run with: pytest tests/test_community.py -v
# =============================================================================

import pytest

from core.services.post_service import hot_score
from tests.conftest import API


@pytest.fixture
def community(client, member):
    """A community created (and so moderated) by `member`."""
    response = client.post(f"{API}/communities", headers=member.headers, json={
        "name": "python_jobs",
        "title": "Python Jobs",
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def post(client, member, community):
    response = client.post(f"{API}/communities/{community['id']}/posts", headers=member.headers, json={
        "title": "Hiring a backend engineer",
        "body": "Remote, EU time zones",
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestCommunities:
    """Creation, membership and moderators."""

    def test_creator_is_member_and_moderator(self, client, member, community):
        members = client.get(f"{API}/communities/{community['id']}/members").json()
        moderators = client.get(f"{API}/communities/{community['id']}/moderators").json()

        assert community["member_count"] == 1
        assert [m["user_id"] for m in members["data"]] == [member.id]
        assert [m["user_id"] for m in moderators] == [member.id]

    def test_name_is_unique_case_insensitively(self, client, make_user, community):
        other = make_user()

        response = client.post(f"{API}/communities", headers=other.headers, json={
            "name": "PYTHON_JOBS",
            "title": "Duplicate",
        })

        assert response.status_code == 409
        assert response.json()["code"] == "COMMUNITY_NAME_TAKEN"

    def test_join_and_leave_adjust_member_count(self, client, make_user, community):
        joiner = make_user()
        url = f"{API}/communities/{community['id']}"

        assert client.post(f"{url}/join", headers=joiner.headers).status_code == 201
        assert client.get(url).json()["member_count"] == 2
        assert client.post(f"{url}/join", headers=joiner.headers).json()["code"] == "ALREADY_MEMBER"

        assert client.post(f"{url}/leave", headers=joiner.headers).status_code == 204
        assert client.get(url).json()["member_count"] == 1

    def test_last_moderator_cannot_leave(self, client, member, community):
        response = client.post(f"{API}/communities/{community['id']}/leave", headers=member.headers)

        assert response.status_code == 400
        assert response.json()["code"] == "LAST_MODERATOR"

    def test_only_moderators_update(self, client, make_user, member, community):
        outsider = make_user()
        url = f"{API}/communities/{community['id']}"

        denied = client.patch(url, headers=outsider.headers, json={"title": "Mine now"})
        allowed = client.patch(url, headers=member.headers, json={"title": "Python Careers"})

        assert denied.status_code == 403
        assert denied.json()["code"] == "NOT_A_MODERATOR"
        assert allowed.json()["title"] == "Python Careers"

    def test_appoint_requires_membership(self, client, make_user, member, community):
        candidate = make_user()
        url = f"{API}/communities/{community['id']}"

        refused = client.post(f"{url}/moderators", headers=member.headers, json={"user_id": candidate.id})
        client.post(f"{url}/join", headers=candidate.headers)
        appointed = client.post(f"{url}/moderators", headers=member.headers, json={"user_id": candidate.id})

        assert refused.json()["code"] == "NOT_A_MEMBER"
        assert appointed.status_code == 201
        assert appointed.json()["appointed_by"] == member.id

    def test_cannot_remove_last_moderator(self, client, admin, member, community):
        response = client.delete(
            f"{API}/communities/{community['id']}/moderators/{member.id}",
            headers=admin.headers,
        )

        assert response.json()["code"] == "LAST_MODERATOR"

    def test_search_and_member_sort(self, client, make_user, community):
        other = make_user()
        second = client.post(f"{API}/communities", headers=other.headers, json={
            "name": "rust_jobs",
            "title": "Rust Jobs",
        }).json()
        client.post(f"{API}/communities/{second['id']}/join", headers=make_user().headers)

        found = client.get(f"{API}/communities", params={"search": "RUST"}).json()
        by_members = client.get(f"{API}/communities").json()

        assert [c["name"] for c in found["data"]] == ["rust_jobs"]
        assert [c["name"] for c in by_members["data"]] == ["rust_jobs", "python_jobs"]

    def test_deleted_community_is_gone(self, client, member, community):
        client.delete(f"{API}/communities/{community['id']}", headers=member.headers)

        response = client.get(f"{API}/communities/{community['id']}")

        assert response.status_code == 404
        assert response.json()["code"] == "COMMUNITY_NOT_FOUND"


class TestPosts:
    """Posting, editing and visibility."""

    def test_post_in_unknown_community(self, client, member):
        response = client.post(
            f"{API}/communities/00000000-0000-0000-0000-000000000000/posts",
            headers=member.headers,
            json={"title": "Hello"},
        )

        assert response.status_code == 404

    def test_edit_keeps_history(self, client, member, post):
        client.patch(f"{API}/posts/{post['id']}", headers=member.headers, json={"title": "Hiring two engineers"})

        edits = client.get(f"{API}/posts/{post['id']}/edits").json()
        current = client.get(f"{API}/posts/{post['id']}").json()

        assert current["title"] == "Hiring two engineers"
        assert [e["previous_title"] for e in edits] == ["Hiring a backend engineer"]

    def test_only_author_edits(self, client, admin, post):
        response = client.patch(f"{API}/posts/{post['id']}", headers=admin.headers, json={"title": "Nope"})

        assert response.status_code == 403
        assert response.json()["code"] == "NOT_AUTHOR"

    def test_deleted_post_hidden_except_from_moderators(self, client, make_user, member, post):
        client.delete(f"{API}/posts/{post['id']}", headers=member.headers)
        reader = make_user()

        assert client.get(f"{API}/posts/{post['id']}").status_code == 404
        assert client.get(f"{API}/posts/{post['id']}", headers=reader.headers).status_code == 404
        assert client.get(f"{API}/posts/{post['id']}", headers=member.headers).status_code == 200
        assert client.get(f"{API}/posts").json()["data"] == []

    def test_community_listing_is_scoped(self, client, make_user, community, post):
        other = make_user()
        elsewhere = client.post(f"{API}/communities", headers=other.headers, json={
            "name": "elsewhere",
            "title": "Elsewhere",
        }).json()
        client.post(f"{API}/communities/{elsewhere['id']}/posts", headers=other.headers, json={"title": "Off topic"})

        body = client.get(f"{API}/communities/{community['id']}/posts").json()

        assert [p["id"] for p in body["data"]] == [post["id"]]

    def test_suspended_user_cannot_post(self, client, fake_db, member, community):
        fake_db.set("users", member.id, suspended_until="2999-01-01T00:00:00+00:00")

        response = client.post(
            f"{API}/communities/{community['id']}/posts",
            headers=member.headers,
            json={"title": "Still here"},
        )

        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_SUSPENDED"


class TestHotScore:

    def test_higher_score_ranks_higher_at_same_age(self):
        created = "2024-01-15T10:00:00+00:00"

        assert hot_score(100, created) > hot_score(10, created) > hot_score(-10, created)

    def test_newer_post_wins_at_same_score(self):
        assert hot_score(10, "2024-01-16T10:00:00+00:00") > hot_score(10, "2024-01-15T10:00:00+00:00")

    def test_front_page_hot_sort(self, client, fake_db, member, community):
        url = f"{API}/communities/{community['id']}/posts"
        popular = client.post(url, headers=member.headers, json={"title": "Salary survey results"}).json()
        fresh = client.post(url, headers=member.headers, json={"title": "Anyone hiring juniors?"}).json()
        fake_db.set("posts", popular["id"], score=1000, created_at="2024-01-15T09:00:00+00:00")
        fake_db.set("posts", fresh["id"], score=0, created_at="2024-01-15T10:00:00+00:00")

        newest = client.get(f"{API}/posts", params={"sort": "new"}).json()
        hottest = client.get(f"{API}/posts", params={"sort": "hot"}).json()

        assert [p["id"] for p in newest["data"]] == [fresh["id"], popular["id"]]
        assert [p["id"] for p in hottest["data"]] == [popular["id"], fresh["id"]]


class TestComments:
    """Threaded comments and placeholders."""

    def test_reply_depth_and_counts(self, client, make_user, post):
        replier = make_user()
        url = f"{API}/posts/{post['id']}/comments"

        top = client.post(url, headers=replier.headers, json={"body": "Interested!"}).json()
        reply = client.post(url, headers=replier.headers, json={"body": "Details?", "parent_id": top["id"]}).json()

        assert top["depth"] == 0
        assert reply["depth"] == 1
        assert reply["parent_id"] == top["id"]
        assert client.get(f"{API}/posts/{post['id']}").json()["comment_count"] == 2

    def test_parent_must_be_on_same_post(self, client, member, community, post):
        other_post = client.post(f"{API}/communities/{community['id']}/posts", headers=member.headers, json={
            "title": "Another thread",
        }).json()
        parent = client.post(f"{API}/posts/{post['id']}/comments", headers=member.headers, json={"body": "A"}).json()

        response = client.post(
            f"{API}/posts/{other_post['id']}/comments",
            headers=member.headers,
            json={"body": "B", "parent_id": parent["id"]},
        )

        assert response.json()["code"] == "PARENT_MISMATCH"

    def test_max_depth(self, client, monkeypatch, member, post):
        from app.config import settings

        monkeypatch.setattr(settings, "MAX_COMMENT_DEPTH", 1)
        url = f"{API}/posts/{post['id']}/comments"
        top = client.post(url, headers=member.headers, json={"body": "0"}).json()
        reply = client.post(url, headers=member.headers, json={"body": "1", "parent_id": top["id"]}).json()

        response = client.post(url, headers=member.headers, json={"body": "2", "parent_id": reply["id"]})

        assert response.json()["code"] == "MAX_DEPTH_EXCEEDED"

    def test_deleted_comment_keeps_its_place(self, client, member, post):
        url = f"{API}/posts/{post['id']}/comments"
        comment = client.post(url, headers=member.headers, json={"body": "Regrettable"}).json()

        client.delete(f"{API}/comments/{comment['id']}", headers=member.headers)
        listed = client.get(url).json()["data"]

        assert listed[0]["body"] == "[deleted]"
        assert listed[0]["author_id"] is None
        assert listed[0]["is_deleted"] is True

    def test_reply_notifies_parent_author(self, client, fake_db, make_user, member, post):
        replier = make_user()
        url = f"{API}/posts/{post['id']}/comments"
        top = client.post(url, headers=member.headers, json={"body": "Ask me anything"}).json()

        client.post(url, headers=replier.headers, json={"body": "Salary?", "parent_id": top["id"]})

        notification = fake_db.row("notifications", user_id=member.id)
        assert notification["type"] == "comment_reply"
        assert notification["title"] == f"{replier.username} replied to your comment"


class TestVotes:
    """Votes, counters and karma."""

    def test_upvote_then_switch_then_clear(self, client, fake_db, make_user, member, post):
        voter = make_user()
        url = f"{API}/posts/{post['id']}/vote"

        up = client.post(url, headers=voter.headers, json={"value": 1}).json()
        assert (up["upvotes"], up["downvotes"], up["score"]) == (1, 0, 1)
        assert fake_db.row("users", id=member.id)["karma"] == 1

        down = client.post(url, headers=voter.headers, json={"value": -1}).json()
        assert (down["upvotes"], down["downvotes"], down["score"]) == (0, 1, -1)
        assert fake_db.row("users", id=member.id)["karma"] == -1

        cleared = client.post(url, headers=voter.headers, json={"value": 0}).json()
        assert cleared["score"] == 0
        assert fake_db.rows("votes") == []
        assert fake_db.row("users", id=member.id)["karma"] == 0

    def test_repeat_vote_is_idempotent(self, client, make_user, post):
        voter = make_user()
        url = f"{API}/posts/{post['id']}/vote"

        client.post(url, headers=voter.headers, json={"value": 1})
        again = client.post(url, headers=voter.headers, json={"value": 1}).json()

        assert again["upvotes"] == 1

    def test_self_vote_forbidden(self, client, member, post):
        response = client.post(f"{API}/posts/{post['id']}/vote", headers=member.headers, json={"value": 1})

        assert response.status_code == 400
        assert response.json()["code"] == "SELF_VOTE"

    def test_invalid_vote_value(self, client, make_user, post):
        response = client.post(f"{API}/posts/{post['id']}/vote", headers=make_user().headers, json={"value": 2})

        assert response.status_code == 422

    def test_comment_vote(self, client, make_user, member, post):
        comment = client.post(f"{API}/posts/{post['id']}/comments", headers=member.headers, json={"body": "Hi"}).json()

        response = client.post(f"{API}/comments/{comment['id']}/vote", headers=make_user().headers, json={"value": -1})

        assert response.json()["target_type"] == "comment"
        assert response.json()["score"] == -1

    def test_top_sort_orders_by_score(self, client, make_user, member, community, post):
        quiet = client.post(f"{API}/communities/{community['id']}/posts", headers=member.headers, json={
            "title": "Quiet post",
        }).json()
        client.post(f"{API}/posts/{post['id']}/vote", headers=make_user().headers, json={"value": 1})

        body = client.get(f"{API}/posts", params={"sort": "top"}).json()

        assert [p["id"] for p in body["data"]] == [post["id"], quiet["id"]]
