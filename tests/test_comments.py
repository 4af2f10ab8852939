"""
Tests for the comment mutation protocol: id assignment, ordering, and
behaviour under concurrent writers.
"""

from datetime import datetime, timezone

import pytest

import news
from comments import append_comment, next_comment_id, without_comment
from errors import NotFoundError, RevisionConflictError


def _comment(i, user_id=1):
    return {"id": i, "user_id": user_id, "text": f"c{i}", "created_at": datetime(2024, 5, 1, tzinfo=timezone.utc)}


class TestCommentHelpers:

    def test_first_comment_gets_id_1(self):
        assert next_comment_id([]) == 1

    def test_next_id_is_max_plus_one(self):
        assert next_comment_id([_comment(1), _comment(2)]) == 3
        # gaps left by removals are not reused
        assert next_comment_id([_comment(1), _comment(5)]) == 6

    def test_append_goes_to_the_end(self):
        updated = append_comment([_comment(1), _comment(2)], 4, "new")
        assert [c["id"] for c in updated] == [1, 2, 3]
        assert updated[-1]["user_id"] == 4
        assert updated[-1]["text"] == "new"
        assert updated[-1]["created_at"] is not None

    def test_append_does_not_touch_the_input(self):
        original = [_comment(1)]
        append_comment(original, 1, "x")
        assert len(original) == 1

    def test_remove_keeps_order_without_renumbering(self):
        updated = without_comment([_comment(1), _comment(2), _comment(3)], 2)
        assert [c["id"] for c in updated] == [1, 3]

    def test_remove_missing_id_is_a_noop(self):
        comments = [_comment(1), _comment(2)]
        assert without_comment(comments, 9) == comments


class TestCommentEndpoints:

    def test_first_comment_has_id_1(self, api, article):
        response = api.post(f"/news/{article['id']}/comments", json={"user_id": 2, "text": "Great read"})
        assert response.status_code == 201
        comments = response.json()["comments"]
        assert len(comments) == 1
        assert comments[0]["id"] == 1
        assert comments[0]["user_id"] == 2
        assert comments[0]["text"] == "Great read"
        assert comments[0]["created_at"]

    def test_add_appends_with_next_id(self, api, article):
        for text in ("one", "two"):
            api.post(f"/news/{article['id']}/comments", json={"user_id": 1, "text": text})
        response = api.post(f"/news/{article['id']}/comments", json={"user_id": 3, "text": "three"})
        comments = response.json()["comments"]
        assert [c["id"] for c in comments] == [1, 2, 3]
        assert comments[-1]["text"] == "three"
        assert response.json()["revision"] == 3

    def test_delete_middle_comment(self, api, article):
        for text in ("one", "two", "three"):
            api.post(f"/news/{article['id']}/comments", json={"user_id": 1, "text": text})
        response = api.delete(f"/news/{article['id']}/comments/2")
        assert response.status_code == 200
        comments = response.json()["comments"]
        assert [c["id"] for c in comments] == [1, 3]
        assert [c["text"] for c in comments] == ["one", "three"]

    def test_id_after_deleting_last_is_not_reused_below_max(self, api, article):
        for text in ("one", "two", "three"):
            api.post(f"/news/{article['id']}/comments", json={"user_id": 1, "text": text})
        api.delete(f"/news/{article['id']}/comments/2")
        response = api.post(f"/news/{article['id']}/comments", json={"user_id": 1, "text": "four"})
        assert [c["id"] for c in response.json()["comments"]] == [1, 3, 4]

    def test_delete_unknown_comment_is_404(self, api, article):
        response = api.delete(f"/news/{article['id']}/comments/5")
        assert response.status_code == 404
        assert response.json()["message"] == "Comment not found"

    def test_comment_on_unknown_article_is_404(self, api):
        response = api.post("/news/0123456789abcdef01234567/comments", json={"user_id": 1, "text": "hi"})
        assert response.status_code == 404

    def test_blank_comment_is_400(self, api, article):
        response = api.post(f"/news/{article['id']}/comments", json={"user_id": 1, "text": "   "})
        assert response.status_code == 400

    def test_comment_by_unknown_user_is_422(self, api, article):
        response = api.post(f"/news/{article['id']}/comments", json={"user_id": 50, "text": "hi"})
        assert response.status_code == 422
        assert api.get(f"/news/{article['id']}").json()["comments"] == []


class TestConcurrentCommentWrites:
    """
    Two writers that both read the article before either writes.

    Server-side comment operations compare-and-swap on ``revision`` and retry,
    so both comments survive. A PATCH without a revision is last-writer-wins
    and loses one of them.
    """

    def test_stale_write_is_rejected(self, db, article):
        first, first_rev = news.load_comments(article["id"])
        second, second_rev = news.load_comments(article["id"])

        news.write_comments(article["id"], append_comment(first, 1, "first"), first_rev)
        with pytest.raises(RevisionConflictError):
            news.write_comments(article["id"], append_comment(second, 2, "second"), second_rev)

        stored = news.get_article(article["id"])
        assert [c["text"] for c in stored["comments"]] == ["first"]

    def test_interleaved_adds_both_survive(self, db, article, monkeypatch):
        real_load = news.load_comments
        raced = []

        def racing_load(article_id):
            snapshot = real_load(article_id)
            if not raced:
                raced.append(True)
                # another writer commits between our read and our write
                comments, revision = snapshot
                news.write_comments(article_id, append_comment(comments, 2, "theirs"), revision)
            return snapshot

        monkeypatch.setattr(news, "load_comments", racing_load)
        result = news.add_comment(article["id"], 1, "mine")

        assert [(c["id"], c["text"]) for c in result["comments"]] == [(1, "theirs"), (2, "mine")]
        assert result["revision"] == 2

    def test_gives_up_after_retries(self, api, article, monkeypatch):
        real_load = news.load_comments
        monkeypatch.setattr(news, "load_comments", lambda article_id: (real_load(article_id)[0], 99))

        response = api.post(f"/news/{article['id']}/comments", json={"user_id": 1, "text": "hi"})
        assert response.status_code == 409
        assert api.get(f"/news/{article['id']}").json()["comments"] == []

    def test_remove_on_deleted_article_is_404(self, db, article):
        news.delete_article(article["id"])
        with pytest.raises(NotFoundError):
            news.remove_comment(article["id"], 1)

    def test_patch_without_revision_loses_an_update(self, api, article):
        url = f"/news/{article['id']}"
        seen_by_a = api.get(url).json()
        seen_by_b = api.get(url).json()

        comment_a = {"id": 1, "user_id": 1, "text": "from a", "created_at": "2024-05-01T12:00:00Z"}
        comment_b = {"id": 1, "user_id": 2, "text": "from b", "created_at": "2024-05-01T12:00:01Z"}
        api.patch(url, json={"comments": seen_by_a["comments"] + [comment_a]})
        api.patch(url, json={"comments": seen_by_b["comments"] + [comment_b]})

        comments = api.get(url).json()["comments"]
        assert [c["text"] for c in comments] == ["from b"]

    def test_patch_with_stale_revision_is_409(self, api, article):
        url = f"/news/{article['id']}"
        seen_by_a = api.get(url).json()
        seen_by_b = api.get(url).json()

        comment_a = {"id": 1, "user_id": 1, "text": "from a", "created_at": "2024-05-01T12:00:00Z"}
        comment_b = {"id": 1, "user_id": 2, "text": "from b", "created_at": "2024-05-01T12:00:01Z"}
        ok = api.patch(url, json={"comments": [comment_a], "revision": seen_by_a["revision"]})
        stale = api.patch(url, json={"comments": [comment_b], "revision": seen_by_b["revision"]})

        assert ok.status_code == 200
        assert stale.status_code == 409
        assert [c["text"] for c in api.get(url).json()["comments"]] == ["from a"]
