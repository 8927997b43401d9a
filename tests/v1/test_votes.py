# mypy: ignore-errors
# tests/v1/test_votes.py
"""Tests for post and comment voting."""

from fastapi import status

from foundersocials.models import Comment, PostVote
from foundersocials.models.comment import STATUS_APPROVED
from tests.conftest import auth_headers, make_user


def _vote(client, post_id, vote_type, headers):
    return client.post(f"/api/posts/{post_id}/vote", json={"voteType": vote_type}, headers=headers)


def test_cast_upvote(client, auth_token, test_post) -> None:
    """Test casting an upvote on a post."""
    response = _vote(client, test_post.id, "upvote", auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Vote recorded", "upvotes": 1, "downvotes": 0}


def test_same_vote_twice_toggles_off(client, auth_token, test_post, db_session) -> None:
    _vote(client, test_post.id, "upvote", auth_token)
    response = _vote(client, test_post.id, "upvote", auth_token)

    assert response.json() == {"message": "Vote removed", "upvotes": 0, "downvotes": 0}
    assert db_session.query(PostVote).filter_by(post_id=test_post.id).count() == 0


def test_opposite_vote_flips(client, auth_token, test_post, db_session) -> None:
    _vote(client, test_post.id, "upvote", auth_token)
    response = _vote(client, test_post.id, "downvote", auth_token)

    assert response.json() == {"message": "Vote recorded", "upvotes": 0, "downvotes": 1}
    votes = db_session.query(PostVote).filter_by(post_id=test_post.id).all()
    assert [v.vote_type for v in votes] == ["downvote"]


def test_two_users_counters_match_vote_rows(client, db_session, test_post, test_user, other_user) -> None:
    """A upvotes, B downvotes, A downvotes, B downvotes -> A's downvote only."""
    a = auth_headers(test_user)
    b = auth_headers(other_user)

    _vote(client, test_post.id, "upvote", a)
    _vote(client, test_post.id, "downvote", b)
    _vote(client, test_post.id, "downvote", a)
    final = _vote(client, test_post.id, "downvote", b)

    assert final.json()["upvotes"] == 0
    assert final.json()["downvotes"] == 1

    db_session.refresh(test_post)
    assert (test_post.upvotes, test_post.downvotes) == (0, 1)
    rows = db_session.query(PostVote).filter_by(post_id=test_post.id).all()
    assert [(v.user_id, v.vote_type) for v in rows] == [(test_user.id, "downvote")]


def test_toggle_then_revote_alongside_other_user(client, db_session, test_post, test_user, other_user) -> None:
    """A up, A up (removed), B down, A up -> one of each."""
    a = auth_headers(test_user)
    b = auth_headers(other_user)

    assert _vote(client, test_post.id, "upvote", a).json()["upvotes"] == 1
    assert _vote(client, test_post.id, "upvote", a).json()["message"] == "Vote removed"
    _vote(client, test_post.id, "downvote", b)
    final = _vote(client, test_post.id, "upvote", a)

    assert final.json() == {"message": "Vote recorded", "upvotes": 1, "downvotes": 1}
    db_session.refresh(test_post)
    assert (test_post.upvotes, test_post.downvotes) == (1, 1)
    rows = db_session.query(PostVote).filter_by(post_id=test_post.id).order_by(PostVote.user_id).all()
    assert [(v.user_id, v.vote_type) for v in rows] == [
        (test_user.id, "upvote"),
        (other_user.id, "downvote"),
    ]


def test_invalid_vote_type(client, auth_token, test_post) -> None:
    response = _vote(client, test_post.id, "sidevote", auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_vote_on_missing_post(client, auth_token) -> None:
    response = _vote(client, 99999, "upvote", auth_token)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_vote_requires_auth(client, test_post) -> None:
    response = client.post(f"/api/posts/{test_post.id}/vote", json={"voteType": "upvote"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_comment_votes(client, db_session, test_post, test_user) -> None:
    comment = Comment(
        post_id=test_post.id,
        author_id=test_user.id,
        content="Great write-up",
        status=STATUS_APPROVED,
    )
    db_session.add(comment)
    db_session.flush()

    voter = make_user(db_session, "voter")
    url = f"/api/comments/{comment.id}/vote"

    up = client.post(url, json={"voteType": "upvote"}, headers=auth_headers(voter))
    assert up.status_code == status.HTTP_200_OK
    assert up.json()["upvotes"] == 1

    flip = client.post(url, json={"voteType": "downvote"}, headers=auth_headers(voter))
    assert (flip.json()["upvotes"], flip.json()["downvotes"]) == (0, 1)

    off = client.post(url, json={"voteType": "downvote"}, headers=auth_headers(voter))
    assert off.json()["message"] == "Vote removed"

    missing = client.post(
        "/api/comments/99999/vote",
        json={"voteType": "upvote"},
        headers=auth_headers(voter),
    )
    assert missing.status_code == status.HTTP_404_NOT_FOUND
