# mypy: ignore-errors
# tests/v1/test_ai_assist.py
"""Tests for plan-gated AI enhancement and process-flow generation."""

import pytest
from fastapi import status

from foundersocials.models import Comment
from foundersocials.models.comment import STATUS_AI_PROCESSED, STATUS_APPROVED
from tests.conftest import auth_headers

pytestmark = pytest.mark.usefixtures("moderator")

FLOWS = {
    "isApproved": True,
    "processFlows": [
        {
            "title": "Customer onboarding",
            "description": "Get new accounts to first value",
            "steps": [
                {"name": "Kickoff call", "description": "30 minutes"},
                {"name": "Import data", "description": "CSV or API"},
                {"name": "Review", "description": "Week-one check-in"},
            ],
        },
        {"title": "Second", "steps": []},
        {"title": "Third", "steps": []},
        {"title": "Fourth is one too many", "steps": []},
    ],
}


@pytest.fixture()
def comment(db_session, test_post, test_user):
    comment = Comment(
        post_id=test_post.id,
        author_id=test_user.id,
        content="We run onboarding calls, import data, then review after a week.",
        status=STATUS_APPROVED,
    )
    db_session.add(comment)
    db_session.flush()
    return comment


def _enhance(client, post_id, headers, content="we grew fast cuz ads"):
    return client.post(
        "/api/comments/ai-enhance",
        json={"content": content, "postId": post_id},
        headers=headers,
    )


def test_enhance_forbidden_on_free_plan(client, test_post, auth_token) -> None:
    response = _enhance(client, test_post.id, auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_enhance_consumes_standard_prompt(client, db_session, test_post, standard_user, fake_openai) -> None:
    fake_openai.queue({"enhancedContent": "We grew quickly through paid ads.", "isApproved": True})

    response = _enhance(client, test_post.id, auth_headers(standard_user))
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"enhancedContent": "We grew quickly through paid ads."}

    db_session.refresh(standard_user)
    assert standard_user.remaining_prompts == 2


def test_enhance_refused_when_quota_exhausted(client, db_session, test_post, standard_user) -> None:
    standard_user.remaining_prompts = 0
    db_session.flush()

    response = _enhance(client, test_post.id, auth_headers(standard_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert "used all your AI prompts" in response.json()["detail"]

    db_session.refresh(standard_user)
    assert standard_user.remaining_prompts == 0


def test_quota_never_goes_negative(client, db_session, test_post, standard_user) -> None:
    headers = auth_headers(standard_user)
    results = [_enhance(client, test_post.id, headers).status_code for _ in range(5)]

    assert results == [200, 200, 200, 403, 403]
    db_session.refresh(standard_user)
    assert standard_user.remaining_prompts == 0


def test_founder_is_never_limited(client, db_session, test_post, founder_user) -> None:
    headers = auth_headers(founder_user)
    for _ in range(4):
        assert _enhance(client, test_post.id, headers).status_code == status.HTTP_200_OK

    db_session.refresh(founder_user)
    assert founder_user.remaining_prompts == 0


def test_enhance_rejected_content_keeps_quota(client, db_session, test_post, standard_user, fake_openai) -> None:
    fake_openai.queue({"enhancedContent": "", "isApproved": False})

    response = _enhance(client, test_post.id, auth_headers(standard_user))
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    db_session.refresh(standard_user)
    assert standard_user.remaining_prompts == 3


def test_enhance_missing_post(client, standard_user) -> None:
    response = _enhance(client, 99999, auth_headers(standard_user))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_enhance_fallback_returns_original(client, test_post, standard_user) -> None:
    response = _enhance(client, test_post.id, auth_headers(standard_user), content="keep me")
    assert response.json() == {"enhancedContent": "keep me"}


def test_process_flows(client, db_session, comment, standard_user, fake_openai) -> None:
    fake_openai.queue(FLOWS)

    response = client.post(
        f"/api/comments/{comment.id}/process-flows",
        headers=auth_headers(standard_user),
    )
    assert response.status_code == status.HTTP_200_OK
    flows = response.json()["processFlows"]
    assert len(flows) == 3
    assert flows[0]["title"] == "Customer onboarding"
    assert [s["name"] for s in flows[0]["steps"]] == ["Kickoff call", "Import data", "Review"]

    db_session.refresh(comment)
    assert comment.status == STATUS_AI_PROCESSED
    assert comment.process_flows_generated is True
    db_session.refresh(standard_user)
    assert standard_user.remaining_prompts == 2


def test_process_flows_forbidden_on_free_plan(client, comment, auth_token) -> None:
    response = client.post(f"/api/comments/{comment.id}/process-flows", headers=auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_process_flows_rejected(client, db_session, comment, founder_user, fake_openai) -> None:
    fake_openai.queue({"isApproved": False, "processFlows": []})

    response = client.post(
        f"/api/comments/{comment.id}/process-flows",
        headers=auth_headers(founder_user),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    db_session.refresh(comment)
    assert comment.status == STATUS_APPROVED


def test_process_flows_missing_comment(client, founder_user) -> None:
    response = client.post("/api/comments/99999/process-flows", headers=auth_headers(founder_user))
    assert response.status_code == status.HTTP_404_NOT_FOUND
