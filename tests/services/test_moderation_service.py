# mypy: ignore-errors
import pytest

from foundersocials.services.moderation import FALLBACK_PROMPT, CommentModerator
from tests.conftest import FakeOpenAI


@pytest.fixture
def openai_client():
    return FakeOpenAI()


@pytest.fixture
def comment_moderator(openai_client):
    return CommentModerator(client=openai_client, model="test-model")


def test_unconfigured_moderator_is_disabled(mocker):
    mocker.patch("foundersocials.services.moderation.settings.openai_api_key", None)
    assert CommentModerator().enabled is False


@pytest.mark.asyncio
async def test_moderate_comment_uses_model_verdict(comment_moderator, openai_client):
    openai_client.queue({"isApproved": True, "aiPrompt": "What did churn look like?"})

    result = await comment_moderator.moderate_comment("We grew 20% MoM", "Growth tactics")

    assert result.is_approved is True
    assert result.ai_prompt == "What did churn look like?"
    [call] = openai_client.completions.calls
    assert call["model"] == "test-model"
    assert call["response_format"] == {"type": "json_object"}
    assert "Growth tactics" in call["messages"][1]["content"]


@pytest.mark.asyncio
async def test_moderate_comment_rejection_keeps_reason(comment_moderator, openai_client):
    openai_client.queue({"isApproved": False, "reason": "Spam"})

    result = await comment_moderator.moderate_comment("buy now", "Growth tactics")

    assert result.is_approved is False
    assert result.reason == "Spam"
    assert result.ai_prompt is None


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [RuntimeError("timeout"), "not json", "[1, 2]"])
async def test_moderate_comment_falls_back_to_approval(comment_moderator, openai_client, reply):
    openai_client.queue(reply)

    result = await comment_moderator.moderate_comment("hello", "title")

    assert result.is_approved is True
    assert result.ai_prompt == FALLBACK_PROMPT


@pytest.mark.asyncio
async def test_process_comment_response(comment_moderator, openai_client):
    openai_client.queue({"finalComment": "Merged text", "isApproved": True})

    result = await comment_moderator.process_comment_response("orig", "why?", "because")

    assert result.final_comment == "Merged text"
    assert result.is_approved is True


@pytest.mark.asyncio
async def test_process_comment_response_fallback_merges_verbatim(comment_moderator, openai_client):
    openai_client.queue({"isApproved": False})

    result = await comment_moderator.process_comment_response("orig", "why?", "because")

    assert result.final_comment == "orig\n\nResponse: because"
    assert result.is_approved is True


@pytest.mark.asyncio
async def test_enhance_comment_keeps_original_on_blank_output(comment_moderator, openai_client):
    openai_client.queue({"enhancedContent": "   ", "isApproved": True})

    result = await comment_moderator.enhance_comment("original words", "title")

    assert result.enhanced_content == "original words"


@pytest.mark.asyncio
async def test_enhance_comment_without_model(comment_moderator):
    result = await comment_moderator.enhance_comment("original words", "title")

    assert result.enhanced_content == "original words"
    assert result.is_approved is True


@pytest.mark.asyncio
async def test_process_flows_are_capped_and_normalized(comment_moderator, openai_client):
    flows = [
        {"title": f"Flow {i}", "description": "d", "steps": [{"name": "s", "description": "x"}]}
        for i in range(5)
    ]
    flows[0] = {"steps": [{"name": "Kickoff"}, "garbage"]}
    openai_client.queue({"isApproved": True, "processFlows": flows})

    result = await comment_moderator.generate_process_flows("plan", "title")

    assert result.is_approved is True
    assert len(result.process_flows) == 3
    assert result.process_flows[0] == {
        "title": "Untitled process",
        "description": "",
        "steps": [{"name": "Kickoff", "description": ""}],
    }
    assert result.process_flows[2]["title"] == "Flow 2"


@pytest.mark.asyncio
async def test_process_flows_fallback_is_empty(comment_moderator):
    result = await comment_moderator.generate_process_flows("plan", "title")

    assert result.is_approved is True
    assert result.process_flows == []
