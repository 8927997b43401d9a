"""AI-assisted comment moderation and enhancement.

Every call asks the chat model for a JSON object and never raises: when the
provider is unreachable, unconfigured or returns something unparsable the
caller gets a fallback that lets the comment through.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from openai import AsyncOpenAI

from foundersocials.core.settings import settings

logger = logging.getLogger(__name__)

FALLBACK_PROMPT = (
    "Could you elaborate more on your thoughts? (Note: AI moderation encountered an error)"
)
MAX_PROCESS_FLOWS = 3

_MODERATE_SYSTEM_PROMPT = (
    "You are an AI comment moderator for a social platform called FounderSocials. "
    "Your job is to analyze comments for appropriateness and generate thoughtful follow-up "
    "questions when needed. "
    "Respond with JSON in this format: { 'isApproved': boolean, 'aiPrompt': string, "
    "'reason': string }. "
    "If the comment is appropriate and constructive, set isApproved to true and include a "
    "thoughtful question in aiPrompt. "
    "If the comment is inappropriate (contains hate speech, personal attacks, spam, etc.), "
    "set isApproved to false and include the reason."
)

_RESPONSE_SYSTEM_PROMPT = (
    "You are an AI comment moderator for a social platform. "
    "You are reviewing a user's response to your follow-up question about their comment. "
    "Respond with JSON in this format: { 'finalComment': string, 'isApproved': boolean }. "
    "The finalComment should combine the original comment and the response if appropriate. "
    "Set isApproved to false only if the response is inappropriate."
)

_ENHANCE_SYSTEM_PROMPT = (
    "You are an AI assistant that helps enhance comments on a professional social network "
    "for founders. "
    "Your goal is to improve the content by making it more informative, adding relevant "
    "details, and ensuring it's constructive. "
    "Focus on helping founders communicate more effectively. "
    "Respond with JSON in this format: { 'enhancedContent': string, 'isApproved': boolean }. "
    "The enhancedContent should preserve the original intent but make it more valuable to "
    "readers. "
    "Set isApproved to false only if the original comment is inappropriate (contains hate "
    "speech, spam, etc.)."
)

_PROCESS_FLOWS_SYSTEM_PROMPT = (
    "You are an AI assistant that helps generate project process flows based on comments in "
    "a founder social network. "
    "Your goal is to identify potential processes, workflows or project plans from the "
    "user's comment. "
    "Generate 1-3 process flows depending on the complexity of the content. "
    "Respond with JSON in this format: { 'processFlows': [{'title': string, 'description': "
    "string, 'steps': [{'name': string, 'description': string}]}], 'isApproved': boolean }. "
    "Each process flow should have a clear title, brief description and 3-7 actionable steps. "
    "Set isApproved to false only if the comment is inappropriate or doesn't contain enough "
    "information to generate meaningful process flows."
)


class ModerationUnavailableError(RuntimeError):
    """Raised internally when no AI provider is configured."""


@dataclass(frozen=True)
class ModerationResult:
    """Verdict on a new comment."""

    is_approved: bool
    ai_prompt: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class ResponseResult:
    """Merged comment after the author answered the follow-up question."""

    final_comment: str
    is_approved: bool


@dataclass(frozen=True)
class EnhancementResult:
    enhanced_content: str
    is_approved: bool


@dataclass(frozen=True)
class ProcessFlowsResult:
    is_approved: bool
    process_flows: list[dict[str, Any]] = field(default_factory=list)


class CommentModerator:
    """Adapter around the OpenAI chat completions API."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        *,
        model: str | None = None,
    ) -> None:
        self.model = model or settings.openai_model
        if client is None and settings.openai_api_key:
            client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.openai_timeout_seconds,
            )
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def _complete_json(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        if self._client is None:
            raise ModerationUnavailableError("OPENAI_API_KEY is not configured")

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        if not content:
            raise ValueError("No response content from the moderation model")
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("Moderation model returned a non-object JSON payload")
        return data

    async def moderate_comment(self, content: str, post_title: str) -> ModerationResult:
        """Judge a new comment and suggest a follow-up question."""
        try:
            data = await self._complete_json(
                _MODERATE_SYSTEM_PROMPT,
                f"Post Title: {post_title}\nComment: {content}",
            )
            return ModerationResult(
                is_approved=bool(data.get("isApproved")),
                ai_prompt=data.get("aiPrompt") or None,
                reason=data.get("reason") or None,
            )
        except Exception as exc:
            logger.warning("AI moderation failed, approving comment: %s", exc)
            return ModerationResult(is_approved=True, ai_prompt=FALLBACK_PROMPT)

    async def process_comment_response(
        self,
        original_comment: str,
        ai_prompt: str,
        user_response: str,
    ) -> ResponseResult:
        """Merge the author's answer to ``ai_prompt`` into the comment."""
        try:
            data = await self._complete_json(
                _RESPONSE_SYSTEM_PROMPT,
                f"Original Comment: {original_comment}\n"
                f"AI Question: {ai_prompt}\n"
                f"User Response: {user_response}",
            )
            final_comment = data.get("finalComment")
            if not isinstance(final_comment, str) or not final_comment.strip():
                raise ValueError("finalComment missing from moderation response")
            return ResponseResult(
                final_comment=final_comment,
                is_approved=bool(data.get("isApproved")),
            )
        except Exception as exc:
            logger.warning("AI response processing failed, merging verbatim: %s", exc)
            return ResponseResult(
                final_comment=f"{original_comment}\n\nResponse: {user_response}",
                is_approved=True,
            )

    async def enhance_comment(self, content: str, post_title: str) -> EnhancementResult:
        try:
            data = await self._complete_json(
                _ENHANCE_SYSTEM_PROMPT,
                f"Post Title: {post_title}\nOriginal Comment: {content}",
            )
            enhanced = data.get("enhancedContent")
            if not isinstance(enhanced, str) or not enhanced.strip():
                enhanced = content
            return EnhancementResult(
                enhanced_content=enhanced,
                is_approved=bool(data.get("isApproved")),
            )
        except Exception as exc:
            logger.warning("AI comment enhancement failed, returning original: %s", exc)
            return EnhancementResult(enhanced_content=content, is_approved=True)

    async def generate_process_flows(self, content: str, post_title: str) -> ProcessFlowsResult:
        """Derive up to three step-by-step plans from a comment."""
        try:
            data = await self._complete_json(
                _PROCESS_FLOWS_SYSTEM_PROMPT,
                f"Post Title: {post_title}\nComment: {content}",
            )
            flows = data.get("processFlows") or []
            if not isinstance(flows, list):
                flows = []
            return ProcessFlowsResult(
                is_approved=bool(data.get("isApproved")),
                process_flows=[_normalize_flow(flow) for flow in flows[:MAX_PROCESS_FLOWS]
                               if isinstance(flow, dict)],
            )
        except Exception as exc:
            logger.warning("AI process flow generation failed: %s", exc)
            return ProcessFlowsResult(is_approved=True, process_flows=[])


def _normalize_flow(flow: dict[str, Any]) -> dict[str, Any]:
    steps = flow.get("steps") or []
    return {
        "title": str(flow.get("title") or "Untitled process"),
        "description": str(flow.get("description") or ""),
        "steps": [
            {"name": str(step.get("name") or ""), "description": str(step.get("description") or "")}
            for step in steps
            if isinstance(step, dict)
        ],
    }


class _ModeratorSingleton:
    """Singleton wrapper for CommentModerator."""

    _instance: CommentModerator | None = None

    @classmethod
    def get_instance(cls) -> CommentModerator:
        if cls._instance is None:
            cls._instance = CommentModerator()
        return cls._instance


def get_comment_moderator() -> CommentModerator:
    """Return a singleton moderator instance."""
    return _ModeratorSingleton.get_instance()
