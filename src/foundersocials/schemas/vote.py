"""Vote request and result schemas."""

from typing import Literal

from .common import CamelModel


class VoteRequest(CamelModel):
    """Cast, flip or toggle off a vote."""

    vote_type: Literal["upvote", "downvote"]


class VoteResponse(CamelModel):
    message: str
    upvotes: int
    downvotes: int
