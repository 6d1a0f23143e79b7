"""
Suggestion vote bookkeeping for Hearth
"""

import logging
from typing import Dict, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger('core.suggestion_tally')

class VoteDirection(Enum):
    UP = "upvote"
    DOWN = "downvote"

class VoteAction(Enum):
    CAST = "cast"
    REMOVED = "removed"

@dataclass(frozen=True)
class VoteResult:
    action: VoteAction
    direction: VoteDirection

    @property
    def removed(self) -> bool:
        return self.action == VoteAction.REMOVED

class SuggestionTally:
    """
    Per-suggestion vote table.

    Votes are indexed by suggestion id so counting one suggestion never
    scans the votes of the others. A voter holds at most one vote per
    suggestion; repeating the same direction withdraws it.
    """

    def __init__(self):
        self._votes: Dict[int, Dict[int, VoteDirection]] = {}
        logger.info("SuggestionTally initialized")

    def cast_vote(self, suggestion_id: int, voter_id: int, direction: VoteDirection) -> VoteResult:
        votes = self._votes.setdefault(suggestion_id, {})

        if votes.get(voter_id) == direction:
            del votes[voter_id]
            return VoteResult(VoteAction.REMOVED, direction)

        votes[voter_id] = direction
        return VoteResult(VoteAction.CAST, direction)

    def tally(self, suggestion_id: int) -> Tuple[int, int]:
        """Return (upvotes, downvotes) for a suggestion"""
        votes = self._votes.get(suggestion_id, {})
        upvotes = sum(1 for v in votes.values() if v == VoteDirection.UP)
        return upvotes, len(votes) - upvotes

    def vote_of(self, suggestion_id: int, voter_id: int) -> Optional[VoteDirection]:
        return self._votes.get(suggestion_id, {}).get(voter_id)

    def retire(self, suggestion_id: int) -> int:
        """Drop all votes for a suggestion, returning how many were dropped"""
        votes = self._votes.pop(suggestion_id, None)
        dropped = len(votes) if votes else 0
        if votes is not None:
            logger.debug(f"Retired suggestion {suggestion_id} ({dropped} votes)")
        return dropped

    def suggestion_count(self) -> int:
        return len(self._votes)
