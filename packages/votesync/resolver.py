import logging
from typing import Optional

from .errors import ConnectionFailure, EligibilityCheckFailure, SchemaMismatch, VoteStateUnavailable
from .schemas import CurrentVote, Election, LegacyVote, VoteState

logger = logging.getLogger(__name__)


class VoteStateResolver:
    """Resolves an account's vote and eligibility for the selected election.

    The schema mode ("current" or "legacy") is remembered for the election
    last resolved and forgotten as soon as a different election is asked
    for, because contracts of both generations can serve side by side.
    Lookups may overlap (one resolver serves every HTTP request), so a
    lookup only records its mode if its election is still the selected one
    when it finishes.
    """

    def __init__(self, gateway):
        self.gateway = gateway
        self.election_id: Optional[int] = None
        self.mode: Optional[str] = None

    def _select(self, election_id: int) -> None:
        if election_id != self.election_id:
            self.election_id = election_id
            self.mode = None

    def _cached_mode(self, election_id: int) -> Optional[str]:
        return self.mode if election_id == self.election_id else None

    def _remember(self, election_id: int, mode: str) -> None:
        if election_id == self.election_id:
            self.mode = mode

    async def _resolve_vote(self, election_id: int, account: str):
        if self._cached_mode(election_id) != "legacy":
            try:
                vote = CurrentVote(candidate_id=await self.gateway.vote_of(election_id, account))
                self._remember(election_id, "current")
                return vote
            except ConnectionFailure:
                raise
            except Exception as exc:
                logger.debug(f"election {election_id}: {SchemaMismatch(f'voteOf: {exc}')}")
        try:
            vote = LegacyVote(has_voted=await self.gateway.has_voted(election_id, account))
        except ConnectionFailure:
            raise
        except Exception as exc:
            raise VoteStateUnavailable(f"election {election_id}: no vote accessor answered: {exc}") from exc
        self._remember(election_id, "legacy")
        return vote

    async def is_eligible(self, election: Election, account: str) -> bool:
        if not election.use_whitelist:
            return True
        try:
            return bool(await self.gateway.is_eligible(election.id, account))
        except ConnectionFailure:
            raise
        except Exception as exc:
            failure = EligibilityCheckFailure(f"election {election.id}, {account}: {exc}")
            logger.warning(f"{failure}; treating account as ineligible")
            return False

    async def resolve(self, election: Election, account: str) -> VoteState:
        self._select(election.id)
        vote = await self._resolve_vote(election.id, account)
        eligible = await self.is_eligible(election, account)
        return VoteState(election_id=election.id, account=account, vote=vote, eligible=eligible)
