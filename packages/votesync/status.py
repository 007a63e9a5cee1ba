import time
from typing import Optional

from .schemas import CandidateShare, Election, ElectionStatus, VoteState


def now_ts() -> int:
    return int(time.time())


def is_ended(election: Election, now: int) -> bool:
    """Closed by a legacy contract or past end_time. Ignores is_deleted."""
    if election.is_open is False:
        return True
    return election.end_time > 0 and now >= election.end_time


def election_status(election: Election, now: int) -> ElectionStatus:
    if election.is_deleted:
        return ElectionStatus.DELETED
    if is_ended(election, now):
        return ElectionStatus.ENDED
    if election.start_time > 0 and now < election.start_time:
        return ElectionStatus.NOT_STARTED
    return ElectionStatus.ACTIVE


def candidate_mutation_block_reason(election: Election, now: int) -> Optional[str]:
    if election.is_deleted:
        return f"election {election.id} is deleted"
    if is_ended(election, now):
        return f"election {election.id} has ended"
    return None


def voting_block_reason(election: Election, state: VoteState, now: int) -> Optional[str]:
    """Why `state.account` may not vote right now, or None."""
    status = election_status(election, now)
    if status is ElectionStatus.DELETED:
        return f"election {election.id} is deleted"
    if status is ElectionStatus.ENDED:
        return f"election {election.id} has ended"
    if status is ElectionStatus.NOT_STARTED:
        return f"election {election.id} has not started"
    # legacy contracts cannot change a vote, so one cast vote is final
    if state.vote.mode == "legacy" and state.vote.has_voted:
        return "account has already voted"
    if election.use_whitelist and not state.eligible:
        return "account is not on the whitelist"
    return None


def vote_shares(election: Election) -> list[CandidateShare]:
    """Per-candidate share of the vote, whole percent rounded half up."""
    total = sum(c.vote_count for c in election.candidates)
    return [
        CandidateShare(
            candidate_id=c.id,
            name=c.name,
            vote_count=c.vote_count,
            percent=0 if total == 0 else (200 * c.vote_count + total) // (2 * total),
        )
        for c in election.candidates
    ]
