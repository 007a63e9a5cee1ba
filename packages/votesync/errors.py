from typing import Optional


class VoteSyncError(Exception):
    """Base class for every failure raised by votesync."""


class SchemaMismatch(VoteSyncError):
    """A call against one contract schema failed; the caller falls back."""


class AdapterFailure(VoteSyncError):
    """Neither schema could describe an election."""

    def __init__(self, election_id: int, message: str):
        super().__init__(f"election {election_id}: {message}")
        self.election_id = election_id


class EligibilityCheckFailure(VoteSyncError):
    """The whitelist accessor failed. Treated as ineligible."""


class EstimationFailure(VoteSyncError):
    """Gas estimation failed. Recovered by sending without a gas limit."""


class SubmissionFailure(VoteSyncError):
    """The final send failed; the message is the node's diagnostic.

    `tx_hash` is set once the transaction left the client, so a caller can
    look it up instead of sending it again.
    """

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class ConnectionFailure(VoteSyncError):
    """No node or wallet reachable. Carries `tx_hash` if a send got out first."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class ActionRejected(VoteSyncError):
    """A guard refused the action before anything was sent."""


class VoteStateUnavailable(VoteSyncError):
    """Neither vote accessor answered for an account."""


class UnknownElection(VoteSyncError, LookupError):
    """No election with that id in the current snapshot."""
