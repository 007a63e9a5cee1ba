import logging
import re
from typing import Callable, Iterable, Optional, Union

from web3 import Web3

from .errors import ActionRejected, ConnectionFailure, SchemaMismatch, UnknownElection
from .resolver import VoteStateResolver
from .schemas import BatchItemResult, Election, ElectionStatus, TxResult, VoteState
from .session import Session
from .status import (
    candidate_mutation_block_reason,
    election_status,
    now_ts,
    voting_block_reason,
)
from .submitter import TransactionSubmitter
from .sync import Registry, RegistrySynchronizer

logger = logging.getLogger(__name__)

DEFAULT_AUTOFILL_NAMES = (
    "Elden Ring",
    "Dragon's Dogma 2",
    "Black Myth: Wukong",
    "Final Fantasy VII",
    "Helldivers 2",
)


def parse_voter_list(raw: Union[str, Iterable[str]]) -> list[str]:
    """Split on commas and whitespace, drop blanks and duplicates, keep order."""
    if isinstance(raw, str):
        parts = re.split(r"[\s,]+", raw)
    else:
        parts = [str(p) for p in raw]
    return list(dict.fromkeys(p.strip() for p in parts if p.strip()))


class VotingClient:
    """Everything a front end needs: the registry, vote state, and the writes.

    Every write refreshes the registry once it is mined, so callers only
    ever see chain state.
    """

    def __init__(
        self,
        gateway,
        session: Session,
        registry: Optional[Registry] = None,
        clock: Callable[[], int] = now_ts,
        receipt_timeout: float = 120,
    ):
        self.gateway = gateway
        self.session = session
        self.registry = registry or Registry()
        self.clock = clock
        self.synchronizer = RegistrySynchronizer(gateway, self.registry)
        self.resolver = VoteStateResolver(gateway)
        self.submitter = TransactionSubmitter(gateway, receipt_timeout)

    # --- reads ---

    @property
    def elections(self) -> tuple[Election, ...]:
        return self.registry.elections

    @property
    def selected(self) -> Optional[Election]:
        return self.registry.selected

    async def refresh(self) -> tuple[Election, ...]:
        return await self.synchronizer.refresh()

    def election(self, election_id: int) -> Election:
        election = self.registry.get(election_id)
        if election is None:
            raise UnknownElection(f"election {election_id} not found")
        return election

    def select(self, election_id: int) -> Election:
        election = self.election(election_id)
        self.registry.select(election_id)
        return election

    def status(self, election_id: int) -> ElectionStatus:
        return election_status(self.election(election_id), self.clock())

    async def vote_state(self, election_id: Optional[int] = None) -> VoteState:
        if election_id is None:
            election = self.selected
            if election is None:
                raise UnknownElection("no election selected")
        else:
            election = self.select(election_id)
        return await self.resolver.resolve(election, self.session.account)

    # --- writes ---

    async def _refresh_after_write(self) -> None:
        try:
            await self.refresh()
        except ConnectionFailure as exc:
            # the transaction is already mined; only the snapshot is stale
            logger.warning(f"refresh after write failed, registry is stale: {exc}")

    async def _submit(self, fn_name: str, *args) -> TxResult:
        call = self.gateway.prepare(fn_name, *args)
        tx = await self.submitter.submit(call, self.session.account)
        await self._refresh_after_write()
        return tx

    def _writable(self, election_id: int) -> Election:
        election = self.election(election_id)
        reason = candidate_mutation_block_reason(election, self.clock())
        if reason:
            raise ActionRejected(reason)
        return election

    async def create_election(self, title: str, duration_seconds: int, use_whitelist: bool = False) -> TxResult:
        """Create an election, falling back to the legacy signature when only it estimates.

        The legacy createElection(title) has no window and no whitelist, so
        it is only considered for elections that do not ask for one.
        """
        title = (title or "").strip()
        if not title:
            raise ActionRejected("title must not be empty")
        if duration_seconds <= 0:
            raise ActionRejected("duration must be positive")
        account = self.session.account

        try:
            call = self.gateway.prepare("createElection", title, duration_seconds, use_whitelist)
            gas = await self.submitter.estimate(call, account)
        except SchemaMismatch:
            if use_whitelist:
                raise ActionRejected("contract does not support whitelisted elections")
            call, gas = None, None

        if gas is None and not use_whitelist:
            try:
                legacy = self.gateway.prepare("createElection", title)
            except SchemaMismatch:
                legacy = None
            legacy_gas = await self.submitter.estimate(legacy, account) if legacy else None
            if legacy_gas is not None or call is None:
                logger.info("current createElection signature unavailable, using legacy createElection(title)")
                call, gas = legacy, legacy_gas

        if call is None:
            raise ActionRejected("contract ABI has no createElection")
        tx = await self.submitter.send(call, account, gas)
        await self._refresh_after_write()
        return tx

    async def add_candidate(self, election_id: int, name: str) -> TxResult:
        self._writable(election_id)
        name = (name or "").strip()
        if not name:
            raise ActionRejected("candidate name must not be empty")
        return await self._submit("addCandidate", election_id, name)

    async def auto_fill(
        self,
        election_id: int,
        names: Optional[Iterable[str]] = None,
        stop_on_failure: bool = True,
    ) -> list[BatchItemResult]:
        self._writable(election_id)
        names = [n.strip() for n in (names or DEFAULT_AUTOFILL_NAMES) if n and n.strip()]
        if not names:
            raise ActionRejected("no candidate names given")
        calls = [self.gateway.prepare("addCandidate", election_id, n) for n in names]
        results = await self.submitter.submit_batch(calls, self.session.account, stop_on_failure=stop_on_failure)
        if any(r.status == "submitted" for r in results):
            await self._refresh_after_write()
        return results

    async def cast_vote(self, election_id: int, candidate_id: int) -> TxResult:
        election = self.election(election_id)
        if not 1 <= candidate_id <= election.candidates_count:
            raise ActionRejected(f"election {election_id} has no candidate {candidate_id}")
        state = await self.vote_state(election_id)
        reason = voting_block_reason(election, state, self.clock())
        if reason:
            raise ActionRejected(reason)
        return await self._submit("vote", election_id, candidate_id)

    async def revoke_vote(self, election_id: int) -> TxResult:
        self._writable(election_id)
        state = await self.vote_state(election_id)
        if state.vote.mode == "legacy":
            raise ActionRejected("legacy contracts cannot revoke a vote")
        if not state.vote.has_voted:
            raise ActionRejected("no vote to revoke")
        return await self._submit("revokeVote", election_id)

    async def register_voters(self, election_id: int, raw: Union[str, Iterable[str]]) -> TxResult:
        election = self.election(election_id)
        if election.is_deleted:
            raise ActionRejected(f"election {election_id} is deleted")
        if not election.use_whitelist:
            raise ActionRejected(f"election {election_id} does not use a whitelist")
        try:
            voters = [Web3.to_checksum_address(v) for v in parse_voter_list(raw)]
        except ValueError as exc:
            raise ActionRejected(f"invalid address: {exc}") from exc
        if not voters:
            raise ActionRejected("no voter addresses given")
        return await self._submit("registerVoters", election_id, voters)
