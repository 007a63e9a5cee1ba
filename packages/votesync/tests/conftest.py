import pytest

from votesync.client import VotingClient
from votesync.errors import SchemaMismatch
from votesync.gateway import PreparedCall
from votesync.session import Session

ACCOUNT = "0x" + "1" * 40
OWNER = "0x" + "a" * 40
NOW = 1_700_000_000

_MISSING = object()


def revert(reason="execution reverted"):
    return ValueError(reason)


def current_meta(title="Election", owner=OWNER, start=0, end=0, deleted=False, whitelist=False, count=0):
    """getElectionMeta result with field names, as a named ABI decode gives it."""
    return {
        "title": title,
        "owner": owner,
        "startTime": start,
        "endTime": end,
        "isDeleted": deleted,
        "useWhitelist": whitelist,
        "candidatesCount": count,
    }


def legacy_meta(election_id, title="Election", owner=OWNER, is_open=True, count=0):
    """elections(id) result as a bare tuple."""
    return (election_id, title, owner, is_open, count)


class FakeGateway:
    """Scripted stand-in for ContractGateway.

    Reads answer from the tables below; a missing key behaves like a
    reverted call, an exception value is raised as is.
    """

    def __init__(self):
        self.count = 0
        self.meta = {}
        self.legacy = {}
        self.candidates = {}
        self.votes = {}
        self.voted = {}
        self.eligible = {}
        # (fn_name, n_args) or fn_name -> gas or exception
        self.estimates = {}
        self.send_errors = {}
        self.receipt_status = 1
        self.receipt_error = None
        # (fn_name, n_args) pairs the contract ABI knows; None means all
        self.abi = None
        # (read name, key) -> asyncio.Event the read waits on
        self.gates = {}
        self.reads = []
        self.estimated = []
        self.sent = []

    async def _answer(self, name, table, key):
        self.reads.append((name, key))
        gate = self.gates.get((name, key))
        if gate is not None:
            await gate.wait()
        value = table.get(key, _MISSING)
        if value is _MISSING:
            raise revert()
        if isinstance(value, BaseException):
            raise value
        return value

    def add_election(self, election_id, meta=None, legacy=None, votes=()):
        if meta is not None:
            self.meta[election_id] = meta
        if legacy is not None:
            self.legacy[election_id] = legacy
        for cid, count in enumerate(votes, start=1):
            self.candidates[(election_id, cid)] = (cid, f"Candidate {cid}", count)
        self.count = max(self.count, election_id)

    async def elections_count(self):
        self.reads.append(("electionsCount", None))
        if isinstance(self.count, BaseException):
            raise self.count
        return self.count

    async def get_election_meta(self, election_id):
        return await self._answer("getElectionMeta", self.meta, election_id)

    async def legacy_election(self, election_id):
        return await self._answer("elections", self.legacy, election_id)

    async def candidate(self, election_id, candidate_id):
        return await self._answer("candidates", self.candidates, (election_id, candidate_id))

    async def vote_of(self, election_id, account):
        return await self._answer("voteOf", self.votes, (election_id, account))

    async def has_voted(self, election_id, account):
        return await self._answer("hasVoted", self.voted, (election_id, account))

    async def is_eligible(self, election_id, account):
        return await self._answer("isEligible", self.eligible, (election_id, account))

    def prepare(self, fn_name, *args):
        if self.abi is not None and (fn_name, len(args)) not in self.abi:
            raise SchemaMismatch(f"{fn_name}{args!r} not in contract ABI")
        return PreparedCall(fn_name, tuple(args))

    async def estimate_gas(self, call, account):
        self.estimated.append((call.fn_name, call.args))
        value = self.estimates.get((call.fn_name, len(call.args)), self.estimates.get(call.fn_name, 50_000))
        if isinstance(value, BaseException):
            raise value
        return value

    async def send(self, call, account, gas=None):
        self.sent.append((call.fn_name, call.args, gas))
        error = self.send_errors.get(call.fn_name)
        if isinstance(error, list):
            error = error.pop(0) if error else None
        if error is not None:
            raise error
        return "0x" + format(len(self.sent), "064x")

    async def wait_for_receipt(self, tx_hash, timeout):
        if self.receipt_error is not None:
            raise self.receipt_error
        return {"status": self.receipt_status, "blockNumber": 100 + len(self.sent), "gasUsed": 42_000}


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def session():
    return Session(account=ACCOUNT, chain_id=11155111, contract_address="0x" + "c" * 40)


@pytest.fixture
def make_client(gateway, session):
    def make(now=NOW):
        return VotingClient(gateway, session, clock=lambda: now)
    return make
