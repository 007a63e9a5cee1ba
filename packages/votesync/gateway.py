from dataclasses import dataclass, field
from typing import Any, Optional

from aiohttp import ClientConnectionError
from eth_account import Account
from web3 import Web3
from web3.exceptions import Web3Exception

from .errors import ConnectionFailure, SchemaMismatch

_TRANSPORT_ERRORS = (ConnectionError, ClientConnectionError)


@dataclass(frozen=True)
class PreparedCall:
    """A state-changing contract call, ready to estimate and send."""

    fn_name: str
    args: tuple = ()
    function: Any = field(default=None, compare=False, repr=False)

    def describe(self) -> str:
        return f"{self.fn_name}({', '.join(repr(a) for a in self.args)})"


class ContractGateway:
    """The handful of VotingPlatform calls the client needs, over one AsyncContract."""

    def __init__(self, contract, private_key: Optional[str] = None, chain_id: Optional[int] = None):
        self.contract = contract
        self.w3 = contract.w3
        self._signer = Account.from_key(private_key) if private_key else None
        self.chain_id = chain_id

    async def _call(self, fn_name: str, *args):
        try:
            return await getattr(self.contract.functions, fn_name)(*args).call()
        except _TRANSPORT_ERRORS as exc:
            raise ConnectionFailure(f"{fn_name}: {exc}") from exc

    # --- reads ---

    async def elections_count(self) -> int:
        return int(await self._call("electionsCount"))

    async def get_election_meta(self, election_id: int):
        return await self._call("getElectionMeta", election_id)

    async def legacy_election(self, election_id: int):
        return await self._call("elections", election_id)

    async def candidate(self, election_id: int, candidate_id: int):
        return await self._call("candidates", election_id, candidate_id)

    async def vote_of(self, election_id: int, account: str) -> int:
        return int(await self._call("voteOf", election_id, account))

    async def has_voted(self, election_id: int, account: str) -> bool:
        return bool(await self._call("hasVoted", election_id, account))

    async def is_eligible(self, election_id: int, account: str) -> bool:
        return bool(await self._call("isEligible", election_id, account))

    # --- writes ---

    def prepare(self, fn_name: str, *args) -> PreparedCall:
        try:
            function = getattr(self.contract.functions, fn_name)(*args)
        except (AttributeError, TypeError, ValueError, Web3Exception) as exc:
            raise SchemaMismatch(f"{fn_name}{args!r} not in contract ABI: {exc}") from exc
        return PreparedCall(fn_name, tuple(args), function)

    async def estimate_gas(self, call: PreparedCall, account: str) -> int:
        try:
            return int(await call.function.estimate_gas({"from": account}))
        except _TRANSPORT_ERRORS as exc:
            raise ConnectionFailure(str(exc)) from exc

    async def send(self, call: PreparedCall, account: str, gas: Optional[int] = None) -> str:
        """Broadcast the call. Without `gas`, web3/the node estimates the limit."""
        tx_params = {"from": account}
        if gas is not None:
            tx_params["gas"] = gas
        try:
            if self._signer is None:
                tx_hash = await call.function.transact(tx_params)
            else:
                tx_params["nonce"] = await self.w3.eth.get_transaction_count(account)
                if self.chain_id is not None:
                    tx_params["chainId"] = self.chain_id
                tx = await call.function.build_transaction(tx_params)
                signed = self._signer.sign_transaction(tx)
                tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except _TRANSPORT_ERRORS as exc:
            raise ConnectionFailure(str(exc)) from exc
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: float):
        try:
            return await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except _TRANSPORT_ERRORS as exc:
            raise ConnectionFailure(str(exc)) from exc
