import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.middleware import ExtraDataToPOAMiddleware

from .abi import load_abi
from .config import Settings
from .errors import ConnectionFailure
from .gateway import ContractGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Who is acting, on which chain, against which contract."""

    account: str
    chain_id: int
    contract_address: str


def short_address(addr: Optional[str]) -> str:
    if not addr:
        return ""
    s = str(addr)
    if len(s) <= 12:
        return s
    return f"{s[:6]}...{s[-4:]}"


async def connect_w3(settings: Settings) -> AsyncWeb3:
    """Connect to the EVM provider, retrying up to settings.max_retries times."""
    w3 = AsyncWeb3(AsyncHTTPProvider(settings.evm_rpc))
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    retries = 0
    while not await w3.is_connected():
        retries += 1
        if retries >= settings.max_retries:
            raise ConnectionFailure(f"EVM RPC not reachable at {settings.evm_rpc} after {retries} attempts")
        logger.info(f"waiting for EVM RPC at {settings.evm_rpc}")
        await asyncio.sleep(3)
    return w3


async def resolve_account(w3: AsyncWeb3, settings: Settings) -> str:
    if settings.account_key:
        return Account.from_key(settings.account_key).address
    if settings.account:
        return settings.account
    accounts = await w3.eth.accounts
    if not accounts:
        raise ConnectionFailure("no account available: set ACCOUNT_KEY or ACCOUNT")
    return Web3.to_checksum_address(accounts[0])


async def connect(settings: Settings) -> tuple[ContractGateway, Session]:
    """Build the gateway and session the client runs on."""
    w3 = await connect_w3(settings)

    chain_id = await w3.eth.chain_id
    if chain_id != settings.chain_id:
        raise ConnectionFailure(f"wrong network: node is on chain {chain_id}, expected {settings.chain_id}")

    code = await w3.eth.get_code(settings.contract_address)
    if not code:
        logger.warning(f"no contract code at {settings.contract_address}; calls will fail")

    account = await resolve_account(w3, settings)
    session = Session(
        account=account,
        chain_id=chain_id,
        contract_address=settings.contract_address,
    )
    contract = w3.eth.contract(address=settings.contract_address, abi=load_abi(settings.abi_path))
    logger.info(f"connected as {short_address(account)} on chain {chain_id}")
    return ContractGateway(contract, private_key=settings.account_key, chain_id=chain_id), session
