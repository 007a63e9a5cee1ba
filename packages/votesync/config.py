import os
from typing import Optional

from pydantic import BaseModel
from web3 import Web3


class Settings(BaseModel):
    evm_rpc: str = "http://127.0.0.1:8545"
    chain_id: int = 11155111
    contract_address: str
    abi_path: Optional[str] = None
    account_key: Optional[str] = None
    account: Optional[str] = None
    max_retries: int = 3
    receipt_timeout: float = 120
    log_level: str = "INFO"
    sentry_dsn: Optional[str] = None


def load_settings() -> Settings:
    """Read settings from the environment. VOTING_CONTRACT is required."""
    address = os.getenv("VOTING_CONTRACT")
    if not address:
        raise RuntimeError("VOTING_CONTRACT must be set")
    account = os.getenv("ACCOUNT") or None
    return Settings(
        evm_rpc=os.getenv("EVM_RPC", "http://127.0.0.1:8545"),
        chain_id=int(os.getenv("CHAIN_ID", "11155111")),
        contract_address=Web3.to_checksum_address(address),
        abi_path=os.getenv("VOTING_ABI_PATH") or None,
        account_key=os.getenv("ACCOUNT_KEY") or None,
        account=Web3.to_checksum_address(account) if account else None,
        max_retries=int(os.getenv("EVM_MAX_RETRIES", "3")),
        receipt_timeout=float(os.getenv("RECEIPT_TIMEOUT", "120")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        sentry_dsn=os.getenv("SENTRY_DSN") or None,
    )
