import logging
from typing import Iterable, Optional

from .errors import ConnectionFailure, EstimationFailure, SubmissionFailure
from .gateway import PreparedCall
from .schemas import BatchItemResult, TxResult

logger = logging.getLogger(__name__)


def diagnostic(exc: BaseException) -> str:
    """The exception's message, or its repr when the message is empty (timeouts)."""
    return str(exc) or repr(exc)


class TransactionSubmitter:
    """Estimate-then-send for every state-changing call.

    A successful estimate is sent as an explicit gas limit so the wallet
    cannot substitute an inflated one. A failed estimate does not block the
    call: it is sent without a limit and the node estimates instead. Only
    the send's own failure reaches the caller.

    Once the node has accepted a transaction its hash travels with every
    later failure (`tx_hash` on the raised error), so a lost receipt never
    hides a transaction that may still be mined.
    """

    def __init__(self, gateway, receipt_timeout: float = 120):
        self.gateway = gateway
        self.receipt_timeout = receipt_timeout

    async def estimate(self, call: PreparedCall, account: str) -> Optional[int]:
        try:
            return await self.gateway.estimate_gas(call, account)
        except ConnectionFailure:
            raise
        except Exception as exc:
            logger.warning(f"{EstimationFailure(f'{call.describe()}: {diagnostic(exc)}')}; sending without gas limit")
            return None

    async def send(self, call: PreparedCall, account: str, gas: Optional[int]) -> TxResult:
        try:
            tx_hash = await self.gateway.send(call, account, gas=gas)
        except ConnectionFailure:
            raise
        except Exception as exc:
            raise SubmissionFailure(diagnostic(exc)) from exc

        try:
            receipt = await self.gateway.wait_for_receipt(tx_hash, self.receipt_timeout)
        except ConnectionFailure as exc:
            raise ConnectionFailure(f"transaction {tx_hash} sent, receipt unknown: {exc}", tx_hash=tx_hash) from exc
        except Exception as exc:
            raise SubmissionFailure(
                f"transaction {tx_hash} sent, receipt unknown: {diagnostic(exc)}", tx_hash=tx_hash
            ) from exc

        if receipt.get("status") != 1:
            raise SubmissionFailure(f"transaction {tx_hash} reverted on-chain", tx_hash=tx_hash)
        logger.info(f"{call.describe()} mined in block {receipt.get('blockNumber')}: {tx_hash}")
        return TxResult(
            tx_hash=tx_hash,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
            gas_limit=gas,
        )

    async def submit(self, call: PreparedCall, account: str) -> TxResult:
        gas = await self.estimate(call, account)
        return await self.send(call, account, gas)

    async def submit_batch(
        self,
        calls: Iterable[PreparedCall],
        account: str,
        stop_on_failure: bool = True,
    ) -> list[BatchItemResult]:
        """One transaction per call, in order.

        With `stop_on_failure` everything after the first failure is reported
        as skipped and never sent. A lost connection always stops the batch:
        the item in flight is reported failed (with its hash if it was sent)
        and the rest skipped, so the committed prefix is never lost.
        """
        results = []
        failed = False
        disconnected = False
        for call in calls:
            item = call.describe()
            if disconnected or (failed and stop_on_failure):
                results.append(BatchItemResult(item=item, status="skipped"))
                continue
            try:
                tx = await self.submit(call, account)
            except (SubmissionFailure, ConnectionFailure) as exc:
                logger.warning(f"batch item {item} failed: {exc}")
                sent = TxResult(tx_hash=exc.tx_hash) if exc.tx_hash else None
                results.append(BatchItemResult(item=item, status="failed", tx=sent, error=str(exc)))
                failed = True
                disconnected = isinstance(exc, ConnectionFailure)
                continue
            results.append(BatchItemResult(item=item, status="submitted", tx=tx))
        return results
