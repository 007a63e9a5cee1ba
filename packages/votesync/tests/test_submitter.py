import asyncio

import pytest

from votesync.errors import ConnectionFailure, SubmissionFailure
from votesync.submitter import TransactionSubmitter

from conftest import ACCOUNT, revert


def submit(gateway, call):
    return asyncio.run(TransactionSubmitter(gateway).submit(call, ACCOUNT))


def test_estimate_is_sent_as_gas_limit(gateway):
    gateway.estimates["vote"] = 61_234
    tx = submit(gateway, gateway.prepare("vote", 1, 2))
    assert gateway.sent == [("vote", (1, 2), 61_234)]
    assert tx.gas_limit == 61_234
    assert tx.tx_hash.startswith("0x")
    assert tx.gas_used == 42_000


def test_failed_estimate_sends_without_gas(gateway):
    gateway.estimates["vote"] = revert("gas required exceeds allowance")
    tx = submit(gateway, gateway.prepare("vote", 1, 2))
    assert gateway.sent == [("vote", (1, 2), None)]
    assert tx.gas_limit is None


def test_send_failure_surfaces_message_verbatim(gateway):
    gateway.estimates["vote"] = revert("estimate failed")
    gateway.send_errors["vote"] = revert("execution reverted: Already voted for this candidate")
    with pytest.raises(SubmissionFailure) as exc_info:
        submit(gateway, gateway.prepare("vote", 1, 2))
    assert str(exc_info.value) == "execution reverted: Already voted for this candidate"
    assert len(gateway.sent) == 1


def test_reverted_receipt_is_a_submission_failure(gateway):
    gateway.receipt_status = 0
    with pytest.raises(SubmissionFailure, match="reverted on-chain"):
        submit(gateway, gateway.prepare("revokeVote", 1))


def test_connection_failure_during_estimate_is_not_swallowed(gateway):
    gateway.estimates["vote"] = ConnectionFailure("node unreachable")
    with pytest.raises(ConnectionFailure):
        submit(gateway, gateway.prepare("vote", 1, 2))
    assert gateway.sent == []


def test_estimate_happens_before_send(gateway):
    submit(gateway, gateway.prepare("addCandidate", 1, "Elden Ring"))
    assert gateway.estimated == [("addCandidate", (1, "Elden Ring"))]
    assert gateway.sent == [("addCandidate", (1, "Elden Ring"), 50_000)]


def _batch(gateway, names, stop_on_failure):
    calls = [gateway.prepare("addCandidate", 1, n) for n in names]
    return asyncio.run(TransactionSubmitter(gateway).submit_batch(calls, ACCOUNT, stop_on_failure=stop_on_failure))


def test_batch_stops_after_first_failure(gateway):
    gateway.send_errors["addCandidate"] = [None, revert("Not owner")]
    results = _batch(gateway, ["A", "B", "C"], stop_on_failure=True)
    assert [r.status for r in results] == ["submitted", "failed", "skipped"]
    assert results[1].error == "Not owner"
    assert results[2].tx is None
    assert [args[1] for _, args, _ in gateway.sent] == ["A", "B"]


def test_batch_can_continue_past_failures(gateway):
    gateway.send_errors["addCandidate"] = [revert("boom"), None, None]
    results = _batch(gateway, ["A", "B", "C"], stop_on_failure=False)
    assert [r.status for r in results] == ["failed", "submitted", "submitted"]
    assert len(gateway.sent) == 3


def test_lost_connection_mid_batch_keeps_the_committed_prefix(gateway):
    gateway.send_errors["addCandidate"] = [None, ConnectionFailure("socket closed")]
    results = _batch(gateway, ["A", "B", "C"], stop_on_failure=False)
    assert [r.status for r in results] == ["submitted", "failed", "skipped"]
    assert results[0].tx.tx_hash.startswith("0x")
    assert results[1].error == "socket closed"
    assert results[1].tx is None
    assert [args[1] for _, args, _ in gateway.sent] == ["A", "B"]


def test_batch_item_with_unknown_receipt_reports_its_hash(gateway):
    gateway.receipt_error = ConnectionFailure("socket closed")
    results = _batch(gateway, ["A", "B"], stop_on_failure=True)
    assert [r.status for r in results] == ["failed", "skipped"]
    assert results[0].tx.tx_hash == "0x" + format(1, "064x")
    assert results[0].tx.block_number is None


def test_connection_lost_while_waiting_for_receipt_keeps_the_hash(gateway):
    gateway.receipt_error = ConnectionFailure("socket closed")
    with pytest.raises(ConnectionFailure) as exc_info:
        submit(gateway, gateway.prepare("vote", 1, 2))
    tx_hash = "0x" + format(1, "064x")
    assert exc_info.value.tx_hash == tx_hash
    assert tx_hash in str(exc_info.value)
    assert "socket closed" in str(exc_info.value)
    assert gateway.sent == [("vote", (1, 2), 50_000)]


def test_receipt_timeout_is_a_submission_failure_with_hash(gateway):
    gateway.receipt_error = asyncio.TimeoutError()
    with pytest.raises(SubmissionFailure) as exc_info:
        submit(gateway, gateway.prepare("vote", 1, 2))
    assert exc_info.value.tx_hash == "0x" + format(1, "064x")
    assert "TimeoutError()" in str(exc_info.value)


def test_reverted_receipt_carries_the_hash(gateway):
    gateway.receipt_status = 0
    with pytest.raises(SubmissionFailure) as exc_info:
        submit(gateway, gateway.prepare("revokeVote", 1))
    assert exc_info.value.tx_hash == "0x" + format(1, "064x")


def test_send_failure_without_message_is_not_blank(gateway):
    gateway.send_errors["vote"] = asyncio.TimeoutError()
    with pytest.raises(SubmissionFailure) as exc_info:
        submit(gateway, gateway.prepare("vote", 1, 2))
    assert str(exc_info.value) == "TimeoutError()"
    assert exc_info.value.tx_hash is None
