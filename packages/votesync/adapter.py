"""Normalizes both VotingPlatform schemas into the canonical Election model.

Current contracts expose ``getElectionMeta(id)``; legacy ones only the public
``elections(id)`` mapping getter. Depending on the RPC encoding a result may
carry field names (mapping or attribute access) or be a bare tuple, so every
field is looked up by name first and by position second.
"""
import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import TypeAdapter

from .errors import AdapterFailure, ConnectionFailure, SchemaMismatch
from .schemas import (
    Candidate,
    CurrentSchemaRecord,
    Election,
    ElectionRecord,
    LegacySchemaRecord,
)

logger = logging.getLogger(__name__)

_record_adapter = TypeAdapter(ElectionRecord)


def field(raw: Any, name: str, index: int, default: Any = None) -> Any:
    """Named lookup, then positional, then `default`."""
    value = None
    if isinstance(raw, Mapping):
        value = raw.get(name)
    elif not isinstance(raw, (str, bytes)) and hasattr(raw, name):
        value = getattr(raw, name)
    if value is None and isinstance(raw, (list, tuple)) and index < len(raw):
        value = raw[index]
    return default if value is None else value


def _int(raw, name, index) -> int:
    return int(field(raw, name, index, 0))


def _bool(raw, name, index) -> bool:
    return bool(field(raw, name, index, False))


def parse_current(raw: Any, election_id: int) -> CurrentSchemaRecord:
    return _record_adapter.validate_python({
        "schema_version": "current",
        "title": field(raw, "title", 0),
        "owner": field(raw, "owner", 1),
        "start_time": _int(raw, "startTime", 2),
        "end_time": _int(raw, "endTime", 3),
        "is_deleted": _bool(raw, "isDeleted", 4),
        "use_whitelist": _bool(raw, "useWhitelist", 5),
        "candidates_count": _int(raw, "candidatesCount", 6),
    })


def parse_legacy(raw: Any, election_id: int) -> LegacySchemaRecord:
    return _record_adapter.validate_python({
        "schema_version": "legacy",
        "id": _int(raw, "id", 0) or election_id,
        "title": field(raw, "title", 1),
        "owner": field(raw, "owner", 2),
        "is_open": _bool(raw, "isOpen", 3),
        "candidates_count": _int(raw, "candidatesCount", 4),
    })


def parse_candidate(raw: Any, candidate_id: int) -> Candidate:
    return Candidate(
        id=_int(raw, "id", 0) or candidate_id,
        name=field(raw, "name", 1, ""),
        vote_count=_int(raw, "voteCount", 2),
    )


@dataclass(frozen=True)
class Attempt:
    """One way of reading an election's metadata."""

    schema: str
    fetch: Callable[[Any, int], Awaitable[Any]]
    parse: Callable[[Any, int], ElectionRecord]


CURRENT_ATTEMPT = Attempt("current", lambda gw, eid: gw.get_election_meta(eid), parse_current)
LEGACY_ATTEMPT = Attempt("legacy", lambda gw, eid: gw.legacy_election(eid), parse_legacy)
ATTEMPTS = (CURRENT_ATTEMPT, LEGACY_ATTEMPT)


async def fetch_record(gateway, election_id: int, attempts=ATTEMPTS) -> ElectionRecord:
    """Evaluate `attempts` in order until one yields a record."""
    errors = []
    for attempt in attempts:
        try:
            raw = await attempt.fetch(gateway, election_id)
            return attempt.parse(raw, election_id)
        except ConnectionFailure:
            raise
        except Exception as exc:
            mismatch = SchemaMismatch(f"{attempt.schema} schema: {exc}")
            logger.debug(f"election {election_id}: {mismatch}")
            errors.append(str(mismatch))
    raise AdapterFailure(election_id, "; ".join(errors) or "no schema attempts")


def to_election(election_id: int, record: ElectionRecord, candidates=()) -> Election:
    if isinstance(record, LegacySchemaRecord):
        if record.id != election_id:
            logger.warning(f"legacy record for election {election_id} reports id {record.id}")
        return Election(
            id=election_id,
            title=record.title,
            owner=record.owner,
            is_open=record.is_open,
            candidates_count=record.candidates_count,
            candidates=tuple(candidates),
            schema_version="legacy",
        )
    return Election(
        id=election_id,
        title=record.title,
        owner=record.owner,
        start_time=record.start_time,
        end_time=record.end_time,
        is_deleted=record.is_deleted,
        use_whitelist=record.use_whitelist,
        candidates_count=record.candidates_count,
        candidates=tuple(candidates),
        schema_version="current",
    )


async def adapt_election(gateway, election_id: int) -> Election:
    """Read one election and all its candidates.

    Raises AdapterFailure when neither schema works or a candidate read fails;
    ConnectionFailure always propagates.
    """
    record = await fetch_record(gateway, election_id)
    try:
        raws = await asyncio.gather(*(
            gateway.candidate(election_id, cid)
            for cid in range(1, record.candidates_count + 1)
        ))
        candidates = [parse_candidate(raw, cid) for cid, raw in enumerate(raws, start=1)]
    except ConnectionFailure:
        raise
    except Exception as exc:
        raise AdapterFailure(election_id, f"candidates: {exc}") from exc
    return to_election(election_id, record, candidates)
