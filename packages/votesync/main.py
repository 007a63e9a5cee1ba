# packages/votesync/main.py

import asyncio
import os
from typing import Optional

import sentry_sdk
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

from .client import VotingClient
from .config import load_settings
from .errors import (
    ActionRejected,
    ConnectionFailure,
    SubmissionFailure,
    UnknownElection,
    VoteStateUnavailable,
)
from .logs import configure_logging
from .schemas import (
    AddCandidateSchema,
    AutoFillSchema,
    BatchItemResult,
    CreateElectionSchema,
    ElectionStatus,
    ElectionView,
    RegisterVotersSchema,
    TxResult,
    VoteSchema,
    VoteState,
)
from .session import connect
from .status import election_status, vote_shares

configure_logging(os.getenv("LOG_LEVEL", "INFO").upper())
sentry_sdk.init(dsn=os.getenv("SENTRY_DSN"))

app = FastAPI()
app.add_middleware(SentryAsgiMiddleware)

Instrumentator().instrument(app).expose(app)

FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:5173")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------------------------------------------------------
# Failure mapping. The submission diagnostic is passed through verbatim, and
# the hash of a transaction that already went out is returned alongside it.
# -----------------------------------------------------------------------------
_STATUS_CODES = {
    UnknownElection: 404,
    ActionRejected: 409,
    SubmissionFailure: 502,
    VoteStateUnavailable: 502,
    ConnectionFailure: 503,
}

for _exc_type, _code in _STATUS_CODES.items():
    def _handler(request: Request, exc: Exception, code: int = _code):
        body = {"detail": str(exc)}
        tx_hash = getattr(exc, "tx_hash", None)
        if tx_hash:
            body["tx_hash"] = tx_hash
        return JSONResponse(body, status_code=code)

    app.add_exception_handler(_exc_type, _handler)


# Lazily connect on first use so importing the app never touches the node.
_CLIENT: Optional[VotingClient] = None
_CLIENT_LOCK = asyncio.Lock()


async def get_client() -> VotingClient:
    global _CLIENT
    async with _CLIENT_LOCK:
        if _CLIENT is None:
            settings = load_settings()
            gateway, session = await connect(settings)
            client = VotingClient(gateway, session, receipt_timeout=settings.receipt_timeout)
            await client.refresh()
            _CLIENT = client
    return _CLIENT


def _view(client: VotingClient, election_id: int) -> ElectionView:
    election = client.election(election_id)
    return ElectionView(
        election=election,
        status=election_status(election, client.clock()),
        shares=vote_shares(election),
    )


@app.get("/elections", response_model=list[ElectionView])
async def list_elections(client: VotingClient = Depends(get_client)):
    return [_view(client, e.id) for e in client.elections]


@app.post("/refresh", response_model=list[ElectionView])
async def refresh(client: VotingClient = Depends(get_client)):
    await client.refresh()
    return [_view(client, e.id) for e in client.elections]


@app.get("/elections/{election_id}", response_model=ElectionView)
async def get_election(election_id: int, client: VotingClient = Depends(get_client)):
    return _view(client, election_id)


@app.get("/elections/{election_id}/status")
async def get_status(election_id: int, client: VotingClient = Depends(get_client)):
    status: ElectionStatus = client.status(election_id)
    return {"id": election_id, "status": status.value}


@app.get("/elections/{election_id}/vote-state", response_model=VoteState)
async def get_vote_state(election_id: int, client: VotingClient = Depends(get_client)):
    return await client.vote_state(election_id)


@app.post("/elections", response_model=TxResult, status_code=201)
async def create_election(payload: CreateElectionSchema, client: VotingClient = Depends(get_client)):
    return await client.create_election(payload.title, payload.duration_seconds, payload.use_whitelist)


@app.post("/elections/{election_id}/candidates", response_model=TxResult, status_code=201)
async def add_candidate(
    election_id: int, payload: AddCandidateSchema, client: VotingClient = Depends(get_client)
):
    return await client.add_candidate(election_id, payload.name)


@app.post("/elections/{election_id}/candidates/auto-fill", response_model=list[BatchItemResult])
async def auto_fill(election_id: int, payload: AutoFillSchema, client: VotingClient = Depends(get_client)):
    return await client.auto_fill(election_id, payload.names, stop_on_failure=payload.stop_on_failure)


@app.post("/elections/{election_id}/vote", response_model=TxResult)
async def vote(election_id: int, payload: VoteSchema, client: VotingClient = Depends(get_client)):
    return await client.cast_vote(election_id, payload.candidate_id)


@app.delete("/elections/{election_id}/vote", response_model=TxResult)
async def revoke_vote(election_id: int, client: VotingClient = Depends(get_client)):
    return await client.revoke_vote(election_id)


@app.post("/elections/{election_id}/voters", response_model=TxResult)
async def register_voters(
    election_id: int, payload: RegisterVotersSchema, client: VotingClient = Depends(get_client)
):
    return await client.register_voters(election_id, payload.voters)
