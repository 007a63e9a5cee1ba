import asyncio
import json
from datetime import datetime, timezone
from typing import Optional

import typer

from .client import DEFAULT_AUTOFILL_NAMES, VotingClient
from .config import load_settings
from .errors import VoteSyncError
from .logs import configure_logging
from .session import connect, short_address
from .status import election_status, vote_shares

app = typer.Typer()


async def build_client() -> VotingClient:
    settings = load_settings()
    configure_logging(settings.log_level)
    gateway, session = await connect(settings)
    client = VotingClient(gateway, session, receipt_timeout=settings.receipt_timeout)
    await client.refresh()
    return client


def format_time(ts: int) -> str:
    if not ts:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _summary(client: VotingClient, election) -> dict:
    return {
        "id": election.id,
        "title": election.title,
        "owner": short_address(election.owner),
        "status": election_status(election, client.clock()).value,
        "start": format_time(election.start_time),
        "end": format_time(election.end_time),
        "whitelist": election.use_whitelist,
        "candidates": election.candidates_count,
    }


def _run(action) -> None:
    """Connect, run `action(client)`, print its JSON result."""
    async def main():
        client = await build_client()
        return await action(client)

    try:
        result = asyncio.run(main())
    except VoteSyncError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(result))


@app.command("list")
def list_elections():
    async def action(client):
        return [_summary(client, e) for e in client.elections]
    _run(action)


@app.command()
def show(election_id: int = typer.Argument(...)):
    async def action(client):
        election = client.election(election_id)
        data = _summary(client, election)
        data["shares"] = [s.model_dump() for s in vote_shares(election)]
        data["me"] = (await client.vote_state(election_id)).model_dump()
        return data
    _run(action)


@app.command()
def create(
    title: str = typer.Argument(...),
    duration: int = typer.Option(3600, help="Voting window in seconds"),
    whitelist: bool = typer.Option(False, help="Restrict voting to registered accounts"),
):
    async def action(client):
        return (await client.create_election(title, duration, whitelist)).model_dump()
    _run(action)


@app.command("add-candidate")
def add_candidate(election_id: int = typer.Argument(...), name: str = typer.Argument(...)):
    async def action(client):
        return (await client.add_candidate(election_id, name)).model_dump()
    _run(action)


@app.command("auto-fill")
def auto_fill(
    election_id: int = typer.Argument(...),
    names: Optional[list[str]] = typer.Argument(None),
    keep_going: bool = typer.Option(False, help="Attempt every name even after a failure"),
):
    """Add several candidates, one transaction each."""
    async def action(client):
        results = await client.auto_fill(
            election_id, names or DEFAULT_AUTOFILL_NAMES, stop_on_failure=not keep_going
        )
        return [r.model_dump() for r in results]
    _run(action)


@app.command()
def vote(election_id: int = typer.Argument(...), candidate_id: int = typer.Argument(...)):
    async def action(client):
        return (await client.cast_vote(election_id, candidate_id)).model_dump()
    _run(action)


@app.command()
def revoke(election_id: int = typer.Argument(...)):
    async def action(client):
        return (await client.revoke_vote(election_id)).model_dump()
    _run(action)


@app.command()
def whitelist(election_id: int = typer.Argument(...), addresses: str = typer.Argument(...)):
    """Register voters; ADDRESSES is comma or whitespace separated."""
    async def action(client):
        return (await client.register_voters(election_id, addresses)).model_dump()
    _run(action)


if __name__ == "__main__":
    app()
