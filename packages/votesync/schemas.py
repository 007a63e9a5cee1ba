from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Canonical domain model ---

class Candidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    name: str
    vote_count: int = Field(0, ge=0)


class Election(BaseModel):
    """One election as of the last synchronization pass."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    title: str
    owner: str
    start_time: int = 0
    end_time: int = 0
    is_deleted: bool = False
    use_whitelist: bool = False
    candidates_count: int = Field(0, ge=0)
    candidates: tuple[Candidate, ...] = ()
    # only legacy contracts report this; None for the current schema
    is_open: Optional[bool] = None
    schema_version: Literal["current", "legacy"] = "current"


class ElectionStatus(str, Enum):
    ACTIVE = "Active"
    ENDED = "Ended"
    DELETED = "Deleted"
    NOT_STARTED = "NotStarted"


# --- Raw contract records, one per schema ---

class CurrentSchemaRecord(BaseModel):
    """getElectionMeta(id) -> (title, owner, startTime, endTime, isDeleted, useWhitelist, candidatesCount)"""

    schema_version: Literal["current"] = "current"
    title: str
    owner: str
    start_time: int = 0
    end_time: int = 0
    is_deleted: bool = False
    use_whitelist: bool = False
    candidates_count: int = 0


class LegacySchemaRecord(BaseModel):
    """elections(id) -> (id, title, owner, isOpen, candidatesCount)"""

    schema_version: Literal["legacy"] = "legacy"
    id: int
    title: str
    owner: str
    is_open: bool = False
    candidates_count: int = 0


ElectionRecord = Annotated[
    Union[CurrentSchemaRecord, LegacySchemaRecord],
    Field(discriminator="schema_version"),
]


# --- Per-account vote state ---

class CurrentVote(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["current"] = "current"
    candidate_id: int = 0

    @property
    def has_voted(self) -> bool:
        return self.candidate_id != 0


class LegacyVote(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["legacy"] = "legacy"
    has_voted: bool = False


VoteRecord = Annotated[Union[CurrentVote, LegacyVote], Field(discriminator="mode")]


class VoteState(BaseModel):
    election_id: int
    account: str
    vote: VoteRecord
    eligible: bool


# --- Transaction results ---

class TxResult(BaseModel):
    tx_hash: str
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    # the limit we set explicitly; None when the wallet/node picked it
    gas_limit: Optional[int] = None


class BatchItemResult(BaseModel):
    item: str
    status: Literal["submitted", "failed", "skipped"]
    tx: Optional[TxResult] = None
    error: Optional[str] = None


# --- Presentation views ---

class CandidateShare(BaseModel):
    candidate_id: int
    name: str
    vote_count: int
    percent: int


class ElectionView(BaseModel):
    election: Election
    status: ElectionStatus
    shares: list[CandidateShare]


# --- Request bodies ---

class CreateElectionSchema(BaseModel):
    title: str = Field(..., examples=["Game of the Year"])
    duration_seconds: int = Field(3600, examples=[3600])
    use_whitelist: bool = False


class AddCandidateSchema(BaseModel):
    name: str = Field(..., examples=["Elden Ring"])


class AutoFillSchema(BaseModel):
    names: Optional[list[str]] = None
    stop_on_failure: bool = True


class VoteSchema(BaseModel):
    candidate_id: int = Field(..., examples=[1])


class RegisterVotersSchema(BaseModel):
    voters: str = Field(..., examples=["0xabc..., 0xdef..."])
