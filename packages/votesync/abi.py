import json
from typing import Optional


def _fn(name, inputs, outputs=(), mutability="view"):
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"internalType": t, "name": n, "type": t} for n, t in inputs],
        "outputs": [{"internalType": t, "name": n, "type": t} for n, t in outputs],
    }


# VotingPlatform, both deployed generations. createElection is overloaded:
# (string,uint256,bool) on current contracts, (string) on legacy ones.
VOTING_ABI = [
    _fn("electionsCount", [], [("", "uint256")]),
    _fn(
        "getElectionMeta",
        [("electionId", "uint256")],
        [
            ("title", "string"),
            ("owner", "address"),
            ("startTime", "uint256"),
            ("endTime", "uint256"),
            ("isDeleted", "bool"),
            ("useWhitelist", "bool"),
            ("candidatesCount", "uint256"),
        ],
    ),
    _fn(
        "elections",
        [("", "uint256")],
        [
            ("id", "uint256"),
            ("title", "string"),
            ("owner", "address"),
            ("isOpen", "bool"),
            ("candidatesCount", "uint256"),
        ],
    ),
    _fn(
        "candidates",
        [("", "uint256"), ("", "uint256")],
        [("id", "uint256"), ("name", "string"), ("voteCount", "uint256")],
    ),
    _fn("voteOf", [("electionId", "uint256"), ("voter", "address")], [("", "uint256")]),
    _fn("hasVoted", [("", "uint256"), ("", "address")], [("", "bool")]),
    _fn("isEligible", [("electionId", "uint256"), ("voter", "address")], [("", "bool")]),
    _fn(
        "createElection",
        [("title", "string"), ("durationSeconds", "uint256"), ("useWhitelist", "bool")],
        mutability="nonpayable",
    ),
    _fn("createElection", [("title", "string")], mutability="nonpayable"),
    _fn("addCandidate", [("electionId", "uint256"), ("name", "string")], mutability="nonpayable"),
    _fn("vote", [("electionId", "uint256"), ("candidateId", "uint256")], mutability="nonpayable"),
    _fn("revokeVote", [("electionId", "uint256")], mutability="nonpayable"),
    _fn("registerVoters", [("electionId", "uint256"), ("voters", "address[]")], mutability="nonpayable"),
]


def load_abi(path: Optional[str] = None) -> list:
    """Return the ABI from a compiled artifact, or the bundled one."""
    if not path:
        return VOTING_ABI
    with open(path) as f:
        artifact = json.load(f)
    # hardhat/foundry artifacts wrap the ABI; a bare ABI file is a list
    return artifact["abi"] if isinstance(artifact, dict) else artifact
