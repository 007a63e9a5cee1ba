"""Client-side adapter for the on-chain VotingPlatform election registry."""

__version__ = "0.1.0"
