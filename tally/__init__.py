"""
Threaded artifact ledger with votes, scores and author reputation.

Components:
- artifacts: immutable artifact tree with an append-only child index
- votes: one current vote per (artifact, voter) and derived scores
- reputation: per-author totals of non-self votes
- ledger: the serialized mutation path tying the three together
- journal: append-only JSONL persistence, replayed on open
"""

from .artifacts import Artifact, ArtifactStore, ArtifactType
from .clock import LogicalClock
from .config import TallyConfig, load_config
from .errors import ConfigError, InvalidValue, JournalError, NotFound, TallyError
from .events import ARTIFACT_CREATED, VOTE_CAST, ArtifactCreated, Voted
from .journal import EventJournal
from .ledger import Tally
from .reputation import ReputationAggregator
from .votes import VoteLedger

__version__ = "0.1.0"

__all__ = [
    # Tree
    "Artifact",
    "ArtifactStore",
    "ArtifactType",
    # Votes
    "VoteLedger",
    "ReputationAggregator",
    # Service
    "Tally",
    "LogicalClock",
    "EventJournal",
    "TallyConfig",
    "load_config",
    # Events
    "ArtifactCreated",
    "Voted",
    "ARTIFACT_CREATED",
    "VOTE_CAST",
    # Errors
    "TallyError",
    "NotFound",
    "InvalidValue",
    "JournalError",
    "ConfigError",
]
