"""
Shared data models for the election registry.

This module contains:
- Election / Candidate: mutable records owned by the registry
- ElectionSummary / CandidateSummary / Winner: read snapshots returned by queries
- RegistryEvent: notification emitted after every successful mutation
- Routing key table for forwarding events to RabbitMQ
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Set
from enum import Enum


class EventType(str, Enum):
    """Notifications emitted by the registry."""
    ELECTION_CREATED = "ElectionCreated"
    CANDIDATE_ADDED = "CandidateAdded"
    VOTER_REGISTERED = "VoterRegistered"
    VOTE_CAST = "VoteCast"
    ELECTION_ENDED = "ElectionEnded"


@dataclass
class Candidate:
    """A named option within one election."""
    candidate_id: int
    name: str
    vote_count: int = 0

    def summary(self) -> 'CandidateSummary':
        return CandidateSummary(
            candidate_id=self.candidate_id,
            name=self.name,
            vote_count=self.vote_count
        )


@dataclass
class Election:
    """
    A contest held in the registry.

    Attributes:
        election_id: Sequential id, 0-based
        description: Text set at creation
        is_active: True until the election is ended
        candidates: Candidates in id order
        voters: Addresses that have voted in this election
    """
    election_id: int
    description: str
    is_active: bool = True
    candidates: List[Candidate] = field(default_factory=list)
    voters: Set[str] = field(default_factory=set)

    @property
    def candidate_count(self) -> int:
        return len(self.candidates)

    def summary(self) -> 'ElectionSummary':
        return ElectionSummary(
            election_id=self.election_id,
            description=self.description,
            is_active=self.is_active,
            candidate_count=self.candidate_count
        )


@dataclass(frozen=True)
class ElectionSummary:
    """Point-in-time view of an election."""
    election_id: int
    description: str
    is_active: bool
    candidate_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CandidateSummary:
    """Point-in-time view of a candidate."""
    candidate_id: int
    name: str
    vote_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Winner:
    """Result of a closed election."""
    candidate_id: int
    name: str
    vote_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RegistryEvent:
    """
    Notification emitted after a successful registry mutation.

    Attributes:
        event_type: Which mutation happened
        data: Event arguments, e.g. {"election_id": 0, "description": "..."}
        sequence: Registry-wide counter, starting at 0
        timestamp: ISO format UTC timestamp
    """
    event_type: EventType
    data: Dict[str, Any]
    sequence: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = asdict(self)
        result["event_type"] = self.event_type.value
        return result

    def to_json(self) -> str:
        """Convert to JSON string for the message broker."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegistryEvent':
        """Create RegistryEvent from dictionary."""
        values = dict(data)
        values["event_type"] = EventType(values["event_type"])
        return cls(**values)

    @classmethod
    def from_json(cls, json_str: str) -> 'RegistryEvent':
        """Create RegistryEvent from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @property
    def routing_key(self) -> str:
        return get_routing_key(self.event_type)


def create_event(
    event_type: EventType,
    sequence: int,
    timestamp: Optional[str] = None,
    **data: Any
) -> RegistryEvent:
    """
    Create a RegistryEvent stamped with the current time.

    Args:
        event_type: Type of event
        sequence: Position of the event in the registry's history
        timestamp: Optional timestamp (defaults to current time)
        **data: Event arguments

    Returns:
        RegistryEvent: Constructed event
    """
    if timestamp is None:
        timestamp = get_current_timestamp()

    return RegistryEvent(
        event_type=event_type,
        data=data,
        sequence=sequence,
        timestamp=timestamp
    )


def get_current_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        str: ISO format timestamp with Z suffix
    """
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + 'Z'


# RabbitMQ routing keys, one per event type
ROUTING_KEYS = {
    EventType.ELECTION_CREATED: 'registry.election.created',
    EventType.CANDIDATE_ADDED: 'registry.candidate.added',
    EventType.VOTER_REGISTERED: 'registry.voter.registered',
    EventType.VOTE_CAST: 'registry.vote.cast',
    EventType.ELECTION_ENDED: 'registry.election.ended',
}


def get_routing_key(event_type: EventType) -> str:
    """
    Get RabbitMQ routing key for an event type.

    Args:
        event_type: Type of event

    Returns:
        str: Routing key
    """
    return ROUTING_KEYS.get(EventType(event_type), '')
