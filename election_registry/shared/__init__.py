"""
Shared registry core for the election registry service.

This package contains:
- ElectionRegistry, the authoritative election/candidate/voter state
- Data models (records, read snapshots, RegistryEvent, EventType)
- The RegistryError exception taxonomy
- RabbitMQ routing keys for registry events
"""

from .exceptions import (
    RegistryError,
    Unauthorized,
    NotFound,
    AlreadyRegistered,
    NotRegistered,
    ElectionClosed,
    AlreadyVoted,
    InsufficientCandidates,
    ElectionStillActive,
)
from .models import (
    Candidate,
    CandidateSummary,
    Election,
    ElectionSummary,
    EventType,
    RegistryEvent,
    Winner,
    create_event,
    get_current_timestamp,
    get_routing_key,
    ROUTING_KEYS,
)
from .registry import ElectionRegistry, MIN_CANDIDATES

__all__ = [
    'ElectionRegistry',
    'MIN_CANDIDATES',
    'Candidate',
    'CandidateSummary',
    'Election',
    'ElectionSummary',
    'EventType',
    'RegistryEvent',
    'Winner',
    'create_event',
    'get_current_timestamp',
    'get_routing_key',
    'ROUTING_KEYS',
    'RegistryError',
    'Unauthorized',
    'NotFound',
    'AlreadyRegistered',
    'NotRegistered',
    'ElectionClosed',
    'AlreadyVoted',
    'InsufficientCandidates',
    'ElectionStillActive',
]

__version__ = '1.0.0'
