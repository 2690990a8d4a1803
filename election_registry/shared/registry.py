"""
In-memory election registry.

Owns every election, candidate, registered voter and vote. All operations
run under one re-entrant lock: mutations are all-or-nothing and reads see
a consistent snapshot.
"""
import logging
import threading
from typing import Callable, Dict, List, Optional

from .exceptions import (
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
)

logger = logging.getLogger(__name__)

# An election can only be ended once it has this many candidates
MIN_CANDIDATES = 2

Listener = Callable[[RegistryEvent], None]


class ElectionRegistry:
    """Election, candidate and voter registry with a single owner."""

    def __init__(self, owner: str):
        """
        Initialize an empty registry.

        Args:
            owner: Address of the administrator; fixed for the registry's lifetime
        """
        if not owner:
            raise ValueError("Registry owner address is required")

        self._owner = owner
        self._elections: List[Election] = []
        # dict preserves insertion order for enumeration
        self._registered_voters: Dict[str, None] = {}
        self._listeners: List[Listener] = []
        self._event_sequence = 0
        self._lock = threading.RLock()

        logger.info(f"Election registry created, owner={owner}")

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def election_count(self) -> int:
        with self._lock:
            return len(self._elections)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        """Register a callable that receives every emitted RegistryEvent."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.remove(listener)

    def _emit(self, event_type: EventType, **data) -> RegistryEvent:
        event = create_event(event_type, self._event_sequence, **data)
        self._event_sequence += 1

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    f"Listener {listener!r} failed on {event.event_type.value} "
                    f"(sequence={event.sequence})"
                )
        return event

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_owner(self, caller: str, operation: str) -> None:
        if caller != self._owner:
            logger.warning(f"Rejected {operation}: caller {caller} is not the owner")
            raise Unauthorized()

    def _get_election(self, election_id: int) -> Election:
        if isinstance(election_id, bool) or not isinstance(election_id, int):
            raise NotFound(f"Election {election_id!r} not found.")
        if election_id < 0 or election_id >= len(self._elections):
            raise NotFound(f"Election {election_id} not found.")
        return self._elections[election_id]

    def _is_closed(self, election_id: int) -> bool:
        try:
            return not self._get_election(election_id).is_active
        except NotFound:
            return False

    @staticmethod
    def _get_candidate(election: Election, candidate_id: int) -> Candidate:
        if isinstance(candidate_id, bool) or not isinstance(candidate_id, int):
            raise NotFound(f"Candidate {candidate_id!r} not found.")
        if candidate_id < 0 or candidate_id >= election.candidate_count:
            raise NotFound(
                f"Candidate {candidate_id} not found in election {election.election_id}."
            )
        return election.candidates[candidate_id]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_election(self, caller: str, description: str) -> int:
        """
        Create a new active election.

        Args:
            caller: Address invoking the operation
            description: Election description

        Returns:
            int: The new election id

        Raises:
            Unauthorized: caller is not the owner
        """
        with self._lock:
            self._require_owner(caller, "create_election")

            election_id = len(self._elections)
            self._elections.append(
                Election(election_id=election_id, description=description)
            )
            logger.info(f"Election created: id={election_id}, description={description!r}")

            self._emit(
                EventType.ELECTION_CREATED,
                election_id=election_id,
                description=description
            )
            return election_id

    def add_candidate(self, caller: str, election_id: int, name: str) -> int:
        """
        Add a candidate to an active election.

        Args:
            caller: Address invoking the operation
            election_id: Target election
            name: Candidate name

        Returns:
            int: The new candidate id within the election

        Raises:
            Unauthorized: caller is not the owner
            NotFound: election does not exist
            ElectionClosed: election has been ended
        """
        with self._lock:
            self._require_owner(caller, "add_candidate")
            election = self._get_election(election_id)
            if not election.is_active:
                logger.warning(f"Rejected add_candidate: election {election_id} is closed")
                raise ElectionClosed()

            candidate_id = election.candidate_count
            election.candidates.append(Candidate(candidate_id=candidate_id, name=name))
            logger.info(
                f"Candidate added: election={election_id}, id={candidate_id}, name={name!r}"
            )

            self._emit(
                EventType.CANDIDATE_ADDED,
                election_id=election_id,
                candidate_id=candidate_id,
                name=name
            )
            return candidate_id

    def register_voter(self, caller: str, address: str) -> None:
        """
        Add an address to the global registered voters set.

        Raises:
            Unauthorized: caller is not the owner
            AlreadyRegistered: address is already registered
        """
        with self._lock:
            self._require_owner(caller, "register_voter")
            if address in self._registered_voters:
                logger.warning(f"Rejected register_voter: {address} already registered")
                raise AlreadyRegistered()

            self._registered_voters[address] = None
            logger.info(f"Voter registered: {address}")

            self._emit(EventType.VOTER_REGISTERED, address=address)

    def vote(self, caller: str, election_id: int, candidate_id: int) -> None:
        """
        Cast the caller's vote in an election.

        Checks run in order: election exists, election active, caller
        registered, caller has not voted, candidate exists.

        Args:
            caller: Voter address
            election_id: Election to vote in
            candidate_id: Chosen candidate

        Raises:
            NotFound: election or candidate does not exist
            ElectionClosed: election has been ended
            NotRegistered: caller is not a registered voter
            AlreadyVoted: caller already voted in this election
        """
        with self._lock:
            # A closed election answers ElectionClosed to everyone
            if caller not in self._registered_voters and not self._is_closed(election_id):
                logger.warning(f"Rejected vote: {caller} is not registered")
                raise NotRegistered()
            election = self._get_election(election_id)
            if not election.is_active:
                logger.warning(f"Rejected vote by {caller}: election {election_id} is closed")
                raise ElectionClosed()
            if caller in election.voters:
                logger.warning(f"Rejected vote: {caller} already voted in election {election_id}")
                raise AlreadyVoted()
            candidate = self._get_candidate(election, candidate_id)

            candidate.vote_count += 1
            election.voters.add(caller)
            logger.info(
                f"Vote cast: voter={caller}, election={election_id}, candidate={candidate_id}"
            )

            self._emit(
                EventType.VOTE_CAST,
                voter_address=caller,
                election_id=election_id,
                candidate_id=candidate_id
            )

    def end_election(self, caller: str, election_id: int) -> None:
        """
        Close an election so that no further votes or candidates are accepted.

        Raises:
            Unauthorized: caller is not the owner
            NotFound: election does not exist
            ElectionClosed: election was already ended
            InsufficientCandidates: fewer than MIN_CANDIDATES candidates
        """
        with self._lock:
            self._require_owner(caller, "end_election")
            election = self._get_election(election_id)
            if not election.is_active:
                logger.warning(f"Rejected end_election: election {election_id} already closed")
                raise ElectionClosed()
            if election.candidate_count < MIN_CANDIDATES:
                logger.warning(
                    f"Rejected end_election: election {election_id} has "
                    f"{election.candidate_count} candidate(s)"
                )
                raise InsufficientCandidates()

            election.is_active = False
            logger.info(f"Election ended: id={election_id}")

            self._emit(EventType.ELECTION_ENDED, election_id=election_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_winner(self, election_id: int) -> Winner:
        """
        Determine the winner of a closed election.

        Candidates are scanned in id order and one with a vote count greater
        than or equal to the best so far replaces it, so ties go to the
        highest id.

        Raises:
            NotFound: election does not exist
            ElectionStillActive: election has not been ended
        """
        with self._lock:
            election = self._get_election(election_id)
            if election.is_active:
                raise ElectionStillActive()

            best: Optional[Candidate] = None
            for candidate in election.candidates:
                if best is None or candidate.vote_count >= best.vote_count:
                    best = candidate

            return Winner(
                candidate_id=best.candidate_id,
                name=best.name,
                vote_count=best.vote_count
            )

    def get_election(self, election_id: int) -> ElectionSummary:
        with self._lock:
            return self._get_election(election_id).summary()

    def list_elections(self) -> List[ElectionSummary]:
        with self._lock:
            return [election.summary() for election in self._elections]

    def get_candidate(self, election_id: int, candidate_id: int) -> CandidateSummary:
        with self._lock:
            election = self._get_election(election_id)
            return self._get_candidate(election, candidate_id).summary()

    def get_registered_voters(self, caller: str) -> List[str]:
        """
        List registered voter addresses in registration order.

        Raises:
            Unauthorized: caller is not the owner
        """
        with self._lock:
            self._require_owner(caller, "get_registered_voters")
            return list(self._registered_voters)

    def is_registered(self, address: str) -> bool:
        with self._lock:
            return address in self._registered_voters

    def has_voted(self, election_id: int, address: str) -> bool:
        with self._lock:
            return address in self._get_election(election_id).voters
