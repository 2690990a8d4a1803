"""
Errors raised by the election registry.

Each class corresponds to one violated precondition. Callers can catch
RegistryError to handle all of them.
"""


class RegistryError(Exception):
    """Base exception for registry operations."""

    default_message = "Registry operation failed."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(RegistryError):
    """Caller is not allowed to perform the operation."""

    default_message = "Ownable: caller is not the owner"


class NotFound(RegistryError):
    """Election or candidate id does not exist."""

    default_message = "Not found."


class AlreadyRegistered(RegistryError):
    """Address is already in the registered voters set."""

    default_message = "Voter is already registered"


class NotRegistered(RegistryError):
    """Caller is not a registered voter."""

    default_message = "Not registered."


class ElectionClosed(RegistryError):
    """Election has been ended."""

    default_message = "Election not active."


class AlreadyVoted(RegistryError):
    """Caller has already voted in this election."""

    default_message = "Already voted."


class InsufficientCandidates(RegistryError):
    """Election has too few candidates to be ended."""

    default_message = "Not enough candidates."


class ElectionStillActive(RegistryError):
    """Winner requested for an election that is still open."""

    default_message = "Election is still active."
