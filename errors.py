class ElectionError(Exception):
    """Base class for every rejected election operation."""
    message = "Election operation rejected"

    def __init__(self, message=None):
        super().__init__(message or self.message)


class Unauthorized(ElectionError):
    message = "Only admin can perform this action"


class AlreadyRegistered(ElectionError):
    message = "Voter already registered"


class NotRegistered(ElectionError):
    message = "You are not registered to vote"


class AlreadyVoted(ElectionError):
    # Existing consumers match on this exact text.
    message = "You have already voted"


class VotingClosed(ElectionError):
    message = "Voting is not active"


class InvalidCandidate(ElectionError):
    message = "Invalid candidate"


class InvalidWindow(ElectionError):
    message = "End time must be after start time"


class InvalidWeight(ElectionError):
    message = "Voter weight must be a positive integer"


class CandidatesLocked(ElectionError):
    message = "Candidate registration is locked once voting has started"


class InvalidSignature(ElectionError):
    message = "Invalid signature"


class LedgerCorrupted(ElectionError):
    message = "Ledger failed integrity check"
