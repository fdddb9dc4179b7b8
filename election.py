"""Single-election state machine.

`Election` owns the candidate and voter registries, the voting window and
the administrator guard. Every operation runs under one re-entrant lock, so
state changes are applied one at a time and reads see committed state only.
"""
import logging
import threading
import time

from access_control import AccessControl
from candidate_registry import CandidateRegistry
from data_models import DEFAULT_WEIGHT
from errors import (
    AlreadyVoted, CandidatesLocked, ElectionError, InvalidCandidate, LedgerCorrupted, NotRegistered, VotingClosed
)
from voter_registry import VoterRegistry
from voting_window import Phase, VotingWindow

logger = logging.getLogger(__name__)

CANDIDATE_ADDED = "CandidateAdded"
VOTER_REGISTERED = "VoterRegistered"
VOTING_PERIOD_INITIALIZED = "VotingPeriodInitialized"
VOTE_CAST = "VoteCast"

# Operations a signed ledger call may name
SUBMITTABLE_OPERATIONS = ("add_candidate", "register_voter", "initialize_voting_period", "vote")


def unix_now():
    return int(time.time())


class Election:
    def __init__(self, admin, clock=None, lock_candidates_on_open=False):
        self._access = AccessControl(admin)
        self._candidates = CandidateRegistry()
        self._voters = VoterRegistry()
        self._window = VotingWindow()
        self._clock = clock or unix_now
        self._lock = threading.RLock()
        self._subscribers = []
        self.lock_candidates_on_open = lock_candidates_on_open

    @property
    def admin(self):
        return self._access.admin

    # --- Observers ---
    def subscribe(self, callback):
        """Call `callback(event, payload)` for each checked state change, before it is applied."""
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback):
        with self._lock:
            self._subscribers.remove(callback)

    def _emit(self, event, payload):
        """Hand a checked operation to every observer before it is applied.

        An observer that raises aborts the operation with state unchanged.
        """
        for callback in list(self._subscribers):
            callback(event, dict(payload))
        logger.info("%s %s", event, payload)

    def _rejected(self, operation, caller, exc):
        logger.warning("%s rejected for %s: %s (%s)", operation, caller, exc, type(exc).__name__)

    # --- Admin operations ---
    def add_candidate(self, caller, name, party_symbol):
        with self._lock:
            try:
                self._access.require_admin(caller)
                if self.lock_candidates_on_open and self.phase() in (Phase.OPEN, Phase.CLOSED):
                    raise CandidatesLocked()
            except ElectionError as exc:
                self._rejected("add_candidate", caller, exc)
                raise
            self._candidates.check(name, party_symbol)
            index = len(self._candidates)
            self._emit(CANDIDATE_ADDED, {'index': index, 'name': name, 'party_symbol': party_symbol})
            return self._candidates.add(name, party_symbol)

    def register_voter(self, caller, address, weight=DEFAULT_WEIGHT):
        with self._lock:
            try:
                self._access.require_admin(caller)
                self._voters.check(address, weight)
            except ElectionError as exc:
                self._rejected("register_voter", caller, exc)
                raise
            self._emit(VOTER_REGISTERED, {'address': address, 'weight': weight})
            self._voters.register(address, weight)

    def initialize_voting_period(self, caller, start, end):
        """Set (or replace) the voting window; `end` must be after `start`."""
        with self._lock:
            try:
                self._access.require_admin(caller)
                self._window.check(start, end)
            except ElectionError as exc:
                self._rejected("initialize_voting_period", caller, exc)
                raise
            self._emit(VOTING_PERIOD_INITIALIZED, {'start_time': start, 'end_time': end})
            self._window.configure(start, end)

    # --- Vote casting ---
    def vote(self, caller, candidate_index):
        """Cast `caller`'s single vote for the candidate at `candidate_index`.

        Checks run in a fixed order so the reported error is deterministic:
        window, registration, double vote, candidate. The tally and the
        voter's flag are only touched once all four have passed and every
        observer, the ledger included, has accepted the change.
        """
        with self._lock:
            try:
                if not self._window.is_open(self._clock()):
                    raise VotingClosed()
                is_registered, has_voted, weight = self._voters.status(caller)
                if not is_registered:
                    raise NotRegistered()
                if has_voted:
                    raise AlreadyVoted()
                if not self._candidates.candidate_exists(candidate_index):
                    raise InvalidCandidate()
            except ElectionError as exc:
                self._rejected("vote", caller, exc)
                raise
            self._emit(VOTE_CAST, {'voter': caller, 'candidate_index': candidate_index, 'weight': weight})
            self._candidates.add_votes(candidate_index, weight)
            self._voters.mark_voted(caller)

    # --- Read-only queries ---
    def get_all_candidates(self):
        with self._lock:
            return self._candidates.all()

    def candidate_exists(self, index):
        with self._lock:
            return self._candidates.candidate_exists(index)

    def get_voter_status(self, address):
        with self._lock:
            return self._voters.status(address)

    def voting_window(self):
        with self._lock:
            return self._window.to_dict()

    def phase(self):
        with self._lock:
            return self._window.phase(self._clock())

    def turnout(self):
        with self._lock:
            return self._voters.voted_count(), len(self._voters)

    # --- Ledger replay ---
    def _apply(self, event, payload):
        if event == CANDIDATE_ADDED:
            self._candidates.add(payload['name'], payload['party_symbol'])
        elif event == VOTER_REGISTERED:
            self._voters.register(payload['address'], payload['weight'])
        elif event == VOTING_PERIOD_INITIALIZED:
            self._window.configure(payload['start_time'], payload['end_time'])
        elif event == VOTE_CAST:
            self._candidates.add_votes(payload['candidate_index'], payload['weight'])
            self._voters.mark_voted(payload['voter'])
        else:
            raise LedgerCorrupted(f"Unknown ledger event {event!r}")

    @classmethod
    def from_ledger(cls, chain, clock=None, lock_candidates_on_open=False):
        """Rebuild an election from the transactions recorded on `chain`.

        Recorded transactions already passed every check when they were
        committed, so they are re-applied without consulting the clock.
        """
        if not chain.is_valid():
            raise LedgerCorrupted()
        election = cls(chain.admin, clock=clock or chain.timestamp,
                       lock_candidates_on_open=lock_candidates_on_open)
        count = 0
        for tx in chain.transactions():
            try:
                election._apply(tx['event'], tx['payload'])
            except (KeyError, IndexError, TypeError, ElectionError) as exc:
                raise LedgerCorrupted(f"Cannot replay transaction {count}: {exc}") from exc
            count += 1
        logger.info("Replayed %d ledger transactions", count)
        return election
