import pytest

from election import Election

ADMIN = "0xadmin"
VOTER_1 = "0xvoter1"
VOTER_2 = "0xvoter2"
T0 = 1_700_000_000


class FrozenClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def election(clock):
    return Election(ADMIN, clock=clock)


@pytest.fixture
def configured_election(election):
    """One candidate, VOTER_1 registered, window [T0, T0 + 3600]."""
    election.add_candidate(ADMIN, "Test Candidate", "Symbol")
    election.register_voter(ADMIN, VOTER_1)
    election.initialize_voting_period(ADMIN, T0, T0 + 3600)
    return election
