from data_models import DEFAULT_WEIGHT, Voter
from errors import AlreadyRegistered, InvalidWeight

UNREGISTERED_STATUS = (False, False, 0)


def is_valid_weight(weight):
    return not isinstance(weight, bool) and isinstance(weight, int) and weight >= 1


class VoterRegistry:
    """Eligibility and voting status per voter address."""
    def __init__(self):
        self._voters = {}

    def __len__(self):
        return len(self._voters)

    def __contains__(self, address):
        return address in self._voters

    def check(self, address, weight=DEFAULT_WEIGHT):
        if address in self._voters:
            raise AlreadyRegistered()
        if not is_valid_weight(weight):
            raise InvalidWeight()

    def register(self, address, weight=DEFAULT_WEIGHT):
        self.check(address, weight)
        self._voters[address] = Voter(address, weight)

    def status(self, address):
        voter = self._voters.get(address)
        if voter is None:
            return UNREGISTERED_STATUS
        return voter.status()

    def mark_voted(self, address):
        """Flip has_voted for an address whose eligibility the caller already checked."""
        self._voters[address].has_voted = True

    def voted_count(self):
        return sum(1 for v in self._voters.values() if v.has_voted)
