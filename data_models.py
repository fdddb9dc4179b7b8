import copy

# --- Configuration and Constants ---
DEFAULT_WEIGHT = 1


class Candidate:
    """Represents an election candidate and its running tally."""
    def __init__(self, index, name, party_symbol, vote_count=0):
        self.index = index
        self.name = name
        self.party_symbol = party_symbol
        self.vote_count = vote_count

    def copy(self):
        return copy.copy(self)

    def to_dict(self):
        return {
            'index': self.index,
            'name': self.name,
            'party_symbol': self.party_symbol,
            'vote_count': self.vote_count
        }

    def __eq__(self, other):
        if not isinstance(other, Candidate):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Candidate(index={self.index!r}, name={self.name!r}, "
                f"party_symbol={self.party_symbol!r}, vote_count={self.vote_count!r})")


class Voter:
    """Represents a registered voter, keyed by an opaque address."""
    def __init__(self, address, weight=DEFAULT_WEIGHT):
        self.address = address
        self.is_registered = True
        self.has_voted = False
        self.weight = weight

    def status(self):
        return (self.is_registered, self.has_voted, self.weight)
