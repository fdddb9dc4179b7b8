from data_models import Candidate


class CandidateRegistry:
    """Append-only, index-ordered list of candidates."""
    def __init__(self):
        self._candidates = []

    def __len__(self):
        return len(self._candidates)

    @staticmethod
    def check(name, party_symbol):
        if not isinstance(name, str) or not isinstance(party_symbol, str):
            raise TypeError("Candidate name and party symbol must be text")

    def add(self, name, party_symbol):
        self.check(name, party_symbol)
        index = len(self._candidates)
        self._candidates.append(Candidate(index, name, party_symbol))
        return index

    def all(self):
        return [c.copy() for c in self._candidates]

    def candidate_exists(self, index):
        # bool is an int subclass but never a meaningful ballot choice
        if isinstance(index, bool) or not isinstance(index, int):
            return False
        return 0 <= index < len(self._candidates)

    def add_votes(self, index, weight):
        self._candidates[index].vote_count += weight
