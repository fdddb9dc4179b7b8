import enum

from errors import InvalidWindow, VotingClosed


class Phase(enum.Enum):
    UNCONFIGURED = "unconfigured"
    SCHEDULED = "scheduled"
    OPEN = "open"
    CLOSED = "closed"


class VotingWindow:
    """The configured [start_time, end_time] interval, in Unix seconds.

    Phase transitions are a pure function of the timestamp passed in; there
    is no explicit open or close operation.
    """
    def __init__(self):
        self.start_time = None
        self.end_time = None

    @property
    def configured(self):
        return self.start_time is not None

    @staticmethod
    def check(start, end):
        if end <= start:
            raise InvalidWindow()

    def configure(self, start, end):
        self.check(start, end)
        self.start_time = start
        self.end_time = end

    def is_open(self, now):
        if not self.configured:
            raise VotingClosed()
        return self.start_time <= now <= self.end_time

    def phase(self, now):
        if not self.configured:
            return Phase.UNCONFIGURED
        if now < self.start_time:
            return Phase.SCHEDULED
        if now > self.end_time:
            return Phase.CLOSED
        return Phase.OPEN

    def to_dict(self):
        return {'start_time': self.start_time, 'end_time': self.end_time}
