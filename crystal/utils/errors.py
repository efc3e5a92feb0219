"""Exception types raised by the probability engine."""


class CrystalError(Exception):
    """Base class for engine errors."""


class NotFoundError(CrystalError):
    """A tournament, question or other record does not exist."""

    def __init__(self, kind: str, key):
        super().__init__(f"{kind} {key!r} not found")
        self.kind = kind
        self.key = key


class BracketError(CrystalError):
    """The series feed graph is malformed (cycle or dangling pointer)."""


class ScheduleFetchError(CrystalError):
    """The live schedule API could not be reached."""
