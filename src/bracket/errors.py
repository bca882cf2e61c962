"""
Errors raised by the bracket engine and the category record store.
"""


class BracketError(Exception):
    pass


class InsufficientParticipants(BracketError):
    """Fewer than two entrants; there is nothing to draw."""
    pass


class InvalidWinner(BracketError):
    """The chosen winner is not sitting in either slot of the match."""
    pass


class MatchNotFound(BracketError):
    pass
