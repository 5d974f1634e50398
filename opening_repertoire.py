# opening_repertoire.py — fixed first moves and replies played without the engine
from types import MappingProxyType

OPENING_MOVES = ("e2e4", "d2d4", "c2c4", "g1f3")

OPENING_REPLIES = MappingProxyType({
    "e2e4": ("e7e5", "c7c5", "e7e6", "c7c6"),
    "d2d4": ("d7d5", "g8f6"),
    "c2c4": ("e7e5", "c7c5", "g8f6"),
    "g1f3": ("d7d5", "g8f6"),
})


def book_candidates(moves):
    """Candidate book moves for this history, or () when the engine must decide."""
    if not moves:
        return OPENING_MOVES
    if len(moves) == 1:
        return OPENING_REPLIES.get(moves[0], ())
    return ()
