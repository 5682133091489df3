class BusyBeaverError(Exception):
    """Base class for errors raised by the search pipeline."""


class InvalidTransitionTableError(BusyBeaverError, ValueError):
    """A transition table is incomplete or references states/symbols out of range.

    Raised when such a table reaches the compiler. The generator never emits
    one, so seeing this error means an invariant was broken upstream; the
    scheduler aborts the current partition and keeps the run going.
    """
