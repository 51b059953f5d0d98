"""Exception types for the staking dashboard pipeline."""
from __future__ import annotations


class StakeboardError(Exception):
    """Base class for pipeline errors."""
    pass


class TransportError(StakeboardError):
    """A feed page request failed. Fatal to the whole load."""
    pass


class DetailLookupError(StakeboardError):
    """A transaction detail lookup failed or returned unusable data."""
    pass


class CacheIOError(StakeboardError):
    """The persisted withdrawal cache could not be read or written."""
    pass
