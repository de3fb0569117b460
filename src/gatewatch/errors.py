"""Error taxonomy shared by the registry, the health aggregator and the API."""

from __future__ import annotations

from typing import Sequence


class GatewatchError(Exception):
    """Base class for all Gatewatch errors."""


class NotFoundError(GatewatchError):
    """A lookup target does not exist or is not currently loaded."""

    @classmethod
    def for_names(cls, names: Sequence[str]) -> NotFoundError:
        if len(names) == 1:
            return cls(f'Instance "{names[0]}" not found')
        return cls(f'Instances "{", ".join(names)}" not found')


class ConflictError(GatewatchError):
    """An instance with the same name is already loaded."""


class PersistenceError(GatewatchError):
    """The backing store rejected a read or write."""


class DependencyProbeError(GatewatchError):
    """A dependency probe could not complete its round trip."""


class AggregationFailure(GatewatchError):
    """The health aggregation itself failed, independent of any dependency."""
