from __future__ import annotations


class SwknnError(Exception):
    """Base class for everything raised by the sliding-window learner."""


class ConfigurationError(SwknnError, ValueError):
    """Invalid k, window size, strategy or schema. Raised at configure time."""


class SchemaError(SwknnError, ValueError):
    """A training example does not agree with the configured schema."""


class LifecycleError(SwknnError, RuntimeError):
    """train/predict called while the learner is not ready."""


class EmptyClassError(SwknnError, KeyError):
    """Centroid requested for a class with no instances in the window."""

    def __init__(self, label):
        super().__init__(label)
        self.label = label

    def __str__(self) -> str:
        return f"class {self.label!r} has no instances in the window"


class StateCorruptionError(SwknnError, RuntimeError):
    """
    Window and centroid tracker disagree, e.g. an eviction for a class that
    is not tracked. Never recovered from.
    """


class NoNeighborsError(SwknnError, LookupError):
    """A regression estimate was requested from an empty neighbour set."""


class SearchFault(SwknnError):
    """The neighbour search could not score a query (malformed vector)."""
