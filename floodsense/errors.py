class FloodSenseError(Exception):
    """Base class for errors raised by floodsense."""


class InvalidInput(FloodSenseError, ValueError):
    """Request cannot be served: empty reading set, unknown station, bad config.

    Always fatal to the current request and surfaced to the caller.
    """


class IngestionError(FloodSenseError):
    """A gauge or weather adapter could not deliver data."""
