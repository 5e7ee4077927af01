"""
Error kinds recorded on course records.

None of these abort an aggregation. Each one is captured on the CourseRecord
it belongs to and rendered next to whatever content was obtained, so partial
failures stay visible per course.
"""


class AggregationError(Exception):
    """Base class for every error the aggregator records."""

    kind = "AggregationError"

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class AdapterFetchError(AggregationError):
    """Network or parse failure inside one source adapter."""

    kind = "AdapterFetchError"


class AdapterProtocolError(AggregationError):
    """An expected structure (form, field, data marker, redirect link) was missing."""

    kind = "AdapterProtocolError"


class FeedFetchError(AggregationError):
    """The shared assignment feed was unreachable or malformed."""

    kind = "FeedFetchError"


class FeedEntryMissingError(AggregationError):
    """The feed resolved but lists nothing for this course."""

    kind = "FeedEntryMissingError"


class UnregisteredKeyError(AggregationError, KeyError):
    """No adapter is registered for the key. Never recorded on a record."""

    kind = "UnregisteredKeyError"

    def __str__(self) -> str:
        return Exception.__str__(self)
