"""Exception hierarchy for storyline."""


class StorylineError(Exception):
    """Base class for all storyline errors."""


class DatastoreError(StorylineError):
    """A datastore operation failed."""


class DuplicateRowError(DatastoreError):
    """A unique constraint rejected an insert."""


class CurrentRowConflict(DuplicateRowError):
    """Another writer already holds the current row for (cluster, lang)."""


class ProviderError(StorylineError):
    """The generative-text provider failed or returned nothing usable."""
