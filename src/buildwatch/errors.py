class BuildwatchError(Exception):
    pass


class CorruptStore(BuildwatchError):
    """The history file exists but does not hold a usable history document."""


class FetchError(BuildwatchError):
    """The page could not be reached at the transport level."""
