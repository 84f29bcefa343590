# Common exceptions for archiving and extraction
class ArchiveError(Exception):
    """Base exception for all dirtar errors."""

    pass


class ArchiveRootError(ArchiveError):
    """Raised when the source or destination root is missing or not a directory."""

    pass


class IllegalPathError(ArchiveError):
    """Raised when a path would be read from or written to outside its root."""

    pass


class ArchiveCorruptedError(ArchiveError):
    """Raised when an archive or its compression envelope is invalid."""

    pass


class ArchiveEOFError(ArchiveError):
    """Raised when unexpected EOF is encountered while reading an archive."""

    pass
