# romsum/errors.py
# Per-file failure taxonomy; every failure is local to one file


class RomHashError(Exception):
    """Base class for failures that void one file's digest."""


class UnopenableFile(RomHashError):
    """Path does not exist or cannot be opened for binary read."""


class UnknownFormat(RomHashError):
    """Extension is not registered, or a container holds no known ROM."""


class MalformedHeader(RomHashError):
    """A required header read returned fewer bytes than the format needs."""


class ReadFailure(RomHashError):
    """Non-EOF read error while streaming, or a short exact-length read."""


class InvalidDigest(RomHashError):
    """The accumulator was used after it had been invalidated."""
