"""Errors raised while converting osquery packs and SQL files to Fleet YAML.

Every failure that aborts a conversion derives from ConversionError and
carries an ErrorKind so callers can report which stage went wrong.
Record-level problems (missing query text, a bad interval) never raise;
they are defaulted instead.
"""

from enum import Enum


class ErrorKind(Enum):
    FILE_READ = "FileReadError"
    MALFORMED_INPUT = "MalformedInput"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    FILE_WRITE = "FileWriteError"
    SERIALIZE = "SerializeError"


class ConversionError(Exception):
    """Base exception for all conversion errors."""

    kind = None

    def __str__(self):
        message = super().__str__()
        if self.__cause__ is not None:
            return f"{message}: {self.__cause__}"
        return message


class FileReadError(ConversionError):
    """Raised when the input file is missing or unreadable."""

    kind = ErrorKind.FILE_READ


class ParseError(ConversionError):
    """Raised when the input cannot be turned into query records."""

    kind = ErrorKind.MALFORMED_INPUT


class MalformedInputError(ParseError):
    """Raised when a pack does not decode into the expected shape."""

    kind = ErrorKind.MALFORMED_INPUT


class UnsupportedFormatError(ParseError):
    """Raised when the input file extension is not recognized."""

    kind = ErrorKind.UNSUPPORTED_FORMAT


class FileWriteError(ConversionError):
    """Raised when the output file cannot be written."""

    kind = ErrorKind.FILE_WRITE


class SerializeError(ConversionError):
    """Raised when a record cannot be emitted as YAML."""

    kind = ErrorKind.SERIALIZE
