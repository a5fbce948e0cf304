"""
Error taxonomy for PTFL Reader.

Every error the core raises deliberately derives from PtflError so the
command loop can report it and keep running.
"""


class PtflError(Exception):
    """Base class for all user-reportable errors."""


class FormatError(PtflError):
    """Malformed scan file, unreadable file, or a parser that needs renewing."""

    def __init__(self, message, path=None, line_no=None, line=None):
        self.path = path
        self.line_no = line_no
        self.line = line
        if path is not None and line_no is not None:
            message = f"{path}:{line_no}: {message} (line: {line!r})"
        elif path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class CatalogError(PtflError):
    """Duplicate target key, missing source key, or unsortable samples."""


class RenderError(PtflError):
    """Unknown backend, or a canvas that cannot be allocated."""


class DiscoveryError(PtflError):
    """Previewer could not be spawned, discovered or connected to."""


class TransportError(PtflError):
    """A request could not be sent over a live previewer connection."""


class CommandGrammarError(PtflError):
    """A command line did not match its grammar."""

    def __init__(self, message, usage=None):
        self.usage = usage
        super().__init__(message)
