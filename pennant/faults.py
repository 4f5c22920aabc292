"""
Pennant faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every failure the library
  surfaces. Codes are grouped by domain to keep logs and searches predictable.
- FlagsException: the single exception kind raised to callers. It carries a
  human-readable message plus read-only options, and knows how to render itself
  through rich.
- One subclass per failure class (configuration, unknown flag, unknown command,
  missing argument, invalid flag value) so callers can catch narrowly.

Message format
- Parse failures read "<error class> in <command path>: <detail>", for example
  "unknown flag in main sub: -x" or "invalid flag value in main: --number abc".

Integration
- Builders raise ConfigurationError while the command tree is assembled.
- The scanner raises the parse-time subclasses; nothing is retried and nothing
  is recovered, the exception reaches the caller of Parser.parse unchanged.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.text import Text


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - configuration (101xx)
      • INVALID_NAME, INVALID_SHORTHAND, INVALID_DESCRIPTION, INVALID_DEFAULT,
        DUPLICATED_FLAG, DUPLICATED_SHORTHAND, RESERVED_FLAG,
        DUPLICATED_COMMAND, ATTACHED_COMMAND, CYCLIC_COMMAND
    - routing (111xx)
      • UNKNOWN_COMMAND
    - flags (112xx)
      • UNKNOWN_FLAG, MISSING_ARGUMENT, INVALID_FLAG_VALUE

    spacing leaves room for future additions without reshuffling existing codes.
    """
    # --- configuration errors (101xx) ---
    INVALID_NAME                = 10101
    INVALID_SHORTHAND           = 10102
    INVALID_DESCRIPTION         = 10103
    INVALID_DEFAULT             = 10104
    DUPLICATED_FLAG             = 10111
    DUPLICATED_SHORTHAND        = 10112
    RESERVED_FLAG               = 10113
    DUPLICATED_COMMAND          = 10121
    ATTACHED_COMMAND            = 10122
    CYCLIC_COMMAND              = 10123

    # --- routing errors (111xx) ---
    UNKNOWN_COMMAND             = 11101

    # --- flag errors (112xx) ---
    UNKNOWN_FLAG                = 11201
    MISSING_ARGUMENT            = 11202
    INVALID_FLAG_VALUE          = 11203

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class FlagsException(Exception):
    """
    Base of every fault raised by pennant.

    Attributes
    - message: the human-readable description (also str(exception)).
    - options: read-only mapping with the fault context. Known keys:
      code (FaultCode), title (short lowercase label), command (space-joined
      command path) and token (the offending token, when there is one).
    """

    def __init__(self, message, /, **options):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
        } | getattr(main, "__styles__", {}))

        command = self.options.get("command") or ""
        prog = getattr(main, "__prog__", command.split(" ", 1)[0] or "pennant")

        header = Text.assemble(
            "[ ",
            (prog, styles["prog-name"]),
            " — ",
            (self.code.normalize() if self.code is not None else "-", styles["code"]),
            " | ",
            (self.options.get("title", "error").title(), styles["error-title"]),
            " ]"
        )
        return Group(header, Text(self.message, styles["error-message"]))


class ConfigurationError(FlagsException, ValueError):
    """Raised while building the command tree (names, duplicates, defaults)."""


class UnknownFlagError(FlagsException): ...
class UnknownCommandError(FlagsException): ...
class MissingArgumentError(FlagsException): ...
class InvalidFlagValueError(FlagsException): ...


__all__ = (
    "FaultCode",
    "FlagsException",
    "ConfigurationError",
    "UnknownFlagError",
    "UnknownCommandError",
    "MissingArgumentError",
    "InvalidFlagValueError",
)
