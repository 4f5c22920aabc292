r"""
Pennant flag values and flag sets.

Overview
- Flag values (closed set, every concrete class is sealed)
  • FlagString / FlagStrings: str, list[str]
  • FlagNumber / FlagNumbers: int parsed with leading-integer semantics ("12abc" -> 12)
  • FlagBigint / FlagBigints: int parsed from a complete integer literal only
  • FlagBoolean / FlagBooleans: bool from "true"/"false" or from an absent token

- FlagSet
  • The per-command registry: long-name and short-name indices, uniqueness
    checks, exact lookup, reset and a deterministic (sorted by name) iteration.
  • Builder methods (string, strings, number, ...) construct, register and
    return a flag in one call.

Capability contract used by the scanner
- add(token=None) -> bool: parse + validate + store, or return False untouched.
- is_bool() -> bool: boolean-shaped flags change look-ahead disambiguation.
- reset(): restore a fresh copy of the declared default.

Validation highlights
- Names must match r"[A-Za-z][A-Za-z0-9\-_.]*"; shorthands r"[A-Za-z0-9]".
- Usage texts are one line.
- Defaults must match the element type of the variant (checked at construction).
- Allow-list first, validator as the fallback path; non-finite numbers are rejected.

Quick example:
    >>> flags = Command("main").flags
    >>> port = flags.number("port", short="p", default=80)
    >>> port.add("8080"), port.value
    (True, 8080)
"""
import copy
import functools
import json
import math
import operator
import re
import sys
import weakref
from collections.abc import Sequence
from typing import Generic, TypeVar

from .faults import ConfigurationError, FaultCode
from .utils import *


_NAME = re.compile(r"[A-Za-z][A-Za-z0-9\-_.]*")
_SHORTHAND = re.compile(r"[A-Za-z0-9]")
_NUMBER = re.compile(r"\s*([+-]?)(?:0[xX]([0-9a-fA-F]+)|([0-9]+))")
_BIGINT = re.compile(r"\s*(?:[+-]?[0-9]+|0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+)\s*")


def _parse_string(token):
    return Unset if token is None else token


def _parse_number(token):
    """
    leading-integer parse: optional whitespace and sign, then a hex literal or
    decimal digits; whatever follows the numeric prefix is ignored. magnitudes
    beyond the float range are rejected like any other non-finite number.
    """
    if token is None or not (match := _NUMBER.match(token)):
        return Unset
    sign, hexadecimal, decimal = match.groups()
    value = int(hexadecimal, 16) if hexadecimal else int(decimal)
    if value > sys.float_info.max:
        return Unset
    return -value if sign == "-" else value


def _parse_bigint(token):
    # the whole token must be an integer literal; int() handles the prefixes
    if token is None or not _BIGINT.fullmatch(token):
        return Unset
    literal = token.strip()
    return int(literal, 0) if literal[:2].lower() in ("0x", "0o", "0b") else int(literal, 10)


def _parse_bool(token):
    match token:
        case None | "true":
            return True
        case "false":
            return False
    return Unset


def _equal(left, right):
    """
    deep equality that never confuses a bool with an int (True != 1 here).
    """
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if isinstance(left, list | tuple) and isinstance(right, list | tuple):
        return len(left) == len(right) and all(map(_equal, left, right))
    return left == right


def _is_number(value):
    return isinstance(value, int | float) and not isinstance(value, bool)


def _is_integer(value):
    return isinstance(value, int) and not isinstance(value, bool)


class FlagType(type):
    """
    Metaclass for flag values.

    Responsibilities
    - Derive __typename__ from the class name (camel-case split with hyphens)
      for consistent messages: FlagBigints -> "flag-bigints".
    - Expose the names listed in __introspectable__ as read-only properties
      through mirror(), so containers are copied on every read.
    - Provide a compact __repr__ and a __rich_repr__ for pretty printers.
    - Seal concrete variants: a class created with final=True refuses subclasses,
      which keeps the set of flag shapes closed.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
            yield "value", self.value
        self.__rich_repr__ = __rich_repr__

        if options.get("final", False):
            @rename("__init_subclass__")
            def __init_subclass__(cls, **options):  # NOQA: F-841
                raise TypeError(f"type {self.__name__!r} is not an acceptable base type")
            self.__init_subclass__ = classmethod(__init_subclass__)

        return self


_T = TypeVar("_T")


class Flag(Generic[_T], metaclass=FlagType):
    """
    Shared behavior of every flag value.

    A concrete variant only declares four class attributes:
    - _parser: token (str | None) -> element | Unset
    - _element: predicate checking a declared default element
    - _fallback: default used when none is declared
    - _array / _boolean: storage shape and look-ahead shape

    State
    - _default: deep copy of the declared default (never handed out directly).
    - _value: the current value; arrays are a list owned by the flag.
    """

    __introspectable__ = (
        "name",
        "short",
        "usage",
        "default",
        "values",
    )

    _parser = staticmethod(lambda token: Unset)
    _element = staticmethod(lambda value: False)
    _fallback = None
    _array = False
    _boolean = False

    def __init__(
            self,
            name,
            /,
            short=Unset,
            default=Unset,
            usage=Unset,
            values=(),
            validator=Unset
    ):
        r"""
        Construct a flag value.

        Parameters
        - name: str
          Long name, matching r"[A-Za-z][A-Za-z0-9\-_.]*".
        - short: Unset | str
          Optional one-character shorthand matching r"[A-Za-z0-9]"; "" means none.
        - default: Unset | element | Sequence[element]
          Declared default. Deep-copied so the caller's object is never aliased.
          When Unset, the variant's zero value is used ("", 0, False or []).
        - usage: Unset | str
          One-line help text shown in the usage listing.
        - values: Iterable
          Allow-list of element values. Empty means no allow-list. For array
          variants the entries are single elements, not whole lists.
        - validator: Unset | Callable[[element], bool]
          Secondary acceptance check (see is_valid()). Array variants call it
          with each parsed element on its own (5, not [5]).

        Raises
        - ConfigurationError: bad name, bad shorthand, multi-line usage, or a
          default that does not match the element type.
        - TypeError: non-string name/short/usage or a non-callable validator.
        """
        typename = type(self).__typename__
        if not isinstance(name, str):
            raise TypeError(f"{typename} 'name' must be a string")
        if not _NAME.fullmatch(name):
            raise ConfigurationError(
                f"{name!r} flag should match \"^[a-zA-Z][a-zA-Z0-9\\-_\\.]*$\"",
                code=FaultCode.INVALID_NAME, title="invalid flag name", token=name,
            )

        short = coalesce(short, "")
        if not isinstance(short, str):
            raise TypeError(f"{typename} 'short' must be a string")
        if short and not _SHORTHAND.fullmatch(short):
            raise ConfigurationError(
                f"{short!r} shorthand should match \"^[a-zA-Z0-9]$\"",
                code=FaultCode.INVALID_SHORTHAND, title="invalid shorthand", token=short,
            )

        usage = coalesce(usage, "")
        if not isinstance(usage, str):
            raise TypeError(f"{typename} 'usage' must be a string")
        if "\n" in usage:
            raise ConfigurationError(
                f"flag usage invalid: {usage}",
                code=FaultCode.INVALID_DESCRIPTION, title="invalid flag usage", token=name,
            )

        if validator is not Unset and not callable(validator):
            raise TypeError(f"{typename} 'validator' must be callable")

        default = coalesce(default, type(self)._fallback)
        if not self._conforms(default):
            raise ConfigurationError(
                f"{name!r} flag default {default!r} does not match {typename}",
                code=FaultCode.INVALID_DEFAULT, title="invalid flag default", token=name,
            )

        self._name = name
        self._short = short
        self._usage = usage
        self._values = tuple(values)
        self._validator = validator
        self._default = copy.deepcopy(list(default) if self._array else default)
        self._value = copy.deepcopy(self._default)

    @classmethod
    def _conforms(cls, default):
        if not cls._array:
            return cls._element(default)
        return (
            isinstance(default, Sequence)
            and not isinstance(default, str)
            and all(map(cls._element, default))
        )

    @property
    def value(self):
        """
        The current value. For array flags this is the live list owned by the flag.
        """
        return self._value

    def is_bool(self):
        return self._boolean

    def is_valid(self, value, /):
        """
        Decide whether a parsed element may be stored.

        Policy
        - a non-finite float is rejected outright;
        - with a non-empty allow-list, a deep-equal entry accepts the value and,
          only when none matches, the validator is consulted as a fallback;
        - without an allow-list, the value is accepted unless a validator rejects it.
        """
        if isinstance(value, float) and not math.isfinite(value):
            return False
        if self._values:
            if any(_equal(value, entry) for entry in self._values):
                return True
            return bool(self._validator(value)) if self._validator else False
        return bool(self._validator(value)) if self._validator else True

    def add(self, token=None, /):
        """
        Parse a raw token and store it.

        Returns True when the token was parsed, validated and stored (appended
        for arrays, overwritten for scalars). Returns False and leaves the flag
        unchanged otherwise. An absent token (None) only succeeds for boolean
        variants, where it means True.
        """
        if (value := type(self)._parser(token)) is Unset or not self.is_valid(value):
            return False
        if self._array:
            self._value.append(value)
        else:
            self._value = value
        return True

    def reset(self):
        """
        Restore the declared default.

        Arrays keep their list object (callers holding flag.value stay in sync)
        and are refilled with copies of the default elements; scalars receive a
        copy of the default.
        """
        if self._array and isinstance(self._value, list):
            self._value[:] = copy.deepcopy(self._default)
        else:
            self._value = copy.deepcopy(self._default)

    def default_string(self):
        """
        Describe a meaningful default for the usage listing, or "" when the
        default is the zero value of the type.
        """
        default = self._default
        if isinstance(default, list):
            return f"(default {json.dumps(default, separators=(',', ':'))})" if default else ""
        if isinstance(default, str):
            return f"(default {json.dumps(default)})" if default else ""
        if isinstance(default, bool):
            return "(default true)" if default else ""
        if _is_number(default) and default != 0:
            return f"(default {default})"
        return ""

    def values_string(self):
        if self._values:
            return f"(values {json.dumps(list(self._values), separators=(',', ':'))})"
        return ""


class FlagString(Flag[str], final=True):
    """A flag of type str; the last occurrence wins."""
    _parser = staticmethod(_parse_string)
    _element = staticmethod(lambda value: isinstance(value, str))
    _fallback = ""


class FlagStrings(Flag[list[str]], final=True):
    """A flag of type list[str]; every occurrence appends."""
    _parser = staticmethod(_parse_string)
    _element = staticmethod(lambda value: isinstance(value, str))
    _fallback = ()
    _array = True


class FlagNumber(Flag[int], final=True):
    _parser = staticmethod(_parse_number)
    _element = staticmethod(_is_number)
    _fallback = 0


class FlagNumbers(Flag[list[int]], final=True):
    _parser = staticmethod(_parse_number)
    _element = staticmethod(_is_number)
    _fallback = ()
    _array = True


class FlagBigint(Flag[int], final=True):
    """
    An arbitrary-precision integer flag.

    Unlike FlagNumber, the token must be a complete integer literal
    ("42", "-7", "0x2a", "0o52", "0b101010"); "4.2" or "42abc" are rejected
    instead of being truncated.
    """
    _parser = staticmethod(_parse_bigint)
    _element = staticmethod(_is_integer)
    _fallback = 0


class FlagBigints(Flag[list[int]], final=True):
    _parser = staticmethod(_parse_bigint)
    _element = staticmethod(_is_integer)
    _fallback = ()
    _array = True


class FlagBoolean(Flag[bool], final=True):
    """
    A boolean flag. "-v" alone means true; "-v false" or "-v=false" sets false.
    """
    _parser = staticmethod(_parse_bool)
    _element = staticmethod(lambda value: isinstance(value, bool))
    _fallback = False
    _boolean = True


class FlagBooleans(Flag[list[bool]], final=True):
    _parser = staticmethod(_parse_bool)
    _element = staticmethod(lambda value: isinstance(value, bool))
    _fallback = ()
    _array = True
    _boolean = True


class FlagSet:
    """
    The flags of one command.

    Responsibilities
    - Index flags by long name and by shorthand; reject redefinitions.
    - Exact lookup for the scanner (find); no prefix matching.
    - Reset every flag at the start of a parse (reset).
    - Iterate in a stable order sorted by long name, whatever the declaration
      order, so listings are deterministic.

    Ownership
    - A FlagSet belongs to exactly one Command and only keeps a weak reference
      back to it (for the command path used in messages).
    """

    def __init__(self, command, /):
        self._command = weakref.ref(command)
        self._long = {}
        self._short = {}

    @property
    def use(self):
        """
        The space-separated command path, e.g. "main sub".
        """
        command = self._command()
        return " ".join(step.use for step in command.path) if command is not None else ""

    def __iter__(self):
        return iter(sorted(self._long.values(), key=operator.attrgetter("name")))

    def __len__(self):
        return len(self._long)

    def __repr__(self):
        return f"flag-set({self.use!r}, {[flag.name for flag in self]!r})"

    def find(self, name, /, short=False):
        return (self._short if short else self._long).get(name)

    def reset(self):
        for flag in self._long.values():
            flag.reset()

    def add(self, *flags):
        """
        Register flags.

        Raises
        - TypeError: an argument is not a Flag.
        - ConfigurationError: a long name is already defined, a shorthand is
          already taken or is not one ASCII alphanumeric character, or a
          reserved help name ("help" / "h") is used.

        The built-in help flag answers to "--help" and "-h" on every command,
        so a user flag with either name could never be reached; it is refused
        here instead of being silently shadowed.
        """
        for flag in flags:
            if not isinstance(flag, Flag):
                raise TypeError("FlagSet.add() arguments must be flags")

            name = flag.name
            if name == "help" or flag.short == "h":
                raise ConfigurationError(
                    f"{self.use} flag reserved for help: {'-h' if flag.short == 'h' else '--help'}",
                    code=FaultCode.RESERVED_FLAG, title="reserved flag", command=self.use, token=name,
                )
            if name in self._long:
                raise ConfigurationError(
                    f"{self.use} flag redefined: {name}",
                    code=FaultCode.DUPLICATED_FLAG, title="duplicated flag", command=self.use, token=name,
                )

            if short := flag.short:
                if found := self._short.get(short):
                    raise ConfigurationError(
                        f"unable to redefine {short!r} shorthand in {self.use!r} flagset: "
                        f"it's already used for {found.name!r} flag",
                        code=FaultCode.DUPLICATED_SHORTHAND, title="duplicated shorthand",
                        command=self.use, token=short,
                    )
                if not (len(short) == 1 and short.isascii() and short.isalnum()):
                    raise ConfigurationError(
                        f"{short!r} shorthand in {self.use!r} is more than one ASCII character",
                        code=FaultCode.INVALID_SHORTHAND, title="invalid shorthand",
                        command=self.use, token=short,
                    )
                self._short[short] = flag
            self._long[name] = flag

    def _define(self, cls, name, /, **options):
        self.add(flag := cls(name, **options))
        return flag

    def string(self, name, /, **options):
        """Define a flag of type str."""
        return self._define(FlagString, name, **options)

    def strings(self, name, /, **options):
        """Define a flag of type list[str]."""
        return self._define(FlagStrings, name, **options)

    def number(self, name, /, **options):
        """Define a flag of type int (leading-integer parsing)."""
        return self._define(FlagNumber, name, **options)

    def numbers(self, name, /, **options):
        """Define a flag of type list[int] (leading-integer parsing)."""
        return self._define(FlagNumbers, name, **options)

    def bigint(self, name, /, **options):
        """Define a flag of type int (complete integer literals only)."""
        return self._define(FlagBigint, name, **options)

    def bigints(self, name, /, **options):
        """Define a flag of type list[int] (complete integer literals only)."""
        return self._define(FlagBigints, name, **options)

    def bool(self, name, /, **options):
        """Define a flag of type bool."""
        return self._define(FlagBoolean, name, **options)

    def bools(self, name, /, **options):
        """Define a flag of type list[bool]."""
        return self._define(FlagBooleans, name, **options)


__all__ = (
    "Flag",
    "FlagString",
    "FlagStrings",
    "FlagNumber",
    "FlagNumbers",
    "FlagBigint",
    "FlagBigints",
    "FlagBoolean",
    "FlagBooleans",
    "FlagSet",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in star-imports. Not part of the public API.
del FlagType
