"""
Pennant command layer: command trees, usage text and the parser entry point.

What this module provides
- Command: one node of the command tree.
  • Owns a FlagSet (created eagerly) and the residual positional arguments of
    its last parse.
  • Children are keyed by their use name; the parent link is a weak reference
    so the tree holds no reference cycles.
  • An optional prepare callback runs exactly once, when the node is attached
    (or, for a root, when a Parser is built). It receives (flags, command) and
    may return the run handler.
  • usage() / str(command) render the classic help layout; print() sends it
    through rich.

- Parser: binds a root command and drives a Scanner over a token vector.
- ParserOptions: per-parse switches (unknown_flags, unknown_command).

Quick start
    from pennant import Command, Parser

    main = Command("main", short="an example")

    @main.command("serve", short="start the server")
    def serve(flags, command):
        port = flags.number("port", short="p", default=8080, usage="listen port")
        verbose = flags.bool("verbose", short="v")
        return lambda args, command: print(port.value, verbose.value, args)

    Parser(main).parse("serve -vp 9000 ./public")

Design notes
- A node is prepared once and attached once; re-attaching, duplicate sibling
  names and cycles are configuration errors.
- Parsing resets the flags of every command it walks through, so one tree
  should only host one parse at a time.
"""
import builtins
import functools
import logging
import operator
import re
import shlex
import weakref
from collections import defaultdict, namedtuple
from types import MappingProxyType

from rich.console import Console
from rich.text import Text

from .faults import *
from .flags import FlagSet
from .parsing import Scanner
from .utils import *


logger = logging.getLogger(__name__)

_NAME = re.compile(r"[A-Za-z][A-Za-z0-9\-_.]*")

# narrowest column used for command and flag names in usage listings
_MINPAD = 8


ParserOptions = namedtuple("ParserOptions", (
    "unknown_flags",
    "unknown_command",
), defaults=(False, False))


class CommandType(type):
    """
    Metaclass for commands.

    - __typename__ is derived from the class name for messages and reprs.
    - Names listed in __introspectable__ become read-only properties (mirror()).
    - A compact __repr__ and a __rich_repr__ are generated from those names.
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
            yield "children", [*self.children]
        self.__rich_repr__ = __rich_repr__

        return self


class Command(metaclass=CommandType):
    """
    A node of the command tree.

    Introspection
    - use, short, long: identity and descriptions (read-only).
    - flags: the FlagSet of this command.
    - args: residual positional arguments of the last parse (live list).
    - parent / children / path / root: tree navigation.
    - run: the current handler, or None.
    """

    __introspectable__ = (
        "use",
        "short",
        "long",
    )

    def __init__(
            self,
            use,
            /,
            short=Unset,
            long=Unset,
            run=Unset,
            prepare=Unset
    ):
        """
        Initialize a command.

        Parameters
        - use: str
          Command name, matching r"[A-Za-z][A-Za-z0-9\\-_.]*".
        - short: Unset | str
          One-line description shown in the parent's command listing.
        - long: Unset | str
          Free text shown at the top of this command's usage.
        - run: Unset | Callable[[list[str], Command], None]
          Handler invoked with the residual args once the command is resolved.
        - prepare: Unset | Callable[[FlagSet, Command], Callable | None]
          One-time setup hook; a returned callable replaces run.

        Raises
        - TypeError: non-string texts or non-callable handlers.
        - ConfigurationError: malformed use name or multi-line short description.
        """
        typename = type(self).__typename__
        if not isinstance(use, str):
            raise TypeError(f"{typename} 'use' must be a string")
        if not _NAME.fullmatch(use):
            raise ConfigurationError(
                f"{use!r} command should match \"^[a-zA-Z][a-zA-Z0-9\\-_\\.]*$\"",
                code=FaultCode.INVALID_NAME, title="invalid command name", token=use,
            )

        short = coalesce(short, "")
        if not isinstance(short, str):
            raise TypeError(f"{typename} 'short' must be a string")
        if "\n" in short:
            raise ConfigurationError(
                f"command short invalid: {short}",
                code=FaultCode.INVALID_DESCRIPTION, title="invalid command description", token=use,
            )

        long = coalesce(long, "")
        if not isinstance(long, str):
            raise TypeError(f"{typename} 'long' must be a string")

        run = coalesce(run)
        if run is not None and not callable(run):
            raise TypeError(f"{typename} 'run' must be callable")

        prepare = coalesce(prepare)
        if prepare is not None and not callable(prepare):
            raise TypeError(f"{typename} 'prepare' must be callable")

        self._use = use
        self._short = short
        self._long = long
        self._run = run
        self._prepare = prepare
        self._prepared = False
        self._parent = None
        self._children = None
        self._args = []
        self._flags = FlagSet(self)

    def __str__(self):
        return self.usage()

    @property
    def flags(self):
        return self._flags

    @property
    def args(self):
        return self._args

    @property
    def run(self):
        return self._run

    @property
    def parent(self):
        """
        The parent command, or None for a root (or a parent already collected).
        """
        return self._parent() if self._parent is not None else None

    @property
    def children(self):
        return MappingProxyType(self._children if self._children is not None else {})

    @property
    def path(self):
        """
        Commands from the root down to this one (inclusive).
        """
        path = []
        command = self
        while command is not None:
            path.append(command)
            command = command.parent
        return tuple(reversed(path))

    @property
    def root(self):
        return self.path[0]

    def _prepare_once(self):
        if self._prepared:
            return
        self._prepared = True
        if self._prepare is None:
            return

        logger.debug("preparing command %r", self._use)
        if (run := self._prepare(self._flags, self)) is not None:
            if not callable(run):
                raise TypeError(f"{type(self).__typename__} 'prepare' must return a callable or None")
            self._run = run

    def add(self, *children):
        """
        Attach child commands.

        Each child is linked to this command, prepared (once) and indexed by its
        use name. Calling add() without arguments does nothing.

        Raises
        - TypeError: an argument is not a Command.
        - ConfigurationError: the child already has a parent, a sibling with
          the same name exists, or the child is this command or one of its
          ancestors.
        """
        for child in children:
            if not isinstance(child, Command):
                raise TypeError("Command.add() arguments must be commands")

            use = child.use
            if child._parent is not None:
                raise ConfigurationError(
                    f"command {use!r} is already attached to a parent",
                    code=FaultCode.ATTACHED_COMMAND, title="attached command", command=self._flags.use, token=use,
                )
            if any(command is child for command in self.path):
                raise ConfigurationError(
                    f"command {use!r} cannot be attached below itself",
                    code=FaultCode.CYCLIC_COMMAND, title="cyclic command", command=self._flags.use, token=use,
                )
            if self._children is not None and use in self._children:
                raise ConfigurationError(
                    f"command {use!r} already exists in {self._flags.use!r}",
                    code=FaultCode.DUPLICATED_COMMAND, title="duplicated command", command=self._flags.use, token=use,
                )

            child._parent = weakref.ref(self)
            logger.debug("attached command %r to %r", use, self._flags.use)
            child._prepare_once()

            if self._children is None:
                self._children = {}
            self._children[use] = child

    def command(self, use, /, **options):
        """
        Decorator form of add(): the decorated function becomes the prepare
        callback of a new child command, which is attached and returned.

            @main.command("sub", short="a subcommand")
            def sub(flags, command):
                ...
        """
        @rename("command")
        def wrapper(prepare):
            if not builtins.callable(prepare):
                raise TypeError("@command() must be applied to a callable")
            self.add(child := Command(use, prepare=prepare, **options))
            return child

        return wrapper

    def usage(self):
        use = self._flags.use
        lines = []

        if description := self._long or self._short:
            lines.append(description)
            lines.append("\nUsage:")
        else:
            lines.append("Usage:")
        lines.append(f"  {use} [flags]")

        if self._children:
            lines.append(f"  {use} [command]\n\nAvailable Commands:")
            pad = max(_MINPAD, max(map(len, self._children)) + 3)
            for name in sorted(self._children):
                lines.append(f"  {name.ljust(pad)}{self._children[name].short}")

        flags = [*self._flags]
        sp = max(1, max((len(flag.short) for flag in flags), default=0))
        lp = max(_MINPAD, max((len(flag.name) for flag in flags), default=0))

        lines.append(f"\nFlags:\n  -{'h'.ljust(sp)}, --{'help'.ljust(lp)}   help for {self._use}")
        for flag in flags:
            extra = "".join(f" {text}" for text in (flag.default_string(), flag.values_string()) if text)
            if flag.short:
                lines.append(f"  -{flag.short.ljust(sp)}, --{flag.name.ljust(lp)}   {flag.usage}{extra}")
            else:
                lines.append(f"   {''.ljust(sp)}  --{flag.name.ljust(lp)}   {flag.usage}{extra}")

        if self._children:
            lines.append(f"\nUse \"{use} [command] --help\" for more information about a command.")
        return "\n".join(lines)

    def print(self):
        """
        Print usage() to standard output through rich.

        Palette keys (override through __styles__ in __main__):
        usage-title (section headings) and usage-flag (flag names).
        """
        styles = defaultdict(str, {
            "usage-title": "bold #FF4D94",  # magenta section headings
            "usage-flag": "#00E6FF",  # cyan flag names
        } | getattr(__import__("__main__"), "__styles__", {}))

        text = Text(self.usage())
        text.highlight_regex(r"(?m)^(?:Usage|Available Commands|Flags):$", styles["usage-title"])
        text.highlight_regex(r"(?<![\w-])--?[A-Za-z][\w\-.]*", styles["usage-flag"])
        Console(soft_wrap=True, highlight=False).print(text)


class Parser:
    """
    Entry point binding a root command.

    Building a Parser prepares the root (once). parse() may be called any
    number of times; each call resets the flags of the commands it walks.
    """

    def __init__(self, root, /):
        if not isinstance(root, Command):
            raise TypeError("Parser() argument must be a command")
        if root._parent is not None:
            raise ConfigurationError(
                f"command {root.use!r} is attached to a parent and cannot be a root",
                code=FaultCode.ATTACHED_COMMAND, title="attached command", command=root.flags.use, token=root.use,
            )
        root._prepare_once()
        self._root = root

    @property
    def root(self):
        return self._root

    def parse(self, prompt, /, options=Unset, **overrides):
        """
        Parse a prompt against the root command.

        Parameters
        - prompt: str | Iterable[str]
          A shell-like string (split with shlex) or the token vector itself,
          e.g. sys.argv[1:].
        - options: Unset | ParserOptions
          Base options; ParserOptions() when Unset.
        - overrides: unknown_flags / unknown_command replacing single fields.

        Raises
        - TypeError: a non-string token, options that are not ParserOptions or
          an override naming no ParserOptions field.
        - FlagsException subclasses raised while scanning.
        """
        options = coalesce(options, ParserOptions())
        if not isinstance(options, ParserOptions):
            raise TypeError("Parser.parse() 'options' must be parser options")
        if unexpected := sorted(overrides.keys() - set(ParserOptions._fields)):
            raise TypeError(f"Parser.parse() got unexpected option(s): {', '.join(unexpected)}")
        if overrides:
            options = options._replace(**overrides)

        tokens = shlex.split(prompt) if isinstance(prompt, str) else [*prompt]
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("Parser.parse() tokens must be strings")

        logger.debug("parsing %d token(s) with %r", len(tokens), options)
        Scanner(self._root, tokens, options=options).scan(0, len(tokens))


__all__ = (
    "Command",
    "Parser",
    "ParserOptions",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in star-imports. Not part of the public API.
del CommandType
