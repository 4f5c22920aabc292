"""
Pennant scanner: walk a token vector for one command.

Classification (left to right over the window [start, end))
- "-" / "--"          → unknown flag (skipped when unknown_flags is set)
- "--name[=value]"    → long flag; "--help" is the built-in help flag
- "-abc[=value]"      → short cluster; "h" is the built-in help shorthand
- anything else       → subcommand name when the command has children,
                        otherwise a residual positional argument

Every branch returns how many extra tokens it consumed (0 or 1), or STOP when
help was requested. Descending into a subcommand hands the rest of the window
to a new Scanner; the parent never resumes.

Examples (n is a number flag, v a boolean flag)
- ["-vn", "5"], ["-vn=5"], ["-vn5"]  → v=True, n=5
- ["-v", "x"]                        → v=True, "x" left for the next step
"""
import logging

from .faults import *


logger = logging.getLogger(__name__)

STOP = -1
"""Marker returned by a branch when the parse must end after printing help."""


class Scanner:
    """
    One scanning pass over a command.

    Parameters
    - command: Command whose flags and residual args are filled.
    - tokens: Sequence[str], shared (read-only) by the whole descent.
    - options: ParserOptions gating unknown flags and unknown commands.
    """

    def __init__(self, command, tokens, /, options):
        self._command = command
        self._tokens = tokens
        self._options = options

    @property
    def use(self):
        return self._command.flags.use

    def scan(self, start, end):
        """
        Scan tokens[start:end] for the command, then run its handler.

        Raises
        - UnknownFlagError / UnknownCommandError when the options do not allow them.
        - MissingArgumentError when a non-boolean flag ends the window.
        - InvalidFlagValueError when a flag rejects its value.
        """
        command = self._command
        command.args.clear()
        command.flags.reset()
        logger.debug("scanning %r over tokens [%d, %d)", self.use, start, end)

        if end - start < 1:
            self._finish()
            return

        tokens = self._tokens
        children = command.children
        i = start
        while i < end:
            token = tokens[i]
            following = tokens[i + 1] if i + 1 < end else None

            if token in ("-", "--"):
                step = self._unknown(token)
            elif token.startswith("--"):
                step = self._long(token[2:], following)
            elif token.startswith("-"):
                step = self._short(token[1:], following)
            elif children:
                if (child := children.get(token)) is None:
                    if self._options.unknown_command:
                        logger.debug("unknown command %r in %r ignored, parse aborted", token, self.use)
                        return
                    raise UnknownCommandError(
                        f"unknown command in {self.use}: {token}",
                        code=FaultCode.UNKNOWN_COMMAND, title="unknown command", command=self.use, token=token,
                    )
                logger.debug("descending from %r into %r", self.use, child.use)
                Scanner(child, tokens, options=self._options).scan(i + 1, end)
                return
            else:
                command.args.append(token)
                step = 0

            if step == STOP:
                logger.debug("help requested for %r", self.use)
                command.print()
                return
            i += step + 1

        self._finish()

    def _finish(self):
        command = self._command
        if (run := command.run) is not None:
            logger.debug("running %r with %d argument(s)", self.use, len(command.args))
            run(command.args, command)

    def _unknown(self, display):
        if self._options.unknown_flags:
            logger.debug("unknown flag %r in %r skipped", display, self.use)
            return 0
        raise UnknownFlagError(
            f"unknown flag in {self.use}: {display}",
            code=FaultCode.UNKNOWN_FLAG, title="unknown flag", command=self.use, token=display,
        )

    def _reject(self, flag, display, value):
        if value is None and not flag.is_bool():
            raise MissingArgumentError(
                f"missing argument in {self.use}: {display}",
                code=FaultCode.MISSING_ARGUMENT, title="missing argument", command=self.use, token=display,
            )
        raise InvalidFlagValueError(
            f"invalid flag value in {self.use}: {display}{'' if value is None else f' {value}'}",
            code=FaultCode.INVALID_FLAG_VALUE, title="invalid flag value", command=self.use, token=display,
        )

    def _help(self, following):
        # "false" switches help off and is consumed; anything else is left alone
        return 1 if following == "false" else STOP

    def _explicit_help(self, display, value):
        match value:
            case "true":
                return STOP
            case "false":
                return 0
        raise InvalidFlagValueError(
            f"invalid flag value in {self.use}: {display} {value}",
            code=FaultCode.INVALID_FLAG_VALUE, title="invalid flag value", command=self.use, token=display,
        )

    def _apply(self, flag, display, value, step):
        if flag.add(value):
            return step
        self._reject(flag, display, value)

    def _lookahead(self, flag, display, following):
        if flag.is_bool() and following not in ("true", "false"):
            following = None
        return self._apply(flag, display, following, 0 if following is None else 1)

    def _long(self, text, following):
        name, separator, value = text.partition("=")
        if name == "help":
            return self._explicit_help("--help", value) if separator else self._help(following)
        if (flag := self._command.flags.find(name)) is None:
            return self._unknown(f"--{name}")
        if separator:
            return self._apply(flag, f"--{name}", value, 0)
        return self._lookahead(flag, f"--{name}", following)

    def _short(self, text, following):
        match len(text):
            case 0:
                return self._unknown("-")
            case 1:
                return self._short_one(text, following)

        if text[1] == "=":
            return self._short_inline(text[0], text[2:])

        name = text[0]
        if name == "h":
            return STOP
        if (flag := self._command.flags.find(name, short=True)) is None:
            return self._unknown(f"-{name}")
        if not flag.is_bool():
            return self._short_inline(name, text[1:])

        # a boolean in a cluster is switched on and the rest is a fresh cluster
        self._apply(flag, f"-{name}", None, 0)
        return self._short(text[1:], following)

    def _short_one(self, name, following):
        if name == "h":
            return self._help(following)
        if (flag := self._command.flags.find(name, short=True)) is None:
            return self._unknown(f"-{name}")
        return self._lookahead(flag, f"-{name}", following)

    def _short_inline(self, name, value):
        if name == "h":
            return self._explicit_help("-h", value)
        if (flag := self._command.flags.find(name, short=True)) is None:
            return self._unknown(f"-{name}")
        return self._apply(flag, f"-{name}", value, 0)


__all__ = (
    "Scanner",
    "STOP",
)
