"""
Commands module behavioral tests (tree building, descent, usage text).

Scope
- Validate command construction faults and tree navigation.
- Validate attachment rules (duplicates, re-attachment, cycles).
- Validate prepare-once semantics for children and roots.
- Validate exclusive subcommand descent and unknown command gating.
- Validate the usage layout and its rich rendering.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (Command, Parser, ParserOptions).
"""

from __future__ import annotations

import contextlib
import io
import unittest
from unittest import TestCase

from pennant import Command, Parser, ParserOptions
from pennant.faults import ConfigurationError, FaultCode, UnknownCommandError


class TestCommandConstruction(TestCase):
    """Identity, descriptions and handlers."""

    def testValidCommand(self):
        command = Command("serve", short="start", long="Start the server.\n\nLong text.")
        self.assertEqual(command.use, "serve")
        self.assertEqual(command.short, "start")
        self.assertEqual(command.long, "Start the server.\n\nLong text.")
        self.assertIsNone(command.run)
        self.assertIsNone(command.parent)
        self.assertEqual(dict(command.children), {})
        self.assertEqual(command.args, [])

    def testInvalidName(self):
        for use in ("", "1st", "a b", "-x"):
            with self.subTest(use=use):
                with self.assertRaises(ConfigurationError) as context:
                    Command(use)
                self.assertEqual(context.exception.code, FaultCode.INVALID_NAME)

    def testShortIsOneLine(self):
        with self.assertRaises(ConfigurationError) as context:
            Command("main", short="a\nb")
        self.assertEqual(context.exception.code, FaultCode.INVALID_DESCRIPTION)

    def testTypeErrors(self):
        with self.assertRaises(TypeError):
            Command(1)
        with self.assertRaises(TypeError):
            Command("main", run="nope")
        with self.assertRaises(TypeError):
            Command("main", prepare=42)
        with self.assertRaises(TypeError):
            Command("main", long=["x"])

    def testRepr(self):
        command = Command("main", short="demo")
        command.add(Command("sub"))
        self.assertEqual(repr(command), "command(use='main', short='demo', long='', children=['sub'])")


class TestCommandTree(TestCase):
    """Attachment, navigation and prepare-once."""

    def testNavigation(self):
        main = Command("main")
        sub = Command("sub")
        leaf = Command("leaf")
        main.add(sub)
        sub.add(leaf)
        self.assertIs(leaf.parent, sub)
        self.assertIs(leaf.root, main)
        self.assertEqual([command.use for command in leaf.path], ["main", "sub", "leaf"])
        self.assertIs(main.children["sub"], sub)
        self.assertEqual(leaf.flags.use, "main sub leaf")

    def testChildrenAreReadOnly(self):
        main = Command("main")
        with self.assertRaises(TypeError):
            main.children["x"] = Command("x")

    def testAddWithoutArgumentsIsNoop(self):
        main = Command("main")
        main.add()
        self.assertEqual(len(main.children), 0)

    def testAddRejectsNonCommands(self):
        with self.assertRaises(TypeError):
            Command("main").add("sub")

    def testDuplicatedChild(self):
        main = Command("main")
        main.add(Command("sub"))
        with self.assertRaises(ConfigurationError) as context:
            main.add(Command("sub"))
        self.assertEqual(context.exception.code, FaultCode.DUPLICATED_COMMAND)

    def testAlreadyAttached(self):
        sub = Command("sub")
        Command("one").add(sub)
        with self.assertRaises(ConfigurationError) as context:
            Command("two").add(sub)
        self.assertEqual(context.exception.code, FaultCode.ATTACHED_COMMAND)

    def testCycles(self):
        main = Command("main")
        sub = Command("sub")
        main.add(sub)
        with self.assertRaises(ConfigurationError) as context:
            sub.add(main)
        self.assertEqual(context.exception.code, FaultCode.CYCLIC_COMMAND)
        with self.assertRaises(ConfigurationError) as context:
            main.add(main)
        self.assertEqual(context.exception.code, FaultCode.CYCLIC_COMMAND)

    def testPrepareRunsOnceOnAttach(self):
        seen = []

        def prepare(flags, command):
            seen.append((flags, command))
            return lambda args, command: None

        main = Command("main")
        sub = Command("sub", prepare=prepare)
        self.assertEqual(seen, [])
        main.add(sub)
        self.assertEqual(seen, [(sub.flags, sub)])
        self.assertIsNotNone(sub.run)

        parser = Parser(main)
        parser.parse(["sub"])
        parser.parse(["sub"])
        self.assertEqual(len(seen), 1)

    def testPrepareReturningNoneKeepsRun(self):
        run = lambda args, command: None  # NOQA: E-731
        command = Command("main", run=run, prepare=lambda flags, command: None)
        Parser(command)
        self.assertIs(command.run, run)

    def testPrepareMustReturnCallable(self):
        with self.assertRaises(TypeError):
            Parser(Command("main", prepare=lambda flags, command: "run"))

    def testRootPreparedOnce(self):
        seen = []
        main = Command("main", prepare=lambda flags, command: seen.append(command))
        Parser(main)
        Parser(main)
        self.assertEqual(seen, [main])

    def testAttachedRootRejected(self):
        sub = Command("sub")
        Command("main").add(sub)
        with self.assertRaises(ConfigurationError) as context:
            Parser(sub)
        self.assertEqual(context.exception.code, FaultCode.ATTACHED_COMMAND)

    def testParserRequiresCommand(self):
        with self.assertRaises(TypeError):
            Parser("main")

    def testCommandDecorator(self):
        main = Command("main")

        @main.command("sub", short="a subcommand")
        def sub(flags, command):
            flags.bool("yes", short="y")

        self.assertIsInstance(sub, Command)
        self.assertIs(sub.parent, main)
        self.assertEqual(sub.short, "a subcommand")
        self.assertIsNotNone(sub.flags.find("yes"))


class TestSubcommands(TestCase):
    """Exclusive descent and unknown command gating."""

    def setUp(self):
        self.calls = []
        self.root = Command("main", run=lambda args, command: self.calls.append(("main", [*args])))
        self.verbose = self.root.flags.bool("verbose", short="v")

        @self.root.command("join", short="join strings")
        def join(flags, command):
            separator = flags.string("separator", short="s", default=",")
            return lambda args, command: self.calls.append(("join", separator.value.join(args)))

        self.join = join
        self.parser = Parser(self.root)

    def testDescentIsExclusive(self):
        self.parser.parse(["-v", "join", "-s", "+", "a", "b"])
        self.assertEqual(self.calls, [("join", "a+b")])
        self.assertIs(self.verbose.value, True)
        self.assertEqual(self.join.args, ["a", "b"])

    def testParentFlagsAfterDescentBelongToChild(self):
        self.parser.parse(["join", "-v"], unknown_flags=True)
        self.assertIs(self.verbose.value, False)
        self.assertEqual(self.calls, [("join", "")])

    def testChildFlagsResetWhenWalked(self):
        self.parser.parse(["join", "-s", "+", "a", "b"])
        self.parser.parse(["join", "a", "b"])
        self.assertEqual(self.calls[-1], ("join", "a,b"))

    def testChildFlagsKeptWhenNotWalked(self):
        self.parser.parse(["join", "-s", "+"])
        self.parser.parse(["-v"])
        self.assertEqual(self.join.flags.find("separator").value, "+")
        self.assertEqual(self.calls[-1], ("main", []))

    def testRootRunsWithoutSubcommand(self):
        self.parser.parse(["-v"])
        self.assertEqual(self.calls, [("main", [])])

    def testUnknownCommand(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.parser.parse(["nope"])
        self.assertEqual(str(context.exception), "unknown command in main: nope")
        self.assertEqual(context.exception.code, FaultCode.UNKNOWN_COMMAND)
        self.assertEqual(self.calls, [])

    def testUnknownCommandQuietAbort(self):
        self.parser.parse(["nope", "join"], options=ParserOptions(unknown_command=True))
        self.assertEqual(self.calls, [])

    def testSubcommandHelp(self):
        with contextlib.redirect_stdout(io.StringIO()) as output:
            self.parser.parse(["join", "--help"])
        self.assertIn("main join [flags]", output.getvalue())
        self.assertIn("help for join", output.getvalue())
        self.assertEqual(self.calls, [])


class TestUsage(TestCase):
    """Usage layout and rendering."""

    def testFlagsLayout(self):
        main = Command("main", short="Demonstrates how to use the flags library")
        main.flags.string("string", short="s", default="-", usage="define a string flag")
        main.flags.bool("version", usage="print app version")
        main.flags.numbers("number", short="n", usage="define a list[int] flag")
        self.assertEqual(main.usage(), "\n".join((
            "Demonstrates how to use the flags library",
            "",
            "Usage:",
            "  main [flags]",
            "",
            "Flags:",
            "  -h, --help       help for main",
            "  -n, --number     define a list[int] flag",
            "  -s, --string     define a string flag (default \"-\")",
            "      --version    print app version",
        )))

    def testCommandsLayout(self):
        main = Command("main")
        main.add(Command("join", short="join strings"), Command("add", short="sum of numbers"))
        self.assertEqual(str(main), "\n".join((
            "Usage:",
            "  main [flags]",
            "  main [command]",
            "",
            "Available Commands:",
            "  add     sum of numbers",
            "  join    join strings",
            "",
            "Flags:",
            "  -h, --help       help for main",
            "",
            "Use \"main [command] --help\" for more information about a command.",
        )))

    def testLongNamesWidenColumns(self):
        main = Command("main", long="Long description.")
        main.add(Command("configure", short="edit settings"))
        main.flags.string("listen-address", values=("a", "b"), usage="bind to")
        lines = main.usage().splitlines()
        self.assertEqual(lines[0], "Long description.")
        self.assertIn("  configure   edit settings", lines)
        self.assertIn("  -h, --help             help for main", lines)
        self.assertIn("      --listen-address   bind to (values [\"a\",\"b\"])", lines)

    def testPrintWritesUsage(self):
        main = Command("main")
        main.flags.bool("verbose", short="v", usage="verbose output")
        with contextlib.redirect_stdout(io.StringIO()) as output:
            main.print()
        self.assertEqual(output.getvalue().rstrip("\n"), main.usage())


if __name__ == "__main__":
    unittest.main()
