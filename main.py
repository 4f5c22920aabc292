import sys

from rich.console import Console
from rich.pretty import pprint

from pennant import *


def build():
    main = Command("main.py", short="Demonstrates how to use the flags library")

    @main.command("echo", short="print flags and arguments")
    def echo(flags, command):
        string = flags.string("string", short="s", default="-", usage="define a string flag")
        version = flags.bool("version", usage="print app version")
        numbers = flags.numbers("number", short="n", usage="define a list[int] flag")

        def run(args, command):
            if version.value:
                print("version: v0.1.0")
            pprint(dict(string=string.value, numbers=numbers.value, args=args))
        return run

    @main.command("add", short="sum of numbers")
    def add(flags, command):
        def run(args, command):
            print(f"num={sum(map(int, args))}")
        return run

    @main.command("join", short="join strings")
    def join(flags, command):
        separator = flags.string(
            "separator",
            short="s",
            default=",",
            usage="A string used to separate one element of the list from the next in the resulting string.",
        )
        return lambda args, command: print(separator.value.join(args))

    return main


if __name__ == '__main__':
    root = build()
    try:
        Parser(root).parse(sys.argv[1:] or ["--help"])
    except FlagsException as e:
        Console(stderr=True).print(e)
        sys.exit(1)
