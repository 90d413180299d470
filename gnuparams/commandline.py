"""
Process-wide convenience registry.

`command_line` is a FlagSet named after sys.argv[0] that exits on error
(status 2, or 0 for an implicit --help). The module functions below are thin
wrappers around it for small scripts:

    from gnuparams import commandline

    verbose = commandline.present("v verbose", "chatty output")
    port = commandline.integer("p port", 8080, "listen port", metavar="PORT")
    commandline.parse()

It carries the same contract as any FlagSet: not thread-safe, meant to be
populated and parsed from one thread at program start. Programs that need
more than one registry should build their own FlagSet instances instead.
"""
import shlex
import sys
from collections.abc import Iterable

from .faults import Policy
from .flagset import FlagSet
from .utils import Unset, coalesce

command_line = FlagSet(sys.argv[0] if sys.argv else "", Policy.TERMINATE)


def parse(prompt=Unset, /):
    """
    Parse the process arguments into command_line.

    Parameters
    - prompt:
      • Unset: read tokens from sys.argv[1:].
      • str: shell-like string; split via shlex.split.
      • Iterable[str]: pre-tokenized sequence, used verbatim.
    """
    prompt = coalesce(prompt, sys.argv[1:])
    if isinstance(prompt, str):
        tokens = shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        tokens = list(prompt)
    else:
        raise TypeError("parse() argument must be a string or an iterable of strings")
    return command_line.parse(tokens)


def add(value, names, usage="", *, metavar=""):
    return command_line.add(value, names, usage, metavar=metavar)


def grouping(label, /):
    command_line.grouping(label)


def present(names, usage=""):
    return command_line.present(names, usage)


def boolean(names, default=False, usage="", *, metavar=""):
    return command_line.boolean(names, default, usage, metavar=metavar)


def integer(names, default=0, usage="", *, metavar=""):
    return command_line.integer(names, default, usage, metavar=metavar)


def int32(names, default=0, usage="", *, metavar=""):
    return command_line.int32(names, default, usage, metavar=metavar)


def int64(names, default=0, usage="", *, metavar=""):
    return command_line.int64(names, default, usage, metavar=metavar)


def uint(names, default=0, usage="", *, metavar=""):
    return command_line.uint(names, default, usage, metavar=metavar)


def uint32(names, default=0, usage="", *, metavar=""):
    return command_line.uint32(names, default, usage, metavar=metavar)


def uint64(names, default=0, usage="", *, metavar=""):
    return command_line.uint64(names, default, usage, metavar=metavar)


def float64(names, default=0.0, usage="", *, metavar=""):
    return command_line.float64(names, default, usage, metavar=metavar)


def duration(names, default=0, usage="", *, metavar=""):
    return command_line.duration(names, default, usage, metavar=metavar)


def string(names, default="", usage="", *, metavar=""):
    return command_line.string(names, default, usage, metavar=metavar)


def func(names, callback, usage="", *, metavar="", nargs=1):
    return command_line.func(names, callback, usage, metavar=metavar, nargs=nargs)


def slice(names, default=(), usage="", *, metavar=""):
    return command_line.slice(names, default, usage, metavar=metavar)


def set(name, tokens, /):
    command_line.set(name, tokens)


def lookup(name, /):
    return command_line.lookup(name)


def visit():
    return command_line.visit()


def visit_all():
    return command_line.visit_all()


def args():
    return command_line.args


def arg(index, /):
    return command_line.arg(index)


def narg():
    return command_line.narg


def nflag():
    return command_line.nflag


def parsed():
    return command_line.parsed


def print_defaults():
    command_line.print_defaults()


def print_usage():
    command_line.print_usage()


__all__ = (
    "command_line",
)
