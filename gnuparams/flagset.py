r"""
gnuparams flag registry and GNU-style token resolver.

Overview
- Flag
  • One logical flag: its names (aliases), usage text, value, the default as
    text (captured once at registration), optional metavar, arity and the
    help grouping it was registered under. Read-only once created.

- FlagSet
  • Registration: add(value, names, …) plus typed helpers (present, boolean,
    integer, int32, int64, uint, uint32, uint64, float64, duration, string,
    func, slice). Every name of a record points at the same record index.
  • Parsing: parse(arguments) walks the tokens once, assigns values and
    collects positional arguments.
  • Inspection: lookup, visit, visit_all, args, arg, narg, nflag, parsed.
  • Help: print_defaults, defaults, print_usage (see gnuparams.formatting).

Token grammar
    --              stop scanning; the rest is positional
    --name          long flag, value (if any) from the next token
    --name=value    long flag with an attached value
    -x              short flag
    -xyz            cluster of short flags (-x -y -z)
    -xvalue         short flag with an attached value (when x takes one)
    -x=value        short flag with an explicitly attached value
    -  / "" / word  positional; scanning stops unless intersperse is on

Resolution
- Unknown name: "h"/"help" (when not registered) renders usage and yields the
  HELP sentinel; anything else is an UnknownFlagError.
- nargs 0: no attached value allowed; the rest of a short cluster keeps being
  read as flags, unless the value is boolean-capable and the rest is a
  boolean literal (`-b0`), which is then consumed as its value.
- nargs 1: cluster remainder, then attached value, then the next token.
  A present-capable value takes an attached value when one is given and is
  triggered with no tokens otherwise.
- nargs N > 1: the next N tokens verbatim; attached values are rejected.
- nargs Ellipsis: the attached value (if any) and following tokens up to the
  next token that looks like a flag.

Error policy
- Every parse fault is printed to the output sink followed by the usage,
  then Policy decides: return it, exit (0 for help, 2 otherwise) or raise.
- Registering a name twice always raises DuplicateFlagError.

Concurrency
- A FlagSet is a plain mutable object. Parsing or registering on the same
  instance from several threads at once is undefined; serialize externally.

Quick example
    >>> flags = FlagSet("serve")
    >>> port = flags.integer("p port", 8080, "listen port", metavar="PORT")
    >>> flags.parse(["-p9090", "extra"]) is None
    True
    >>> port.get(), flags.args
    (9090, ['extra'])
"""
import logging
from collections import deque
from collections.abc import Iterable
from types import EllipsisType

from rich.console import Console
from rich.text import Text

from . import formatting
from .faults import (
    Policy,
    ParamsException,
    MalformedTokenError,
    UnknownFlagError,
    UnwantedValueError,
    MissingValueError,
    NotEnoughValuesError,
    InvalidValueError,
    OutOfRangeError,
    DuplicateFlagError,
    HELP,
    trigger,
)
from .utils import Unset, mirror, dashed, quote
from .values import (
    INT_BITS,
    Value,
    RangeError,
    PresentValue,
    BoolValue,
    IntValue,
    UintValue,
    FloatValue,
    DurationValue,
    StringValue,
    FuncValue,
    SliceValue,
    arity,
)

logger = logging.getLogger(__name__)


class Flag:
    """
    Registered state of one logical flag.

    Properties
    - names: tuple[str, ...], canonical name first (a multi-rune name is
      preferred as canonical when one exists).
    - usage: help text, may contain line breaks.
    - value: the Value instance shared by every alias.
    - default: str(value) at registration time.
    - metavar: label shown after the names in help ("" for none).
    - nargs: tokens consumed per occurrence (int or Ellipsis).
    - group: help grouping label, or None.
    """
    __introspectable__ = ("names", "usage", "value", "default", "metavar", "nargs", "group")

    names = mirror("names")
    usage = mirror("usage")
    value = mirror("value")
    default = mirror("default")
    metavar = mirror("metavar")
    nargs = mirror("nargs")
    group = mirror("group")

    def __init__(self, names, usage, value, *, metavar="", group=None):
        self._names = tuple(names)
        self._usage = usage
        self._value = value
        self._default = str(value)
        self._metavar = metavar
        self._nargs = arity(value)
        self._group = group

    @property
    def name(self):
        """Canonical name."""
        return self._names[0]

    def __repr__(self):
        return "flag(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)


def _sanitize_names(names, /):
    """
    Normalize names given as "p port" or ["p", "port"] into a tuple whose
    first entry is the canonical name.
    """
    if isinstance(names, str):
        names = names.split()
    elif isinstance(names, Iterable):
        names = list(names)
    else:
        raise TypeError("flag names must be a string or an iterable of strings")

    if not names:
        raise ValueError("a flag needs at least one name")

    seen = []
    for name in names:
        if not isinstance(name, str):
            raise TypeError("flag names must be strings")
        elif not name:
            raise ValueError("flag names cannot be empty")
        elif any(char.isspace() for char in name):
            raise ValueError(f"flag name {name!r} cannot contain whitespace")
        elif name.startswith("-"):
            raise ValueError(f"flag name {name!r} must be given without leading dashes")
        elif "=" in name:
            raise ValueError(f"flag name {name!r} cannot contain '='")
        elif name in seen:
            raise ValueError(f"flag name {name!r} is repeated")
        seen.append(name)

    # "i install" is canonically "install"; "-i" still prints first in help
    if len(seen[0]) == 1:
        for index, name in enumerate(seen):
            if len(name) > 1:
                seen.insert(0, seen.pop(index))
                break
    return tuple(seen)


def _looks_like_flag(token):
    return token.startswith("-") and token != "-"


def _is_bool_literal(text):
    return text.lower() in ("1", "t", "true", "0", "f", "false")


class FlagSet:
    """
    A set of flags plus the state of the most recent parse.

    Parameters
    - name: program or subcommand name used in "Usage of NAME:" and in the
      "redefined" diagnostic. May be empty.
    - policy: Policy applied to parse faults (default Policy.PROPAGATE).
    - label: the word for "flag" in every message ("parameter", "option" …).
    - output: a rich Console, a text stream (wrapped in a Console), or Unset for
      Console(stderr=True).
    - intersperse: allow positional arguments between flags.
    - usage_indent: fixed help column replacing the computed one (0 = compute).
    - groupings: show grouping subheadings in help.
    - colorful: style help and faults with the palette.
    - usage: callable replacing the default usage printer.
    """
    name = mirror("name")
    policy = mirror("policy")
    label = mirror("label")
    parsed = mirror("parsed")

    def __init__(
            self,
            name="",
            policy=Policy.PROPAGATE,
            *,
            label="parameter",
            output=Unset,
            intersperse=False,
            usage_indent=0,
            groupings=True,
            colorful=False,
            usage=None
    ):
        if not isinstance(name, str):
            raise TypeError("flag set name must be a string")
        if not isinstance(policy, Policy):
            raise TypeError("flag set policy must be a Policy member")
        if not isinstance(label, str):
            raise TypeError("flag set label must be a string")
        elif not (label := label.strip()):
            raise ValueError("flag set label cannot be empty")
        if isinstance(usage_indent, bool) or not isinstance(usage_indent, int) or usage_indent < 0:
            raise ValueError("usage indent must be a non-negative integer")
        if usage is not None and not callable(usage):
            raise TypeError("usage must be callable")

        self._name = name
        self._policy = policy
        self._label = label
        self._parsed = False
        self.output = output
        self.intersperse = bool(intersperse)
        self.usage_indent = usage_indent
        self.groupings = bool(groupings)
        self.colorful = bool(colorful)
        self.usage = usage

        self._records = []  # owned records, in registration order
        self._formal = {}  # every name -> record index
        self._actual = {}  # canonical name -> record index, last parse only
        self._group = None

        self._args = []
        self._pending = deque()
        self._cluster = ""

    # --- output ---

    @property
    def output(self):
        """The rich Console receiving faults and help."""
        if self._output is Unset:
            self._output = Console(stderr=True)
        return self._output

    @output.setter
    def output(self, output):
        if output is Unset or output is None:
            self._output = Unset
        elif isinstance(output, Console):
            self._output = output
        elif callable(getattr(output, "write", None)):
            self._output = Console(file=output, highlight=False)
        else:
            raise TypeError("output must be a rich Console or a writable text stream")

    def _print(self, *renderables):
        for renderable in renderables:
            self.output.print(renderable, soft_wrap=True)

    # --- registration ---

    def grouping(self, label, /):
        """
        Start a help grouping; flags registered from now on are listed under it.
        """
        if not isinstance(label, str):
            raise TypeError("grouping label must be a string")
        elif not (label := label.strip()):
            raise ValueError("grouping label cannot be empty")
        self._group = label

    def add(self, value, names, usage="", *, metavar=""):
        """
        Register a value under one or more names and return the value.

        Raises
        - TypeError/ValueError: malformed names, usage or metavar.
        - DuplicateFlagError: a name is already registered (after printing a
          "redefined" line to the output). Never subject to the policy.
        """
        if not isinstance(value, Value):
            raise TypeError("flag value must be a Value instance")
        if not isinstance(usage, str):
            raise TypeError("flag usage must be a string")
        if not isinstance(metavar, str):
            raise TypeError("flag metavar must be a string")
        names = _sanitize_names(names)

        for name in names:
            if name in self._formal:
                self._print(Text(" ".join(filter(None, (self._name, self._label, "redefined:", name)))))
                raise DuplicateFlagError(f"{self._label} redefinition: {name}", flag=name, label=self._label)

        record = Flag(names, usage, value, metavar=metavar.strip(), group=self._group)
        index = len(self._records)
        self._records.append(record)
        for name in names:
            self._formal[name] = index
        logger.debug("registered %s as %s (nargs=%r)", record.name, type(value).__name__, record.nargs)
        return value

    def present(self, names, usage=""):
        return self.add(PresentValue(), names, usage)

    def boolean(self, names, default=False, usage="", *, metavar=""):
        return self.add(BoolValue(default), names, usage, metavar=metavar)

    def integer(self, names, default=0, usage="", *, metavar=""):
        return self.add(IntValue(default, bits=INT_BITS), names, usage, metavar=metavar)

    def int32(self, names, default=0, usage="", *, metavar=""):
        return self.add(IntValue(default, bits=32), names, usage, metavar=metavar)

    def int64(self, names, default=0, usage="", *, metavar=""):
        return self.add(IntValue(default, bits=64), names, usage, metavar=metavar)

    def uint(self, names, default=0, usage="", *, metavar=""):
        return self.add(UintValue(default, bits=INT_BITS), names, usage, metavar=metavar)

    def uint32(self, names, default=0, usage="", *, metavar=""):
        return self.add(UintValue(default, bits=32), names, usage, metavar=metavar)

    def uint64(self, names, default=0, usage="", *, metavar=""):
        return self.add(UintValue(default, bits=64), names, usage, metavar=metavar)

    def float64(self, names, default=0.0, usage="", *, metavar=""):
        return self.add(FloatValue(default), names, usage, metavar=metavar)

    def duration(self, names, default=0, usage="", *, metavar=""):
        return self.add(DurationValue(default), names, usage, metavar=metavar)

    def string(self, names, default="", usage="", *, metavar=""):
        return self.add(StringValue(default), names, usage, metavar=metavar)

    def func(self, names, callback, usage="", *, metavar="", nargs=1):
        return self.add(FuncValue(callback, nargs), names, usage, metavar=metavar)

    def slice(self, names, default=(), usage="", *, metavar=""):
        return self.add(SliceValue(default), names, usage, metavar=metavar)

    # --- inspection ---

    def lookup(self, name, /):
        """Return the Flag registered under name, or None."""
        index = self._formal.get(name)
        return None if index is None else self._records[index]

    def __contains__(self, name):
        return name in self._formal

    def __getitem__(self, name):
        """Current native value of the named flag (KeyError when unknown)."""
        return self._records[self._formal[name]].value.get()

    def visit_all(self):
        """Yield every flag once, sorted by canonical name."""
        yield from sorted(self._records, key=lambda record: record.name)

    def visit(self):
        """Yield the flags set by the last parse (or set()), sorted by canonical name."""
        yield from sorted(map(self._records.__getitem__, self._actual.values()), key=lambda record: record.name)

    @property
    def args(self):
        """Positional arguments left by the last parse."""
        return list(self._args)

    def arg(self, index, /):
        """The index-th positional argument, or "" when out of range."""
        if not 0 <= index < len(self._args):
            return ""
        return self._args[index]

    @property
    def narg(self):
        return len(self._args)

    @property
    def nflag(self):
        return len(self._actual)

    # --- assignment ---

    def _fault(self, cls, message, /, **options):
        return cls(message, label=self._label, colorful=self.colorful, **options)

    def _assign(self, index, name, tokens):
        record = self._records[index]
        try:
            record.value.set(tokens)
        except Exception as exception:
            if len(tokens) == 1:
                shown = "value %s" % quote(tokens[0])
            else:
                shown = "values [%s]" % " ".join(map(quote, tokens))
            fault = self._fault(
                OutOfRangeError if isinstance(exception, RangeError) else InvalidValueError,
                "invalid %s for %s %s: %s" % (shown, self._label, dashed(name), exception),
                flag=name,
                input=tuple(tokens),
            )
            raise fault from exception
        self._actual[record.name] = index
        logger.debug("set %s from %r", record.name, tokens)

    def set(self, name, tokens, /):
        """
        Set a flag programmatically, as if it appeared on the command line.

        tokens may be a single string or a sequence of strings. Faults are
        raised directly; the error policy does not apply.
        """
        if isinstance(tokens, str):
            tokens = [tokens]
        if (index := self._formal.get(name)) is None:
            raise self._fault(UnknownFlagError, f"no such {self._label} {dashed(name)}", flag=name)
        self._assign(index, name, list(tokens))

    # --- parsing ---

    def _split(self, cluster):
        # One code point is the flag; "=" right after it attaches the rest.
        name, rest = cluster[0], cluster[1:]
        if rest.startswith("="):
            self._cluster = ""
            return name, False, rest[1:]
        self._cluster = rest
        return name, False, None

    def _scan(self):
        """
        Classify the next token.

        Returns (name, long, attached) for a flag candidate, or None once
        scanning is over. attached is None when no value was attached.
        """
        if self._cluster:
            return self._split(self._cluster)

        while self._pending:
            token = self._pending.popleft()

            if token == "--":
                self._args.extend(self._pending)
                self._pending.clear()
                return None

            if not _looks_like_flag(token):
                self._args.append(token)
                if self.intersperse:
                    continue
                self._args.extend(self._pending)
                self._pending.clear()
                return None

            if token.startswith("--"):
                name, equals, attached = token[2:].partition("=")
                if not name:
                    raise self._fault(
                        MalformedTokenError,
                        f"empty {self._label} in argument {quote(token)}",
                        input=token,
                    )
                return name, True, attached if equals else None

            return self._split(token[1:])
        return None

    def _resolve(self, name, long, attached):
        if (index := self._formal.get(name)) is None:
            if name in ("h", "help"):
                return HELP
            raise self._fault(
                UnknownFlagError,
                f"{self._label} provided but not defined: {dashed(name)}",
                flag=name,
            )

        record = self._records[index]
        value = record.value

        match record.nargs:
            case 0:
                if attached is not None:
                    raise self._fault(
                        UnwantedValueError,
                        f"{self._label} unwanted argument {quote(attached)} found after: {dashed(name)}",
                        flag=name,
                        input=attached,
                    )
                tokens = []
                if value.boolean and self._cluster and _is_bool_literal(self._cluster):
                    tokens, self._cluster = [self._cluster], ""
                self._assign(index, name, tokens)

            case 1:
                if self._cluster:
                    attached, self._cluster = self._cluster, ""
                if attached is not None:
                    self._assign(index, name, [attached])
                elif value.present:
                    self._assign(index, name, [])
                elif self._pending:
                    self._assign(index, name, [self._pending.popleft()])
                else:
                    raise self._fault(
                        MissingValueError,
                        f"{self._label} needs a parameter: {dashed(name)}",
                        flag=name,
                    )

            case EllipsisType():
                tokens = []
                if self._cluster:
                    attached, self._cluster = self._cluster, ""
                if attached is not None:
                    tokens.append(attached)
                while self._pending and not _looks_like_flag(self._pending[0]):
                    tokens.append(self._pending.popleft())
                if not tokens:
                    raise self._fault(
                        MissingValueError,
                        f"{self._label} needs a parameter: {dashed(name)}",
                        flag=name,
                    )
                self._assign(index, name, tokens)

            case count:
                if attached is not None or self._cluster:
                    raise self._fault(
                        NotEnoughValuesError,
                        f"{self._label} needs more than one parameter: {dashed(name)}",
                        flag=name,
                        input=attached if attached is not None else self._cluster,
                    )
                if len(self._pending) < count:
                    raise self._fault(
                        NotEnoughValuesError,
                        f"{self._label} not enough parameters provided: {dashed(name)}",
                        flag=name,
                        input=tuple(self._pending),
                    )
                self._assign(index, name, [self._pending.popleft() for _ in range(count)])
        return None

    def parse(self, arguments):
        """
        Parse an argument sequence (program name excluded).

        Returns
        - None on success.
        - Under Policy.PROPAGATE, the fault that stopped parsing (HELP for an
          implicit -h/--help). Other policies exit or raise instead.

        Each call resets the positional arguments and the set of triggered
        flags. Values keep whatever previous parses stored until they are set
        again; a slice given again in a later parse is replaced, not extended.
        """
        if isinstance(arguments, str) or not isinstance(arguments, Iterable):
            raise TypeError("parse() argument must be a sequence of strings")
        arguments = list(arguments)
        if not all(isinstance(argument, str) for argument in arguments):
            raise TypeError("parse() argument must be a sequence of strings")

        self._parsed = True
        self._pending = deque(arguments)
        self._cluster = ""
        self._args = []
        self._actual = {}
        for record in self._records:
            record.value.reset()
        logger.debug("parsing %d argument(s) for %r", len(arguments), self._name)

        try:
            outcome = self._consume()
        except ParamsException as exception:
            outcome = exception
        finally:
            self._pending.clear()
            self._cluster = ""

        if outcome is None:
            return None
        if outcome is not HELP:
            logger.debug("parse failed: %s", outcome)
            self._print(outcome)
        self.print_usage()
        return trigger(outcome, self._policy)

    def _consume(self):
        while (candidate := self._scan()) is not None:
            if self._resolve(*candidate) is HELP:
                return HELP
        return None

    # --- help ---

    def _render(self):
        return formatting.render(
            self._records,
            label=self._label,
            usage_indent=self.usage_indent,
            groupings=self.groupings,
            colorful=self.colorful,
        )

    def print_defaults(self):
        """Print the aligned flag listing to the output."""
        self._print(*self._render())

    def defaults(self):
        """The aligned flag listing as plain text, one line per row."""
        return "".join(line.plain + "\n" for line in self._render())

    def print_usage(self):
        """Print the usage message (or call the custom usage callable)."""
        if self.usage is not None:
            self.usage()
            return
        self._print(*formatting.usage(
            self._name,
            self._records,
            label=self._label,
            usage_indent=self.usage_indent,
            groupings=self.groupings,
            colorful=self.colorful,
        ))

    def __repr__(self):
        return f"FlagSet(name={self._name!r}, policy={self._policy}, flags={len(self._records)})"

    def __rich_repr__(self):
        yield "name", self._name
        yield "policy", self._policy
        yield "label", self._label
        yield "flags", tuple(record.name for record in self._records)


__all__ = (
    "Flag",
    "FlagSet",
)
