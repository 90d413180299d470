r"""
gnuparams value model.

Overview
- Value (abstract)
  • set(tokens): convert and store; tokens always has exactly `nargs` items
    (or one-or-more for variadic values). On failure nothing is stored.
  • get(): the stored value as a native Python object.
  • str(value): canonical text, captured once at registration as the default
    shown in help.
  • reset(): start-of-parse hook (no-op by default).

- Class-level tags (read by the resolver, never probed by isinstance)
  • kind: Kind, which variant the value is.
  • nargs: tokens consumed when triggered (0, 1, N, or Ellipsis for "until next flag").
  • present: may be triggered with zero tokens even when nargs is 1.
  • boolean: a short cluster may attach a boolean literal (`-b0`, `-bfalse`).

- Variants
  • PresentValue     nargs=0, becomes true on occurrence
  • BoolValue        true/t/1/false/f/0, case-insensitive
  • IntValue         signed, width-checked (platform, 32 or 64 bits)
  • UintValue        unsigned, width-checked
  • FloatValue       IEEE double, infinity from a finite literal is a range failure
  • DurationValue    "1h30m", "250ms", "1.5s" … (stored as nanoseconds)
  • StringValue      passthrough
  • FuncValue        caller callback receives the raw tokens
  • SliceValue       variadic, collects tokens until the next flag

Conversion failures
- ConversionError(ValueError): text cannot be converted ("invalid syntax").
- RangeError(ConversionError): text parses but does not fit the target width.

Canonical text
- booleans:  "true" / "false"
- integers:  decimal
- floats:    shortest round-trip digits, exponent form outside 1e-4 .. 1e21
             (2.7, 0, 1e+21, 2.5e-05, +Inf, NaN)
- durations: "0s", "7ns", "1.5µs", "250ms", "1.5s", "2m0s", "1h30m0s"
- functions: always empty
- slices:    "[a, b]"
"""
import datetime
import enum
import logging
import math
import re
import sys
from abc import ABC, abstractmethod
from decimal import Decimal
from types import EllipsisType

from .utils import quote

logger = logging.getLogger(__name__)

INT_BITS = sys.maxsize.bit_length() + 1
"""Width of the platform's native signed integer, in bits."""


class Kind(enum.Enum):
    """
    Variant tag carried by every value class.

    The help formatter and the resolver dispatch on this tag (plus the
    `present`/`boolean` markers) instead of inspecting concrete types.
    """
    PRESENT = "present"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DURATION = "duration"
    STRING = "string"
    FUNCTION = "function"
    SLICE = "slice"
    CUSTOM = "custom"


class ConversionError(ValueError):
    """Raised by Value.set() when a token cannot be converted."""


class RangeError(ConversionError):
    """Raised by Value.set() when a numeric token exceeds the target width."""


def _syntax(text):
    return ConversionError("parsing %s: invalid syntax" % quote(text))


def _range(text):
    return RangeError("parsing %s: value out of range" % quote(text))


class Value(ABC):
    """
    Base class for everything a flag can hold.

    Subclass it (kind defaults to Kind.CUSTOM) and implement set/get/__str__
    to plug a user-defined type into a FlagSet:

        class URLValue(Value):
            def __init__(self):
                self.url = None
            def set(self, tokens):
                self.url = urllib.parse.urlsplit(tokens[0])
            def get(self):
                return self.url
            def __str__(self):
                return self.url.geturl() if self.url else ""
    """
    kind = Kind.CUSTOM
    nargs = 1
    present = False
    boolean = False

    @abstractmethod
    def set(self, tokens):
        raise NotImplementedError

    @abstractmethod
    def get(self):
        raise NotImplementedError

    @abstractmethod
    def __str__(self):
        raise NotImplementedError

    def reset(self):
        """Called once at the start of every parse, before any set()."""

    def __repr__(self):
        return f"{type(self).__name__}({str(self)!r})"


class PresentValue(Value):
    kind = Kind.PRESENT
    nargs = 0
    present = True

    def __init__(self, default=False):
        self._value = bool(default)

    def set(self, tokens):
        self._value = True

    def get(self):
        return self._value

    def __str__(self):
        return "true" if self._value else "false"


def _parse_bool(text):
    match text.lower():
        case "1" | "t" | "true":
            return True
        case "0" | "f" | "false":
            return False
    raise _syntax(text)


class BoolValue(Value):
    kind = Kind.BOOLEAN
    boolean = True

    def __init__(self, default=False):
        if isinstance(default, str):
            default = _parse_bool(default)
        self._value = bool(default)

    def set(self, tokens):
        token, = tokens
        self._value = _parse_bool(token)

    def get(self):
        return self._value

    def __str__(self):
        return "true" if self._value else "false"


def _parse_integer(text, *, signed):
    """
    Parse text the way a C-family literal reads: optional sign (signed only),
    then "0x"/"0o"/"0b" prefixes, a bare leading "0" for octal, decimal otherwise.
    """
    body = text
    negative = False
    if signed and body[:1] in ("+", "-"):
        negative, body = body[0] == "-", body[1:]

    base = 10
    if len(body) > 1 and body[0] == "0":
        match body[1]:
            case "x" | "X":
                base, body = 16, body[2:]
            case "o" | "O":
                base, body = 8, body[2:]
            case "b" | "B":
                base, body = 2, body[2:]
            case _:
                base, body = 8, body[1:]

    if not re.fullmatch(r"[0-9A-Za-z]+(_[0-9A-Za-z]+)*", body):
        raise _syntax(text)
    try:
        number = int(body, base)
    except ValueError:
        raise _syntax(text) from None
    return -number if negative else number


class IntValue(Value):
    """Signed integer of a fixed bit width (platform width by default)."""
    kind = Kind.INTEGER

    def __init__(self, default=0, *, bits=INT_BITS):
        if not isinstance(default, int) or isinstance(default, bool):
            raise TypeError("integer default must be an int")
        if bits not in (8, 16, 32, 64):
            raise ValueError("integer bits must be one of 8, 16, 32 or 64")
        self._bits = bits
        if not self._fits(default):
            raise ValueError(f"default {default} is out of range for a {bits}-bit {type(self).__name__}")
        self._value = default

    @property
    def bits(self):
        return self._bits

    def _fits(self, number):
        return -(1 << (self._bits - 1)) <= number < 1 << (self._bits - 1)

    def set(self, tokens):
        token, = tokens
        number = _parse_integer(token, signed=True)
        if not self._fits(number):
            raise _range(token)
        self._value = number

    def get(self):
        return self._value

    def __str__(self):
        return str(self._value)


class UintValue(IntValue):
    """Unsigned integer of a fixed bit width; a leading sign is a syntax error."""

    def _fits(self, number):
        return 0 <= number < 1 << self._bits

    def set(self, tokens):
        token, = tokens
        number = _parse_integer(token, signed=False)
        if not self._fits(number):
            raise _range(token)
        self._value = number


def _parse_float(text):
    if not text or text != text.strip():
        raise _syntax(text)
    try:
        if re.match(r"[+-]?0[xX]", text):
            number = float.fromhex(text)
        else:
            number = float(text)
    except (ValueError, OverflowError):
        # float.fromhex overflows with OverflowError instead of returning inf
        if re.match(r"[+-]?0[xX][0-9A-Fa-f_.]+[pP][+-]?\d+$", text):
            raise _range(text) from None
        raise _syntax(text) from None
    if math.isinf(number) and not re.fullmatch(r"[+-]?inf(inity)?", text, re.IGNORECASE):
        raise _range(text)
    return number


def _format_float(number):
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    if number == 0:
        return "-0" if math.copysign(1.0, number) < 0 else "0"

    sign, digits, exponent = Decimal(repr(number)).normalize().as_tuple()
    digits = "".join(map(str, digits))
    point = len(digits) + exponent  # digits before the decimal point
    scale = point - 1

    if scale < -4 or scale >= 21:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        text = "%se%s%02d" % (mantissa, "-" if scale < 0 else "+", abs(scale))
    elif point <= 0:
        text = "0." + "0" * -point + digits
    elif point >= len(digits):
        text = digits + "0" * (point - len(digits))
    else:
        text = digits[:point] + "." + digits[point:]
    return ("-" if sign else "") + text


class FloatValue(Value):
    kind = Kind.FLOAT

    def __init__(self, default=0.0):
        if isinstance(default, bool) or not isinstance(default, int | float):
            raise TypeError("float default must be a number")
        self._value = float(default)

    def set(self, tokens):
        token, = tokens
        self._value = _parse_float(token)

    def get(self):
        return self._value

    def __str__(self):
        return _format_float(self._value)


# Nanoseconds per unit
_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 60 * 60 * 1_000_000_000,
}

_NANOS_LIMIT = (1 << 63) - 1


def _parse_duration(text):
    """
    Parse a compound span such as "1h30m", "-1.5s" or "300ms" into nanoseconds.

    Every number needs a unit; "0" alone is the only unit-less spelling.
    """
    body = text
    negative = False
    if body[:1] in ("+", "-"):
        negative, body = body[0] == "-", body[1:]

    if body == "0":
        return 0
    if not body:
        raise ConversionError("invalid duration %s" % quote(text))

    total = 0
    for match in re.finditer(r"(\d*)(?:\.(\d*))?([^\d.]*)", body):
        if not match.group(0):
            continue
        whole, fraction, unit = match.group(1), match.group(2) or "", match.group(3)
        if not whole and not fraction:
            raise ConversionError("invalid duration %s" % quote(text))
        if not unit:
            raise ConversionError("missing unit in duration %s" % quote(text))
        if unit not in _UNITS:
            raise ConversionError("unknown unit %s in duration %s" % (quote(unit), quote(text)))
        scale = _UNITS[unit]
        total += int(whole or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        if total > _NANOS_LIMIT + negative:
            raise ConversionError("invalid duration %s" % quote(text))

    return -total if negative else total


def _fraction(whole, remainder, places):
    if not remainder:
        return str(whole)
    return f"{whole}." + f"{remainder:0{places}d}".rstrip("0")


def _format_duration(nanos):
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)

    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return sign + _fraction(*divmod(nanos, 1_000), 3) + "µs"
    if nanos < 1_000_000_000:
        return sign + _fraction(*divmod(nanos, 1_000_000), 6) + "ms"

    seconds, remainder = divmod(nanos, 1_000_000_000)
    minutes, seconds = divmod(seconds, 60)
    text = _fraction(seconds, remainder, 9) + "s"
    if minutes:
        hours, minutes = divmod(minutes, 60)
        text = f"{minutes}m" + text
        if hours:
            text = f"{hours}h" + text
    return sign + text


class DurationValue(Value):
    """
    Time span with nanosecond resolution.

    The default may be a datetime.timedelta, a duration string ("90s") or a
    number of seconds. get() returns a timedelta (microsecond resolution);
    the exact count is available as `nanoseconds`.
    """
    kind = Kind.DURATION

    def __init__(self, default=0):
        match default:
            case datetime.timedelta():
                nanos = (default.days * 86_400 + default.seconds) * 1_000_000_000 + default.microseconds * 1_000
            case str():
                nanos = _parse_duration(default)
            case bool():
                raise TypeError("duration default must be a timedelta, a string or a number of seconds")
            case int() | float():
                nanos = round(default * 1_000_000_000)
            case _:
                raise TypeError("duration default must be a timedelta, a string or a number of seconds")
        if abs(nanos) > _NANOS_LIMIT:
            raise ValueError("duration default is out of range")
        self._nanos = nanos

    @property
    def nanoseconds(self):
        return self._nanos

    def set(self, tokens):
        token, = tokens
        self._nanos = _parse_duration(token)

    def get(self):
        return datetime.timedelta(microseconds=self._nanos / 1_000)

    def __str__(self):
        return _format_duration(self._nanos)


class StringValue(Value):
    kind = Kind.STRING

    def __init__(self, default=""):
        if not isinstance(default, str):
            raise TypeError("string default must be a string")
        self._value = default

    def set(self, tokens):
        token, = tokens
        self._value = token

    def get(self):
        return self._value

    def __str__(self):
        return self._value


class FuncValue(Value):
    """
    Hands the raw tokens to a callback; whatever the callback raises becomes
    the conversion failure. Renders as an empty string.
    """
    kind = Kind.FUNCTION

    def __init__(self, callback, nargs=1):
        if not callable(callback):
            raise TypeError("function value callback must be callable")
        if isinstance(nargs, bool) or not isinstance(nargs, int) or nargs < 0:
            raise ValueError("function value nargs must be a non-negative integer")
        self._callback = callback
        self.nargs = nargs

    def set(self, tokens):
        self._callback(list(tokens))

    def get(self):
        return self._callback

    def __str__(self):
        return ""


class SliceValue(Value):
    """
    Variadic string list: `--install a b c` stores ["a", "b", "c"].

    The first occurrence in a parse replaces the stored list; later occurrences
    in the same parse extend it.
    """
    kind = Kind.SLICE
    nargs = Ellipsis

    def __init__(self, default=()):
        if isinstance(default, str):
            raise TypeError("slice default must be an iterable of strings, not a string")
        self._values = list(default)
        if not all(isinstance(value, str) for value in self._values):
            raise TypeError("slice default must contain only strings")
        self._fresh = True

    def reset(self):
        self._fresh = True

    def set(self, tokens):
        tokens = list(tokens)
        if not tokens:
            raise ConversionError("at least one value is required")
        if self._fresh:
            self._values, self._fresh = tokens, False
        else:
            self._values.extend(tokens)
        logger.debug("slice now holds %d item(s)", len(self._values))

    def get(self):
        return list(self._values)

    def __str__(self):
        return "[" + ", ".join(self._values) + "]"


def arity(value, /):
    """
    Validated token count for a value: a non-negative int or Ellipsis.
    """
    match nargs := getattr(value, "nargs", 1):
        case EllipsisType():
            return nargs
        case bool():
            pass
        case int() if nargs >= 0:
            return nargs
    raise ValueError(f"{type(value).__name__} nargs must be a non-negative integer or Ellipsis")


__all__ = (
    "INT_BITS",
    "Kind",
    "ConversionError",
    "RangeError",
    "Value",
    "PresentValue",
    "BoolValue",
    "IntValue",
    "UintValue",
    "FloatValue",
    "DurationValue",
    "StringValue",
    "FuncValue",
    "SliceValue",
    "arity",
)
