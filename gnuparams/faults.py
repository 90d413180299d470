"""
gnuparams faults and error policies.

Scope
- FaultCode: stable numeric identifiers for every user-facing fault.
- ParamsException: base type carrying a message plus read-only options
  (flag, input, label, colorful …) that renders itself through rich.
- Policy: what a FlagSet does once a parse fault is rendered
  (hand it back, end the process, or raise it).
- trigger(): apply a policy to a fault.

Rendering
- Faults print as a single line: the message, optionally colored. Hosts may
  restyle it with a __styles__ mapping in __main__. Codes are for callers
  that inspect the fault; they are never printed.

Exit semantics
- Policy.TERMINATE exits with status 0 for HelpRequested and 2 for anything else.
- Policy.ABORT raises the fault.
- Policy.PROPAGATE returns the fault to the caller of parse().
"""
import enum
import functools
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.text import Text


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - tokens (1111x): MALFORMED_TOKEN
    - lookups (1112x): UNKNOWN_FLAG, HELP_REQUESTED
    - arity (1113x): UNWANTED_VALUE, MISSING_VALUE, NOT_ENOUGH_VALUES
    - conversion (1114x): INVALID_VALUE, OUT_OF_RANGE
    - registration (1119x): DUPLICATE_FLAG
    """
    MALFORMED_TOKEN   = 11111

    UNKNOWN_FLAG      = 11121
    HELP_REQUESTED    = 11122

    UNWANTED_VALUE    = 11131
    MISSING_VALUE     = 11132
    NOT_ENOUGH_VALUES = 11133

    INVALID_VALUE     = 11141
    OUT_OF_RANGE      = 11142

    DUPLICATE_FLAG    = 11191


class Policy(enum.Enum):
    """What a FlagSet does with a parse fault after rendering it."""
    PROPAGATE = "propagate"
    TERMINATE = "terminate"
    ABORT = "abort"


class ParamsException(Exception):
    """
    Base class for all gnuparams faults.

    The message is complete on its own ("parameter provided but not defined: -z");
    the options carry structured context for callers that want to inspect it.
    """
    code = None

    def __init__(self, message, /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message

    def __rich__(self):
        styles = defaultdict(str, {
            "error-message": "bold #FF4DA6",  # friendly pinky message
            "help-message": "#9CA3AF",  # muted gray for the help sentinel
        } | getattr(__import__("__main__"), "__styles__", {}))

        if not self.options.get("colorful"):
            return Text(self.message)
        return Text(self.message, styles["help-message" if isinstance(self, HelpRequested) else "error-message"])

    def __trigger__(self, policy):
        match policy:
            case Policy.PROPAGATE:
                return self
            case Policy.TERMINATE:
                sys.exit(0 if isinstance(self, HelpRequested) else 2)
            case Policy.ABORT:
                raise self.with_traceback(None)
        raise TypeError("policy must be a Policy member")


class MalformedTokenError(ParamsException):
    code = FaultCode.MALFORMED_TOKEN


class UnknownFlagError(ParamsException):
    code = FaultCode.UNKNOWN_FLAG


class UnwantedValueError(ParamsException):
    code = FaultCode.UNWANTED_VALUE


class MissingValueError(ParamsException):
    code = FaultCode.MISSING_VALUE


class NotEnoughValuesError(ParamsException):
    code = FaultCode.NOT_ENOUGH_VALUES


class InvalidValueError(ParamsException):
    code = FaultCode.INVALID_VALUE


class OutOfRangeError(ParamsException):
    code = FaultCode.OUT_OF_RANGE


class DuplicateFlagError(ParamsException):
    code = FaultCode.DUPLICATE_FLAG


class HelpRequested(ParamsException):
    """
    Sentinel fault produced by an implicit -h/--help.

    There is exactly one instance per process (HELP); it carries no payload
    beyond its identity, so callers compare with `is`.
    """
    code = FaultCode.HELP_REQUESTED

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __init__(self):
        super().__init__("help requested")

    def __init_subclass__(cls, **options):
        raise TypeError("type 'HelpRequested' is not an acceptable base type")


HELP = HelpRequested()


def trigger(fault, /, policy):
    """
    apply an error policy to a fault.

    returns the fault under Policy.PROPAGATE, exits under Policy.TERMINATE and
    raises under Policy.ABORT.
    """
    if not hasattr(fault, "__trigger__") or not callable(fault.__trigger__):
        raise TypeError("trigger() argument must implement __trigger__ method")
    return fault.__trigger__(policy)


__all__ = (
    "FaultCode",
    "Policy",
    "ParamsException",
    "MalformedTokenError",
    "UnknownFlagError",
    "UnwantedValueError",
    "MissingValueError",
    "NotEnoughValuesError",
    "InvalidValueError",
    "OutOfRangeError",
    "DuplicateFlagError",
    "HelpRequested",
    "HELP",
    "trigger",
)
