"""
gnuparams utilities (internal helpers shared by every layer)

Overview
- UnsetType / Unset
  • Singleton sentinel for "argument not provided", distinct from None/0/"".
  • Falsey, printable as "Unset", sealed against subclassing.

- coalesce(value, default=None)
  • Materialize Unset into a concrete default while keeping falsey user values.

- rename(callable, name) / @rename("name")
  • Stable __name__/__qualname__ for generated callables (properties, wrappers).

- mirror("attr")
  • Read-only property exposing self._attr; containers come back as copies.

- pluralize(text)
  • English pluralizer used for help headings ("parameter" → "parameters").

- dashed(name) / width(text) / quote(text)
  • Command-line spelling of a flag name, terminal display width and the
    double-quoted form used by default annotations.

Quick examples
    >>> dashed("v"), dashed("verbose")
    ('-v', '--verbose')
    >>> width("世界")
    4
"""
import builtins
import functools
import json
import re
from collections.abc import Sequence, Mapping, Set
from typing import final

from rich.cells import cell_len


@final
class UnsetType:
    """
    Sentinel type representing a value that was not provided.

    Used where None is a legitimate value (an output sink, an arity override)
    and the API still needs to tell "omitted" apart from "given".
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    Falsey values such as None, 0, "" or [] are preserved as they are.

    Examples
    - coalesce(3, 8)       -> 3
    - coalesce(Unset, 8)   -> 8
    - coalesce(None, 8)    -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or return a decorator doing so.

    Forms
    - rename(callable, name) -> callable
    - rename(name) -> decorator
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _immortalize(object):
    # Fresh containers all the way down; strings are sequences but stay as-is.
    if isinstance(object, Sequence) and not isinstance(object, str):
        return tuple(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return frozenset(map(_immortalize, object))
    else:
        return object


def mirror(name, /):
    """
    Define a read-only property that mirrors the private attribute "_{name}".

    Sequences are surfaced as tuples, sets as frozensets and mappings as fresh
    dicts, so callers cannot reach into a flag record through its properties.

    Example
    - Given self._names, declare names = mirror("names").
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def pluralize(text, /):
    """
    Best-effort English pluralizer for display labels.

    Only the last word of a phrase is pluralized and its casing is kept, so
    "Parameter" becomes "Parameters" and "command option" becomes
    "command options".

    Examples
    - pluralize("parameter") -> "parameters"
    - pluralize("switch")    -> "switches"
    - pluralize("entry")     -> "entries"
    """
    if not isinstance(text, str):
        raise TypeError("pluralize() argument must be a string")

    if not (match := re.search(r"(\S+)(\s*)$", text)):
        return text

    head, last, trail = text[:match.start(1)], match.group(1), match.group(2)
    lower = last.lower()

    irregulars = {
        "person": "people",
        "child": "children",
        "man": "men",
        "woman": "women",
        "index": "indices",
        "criterion": "criteria",
    }
    if lower in {"series", "species", "information", "equipment"}:
        plural = lower
    elif lower in irregulars:
        plural = irregulars[lower]
    elif lower.endswith(("s", "sh", "ch", "x", "z")):
        plural = lower + "es"
    elif lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        plural = lower[:-1] + "ies"
    elif lower.endswith("fe") and len(lower) > 2:
        plural = lower[:-2] + "ves"
    elif lower.endswith("f") and len(lower) > 1:
        plural = lower[:-1] + "ves"
    else:
        plural = lower + "s"

    if last.isupper() and len(last) > 1:
        plural = plural.upper()
    elif last[:1].isupper():
        plural = plural[:1].upper() + plural[1:]

    return head + plural + trail


def dashed(name, /):
    """
    Spell a flag name the way it is typed: "-x" for one code point, "--name" otherwise.
    """
    if not isinstance(name, str):
        raise TypeError("dashed() argument must be a string")
    return ("-" if len(name) == 1 else "--") + name


def width(text, /):
    """
    Terminal display width of text (East Asian wide characters count twice).
    """
    return cell_len(text)


def quote(text, /):
    """
    Double-quote text with backslash escapes, keeping non-ASCII readable.

    Examples
    - quote("")      -> '""'
    - quote("hello") -> '"hello"'
    """
    return json.dumps(str(text), ensure_ascii=False)


Unset = UnsetType()
"""
Sentinel for "not provided".

Singleton, falsey and distinct from None. Pair with coalesce() to
materialize a fallback only when the caller omitted the argument.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "pluralize",
    "dashed",
    "width",
    "quote",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
