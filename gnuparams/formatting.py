"""
gnuparams usage formatter.

Layout
- Records are partitioned by grouping (ungrouped first, then groups in the
  order they were opened); each partition is sorted by canonical name.
- One column is shared by the whole registry: the widest canonical name
  (display width, so CJK names count double) plus 4, or plus 8 when any flag
  has aliases so that alias lists and lone long names line up together.
  A non-zero usage indent replaces the whole computed column.
- A line reads:

      -p, --port PORT  listen port  (Default: 8080)

  two-space indent, dashed names (single-rune aliases first), optional
  metavar, two spaces, padding to the column, usage text, default annotation.
- Usage continuation lines are re-indented to the column.
- The "(Default: X)" suffix is left out for a present flag that is currently
  false; strings and empty function values are shown quoted.

Palette keys (when colorful)
- usage-label, program-name, heading, flag-name, metavar, description, default
- Override any entry with a __styles__ mapping in __main__.
"""
import logging
from collections import defaultdict

from rich.text import Text

from .utils import pluralize, dashed, width, quote
from .values import Kind

logger = logging.getLogger(__name__)

INDENT = "  "


def _palette(colorful):
    styles = defaultdict(str, {
        "usage-label": "bold #00E6FF",  # cyan signature label
        "program-name": "bold #FF4D94",  # magenta-pink brand pop
        "heading": "bold #FFFFFF",  # pure white group headers
        "flag-name": "bold #22C55E",  # green names
        "metavar": "bold #FFD600",  # amber parameters
        "description": "#9CA3AF",  # muted gray
        "default": "italic #737373",  # dim footer gray
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""
    return styler


def _partitions(records, groupings):
    if not groupings:
        return {None: sorted(records, key=lambda record: record.names[0])}

    partitions = {None: []}
    for record in records:
        partitions.setdefault(record.group, []).append(record)
    return {group: sorted(members, key=lambda record: record.names[0]) for group, members in partitions.items()}


def _heading(group, count, label, styler):
    if group is None:
        heading = pluralize(label)
        heading = heading[:1].upper() + heading[1:]
    else:
        heading = f"{group} {label if count == 1 else pluralize(label)}"
    return Text(heading + ":", styler("heading"))


def render(records, *, label="parameter", usage_indent=0, groupings=True, colorful=False):
    """
    Render the default-value listing for a sequence of flag records.

    Returns one rich Text per output line group (a record with multi-line
    usage yields a single Text containing newlines).
    """
    styler = _palette(colorful)
    records = list(records)
    if not records:
        return []

    multiple = any(len(record.names) > 1 for record in records)
    column = usage_indent or len(INDENT) + max(width(record.names[0]) for record in records) + (8 if multiple else 4)
    logger.debug("rendering %d record(s) at column %d", len(records), column)

    partitions = _partitions(records, groupings)
    headed = len(partitions) > 1

    lines = []
    for group, members in partitions.items():
        if not members:
            continue
        if headed:
            lines.append(_heading(group, len(members), label, styler))
        for record in members:
            lines.append(_line(record, column, multiple, styler))
    return lines


def _line(record, column, multiple, styler):
    # single-rune aliases first, declaration order otherwise
    names = sorted(record.names, key=lambda name: len(name) != 1)

    line = Text(INDENT)
    if multiple and len(names) == 1 and len(names[0]) > 1:
        line.append("    ")
    line.append(Text(", ").join(Text(dashed(name), styler("flag-name")) for name in names))
    if record.metavar:
        line.append(" ").append(record.metavar, styler("metavar"))
    line.append("  ")
    line.pad_right(max(0, column - line.cell_len))

    first, *rest = record.usage.split("\n")
    line.append(first, styler("description"))
    for usage in rest:
        line.append("\n" + " " * column).append(usage, styler("description"))

    value = record.value
    if value.kind is Kind.PRESENT and not value.get():
        return line

    default = record.default
    if value.kind is Kind.STRING or (value.kind is Kind.FUNCTION and not default):
        default = quote(default)
    return line.append("  ").append(f"(Default: {default})", styler("default"))


def usage(name, records, **options):
    """
    Render the full usage block: the "Usage of NAME:" header then the listing.
    """
    styler = _palette(options.get("colorful", False))
    if name:
        header = Text.assemble(("Usage", styler("usage-label")), " of ", (name, styler("program-name")), ":")
    else:
        header = Text.assemble(("Usage", styler("usage-label")), ":")
    return [header, *render(records, **options)]


__all__ = (
    "render",
    "usage",
)
