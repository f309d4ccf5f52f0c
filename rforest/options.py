"""Command line options of the forest program: parsing and consistency checks."""

from __future__ import annotations

import math
import re
import struct
import sys
from dataclasses import dataclass, field
from typing import Sequence

from .enums import (
    DEFAULT_ALPHA,
    DEFAULT_IMPORTANCE_MODE,
    DEFAULT_MAXDEPTH,
    DEFAULT_MINPROP,
    DEFAULT_NUM_RANDOM_SPLITS,
    DEFAULT_NUM_THREADS,
    DEFAULT_NUM_TREE,
    DEFAULT_PREDICTIONTYPE,
    DEFAULT_SPLITRULE,
    MAX_IMP_MODE,
    MAX_MEM_MODE,
    ImportanceMode,
    MemoryMode,
    PredictionType,
    SplitRule,
    TreeType,
)


class ArgumentError(ValueError):
    """An option has an illegal value or the options do not fit together."""


@dataclass
class Options:
    """All command line settings, named like the long options."""

    alwayssplitvars: list[str] = field(default_factory=list)
    caseweights: str = ""
    depvarname: str = ""
    fraction: float = 0.0
    holdout: bool = False
    memmode: MemoryMode = MemoryMode.DOUBLE
    savemem: bool = False
    skipoob: bool = False
    predict: str = ""
    predictiontype: PredictionType = DEFAULT_PREDICTIONTYPE
    randomsplits: int = DEFAULT_NUM_RANDOM_SPLITS
    splitweights: str = ""
    nthreads: int = DEFAULT_NUM_THREADS
    predall: bool = False

    alpha: float = DEFAULT_ALPHA
    minprop: float = DEFAULT_MINPROP
    catvars: list[str] = field(default_factory=list)
    maxdepth: int = DEFAULT_MAXDEPTH
    file: str = ""
    impmeasure: ImportanceMode = DEFAULT_IMPORTANCE_MODE
    targetpartitionsize: int = 0
    mtry: int = 0
    outprefix: str = "ranger_out"
    probability: bool = False
    splitrule: SplitRule = DEFAULT_SPLITRULE
    statusvarname: str = ""
    ntree: int = DEFAULT_NUM_TREE
    replace: bool = True
    verbose: bool = False
    write: bool = False
    treetype: TreeType = TreeType.CLASSIFICATION
    seed: int = 0

    show_help: bool = False
    show_version: bool = False
    unprocessed: list[str] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)


def split_string(text: str, separator: str) -> list[str]:
    """Split text at separator; an empty text or a trailing separator adds no empty field."""
    if not text:
        return []
    parts = text.split(separator)
    if parts[-1] == "":
        parts.pop()
    return parts


_SHORT_OPTIONS = "A:C:D:F:HM:NOP:Q:R:S:U:XZa:b:c:d:f:hil::m:o:pr:s:t:uvwy:z:"

_NONE, _REQUIRED, _OPTIONAL = 0, 1, 2


def _parse_short_spec(spec: str) -> dict[str, int]:
    result: dict[str, int] = {}
    pos = 0
    while pos < len(spec):
        char = spec[pos]
        pos += 1
        colons = 0
        while pos < len(spec) and spec[pos] == ":" and colons < 2:
            colons += 1
            pos += 1
        result[char] = colons
    return result


_SHORT = _parse_short_spec(_SHORT_OPTIONS)

_FLAG_LONG = {"holdout", "savemem", "skipoob", "predall", "version", "help", "probability", "noreplace", "verbose", "write"}

_LONG = {
    "alwayssplitvars": "A",
    "caseweights": "C",
    "depvarname": "D",
    "fraction": "F",
    "holdout": "H",
    "memmode": "M",
    "savemem": "N",
    "skipoob": "O",
    "predict": "P",
    "predictiontype": "Q",
    "randomsplits": "R",
    "splitweights": "S",
    "nthreads": "U",
    "predall": "X",
    "version": "Z",
    "alpha": "a",
    "minprop": "b",
    "catvars": "c",
    "maxdepth": "d",
    "file": "f",
    "help": "h",
    "impmeasure": "i",
    "targetpartitionsize": "l",
    "mtry": "m",
    "outprefix": "o",
    "probability": "p",
    "splitrule": "r",
    "statusvarname": "s",
    "ntree": "t",
    "noreplace": "u",
    "verbose": "v",
    "write": "w",
    "treetype": "y",
    "seed": "z",
}

_INT_PATTERN = re.compile(r"\s*[+-]?\d+")
_FLOAT_PATTERN = re.compile(
    r"\s*[+-]?(?:inf(?:inity)?|nan|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)",
    re.IGNORECASE,
)


def _stoi(text: str | None) -> int:
    """Leading integer of text; trailing characters are ignored."""
    if text is None:
        raise ValueError("missing value")
    match = _INT_PATTERN.match(text)
    if match is None:
        raise ValueError(f"not an integer: {text!r}")
    value = int(match.group())
    if not -(2**31) <= value < 2**31:
        raise ValueError(f"out of range: {text!r}")
    return value


def _stod(text: str | None) -> float:
    """Leading floating point number of text; trailing characters are ignored."""
    if text is None:
        raise ValueError("missing value")
    match = _FLOAT_PATTERN.match(text)
    if match is None:
        raise ValueError(f"not a number: {text!r}")
    literal = match.group().strip()
    value = float(literal)
    if math.isinf(value) and "inf" not in literal.lower():
        raise ValueError(f"out of range: {text!r}")
    return value


def _positive_int_message(name: str) -> str:
    return f"Illegal argument for option '{name}'. Please give a positive integer. See '--help' for details."


def _int_at_least(value: str | None, minimum: int, name: str) -> int:
    try:
        number = _stoi(value)
    except ValueError:
        raise ArgumentError(_positive_int_message(name)) from None
    if number < minimum:
        raise ArgumentError(_positive_int_message(name))
    return number


def _apply(options: Options, char: str, value: str | None) -> bool:
    """Apply one option; return True if parsing stops here."""
    if char == "A":
        options.alwayssplitvars = split_string(value, ",")
    elif char == "C":
        options.caseweights = value
    elif char == "D":
        options.depvarname = value
    elif char == "F":
        message = "Illegal argument for option 'fraction'. Please give a value in (0,1]. See '--help' for details."
        try:
            fraction = _stod(value)
        except ValueError:
            raise ArgumentError(message) from None
        if fraction > 1 or fraction <= 0:
            raise ArgumentError(message)
        options.fraction = fraction
    elif char == "H":
        options.holdout = True
    elif char == "M":
        try:
            number = _stoi(value)
            if number > MAX_MEM_MODE:
                raise ValueError(number)
            options.memmode = MemoryMode(number)
        except ValueError:
            raise ArgumentError(_positive_int_message("memmode")) from None
    elif char == "N":
        options.savemem = True
    elif char == "O":
        options.skipoob = True
    elif char == "P":
        options.predict = value
    elif char == "Q":
        kinds = {1: PredictionType.RESPONSE, 2: PredictionType.TERMINALNODES}
        try:
            options.predictiontype = kinds[_stoi(value)]
        except (ValueError, KeyError):
            raise ArgumentError("Illegal prediction type selected. See '--help' for details.") from None
    elif char == "R":
        options.randomsplits = _int_at_least(value, 1, "randomsplits")
    elif char == "S":
        options.splitweights = value
    elif char == "U":
        options.nthreads = _int_at_least(value, 1, "nthreads")
    elif char == "X":
        options.predall = True
    elif char == "Z":
        options.show_version = True
        return True
    elif char == "a":
        message = "Illegal argument for option 'alpha'. Please give a value between 0 and 1. See '--help' for details."
        try:
            alpha = _stod(value)
        except ValueError:
            raise ArgumentError(message) from None
        if alpha < 0 or alpha > 1:
            raise ArgumentError(message)
        options.alpha = alpha
    elif char == "b":
        message = (
            "Illegal argument for option 'minprop'. Please give a value between 0 and 0.5. See '--help' for details."
        )
        try:
            minprop = _stod(value)
        except ValueError:
            raise ArgumentError(message) from None
        if minprop < 0 or minprop > 0.5:
            raise ArgumentError(message)
        options.minprop = minprop
    elif char == "c":
        options.catvars = split_string(value, ",")
    elif char == "d":
        options.maxdepth = _int_at_least(value, 0, "maxdepth")
    elif char == "f":
        options.file = value
    elif char == "h":
        options.show_help = True
        return True
    elif char == "i":
        try:
            number = _stoi(value)
            if number > MAX_IMP_MODE:
                raise ValueError(number)
            options.impmeasure = ImportanceMode(number)
        except ValueError:
            raise ArgumentError(_positive_int_message("impmeasure")) from None
    elif char == "l":
        options.targetpartitionsize = _int_at_least(value, 1, "targetpartitionsize")
    elif char == "m":
        options.mtry = _int_at_least(value, 1, "mtry")
    elif char == "o":
        options.outprefix = value
    elif char == "p":
        options.probability = True
    elif char == "r":
        rules = {
            1: SplitRule.LOGRANK,
            2: SplitRule.AUC,
            3: SplitRule.AUC_IGNORE_TIES,
            4: SplitRule.MAXSTAT,
            5: SplitRule.EXTRATREES,
            6: SplitRule.BETA,
            7: SplitRule.HELLINGER,
        }
        try:
            options.splitrule = rules[_stoi(value)]
        except (ValueError, KeyError):
            raise ArgumentError("Illegal splitrule selected. See '--help' for details.") from None
    elif char == "s":
        options.statusvarname = value
    elif char == "t":
        options.ntree = _int_at_least(value, 1, "ntree")
    elif char == "u":
        options.replace = False
    elif char == "v":
        options.verbose = True
    elif char == "w":
        options.write = True
    elif char == "y":
        types = {1: TreeType.CLASSIFICATION, 3: TreeType.REGRESSION, 5: TreeType.SURVIVAL}
        try:
            options.treetype = types[_stoi(value)]
        except (ValueError, KeyError):
            raise ArgumentError(_positive_int_message("treetype")) from None
    elif char == "z":
        options.seed = _int_at_least(value, 0, "seed")
    return False


def _match_long(name: str) -> str | None:
    if name in _LONG:
        return name
    candidates = [long_name for long_name in _LONG if long_name.startswith(name)]
    if len(candidates) == 1:
        return candidates[0]
    return None


def parse_arguments(argv: Sequence[str] | None = None) -> Options:
    """Parse command line arguments (without the program name).

    Options may be abbreviated to a unique prefix of their long name and
    appear in any order among other arguments. Unknown options and options
    lacking a required value are recorded in ``ignored``; other arguments in
    ``unprocessed``. Parsing stops at ``--help`` or ``--version``.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    options = Options()
    pos = 0
    while pos < len(args):
        arg = args[pos]
        pos += 1
        if arg == "--":
            options.unprocessed.extend(args[pos:])
            break
        if arg.startswith("--"):
            name, has_value, value = arg[2:].partition("=")
            long_name = _match_long(name)
            if long_name is None:
                options.ignored.append(arg)
                continue
            if long_name in _FLAG_LONG:
                if has_value:
                    options.ignored.append(arg)
                    continue
                value = None
            elif not has_value:
                if pos < len(args):
                    value = args[pos]
                    pos += 1
                else:
                    options.ignored.append(arg)
                    continue
            if _apply(options, _LONG[long_name], value):
                return options
        elif arg.startswith("-") and len(arg) > 1:
            index = 1
            while index < len(arg):
                char = arg[index]
                index += 1
                kind = _SHORT.get(char)
                if kind is None or char == ":":
                    options.ignored.append("-" + char)
                    continue
                if kind == _NONE:
                    if _apply(options, char, None):
                        return options
                    continue
                rest = arg[index:]
                if kind == _REQUIRED and not rest:
                    if pos < len(args):
                        rest = args[pos]
                        pos += 1
                    else:
                        options.ignored.append("-" + char)
                        break
                if _apply(options, char, rest or None):
                    return options
                break
        else:
            options.unprocessed.append(arg)
    return options


_SIZE_T = 8
_TREE_TYPE = struct.Struct("<i")


def read_tree_type_from_forest(filename) -> TreeType:
    """Tree type stored in a saved forest file."""
    try:
        with open(filename, "rb") as stream:
            stream.seek(_SIZE_T)
            raw_length = stream.read(_SIZE_T)
            if len(raw_length) != _SIZE_T:
                raise ValueError(f"Could not read tree type from file: {filename}.")
            (length,) = struct.unpack("<Q", raw_length)
            stream.seek(4 * _SIZE_T + length)
            raw_type = stream.read(_TREE_TYPE.size)
    except OSError as err:
        raise OSError(f"Could not read from input file: {filename}.") from err
    if len(raw_type) != _TREE_TYPE.size:
        raise ValueError(f"Could not read tree type from file: {filename}.")
    (value,) = _TREE_TYPE.unpack(raw_type)
    try:
        return TreeType(value)
    except ValueError:
        raise ValueError(f"Unknown tree type {value} in file: {filename}.") from None


def check_arguments(options: Options) -> None:
    """Check required options and their combinations.

    In prediction mode the tree type is taken from the forest file.
    """
    if not options.file:
        raise ArgumentError("Please specify an input filename with '--file'. See '--help' for details.")
    if not options.predict and not options.depvarname:
        raise ArgumentError("Please specify a dependent variable name with '--depvarname'. See '--help' for details.")

    if not options.predict and options.treetype == TreeType.SURVIVAL and not options.statusvarname:
        raise ArgumentError(
            "Please specify a status variable name with '--statusvarname'. See '--help' for details."
        )
    if options.treetype != TreeType.SURVIVAL and options.statusvarname:
        raise ArgumentError(
            "Option '--statusvarname' only applicable for survival forest. See '--help' for details."
        )

    if (
        options.treetype == TreeType.SURVIVAL
        and options.splitrule == SplitRule.MAXSTAT
        and options.impmeasure == ImportanceMode.GINI
    ):
        raise ArgumentError(
            "Node impurity variable importance not supported for survival forests with MAXSTAT splitrule. "
            "See '--help' for details."
        )

    if options.treetype != TreeType.CLASSIFICATION and options.probability:
        raise ArgumentError("Probability estimation is only applicable to classification forests.")

    if options.predict:
        options.treetype = read_tree_type_from_forest(options.predict)

    if not options.predict and options.predall:
        raise ArgumentError("Option '--predall' only available in prediction mode.")

    if options.alwayssplitvars and options.splitweights:
        raise ArgumentError("Please use only one option of splitweights and alwayssplitvars.")

    rule, tree = options.splitrule, options.treetype
    if (
        (rule in (SplitRule.AUC, SplitRule.AUC_IGNORE_TIES) and tree != TreeType.SURVIVAL)
        or (rule == SplitRule.MAXSTAT and tree not in (TreeType.SURVIVAL, TreeType.REGRESSION))
        or (rule == SplitRule.BETA and tree != TreeType.REGRESSION)
        or (rule == SplitRule.HELLINGER and tree not in (TreeType.CLASSIFICATION, TreeType.PROBABILITY))
    ):
        raise ArgumentError("Illegal splitrule selected. See '--help' for details.")

    if options.holdout and not options.caseweights:
        raise ArgumentError("Case weights required to use holdout mode.")

    if (
        tree == TreeType.SURVIVAL
        and options.catvars
        and rule not in (SplitRule.LOGRANK, SplitRule.EXTRATREES)
    ):
        raise ArgumentError("Unordered splitting in survival trees only available for LOGRANK splitrule.")

    if rule == SplitRule.EXTRATREES and options.catvars and options.savemem:
        raise ArgumentError("savemem option not possible in extraTrees mode with unordered predictors.")

    if options.splitweights and options.impmeasure == ImportanceMode.GINI_CORRECTED:
        raise ArgumentError("Corrected impurity importance not supported in combination with splitweights.")