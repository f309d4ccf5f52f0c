import re
import struct

import pytest

from rforest.enums import ImportanceMode, MemoryMode, PredictionType, SplitRule, TreeType
from rforest.options import (
    ArgumentError,
    Options,
    check_arguments,
    parse_arguments,
    read_tree_type_from_forest,
    split_string,
)


def write_forest(path, tree_type, length=3):
    content = b"\x00" * 8 + struct.pack("<Q", length)
    content += b"\x00" * (32 + length - len(content))
    content += struct.pack("<i", tree_type)
    path.write_bytes(content)
    return str(path)


# split_string, cases from the source's tests

def test_split_string_three_parts():
    assert split_string("abc,def,ghi", ",") == ["abc", "def", "ghi"]


def test_split_string_single():
    assert split_string("abc", ",") == ["abc"]


def test_split_string_other_separator():
    assert split_string("a-b-c", "-") == ["a", "b", "c"]


def test_split_string_empty():
    assert split_string("", ",") == []


def test_split_string_trailing_separator():
    assert split_string("a,,b,", ",") == ["a", "", "b"]


# parse_arguments

def test_defaults():
    options = parse_arguments([])
    assert options.outprefix == "ranger_out"
    assert options.treetype == TreeType.CLASSIFICATION
    assert options.replace is True
    assert options.ntree == 500
    assert options.memmode == MemoryMode.DOUBLE


def test_long_options():
    options = parse_arguments(
        ["--file", "data.dat", "--depvarname", "y", "--ntree", "10", "--mtry=3", "--treetype", "3", "--verbose"]
    )
    assert options.file == "data.dat"
    assert options.depvarname == "y"
    assert options.ntree == 10
    assert options.mtry == 3
    assert options.treetype == TreeType.REGRESSION
    assert options.verbose is True


def test_short_options_and_clusters():
    options = parse_arguments(["-f", "d.csv", "-t20", "-vwu", "-z", "7"])
    assert options.file == "d.csv"
    assert options.ntree == 20
    assert options.verbose and options.write
    assert options.replace is False
    assert options.seed == 7


def test_long_prefix_abbreviation():
    options = parse_arguments(["--ntr", "42"])
    assert options.ntree == 42


def test_ambiguous_prefix_is_ignored():
    options = parse_arguments(["--n", "5"])
    assert options.ignored == ["--n"]
    assert options.unprocessed == ["5"]


def test_unknown_and_positional():
    options = parse_arguments(["--bogus", "extra", "-v"])
    assert options.ignored == ["--bogus"]
    assert options.unprocessed == ["extra"]
    assert options.verbose is True


def test_lists_and_enums():
    options = parse_arguments(
        ["--catvars", "a,b", "--alwayssplitvars", "x", "--splitrule", "5", "--impmeasure", "5", "--memmode", "2",
         "--predictiontype", "2"]
    )
    assert options.catvars == ["a", "b"]
    assert options.alwayssplitvars == ["x"]
    assert options.splitrule == SplitRule.EXTRATREES
    assert options.impmeasure == ImportanceMode.GINI_CORRECTED
    assert options.memmode == MemoryMode.CHAR
    assert options.predictiontype == PredictionType.TERMINALNODES


def test_float_options():
    options = parse_arguments(["--fraction", "0.5", "--alpha", "0.2", "--minprop", "0.3"])
    assert options.fraction == 0.5
    assert options.alpha == 0.2
    assert options.minprop == 0.3


def test_integer_with_trailing_text():
    assert parse_arguments(["--ntree", "12abc"]).ntree == 12


def test_help_stops_parsing():
    options = parse_arguments(["--help", "--ntree", "3"])
    assert options.show_help is True
    assert options.ntree == 500


def test_version_flag():
    assert parse_arguments(["-Z"]).show_version is True


def test_optional_target_partition_size():
    assert parse_arguments(["-l5"]).targetpartitionsize == 5
    with pytest.raises(ArgumentError, match="targetpartitionsize"):
        parse_arguments(["-l", "5"])


@pytest.mark.parametrize(
    "args, message",
    [
        (["--fraction", "1.5"], "Illegal argument for option 'fraction'"),
        (["--fraction", "0"], "Illegal argument for option 'fraction'"),
        (["--memmode", "3"], "Illegal argument for option 'memmode'"),
        (["--predictiontype", "3"], "Illegal prediction type selected."),
        (["--randomsplits", "0"], "Illegal argument for option 'randomsplits'"),
        (["--nthreads", "x"], "Illegal argument for option 'nthreads'"),
        (["--alpha", "2"], "Illegal argument for option 'alpha'"),
        (["--minprop", "0.6"], "Illegal argument for option 'minprop'"),
        (["--maxdepth", "-1"], "Illegal argument for option 'maxdepth'"),
        (["--impmeasure", "6"], "Illegal argument for option 'impmeasure'"),
        (["--mtry", "0"], "Illegal argument for option 'mtry'"),
        (["--splitrule", "8"], "Illegal splitrule selected."),
        (["--ntree", "0"], "Illegal argument for option 'ntree'"),
        (["--treetype", "2"], "Illegal argument for option 'treetype'"),
        (["--seed", "-3"], "Illegal argument for option 'seed'"),
        (["--ntree", "99999999999"], "Illegal argument for option 'ntree'"),
    ],
)
def test_illegal_values(args, message):
    with pytest.raises(ArgumentError, match=re.escape(message)):
        parse_arguments(args)


# check_arguments

def base(**changes):
    options = Options(file="data.dat", depvarname="y")
    for key, value in changes.items():
        setattr(options, key, value)
    return options


def test_valid_arguments_keep_tree_type():
    options = base()
    check_arguments(options)
    assert options.treetype == TreeType.CLASSIFICATION


@pytest.mark.parametrize(
    "changes, message",
    [
        ({"file": ""}, "Please specify an input filename"),
        ({"depvarname": ""}, "Please specify a dependent variable name"),
        ({"treetype": TreeType.SURVIVAL}, "Please specify a status variable name"),
        ({"statusvarname": "s"}, "Option '--statusvarname' only applicable"),
        (
            {"treetype": TreeType.SURVIVAL, "statusvarname": "s", "splitrule": SplitRule.MAXSTAT,
             "impmeasure": ImportanceMode.GINI},
            "Node impurity variable importance not supported",
        ),
        ({"treetype": TreeType.REGRESSION, "probability": True}, "Probability estimation is only applicable"),
        ({"predall": True}, "Option '--predall' only available in prediction mode."),
        ({"alwayssplitvars": ["a"], "splitweights": "w.txt"}, "Please use only one option"),
        ({"splitrule": SplitRule.AUC}, "Illegal splitrule selected."),
        ({"splitrule": SplitRule.MAXSTAT}, "Illegal splitrule selected."),
        ({"splitrule": SplitRule.BETA}, "Illegal splitrule selected."),
        ({"treetype": TreeType.REGRESSION, "splitrule": SplitRule.HELLINGER}, "Illegal splitrule selected."),
        ({"holdout": True}, "Case weights required to use holdout mode."),
        (
            {"treetype": TreeType.SURVIVAL, "statusvarname": "s", "catvars": ["a"], "splitrule": SplitRule.AUC},
            "Unordered splitting in survival trees",
        ),
        (
            {"splitrule": SplitRule.EXTRATREES, "catvars": ["a"], "savemem": True},
            "savemem option not possible",
        ),
        (
            {"splitweights": "w.txt", "impmeasure": ImportanceMode.GINI_CORRECTED},
            "Corrected impurity importance not supported",
        ),
    ],
)
def test_check_errors(changes, message):
    with pytest.raises(ArgumentError, match=re.escape(message)):
        check_arguments(base(**changes))


def test_maxstat_allowed_for_regression():
    options = base(treetype=TreeType.REGRESSION, splitrule=SplitRule.MAXSTAT)
    check_arguments(options)
    assert options.splitrule == SplitRule.MAXSTAT


def test_prediction_mode_reads_tree_type(tmp_path):
    path = write_forest(tmp_path / "model.forest", 3)
    options = Options(file="data.dat", predict=path, predall=True)
    check_arguments(options)
    assert options.treetype == TreeType.REGRESSION


def test_prediction_mode_missing_file(tmp_path):
    options = Options(file="data.dat", predict=str(tmp_path / "missing.forest"))
    with pytest.raises(OSError, match="Could not read from input file"):
        check_arguments(options)


# read_tree_type_from_forest

@pytest.mark.parametrize("value, expected", [(1, TreeType.CLASSIFICATION), (5, TreeType.SURVIVAL),
                                             (9, TreeType.PROBABILITY)])
def test_read_tree_type(tmp_path, value, expected):
    path = write_forest(tmp_path / "f.forest", value, length=7)
    assert read_tree_type_from_forest(path) == expected


def test_read_tree_type_truncated(tmp_path):
    path = tmp_path / "short.forest"
    path.write_bytes(b"\x00" * 10)
    with pytest.raises(ValueError, match="Could not read tree type"):
        read_tree_type_from_forest(str(path))


def test_read_tree_type_unknown(tmp_path):
    path = write_forest(tmp_path / "f.forest", 42)
    with pytest.raises(ValueError, match="Unknown tree type 42"):
        read_tree_type_from_forest(path)