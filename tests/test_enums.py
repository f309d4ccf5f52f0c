import pytest

from rforest.enums import (
    DEFAULT_IMPORTANCE_MODE,
    DEFAULT_NUM_TREE,
    DEFAULT_SAMPLE_FRACTION_NOREPLACE,
    DEFAULT_SPLITRULE,
    MAX_IMP_MODE,
    MAX_MEM_MODE,
    VERSION,
    ImportanceMode,
    MemoryMode,
    PredictionType,
    SplitRule,
    TreeType,
)


@pytest.mark.parametrize(
    "mode, expected",
    [
        (ImportanceMode.NONE, False),
        (ImportanceMode.GINI, False),
        (ImportanceMode.PERM_BREIMAN, True),
        (ImportanceMode.PERM_RAW, True),
        (ImportanceMode.PERM_LIAW, True),
        (ImportanceMode.GINI_CORRECTED, False),
    ],
)
def test_is_permutation(mode, expected):
    assert mode.is_permutation() is expected


@pytest.mark.parametrize(
    "mode, expected",
    [
        (ImportanceMode.NONE, False),
        (ImportanceMode.GINI, True),
        (ImportanceMode.PERM_BREIMAN, False),
        (ImportanceMode.PERM_RAW, False),
        (ImportanceMode.PERM_LIAW, False),
        (ImportanceMode.GINI_CORRECTED, True),
    ],
)
def test_is_impurity(mode, expected):
    assert mode.is_impurity() is expected


@pytest.mark.parametrize("code", range(6))
def test_no_mode_is_both_kinds(code):
    mode = ImportanceMode(code)
    kinds = (mode.is_permutation(), mode.is_impurity())
    assert kinds != (True, True)
    assert int(mode) == code


def test_integer_round_trip():
    for enum_type in (MemoryMode, ImportanceMode, SplitRule, TreeType, PredictionType):
        for member in enum_type:
            assert enum_type(int(member)) is member


def test_split_rules_numbered_as_on_command_line():
    rules = [SplitRule(code) for code in range(1, 8)]
    assert rules == list(SplitRule)
    assert SplitRule(1) is DEFAULT_SPLITRULE


def test_memory_mode_codes():
    assert MemoryMode(0) is MemoryMode.DOUBLE
    assert MemoryMode(2) is MemoryMode.CHAR
    assert MAX_MEM_MODE == max(MemoryMode)


def test_max_importance_mode_is_largest():
    assert ImportanceMode(5) is MAX_IMP_MODE
    assert MAX_IMP_MODE == max(ImportanceMode)
    assert MAX_IMP_MODE.is_impurity() is True


def test_unknown_code_rejected():
    with pytest.raises(ValueError):
        TreeType(2)


def test_documented_defaults():
    assert DEFAULT_NUM_TREE == 500
    assert DEFAULT_SAMPLE_FRACTION_NOREPLACE == pytest.approx(0.632)
    assert ImportanceMode(0) is DEFAULT_IMPORTANCE_MODE
    assert DEFAULT_IMPORTANCE_MODE.is_impurity() is False
    assert DEFAULT_IMPORTANCE_MODE.is_permutation() is False
    assert SplitRule(1) is DEFAULT_SPLITRULE
    assert VERSION == "0.11.6"