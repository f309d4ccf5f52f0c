"""Enumerations and default settings shared by the forest code."""

from __future__ import annotations

from enum import IntEnum

VERSION = "0.11.6"


class MemoryMode(IntEnum):
    """Precision used to store the predictor values."""

    DOUBLE = 0
    FLOAT = 1
    CHAR = 2


class ImportanceMode(IntEnum):
    """Variable importance measure."""

    NONE = 0
    GINI = 1
    PERM_BREIMAN = 2
    PERM_RAW = 3
    PERM_LIAW = 4
    GINI_CORRECTED = 5

    def is_permutation(self) -> bool:
        """True for the permutation based measures."""
        return self in (ImportanceMode.PERM_BREIMAN, ImportanceMode.PERM_LIAW, ImportanceMode.PERM_RAW)

    def is_impurity(self) -> bool:
        """True for the node impurity based measures."""
        return self in (ImportanceMode.GINI, ImportanceMode.GINI_CORRECTED)


class SplitRule(IntEnum):
    """Rule used to choose split points."""

    LOGRANK = 1
    AUC = 2
    AUC_IGNORE_TIES = 3
    MAXSTAT = 4
    EXTRATREES = 5
    BETA = 6
    HELLINGER = 7


class TreeType(IntEnum):
    """Kind of tree grown by a forest."""

    CLASSIFICATION = 1
    REGRESSION = 3
    SURVIVAL = 5
    PROBABILITY = 9


class PredictionType(IntEnum):
    """What a prediction returns."""

    RESPONSE = 1
    TERMINALNODES = 2


MAX_MEM_MODE = MemoryMode.CHAR
MAX_IMP_MODE = ImportanceMode.GINI_CORRECTED

DEFAULT_NUM_TREE = 500
DEFAULT_NUM_THREADS = 0
DEFAULT_IMPORTANCE_MODE = ImportanceMode.NONE
DEFAULT_SPLITRULE = SplitRule.LOGRANK
DEFAULT_PREDICTIONTYPE = PredictionType.RESPONSE
DEFAULT_SAMPLE_FRACTION_REPLACE = 1.0
DEFAULT_SAMPLE_FRACTION_NOREPLACE = 0.632
DEFAULT_ALPHA = 0.5
DEFAULT_MINPROP = 0.1
DEFAULT_MAXDEPTH = 0
DEFAULT_NUM_RANDOM_SPLITS = 1

DEFAULT_MIN_NODE_SIZE_CLASSIFICATION = 1
DEFAULT_MIN_NODE_SIZE_REGRESSION = 5
DEFAULT_MIN_NODE_SIZE_SURVIVAL = 3
DEFAULT_MIN_NODE_SIZE_PROBABILITY = 10

# Seconds between progress messages
STATUS_INTERVAL = 30