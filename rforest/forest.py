"""Forest driver: settings, the tree interface and the shared grow, predict and importance logic."""

from __future__ import annotations

import dataclasses
import math
import os
import random
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Sequence, TextIO

from .data import Data
from .enums import (
    DEFAULT_ALPHA,
    DEFAULT_IMPORTANCE_MODE,
    DEFAULT_MAXDEPTH,
    DEFAULT_MINPROP,
    DEFAULT_NUM_RANDOM_SPLITS,
    DEFAULT_NUM_THREADS,
    DEFAULT_NUM_TREE,
    DEFAULT_PREDICTIONTYPE,
    DEFAULT_SAMPLE_FRACTION_NOREPLACE,
    DEFAULT_SAMPLE_FRACTION_REPLACE,
    DEFAULT_SPLITRULE,
    ImportanceMode,
    MemoryMode,
    PredictionType,
    SplitRule,
)
from .progress import ProgressReporter, equal_split
from .storage import read_forest_header, write_forest_header
from .storage import write_importance_file as _write_importance_lines

_UINT_MASK = 0xFFFFFFFF


@dataclass
class ForestSettings:
    """Settings of a forest.

    The fields from ``deterministic_var_ids`` on are filled in by the forest
    for each tree before the settings are handed to ``TreeModel.init``.
    """

    mtry: int = 0
    num_trees: int = DEFAULT_NUM_TREE
    seed: int = 0
    num_threads: int = DEFAULT_NUM_THREADS
    importance_mode: ImportanceMode = DEFAULT_IMPORTANCE_MODE
    min_node_size: int = 0
    prediction_mode: bool = False
    sample_with_replacement: bool = True
    unordered_variable_names: Sequence[str] = ()
    memory_saving_splitting: bool = False
    splitrule: SplitRule = DEFAULT_SPLITRULE
    predict_all: bool = False
    keep_inbag: bool = False
    sample_fraction: Sequence[float] | None = None
    holdout: bool = False
    prediction_type: PredictionType = DEFAULT_PREDICTIONTYPE
    num_random_splits: int = DEFAULT_NUM_RANDOM_SPLITS
    order_snps: bool = False
    max_depth: int = DEFAULT_MAXDEPTH
    alpha: float = DEFAULT_ALPHA
    minprop: float = DEFAULT_MINPROP
    output_prefix: str = ""
    memory_mode: MemoryMode = MemoryMode.DOUBLE
    dependent_variable_names: Sequence[str] = ()
    verbose_out: TextIO | None = None
    deterministic_var_ids: list[int] = field(default_factory=list)
    split_select_var_ids: list[int] = field(default_factory=list)
    split_select_weights: list[float] = field(default_factory=list)
    case_weights: list[float] = field(default_factory=list)
    manual_inbag: list[int] = field(default_factory=list)


class TreeModel(ABC):
    """A single tree of a forest.

    Implementations fill ``child_node_ids``, ``split_var_ids``,
    ``split_values`` and ``inbag_counts`` while growing.
    """

    def __init__(self) -> None:
        self.child_node_ids: list[list[int]] = []
        self.split_var_ids: list[int] = []
        self.split_values: list[float] = []
        self.inbag_counts: list[int] = []

    @abstractmethod
    def init(self, data: Data, mtry: int, num_samples: int, seed: int, settings: ForestSettings) -> None:
        """Prepare the tree for growing."""

    @abstractmethod
    def grow(self, variable_importance: list[float]) -> None:
        """Grow the tree, adding impurity importance to variable_importance."""

    @abstractmethod
    def predict(self, data: Data, oob_prediction: bool) -> None:
        """Find the terminal nodes of the samples of data."""

    @abstractmethod
    def compute_permutation_importance(self, importance: list[float], variance: list[float]) -> None:
        """Add this tree's permutation importance (and its square) to the totals."""

    @abstractmethod
    def append_to_file(self, stream: BinaryIO) -> None:
        """Write the tree to a forest file."""


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "nan"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def _divide(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator)


class Forest(ABC):
    """Common part of all forest types; subclasses supply the tree type and the outputs."""

    def __init__(self) -> None:
        self.settings = ForestSettings()
        self.verbose_out: TextIO | None = None
        self.dependent_variable_names: list[str] = []
        self.num_trees = DEFAULT_NUM_TREE
        self.mtry = 0
        self.min_node_size = 0
        self.num_independent_variables = 0
        self.seed = 0
        self.num_samples = 0
        self.prediction_mode = False
        self.memory_mode = MemoryMode.DOUBLE
        self.sample_with_replacement = True
        self.memory_saving_splitting = False
        self.splitrule = DEFAULT_SPLITRULE
        self.predict_all = False
        self.keep_inbag = False
        self.sample_fraction: list[float] = [1.0]
        self.holdout = False
        self.prediction_type = DEFAULT_PREDICTIONTYPE
        self.num_random_splits = DEFAULT_NUM_RANDOM_SPLITS
        self.max_depth = DEFAULT_MAXDEPTH
        self.alpha = DEFAULT_ALPHA
        self.minprop = DEFAULT_MINPROP
        self.num_threads = 1
        self.thread_ranges: list[int] = []
        self.trees: list[TreeModel] = []
        self.data: Data | None = None
        self.predictions: list = []
        self.overall_prediction_error = math.nan
        self.deterministic_var_ids: list[int] = []
        self.split_select_var_ids: list[int] = []
        self.split_select_weights: list[list[float]] = [[]]
        self.case_weights: list[float] = []
        self.manual_inbag: list[list[int]] = [[]]
        self.rng = random.Random()
        self.output_prefix = ""
        self.importance_mode = DEFAULT_IMPORTANCE_MODE
        self.variable_importance: list[float] = []

    # Hooks for forest types

    @abstractmethod
    def _init_internal(self) -> None:
        """Set type specific defaults after the common settings are in place."""

    @abstractmethod
    def _grow_internal(self) -> None:
        """Create ``num_trees`` empty trees in ``self.trees``."""

    @abstractmethod
    def _allocate_predict_memory(self) -> None:
        """Prepare ``self.predictions`` for aggregation."""

    @abstractmethod
    def _predict_internal(self, sample_idx: int) -> None:
        """Aggregate the tree predictions of one sample."""

    @abstractmethod
    def _compute_prediction_error_internal(self) -> None:
        """Set ``overall_prediction_error`` from the out-of-bag predictions."""

    @abstractmethod
    def _write_output_internal(self) -> None:
        """Write the type specific part of the summary."""

    @abstractmethod
    def _write_confusion_file(self) -> None:
        """Write the prediction error file."""

    @abstractmethod
    def _write_prediction_file(self) -> None:
        """Write the predictions file."""

    @abstractmethod
    def _save_to_file_internal(self, stream: BinaryIO) -> None:
        """Write the type specific part of a forest file."""

    @abstractmethod
    def _load_from_file_internal(self, stream: BinaryIO) -> None:
        """Read the type specific part of a forest file and create the trees."""

    # Set up

    def init(self, data: Data, settings: ForestSettings) -> None:
        """Attach the data and apply the settings."""
        self.data = data
        self.settings = settings
        self.verbose_out = settings.verbose_out
        if settings.dependent_variable_names:
            self.dependent_variable_names = list(settings.dependent_variable_names)

        self.rng = random.Random(settings.seed) if settings.seed != 0 else random.Random()

        if settings.num_threads == DEFAULT_NUM_THREADS:
            self.num_threads = os.cpu_count() or 1
        else:
            self.num_threads = settings.num_threads

        self.num_trees = settings.num_trees
        self.mtry = settings.mtry
        self.seed = settings.seed
        self.output_prefix = settings.output_prefix
        self.importance_mode = ImportanceMode(settings.importance_mode)
        self.min_node_size = settings.min_node_size
        self.memory_mode = MemoryMode(settings.memory_mode)
        self.prediction_mode = settings.prediction_mode
        self.sample_with_replacement = settings.sample_with_replacement
        self.memory_saving_splitting = settings.memory_saving_splitting
        self.splitrule = settings.splitrule
        self.predict_all = settings.predict_all
        self.keep_inbag = settings.keep_inbag
        self.holdout = settings.holdout
        self.alpha = settings.alpha
        self.minprop = settings.minprop
        self.prediction_type = settings.prediction_type
        self.num_random_splits = settings.num_random_splits
        self.max_depth = settings.max_depth

        if not settings.sample_fraction or settings.sample_fraction[0] == 0:
            default = (
                DEFAULT_SAMPLE_FRACTION_REPLACE if self.sample_with_replacement else DEFAULT_SAMPLE_FRACTION_NOREPLACE
            )
            self.sample_fraction = [default]
        else:
            self.sample_fraction = list(settings.sample_fraction)

        self.num_samples = data.num_rows
        self.num_independent_variables = data.num_cols

        if not self.prediction_mode:
            data.set_unordered_variables(settings.unordered_variable_names)

        self._init_internal()

        self.split_select_weights = [[]]
        self.manual_inbag = [[]]
        self.deterministic_var_ids = []
        self.split_select_var_ids = []
        self.case_weights = []

        if self.mtry > self.num_independent_variables:
            raise ValueError("mtry can not be larger than number of variables in data.")
        if self.num_samples * self.sample_fraction[0] < 1:
            raise ValueError("sample_fraction too small, no observations sampled.")

        if self.importance_mode == ImportanceMode.GINI_CORRECTED:
            data.permute_sample_ids(self.rng)

        if not self.prediction_mode and settings.order_snps:
            data.order_snp_levels(self.importance_mode == ImportanceMode.GINI_CORRECTED)

    def set_split_weights(self, split_select_weights: Sequence[Sequence[float]]) -> None:
        """Use split select weights in [0, 1]: one vector for all trees or one per tree.

        Weight 1 makes a variable always considered, weight 0 never.
        """
        if len(split_select_weights) not in (1, self.num_trees):
            raise ValueError("Size of split select weights not equal to 1 or number of trees.")

        num_vars = self.num_independent_variables
        corrected = self.importance_mode == ImportanceMode.GINI_CORRECTED
        num_weights = 2 * num_vars if corrected else num_vars
        if len(split_select_weights) == 1:
            self.split_select_weights[0] = [0.0] * num_weights
        else:
            self.split_select_weights = [[0.0] * num_weights for _ in range(self.num_trees)]
        self.split_select_var_ids = [0] * num_weights

        num_zero_weights = 0
        for i, weights in enumerate(split_select_weights):
            if len(weights) != num_vars:
                raise ValueError("Number of split select weights not equal to number of independent variables.")
            target = self.split_select_weights[i]
            for j, weight in enumerate(weights):
                if i == 0:
                    if weight == 1:
                        self.deterministic_var_ids.append(j)
                    elif 0 < weight < 1:
                        self.split_select_var_ids[j] = j
                        target[j] = weight
                    elif weight == 0:
                        num_zero_weights += 1
                    elif weight < 0 or weight > 1:
                        raise ValueError("One or more split select weights not in range [0,1].")
                elif 0 < weight < 1:
                    target[j] = weight
                elif weight < 0 or weight > 1:
                    raise ValueError("One or more split select weights not in range [0,1].")

            if corrected:
                target[num_vars:] = target[:num_vars]
                for k in range(num_vars):
                    self.split_select_var_ids[num_vars + k] = num_vars + k
                self.deterministic_var_ids.extend(k + num_vars for k in range(len(self.deterministic_var_ids)))

        if num_weights - len(self.deterministic_var_ids) - num_zero_weights < self.mtry:
            raise ValueError("Too many zeros or ones in split select weights. Need at least mtry variables to split at.")

    def set_always_split_variables(self, always_split_variable_names: Sequence[str]) -> None:
        """Always consider the named variables for splitting."""
        for name in always_split_variable_names:
            self.deterministic_var_ids.append(self.data.variable_id(name))

        if len(self.deterministic_var_ids) + self.mtry > self.num_independent_variables:
            raise ValueError(
                "Number of variables to be always considered for splitting plus mtry cannot be larger than "
                "number of independent variables."
            )

        if self.importance_mode == ImportanceMode.GINI_CORRECTED:
            num_vars = self.num_independent_variables
            self.deterministic_var_ids.extend(k + num_vars for k in range(len(self.deterministic_var_ids)))

    def set_case_weights(self, case_weights: Sequence[float]) -> None:
        """Use sampling weights, one per sample."""
        case_weights = [float(weight) for weight in case_weights]
        if not case_weights:
            return
        if len(case_weights) != self.num_samples:
            raise ValueError("Number of case weights not equal to number of samples.")
        self.case_weights = case_weights
        if self.holdout:
            nonzero = sum(1 for weight in case_weights if weight > 0)
            self.sample_fraction[0] *= nonzero / self.num_samples

    def set_manual_inbag(self, manual_inbag: Sequence[Sequence[int]]) -> None:
        """Use given inbag counts: one vector for all trees or one per tree."""
        if manual_inbag:
            self.manual_inbag = [list(counts) for counts in manual_inbag]

    # Running

    def run(self, verbose: bool, compute_oob_error: bool) -> None:
        """Grow the forest, or predict if in prediction mode."""
        say = self.verbose_out if verbose else None
        if self.prediction_mode:
            if say is not None:
                print("Predicting ..", file=say)
            self._predict()
            return

        if say is not None:
            print("Growing trees ..", file=say)
        self._grow()

        if say is not None:
            print("Computing prediction error ..", file=say)
        if compute_oob_error:
            self._compute_prediction_error()

        if self.importance_mode.is_permutation():
            if say is not None:
                print("Computing permutation variable importance ..", file=say)
            self._compute_permutation_importance()

    def _reporter(self, operation: str, max_progress: int) -> ProgressReporter:
        return ProgressReporter(operation, max_progress, self.verbose_out)

    def _run_in_threads(
        self, ranges: Sequence[int], work: Callable[[int, int], None], reporter: ProgressReporter
    ) -> None:
        def worker(thread_idx: int) -> None:
            if len(ranges) > thread_idx + 1:
                for item in range(ranges[thread_idx], ranges[thread_idx + 1]):
                    work(thread_idx, item)
                    reporter.advance()

        with ThreadPoolExecutor(max_workers=max(self.num_threads, 1)) as pool:
            futures = [pool.submit(worker, thread_idx) for thread_idx in range(self.num_threads)]
            for future in futures:
                future.result()

    def _tree_settings(self, weights: list[float], inbag: list[int]) -> ForestSettings:
        return dataclasses.replace(
            self.settings,
            mtry=self.mtry,
            num_trees=self.num_trees,
            importance_mode=self.importance_mode,
            min_node_size=self.min_node_size,
            sample_with_replacement=self.sample_with_replacement,
            memory_saving_splitting=self.memory_saving_splitting,
            splitrule=self.splitrule,
            keep_inbag=self.keep_inbag,
            sample_fraction=self.sample_fraction,
            holdout=self.holdout,
            alpha=self.alpha,
            minprop=self.minprop,
            num_random_splits=self.num_random_splits,
            max_depth=self.max_depth,
            deterministic_var_ids=self.deterministic_var_ids,
            split_select_var_ids=self.split_select_var_ids,
            split_select_weights=weights,
            case_weights=self.case_weights,
            manual_inbag=inbag,
        )

    def _grow(self) -> None:
        self.thread_ranges = equal_split(0, self.num_trees - 1, self.num_threads)
        self._grow_internal()

        for i in range(self.num_trees):
            if self.seed == 0:
                tree_seed = self.rng.getrandbits(32)
            else:
                tree_seed = ((i + 1) * self.seed) & _UINT_MASK
            weights = self.split_select_weights[i] if len(self.split_select_weights) > 1 else self.split_select_weights[0]
            inbag = self.manual_inbag[i] if len(self.manual_inbag) > 1 else self.manual_inbag[0]
            self.trees[i].init(self.data, self.mtry, self.num_samples, tree_seed, self._tree_settings(weights, inbag))

        num_vars = self.num_independent_variables
        self.variable_importance = [0.0] * num_vars
        impurity = self.importance_mode.is_impurity()
        per_thread = [[0.0] * num_vars if impurity else [] for _ in range(self.num_threads)]

        reporter = self._reporter("Growing trees..", self.num_trees)
        self._run_in_threads(
            self.thread_ranges, lambda thread_idx, i: self.trees[i].grow(per_thread[thread_idx]), reporter
        )

        if impurity:
            self.variable_importance = [
                sum(values[i] for values in per_thread) / self.num_trees for i in range(num_vars)
            ]

    def _predict(self) -> None:
        reporter = self._reporter("Predicting..", self.num_trees)
        self._run_in_threads(self.thread_ranges, lambda _t, i: self.trees[i].predict(self.data, False), reporter)

        self._allocate_predict_memory()
        predict_ranges = equal_split(0, self.num_samples - 1, self.num_threads)
        reporter = self._reporter("Aggregating predictions..", self.num_samples)
        self._run_in_threads(predict_ranges, lambda _t, i: self._predict_internal(i), reporter)

    def _compute_prediction_error(self) -> None:
        reporter = self._reporter("Computing prediction error..", self.num_trees)
        self._run_in_threads(self.thread_ranges, lambda _t, i: self.trees[i].predict(self.data, True), reporter)
        self._compute_prediction_error_internal()

    def _compute_permutation_importance(self) -> None:
        num_vars = self.num_independent_variables
        scaled = self.importance_mode in (ImportanceMode.PERM_BREIMAN, ImportanceMode.PERM_LIAW)
        importance_threads = [[0.0] * num_vars for _ in range(self.num_threads)]
        variance_threads = [[0.0] * num_vars if scaled else [] for _ in range(self.num_threads)]

        reporter = self._reporter("Computing permutation importance..", self.num_trees)
        self._run_in_threads(
            self.thread_ranges,
            lambda thread_idx, i: self.trees[i].compute_permutation_importance(
                importance_threads[thread_idx], variance_threads[thread_idx]
            ),
            reporter,
        )

        importance = [sum(values[i] for values in importance_threads) for i in range(num_vars)]
        if scaled:
            variance = [sum(values[i] for values in variance_threads) for i in range(num_vars)]
        else:
            variance = [0.0] * num_vars

        for i in range(num_vars):
            importance[i] /= self.num_trees
            if scaled and variance[i] != 0:
                variance[i] = variance[i] / self.num_trees - importance[i] * importance[i]
                spread = variance[i] / self.num_trees
                denominator = math.sqrt(spread) if spread >= 0 else math.nan
                importance[i] = _divide(importance[i], denominator)
        self.variable_importance = importance

    # Output

    def write_output(self) -> None:
        """Write the summary and the result files."""
        out = self.verbose_out
        if out is not None:
            print(file=out)
        self._write_output_internal()
        if out is not None:
            if self.dependent_variable_names:
                print(f"Dependent variable name:           {self.dependent_variable_names[0]}", file=out)
            print(f"Number of trees:                   {self.num_trees}", file=out)
            print(f"Sample size:                       {self.num_samples}", file=out)
            print(f"Number of independent variables:   {self.num_independent_variables}", file=out)
            print(f"Mtry:                              {self.mtry}", file=out)
            print(f"Target node size:                  {self.min_node_size}", file=out)
            print(f"Variable importance mode:          {int(self.importance_mode)}", file=out)
            print(f"Memory mode:                       {int(self.memory_mode)}", file=out)
            print(f"Seed:                              {self.seed}", file=out)
            print(f"Number of threads:                 {self.num_threads}", file=out)
            print(file=out)

        if self.prediction_mode:
            self._write_prediction_file()
            return

        if out is not None:
            print(f"Overall OOB prediction error:      {_format_number(self.overall_prediction_error)}", file=out)
            print(file=out)
            if self.split_select_weights and self.split_select_weights[0]:
                print(
                    "Warning: Split select weights used. Variable importance measures are only comparable "
                    "for variables with equal weights.",
                    file=out,
                )

        if self.importance_mode != ImportanceMode.NONE:
            self.write_importance_file()
        self._write_confusion_file()

    def write_importance_file(self) -> None:
        """Write the variable importance to ``<output_prefix>.importance``."""
        filename = self.output_prefix + ".importance"
        _write_importance_lines(filename, self.data.variable_names, self.variable_importance)
        if self.verbose_out is not None:
            print(f"Saved variable importance to file {filename}.", file=self.verbose_out)

    def save_to_file(self) -> None:
        """Save the forest to ``<output_prefix>.forest``."""
        filename = self.output_prefix + ".forest"
        try:
            stream = open(filename, "wb")
        except OSError as err:
            raise OSError(f"Could not write to output file: {filename}.") from err
        with stream:
            write_forest_header(stream, self.dependent_variable_names, self.num_trees, self.data.is_ordered)
            self._save_to_file_internal(stream)
            for tree in self.trees:
                tree.append_to_file(stream)
        if self.verbose_out is not None:
            print(f"Saved forest to file {filename}.", file=self.verbose_out)

    def load_from_file(self, filename) -> None:
        """Load a saved forest for prediction."""
        if self.verbose_out is not None:
            print(f"Loading forest from file {filename}.", file=self.verbose_out)
        try:
            stream = open(filename, "rb")
        except OSError as err:
            raise OSError(f"Could not read from input file: {filename}.") from err
        with stream:
            header = read_forest_header(stream)
            if not self.dependent_variable_names:
                self.dependent_variable_names = header.dependent_variable_names
            self.num_trees = header.num_trees
            self.data.is_ordered = list(header.is_ordered_variable)
            self._load_from_file_internal(stream)
        self.thread_ranges = equal_split(0, self.num_trees - 1, self.num_threads)

    # Tree structure

    def child_node_ids(self) -> list[list[list[int]]]:
        """Child node IDs of every tree."""
        return [tree.child_node_ids for tree in self.trees]

    def split_var_ids(self) -> list[list[int]]:
        """Split variable IDs of every tree."""
        return [tree.split_var_ids for tree in self.trees]

    def split_values(self) -> list[list[float]]:
        """Split values of every tree."""
        return [tree.split_values for tree in self.trees]

    def inbag_counts(self) -> list[list[int]]:
        """Inbag counts of every tree."""
        return [tree.inbag_counts for tree in self.trees]