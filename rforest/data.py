"""Numeric data sets: dense column storage, sparse storage and packed SNP genotypes."""

from __future__ import annotations

import bisect
import math
import random
from collections.abc import Iterable, Mapping, Sequence

# Four genotypes are packed into one byte, two bits each.
SNP_MASK = (192, 48, 12, 3)
SNP_OFFSET = (6, 4, 2, 0)


def round_to_next_multiple(value: int, multiple: int) -> int:
    """Round value up to the next multiple of multiple (unchanged if multiple is 0)."""
    if multiple == 0:
        return value
    remainder = value % multiple
    if remainder == 0:
        return value
    return value + multiple - remainder


def _split_fields(text: str, separator: str) -> list[str]:
    """Split like repeated getline with a delimiter: no trailing empty field."""
    parts = text.split(separator)
    if parts and parts[-1] == "":
        parts.pop()
    return parts


def _parse_field(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError:
        return 0.0


def _parse_whitespace_row(line: str) -> list[float]:
    """Read numbers until the first token that is not one."""
    values = []
    for token in line.split():
        try:
            values.append(float(token))
        except ValueError:
            break
    return values


def _read_header(tokens: Iterable[str], dependent_variable_names: Sequence[str]) -> tuple[list[str], list[int]]:
    variable_names: list[str] = []
    dependent_ids = [0] * len(dependent_variable_names)
    for col, token in enumerate(tokens):
        is_dependent = False
        for i, name in enumerate(dependent_variable_names):
            if token == name:
                dependent_ids[i] = col
                is_dependent = True
        if not is_dependent:
            variable_names.append(token)
    return variable_names, dependent_ids


class Data:
    """Predictor and response values, stored column by column.

    Variable IDs at or above ``num_cols`` refer to permuted copies of the
    variables, used for the corrected impurity importance.
    """

    def __init__(self, variable_names: Sequence[str], num_rows: int, num_dependent: int = 1) -> None:
        self.variable_names = list(variable_names)
        self.num_rows = num_rows
        self.num_cols = len(self.variable_names)
        self.num_cols_no_snp = self.num_cols
        self.num_rows_rounded = 0
        self.snp_data: bytes | None = None
        self.index_data: list[int] = []
        self.unique_data_values: list[list[float]] = []
        self._max_num_unique_values = 0
        self.is_ordered: list[bool] = []
        self.permuted_sample_ids: list[int] = []
        self.snp_order: list[list[int]] = []
        self.order_snps = False
        self._allocate(num_dependent)

    def _allocate(self, num_dependent: int) -> None:
        self._x = [0.0] * (self.num_cols * self.num_rows)
        self._y = [0.0] * (num_dependent * self.num_rows)

    @classmethod
    def from_file(cls, filename, dependent_variable_names: Sequence[str]) -> Data:
        """Load a data file separated by commas, semicolons or whitespace.

        The first line holds the variable names; columns named in
        ``dependent_variable_names`` become response columns.
        """
        try:
            with open(filename, encoding="utf-8") as handle:
                lines = handle.read().splitlines()
        except OSError as err:
            raise OSError("Could not open input file.") from err

        header = lines[0] if lines else ""
        body = lines[1:]
        dependent_variable_names = list(dependent_variable_names)
        num_dependent = len(dependent_variable_names)

        if "," in header or ";" in header:
            separator = "," if "," in header else ";"
            variable_names, dependent_ids = _read_header(_split_fields(header, separator), dependent_variable_names)
            data = cls(variable_names, len(body), num_dependent)
            for row, line in enumerate(body):
                values = [_parse_field(field) for field in _split_fields(line, separator)]
                data._store_row(row, values, dependent_ids)
        else:
            variable_names, dependent_ids = _read_header(header.split(), dependent_variable_names)
            data = cls(variable_names, len(body), num_dependent)
            expected = data.num_cols + num_dependent
            for row, line in enumerate(body):
                values = _parse_whitespace_row(line)
                if len(values) > expected:
                    raise ValueError(f"Could not open input file. Too many columns in row {row}.")
                if len(values) < expected:
                    raise ValueError(
                        f"Could not open input file. Too few columns in row {row}. Are all values numeric?"
                    )
                data._store_row(row, values, dependent_ids)
        return data

    def _store_row(self, row: int, values: Sequence[float], dependent_ids: Sequence[int]) -> None:
        for column, value in enumerate(values):
            column_x = column
            is_dependent = False
            for i, dep_id in enumerate(dependent_ids):
                if column == dep_id:
                    self.set_y(i, row, value)
                    is_dependent = True
                    break
                if column > dep_id:
                    column_x -= 1
            if not is_dependent:
                if column_x >= self.num_cols:
                    raise ValueError(f"Could not open input file. Too many columns in row {row}.")
                self.set_x(column_x, row, value)

    @classmethod
    def from_matrices(
        cls,
        x_rows: Sequence[Sequence[float]],
        y_rows: Sequence[Sequence[float]],
        variable_names: Sequence[str],
    ) -> Data:
        """Build a data set from row-major predictor and response matrices."""
        num_dependent = max((len(row) for row in y_rows), default=1)
        data = cls(variable_names, len(x_rows), max(num_dependent, 1))
        for i, row_values in enumerate(x_rows):
            for j, value in enumerate(row_values):
                data.set_x(j, i, value)
        for i, row_values in enumerate(y_rows):
            for j, value in enumerate(row_values):
                data.set_y(j, i, value)
        return data

    # Value access

    def get_x(self, row: int, col: int) -> float:
        """Predictor value; permuted variables read a permuted row."""
        if col >= self.num_cols:
            col = self.unpermuted_var_id(col)
            row = self.permuted_sample_id(row)
        if col < self.num_cols_no_snp:
            return self._x[col * self.num_rows + row]
        return float(self._snp_value(col - self.num_cols_no_snp, row))

    def get_y(self, row: int, col: int) -> float:
        """Response value of the given response column."""
        return self._y[col * self.num_rows + row]

    def set_x(self, col: int, row: int, value: float) -> None:
        """Store a predictor value."""
        self._x[col * self.num_rows + row] = float(value)

    def set_y(self, col: int, row: int, value: float) -> None:
        """Store a response value."""
        self._y[col * self.num_rows + row] = float(value)

    def variable_id(self, variable_name: str) -> int:
        """Position of a predictor by name."""
        try:
            return self.variable_names.index(variable_name)
        except ValueError:
            raise ValueError(f"Variable {variable_name} not found.") from None

    # SNP data

    def add_snp_data(self, snp_data: bytes, num_cols_snp: int) -> None:
        """Attach packed genotype columns after the numeric ones."""
        self.num_cols = self.num_cols_no_snp + num_cols_snp
        self.num_rows_rounded = round_to_next_multiple(self.num_rows, 4)
        self.snp_data = bytes(snp_data)

    def _snp_value(self, snp_col: int, row: int) -> int:
        if self.snp_data is None:
            raise IndexError("no SNP data attached")
        idx = snp_col * self.num_rows_rounded + row
        bits = (self.snp_data[idx // 4] & SNP_MASK[idx % 4]) >> SNP_OFFSET[idx % 4]
        # Stored codes are shifted by one; a missing value counts as 0.
        return bits - 1 if bits >= 1 else 0

    def snp(self, row: int, col: int, col_permuted: int) -> int:
        """Genotype 0, 1 or 2 of a SNP column, reordered if levels are ordered."""
        result = self._snp_value(col - self.num_cols_no_snp, row)
        if self.order_snps:
            if col_permuted >= self.num_cols:
                result = self.snp_order[col_permuted - 2 * self.num_cols_no_snp][result]
            else:
                result = self.snp_order[col - self.num_cols_no_snp][result]
        return result

    def order_snp_levels(self, corrected_importance: bool) -> None:
        """Order the genotype levels of each SNP by mean response."""
        if self.snp_data is None:
            return
        num_snp_cols = self.num_cols - self.num_cols_no_snp
        num_snps = 2 * num_snp_cols if corrected_importance else num_snp_cols

        snp_order = []
        for i in range(num_snps):
            permuted = i >= num_snp_cols
            col = i - num_snp_cols if permuted else i
            sums = [0.0, 0.0, 0.0]
            counts = [0, 0, 0]
            for row in range(self.num_rows):
                source_row = self.permuted_sample_id(row) if permuted else row
                value = self._snp_value(col, source_row)
                sums[value] += self.get_y(row, 0)
                counts[value] += 1
            means = [total / count if count else math.nan for total, count in zip(sums, counts)]
            snp_order.append(sorted(range(3), key=lambda v: (math.isnan(means[v]), means[v])))

        self.snp_order = snp_order
        self.order_snps = True

    def set_snp_order(self, snp_order: Sequence[Sequence[int]]) -> None:
        """Use a given genotype level order."""
        self.snp_order = [list(levels) for levels in snp_order]
        self.order_snps = True

    # Value summaries

    def all_values(self, sample_ids: Sequence[int], var_id: int, start: int, end: int) -> list[float]:
        """Sorted distinct values of a variable over sample_ids[start:end]."""
        if self.unpermuted_var_id(var_id) < self.num_cols_no_snp:
            return sorted({self.get_x(sample_ids[pos], var_id) for pos in range(start, end)})
        return [0.0, 1.0, 2.0]

    def min_max_values(self, sample_ids: Sequence[int], var_id: int, start: int, end: int) -> tuple[float, float]:
        """Smallest and largest value of a variable over sample_ids[start:end]."""
        if not sample_ids:
            raise ValueError("No samples given.")
        minimum = maximum = self.get_x(sample_ids[start], var_id)
        for pos in range(start, end):
            value = self.get_x(sample_ids[pos], var_id)
            minimum = min(minimum, value)
            maximum = max(maximum, value)
        return minimum, maximum

    def sort(self) -> None:
        """Index every value by its rank among the distinct values of its column."""
        self.index_data = []
        self.unique_data_values = []
        self._max_num_unique_values = 0
        for col in range(self.num_cols_no_snp):
            column = [self.get_x(row, col) for row in range(self.num_rows)]
            unique_values = sorted(set(column))
            self.index_data.extend(bisect.bisect_left(unique_values, value) for value in column)
            self.unique_data_values.append(unique_values)
            self._max_num_unique_values = max(self._max_num_unique_values, len(unique_values))

    def index(self, row: int, col: int) -> int:
        """Rank index of a value, as built by sort()."""
        col_permuted = col
        if col >= self.num_cols:
            col = self.unpermuted_var_id(col)
            row = self.permuted_sample_id(row)
        if col < self.num_cols_no_snp:
            return self.index_data[col * self.num_rows + row]
        return self.snp(row, col, col_permuted)

    def unique_data_value(self, var_id: int, index: int) -> float:
        """Distinct value at a rank index."""
        if var_id >= self.num_cols:
            var_id = self.unpermuted_var_id(var_id)
        if var_id < self.num_cols_no_snp:
            return self.unique_data_values[var_id][index]
        return float(index)

    def num_unique_data_values(self, var_id: int) -> int:
        """Number of distinct values of a variable."""
        if var_id >= self.num_cols:
            var_id = self.unpermuted_var_id(var_id)
        if var_id < self.num_cols_no_snp:
            return len(self.unique_data_values[var_id])
        return 3

    def max_num_unique_values(self) -> int:
        """Largest number of distinct values over all variables."""
        if self.snp_data is None or self._max_num_unique_values > 3:
            return self._max_num_unique_values
        return 3

    # Ordered and unordered variables

    def set_unordered_variables(self, unordered_variable_names: Iterable[str]) -> None:
        """Mark the named variables as unordered, all others as ordered."""
        current = self.is_ordered[: self.num_cols]
        self.is_ordered = current + [True] * (self.num_cols - len(current))
        for name in unordered_variable_names:
            self.is_ordered[self.variable_id(name)] = False

    def is_ordered_variable(self, var_id: int) -> bool:
        """Whether a variable is ordered."""
        if var_id >= self.num_cols:
            var_id = self.unpermuted_var_id(var_id)
        return self.is_ordered[var_id]

    # Permutation for corrected impurity importance

    def permute_sample_ids(self, rng: random.Random) -> None:
        """Shuffle the sample IDs with a copy of rng, leaving rng itself untouched."""
        generator = random.Random()
        generator.setstate(rng.getstate())
        ids = list(range(self.num_rows))
        generator.shuffle(ids)
        self.permuted_sample_ids = ids

    def permuted_sample_id(self, sample_id: int) -> int:
        """Sample ID that a permuted variable reads for sample_id."""
        return self.permuted_sample_ids[sample_id]

    def unpermuted_var_id(self, var_id: int) -> int:
        """Original variable ID of a permuted variable ID."""
        if var_id >= self.num_cols:
            var_id -= self.num_cols
        return var_id


class SparseData(Data):
    """Data whose predictors are kept as a mapping of nonzero (row, col) entries."""

    def __init__(
        self,
        entries: Mapping[tuple[int, int], float],
        y_rows: Sequence[Sequence[float]],
        variable_names: Sequence[str],
        num_rows: int,
        num_cols: int,
    ) -> None:
        y_rows = [list(row) for row in y_rows]
        num_dependent = max((len(row) for row in y_rows), default=0)
        super().__init__(variable_names, num_rows, num_dependent)
        self.num_cols = num_cols
        self.num_cols_no_snp = num_cols
        self._entries = {(int(r), int(c)): float(v) for (r, c), v in entries.items()}
        for row, values in enumerate(y_rows):
            for col, value in enumerate(values):
                self.set_y(col, row, value)

    def _allocate(self, num_dependent: int) -> None:
        self._entries: dict[tuple[int, int], float] = {}
        self._y = [0.0] * (num_dependent * self.num_rows)

    def get_x(self, row: int, col: int) -> float:
        if col >= self.num_cols:
            col = self.unpermuted_var_id(col)
            row = self.permuted_sample_id(row)
        return self._entries.get((row, col), 0.0)

    def get_y(self, row: int, col: int) -> float:
        return self._y[col * self.num_rows + row]

    def set_x(self, col: int, row: int, value: float) -> None:
        self._entries[(row, col)] = float(value)

    def set_y(self, col: int, row: int, value: float) -> None:
        self._y[col * self.num_rows + row] = float(value)