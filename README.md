# rforest

Building blocks for a random forest engine in pure Python: numeric data
tables, an abstract forest driver that grows trees, predicts and computes
variable importance across worker threads, a binary format for vectors and
forest file headers, and parsing and checking of command-line options.

The package uses only the standard library.

## Installing

Install it like any other Python package; the `test` extra adds pytest.

## Modules

| Module             | Contents                                                                                                   |
|--------------------|------------------------------------------------------------------------------------------------------------|
| `rforest.enums`    | `MemoryMode`, `ImportanceMode`, `SplitRule`, `TreeType`, `PredictionType`, `VERSION` and default settings  |
| `rforest.data`     | `Data` (dense column storage, optional packed SNP columns), `SparseData`, `round_to_next_multiple`         |
| `rforest.progress` | `equal_split`, `beautify_time`, `ProgressReporter`                                                         |
| `rforest.storage`  | Binary vector I/O, forest file header, `read_dependent_variable_names`, `write_importance_file`            |
| `rforest.forest`   | `ForestSettings`, the abstract `TreeModel` and `Forest` classes                                           |
| `rforest.options`  | `Options`, `ArgumentError`, `parse_arguments`, `check_arguments`, `split_string`, `read_tree_type_from_forest` |
| `rforest.helptext` | `help_text`, `version_text`                                                                                |

## Data tables

A data file has a header line of variable names and one row of numbers per
sample. The separator is taken from the header: comma if it holds one, else
semicolon, else whitespace. Columns named as dependent variables become
response columns; the others are predictors.

```python
from rforest.data import Data

data = Data.from_file("train.csv", ["y"])
data.sort()                                   # rank index over distinct values per column
age = data.variable_id("age")                 # ValueError if there is no such variable
print(data.get_x(0, age), data.get_y(0, 0))
print(data.num_unique_data_values(age))
```

With whitespace separation every row must have exactly as many numbers as the
header has names, otherwise `ValueError` is raised. With comma or semicolon
separation a field that is not a number is read as 0.

Tables can also be built in memory:

```python
from rforest.data import Data, SparseData

data = Data.from_matrices(
    [[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]],
    [[0.0], [1.0], [1.0]],
    ["a", "b"],
)
data.set_unordered_variables(["b"])
assert not data.is_ordered_variable(1)
assert data.all_values([0, 1, 2], 0, 0, 3) == [1.0, 3.0, 5.0]

sparse = SparseData({(0, 1): 2.5}, [[0.0], [1.0]], ["a", "b"], 2, 2)
assert sparse.get_x(1, 0) == 0.0
```

Variable IDs at or above the number of columns address permuted copies of the
variables (after `permute_sample_ids`), as used by the corrected impurity
importance. Packed genotype columns can be attached with `add_snp_data`, and
their levels ordered by mean response with `order_snp_levels`.

## Helpers

```python
from rforest.progress import beautify_time, equal_split
from rforest.options import split_string

equal_split(0, 6, 4)             # [0, 2, 4, 6, 7]
beautify_time(2317)              # "38 minutes, 37 seconds"
split_string("abc,def,ghi", ",") # ["abc", "def", "ghi"]
```

`equal_split` divides an inclusive range into contiguous parts and returns
their boundaries; with more parts than elements each element gets its own
part. `ProgressReporter` counts finished items from any thread and writes a
progress message with an estimated remaining time at most once per interval.

## Storage

`save_vector_1d` / `read_vector_1d` and `save_vector_2d` / `read_vector_2d`
write and read length-prefixed little-endian vectors; the `struct` type code
(`"d"` by default) selects the element type. `write_forest_header` and
`read_forest_header` handle the start of a forest file: the dependent variable
names, the number of trees and the ordered flag of each predictor.
`write_importance_file` writes one `name: value` line per variable.

## The forest driver

`Forest` holds the shared logic: `init(data, settings)` with a
`ForestSettings`, `set_split_weights`, `set_always_split_variables`,
`set_case_weights`, `run(verbose, compute_oob_error)`, `write_output`,
`save_to_file`, `load_from_file`, and access to the tree structure through
`child_node_ids`, `split_var_ids`, `split_values` and `inbag_counts`. Invalid
settings, such as an `mtry` larger than the number of variables or weights
outside [0, 1], raise `ValueError`.

To use it, subclass `Forest` and implement its hooks (`_grow_internal`,
`_predict_internal`, `_compute_prediction_error_internal`, the output and file
hooks and so on), with trees that implement `TreeModel`.

## Command-line options

```python
from rforest.options import check_arguments, parse_arguments

options = parse_arguments(["--file", "train.csv", "--depvarname", "y", "--ntree", "100"])
check_arguments(options)
```

`parse_arguments` accepts long options (or a unique prefix of them) and the
matching short options, and raises `ArgumentError` on illegal values, such as
a `--fraction` outside (0, 1] or an unknown `--splitrule`. `--help` and
`--version` set `show_help` / `show_version` and stop parsing; unknown options
are collected in `ignored`, other arguments in `unprocessed`.
`check_arguments` enforces the rules between options: an input file is
required, survival forests need `--statusvarname`, `--holdout` needs
`--caseweights`, and so on. In prediction mode it reads the tree type from the
forest file. `help_text(program)` and `version_text()` return the usage and
version messages.

## What the package does not do

- It contains no tree or forest implementations: there is no classification,
  regression, probability or survival forest and no splitting rule. `Forest`
  and `TreeModel` are abstract and must be subclassed.
- It installs no command. Options can be parsed and checked, but nothing
  here runs a forest from the command line.