"""Random forest core: data tables, an abstract forest driver, binary storage and command-line options."""

__version__ = "0.11.6"