import pytest

from rforest.enums import VERSION
from rforest.helptext import help_text, version_text
from rforest.options import _LONG


def test_usage_line_names_program():
    lines = help_text("myprog").splitlines()
    assert lines[0] == "Usage: "
    assert lines[1] == "    myprog [options]"
    assert lines[3] == "Options:"


@pytest.mark.parametrize("long_name", sorted(_LONG))
def test_every_long_option_is_documented(long_name):
    text = help_text("prog")
    documented = {
        line.split()[0]
        for line in text.splitlines()
        if line.startswith("    --")
    }
    assert f"--{long_name}" in documented


def test_ends_with_readme_hint():
    text = help_text("prog")
    assert text.endswith("See README file for details and examples.\n")


def test_option_lines_are_indented():
    lines = help_text("prog").splitlines()
    body = lines[4:-2]
    assert body
    assert all(line.startswith("    ") for line in body)


def test_defaults_documented():
    text = help_text("prog")
    assert "(Default: 500)" in text
    assert "0.632 for sampling without replacement." in text


def test_version_text_contains_version():
    assert version_text() == f"Version: {VERSION}\n"
    assert "0.11.6" in version_text()