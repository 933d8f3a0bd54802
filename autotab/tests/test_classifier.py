import pytest

from autotab.src.autocomplete.classifier import (
    get_completion_options,
    remove_all_whitespace,
    window_prefix_and_suffix,
)
from autotab.src.autocomplete.context import ALL_LINEBREAK_SYMBOLS
from autotab.src.autocomplete.prediction import PredictionKind

from autotab.tests.helpers import info_at


def test_end_of_line_fills_middle():
    options = get_completion_options(info_at("const x = |"), False)

    assert options.prediction_kind is PredictionKind.SINGLE_LINE_FILL_MIDDLE
    assert options.should_generate
    assert options.model_prefix == "const x = "
    assert options.model_suffix == ""
    assert options.stop_tokens == ALL_LINEBREAK_SYMBOLS


def test_after_accept_continues_on_next_line():
    options = get_completion_options(info_at("foo();|\n}"), True)

    assert options.prediction_kind is PredictionKind.MULTI_LINE_START_ON_NEXT_LINE
    assert options.model_prefix == "foo();\n"
    assert options.model_suffix == "\n}"
    assert options.stop_tokens == ("\n\n",)


def test_after_accept_with_text_to_the_right_stays_single_line():
    options = get_completion_options(info_at("foo(|x)"), True)

    assert options.prediction_kind is PredictionKind.SINGLE_LINE_REDO_SUFFIX


def test_empty_line_fills_middle():
    options = get_completion_options(info_at("def f():\n    |\n    return 1"), False)

    assert options.prediction_kind is PredictionKind.SINGLE_LINE_FILL_MIDDLE
    assert options.model_suffix == "\n    return 1"


def test_short_suffix_is_regenerated():
    options = get_completion_options(info_at("x = foo(|);\nnext()"), False)

    assert options.prediction_kind is PredictionKind.SINGLE_LINE_REDO_SUFFIX
    assert options.model_prefix == "x = foo("
    # The current line's tail is left out of the model suffix.
    assert options.model_suffix == "\nnext()"
    assert options.stop_tokens == ALL_LINEBREAK_SYMBOLS


def test_short_suffix_on_last_line_has_empty_model_suffix():
    options = get_completion_options(info_at("x = foo(|);"), False)

    assert options.prediction_kind is PredictionKind.SINGLE_LINE_REDO_SUFFIX
    assert options.model_suffix == ""


def test_long_suffix_with_prefix_fills_middle():
    options = get_completion_options(info_at("x = |compute(a, b)"), False)

    assert options.prediction_kind is PredictionKind.SINGLE_LINE_FILL_MIDDLE
    assert options.model_suffix == "compute(a, b)"


@pytest.mark.parametrize("marked", ["|return value", "  |  total += 1"])
def test_no_prefix_on_line_does_not_predict(marked):
    options = get_completion_options(info_at(marked), False)

    assert options.prediction_kind is PredictionKind.DO_NOT_PREDICT
    assert not options.should_generate
    assert options.stop_tokens == ()


def test_context_is_windowed():
    prefix = "\n".join(f"line{i}" for i in range(40))
    suffix = "\n".join(f"after{i}" for i in range(30))
    options = get_completion_options(info_at(prefix + "|\n" + suffix), False)

    prefix_lines = options.model_prefix.split("\n")
    assert len(prefix_lines) == 25
    assert prefix_lines[0] == "line15"
    assert prefix_lines[-1] == "line39"

    suffix_lines = options.model_suffix.split("\n")
    assert len(suffix_lines) == 25
    assert suffix_lines[:2] == ["", "after0"]


def test_window_helper():
    prefix, suffix, suffix_lines = window_prefix_and_suffix("a\nb\nc", "d\ne\nf", 2, 1)

    assert prefix == "b\nc"
    assert suffix == "d"
    assert suffix_lines == ["d"]


@pytest.mark.parametrize("marked", [
    "|",
    "x|",
    "|x",
    "  |",
    "if (a|) {",
    "foo(|);",
    "a = 1\n|\nb = 2",
    "call(|first, second)",
    "\t|\treturn",
])
@pytest.mark.parametrize("just_accepted", [False, True])
def test_do_not_predict_iff_no_generation(marked, just_accepted):
    options = get_completion_options(info_at(marked), just_accepted)

    assert isinstance(options.prediction_kind, PredictionKind)
    assert (options.prediction_kind is PredictionKind.DO_NOT_PREDICT) == (not options.should_generate)


def test_remove_all_whitespace():
    assert remove_all_whitespace(" a \t b\n c ") == "abc"
