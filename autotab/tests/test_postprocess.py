import pytest

from autotab.src.autocomplete.context import END_OF_LINE, Position, Range
from autotab.src.autocomplete.matchup import NO_NEW_TYPING, get_autocompletion_matchup
from autotab.src.autocomplete.postprocess import (
    get_is_subsequence,
    get_string_up_to_unbalanced_closing_parenthesis,
    postprocess_autocompletion,
    preserve_edge_spaces,
    to_inline_completions,
    truncate_at_suffix_duplicate,
)
from autotab.src.autocomplete.prediction import PredictionKind

from autotab.tests.helpers import info_at, make_prediction

FILL = PredictionKind.SINGLE_LINE_FILL_MIDDLE
REDO = PredictionKind.SINGLE_LINE_REDO_SUFFIX
MULTI = PredictionKind.MULTI_LINE_START_ON_NEXT_LINE


def postprocess(marked_text, insert_text, kind=FILL):
    info = info_at(marked_text)
    prediction = make_prediction(info.prefix, insert_text, kind=kind, suffix=info.suffix)
    return postprocess_autocompletion(NO_NEW_TYPING, prediction, info)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def test_end_of_line_keeps_first_line_only():
    assert postprocess("const x = |", "5;\n\nconsole.log(x);") == "5;"


def test_unbalanced_closer_is_cut():
    assert postprocess("if (x) {\n    |", "return 1; } } else {") == "return 1; }"


def test_edge_spaces_collapse():
    assert postprocess("x =|", "  foo()  ") == " foo()"


def test_trailing_space_kept_before_existing_text():
    assert postprocess("call(a,|b, c, d)", " x ") == " x "


def test_typed_space_is_not_repeated():
    assert postprocess("x = |", " foo") == "foo"


def test_blank_line_skips_leading_newlines():
    assert postprocess("def f():\n|", "\n\nreturn 1") == "return 1"


def test_mid_line_completion_stops_at_suffix_bracket():
    assert postprocess("items[|] = value", "0] = value") == "0"


def test_next_line_continuation():
    marked = "function f() {\n  const result = compute();|\n}"

    assert postprocess(marked, "\nreturn result;", MULTI) == "\nreturn result;"


def test_next_line_continuation_drops_repeated_suffix():
    marked = "function f() {\n  const result = compute();|\n}"

    assert postprocess(marked, "\nreturn result;\n}", MULTI) == "\nreturn result;"


def test_postprocess_after_typing():
    info = info_at("const x = 5|")
    prediction = make_prediction("const x = ", "5;")
    matchup = get_autocompletion_matchup(info.prefix, prediction)

    assert postprocess_autocompletion(matchup, prediction, info) == ";"


# ---------------------------------------------------------------------------
# Replace ranges
# ---------------------------------------------------------------------------


def completions_at(marked_text, insert_text, kind):
    info = info_at(marked_text)
    position = Position(len(info.prefix_lines) - 1, len(info.prefix_to_the_left_of_cursor))
    prediction = make_prediction(info.prefix, insert_text, kind=kind, suffix=info.suffix, id=7)
    return to_inline_completions(NO_NEW_TYPING, prediction, info, position)


def test_fill_middle_inserts_at_cursor():
    [completion] = completions_at("const x = |", "5;", FILL)

    assert completion.insert_text == "5;"
    assert completion.range == Range(0, 10, 0, 10)
    assert completion.prediction_id == 7


def test_redo_suffix_replaces_rest_of_line():
    [completion] = completions_at("x = foo(|);", "a, b, c);", REDO)

    assert completion.insert_text == "a, b, c);"
    assert completion.range == Range(0, 8, 0, END_OF_LINE)


def test_redo_suffix_partial_match():
    [completion] = completions_at("x = foo(|);", "a, b)", REDO)

    assert completion.insert_text == "a, b)"
    assert completion.range == Range(0, 8, 0, 9)


def test_redo_suffix_without_common_characters():
    [completion] = completions_at("x = foo(|);", "a", REDO)

    assert completion.insert_text == "a"
    assert completion.range == Range(0, 8, 0, 10)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("of, sub, expected", [
    ("abc);", ");", (True, ";")),
    ("ab)", ");", (False, ")")),
    ("abc", ");", (False, "")),
    ("", ")", (False, "")),
    ("abc", "", (True, "")),
])
def test_get_is_subsequence(of, sub, expected):
    assert get_is_subsequence(of, sub) == expected


@pytest.mark.parametrize("text, prefix, expected", [
    ("return 1; } } else {", "if (x) {", "return 1; } "),
    ("a)", "", "a"),
    ("])", "f([", "])"),
    ("x) y", ") (", "x) y"),
    ("(a]", "", "(a"),
    ("no brackets", "", "no brackets"),
])
def test_unbalanced_closing_parenthesis(text, prefix, expected):
    assert get_string_up_to_unbalanced_closing_parenthesis(text, prefix) == expected


def test_truncate_at_fuzzy_suffix_duplicate():
    suffix_lines = ["", "  console.log(total);", "}"]

    text = "\ntotal += 1;\nconsole.log(total)"

    assert truncate_at_suffix_duplicate(text, suffix_lines) == "\ntotal += 1;"
    assert truncate_at_suffix_duplicate(text, ["", "  unrelated();"]) == text
    assert truncate_at_suffix_duplicate(text, suffix_lines, max_lines=1) == text


@pytest.mark.parametrize("text, keep_trailing, expected", [
    ("  foo()  ", False, " foo()"),
    ("  foo()  ", True, " foo() "),
    ("\tbar", False, " bar"),
    ("   ", True, ""),
    ("baz", True, "baz"),
])
def test_preserve_edge_spaces(text, keep_trailing, expected):
    assert preserve_edge_spaces(text, keep_trailing) == expected
