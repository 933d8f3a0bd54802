"""Shared builders for the autotab tests."""

from autotab.src.autocomplete.context import get_prefix_and_suffix_info
from autotab.src.autocomplete.prediction import Prediction, PredictionKind

CURSOR = "|"


def info_at(marked_text):
    """Cursor info for *marked_text*, where ``|`` marks the cursor."""

    offset = marked_text.index(CURSOR)
    text = marked_text[:offset] + marked_text[offset + 1:]
    return get_prefix_and_suffix_info(text, offset)


def make_prediction(prefix, insert_text=None, kind=PredictionKind.SINGLE_LINE_FILL_MIDDLE, suffix="", id=0):
    """Prediction for *prefix*; finished with *insert_text* unless it is None."""

    prediction = Prediction(
        id=id,
        prefix=prefix,
        suffix=suffix,
        model_prefix=prefix,
        model_suffix=suffix,
        kind=kind,
        created_at=0.0,
    )
    if insert_text is not None:
        prediction.finish(insert_text, completed_at=0.0)
    return prediction
