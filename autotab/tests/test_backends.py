import asyncio

import pytest

from autotab.src.autocomplete.backends import FIMRequest, OracleBackend, StaticTextBackend, apply_stop_tokens
from autotab.src.autocomplete.errors import RequestError
from autotab.src.autocomplete.related_context import with_context_header


def complete(backend, prefix, suffix="", stop_tokens=()):
    return asyncio.run(backend.complete(FIMRequest(prefix=prefix, suffix=suffix, stop_tokens=stop_tokens)))


@pytest.mark.parametrize("text, stop_tokens, expected", [
    ("a\nb", ("\n",), "a"),
    ("a\r\nb", ("\r\n", "\n"), "a"),
    ("one\n\ntwo", ("\n\n",), "one"),
    ("abc", ("", "z"), "abc"),
    ("abc", (), "abc"),
])
def test_apply_stop_tokens(text, stop_tokens, expected):
    assert apply_stop_tokens(text, stop_tokens) == expected


def test_scripted_responses_in_order():
    backend = StaticTextBackend(["first", RequestError("quota exceeded"), "third"], chunk_size=2)

    assert complete(backend, "a") == "first"
    with pytest.raises(RequestError, match="quota exceeded"):
        complete(backend, "b")
    assert complete(backend, "c") == "third"
    with pytest.raises(RequestError, match="no scripted response left"):
        complete(backend, "d")

    assert [r.prefix for r in backend.requests] == ["a", "b", "c", "d"]


def test_responder_callable_and_stop_tokens():
    backend = StaticTextBackend(lambda request: request.prefix.upper() + "\nmore")

    assert complete(backend, "abc", stop_tokens=("\n",)) == "ABC"

    raw = StaticTextBackend("x\ny", honor_stop_tokens=False)
    assert complete(raw, "p", stop_tokens=("\n",)) == "x\ny"


def test_oracle_answers_with_the_continuation():
    backend = OracleBackend("def f():\n    return 1\n")

    assert complete(backend, "def f():\n    ret") == "urn 1\n"
    assert complete(backend, with_context_header("def f():", "Recent variables:")) == "\n    return 1\n"
    assert complete(backend, "class X:") == ""
