import asyncio

from autotab.src.autocomplete import examples
from autotab.src.autocomplete.backends import StaticTextBackend
from autotab.src.autocomplete.config import AutocompleteConfig
from autotab.src.autocomplete.simulator import simulate_typing

EXAMPLES = {
    "python": examples.PYTHON_FIBONACCI,
    "js": examples.JS_TODO_LIST,
}


def _replay_config(request):
    return AutocompleteConfig(debounce_ms=int(request.config.getoption("--replay-debounce-ms")))


def test_oracle_replay_accepts_completions(request):
    ground_truth = EXAMPLES[request.config.getoption("--replay-example")]

    result = asyncio.run(simulate_typing(ground_truth, config=_replay_config(request)))

    assert result.total_chars == len(ground_truth)
    assert result.accepted_completions > 0
    assert 0.0 < result.coverage <= 1.0
    assert result.requests > 0


def test_replay_without_accepting_types_everything(request):
    ground_truth = EXAMPLES[request.config.getoption("--replay-example")]

    result = asyncio.run(simulate_typing(ground_truth, config=_replay_config(request), accept=False))

    assert result.accepted_chars == 0
    assert result.keystrokes == len(ground_truth)
    assert result.coverage == 0.0


def test_wrong_model_is_never_accepted():
    ground_truth = "x = 1\n"
    backend = StaticTextBackend("totally different")

    result = asyncio.run(simulate_typing(ground_truth, backend=backend))

    assert result.accepted_chars == 0
    assert result.keystrokes == len(ground_truth)
    assert result.rejected_completions > 0
