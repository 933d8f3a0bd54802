import asyncio

import pytest

from autotab.src.autocomplete.prediction import PredictionStatus, RequestOutcome, RequestResult

from autotab.tests.helpers import make_prediction


def test_finish_is_final():
    prediction = make_prediction("x = ")

    assert prediction.finish("1", completed_at=0.25) is True
    assert prediction.fail(RequestOutcome.ERROR, "late failure") is False
    assert prediction.finish("2") is False

    assert prediction.status is PredictionStatus.FINISHED
    assert prediction.insert_text == "1"
    assert prediction.result == RequestResult(RequestOutcome.SUCCESS, text="1")
    assert prediction.latency_ms == 250.0


def test_fail_is_final():
    prediction = make_prediction("x = ")

    assert prediction.fail(RequestOutcome.TIMEOUT, "too slow") is True
    assert prediction.finish("1") is False

    assert prediction.status is PredictionStatus.ERROR
    assert prediction.insert_text == ""
    assert not prediction.result.ok
    assert prediction.result.message == "too slow"


def test_fail_needs_failure_outcome():
    with pytest.raises(ValueError):
        make_prediction("x").fail(RequestOutcome.SUCCESS)


def test_all_waiters_observe_the_same_result():
    async def main():
        prediction = make_prediction("x = ")
        waiters = [asyncio.ensure_future(prediction.wait()) for _ in range(3)]
        await asyncio.sleep(0)

        prediction.finish("42")
        results = await asyncio.gather(*waiters)
        late = await prediction.wait()
        return results, late

    results, late = asyncio.run(main())

    assert all(r is results[0] for r in results)
    assert late is results[0]
    assert results[0].text == "42"


def test_cancelled_waiter_does_not_cancel_the_result():
    async def main():
        prediction = make_prediction("x = ")
        waiter = asyncio.ensure_future(prediction.wait())
        await asyncio.sleep(0)
        waiter.cancel()
        await asyncio.sleep(0)

        prediction.finish("ok")
        return waiter.cancelled(), await prediction.wait()

    cancelled, result = asyncio.run(main())

    assert cancelled
    assert result.ok and result.text == "ok"


def test_cancel_without_task_is_noop():
    prediction = make_prediction("x = ")
    prediction.cancel()
    prediction.cancel()

    assert prediction.is_pending


def test_newline_budget():
    prediction = make_prediction("x = ")

    assert prediction.append_text("a\nb\n", max_newlines=2) is False
    assert prediction.append_text("c\nd", max_newlines=2) is True

    assert prediction.raw_text == "a\nb\nc"
    assert prediction.insert_text == ""
