# backend/tests/test_dispatcher.py
"""
Dispatcher Test Suite
---------------------
Covers:
- Round trips through a real worker process
- Error responses that leave the previous result untouched
- Last-request-wins handling of out-of-order responses
- Disposal of the worker process
"""
from concurrent.futures import Future

import pytest

from backend.app.schemas.analytics import ChartConfiguration
from backend.app.services.dispatcher import AggregationDispatcher, DispatcherClosedError


TIMEOUT = 60


def _config(**overrides):
    base = {"group_key_column": "region", "value_column": "sales"}
    base.update(overrides)
    return ChartConfiguration(**base)


def _points(*entries):
    return [{"name": n, "value": v, "size": s} for n, v, s in entries]


# -----------------------------------------------------------
# Real worker process
# -----------------------------------------------------------
def test_round_trip(sales_rows):
    with AggregationDispatcher() as dispatcher:
        assert dispatcher.running
        response = dispatcher.request(sales_rows, _config(), timeout=TIMEOUT)
        assert response.status == "success"
        assert [(p.name, p.value, p.size) for p in response.data] == [("A", 30, 2), ("B", 5, 1)]
        assert dispatcher.latest == response.data
        assert not dispatcher.processing


def test_error_keeps_previous_result(sales_rows):
    errors = []
    with AggregationDispatcher(on_error=errors.append) as dispatcher:
        ok = dispatcher.request(sales_rows, _config(), timeout=TIMEOUT)
        failed = dispatcher.request(None, _config(), timeout=TIMEOUT)
        assert failed.status == "error"
        assert failed.error == "No data array provided"
        assert dispatcher.latest == ok.data
        assert dispatcher.last_error == "No data array provided"

        bad_config = dispatcher.request(sales_rows, {"value_column": "sales"}, timeout=TIMEOUT)
        assert bad_config.status == "error"
        assert dispatcher.latest == ok.data
    assert errors[0] == "No data array provided"
    assert len(errors) == 2


def test_back_to_back_requests_apply_latest(sales_rows):
    results = []
    with AggregationDispatcher(on_result=results.append) as dispatcher:
        futures = [
            dispatcher.dispatch(sales_rows, _config(aggregation_mode=mode))
            for mode in ("sum", "count", "average")
        ]
        responses = [f.result(timeout=TIMEOUT) for f in futures]
        assert [r.seq for r in responses] == [1, 2, 3]
        assert dispatcher.latest == responses[-1].data
        assert dispatcher.latest[0].value == 15


def test_payload_is_a_copy(sales_rows):
    with AggregationDispatcher() as dispatcher:
        future = dispatcher.dispatch(sales_rows, _config())
        sales_rows.append({"region": "C", "sales": 1000})
        response = future.result(timeout=TIMEOUT)
        assert [p.name for p in response.data] == ["A", "B"]


def test_dispose_stops_worker(sales_rows):
    dispatcher = AggregationDispatcher().start()
    process = dispatcher._process
    dispatcher.dispose()
    assert not process.is_alive()
    assert not dispatcher.running
    with pytest.raises(DispatcherClosedError):
        dispatcher.dispatch(sales_rows, _config())
    # idempotent
    dispatcher.dispose()
    with pytest.raises(DispatcherClosedError):
        dispatcher.start()


def test_dispatch_requires_start(sales_rows):
    dispatcher = AggregationDispatcher()
    with pytest.raises(DispatcherClosedError):
        dispatcher.dispatch(sales_rows, _config())


# -----------------------------------------------------------
# Response ordering (no process needed)
# -----------------------------------------------------------
def test_stale_response_is_dropped():
    applied = []
    dispatcher = AggregationDispatcher(on_result=applied.append)
    first, second = Future(), Future()
    dispatcher._seq = 2
    dispatcher._pending = {1: first, 2: second}

    dispatcher._handle_response({"seq": 2, "status": "success", "data": _points(("new", 2, 1))})
    assert not dispatcher.processing
    dispatcher._handle_response({"seq": 1, "status": "success", "data": _points(("old", 1, 1))})

    assert [p.name for p in dispatcher.latest] == ["new"]
    assert [[p.name for p in batch] for batch in applied] == [["new"]]
    # each caller still receives its own answer
    assert first.result().data[0].name == "old"
    assert second.result().data[0].name == "new"


def test_processing_tracks_latest_request():
    dispatcher = AggregationDispatcher()
    dispatcher._seq = 2
    dispatcher._handle_response({"seq": 1, "status": "success", "data": []})
    assert dispatcher.processing
    dispatcher._handle_response({"seq": 2, "status": "error", "error": "boom"})
    assert not dispatcher.processing
    assert dispatcher.last_error == "boom"


def test_malformed_response_is_ignored():
    dispatcher = AggregationDispatcher()
    dispatcher._seq = 1
    dispatcher._handle_response({"seq": 1, "status": "weird"})
    assert dispatcher.processing
    assert dispatcher.latest is None


def test_callback_failure_does_not_escape():
    def explode(_):
        raise RuntimeError("render failed")

    dispatcher = AggregationDispatcher(on_result=explode)
    dispatcher._seq = 1
    dispatcher._handle_response({"seq": 1, "status": "success", "data": _points(("A", 1, 1))})
    assert dispatcher.latest[0].name == "A"


def test_pending_requests_fail_on_shutdown():
    dispatcher = AggregationDispatcher()
    future = Future()
    dispatcher._pending = {1: future}
    dispatcher._fail_pending("gone")
    with pytest.raises(DispatcherClosedError):
        future.result()
