# backend/app/services/dispatcher.py
"""
Aggregation Dispatcher
----------------------
Runs the grouping/aggregation/sort pipeline in a dedicated worker process so
the caller's context never blocks on it.

- One worker process per dispatcher, created by ``start()`` and torn down by
  ``dispose()`` (or the context manager).
- Requests and responses are plain dicts sent over a duplex pipe; the payload
  is a copy, the worker never sees later mutations of the caller's rows.
- Every request carries a sequence number. Each response resolves its own
  future, but only a response newer than the last applied one updates
  ``latest`` and fires the callbacks (last request wins).
- No cancellation and no back-pressure.
"""
from __future__ import annotations

import multiprocessing as mp
import os
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from loguru import logger
from pydantic import ValidationError

from ..core.config import settings
from ..core.logging_config import setup_logging
from ..schemas.analytics import AggregatedPoint, ChartConfiguration, WorkerResponse
from .aggregation import run_aggregation


ResultCallback = Callable[[List[AggregatedPoint]], None]
ErrorCallback = Callable[[str], None]

_STOP = None
_JOIN_TIMEOUT_S = 5.0


class DispatcherClosedError(RuntimeError):
    """Raised when a request cannot reach a live worker."""


def worker_main(conn, log_level: str = "INFO") -> None:
    """Worker process loop: one request in, one response out, strictly in turn."""
    setup_logging(log_level)
    logger.info(f"Aggregation worker started (pid={os.getpid()})")
    while True:
        try:
            message = conn.recv()
        except (EOFError, OSError):
            break
        if message is _STOP:
            break
        conn.send(run_aggregation(message))
    conn.close()
    logger.info(f"Aggregation worker stopped (pid={os.getpid()})")


class AggregationDispatcher:
    def __init__(
        self,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        start_method: Optional[str] = None,
        limit: Optional[int] = None,
        log_level: Optional[str] = None,
    ):
        self.on_result = on_result
        self.on_error = on_error
        self.limit = limit or settings.max_aggregated_points
        self.log_level = log_level or settings.log_level

        self.latest: Optional[List[AggregatedPoint]] = None
        self.last_error: Optional[str] = None

        self._ctx = mp.get_context(start_method or settings.worker_start_method)
        self._lock = threading.Lock()
        self._pending: Dict[int, Future] = {}
        self._seq = 0
        self._received_seq = 0
        self._applied_seq = 0
        self._closed = False
        self._process = None
        self._conn = None
        self._listener: Optional[threading.Thread] = None

    # ----------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------
    def start(self) -> "AggregationDispatcher":
        with self._lock:
            if self._closed:
                raise DispatcherClosedError("Dispatcher has been disposed")
            if self._process is not None:
                return self

            parent_conn, child_conn = self._ctx.Pipe(duplex=True)
            process = self._ctx.Process(
                target=worker_main,
                args=(child_conn, self.log_level),
                name="aggregation-worker",
                daemon=True,
            )
            process.start()
            child_conn.close()

            self._conn = parent_conn
            self._process = process
            self._listener = threading.Thread(
                target=self._listen, name="aggregation-listener", daemon=True
            )
            self._listener.start()

        logger.info(f"Aggregation dispatcher started worker pid={process.pid}")
        return self

    def dispose(self) -> None:
        """Stop the worker and fail anything still in flight. Safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            conn, process, listener = self._conn, self._process, self._listener

        if process is not None:
            try:
                conn.send(_STOP)
            except (OSError, ValueError) as e:
                logger.debug(f"Worker pipe already closed: {e}")
            process.join(_JOIN_TIMEOUT_S)
            if process.is_alive():
                logger.warning(f"Terminating unresponsive aggregation worker pid={process.pid}")
                process.terminate()
                process.join(_JOIN_TIMEOUT_S)
        if listener is not None:
            listener.join(_JOIN_TIMEOUT_S)
        if conn is not None:
            conn.close()

        self._fail_pending("Aggregation dispatcher disposed")
        logger.info("Aggregation dispatcher disposed")

    def __enter__(self) -> "AggregationDispatcher":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.dispose()

    @property
    def running(self) -> bool:
        return not self._closed and self._process is not None and self._process.is_alive()

    @property
    def processing(self) -> bool:
        """True while the most recently dispatched request has no response yet."""
        with self._lock:
            return self._seq > self._received_seq

    # ----------------------------------------------------
    # Requests
    # ----------------------------------------------------
    def dispatch(
        self,
        rows: Sequence[Mapping[str, Any]],
        config: Union[ChartConfiguration, Mapping[str, Any]],
    ) -> Future:
        """Send one aggregation request; the future resolves to its WorkerResponse."""
        payload_config = config.model_dump() if isinstance(config, ChartConfiguration) else config
        future: Future = Future()
        send_error: Optional[Exception] = None

        with self._lock:
            if not self.running:
                raise DispatcherClosedError("Aggregation worker is not running")
            self._seq += 1
            seq = self._seq
            self._pending[seq] = future
            try:
                self._conn.send({
                    "seq": seq,
                    "data": list(rows) if isinstance(rows, (list, tuple)) else rows,
                    "config": payload_config,
                    "limit": self.limit,
                })
            except (OSError, EOFError) as e:
                self._pending.pop(seq, None)
                raise DispatcherClosedError(f"Failed to send request {seq}: {e}") from e
            except Exception as e:
                send_error = e

        if send_error is not None:
            self._handle_response({
                "seq": seq,
                "status": "error",
                "error": f"Request could not be serialized: {send_error}",
            })
        else:
            logger.debug(f"Dispatched aggregation request {seq}")
        return future

    def request(
        self,
        rows: Sequence[Mapping[str, Any]],
        config: Union[ChartConfiguration, Mapping[str, Any]],
        timeout: Optional[float] = None,
    ) -> WorkerResponse:
        """Blocking round trip for callers that want their own answer."""
        return self.dispatch(rows, config).result(timeout=timeout)

    # ----------------------------------------------------
    # Responses
    # ----------------------------------------------------
    def _listen(self) -> None:
        while True:
            try:
                message = self._conn.recv()
            except (EOFError, OSError):
                break
            self._handle_response(message)
        self._fail_pending("Aggregation worker exited")

    def _handle_response(self, message: Any) -> None:
        try:
            response = WorkerResponse.model_validate(message)
        except ValidationError as e:
            logger.error(f"Malformed worker response dropped: {e}")
            return

        with self._lock:
            future = self._pending.pop(response.seq, None)
            self._received_seq = max(self._received_seq, response.seq)
            applied = response.seq > self._applied_seq
            if applied:
                self._applied_seq = response.seq
                if response.status == "success":
                    self.latest = response.data
                else:
                    self.last_error = response.error

        if future is not None and not future.done():
            future.set_result(response)

        if not applied:
            logger.debug(f"Dropping stale response {response.seq} (last applied {self._applied_seq})")
            return

        callback_arg: Any
        if response.status == "success":
            callback, callback_arg = self.on_result, response.data or []
        else:
            logger.error(f"Worker Error: {response.error}")
            callback, callback_arg = self.on_error, response.error or ""
        if callback is None:
            return
        try:
            callback(callback_arg)
        except Exception:
            logger.exception(f"Result callback failed for response {response.seq}")

    def _fail_pending(self, reason: str) -> None:
        with self._lock:
            pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(DispatcherClosedError(reason))
