"""
Run async storage coroutines from synchronous code.

All coroutines go through one background event loop so the aioboto3 client,
which is bound to the loop that opened it, is always used from that loop.
"""

from __future__ import annotations

import asyncio
import atexit
import functools
import threading
from queue import Empty, Full, Queue
from typing import Any, AsyncGenerator, Callable, Coroutine, Iterator, Optional

_bg_loop: Optional[asyncio.AbstractEventLoop] = None
_bg_thread: Optional[threading.Thread] = None
_bg_started = threading.Event()
_bg_lock = threading.Lock()

# how often a blocked producer or consumer re-checks whether the other side went away
_POLL_INTERVAL = 0.01


def _run_loop() -> None:
    global _bg_loop
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _bg_loop = loop
    _bg_started.set()
    try:
        loop.run_forever()
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
        _bg_loop = None


def _ensure_bg_loop() -> asyncio.AbstractEventLoop:
    global _bg_thread
    with _bg_lock:
        if _bg_loop is None or _bg_thread is None or not _bg_thread.is_alive():
            _bg_started.clear()
            _bg_thread = threading.Thread(target=_run_loop, name="imgship-storage-loop", daemon=True)
            _bg_thread.start()
            _bg_started.wait()
    assert _bg_loop is not None
    return _bg_loop


def _bg_submit(coro: Coroutine[Any, Any, Any]):
    return asyncio.run_coroutine_threadsafe(coro, _ensure_bg_loop())


def _bg_run(coro: Coroutine[Any, Any, Any], timeout: Optional[float] = None) -> Any:
    return _bg_submit(coro).result(timeout=timeout)


def _stop_bg_loop() -> None:
    global _bg_thread
    loop = _bg_loop
    if loop is None:
        return
    loop.call_soon_threadsafe(loop.stop)
    if _bg_thread is not None and _bg_thread.is_alive():
        _bg_thread.join(timeout=2.0)
    _bg_thread = None


atexit.register(_stop_bg_loop)


def _in_running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def sync_compatible(async_fn: Callable[..., Coroutine[Any, Any, Any]]):
    """
    Make an ``async def`` method callable both ways.

    Without a running event loop the call blocks and returns the result;
    inside one it returns an awaitable.
    """

    @functools.wraps(async_fn)
    def wrapper(*args, **kwargs):
        current_loop = _in_running_loop()
        if current_loop is None:
            return _bg_run(async_fn(*args, **kwargs))
        if current_loop is _bg_loop:
            return async_fn(*args, **kwargs)

        async def _await_bg():
            return await asyncio.wrap_future(_bg_submit(async_fn(*args, **kwargs)))

        return _await_bg()

    return wrapper


def sync_compatible_generator(async_gen_fn: Callable[..., AsyncGenerator[Any, None]]):
    """
    Same as :func:`sync_compatible` for async generators.

    Items are handed over one at a time through a bounded queue. When the
    consumer stops early the producer is told to stop and the underlying
    generator is closed on the background loop.
    """
    sentinel = object()

    def _start_pump(*args, **kwargs):
        q: Queue = Queue(maxsize=1)
        errors: list = []
        stop = threading.Event()

        async def _offer(item) -> bool:
            while not stop.is_set():
                try:
                    q.put_nowait(item)
                    return True
                except Full:
                    await asyncio.sleep(_POLL_INTERVAL)
            return False

        async def _pump():
            agen = async_gen_fn(*args, **kwargs)
            try:
                async for item in agen:
                    if not await _offer(item):
                        break
            except Exception as e:
                errors.append(e)
            finally:
                await agen.aclose()
                await _offer(sentinel)

        return q, errors, stop, _bg_submit(_pump())

    def _next_item(q: Queue, fut) -> Any:
        while True:
            try:
                return q.get(timeout=_POLL_INTERVAL)
            except Empty:
                if fut.done() and q.empty():
                    return sentinel

    async def _next_item_async(q: Queue, fut) -> Any:
        while True:
            try:
                return q.get_nowait()
            except Empty:
                if fut.done() and q.empty():
                    return sentinel
                await asyncio.sleep(_POLL_INTERVAL)

    def _iterate(*args, **kwargs) -> Iterator[Any]:
        q, errors, stop, fut = _start_pump(*args, **kwargs)
        try:
            while True:
                item = _next_item(q, fut)
                if item is sentinel:
                    break
                yield item
        finally:
            stop.set()
            fut.result()
        if errors:
            raise errors[0]

    @functools.wraps(async_gen_fn)
    def wrapper(*args, **kwargs):
        current_loop = _in_running_loop()
        if current_loop is None:
            return _iterate(*args, **kwargs)
        if current_loop is _bg_loop:
            return async_gen_fn(*args, **kwargs)

        async def agen():
            q, errors, stop, fut = _start_pump(*args, **kwargs)
            try:
                while True:
                    item = await _next_item_async(q, fut)
                    if item is sentinel:
                        break
                    yield item
            finally:
                stop.set()
                await asyncio.wrap_future(fut)
            if errors:
                raise errors[0]

        return agen()

    return wrapper
