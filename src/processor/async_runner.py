"""CPU-bound 작업을 스레드풀에 위임하는 러너.

decode/resample/encode는 await 포인트가 없는 CPU 작업이라
이벤트 루프에서 직접 돌리면 다른 요청(업로드, 다운로드)이 전부 막힌다.
run_in_executor()로 스레드풀에 넘기면 I/O 계층은 비동기로 남고,
실제 처리는 워커 스레드에서 실행된다. (Pillow는 대부분의 연산에서 GIL을 놓는다)

타임아웃이 나도 스레드는 강제로 멈출 수 없으므로,
cancel 이벤트를 세워 작업이 결과를 기록하지 않게 한다.
"""

import asyncio
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from loguru import logger

from core.exceptions import TransformTimeout

T = TypeVar("T")


def create_executor(workers: int) -> ThreadPoolExecutor:
    return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="transform")


def _collect_late(name: str) -> Callable[[asyncio.Future], None]:
    """타임아웃 뒤에 끝난 작업의 결과/예외를 거둬서 로그로 남긴다."""

    def callback(future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning(f"{name} failed after timeout: {exc!r}")
        else:
            logger.info(f"{name} finished after timeout")

    return callback


async def run_in_pool(
    executor: ThreadPoolExecutor,
    func: Callable[..., T],
    *args,
    timeout: float,
) -> T:
    """func(*args, cancelled=event)를 executor에서 실행하고 timeout초까지 기다린다.

    호출한 코루틴이 취소돼도(클라이언트 연결 끊김) 스레드 작업은 끝까지 실행된다 (shield).
    그래서 결과를 남겨야 하는 후처리(레지스트리 갱신 등)는 func 안에서 끝내야 한다.
    """
    cancelled = threading.Event()
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(executor, lambda: func(*args, cancelled=cancelled))
    name = getattr(func, "__name__", repr(func))

    try:
        return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)
    except TimeoutError:
        cancelled.set()
        future.add_done_callback(_collect_late(name))
        logger.warning(f"{name} timed out after {timeout:.1f}s")
        raise TransformTimeout from None
