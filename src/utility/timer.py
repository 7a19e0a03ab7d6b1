"""처리 시간 측정 유틸리티."""

import time
from contextlib import contextmanager

from loguru import logger

SLOW_TRANSFORM_SECONDS = 5.0


@contextmanager
def timer(label: str = ""):
    """컨텍스트 매니저: 블록 실행 시간을 측정한다.

    사용법:
        with timer("transform #3 resize") as t:
            ...
        t.elapsed  # 초 단위

    label이 있으면 종료 시 로그를 남기고, 느린 경우 WARNING으로 올린다.
    예외가 나도 시간은 기록된다.
    """
    t = _TimerResult()
    start = time.perf_counter()
    try:
        yield t
    finally:
        t.elapsed = time.perf_counter() - start
        if label:
            level = "WARNING" if t.elapsed > SLOW_TRANSFORM_SECONDS else "DEBUG"
            logger.log(level, f"[{label}] {t.elapsed * 1000:.0f}ms")


class _TimerResult:
    elapsed: float = 0.0
