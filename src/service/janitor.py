"""보관 기간이 지난 아티팩트를 주기적으로 지우는 백그라운드 작업.

레지스트리가 아직 참조하고 있어도 지운다 (저장소는 best-effort 임시 보관).
변환 파이프라인과 락을 공유하지 않는다. 처리 중인 요청이 방금 지워진 원본을 읽으면
ArtifactNotFound로 드러나고, 그건 막지 않고 받아들인다.
"""

import asyncio
from datetime import timedelta

from loguru import logger

from service.artifact_store import ArtifactStore


class Janitor:
    def __init__(self, store: ArtifactStore, retention: timedelta, interval: float):
        self.store = store
        self.retention = retention
        self.interval = interval

    def sweep(self) -> int:
        """한 번 훑어서 오래된 아티팩트를 지우고, 지운 개수를 반환한다.

        삭제 실패는 로그만 남기고 넘어간다 (클라이언트에 노출되지 않음).
        """
        removed = 0
        try:
            for artifact_id in self.store.list_older_than(self.retention):
                try:
                    self.store.delete(artifact_id)
                except OSError as e:
                    logger.warning(f"Janitor could not delete {artifact_id}: {e}")
                    continue
                removed += 1
        except OSError as e:
            logger.error(f"Janitor sweep aborted: {e}")

        if removed:
            logger.info(f"Janitor removed {removed} expired artifact(s)")
        return removed

    async def run(self):
        """interval초마다 sweep. 앱 종료 시 lifespan이 태스크를 cancel한다."""
        logger.info(
            f"Janitor started (retention={self.retention}, every {self.interval:.0f}s)"
        )
        try:
            while True:
                await asyncio.sleep(self.interval)
                try:
                    await asyncio.to_thread(self.sweep)
                except Exception:
                    # 한 번 실패해도 다음 주기에 다시 시도한다
                    logger.exception("Janitor sweep failed")
        except asyncio.CancelledError:
            logger.info("Janitor stopped")
            raise
