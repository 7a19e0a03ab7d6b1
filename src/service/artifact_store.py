"""로컬 디스크 아티팩트 저장소.

아티팩트 = 업로드 원본 또는 처리 결과 파일. 한 번 쓰면 절대 수정하지 않는다.
모든 파일은 하나의 보관 디렉토리에 평평하게 저장되고,
파일 이름이 곧 아티팩트 ID다 (예: processed-1718000000000-a1b2c3d4.webp).

생성 시각은 파일의 mtime을 그대로 쓴다.
존재 여부를 메모리에 캐시하지 않는다 → Janitor가 언제든 지울 수 있으므로 매번 디스크를 본다.
"""

import os
import secrets
import time
from collections.abc import Iterator
from datetime import timedelta

from loguru import logger

from core.exceptions import ArtifactNotFound, TransientStorageError

_TMP_PREFIX = "."


class ArtifactStore:
    def __init__(self, root: str):
        self.root = root
        os.makedirs(self.root, exist_ok=True)

    # --- ID / 경로 ---

    @staticmethod
    def new_id(ext: str, kind: str = "processed") -> str:
        """타임스탬프 + 랜덤 접미사. 충돌은 거의 동시에 생긴 파일의 덮어쓰기로만 이어진다."""
        ext = ext.lstrip(".").lower() or "bin"
        return f"{kind}-{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"

    @staticmethod
    def _is_valid_id(artifact_id: str) -> bool:
        return bool(artifact_id) and not (
            artifact_id.startswith(_TMP_PREFIX)
            or "/" in artifact_id
            or "\\" in artifact_id
            or ".." in artifact_id
        )

    def _location(self, artifact_id: str) -> str:
        return os.path.join(self.root, artifact_id)

    # --- 기본 연산 ---

    def put(self, data: bytes, ext: str, kind: str = "processed") -> str:
        """바이트를 새 아티팩트로 기록하고 ID를 반환한다.

        같은 디렉토리의 임시 파일에 먼저 쓰고 os.replace로 옮기므로,
        다른 요청이 반쯤 쓰인 파일을 읽는 일은 없다.
        """
        artifact_id = self.new_id(ext, kind)
        final_path = self._location(artifact_id)
        tmp_path = self._location(f"{_TMP_PREFIX}{artifact_id}.tmp")
        try:
            with open(tmp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, final_path)
        except OSError as e:
            logger.error(f"Artifact write failed ({artifact_id}): {e}")
            self._unlink_quietly(tmp_path)
            raise TransientStorageError from e

        logger.debug(f"Artifact stored: {artifact_id} ({len(data)} bytes)")
        return artifact_id

    def path(self, artifact_id: str) -> str:
        """ID → 읽을 수 있는 파일 경로. 없으면 ArtifactNotFound."""
        if not self._is_valid_id(artifact_id):
            raise ArtifactNotFound
        location = self._location(artifact_id)
        if not os.path.isfile(location):
            raise ArtifactNotFound
        return location

    def read(self, artifact_id: str) -> bytes:
        location = self.path(artifact_id)
        try:
            with open(location, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            # path() 확인 직후 Janitor가 지운 경우
            raise ArtifactNotFound from e
        except OSError as e:
            raise TransientStorageError from e

    def size(self, artifact_id: str) -> int:
        try:
            return os.path.getsize(self.path(artifact_id))
        except FileNotFoundError as e:
            raise ArtifactNotFound from e

    def delete(self, artifact_id: str) -> None:
        """멱등 삭제. 이미 없어도 에러가 아니다."""
        if not self._is_valid_id(artifact_id):
            return
        self._unlink_quietly(self._location(artifact_id))

    def list_older_than(self, age: timedelta) -> Iterator[str]:
        """생성 시각이 (지금 - age)보다 이전인 아티팩트 ID를 하나씩 내보낸다.

        제너레이터라서 한 번만 순회할 수 있다. 쓰는 중인 임시 파일은 건너뛴다.
        """
        cutoff = time.time() - age.total_seconds()
        with os.scandir(self.root) as entries:
            for entry in entries:
                if entry.name.startswith(_TMP_PREFIX):
                    continue
                try:
                    if not entry.is_file() or entry.stat().st_mtime >= cutoff:
                        continue
                except FileNotFoundError:
                    continue
                yield entry.name

    @staticmethod
    def _unlink_quietly(location: str) -> None:
        try:
            os.remove(location)
        except FileNotFoundError:
            pass
