from concurrent.futures import ThreadPoolExecutor

from fastapi import Request

from service.artifact_store import ArtifactStore

# lifespan에서 app.state에 올려둔 공유 자원을 엔드포인트에 주입한다.
# 테스트에서는 app.dependency_overrides로 교체할 수 있다.


def get_store(request: Request) -> ArtifactStore:
    """아티팩트 저장소 (모든 요청 + Janitor가 같은 디렉토리를 공유)."""
    return request.app.state.store


def get_executor(request: Request) -> ThreadPoolExecutor:
    """변환용 워커 스레드풀."""
    return request.app.state.executor
