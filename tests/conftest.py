import io
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Tuple, Union

import pytest
import sqlalchemy as sa

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ge_sync.common.db_tables import metadata  # noqa: E402
from ge_sync.common.store import SqlAlchemyStore  # noqa: E402
from ge_sync.dms.client import DmsResponse  # noqa: E402
from ge_sync.json_logger import JsonLogger  # noqa: E402

Handler = Union[DmsResponse, Callable[[Mapping[str, str]], DmsResponse]]


class FakeDmsClient:
    """Route table keyed by (method, url); every call is recorded."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.calls: List[Tuple[str, str, Dict[str, str]]] = []

    def route(self, method: str, url: str, handler: Handler) -> None:
        self.routes[(method, url)] = handler

    def _answer(self, method: str, url: str, form: Mapping[str, str]) -> DmsResponse:
        self.calls.append((method, url, dict(form)))
        handler = self.routes.get((method, url))
        if handler is None:
            return DmsResponse(url=url, status=404, status_text="Not Found", content_type="text/html", body=b"missing")
        if callable(handler):
            return handler(form)
        return handler

    async def get(self, url: str, *, referer: str | None = None, xhr: bool = False) -> DmsResponse:
        return self._answer("GET", url, {})

    async def post_form(
        self,
        url: str,
        form: Mapping[str, str],
        *,
        referer: str | None = None,
        xhr: bool = False,
    ) -> DmsResponse:
        return self._answer("POST", url, form)

    def posts_to(self, url: str) -> List[Dict[str, str]]:
        return [form for method, called, form in self.calls if method == "POST" and called == url]


class FakeSession:
    async def get_cookie_header(self, location_id: str) -> str:
        return "JSESSIONID=test"

    async def get_valid_cookies(self, location_id: str) -> List[Dict[str, Any]]:
        return [{"name": "JSESSIONID", "value": "test", "domain": "example.test", "path": "/"}]


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def json_logger(log_stream: io.StringIO) -> JsonLogger:
    return JsonLogger(run_id="test", stream=log_stream, log_file_path=None)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    db_path = tmp_path / "ge_sync.db"
    engine = sa.create_engine(f"sqlite:///{db_path}")
    metadata.create_all(engine)
    engine.dispose()
    return f"sqlite+aiosqlite:///{db_path}"


@pytest.fixture
def store(database_url: str, json_logger: JsonLogger) -> SqlAlchemyStore:
    return SqlAlchemyStore(database_url, batch_size=2, logger=json_logger)


@pytest.fixture
def dms_client() -> FakeDmsClient:
    return FakeDmsClient()


@pytest.fixture
def session_provider() -> FakeSession:
    return FakeSession()
