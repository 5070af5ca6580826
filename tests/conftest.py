import os
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace

# Settings are read at import time, so configure them before importing the app
os.environ["AUTH_TOKEN"] = "test-secret-token"
os.environ["DIAGRAMS_DIR"] = tempfile.mkdtemp(prefix="diagrams-test-")
os.environ["PUBLIC_BASE_URL"] = "https://gateway.test"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.ai_feature.render import MermaidRenderer
from app.ai_feature.service import DiagramGenerationError
from app.core.cache import TTLCache
from app.core.config import settings
from app.core.database import DataFetcher
from app.core.services import Services, get_services
from app.main import app

SAMPLE_DIAGRAM = 'pie title Users by city\n    "Lisbon" : 2\n    "Porto" : 1'

# Stand-in for mermaid-cli: writes a tiny PNG, or fails on bad markup
FAKE_MMDC = """
import sys

args = sys.argv[1:]
source = args[args.index("-i") + 1]
target = args[args.index("-o") + 1]
with open(source) as f:
    markup = f.read()
if "syntax error" in markup:
    sys.stderr.write("Parse error on line 1")
    sys.exit(1)
with open(target, "wb") as f:
    f.write(b"\\x89PNG\\r\\n\\x1a\\nfake-image")
"""


class CountingFetcher(DataFetcher):
    """Real fetcher that remembers how often the store was hit."""

    def __init__(self, engine):
        super().__init__(engine)
        self.calls = 0

    async def fetch(self, sql):
        self.calls += 1
        return await super().fetch(sql)


class FakeSynthesizer:
    def __init__(self, diagram=SAMPLE_DIAGRAM):
        self.diagram = diagram
        self.calls = []

    async def synthesize(self, data):
        self.calls.append(data)
        if self.diagram is None:
            raise DiagramGenerationError("No mermaid block in model response")
        return self.diagram

    async def aclose(self):
        pass


class FakeCompletions:
    """Mimics `client.chat.completions` of the OpenAI SDK."""

    def __init__(self, content):
        self.content = content
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai_client(content):
    completions = FakeCompletions(content)

    async def close():
        pass

    return SimpleNamespace(chat=SimpleNamespace(completions=completions), close=close)


# In-memory store shared by every connection of the test engine
@pytest_asyncio.fixture(scope="function")
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.exec_driver_sql(
            "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, city TEXT)"
        )
        await conn.exec_driver_sql(
            "INSERT INTO users (id, name, city) VALUES "
            "(1, 'Ana', 'Lisbon'), (2, 'Rui', 'Porto'), (3, 'Eva', 'Lisbon')"
        )
        await conn.exec_driver_sql("CREATE TABLE orders (id INTEGER PRIMARY KEY)")
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def mmdc_command(tmp_path):
    script = tmp_path / "fake_mmdc.py"
    script.write_text(FAKE_MMDC)
    return [sys.executable, str(script)]


def empty_dir(path: Path):
    for item in path.iterdir():
        item.unlink()


# Renders into the directory the app serves under /diagrams, emptied around each test
@pytest.fixture
def renderer(mmdc_command):
    output_dir = Path(settings.DIAGRAMS_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    empty_dir(output_dir)
    yield MermaidRenderer(output_dir, mmdc_command)
    empty_dir(output_dir)


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest_asyncio.fixture(scope="function")
async def services(engine, synthesizer, renderer):
    return Services(
        settings=settings,
        engine=engine,
        cache=TTLCache(max_entries=50, ttl_seconds=300),
        fetcher=CountingFetcher(engine),
        synthesizer=synthesizer,
        renderer=renderer,
    )


# Client
@pytest_asyncio.fixture(scope="function")
async def client(services):
    app.dependency_overrides[get_services] = lambda: services

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {settings.AUTH_TOKEN}"}


@pytest.fixture
def openai_client_factory():
    return fake_openai_client
