from dataclasses import dataclass

from fastapi import Request
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncEngine

from app.ai_feature.render import MermaidRenderer
from app.ai_feature.service import DiagramSynthesizer
from app.core.cache import TTLCache
from app.core.config import Settings
from app.core.database import DataFetcher, create_engine


@dataclass
class Services:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    engine: AsyncEngine
    cache: TTLCache
    fetcher: DataFetcher
    synthesizer: DiagramSynthesizer
    renderer: MermaidRenderer

    async def aclose(self) -> None:
        try:
            await self.synthesizer.aclose()
        finally:
            await self.engine.dispose()


def build_services(settings: Settings) -> Services:
    engine = create_engine(settings)
    renderer = MermaidRenderer(settings.DIAGRAMS_DIR, settings.MERMAID_COMMAND)
    renderer.ensure_output_dir()

    return Services(
        settings=settings,
        engine=engine,
        cache=TTLCache(settings.CACHE_MAX_ENTRIES, settings.CACHE_TTL_SECONDS),
        fetcher=DataFetcher(engine),
        synthesizer=DiagramSynthesizer(
            AsyncOpenAI(api_key=settings.OPENAI_API_KEY),
            model=settings.OPENAI_MODEL,
        ),
        renderer=renderer,
    )


# Handlers reach the shared cache and pool through this dependency only
def get_services(request: Request) -> Services:
    return request.app.state.services
