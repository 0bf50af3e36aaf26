from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from chat_agent.application.agent_service import AgentService
from chat_agent.application.api.route.agent import router
from chat_agent.infrastructure.config.settings import AgentSettings
from chat_agent.infrastructure.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


def create_app(service: Optional[AgentService] = None, settings: Optional[AgentSettings] = None) -> FastAPI:
    """Build the HTTP app around an agent service"""

    settings = settings or AgentSettings()
    service = service or AgentService.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.start()
        logger.info("Chat agent server started")
        try:
            yield
        finally:
            await service.shutdown()
            logger.info("Chat agent server shutdown")

    app = FastAPI(title="Chat Agent", lifespan=lifespan)
    app.state.agent_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)

    return app


def main() -> None:
    import uvicorn

    settings = AgentSettings()
    setup_logging(log_level=settings.log_level, log_format=settings.log_format, environment=settings.environment)
    uvicorn.run(create_app(settings=settings), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
