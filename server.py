# server.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kafka_inspector.api import messages as messages_router
from kafka_inspector.api import topics as topics_router
from kafka_inspector.codecs.registry import CodecRegistry
from kafka_inspector.codecs.schema_registry import SchemaRegistryClient
from kafka_inspector.core.config import Settings, get_settings
from kafka_inspector.core.errors import install_exception_handlers
from kafka_inspector.services.descriptors import DescriptorResolver
from kafka_inspector.services.inspector import Inspector
from kafka_inspector.services.kafka_service import KafkaService, LogBroker


def create_app(
    settings: Optional[Settings] = None,
    broker: Optional[LogBroker] = None,
    schema_registry: Optional[SchemaRegistryClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Lifespan owns the shared clients; request handlers only borrow them.
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        registry = schema_registry
        owned_registry = None
        if registry is None and settings.schema_registry_url:
            registry = owned_registry = SchemaRegistryClient(
                settings.schema_registry_url,
                auth=settings.registry_credentials(),
                timeout=settings.schema_registry_timeout_sec,
            )
        descriptors = DescriptorResolver(settings.protobuf_desc_directory)
        app.state.inspector = Inspector(
            settings=settings,
            broker=broker or KafkaService(settings),
            codecs=CodecRegistry(descriptors, registry),
            descriptors=descriptors,
        )
        try:
            yield
        finally:
            if owned_registry is not None:
                owned_registry.close()

    app = FastAPI(
        title="Kafka Message Inspector API",
        version="1.0.0",
        lifespan=lifespan,
        openapi_url="/api/v1/openapi.json",
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
    )

    # --- CORS: allow web-ui during development (configurable via settings.cors_allow_origins) ---
    allow_origins = settings.cors_allow_origins or [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    app.include_router(topics_router.router,   prefix="/api/v1")
    app.include_router(messages_router.router, prefix="/api/v1")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=True)
