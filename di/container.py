from __future__ import annotations

import structlog
from dependency_injector import containers, providers

from core.settings import SETTINGS
from infra.resources import (
    DatabaseResource,
    IPDatabaseResource,
    RedisResource,
)


logger = structlog.get_logger("analytics")


class InfrastructureContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    settings = providers.Object(SETTINGS)
    logger = providers.Object(logger)

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
    )

    # Redis (geo cache)
    redis_db = providers.Resource(
        RedisResource,
        redis_url=str(SETTINGS.REDIS.REDIS_URL),
    )

    # IP-range database
    ip_database = providers.Resource(
        IPDatabaseResource,
        database_path=SETTINGS.GEO.GEO_IPDB_PATH,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    geo_resolver = providers.Singleton(
        "api.features.geo.resolver.GeoResolver",
        ip_database=infrastructure.ip_database,
        language=SETTINGS.GEO.GEO_LANGUAGE,
        logger=infrastructure.logger,
    )

    # Client is read at call time, after the lifespan hook has connected Redis
    geo_cache = providers.Factory(
        "api.features.geo.cache.GeoCache",
        client=infrastructure.redis_db.provided.client,
        ttl_seconds=SETTINGS.GEO.GEO_CACHE_TTL_SECONDS,
        key_prefix=SETTINGS.GEO.GEO_CACHE_KEY_PREFIX,
    )

    conversation_service = providers.Factory(
        "api.features.conversation.service.ConversationService",
        geo_resolver=geo_resolver,
        geo_cache=geo_cache,
        logger=infrastructure.logger,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    conversation_controller = providers.Factory(
        "api.features.conversation.controller.ConversationController",
        conversation_service=services.conversation_service,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.main",
            "api.shared.db",
            "api.features.conversation.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)
