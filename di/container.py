from __future__ import annotations

import structlog
from dependency_injector import containers, providers

from api.features.chat.pacing import build_pacer
from api.shared.cache import RequestCoalescer
from core.settings import SETTINGS
from infra.model_clients import build_model_client
from infra.resources import DatabaseResource


logger = structlog.get_logger("chat")


class InfrastructureContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    settings = providers.Object(SETTINGS)
    logger = providers.Object(logger)

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
    )

    # Upstream language model
    model_client = providers.Singleton(build_model_client, settings=SETTINGS.MODEL)

    # Typing-speed pacing for the relay
    pacer = providers.Singleton(build_pacer, relay_settings=SETTINGS.RELAY)

    # Coalescing cache for idempotent GET routes
    request_cache = providers.Singleton(
        RequestCoalescer,
        window_ms=SETTINGS.CACHE.CACHE_DEBOUNCE_MS,
        ttl_seconds=SETTINGS.CACHE.CACHE_TTL_SECONDS,
        max_entries=SETTINGS.CACHE.CACHE_MAX_ENTRIES,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    # Services
    user_service = providers.Factory(
        "api.features.users.service.UserService",
    )

    conversation_service = providers.Factory(
        "api.features.conversation.service.ConversationService",
    )

    chat_relay_service = providers.Factory(
        "api.features.chat.service.ChatRelayService",
        database=infrastructure.database,
        model_client=infrastructure.model_client,
        pacer=infrastructure.pacer,
        conversation_service=conversation_service,
        user_service=user_service,
        title_max_chars=SETTINGS.RELAY.TITLE_MAX_CHARS,
        request_cache=infrastructure.request_cache,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    # Controllers
    user_controller = providers.Factory(
        "api.features.users.controller.UserController",
        user_service=services.user_service,
    )

    conversation_controller = providers.Factory(
        "api.features.conversation.controller.ConversationController",
        conversation_service=services.conversation_service,
    )

    message_controller = providers.Factory(
        "api.features.messages.controller.MessageController",
        conversation_service=services.conversation_service,
    )

    chat_controller = providers.Factory(
        "api.features.chat.controller.ChatController",
        relay_service=services.chat_relay_service,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.main",
            "api.shared.db",
            "api.features.users.router",
            "api.features.conversation.router",
            "api.features.messages.router",
            "api.features.chat.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)
