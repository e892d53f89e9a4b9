import logging

from django.apps import AppConfig
from django.conf import settings


logger = logging.getLogger(__name__)


class MarketplaceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "marketplace"

    def ready(self):
        from marketplace.infra.observability.tracing import setup_tracing

        setup_tracing(
            service_name=getattr(settings, "OTEL_SERVICE_NAME", "bazaar-backend"),
            enable=getattr(settings, "OTEL_TRACING_ENABLED", False),
        )

        # Register event listeners
        try:
            from infrastructure.events import get_event_bus
            from marketplace.infra.events.listeners import register_marketplace_listeners

            register_marketplace_listeners()
            get_event_bus().start_listening()
        except Exception as e:
            logger.error(f"Failed to register marketplace listeners: {e}")
