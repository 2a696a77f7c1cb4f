import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ChatflowConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "chatflow"
    verbose_name = "Chat Flow"

    def ready(self) -> None:
        from .conf import get_api_key, get_transport_backend

        if not get_api_key() and get_transport_backend() == "httpx":
            logger.warning(
                "No API key configured (CHATFLOW_API_KEY / OPENAI_API_KEY). "
                "Chat calls will be sent without an Authorization header."
            )
