import logging

import httpx
from fastapi import HTTPException, Request, status

from xumm_relay.core.dependency_container import DependencyContainer
from xumm_relay.settings import Settings

logger = logging.getLogger(__name__)

# --- Dependency Providers --- #


def get_dependencies(request: Request) -> DependencyContainer:
    """Dependency to retrieve the DependencyContainer from application state."""
    dependencies: DependencyContainer | None = getattr(request.app.state, "dependencies", None)
    if dependencies is None:
        logger.critical(
            "DependencyContainer not found in application state. "
            "This indicates a critical setup error in the application lifespan."
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error: Application dependencies not initialized.",
        )
    return dependencies


def create_http_client(app_settings: Settings) -> httpx.AsyncClient:
    timeout = httpx.Timeout(app_settings.get_http_timeout_seconds(), connect=5.0)
    return httpx.AsyncClient(timeout=timeout)


async def initialize_app_dependencies(app_settings: Settings) -> DependencyContainer:
    """Initialize and configure core application dependencies.

    Args:
        app_settings: The application settings instance.

    Returns:
        A DependencyContainer instance populated with initialized dependencies.

    Raises:
        RuntimeError: If the settings are invalid or the container cannot be created.
    """
    logger.info("Initializing core application dependencies...")

    http_client = create_http_client(app_settings)
    logger.info("HTTP Client initialized for DependencyContainer.")

    try:
        # Fail at startup rather than on the first relayed request
        upstream_url = app_settings.get_xumm_api_url()
        dependencies = DependencyContainer(settings=app_settings, http_client=http_client)
        logger.info(f"Dependency Container created successfully (upstream {upstream_url}).")
        return dependencies
    except Exception as container_exc:
        logger.critical(f"Failed to create Dependency Container instance: {container_exc}", exc_info=True)
        await http_client.aclose()
        logger.info("HTTP client closed due to Dependency Container instantiation failure.")
        raise RuntimeError(f"Failed to create Dependency Container instance: {container_exc}") from container_exc
