import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from xumm_relay.core.dependencies import initialize_app_dependencies
from xumm_relay.core.logging import setup_logging
from xumm_relay.relay.server import router as relay_router
from xumm_relay.settings import Settings

setup_logging()


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage the lifespan of the application resources.

    Initializes the dependency container (settings and the shared HTTP client)
    on startup and closes the HTTP client on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: After startup procedures are complete, allowing the application to run.

    Raises:
        RuntimeError: If application dependencies fail to initialize during startup.
    """
    logger.info("Application startup sequence initiated.")

    app_settings = Settings()
    logger.info("Settings loaded.")

    try:
        initialized_dependencies = await initialize_app_dependencies(app_settings)
        app.state.dependencies = initialized_dependencies
        logger.info("Core application dependencies initialized and stored in app state.")
    except Exception as init_exc:
        logger.critical(f"Fatal error during application dependency initialization: {init_exc}", exc_info=True)
        raise RuntimeError(
            f"Application startup failed due to dependency initialization error: {init_exc}"
        ) from init_exc

    yield  # Application runs here

    logger.info("Application shutdown sequence initiated.")

    await initialized_dependencies.http_client.aclose()
    logger.info("HTTP Client from DependencyContainer closed.")

    logger.info("Application shutdown complete.")


app = FastAPI(
    title="Xumm Relay",
    description="Relay that creates and tracks Xumm signing requests for XRP Ledger transactions.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["General"], status_code=200)
async def health_check():
    """Perform a basic health check.

    Returns:
        A dictionary indicating the application status.
    """
    return {"status": "ok"}


app.include_router(relay_router)


# --- Root Endpoint --- #


@app.get("/")
async def read_root():
    """Provide a simple root endpoint.

    Returns:
        A welcome message indicating the relay is running.
    """
    return {"message": "Xumm Relay is running."}
