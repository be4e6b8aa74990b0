# Dependency Injection Container.

import httpx

from xumm_relay.core.credentials import Credentials
from xumm_relay.settings import Settings
from xumm_relay.xumm.client import XummClient


class DependencyContainer:
    """Holds shared dependencies for the application.

    This class is responsible for holding all shared dependencies for the application.
    It is used to inject dependencies into the application and to make it easier to mock dependencies for testing.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
    ) -> None:
        """
        Initializes the container.

        Args:
            settings: Application settings.
            http_client: Shared asynchronous HTTP client.
        """
        self.settings = settings
        self.http_client = http_client

    def create_xumm_client(self) -> XummClient:
        """
        Creates a client for the upstream Xumm platform using the shared HTTP client.

        Returns:
            A configured XummClient instance.
        """
        return XummClient(self.http_client, self.settings.get_xumm_api_url())

    def server_credentials(self) -> Credentials:
        """Credentials configured on the relay host; may be incomplete."""
        return Credentials(
            api_key=self.settings.get_xumm_api_key() or "",
            api_secret=self.settings.get_xumm_api_secret() or "",
        )
