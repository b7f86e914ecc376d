"""Optional bridge to a local window-profile service.

The service is an optional companion application listening on
localhost. ``connect()`` probes it; every other call returns an
"unavailable" value (empty dict, False or None) unless the last probe
succeeded. Bridge failures are logged at debug level and never raised.
"""

from typing import Any, Optional
from urllib.parse import quote

import requests

from ..utils.logger import get_logger

logger = get_logger(__name__)


class ProfileBridge:
    """Best-effort client for the local profile service."""

    DEFAULT_BASE_URL = "http://localhost:8546/api"
    HEALTH_TIMEOUT = 1  # seconds
    DEFAULT_TIMEOUT = 5  # seconds

    def __init__(
        self, base_url: str = DEFAULT_BASE_URL, session: Optional[requests.Session] = None
    ) -> None:
        """Initialize the bridge.

        Args:
            base_url: Service API root
            session: HTTP session to reuse (a new one by default)
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.connected = False
        self.profiles: dict[str, Any] = {}

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def connect(self) -> bool:
        """Probe the service health endpoint.

        Returns:
            True if the service answered successfully within the timeout
        """
        try:
            response = self.session.get(self._url("health"), timeout=self.HEALTH_TIMEOUT)
            self.connected = response.ok
        except requests.RequestException as e:
            logger.debug(f"Profile service unavailable: {e}")
            self.connected = False
        return self.connected

    def _get_data(self, path: str) -> Optional[Any]:
        try:
            response = self.session.get(self._url(path), timeout=self.DEFAULT_TIMEOUT)
            response.raise_for_status()
            return response.json().get("data")
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.debug(f"Profile service request failed ({path}): {e}")
            return None

    def _post(self, path: str) -> bool:
        try:
            response = self.session.post(self._url(path), timeout=self.DEFAULT_TIMEOUT)
        except requests.RequestException as e:
            logger.debug(f"Profile service request failed ({path}): {e}")
            return False
        return response.ok

    def list_profiles(self) -> dict[str, Any]:
        """Get the profiles known to the service, by name."""
        if not self.connected:
            return {}
        data = self._get_data("profiles")
        self.profiles = data if isinstance(data, dict) else {}
        return self.profiles

    def apply_profile(self, name: str) -> bool:
        """Ask the service to apply a window profile."""
        if not self.connected:
            return False
        applied = self._post(f"profiles/{quote(name, safe='')}/apply")
        if applied:
            logger.info(f"Applied window profile: {name}")
        return applied

    def capture_layout(self) -> Optional[list[Any]]:
        """Ask the service for the current window layout.

        Returns:
            Captured window list, or None when unavailable
        """
        if not self.connected:
            return None
        data = self._get_data("windows/capture")
        if data is None:
            return None
        return data if isinstance(data, list) else []

    def reload_config(self) -> bool:
        if not self.connected:
            return False
        return self._post("config/reload")
