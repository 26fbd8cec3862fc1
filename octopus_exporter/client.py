"""Octopus Energy API client module.

This module handles:
- Building the consumption URL for a meter point
- Authenticating with the static API key (HTTP basic auth)
- Fetching the most recent consumption interval
"""

import logging
from typing import Optional

import requests

from octopus_exporter.config import MeterPoint, Settings
from octopus_exporter.consumption import ConsumptionParseError, ConsumptionReading, parse_consumption

# Configure module logger
logger = logging.getLogger(__name__)


class OctopusError(Exception):
    """Base exception for Octopus API client errors."""
    pass


class OctopusRequestError(OctopusError):
    """Exception raised when the request fails or returns an error status."""
    pass


class OctopusResponseError(OctopusError):
    """Exception raised when the response body cannot be decoded."""
    pass


class OctopusClient:
    """Client for the Octopus Energy consumption API.

    Each call performs exactly one GET request limited to a single result;
    failed requests are not retried.

    Attributes:
        settings: Exporter settings (API key, base URL, timeout)
        session: requests session used for all calls
    """

    CONSUMPTION_PATH = "{point_type}-meter-points/{identifier}/meters/{meter}/consumption/"

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        """Initialize the client.

        Args:
            settings: Exporter settings
            session: Optional session, mainly for testing. A new one is
                created if omitted.
        """
        self.settings = settings
        self.session = session if session is not None else requests.Session()
        self.session.auth = (settings.api_key, "")
        self.session.headers.update({
            "Accept": "application/json",
        })

    def consumption_url(self, point: MeterPoint) -> str:
        """Build the consumption endpoint URL for a meter point.

        Example:
            >>> client.consumption_url(MeterPoint("gas", "1234567890", "G4A12345"))
            'https://api.octopus.energy/v1/gas-meter-points/1234567890/meters/G4A12345/consumption/'
        """
        path = self.CONSUMPTION_PATH.format(
            point_type=point.point_type,
            identifier=point.identifier,
            meter=point.meter,
        )
        return f"{self.settings.api_url}/{path}"

    def get_consumption(self, point: MeterPoint) -> Optional[ConsumptionReading]:
        """Fetch the most recent consumption reading for a meter.

        Args:
            point: Meter to fetch

        Returns:
            The latest ConsumptionReading, or None if the API returned no
            results

        Raises:
            OctopusRequestError: On transport failure or non-2xx status
            OctopusResponseError: If the body is not a valid consumption response
        """
        url = self.consumption_url(point)
        logger.debug(f"Fetching {point.point_type} consumption: {url}")

        try:
            response = self.session.get(
                url,
                params={"page_size": 1},
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise OctopusRequestError(f"{point.point_type} consumption request failed: {e}")

        try:
            payload = response.json()
        except ValueError as e:
            raise OctopusResponseError(f"{point.point_type} consumption response is not JSON: {e}")

        try:
            reading = parse_consumption(payload, point)
        except ConsumptionParseError as e:
            raise OctopusResponseError(f"{point.point_type} consumption response is invalid: {e}")

        if reading is None:
            logger.debug(f"No {point.point_type} consumption results for meter {point.meter}")

        return reading

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
