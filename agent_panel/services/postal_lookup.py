"""Pincode to region/district/state lookup (India Post pincode API)."""

from typing import Optional
import httpx

from agent_panel.models.address import PostalAddress
from agent_panel.utils.config import AppConfig
from agent_panel.utils.errors import TransportError, ValidationError
from agent_panel.utils.logging import get_structured_logger, timed
from agent_panel.utils.validators import PINCODE_PATTERN

logger = get_structured_logger(__name__)

INVALID_PINCODE_MESSAGE = "Invalid pincode. Please enter a valid pincode."


class PostalLookupClient:
    """Resolves a 6-digit pincode to the first matching post office."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or AppConfig.POSTAL_LOOKUP_URL).rstrip("/")
        self.timeout = timeout or AppConfig.POSTAL_LOOKUP_TIMEOUT_SECONDS
        self.transport = transport

    @timed("postal_lookup", logger=logger)
    async def lookup(self, pincode: str) -> PostalAddress:
        if not PINCODE_PATTERN.match(pincode or ""):
            raise ValidationError("Pincode must be 6 digits")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as http:
            try:
                response = await http.get(f"{self.base_url}/{pincode}")
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error("Pincode lookup failed", pincode=pincode, error=str(e))
                raise TransportError("Could not look up the pincode. Please try again.")

        entry = payload[0] if isinstance(payload, list) and payload else {}
        post_offices = entry.get("PostOffice") or []
        if entry.get("Status") != "Success" or not post_offices:
            raise ValidationError(INVALID_PINCODE_MESSAGE)

        post_office = post_offices[0]
        return PostalAddress(
            pincode=pincode,
            region=post_office.get("Region") or post_office.get("Division") or "",
            district=post_office.get("District") or "",
            state=post_office.get("State") or "",
        )
