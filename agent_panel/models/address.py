"""Postal address resolved from a pincode."""

from pydantic import BaseModel


class PostalAddress(BaseModel):
    pincode: str
    region: str = ""
    district: str = ""
    state: str = ""

    def derived_fields(self) -> dict[str, str]:
        """Region/district/state triple, always written together."""
        return {"region": self.region, "district": self.district, "state": self.state}
