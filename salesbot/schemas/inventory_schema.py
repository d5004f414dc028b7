"""Inventory unit model as served by the spreadsheet-backed inventory API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from salesbot.utils import to_int

MAX_IMAGES = 10


class InventoryUnit(BaseModel):
    """One car listing. Read-only; unknown sheet columns are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    sku: str = Field("", alias="SKU")
    brand: str = ""
    model: str = ""
    variant: str = ""
    year: str = ""
    body_type: str = ""
    transmission: str = ""
    mileage: str = ""
    srp: str = ""
    all_in: str = ""
    monthly_2yrs: str = Field("", alias="2yrs")
    monthly_3yrs: str = Field("", alias="3yrs")
    monthly_4yrs: str = Field("", alias="4yrs")
    price_status: str = ""
    city: str = ""
    province: str = ""
    complete_address: str = ""
    image_1: str = ""
    image_2: str = ""
    image_3: str = ""
    image_4: str = ""
    image_5: str = ""
    image_6: str = ""
    image_7: str = ""
    image_8: str = ""
    image_9: str = ""
    image_10: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _cells_as_text(cls, value):
        # Sheet cells arrive as numbers, strings or blanks.
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(int(value)) if float(value).is_integer() else str(value)
        return value

    @property
    def unit_id(self) -> str:
        sku = self.sku.strip()
        if sku:
            return sku
        return f"{self.brand}-{self.model}-{self.year}"

    @property
    def srp_amount(self) -> Optional[int]:
        return to_int(self.srp) or None

    @property
    def all_in_amount(self) -> Optional[int]:
        return to_int(self.all_in) or None

    @property
    def mileage_km(self) -> Optional[int]:
        return to_int(self.mileage) or None

    def monthly(self, term: int) -> Optional[int]:
        """Monthly amortization for a 2, 3 or 4 year term, if the sheet has one."""
        return to_int(getattr(self, f"monthly_{term}yrs", "")) or None

    def images(self) -> list[str]:
        """Image URLs in sheet order; only http(s) links count."""
        urls = []
        for i in range(1, MAX_IMAGES + 1):
            url = getattr(self, f"image_{i}").strip()
            if url.lower().startswith(("http://", "https://")):
                urls.append(url)
        return urls

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
