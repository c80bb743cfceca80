# schemas.py

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Fixed option lists offered by the order form
SIZE_OPTIONS = ("XS", "S", "M", "L", "XL", "XXL", "XXXL")
MERCH_OPTIONS = ("T-Shirt", "Hoodie", "Both")
COUNTRY_OPTIONS = ("United States", "Canada", "United Kingdom", "Australia", "Germany", "France", "Other")

# Pydantic models for request and response

class OrderSubmission(BaseModel):
    # Fields that the order form sends; camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)

    name: str = Field("", examples=["Ada Lovelace"])
    email: str = Field("", examples=["ada@example.com"])
    address: str = Field("", examples=["1 Main St"])
    city: str = Field("", examples=["London"])
    state_province: str = Field("", examples=["Greater London"])
    zip_code: str = Field("", examples=["00000"])
    country: str = Field("", examples=["United Kingdom"])
    tshirt_size: str = Field("", examples=["M"])
    hoodie_size: str = Field("", examples=["M"])
    is_employee: bool = Field(False, examples=[False])
    manager: str = Field("", examples=[""])
    first_choice: str = Field("", examples=["T-Shirt"])
    second_choice: str = Field("", examples=["Hoodie"])
    # Stamped by the handler at receipt time
    submitted_at: Optional[datetime] = None

    def to_wire(self) -> dict:
        """ JSON-ready dict keyed by the camelCase wire names. """
        return self.model_dump(mode="json", by_alias=True)


class SubmissionResponse(BaseModel):
    # Fields that appear in the handler's response body
    success: bool = Field(..., examples=[True])
    message: Optional[str] = Field(None, examples=["Order submitted successfully"])
    error: Optional[str] = Field(None, examples=["Failed to submit to any service"])
    details: Optional[Dict[str, bool]] = Field(None, examples=[{"sheets": True, "email": False, "chat": False}])

    def to_body(self) -> dict:
        return self.model_dump(exclude_none=True)
