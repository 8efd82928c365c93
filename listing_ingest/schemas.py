# listing_ingest/schemas.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StandardStatus(str, Enum):
    ACTIVE = "Active"
    ACTIVE_UNDER_CONTRACT = "Active Under Contract"
    COMING_SOON = "Coming Soon"
    PENDING = "Pending"
    HOLD = "Hold"
    CLOSED = "Closed"
    EXPIRED = "Expired"
    WITHDRAWN = "Withdrawn"
    CANCELED = "Canceled"
    DELETE = "Delete"
    INCOMPLETE = "Incomplete"


class TokenResponse(BaseModel):
    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(..., gt=0)


class ListingDocument(BaseModel):
    """A feed record mapped onto the stored listing schema.

    Images are never embedded here; they live in the listing_images table and
    only the representative `main_image_url` is carried on the listing.
    """
    model_config = ConfigDict(coerce_numbers_to_str=True, from_attributes=True)

    listing_key: str = Field(..., min_length=1)
    listing_id: Optional[str] = None

    list_price: float = 0
    original_list_price: float = 0
    previous_list_price: float = 0
    current_price: Optional[float] = None
    lease_amount: float = 0
    lease_amount_frequency: Optional[str] = None
    land_lease_amount: Optional[float] = None
    land_lease_amount_frequency: Optional[str] = None
    price_change_timestamp: Optional[str] = None

    address: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    state_or_province: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: float = 0.0
    longitude: float = 0.0
    neighborhood: Optional[str] = None
    subdivision_name: Optional[str] = None
    highschool: Optional[str] = None
    zoning: Optional[str] = None

    property_type: Optional[str] = None
    property_sub_type: Optional[str] = None
    bedrooms: int = 0
    bathrooms: int = 0
    rooms_total: Optional[int] = None
    living_area_sqft: float = 0
    lot_size_sqft: float = 0
    stories: Optional[int] = None
    year_built: Optional[int] = None
    garage_yn: Optional[bool] = None
    garage_size: Optional[float] = None
    parking_total: Optional[float] = None
    HeatingYN: Optional[bool] = None

    cooling: Any = None
    heating: Any = None
    accessibility_features: Any = None
    interior_features: Any = None
    exterior_features: Any = None
    door_features: Any = None
    laundry_features: Any = None
    parking_features: Any = None
    patio_and_porch_features: Any = None
    security_features: Any = None
    pool_features: Any = None
    roof_features: Any = None
    lot_features: Any = None
    view: Any = None
    utilities: Any = None
    possible_use: Any = None

    status: Optional[str] = None
    standard_status: Optional[str] = None
    mls_status: Optional[str] = None
    days_on_market: int = 0
    listing_contract_date: Optional[str] = None
    modification_timestamp: Optional[str] = None
    on_market_timestamp: Optional[str] = None

    list_agent_full_name: Optional[str] = None
    list_agent_email: Optional[str] = None
    list_agent_phone: Optional[str] = None
    list_office_name: Optional[str] = None
    agent_phone: Optional[str] = None
    agent_email: Optional[str] = None
    agent_office_email: Optional[str] = None
    agent_office_phone: Optional[str] = None

    lease_considered: bool = False
    rent_control_yn: Optional[bool] = None
    rent_includes: Any = None
    pets_allowed: Any = None
    available_lease_type: Any = None

    showing_contact_name: Optional[str] = None
    showing_contact_phone: Optional[str] = None
    showing_instructions: Optional[str] = None
    showing_requirements: Any = None
    showing_days: Any = None
    start_showing_date: Optional[str] = None
    showing_start_time: Optional[str] = None
    end_showing_time: Optional[str] = None

    public_remarks: Optional[str] = None
    virtual_url: Optional[str] = None
    main_image_url: str = ""
    other_info: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.standard_status == StandardStatus.ACTIVE.value


class CrawlReport(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    window_start: Optional[datetime] = None
    fetched: int = 0
    failed_pages: int = 0
    normalized: int = 0
    skipped: int = 0
    new: int = 0
    upserted: int = 0
    deleted: int = 0
    images_uploaded: int = 0
    errors: int = 0


class CrawlStatus(BaseModel):
    state: str
    checkpoint: Optional[datetime] = None
    last_report: Optional[CrawlReport] = None
    last_error: Optional[str] = None
