# listing_ingest/normalize.py
"""Map raw feed records onto the stored listing schema."""
from typing import Any, Dict, List, get_args

from pydantic import ValidationError

from .errors import MalformedRecordError, MissingKeyError
from .schemas import ListingDocument

MEDIA_FIELD = "Media"

# (stored field, upstream field, default when absent or empty)
FIELD_MAP = [
    ("listing_id", "ListingId", None),
    ("list_price", "ListPrice", 0),
    ("original_list_price", "OriginalListPrice", 0),
    ("previous_list_price", "PreviousListPrice", 0),
    ("current_price", "CurrentPrice", None),
    ("lease_amount", "LeaseAmount", 0),
    ("lease_amount_frequency", "LeaseAmountFrequency", None),
    ("land_lease_amount", "LandLeaseAmount", None),
    ("land_lease_amount_frequency", "LandLeaseAmountFrequency", None),
    ("price_change_timestamp", "PriceChangeTimestamp", None),
    ("address", "UnparsedAddress", None),
    ("city", "City", None),
    ("county", "CountyOrParish", None),
    ("state_or_province", "StateOrProvince", None),
    ("postal_code", "PostalCode", None),
    ("latitude", "Latitude", 0.0),
    ("longitude", "Longitude", 0.0),
    ("neighborhood", "SubdivisionName", None),
    ("subdivision_name", "SubdivisionName", None),
    ("highschool", "HighSchool", None),
    ("zoning", "ZoningDescription", None),
    ("property_type", "PropertyType", None),
    ("property_sub_type", "PropertySubType", None),
    ("bedrooms", "BedroomsTotal", 0),
    ("bathrooms", "BathroomsTotalInteger", 0),
    ("rooms_total", "RoomsTotal", None),
    ("living_area_sqft", "LivingArea", 0),
    ("lot_size_sqft", "LotSizeSquareFeet", 0),
    ("stories", "Stories", None),
    ("year_built", "YearBuilt", None),
    ("garage_yn", "GarageYN", None),
    ("garage_size", "GarageSpaces", None),
    ("parking_total", "ParkingTotal", None),
    ("HeatingYN", "HeatingYN", None),
    ("cooling", "Cooling", None),
    ("heating", "Heating", None),
    ("accessibility_features", "AccessibilityFeatures", None),
    ("interior_features", "InteriorFeatures", None),
    ("exterior_features", "ExteriorFeatures", None),
    ("door_features", "DoorFeatures", None),
    ("laundry_features", "LaundryFeatures", None),
    ("parking_features", "ParkingFeatures", None),
    ("patio_and_porch_features", "PatioAndPorchFeatures", None),
    ("security_features", "SecurityFeatures", None),
    ("pool_features", "PoolFeatures", None),
    ("roof_features", "RoofFeatures", None),
    ("lot_features", "LotFeatures", None),
    ("view", "View", None),
    ("utilities", "Utilities", None),
    ("possible_use", "PossibleUse", None),
    ("status", "SaleOrLeaseIndicator", None),
    ("standard_status", "StandardStatus", None),
    ("mls_status", "MlsStatus", None),
    ("days_on_market", "DaysOnMarket", 0),
    ("listing_contract_date", "ListingContractDate", None),
    ("modification_timestamp", "ModificationTimestamp", None),
    ("on_market_timestamp", "OnMarketTimestamp", None),
    ("list_agent_full_name", "ListAgentFullName", None),
    ("list_agent_email", "ListAgentEmail", None),
    ("list_agent_phone", "ListAgentDirectPhone", None),
    ("list_office_name", "ListOfficeName", None),
    ("agent_phone", "ListAgentOfficePhone", None),
    ("agent_email", "ListAgentEmail", None),
    ("agent_office_email", "ListOfficeEmail", None),
    ("agent_office_phone", "ListOfficePhone", None),
    ("lease_considered", "LeaseConsideredYN", False),
    ("rent_control_yn", "RentControlYN", None),
    ("rent_includes", "RentIncludes", None),
    ("pets_allowed", "PetsAllowed", None),
    ("available_lease_type", "AvailableLeaseType", None),
    ("showing_contact_name", "ShowingContactName", None),
    ("showing_contact_phone", "ShowingContactPhone", None),
    ("showing_instructions", "ShowingInstructions", None),
    ("showing_requirements", "ShowingRequirements", None),
    ("showing_days", "ShowingDays", None),
    ("start_showing_date", "StartShowingDate", None),
    ("showing_start_time", "ShowingStartTime", None),
    ("end_showing_time", "ShowingEndTime", None),
    ("public_remarks", "PublicRemarks", None),
    ("virtual_url", "VirtualTourURLUnbranded", None),
]

MODELED_FIELDS = frozenset(upstream for _, upstream, _ in FIELD_MAP) | {"ListingKey"}


def _is_scalar(annotation) -> bool:
    return any(t in (int, float, bool) for t in (get_args(annotation) or (annotation,)))


# stored fields typed int/float/bool (optional or not)
SCALAR_FIELDS = frozenset(
    name for name, info in ListingDocument.model_fields.items() if _is_scalar(info.annotation)
)


def get_safe(data: Dict[str, Any], key: str, default=None, blank_is_absent=False):
    val = data.get(key)
    if val is None:
        return default
    # the feed sends "" for unset numerics and flags
    if val == "" and blank_is_absent:
        return default
    return val


def media_urls(raw: Dict[str, Any]) -> List[str]:
    """Media URLs in upstream order, ignoring entries without a MediaURL."""
    items = raw.get(MEDIA_FIELD) or []
    return [m["MediaURL"] for m in items if isinstance(m, dict) and m.get("MediaURL")]


def _is_unmodeled(key: str) -> bool:
    if key in MODELED_FIELDS or key == MEDIA_FIELD:
        return False
    # OData annotations such as "@odata.id" or "Media@odata.count"
    return "@odata." not in key


def extra_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in raw.items() if _is_unmodeled(k) and v is not None}


def normalize_listing(raw: Dict[str, Any]) -> ListingDocument:
    """Build a ListingDocument from one feed record.

    Raises MissingKeyError when ListingKey is absent and MalformedRecordError
    when a modeled field cannot be coerced to its stored type.
    """
    listing_key = raw.get("ListingKey")
    if listing_key is None or str(listing_key).strip() == "":
        raise MissingKeyError("listing without ListingKey")

    data = {"listing_key": str(listing_key)}
    for field, upstream, default in FIELD_MAP:
        data[field] = get_safe(raw, upstream, default, blank_is_absent=field in SCALAR_FIELDS)
    data["other_info"] = extra_fields(raw)
    try:
        return ListingDocument.model_validate(data)
    except ValidationError as e:
        raise MalformedRecordError(f"listing {listing_key}: {e.error_count()} invalid field(s)") from e
