import pytest

from listing_ingest.errors import MalformedRecordError, MissingKeyError
from listing_ingest.normalize import FIELD_MAP, extra_fields, media_urls, normalize_listing


def test_scenario_record_normalizes():
    raw = {
        "ListingKey": "A1",
        "ListPrice": 500000,
        "City": "Troy",
        "StandardStatus": "Active",
        "Media": [{"MediaURL": "http://x/1.png"}],
    }
    listing = normalize_listing(raw)
    assert listing.listing_key == "A1"
    assert listing.list_price == 500000
    assert listing.city == "Troy"
    assert listing.standard_status == "Active"
    assert listing.is_active
    assert "Media" not in listing.other_info


def test_absent_or_empty_numerics_take_defaults():
    listing = normalize_listing({"ListingKey": "B2", "BedroomsTotal": "", "LivingArea": None})
    assert listing.bedrooms == 0
    assert listing.bathrooms == 0
    assert listing.living_area_sqft == 0
    assert listing.latitude == 0.0
    assert listing.days_on_market == 0
    assert listing.lease_considered is False
    assert listing.year_built is None
    assert listing.main_image_url == ""


@pytest.mark.parametrize("upstream", [
    "YearBuilt", "GarageYN", "HeatingYN", "RentControlYN", "CurrentPrice", "Stories", "ParkingTotal",
])
def test_empty_optional_scalars_are_absent(upstream):
    listing = normalize_listing({"ListingKey": "B3", "StandardStatus": "Active", upstream: ""})
    assert listing.is_active
    dumped = listing.model_dump()
    assert all(dumped[field] is None for field, name, _ in FIELD_MAP if name == upstream)


def test_empty_text_fields_are_kept():
    listing = normalize_listing({"ListingKey": "B4", "City": "", "PublicRemarks": ""})
    assert listing.city == ""
    assert listing.public_remarks == ""


def test_stored_field_names_for_heating_showing_and_agent_email():
    listing = normalize_listing({
        "ListingKey": "B5",
        "HeatingYN": True,
        "ShowingEndTime": "18:00",
        "ListAgentEmail": "agent@example.com",
    })
    dumped = listing.model_dump()
    assert dumped["HeatingYN"] is True
    assert dumped["end_showing_time"] == "18:00"
    assert dumped["agent_email"] == "agent@example.com"
    assert dumped["list_agent_email"] == "agent@example.com"
    assert "ShowingEndTime" not in listing.other_info


def test_numeric_listing_key_and_postal_code_become_strings():
    listing = normalize_listing({"ListingKey": 12345, "PostalCode": 48083})
    assert listing.listing_key == "12345"
    assert listing.postal_code == "48083"


def test_unmodeled_fields_are_kept_in_upstream_order():
    raw = {
        "ListingKey": "C3",
        "ZetaField": "z",
        "City": "Troy",
        "AlphaCount": 0,
        "FlagYN": False,
        "NullField": None,
        "Media": [{"MediaURL": "http://x/1.png"}],
        "Media@odata.count": 1,
        "@odata.id": "Property('C3')",
    }
    bag = extra_fields(raw)
    assert list(bag) == ["ZetaField", "AlphaCount", "FlagYN"]
    assert normalize_listing(raw).other_info == bag


def test_feature_lists_are_preserved():
    listing = normalize_listing({"ListingKey": "D4", "Cooling": ["Central Air"], "SubdivisionName": "Oak Park"})
    assert listing.cooling == ["Central Air"]
    assert listing.neighborhood == "Oak Park"
    assert listing.subdivision_name == "Oak Park"


@pytest.mark.parametrize("raw", [{"City": "Troy"}, {"ListingKey": None}, {"ListingKey": "  "}])
def test_missing_listing_key_is_rejected(raw):
    with pytest.raises(MissingKeyError):
        normalize_listing(raw)


def test_uncoercible_field_is_malformed():
    with pytest.raises(MalformedRecordError):
        normalize_listing({"ListingKey": "E5", "BedroomsTotal": "several"})


def test_non_active_status():
    assert not normalize_listing({"ListingKey": "F6", "StandardStatus": "Pending"}).is_active
    assert not normalize_listing({"ListingKey": "F7"}).is_active


def test_media_urls_keep_order_and_skip_entries_without_url():
    raw = {"Media": [{"MediaURL": "http://x/2.jpg"}, {"MediaKey": "m"}, {"MediaURL": ""}, {"MediaURL": "http://x/1.jpg"}]}
    assert media_urls(raw) == ["http://x/2.jpg", "http://x/1.jpg"]
    assert media_urls({}) == []
    assert media_urls({"Media": None}) == []
