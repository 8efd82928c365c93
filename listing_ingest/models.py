# listing_ingest/models.py
"""SQLAlchemy ORM models for the listings and listing-images collections.

These two tables are the contract with the query-serving side: column names
match the normalized listing fields one to one.
"""
from sqlalchemy import (
    JSON, TIMESTAMP, Boolean, Column, Float, Index, Integer, Text, UniqueConstraint, func,
)
from sqlalchemy.dialects.postgresql import JSONB

from .db import Base

Document = JSON().with_variant(JSONB(), "postgresql")


class Listing(Base):
    __tablename__ = "listings"
    id = Column(Integer, primary_key=True, index=True)
    listing_key = Column(Text, nullable=False, unique=True, index=True)
    listing_id = Column(Text)

    # pricing
    list_price = Column(Float)
    original_list_price = Column(Float)
    previous_list_price = Column(Float)
    current_price = Column(Float)
    lease_amount = Column(Float)
    lease_amount_frequency = Column(Text)
    land_lease_amount = Column(Float)
    land_lease_amount_frequency = Column(Text)
    price_change_timestamp = Column(Text)

    # address / geo
    address = Column(Text)
    city = Column(Text)
    county = Column(Text)
    state_or_province = Column(Text)
    postal_code = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    neighborhood = Column(Text)
    subdivision_name = Column(Text)
    highschool = Column(Text)
    zoning = Column(Text)

    # structure
    property_type = Column(Text)
    property_sub_type = Column(Text)
    bedrooms = Column(Integer)
    bathrooms = Column(Integer)
    rooms_total = Column(Integer)
    living_area_sqft = Column(Float)
    lot_size_sqft = Column(Float)
    stories = Column(Integer)
    year_built = Column(Integer)
    garage_yn = Column(Boolean)
    garage_size = Column(Float)
    parking_total = Column(Float)
    HeatingYN = Column(Boolean)

    # features (upstream multi-value fields)
    cooling = Column(Document)
    heating = Column(Document)
    accessibility_features = Column(Document)
    interior_features = Column(Document)
    exterior_features = Column(Document)
    door_features = Column(Document)
    laundry_features = Column(Document)
    parking_features = Column(Document)
    patio_and_porch_features = Column(Document)
    security_features = Column(Document)
    pool_features = Column(Document)
    roof_features = Column(Document)
    lot_features = Column(Document)
    view = Column(Document)
    utilities = Column(Document)
    possible_use = Column(Document)

    # status / timing
    status = Column(Text)
    standard_status = Column(Text, index=True)
    mls_status = Column(Text)
    days_on_market = Column(Integer)
    listing_contract_date = Column(Text)
    modification_timestamp = Column(Text)
    on_market_timestamp = Column(Text)

    # agent / office
    list_agent_full_name = Column(Text)
    list_agent_email = Column(Text)
    list_agent_phone = Column(Text)
    list_office_name = Column(Text)
    agent_phone = Column(Text)
    agent_email = Column(Text)
    agent_office_email = Column(Text)
    agent_office_phone = Column(Text)

    # lease terms
    lease_considered = Column(Boolean)
    rent_control_yn = Column(Boolean)
    rent_includes = Column(Document)
    pets_allowed = Column(Document)
    available_lease_type = Column(Document)

    # showings
    showing_contact_name = Column(Text)
    showing_contact_phone = Column(Text)
    showing_instructions = Column(Text)
    showing_requirements = Column(Document)
    showing_days = Column(Document)
    start_showing_date = Column(Text)
    showing_start_time = Column(Text)
    end_showing_time = Column(Text)

    public_remarks = Column(Text)
    virtual_url = Column(Text)
    main_image_url = Column(Text)
    other_info = Column(Document)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    last_crawled = Column(TIMESTAMP(timezone=True))


class ListingImage(Base):
    __tablename__ = "listing_images"
    id = Column(Integer, primary_key=True)
    listing_key = Column(Text, nullable=False, index=True)
    image_url = Column(Text, nullable=False)
    uploaded = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("listing_key", "image_url", name="uq_listing_images_key_url"),)

Index("idx_listings_city", Listing.city)
Index("idx_listings_list_price", Listing.list_price)
