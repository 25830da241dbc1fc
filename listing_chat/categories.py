"""Declarative field descriptions for the four listing categories.

Each ``CategorySchema`` tells the model which fields to collect, which values
are allowed for enumerated fields, and how to steer the conversation. The
registry is built at import time and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

UNKNOWN_CATEGORY_MARKER = "UNKNOWN CATEGORY"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str = "string"
    allowed_values: Tuple[str, ...] = ()

    def describe(self) -> str:
        if self.allowed_values:
            values = "|".join(self.allowed_values)
            if self.type == "array":
                return f"{self.name} (list of: {values})"
            return f"{self.name} ({values})"
        if self.type == "string":
            return self.name
        return f"{self.name} ({self.type})"


@dataclass(frozen=True)
class CategorySchema:
    id: str
    label: str
    required_fields: Tuple[FieldSpec, ...]
    important_fields: Tuple[FieldSpec, ...]
    optional_fields: Tuple[FieldSpec, ...]
    guidance: str

    @property
    def required_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.required_fields)


def _enum(name: str, *values: str) -> FieldSpec:
    return FieldSpec(name, "enum", tuple(values))


def _many(name: str, *values: str) -> FieldSpec:
    return FieldSpec(name, "array", tuple(values))


def _flag(name: str) -> FieldSpec:
    return FieldSpec(name, "boolean")


def _int(name: str) -> FieldSpec:
    return FieldSpec(name, "integer")


LISTING_MODES = ("rent", "sale", "both")
VEHICLE_CONDITIONS = ("new", "excellent", "good", "fair", "needs_work")

PROPERTY_TYPES = ("apartment", "house", "room", "studio", "villa", "condo", "loft", "penthouse", "townhouse", "other")
RENTAL_DURATIONS = ("3-months", "6-months", "1-year")
PROPERTY_AMENITIES = ("pool", "gym", "parking", "ac", "wifi", "security", "garden", "balcony", "elevator", "storage")
PROPERTY_SERVICES = ("water", "electricity", "gas", "internet", "cleaning", "maintenance", "trash", "cable_tv")

MOTORCYCLE_TYPES = (
    "sport",
    "cruiser",
    "touring",
    "adventure",
    "dual_sport",
    "dirt",
    "standard",
    "cafe_racer",
    "chopper",
    "scooter",
    "electric",
    "other",
)
TRANSMISSIONS = ("manual", "automatic", "semi_auto")
FUEL_TYPES = ("gasoline", "electric", "hybrid")

BICYCLE_TYPES = ("road", "mountain", "hybrid", "city", "electric", "cruiser", "bmx", "folding", "cargo", "gravel", "other")
FRAME_SIZES = ("xs", "s", "m", "l", "xl")
FRAME_MATERIALS = ("aluminum", "carbon_fiber", "steel", "titanium", "chromoly")
WHEEL_SIZES = ('20"', '24"', '26"', '27.5"', '29"', "700c")
BRAKE_TYPES = ("disc_hydraulic", "disc_mechanical", "rim", "coaster")
SUSPENSION_TYPES = ("rigid", "hardtail", "full")

SERVICE_CATEGORIES = (
    "nanny",
    "baby_sitting",
    "chef",
    "home_cook",
    "cleaning",
    "massage",
    "english_teacher",
    "spanish_teacher",
    "yoga",
    "personal_trainer",
    "handyman",
    "gardener",
    "pool_maintenance",
    "driver",
    "security",
    "broker",
    "tour_guide",
    "photographer",
    "pet_care",
    "pet_sitting",
    "music_teacher",
    "beauty",
    "other",
)
PRICING_UNITS = ("per_hour", "per_session", "per_day", "per_week", "per_month", "quote")
WORK_TYPES = ("full_time", "part_time", "contract", "freelance", "temporary", "internship")
SCHEDULE_TYPES = ("fixed_hours", "flexible", "on_call", "seasonal", "rotating_shifts", "weekends_only")
DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
TIME_SLOTS = ("early_morning", "morning", "afternoon", "evening", "night", "anytime")
LOCATION_TYPES = ("on_site", "remote", "hybrid", "travel_required", "own_location")
EXPERIENCE_LEVELS = ("entry", "mid", "senior", "expert")

_BASIC_VEHICLE_FIELDS = (
    FieldSpec("title"),
    FieldSpec("description"),
    _enum("mode", *LISTING_MODES),
    FieldSpec("price", "number"),
    FieldSpec("city"),
)

PROPERTY = CategorySchema(
    id="property",
    label="property",
    required_fields=(
        FieldSpec("title"),
        FieldSpec("description"),
        _enum("property_type", *PROPERTY_TYPES),
        _enum("mode", *LISTING_MODES),
        FieldSpec("price", "number"),
        FieldSpec("city"),
        FieldSpec("neighborhood"),
    ),
    important_fields=(
        _int("beds"),
        FieldSpec("baths", "number"),
        _flag("furnished"),
        _flag("pet_friendly"),
    ),
    optional_fields=(
        _int("square_footage"),
        _many("amenities", *PROPERTY_AMENITIES),
        _many("services_included", *PROPERTY_SERVICES),
        _enum("rental_duration_type", *RENTAL_DURATIONS),
        FieldSpec("house_rules"),
        FieldSpec("address"),
        FieldSpec("state"),
    ),
    guidance=(
        "Start by asking about the property type and whether it is for rent or sale, then move on to "
        "bedrooms and bathrooms, features, amenities, pricing, and finally the location."
    ),
)

MOTORCYCLE = CategorySchema(
    id="motorcycle",
    label="motorcycle",
    required_fields=_BASIC_VEHICLE_FIELDS,
    important_fields=(
        _enum("motorcycle_type", *MOTORCYCLE_TYPES),
        FieldSpec("vehicle_brand"),
        FieldSpec("vehicle_model"),
        _enum("vehicle_condition", *VEHICLE_CONDITIONS),
        _int("year"),
        _int("engine_cc"),
        _int("mileage"),
        _enum("transmission", *TRANSMISSIONS),
    ),
    optional_fields=(
        _enum("fuel_type", *FUEL_TYPES),
        _flag("has_abs"),
        _flag("has_esc"),
        _flag("has_traction_control"),
        _flag("has_heated_grips"),
        _flag("has_luggage_rack"),
        _flag("includes_helmet"),
        _flag("includes_gear"),
    ),
    guidance="Ask about make, model, year, condition, mileage, and any accessories or gear included.",
)

BICYCLE = CategorySchema(
    id="bicycle",
    label="bicycle",
    required_fields=_BASIC_VEHICLE_FIELDS,
    important_fields=(
        _enum("bicycle_type", *BICYCLE_TYPES),
        FieldSpec("vehicle_brand"),
        FieldSpec("vehicle_model"),
        _enum("vehicle_condition", *VEHICLE_CONDITIONS),
        _int("year"),
        _enum("frame_size", *FRAME_SIZES),
        _enum("frame_material", *FRAME_MATERIALS),
        _int("number_of_gears"),
        _flag("electric_assist"),
    ),
    optional_fields=(
        _int("battery_range"),
        _flag("includes_lock"),
        _flag("includes_lights"),
        _flag("includes_basket"),
        _flag("includes_pump"),
        _enum("suspension_type", *SUSPENSION_TYPES),
        _enum("brake_type", *BRAKE_TYPES),
        _enum("wheel_size", *WHEEL_SIZES),
    ),
    guidance="Ask about the type, frame size, and condition. For e-bikes, also ask about battery range (km).",
)

WORKER = CategorySchema(
    id="worker",
    label="service",
    required_fields=(
        FieldSpec("title"),
        FieldSpec("description"),
        _enum("service_category", *SERVICE_CATEGORIES),
        _enum("pricing_unit", *PRICING_UNITS),
        FieldSpec("price", "number"),
        FieldSpec("city"),
    ),
    important_fields=(
        _enum("experience_level", *EXPERIENCE_LEVELS),
        _int("experience_years"),
        _many("skills"),
        _many("certifications"),
        _int("service_radius_km"),
    ),
    optional_fields=(
        _int("minimum_booking_hours"),
        _flag("offers_emergency_service"),
        _flag("background_check_verified"),
        _flag("insurance_verified"),
        _many("tools_equipment"),
        _many("days_available", *DAYS_OF_WEEK),
        _many("time_slots_available", *TIME_SLOTS),
        _enum("work_type", *WORK_TYPES),
        _enum("schedule_type", *SCHEDULE_TYPES),
        _enum("location_type", *LOCATION_TYPES),
    ),
    guidance="Ask about the kind of service, years of experience, availability, service area, and rates.",
)

_REGISTRY: Mapping[str, CategorySchema] = MappingProxyType(
    {schema.id: schema for schema in (PROPERTY, MOTORCYCLE, BICYCLE, WORKER)}
)

CATEGORY_IDS: Tuple[str, ...] = tuple(_REGISTRY)


def get_category(category_id: Optional[str]) -> Optional[CategorySchema]:
    """Return the schema for ``category_id``; unknown or empty ids give None."""
    if not category_id:
        return None
    return _REGISTRY.get(category_id.strip().lower())


def _field_line(title: str, fields: Tuple[FieldSpec, ...]) -> str:
    return f"{title}: " + ", ".join(spec.describe() for spec in fields)


def render_category_block(category_id: Optional[str]) -> str:
    """Field list, value enumerations and guidance for the category, as prompt text."""
    schema = get_category(category_id)
    if schema is None:
        return (
            f"{UNKNOWN_CATEGORY_MARKER}: {category_id!r} is not one of {', '.join(CATEGORY_IDS)}.\n"
            "Collect a generic listing instead: title, description, price, city.\n"
            "Ask the user what kind of item or service they want to list.\n"
        )
    lines = [f"AVAILABLE {schema.label.upper()} FIELDS:", _field_line("Required", schema.required_fields)]
    if schema.important_fields:
        lines.append(_field_line("Important", schema.important_fields))
    if schema.optional_fields:
        lines.append(_field_line("Optional", schema.optional_fields))
    lines.append("")
    lines.append(f"Tips: {schema.guidance}")
    return "\n".join(lines) + "\n"
