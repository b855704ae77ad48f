"""Pet profile normalization.

Clients have sent the profile under several historical field names (camelCase
from the mobile app, snake_case from the web form, a bare ``age``). Everything
is folded into one canonical shape here and rendered as a fixed text block for
the prompts. Nothing in this module raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from .utils import clamp, safe_text, to_int

UNKNOWN = "Unknown"
MAX_AGE_YEARS = 50
MAX_AGE_MONTHS = 11

NAME_KEYS = ("petName", "pet_name", "name")
SEX_KEYS = ("petGender", "pet_gender", "sex", "gender")
AGE_YEARS_KEYS = ("ageYears", "age_years", "age")
AGE_MONTHS_KEYS = ("ageMonths", "age_months")
WEIGHT_KEYS = ("weightLb", "weight_lb", "weight")


@dataclass(frozen=True)
class NormalizedProfile:
    """Canonical pet profile; text fields are "" when the client sent nothing."""
    name: str = ""
    species: str = ""
    breed: str = ""
    sex: str = ""
    age_years: Optional[int] = None
    age_months: Optional[int] = None
    weight: str = ""
    city: str = ""
    country: str = ""

    @property
    def age_display(self) -> str:
        return format_pet_age(self.age_years, self.age_months)


def _first_present(raw: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _weight_text(value: Any) -> str:
    # Weight arrives as a number or free text ("12 lb"); keep it as written.
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return f"{value:g}"
    return safe_text(value)


def normalize_profile(raw: Any) -> NormalizedProfile:
    """Purpose: Fold a client-supplied profile into the canonical shape.
    Inputs/Outputs: Input is any value (normally a dict); output is a
        NormalizedProfile with clamped age fields.
    Side Effects / State: None; pure function.
    Dependencies: Uses safe_text/to_int/clamp from utils.
    Failure Modes: Never raises; non-mapping input is treated as an empty profile.
    If Removed: Prompts would receive raw client fields and inconsistent ages.
    Testing Notes: Check camelCase and snake_case variants and age clamping.
    """
    # Accept only mappings; anything else is an empty profile.
    if not isinstance(raw, Mapping):
        raw = {}
    years = clamp(to_int(_first_present(raw, AGE_YEARS_KEYS)), 0, MAX_AGE_YEARS)
    months = clamp(to_int(_first_present(raw, AGE_MONTHS_KEYS)), 0, MAX_AGE_MONTHS)
    return NormalizedProfile(
        name=safe_text(_first_present(raw, NAME_KEYS)),
        species=safe_text(raw.get("species")),
        breed=safe_text(raw.get("breed")),
        sex=safe_text(_first_present(raw, SEX_KEYS)),
        age_years=years,
        age_months=months,
        weight=_weight_text(_first_present(raw, WEIGHT_KEYS)),
        city=safe_text(raw.get("city")),
        country=safe_text(raw.get("country")),
    )


def _unit(count: int, singular: str) -> str:
    return f"{count} {singular}" if count == 1 else f"{count} {singular}s"


def format_pet_age(years: Optional[int], months: Optional[int]) -> str:
    """Render an age as "3 years 2 months", "5 months", or "Unknown"."""
    if years is None and months is None:
        return UNKNOWN
    years = years or 0
    months = months or 0
    if years > 0 and months > 0:
        return f"{_unit(years, 'year')} {_unit(months, 'month')}"
    if years > 0:
        return _unit(years, "year")
    return _unit(months, "month")


def profile_block(raw: Any) -> str:
    """Render the profile as the fixed seven-line block used in every prompt."""
    profile = raw if isinstance(raw, NormalizedProfile) else normalize_profile(raw)
    return "\n".join(
        [
            f"Pet name: {profile.name or UNKNOWN}",
            f"Species: {profile.species or UNKNOWN}",
            f"Breed: {profile.breed or UNKNOWN}",
            f"Sex: {profile.sex or UNKNOWN}",
            f"Age: {profile.age_display}",
            f"Weight (lb): {profile.weight or UNKNOWN}",
            f"Location: {profile.city or UNKNOWN}, {profile.country or UNKNOWN}",
        ]
    )
