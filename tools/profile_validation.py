# tools/profile_validation.py
"""
FitPlan Forge — Profile Validation Gate
=======================================
Front door of the plan pipeline. Confirms that every required field is
present before any computation runs, then converts the raw request body
into a typed UserProfile.

Two steps, run in this order:
  1. validate_profile_payload() - presence check only, payload untouched
  2. UserProfile.from_payload()  - numeric coercion (NaN / junk -> 0)
"""

import math
from typing import Dict, Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tools.plan_errors import ValidationError

# =============================================================================
# REQUIRED FIELDS (wire names, fixed display order)
# =============================================================================
REQUIRED_FIELDS = [
    "age",
    "biologicalSex",
    "height",
    "weight",
    "fitnessExperience",
    "fitnessGoals",
]

BIOLOGICAL_SEX_VALUES = ("male", "female", "other")

# Numeric fields echoed into the prompt as the caller sent them
ECHO_FIELDS = ("age", "height", "weight")

# Larger magnitudes overflow the BMR arithmetic; no real body measure comes close
MAX_NUMERIC_MAGNITUDE = 1e9


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def find_missing_fields(payload: Dict[str, Any]) -> List[str]:
    """Return the required fields absent or blank in payload, in required order."""
    return [name for name in REQUIRED_FIELDS if _is_blank(payload.get(name))]


def validate_profile_payload(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Check a raw plan request body for the required profile fields.

    Args:
        payload: Decoded JSON body. None is treated as an empty body.

    Returns:
        The same payload object, unmodified.

    Raises:
        ValidationError: listing every missing field name in the fixed order
                         age, biologicalSex, height, weight, fitnessExperience,
                         fitnessGoals.
    """
    payload = payload if isinstance(payload, dict) else {}
    missing = find_missing_fields(payload)
    if missing:
        raise ValidationError(missing)
    return payload


# =============================================================================
# COERCION HELPERS
# =============================================================================
def coerce_number(value: Any) -> float:
    """Best-effort numeric conversion. Unparseable, NaN or absurdly large values become 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or abs(number) > MAX_NUMERIC_MAGNITUDE:
        return 0.0
    return number


def format_number(value: Union[int, float, str, None]) -> str:
    """Render numbers the way a person typed them: 80.0 -> '80', 80.5 -> '80.5'."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# =============================================================================
# USER PROFILE
# =============================================================================
class UserProfile(BaseModel):
    """Validated biometric and lifestyle profile for one plan request."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    age: float = Field(0, description="Age in years")
    biological_sex: str = Field("", alias="biologicalSex")
    height_cm: float = Field(0, alias="height")
    weight_kg: float = Field(0, alias="weight")
    fitness_experience: str = Field("", alias="fitnessExperience")
    fitness_goals: str = Field("", alias="fitnessGoals")
    dietary_restrictions: Optional[str] = Field(None, alias="dietaryRestrictions")

    # Carried through to the prompt only
    oxygen_saturation: Optional[str] = Field(None, alias="oxygenSaturation")
    blood_pressure: Optional[str] = Field(None, alias="bloodPressure")
    water_intake: Optional[str] = Field(None, alias="waterIntake")
    calorie_intake: Optional[str] = Field(None, alias="calorieIntake")

    # Caller's original values for ECHO_FIELDS, keyed by wire name
    raw_values: Dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)

    @field_validator("age", "height_cm", "weight_kg", mode="before")
    @classmethod
    def _coerce_numeric(cls, value: Any) -> float:
        return coerce_number(value)

    @field_validator("biological_sex", "fitness_experience", "fitness_goals", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator(
        "dietary_restrictions",
        "oxygen_saturation",
        "blood_pressure",
        "water_intake",
        "calorie_intake",
        mode="before",
    )
    @classmethod
    def _coerce_optional_text(cls, value: Any) -> Optional[str]:
        # 0 and False mean "not supplied" for the prompt-only metrics
        if _is_blank(value) or value is False or value == 0:
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return format_number(value)
        return str(value).strip()

    @property
    def sex_key(self) -> str:
        """Lower-cased sex; unknown values collapse to 'other'."""
        sex = self.biological_sex.lower()
        return sex if sex in BIOLOGICAL_SEX_VALUES else "other"

    def echo(self, wire_name: str) -> str:
        """Value for the prompt: what the caller sent, else the coerced field."""
        raw = self.raw_values.get(wire_name)
        if raw is None:
            raw = getattr(self, self._field_by_wire_name()[wire_name])
        if isinstance(raw, bool):
            return "true" if raw else "false"
        return format_number(raw)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UserProfile":
        """Build a profile from a payload that already passed validation."""
        known = {name: payload[name] for name in cls._wire_names() if name in payload}
        known["raw_values"] = {name: payload[name] for name in ECHO_FIELDS if payload.get(name) is not None}
        return cls.model_validate(known)

    @classmethod
    def _field_by_wire_name(cls) -> Dict[str, str]:
        return {field.alias or name: name for name, field in cls.model_fields.items() if name != "raw_values"}

    @classmethod
    def _wire_names(cls) -> List[str]:
        return list(cls._field_by_wire_name())
