# unit_tests/test_tool_profile_validation.py
"""
Unit Tests for Profile Validation Gate
======================================
Run with: python -m pytest unit_tests/test_tool_profile_validation.py -v
"""

import pytest

from tools.plan_errors import ValidationError
from tools.profile_validation import (
    REQUIRED_FIELDS,
    UserProfile,
    coerce_number,
    find_missing_fields,
    format_number,
    validate_profile_payload,
)


def test_empty_body_lists_every_field_in_order():
    with pytest.raises(ValidationError) as exc_info:
        validate_profile_payload({})
    err = exc_info.value
    assert err.missing == REQUIRED_FIELDS
    assert err.details == "age, biologicalSex, height, weight, fitnessExperience, fitnessGoals"
    assert err.status_code == 400
    assert err.public_message == "Missing required fields"


def test_none_body_treated_as_empty():
    with pytest.raises(ValidationError) as exc_info:
        validate_profile_payload(None)
    assert len(exc_info.value.missing) == 6


def test_blank_and_null_values_count_as_missing(male_payload):
    male_payload["weight"] = ""
    male_payload["fitnessGoals"] = "   "
    male_payload["age"] = None
    with pytest.raises(ValidationError) as exc_info:
        validate_profile_payload(male_payload)
    # Fixed order regardless of which key was blanked first
    assert exc_info.value.details == "age, weight, fitnessGoals"


def test_zero_is_present(male_payload):
    """Presence check only: 0 is a value, not a missing field."""
    male_payload["age"] = 0
    assert find_missing_fields(male_payload) == []


def test_valid_payload_passes_through_untouched(male_payload):
    snapshot = dict(male_payload)
    result = validate_profile_payload(male_payload)
    assert result is male_payload
    assert result == snapshot


def test_profile_from_payload_aliases(male_payload):
    male_payload.update({"oxygenSaturation": 97, "bloodPressure": "120/80", "waterIntake": 2.5})
    profile = UserProfile.from_payload(male_payload)
    assert profile.height_cm == 180
    assert profile.weight_kg == 80
    assert profile.biological_sex == "Male"
    assert profile.sex_key == "male"
    assert profile.dietary_restrictions == "Vegetarian"
    assert profile.oxygen_saturation == "97"
    assert profile.blood_pressure == "120/80"
    assert profile.water_intake == "2.5"
    assert profile.calorie_intake is None


def test_profile_ignores_unknown_keys(male_payload):
    male_payload["concise"] = True
    male_payload["favoriteColor"] = "teal"
    profile = UserProfile.from_payload(male_payload)
    assert not hasattr(profile, "favoriteColor")


def test_profile_coerces_numbers(male_payload):
    male_payload.update({"age": "31", "height": "abc", "weight": float("nan")})
    profile = UserProfile.from_payload(male_payload)
    assert profile.age == 31
    assert profile.height_cm == 0
    assert profile.weight_kg == 0


def test_profile_is_frozen(male_payload):
    profile = UserProfile.from_payload(male_payload)
    with pytest.raises(Exception):
        profile.age = 99


def test_unknown_sex_maps_to_other(male_payload):
    male_payload["biologicalSex"] = "Prefer not to say"
    assert UserProfile.from_payload(male_payload).sex_key == "other"


def test_blank_optional_fields_become_none(male_payload):
    male_payload.update({"dietaryRestrictions": "  ", "calorieIntake": ""})
    profile = UserProfile.from_payload(male_payload)
    assert profile.dietary_restrictions is None
    assert profile.calorie_intake is None


def test_coerce_number():
    assert coerce_number("80.5") == 80.5
    assert coerce_number(None) == 0
    assert coerce_number("") == 0
    assert coerce_number(float("inf")) == 0
    assert coerce_number(True) == 0
    assert coerce_number(2e307) == 0
    assert coerce_number(-1e12) == 0
    assert coerce_number(250) == 250


def test_format_number():
    assert format_number(80.0) == "80"
    assert format_number(80.5) == "80.5"
    assert format_number(30) == "30"
    assert format_number(None) == ""


def test_null_required_field_is_missing(male_payload):
    """JSON null is treated like an absent field, not as a present value."""
    male_payload["biologicalSex"] = None
    assert find_missing_fields(male_payload) == ["biologicalSex"]


def test_zero_optional_metrics_are_not_supplied(male_payload):
    male_payload.update({"oxygenSaturation": 0, "waterIntake": 0.0, "calorieIntake": False,
                         "bloodPressure": "0"})
    profile = UserProfile.from_payload(male_payload)
    assert profile.oxygen_saturation is None
    assert profile.water_intake is None
    assert profile.calorie_intake is None
    # Non-empty strings are kept as typed
    assert profile.blood_pressure == "0"


def test_echo_returns_values_as_sent(male_payload):
    male_payload.update({"height": "180cm", "weight": 80.0, "age": "30"})
    profile = UserProfile.from_payload(male_payload)
    assert profile.height_cm == 0
    assert profile.echo("height") == "180cm"
    assert profile.echo("weight") == "80"
    assert profile.echo("age") == "30"
    assert "raw_values" not in profile.model_dump()


def test_echo_falls_back_to_coerced_value():
    profile = UserProfile(age=41, biologicalSex="female", height=170, weight=62.5,
                          fitnessExperience="beginner", fitnessGoals="endurance")
    assert profile.echo("weight") == "62.5"
    assert profile.echo("age") == "41"
