import pytest

from rental_repairs.schemas.common.enums import WorkerSpecialization as W
from rental_repairs.services.scheduling.specialization import (
    SpecializationMatcher,
    infer_required_specialization,
    normalize_specialization,
    parse_specialization,
)


@pytest.mark.parametrize(
    "title, description, expected",
    [
        ("Dishwasher leaking water", "", W.APPLIANCE_REPAIR),
        ("Locked out of apartment", "", W.LOCKSMITH),
        ("Toilet clogged", "Bathroom", W.PLUMBING),
        ("Outlet sparking", "", W.ELECTRICAL),
        ("Furnace not starting", "", W.HVAC),
        ("Repaint bedroom wall", "", W.PAINTING),
        ("Broken cabinet door", "", W.CARPENTRY),
        ("Loose handrail on stairs", "", W.GENERAL_MAINTENANCE),
    ],
)
def test_inference_uses_first_matching_category(title, description, expected):
    assert infer_required_specialization(title, description) == expected


def test_inference_reads_description_too():
    assert infer_required_specialization("Problem in bathroom", "The faucet will not stop") == W.PLUMBING


def test_blank_text_means_general_maintenance():
    assert infer_required_specialization("", None) == W.GENERAL_MAINTENANCE


def test_normalization():
    assert normalize_specialization("plumber") == "Plumbing"
    assert normalize_specialization("  HVAC technician ") == "HVAC"
    assert normalize_specialization("") == "General Maintenance"
    assert normalize_specialization(None) == "General Maintenance"
    assert normalize_specialization("  Roofing ") == "Roofing"


def test_parse_rejects_unknown_trades():
    assert parse_specialization("electrician") == W.ELECTRICAL
    assert parse_specialization("Roofing") is None


def test_generalists_cover_every_trade():
    matcher = SpecializationMatcher()

    assert matcher.can_handle(W.GENERAL_MAINTENANCE, W.PLUMBING)
    assert matcher.can_handle(W.PLUMBING, W.PLUMBING)
    assert not matcher.can_handle(W.ELECTRICAL, W.PLUMBING)
    assert not matcher.is_exact_match(W.GENERAL_MAINTENANCE, W.PLUMBING)


def test_booking_match_on_raw_strings():
    matcher = SpecializationMatcher()

    assert matcher.matches_for_scheduling("Electrical", "")
    assert matcher.matches_for_scheduling(None, "General Maintenance")
    assert not matcher.matches_for_scheduling(None, "Plumbing")
    assert matcher.matches_for_scheduling("Roofing", "roofing") is False
    assert matcher.matches_for_scheduling("Roofing", "Roofing")
    assert matcher.matches_for_scheduling("plumber", "Plumbing")
