"""
Specialization inference and matching.

Required specialization is inferred from request text with a prioritized
keyword table. The table order is part of the behaviour: the first
category with a keyword hit wins, so narrower trades are listed before
broader ones.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple, Union

from rental_repairs.schemas.common.enums import WorkerSpecialization

logger = logging.getLogger(__name__)

__all__ = [
    "SPECIALIZATION_KEYWORDS",
    "SpecializationMatcher",
    "infer_required_specialization",
    "normalize_specialization",
    "parse_specialization",
]

SpecializationLike = Union[WorkerSpecialization, str, None]

# Evaluated top to bottom; General Maintenance is the fallback.
SPECIALIZATION_KEYWORDS: Tuple[Tuple[WorkerSpecialization, Tuple[str, ...]], ...] = (
    (WorkerSpecialization.APPLIANCE_REPAIR, (
        "appliance", "refrigerator", "washer", "dryer", "dishwasher",
        "oven", "stove", "microwave", "freezer",
    )),
    (WorkerSpecialization.LOCKSMITH, (
        "lock", "key", "security", "deadbolt", "locked out", "lockout",
        "unlock", "rekey",
    )),
    (WorkerSpecialization.PLUMBING, (
        "plumb", "leak", "water", "drain", "pipe", "faucet", "toilet",
        "sink", "clog", "drip", "flush", "sewer",
    )),
    (WorkerSpecialization.ELECTRICAL, (
        "electric", "power", "outlet", "wiring", "light", "switch",
        "breaker", "circuit", "lamp", "fixture", "voltage", "spark",
    )),
    (WorkerSpecialization.HVAC, (
        "hvac", "furnace", "thermostat", "ventilation", "conditioner",
        "heating system", "cooling system", "heat pump", "air conditioning",
    )),
    (WorkerSpecialization.PAINTING, (
        "paint", "repaint", "brush", "roller", "color",
    )),
    (WorkerSpecialization.CARPENTRY, (
        "wood", "cabinet", "carpenter", "shelf", "wooden",
    )),
)

# Informal names used in worker profiles and booking snapshots
_SYNONYMS: Dict[str, WorkerSpecialization] = {
    "plumber": WorkerSpecialization.PLUMBING,
    "plumbing": WorkerSpecialization.PLUMBING,
    "electrician": WorkerSpecialization.ELECTRICAL,
    "electrical": WorkerSpecialization.ELECTRICAL,
    "hvac": WorkerSpecialization.HVAC,
    "hvac technician": WorkerSpecialization.HVAC,
    "heating": WorkerSpecialization.HVAC,
    "cooling": WorkerSpecialization.HVAC,
    "painter": WorkerSpecialization.PAINTING,
    "painting": WorkerSpecialization.PAINTING,
    "carpenter": WorkerSpecialization.CARPENTRY,
    "carpentry": WorkerSpecialization.CARPENTRY,
    "locksmith": WorkerSpecialization.LOCKSMITH,
    "appliance repair": WorkerSpecialization.APPLIANCE_REPAIR,
    "appliance technician": WorkerSpecialization.APPLIANCE_REPAIR,
    "general maintenance": WorkerSpecialization.GENERAL_MAINTENANCE,
    "maintenance": WorkerSpecialization.GENERAL_MAINTENANCE,
    "general": WorkerSpecialization.GENERAL_MAINTENANCE,
}


def infer_required_specialization(title: Optional[str], description: Optional[str]) -> WorkerSpecialization:
    """Map request text to the first matching category in table order."""
    text = f"{title or ''} {description or ''}".lower()
    if not text.strip():
        return WorkerSpecialization.GENERAL_MAINTENANCE

    for specialization, keywords in SPECIALIZATION_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return specialization
    return WorkerSpecialization.GENERAL_MAINTENANCE


def normalize_specialization(value: SpecializationLike) -> str:
    """
    Canonical name for a specialization string.

    Blank input means General Maintenance; unknown text is returned
    trimmed but otherwise unchanged so it only ever matches itself.
    """
    if isinstance(value, WorkerSpecialization):
        return value.value
    text = (value or "").strip()
    if not text:
        return WorkerSpecialization.GENERAL_MAINTENANCE.value

    canonical = _SYNONYMS.get(text.lower())
    if canonical is not None:
        return canonical.value
    for member in WorkerSpecialization:
        if member.value.lower() == text.lower():
            return member.value
    return text


def parse_specialization(value: SpecializationLike) -> Optional[WorkerSpecialization]:
    normalized = normalize_specialization(value)
    for member in WorkerSpecialization:
        if member.value == normalized:
            return member
    return None


class SpecializationMatcher:
    """Coverage rules shared by the recommendation engine and the resolver."""

    general = WorkerSpecialization.GENERAL_MAINTENANCE.value

    def infer(self, title: Optional[str], description: Optional[str]) -> WorkerSpecialization:
        return infer_required_specialization(title, description)

    def is_exact_match(self, worker_specialization: SpecializationLike, required: SpecializationLike) -> bool:
        return normalize_specialization(worker_specialization) == normalize_specialization(required)

    def can_handle(self, worker_specialization: SpecializationLike, required: SpecializationLike) -> bool:
        """Exact match, or the worker is a generalist."""
        worker = normalize_specialization(worker_specialization)
        return worker == normalize_specialization(required) or worker == self.general

    def matches_for_scheduling(self, worker_specialization: SpecializationLike, required: SpecializationLike) -> bool:
        """
        Booking-time check over raw snapshot strings.

        A blank requirement accepts anyone. A blank worker specialization
        is only accepted for General Maintenance work.
        """
        if _is_blank(required):
            return True
        if _is_blank(worker_specialization):
            return normalize_specialization(required) == self.general
        return self.can_handle(worker_specialization, required)


def _is_blank(value: SpecializationLike) -> bool:
    if isinstance(value, WorkerSpecialization):
        return False
    return not (value or "").strip()
