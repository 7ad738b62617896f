# consultify/services/doctor_selection.py
import logging
import random
import re
from dataclasses import dataclass
from typing import Optional

from consultify.services.identity import UserProfile

logger = logging.getLogger(__name__)

TRIAGE_COMPLETE_MARKER = "TRIAGE_COMPLETE:"
URGENT_TRIAGE_COMPLETE_MARKER = "URGENT_TRIAGE_COMPLETE:"

_MARKER_PREFIX = re.compile(r"^(URGENT_)?TRIAGE_COMPLETE:\s*")

# keyword -> specialization, first match wins
_SPECIALIZATION_KEYWORDS = [
    (("heart", "chest"), "Cardiology"),
    (("skin", "rash"), "Dermatology"),
]


class NoDoctorsAvailable(Exception):
    pass


@dataclass
class DoctorSelectionCriteria:
    symptoms: str
    urgency: str  # "low" | "medium" | "high"
    specialization: Optional[str] = None


def extract_symptoms(ai_summary: str) -> DoctorSelectionCriteria:
    """Parse a triage completion marker into selection criteria.

    Urgency is "high" for the URGENT_ marker and "medium" otherwise; nothing
    here produces "low".
    """
    symptoms = _MARKER_PREFIX.sub("", ai_summary, count=1)
    urgency = "high" if ai_summary.startswith("URGENT_TRIAGE_COMPLETE") else "medium"

    specialization = None
    lowered = symptoms.lower()
    for keywords, name in _SPECIALIZATION_KEYWORDS:
        if any(kw in lowered for kw in keywords):
            specialization = name
            break

    return DoctorSelectionCriteria(symptoms=symptoms, urgency=urgency, specialization=specialization)


def select_doctor(criteria: DoctorSelectionCriteria, identity, rng: Optional[random.Random] = None) -> UserProfile:
    """Pick a doctor uniformly at random from the current doctor pool.

    ``criteria.specialization`` is not used to filter or weight candidates.
    Specialization-aware routing would plug in here, between fetching the
    pool and choosing from it.
    """
    doctors = identity.list_users_by_role("doctor")
    if not doctors:
        logger.error("Doctor selection error: no doctors available")
        raise NoDoctorsAvailable("No doctors available")

    chooser = rng or random
    doctor = chooser.choice(doctors)
    logger.info(
        f"Selected doctor {doctor.id} from pool of {len(doctors)} "
        f"(urgency={criteria.urgency}, specialization hint={criteria.specialization})"
    )
    return doctor
