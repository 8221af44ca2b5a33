"""Extended-distance rules for fallback contacts.

A fallback contact whose pinned location is at least ``EXTENDED_DISTANCE_KM``
from its primary address is an extended-distance contact: it carries an extra
delivery fee and must be scheduled. Distance is always computed here from
stored coordinates and never taken from the client.
"""
from dataclasses import dataclass
from typing import List, Optional

import structlog

from app.core.config import settings
from app.core.exceptions import FallbackPolicyError
from app.schemas.fallback_contact import FieldError
from app.services.geo import Coordinates, distance_between

logger = structlog.get_logger()

EXTENDED_DISTANCE_KM = 3.0


@dataclass(frozen=True)
class DistanceAssessment:
    distance_km: Optional[float]
    requires_extra_fee: bool
    extra_fee_amount: float
    currency: str

    def as_dict(self) -> dict:
        return {
            "distance_km": self.distance_km,
            "requires_extra_fee": self.requires_extra_fee,
            "extended_distance_km": EXTENDED_DISTANCE_KM,
            "extra_fee_amount": self.extra_fee_amount if self.requires_extra_fee else 0.0,
            "currency": self.currency,
        }


def requires_extra_fee(distance_km: Optional[float]) -> bool:
    # Unknown distance is never treated as extended.
    return distance_km is not None and distance_km >= EXTENDED_DISTANCE_KM


def assess(primary: Optional[Coordinates], candidate: Optional[Coordinates]) -> DistanceAssessment:
    distance_km = distance_between(primary, candidate)
    return DistanceAssessment(
        distance_km=distance_km,
        requires_extra_fee=requires_extra_fee(distance_km),
        extra_fee_amount=settings.FALLBACK_EXTRA_FEE_AMOUNT,
        currency=settings.FALLBACK_FEE_CURRENCY,
    )


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def missing_extended_fields(
    extra_fee: bool,
    scheduled_date: Optional[str],
    scheduled_time_slot: Optional[str],
    extra_fee_acknowledged: Optional[bool],
) -> List[dict]:
    """Field-level errors for an extended-distance contact, empty when satisfied."""
    if not extra_fee:
        return []

    errors = []
    if _is_blank(scheduled_date):
        errors.append(FieldError(
            field="scheduled_date",
            message="A scheduled delivery date is required for fallback locations 3km or more away.",
        ))
    if _is_blank(scheduled_time_slot):
        errors.append(FieldError(
            field="scheduled_time_slot",
            message="A delivery time slot is required for fallback locations 3km or more away.",
        ))
    if extra_fee_acknowledged is not True:
        errors.append(FieldError(
            field="extra_fee_acknowledged",
            message="Please acknowledge the extra delivery fee for locations 3km or more away.",
        ))
    return [error.model_dump() for error in errors]


def enforce(
    extra_fee: bool,
    scheduled_date: Optional[str],
    scheduled_time_slot: Optional[str],
    extra_fee_acknowledged: Optional[bool],
) -> None:
    errors = missing_extended_fields(extra_fee, scheduled_date, scheduled_time_slot, extra_fee_acknowledged)
    if errors:
        logger.info(
            "fallback_policy_rejected",
            missing_fields=[error["field"] for error in errors],
        )
        raise FallbackPolicyError(errors)


def note_client_supplied_values(
    assessment: DistanceAssessment,
    client_distance_km: Optional[float],
    client_requires_extra_fee: Optional[bool],
) -> None:
    """Log when a client sent its own distance/fee values that disagree with ours."""
    disagrees = (
        client_requires_extra_fee is not None
        and client_requires_extra_fee != assessment.requires_extra_fee
    ) or (
        client_distance_km is not None
        and (assessment.distance_km is None or abs(client_distance_km - assessment.distance_km) > 0.01)
    )
    if disagrees:
        logger.warning(
            "fallback_client_values_overridden",
            client_distance_km=client_distance_km,
            client_requires_extra_fee=client_requires_extra_fee,
            distance_km=assessment.distance_km,
            requires_extra_fee=assessment.requires_extra_fee,
        )
