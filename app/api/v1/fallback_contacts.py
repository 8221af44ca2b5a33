from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_active_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.fallback_contact import (
    DistanceAssessmentRequest,
    DistanceAssessmentResponse,
    FallbackContactCreate,
    FallbackContactResponse,
    FallbackContactUpdate,
)
from app.services.fallback_contact_service import FallbackContactService
from app.utils.response import success

router = APIRouter()


def _serialize(contact) -> dict:
    return FallbackContactResponse.model_validate(contact).model_dump()


@router.post(
    "/assess",
    response_model=dict,
    summary="Preview fallback distance",
    description="Classify a candidate fallback pin against the primary address without saving it.",
)
def assess_fallback_location(
    payload: DistanceAssessmentRequest,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    assessment = FallbackContactService.assess_location(
        db, current_user.id, payload.address_id, payload.lat, payload.lng
    )
    data = DistanceAssessmentResponse(**assessment.as_dict())
    return success(data=data.model_dump(), message="Distance assessed")


@router.post(
    "/",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Add fallback contact",
    description="""
Creates a fallback contact for one of the caller's addresses.

Distance and the extra-fee flag are computed server-side. Contacts 3km or more
from the primary address require `scheduled_date`, `scheduled_time_slot` and
`extra_fee_acknowledged=true`; otherwise a 400 lists the missing fields.
""",
    responses={
        201: {"description": "Fallback contact created"},
        400: {"description": "Extended-distance requirements not met"},
        403: {"description": "Address belongs to another user"},
        404: {"description": "Address not found"},
    },
)
def create_fallback_contact(
    contact_data: FallbackContactCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    contact = FallbackContactService.create_contact(db, current_user.id, contact_data)
    return success(data=_serialize(contact), message="Fallback contact created")


@router.get("/address/{address_id}", response_model=dict)
def list_fallback_contacts(
    address_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    contacts = FallbackContactService.list_for_address(db, current_user.id, address_id)
    return success(data=[_serialize(c) for c in contacts], message="Fallback contacts retrieved")


@router.get("/{contact_id}", response_model=dict)
def get_fallback_contact(
    contact_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    contact = FallbackContactService.get_owned_contact(db, current_user.id, contact_id)
    return success(data=_serialize(contact), message="Fallback contact retrieved")


@router.put("/{contact_id}", response_model=dict)
def update_fallback_contact(
    contact_id: int,
    contact_update: FallbackContactUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    contact = FallbackContactService.update_contact(db, current_user.id, contact_id, contact_update)
    return success(data=_serialize(contact), message="Fallback contact updated")


@router.post("/{contact_id}/set-default", response_model=dict)
def set_default_fallback_contact(
    contact_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    contact = FallbackContactService.set_default(db, current_user.id, contact_id)
    return success(data=_serialize(contact), message="Default fallback contact updated")


@router.delete("/{contact_id}")
def delete_fallback_contact(
    contact_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    FallbackContactService.delete_contact(db, current_user.id, contact_id)
    return success(message="Fallback contact deleted")
