from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.schemas.company import (
    DriverCheck,
    DriverFeedbackCreate,
    DriverFeedbackResponse,
    DriverLookupRequest,
    ShipmentLookupResponse,
)
from app.services.driver_service import DriverService
from app.utils.response import success

router = APIRouter()


@router.post("/check-pending-feedback", response_model=dict)
@limiter.limit("30/minute")
def check_pending_feedback(request: Request, check: DriverCheck, db: Session = Depends(get_db)):
    return success(data=DriverService.check_pending(db, check.driver_id), message="Driver verified")


@router.post(
    "/lookup-address",
    response_model=dict,
    summary="Driver address lookup",
    description="""
Resolves a digital id for a shipment using a company-issued driver id.

A lookup stays open until the driver submits delivery feedback; while one is
open further lookups are refused with 409 and the pending lookup id.
""",
    responses={
        200: {"description": "Address retrieved"},
        404: {"description": "Driver or address not found"},
        409: {"description": "Feedback pending for a previous shipment"},
    },
)
@limiter.limit("30/minute")
def lookup_address(request: Request, lookup_request: DriverLookupRequest, db: Session = Depends(get_db)):
    return success(data=DriverService.lookup_address(db, lookup_request), message="Address retrieved")


@router.get("/pending-lookup/{lookup_id}", response_model=dict)
@limiter.limit("30/minute")
def get_pending_lookup(
    request: Request,
    lookup_id: int,
    driver_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    lookup = DriverService.get_lookup_for_driver(db, lookup_id, driver_id)
    return success(
        data={
            "lookup": ShipmentLookupResponse.model_validate(lookup).model_dump(),
            "address": DriverService.lookup_summary(db, lookup),
        },
        message="Lookup retrieved",
    )


@router.post("/feedback", response_model=dict, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def submit_feedback(request: Request, feedback_data: DriverFeedbackCreate, db: Session = Depends(get_db)):
    """Report the delivery outcome, releasing the driver for the next lookup"""
    feedback = DriverService.submit_feedback(db, feedback_data)
    return success(
        data=DriverFeedbackResponse.model_validate(feedback).model_dump(),
        message="Feedback submitted",
    )
