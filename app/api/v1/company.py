from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_active_user
from app.db.session import get_db
from app.models.company import CompanyProfile
from app.models.user import User
from app.schemas.company import CompanyProfileResponse, DriverCreate, DriverResponse, DriverUpdate
from app.services.company_service import CompanyService
from app.utils.response import success

router = APIRouter()


def get_current_company(current_user: User = Depends(get_current_active_user)) -> CompanyProfile:
    return CompanyService.get_profile(current_user)


def _serialize(driver) -> dict:
    return DriverResponse.model_validate(driver).model_dump()


@router.get("/profile", response_model=dict)
def get_company_profile(company: CompanyProfile = Depends(get_current_company)):
    return success(
        data=CompanyProfileResponse.model_validate(company).model_dump(),
        message="Company profile retrieved",
    )


@router.get("/drivers", response_model=dict)
def list_drivers(company: CompanyProfile = Depends(get_current_company)):
    drivers = CompanyService.list_drivers(company)
    return success(data=[_serialize(d) for d in drivers], message="Drivers retrieved")


@router.post("/drivers", response_model=dict, status_code=status.HTTP_201_CREATED)
def create_driver(
    driver_data: DriverCreate,
    company: CompanyProfile = Depends(get_current_company),
    db: Session = Depends(get_db)
):
    """Issue a driver id that can be used for address lookups"""
    driver = CompanyService.create_driver(db, company, driver_data)
    return success(data=_serialize(driver), message="Driver added")


@router.patch("/drivers/{driver_pk}", response_model=dict)
def update_driver(
    driver_pk: int,
    driver_update: DriverUpdate,
    company: CompanyProfile = Depends(get_current_company),
    db: Session = Depends(get_db)
):
    """Rename a driver or suspend their lookup access"""
    driver = CompanyService.update_driver(db, company, driver_pk, driver_update)
    return success(data=_serialize(driver), message="Driver updated")


@router.delete("/drivers/{driver_pk}")
def delete_driver(
    driver_pk: int,
    company: CompanyProfile = Depends(get_current_company),
    db: Session = Depends(get_db)
):
    CompanyService.delete_driver(db, company, driver_pk)
    return success(message="Driver deleted successfully")


@router.get(
    "/delivery-stats",
    response_model=dict,
    summary="Delivery statistics",
    description="Totals over all driver feedback for the company, plus per-address success counts and credit scores.",
)
def delivery_stats(
    company: CompanyProfile = Depends(get_current_company),
    db: Session = Depends(get_db)
):
    return success(data=CompanyService.delivery_stats(db, company), message="Delivery statistics retrieved")
