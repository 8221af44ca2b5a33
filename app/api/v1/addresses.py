from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_active_user
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.address import AddressCreate, AddressResponse, AddressUpdate
from app.services.address_service import AddressService
from app.utils.response import success

router = APIRouter()


def _serialize(address) -> dict:
    return AddressResponse.model_validate(address).model_dump()


@router.get("/", response_model=dict)
def list_addresses(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    addresses = AddressService.list_addresses(db, current_user.id)
    return success(data=[_serialize(a) for a in addresses], message="Addresses retrieved")


@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
def create_address(
    address_data: AddressCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Register a new delivery address and issue its digital id"""
    address = AddressService.create_address(db, current_user.id, address_data)
    return success(data=_serialize(address), message="Address created")


@router.get(
    "/lookup/{digital_id}",
    response_model=dict,
    summary="Public address lookup",
    description="Resolve a digital id to the delivery address, its owner's contact details and fallback contacts.",
)
@limiter.limit("60/minute")
def lookup_address(request: Request, digital_id: str, db: Session = Depends(get_db)):
    address = AddressService.get_public_by_digital_id(db, digital_id)
    return success(data=AddressService.public_view(address), message="Address retrieved")


@router.get("/{address_id}", response_model=dict)
def get_address(
    address_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    address = AddressService.get_owned_address(db, current_user.id, address_id)
    return success(data=_serialize(address), message="Address retrieved")


@router.patch("/{address_id}", response_model=dict)
def update_address(
    address_id: int,
    address_update: AddressUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Update address details or delivery preferences"""
    address = AddressService.update_address(db, current_user.id, address_id, address_update)
    return success(data=_serialize(address), message="Address updated")


@router.post("/{address_id}/set-primary", response_model=dict)
def set_primary_address(
    address_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    address = AddressService.set_primary(db, current_user.id, address_id)
    return success(data=_serialize(address), message="Primary address updated")


@router.delete("/{address_id}")
def delete_address(
    address_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    AddressService.delete_address(db, current_user.id, address_id)
    return success(message="Address deleted successfully")
