from fastapi import HTTPException, status
from typing import Any, List, Optional


class EmailAlreadyExists(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )


class InvalidCredentials(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )


class AddressNotFound(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Address not found"
        )


class FallbackContactNotFound(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fallback contact not found"
        )


class NotAddressOwner(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized"
        )


class CompanyAccountRequired(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Company account required"
        )


class DriverNotFound(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Driver not found"
        )


class ShipmentLookupNotFound(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shipment lookup not found"
        )


class APIError(Exception):
    def __init__(self, status_code: int, message: str, errors: Optional[List[Any]] = None):
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class FallbackPolicyError(APIError):
    """Extended-distance contact is missing scheduling or fee acknowledgement."""

    def __init__(self, errors: List[dict]):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="Fallback locations at or beyond 3km require a scheduled date, "
                    "a time slot and acknowledgement of the extra fee.",
            errors=errors,
        )


class PendingFeedbackError(APIError):
    """The driver must close the previous lookup before resolving another address."""

    def __init__(self, lookup_id: int):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            message="Please submit feedback for your previous delivery first.",
            errors=[{
                "field": "driver_id",
                "message": "Feedback pending for a previous shipment",
                "pending_lookup_id": lookup_id,
            }],
        )
