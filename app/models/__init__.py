from app.models.user import User, AccountType
from app.models.address import Address
from app.models.fallback_contact import FallbackContact
from app.models.company import CompanyProfile, CompanyDriver, CompanyType, DriverStatus
from app.models.delivery import ShipmentLookup, DriverFeedback, LookupStatus, DeliveryStatus
from app.models.token_blacklist import TokenBlacklist
