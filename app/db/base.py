from app.db.base_class import Base


# IMPORT ALL MODELS HERE (THIS REGISTERS THEM WITH Base.metadata)
from app.models.user import User
from app.models.address import Address
from app.models.fallback_contact import FallbackContact
from app.models.token_blacklist import TokenBlacklist
from app.models.company import CompanyProfile, CompanyDriver
from app.models.delivery import ShipmentLookup, DriverFeedback
