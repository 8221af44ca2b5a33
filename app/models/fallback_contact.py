from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, Float, ForeignKey, Text, DateTime
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class FallbackContact(Base):
    """Alternate recipient for deliveries to a primary address."""

    __tablename__ = "fallback_contacts"

    id = Column(Integer, primary_key=True, index=True)
    address_id = Column(Integer, ForeignKey("addresses.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)
    relationship_label = Column("relationship", String(50), nullable=True)
    text_address = Column(Text, nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    # Server-computed from the parent address coordinates
    distance_km = Column(Float, nullable=True)
    requires_extra_fee = Column(Boolean, default=False, nullable=False)

    extra_fee_acknowledged = Column(Boolean, default=False, nullable=False)
    scheduled_date = Column(String(20), nullable=True)
    scheduled_time_slot = Column(String(50), nullable=True)

    photo_building = Column(Text, nullable=True)
    photo_gate = Column(Text, nullable=True)
    photo_door = Column(Text, nullable=True)
    special_note = Column(Text, nullable=True)

    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    address = relationship("Address", back_populates="fallback_contacts")

    @property
    def coordinates(self):
        if self.lat is None or self.lng is None:
            return None
        return (self.lat, self.lng)
