from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, Float, ForeignKey, Text, DateTime
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    digital_id = Column(String(16), unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    text_address = Column(Text, nullable=False)
    lat = Column(Float, nullable=True)  # null until pinned on the map
    lng = Column(Float, nullable=True)

    # Photos are stored as JPEG data URLs
    photo_building = Column(Text, nullable=True)
    photo_gate = Column(Text, nullable=True)
    photo_door = Column(Text, nullable=True)

    # Delivery preferences
    preferred_time = Column(String(50), default="morning")
    preferred_time_slot = Column(String(50), nullable=True)
    special_note = Column(Text, nullable=True)
    fallback_option = Column(String(30), default="door")  # door, neighbor, call, security

    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="addresses")
    fallback_contacts = relationship(
        "FallbackContact",
        back_populates="address",
        cascade="all, delete-orphan",
        order_by="FallbackContact.id",
    )

    @property
    def coordinates(self):
        if self.lat is None or self.lng is None:
            return None
        return (self.lat, self.lng)
