"""Apartment ORM model."""

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from villa_billing.models import Base, BaseModel


class Apartment(Base, BaseModel):
    """An apartment in a village, owned by one user."""

    __tablename__ = "apartments"

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    village_id: Mapped[int | None] = mapped_column(
        ForeignKey("villages.id"),
        nullable=True,
        index=True,
    )

    phase: Mapped[int | None] = mapped_column(Integer, nullable=True)

    owner_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="User id of the owner",
    )

    village: Mapped["Village | None"] = relationship(  # noqa: F821
        "Village",
        foreign_keys=[village_id],
    )

    __table_args__ = (Index("idx_apartment_village_phase", "village_id", "phase"),)

    def __repr__(self) -> str:
        return f"<Apartment(id={self.id}, name={self.name!r}, village_id={self.village_id})>"


__all__ = ["Apartment"]
