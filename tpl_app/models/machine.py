# tpl_app/models/machine.py
"""
Pinball machine catalog tables loaded from the Open Pinball Database export.

Manufacturers and feature sets are reference rows shared between machines.
Machines are keyed by their OPDB id; ``active`` is owned by the Pinball Map
synchronizer and is never part of the catalog data itself.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel

OPDB_IMAGE_BASE_URL = "https://img.opdb.org"
PLACEHOLDER_IMAGE_URL = "http://www.thepinballlounge.com/pb/wp_0fa0cf0b/images/img165275761bbe29f98e.gif"

_PARENTHESIZED_SUFFIX = re.compile(r"\(.*\)")


class MachineManufacturer(BaseModel):
    """Manufacturer reference row keyed by the OPDB manufacturer id."""

    __tablename__ = "machine_manufacturers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    updated_at: Mapped[int | None] = mapped_column(Integer, nullable=True)

    machines: Mapped[list["Machine"]] = relationship(back_populates="manufacturer")

    def __repr__(self):
        return f"<MachineManufacturer {self.id} {self.name}>"


class FeatureSet(BaseModel):
    """One exact, ordered combination of feature tags (e.g. ``"Pro,LE"``)."""

    __tablename__ = "features"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    features: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    machines: Mapped[list["Machine"]] = relationship(back_populates="feature_set")

    def __repr__(self):
        return f"<FeatureSet {self.id} {self.features!r}>"

    @property
    def tags(self) -> list[str]:
        return self.features.split(",") if self.features else []


class Machine(BaseModel):
    """A pinball machine from the catalog export."""

    __tablename__ = "machines"

    opdb_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    manufacturer_id: Mapped[int] = mapped_column(
        ForeignKey("machine_manufacturers.id"), nullable=False, index=True
    )
    ipdb_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    features_id: Mapped[int | None] = mapped_column(ForeignKey("features.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    manufacture_date: Mapped[int | None] = mapped_column(Integer, nullable=True)
    backglass_image_uuid: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    manufacturer: Mapped[MachineManufacturer] = relationship(back_populates="machines")
    feature_set: Mapped[FeatureSet | None] = relationship(back_populates="machines")

    __table_args__ = (Index("idx_machines_active", "active"),)

    def __repr__(self):
        return f"<Machine {self.opdb_id} {self.name}>"

    @property
    def display_name(self) -> str:
        """Name without the parenthesised edition suffix OPDB appends."""
        return _PARENTHESIZED_SUFFIX.sub("", self.name or "").strip()

    @property
    def manufacture_year(self) -> int | None:
        if self.manufacture_date is None:
            return None
        return datetime.fromtimestamp(self.manufacture_date, tz=timezone.utc).year

    def image_url(
        self,
        *,
        base_url: str = OPDB_IMAGE_BASE_URL,
        placeholder_url: str = PLACEHOLDER_IMAGE_URL,
    ) -> str:
        if not self.backglass_image_uuid:
            return placeholder_url
        return f"{base_url.rstrip('/')}/{self.backglass_image_uuid}-medium.jpg"

    def to_dict(self, **image_options) -> dict:
        return {
            "opdb_id": self.opdb_id,
            "manufacturer_id": self.manufacturer_id,
            "ipdb_id": self.ipdb_id,
            "features_id": self.features_id,
            "name": self.name,
            "display_name": self.display_name,
            "manufacture_date": self.manufacture_date,
            "manufacture_year": self.manufacture_year,
            "backglass_image_uuid": self.backglass_image_uuid,
            "image_url": self.image_url(**image_options),
            "updated_at": self.updated_at,
            "active": bool(self.active),
        }
