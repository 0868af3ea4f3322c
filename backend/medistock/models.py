from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from medistock.db import Base


class CatalogMedicine(Base):
    """
    Shared medicine catalog. Brand names differ per manufacturer; the generic
    name and therapeutic class drive alternative matching.
    """

    __tablename__ = "catalog_medicines"

    id = Column(Integer, primary_key=True, index=True)
    generic_name = Column(String, index=True, nullable=False)
    brand_name = Column(String, index=True, nullable=False)
    manufacturer = Column(String, nullable=True)
    strength = Column(String, nullable=True)
    dosage_form = Column(String, nullable=True)
    therapeutic_class = Column(String, index=True, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, default=True, nullable=False)

    stock_items = relationship("StockItem", back_populates="medicine")


class StockItem(Base):
    __tablename__ = "stock_items"
    __table_args__ = (UniqueConstraint("medicine_id", "pharmacy_id", name="uq_stock_medicine_pharmacy"),)

    id = Column(Integer, primary_key=True, index=True)
    medicine_id = Column(Integer, ForeignKey("catalog_medicines.id"), nullable=False, index=True)
    pharmacy_id = Column(Integer, nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    unit_price = Column(Float, nullable=True)
    low_stock_threshold = Column(Integer, nullable=False, default=10)

    medicine = relationship("CatalogMedicine", back_populates="stock_items")
