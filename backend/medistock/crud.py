from sqlalchemy.orm import Session

from . import models


def get_catalog_medicine(db: Session, medicine_id: int):
    return db.query(models.CatalogMedicine).filter(models.CatalogMedicine.id == medicine_id).first()


def get_same_class_medicines(db: Session, medicine: models.CatalogMedicine, *, limit: int):
    query = db.query(models.CatalogMedicine).filter(
        models.CatalogMedicine.is_active.is_(True),
        models.CatalogMedicine.id != medicine.id,
    )
    if medicine.therapeutic_class:
        query = query.filter(models.CatalogMedicine.therapeutic_class == medicine.therapeutic_class)
    else:
        query = query.filter(models.CatalogMedicine.generic_name == medicine.generic_name)
    return query.order_by(models.CatalogMedicine.id).limit(limit).all()


def get_stock_items(db: Session, pharmacy_id: int, medicine_ids: list[int]):
    if not medicine_ids:
        return []
    return (
        db.query(models.StockItem)
        .filter(
            models.StockItem.pharmacy_id == pharmacy_id,
            models.StockItem.medicine_id.in_(medicine_ids),
        )
        .all()
    )
