from sqlalchemy.orm import Session
from sqlalchemy import or_
from fastapi import HTTPException, status
from typing import List, Optional
import logging

from ..models.service import Service
from ..schemas.service import ServiceCreate

logger = logging.getLogger(__name__)

class CatalogueService:
    """Read and write the public list of hospital services."""

    def __init__(self, db: Session):
        self.db = db

    def list_services(self, category: Optional[str] = None, search: Optional[str] = None) -> List[Service]:
        query = self.db.query(Service).filter(Service.active.is_(True))
        if category and category.lower() != "all":
            query = query.filter(Service.category.ilike(category))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Service.name.ilike(pattern),
                Service.description.ilike(pattern),
                Service.category.ilike(pattern)
            ))
        return query.order_by(Service.name).all()

    def categories(self) -> List[str]:
        rows = self.db.query(Service.category).filter(
            Service.active.is_(True)
        ).distinct().order_by(Service.category).all()
        return [row[0] for row in rows]

    def get(self, service_id: int) -> Service:
        service = self.db.query(Service).filter(
            Service.id == service_id, Service.active.is_(True)
        ).first()
        if not service:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Service not found"
            )
        return service

    def create(self, data: ServiceCreate) -> Service:
        service = Service(**data.model_dump())
        self.db.add(service)
        self.db.commit()
        self.db.refresh(service)
        logger.info(f"Added service {service.name} ({service.category})")
        return service
