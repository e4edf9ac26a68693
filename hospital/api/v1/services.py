from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...models.user import User
from ...schemas.service import ServiceCreate, ServiceResponse
from ...services.catalogue_service import CatalogueService

router = APIRouter(prefix="/services", tags=["Services"])

@router.get("")
async def list_services(
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    services = CatalogueService(db).list_services(category, search)
    return {
        "count": len(services),
        "services": [ServiceResponse.model_validate(service) for service in services]
    }

@router.get("/categories")
async def list_categories(db: Session = Depends(get_db)):
    return {"categories": CatalogueService(db).categories()}

@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: int, db: Session = Depends(get_db)):
    return CatalogueService(db).get(service_id)

@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    service_data: ServiceCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return CatalogueService(db).create(service_data)
