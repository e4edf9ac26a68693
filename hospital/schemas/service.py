from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional

class Procedure(BaseModel):
    step: int
    title: str
    description: Optional[str] = None
    duration: Optional[str] = None

class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    detailed_description: str = Field(..., min_length=1)
    duration: str
    price: str
    specialists_count: int = Field(1, ge=0)
    success_rate: str = "95%"
    features: List[str] = []
    icon: str = "🏥"
    procedures: List[Procedure] = []
    requirements: List[str] = []
    consultation_fee: str = "Free Consultation"
    insurance_covered: bool = True
    active: bool = True

class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: str
    description: str
    detailed_description: str
    duration: str
    price: str
    specialists_count: int
    success_rate: Optional[str] = None
    features: List[str] = []
    icon: Optional[str] = None
    procedures: List[dict] = []
    requirements: List[str] = []
    consultation_fee: Optional[str] = None
    insurance_covered: bool
    active: bool
    created_at: Optional[datetime] = None
