"""
Data models: the stored car record and Pydantic models for API request/response serialization.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CarStatus(str, Enum):
    """Listing status of a car."""
    AVAILABLE = "AVAILABLE"
    UNLISTED = "UNLISTED"
    SOLD = "SOLD"


@dataclass
class Car:
    """Represents one car listing as stored in the database."""

    id: str
    make: str
    model: str
    year: int
    price: float
    mileage: int
    color: str
    fuel_type: str
    transmission: str
    body_type: str
    seats: Optional[int] = None
    description: str = ""
    status: CarStatus = CarStatus.AVAILABLE
    featured: bool = False

    # Public URLs, in upload order
    images: List[str] = field(default_factory=list)

    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CarIn(BaseModel):
    """Attributes submitted from the admin car form."""
    make: str = Field(min_length=1)
    model: str = Field(min_length=1)
    year: int = Field(ge=1886)
    price: float = Field(ge=0)
    mileage: int = Field(ge=0)
    color: str = Field(min_length=1)
    fuel_type: str = Field(min_length=1)
    transmission: str = Field(min_length=1)
    body_type: str = Field(min_length=1)
    seats: Optional[int] = Field(default=None, ge=1)
    description: str = ""
    status: CarStatus = CarStatus.AVAILABLE
    featured: bool = False


class CreateCarRequest(BaseModel):
    """Payload for creating a car: attributes plus embedded-image payloads."""
    car_data: CarIn
    images: List[str] = Field(default_factory=list)


class CarOut(BaseModel):
    """Output model for car data."""
    id: str
    make: str
    model: str
    year: int
    price: float
    mileage: int
    color: str
    fuel_type: str
    transmission: str
    body_type: str
    seats: Optional[int] = None
    description: str = ""
    status: CarStatus
    featured: bool = False
    images: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CarStatusUpdate(BaseModel):
    """Partial update of a car's status and/or featured flag."""
    status: Optional[CarStatus] = None
    featured: Optional[bool] = None


class CarAttributes(BaseModel):
    """Car attributes extracted from a photo by the vision model."""
    model_config = ConfigDict(populate_by_name=True)

    make: str
    model: str
    year: int
    color: str
    price: Union[str, float]
    mileage: Union[str, int]
    body_type: str = Field(alias="bodyType")
    fuel_type: str = Field(alias="fuelType")
    transmission: str
    description: str
    confidence: float = Field(ge=0, le=1)


class UserSync(BaseModel):
    """Profile details forwarded by the client after sign-in."""
    email: str = Field(min_length=3)
    name: Optional[str] = None
    image_url: Optional[str] = None


class StatsOut(BaseModel):
    """Model for dashboard statistics."""
    total_cars: int
    featured_cars: int
    min_price: Optional[float]
    max_price: Optional[float]
    avg_price: Optional[float]
    by_status: Dict[str, int]
    by_make: Dict[str, int]
