"""
Car Dealership API Package
"""
from .cars import create_car, delete_car, get_car, get_cars, search_cars, update_car_status
from .results import Err, ErrorKind, Ok, ServiceError
from .search import CarSearch, search_from_attributes, to_query_string
from .vision import analyze_car_image

__version__ = "1.0.0"

__all__ = [
    "analyze_car_image",
    "create_car",
    "get_cars",
    "get_car",
    "search_cars",
    "delete_car",
    "update_car_status",
    "CarSearch",
    "search_from_attributes",
    "to_query_string",
    "Ok",
    "Err",
    "ErrorKind",
    "ServiceError",
]
