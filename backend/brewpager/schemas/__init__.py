from brewpager.schemas.beer import Beer, BeerList, Page
from brewpager.schemas.common import ErrorResponse

__all__ = [
    "Beer",
    "BeerList",
    "Page",
    "ErrorResponse",
]
