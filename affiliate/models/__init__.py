from .affiliate_link import AffiliateLink
from .base import Base
from .click import Click
from .conversion import Conversion
from .payout import Payout
from .product import Product
from .user import User

__all__ = [
    "Base",
    "User",
    "Product",
    "AffiliateLink",
    "Click",
    "Conversion",
    "Payout",
]
