from prostore.domain.core.enums import ProductSort, RoleName
from prostore.domain.catalog.models import Brand, Color, Product, ProductModel, Size
from prostore.domain.identity.models import Role, User, UserAddress

__all__ = [
    "ProductSort",
    "RoleName",
    "Brand",
    "ProductModel",
    "Color",
    "Size",
    "Product",
    "Role",
    "User",
    "UserAddress",
]
