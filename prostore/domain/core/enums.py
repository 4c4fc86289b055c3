import enum


class RoleName(enum.Enum):
    admin = "admin"
    client = "client"


class ProductSort(enum.Enum):
    price_asc = "price-asc"
    price_desc = "price-desc"
    newest = "newest"
