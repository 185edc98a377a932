"""The storefront's single product."""
from dataclasses import dataclass

from merchant_demo.config import Settings


@dataclass(frozen=True)
class Product:
    """Fixed-price catalog item sold through hosted checkout."""

    name: str
    description: str
    amount: int  # minor units
    currency: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "Product":
        return cls(
            name=settings.product_name,
            description=settings.product_description,
            amount=settings.product_amount,
            currency=settings.product_currency,
        )
