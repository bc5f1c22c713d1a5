from __future__ import annotations

from bson.objectid import ObjectId

from storefront.models.product import Product


class ProductRepository:
    def list_all(self) -> list[Product]:
        return list(Product.objects.order_by("-created_at"))

    def get_by_id(self, product_id: str) -> Product | None:
        if not ObjectId.is_valid(str(product_id)):
            return None
        return Product.objects(id=product_id).first()

    def save(self, product: Product) -> Product:
        product.save()
        return product

    def delete(self, product: Product) -> None:
        product.delete()


def get_product_repository() -> ProductRepository:
    return ProductRepository()
