import json
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, UploadFile
from mongoengine import ValidationError as DocumentValidationError

from storefront.models.product import Product
from storefront.models.user import User
from storefront.repositories import ProductRepository, get_product_repository
from storefront.services.auth import require_admin
from storefront.services.uploads import ImageStore, get_image_store
from storefront.utils.base import NotFound, ValidationError, handle_errors


router = APIRouter()

PRODUCT_ERROR = "An error occurred while processing the product request."


def _parse_colors(colors: list[str] | None) -> list[str] | None:
    """Accept repeated form fields or a single JSON array string."""
    if not colors:
        return colors
    if len(colors) == 1 and colors[0].lstrip().startswith("["):
        try:
            parsed = json.loads(colors[0])
        except ValueError:
            raise ValidationError("colors must be a JSON array of strings")
        if not isinstance(parsed, list):
            raise ValidationError("colors must be a JSON array of strings")
        return [str(color) for color in parsed]
    return colors


def _get_or_404(products: ProductRepository, product_id: str) -> Product:
    product = products.get_by_id(product_id)
    if not product:
        raise NotFound("Product not found")
    return product


def _persist(products: ProductRepository, product: Product) -> Product:
    try:
        return products.save(product)
    except DocumentValidationError as exc:
        raise ValidationError(str(exc))


@router.get("")
@handle_errors(PRODUCT_ERROR)
def list_products(products: ProductRepository = Depends(get_product_repository)) -> dict:
    """PUBLIC: All products, newest first."""
    items = products.list_all()
    return {"success": True, "count": len(items), "products": [p.to_public() for p in items]}


@router.get("/{product_id}")
@handle_errors(PRODUCT_ERROR)
def get_product(product_id: str, products: ProductRepository = Depends(get_product_repository)) -> dict:
    """PUBLIC: One product by id."""
    return {"success": True, "product": _get_or_404(products, product_id).to_public()}


@router.post("", status_code=201)
@handle_errors(PRODUCT_ERROR)
def create_product(
    name: str = Form(...),
    price: float = Form(...),
    description: str = Form(...),
    category: str = Form(...),
    available_on: datetime = Form(..., alias="availableOn"),
    stock: int = Form(0),
    colors: list[str] | None = Form(None),
    images: list[UploadFile] | None = File(None),
    current_user: User = Depends(require_admin),
    products: ProductRepository = Depends(get_product_repository),
    store: ImageStore = Depends(get_image_store),
) -> dict:
    """ADMIN: Create a product from a multipart form with at least one image."""
    if not images:
        raise ValidationError("Please upload product images")

    file_names = store.save_all(images)
    product = Product(
        name=name.strip(),
        price=price,
        description=description,
        category=category,
        available_on=available_on,
        stock=stock,
        colors=_parse_colors(colors) or [],
        images=file_names,
        user=current_user,
    )
    try:
        product = _persist(products, product)
    except Exception:
        # Do not leave orphaned files behind a product that was never stored
        store.delete_all(file_names)
        raise
    return {"success": True, "product": product.to_public()}


@router.put("/{product_id}")
@handle_errors(PRODUCT_ERROR)
def update_product(
    product_id: str,
    name: str | None = Form(None),
    price: float | None = Form(None),
    description: str | None = Form(None),
    category: str | None = Form(None),
    available_on: datetime | None = Form(None, alias="availableOn"),
    stock: int | None = Form(None),
    colors: list[str] | None = Form(None),
    images: list[UploadFile] | None = File(None),
    current_user: User = Depends(require_admin),
    products: ProductRepository = Depends(get_product_repository),
    store: ImageStore = Depends(get_image_store),
) -> dict:
    """ADMIN: Update provided fields; new images replace the stored ones."""
    product = _get_or_404(products, product_id)

    updates = {
        "name": name.strip() if name is not None else None,
        "price": price,
        "description": description,
        "category": category,
        "available_on": available_on,
        "stock": stock,
        "colors": _parse_colors(colors),
    }
    for field, value in updates.items():
        if value is not None:
            setattr(product, field, value)

    old_images: list[str] = []
    if images:
        old_images = list(product.images)
        product.images = store.save_all(images)

    try:
        product = _persist(products, product)
    except Exception:
        if images:
            store.delete_all(product.images)
        raise
    store.delete_all(old_images)
    return {"success": True, "product": product.to_public()}


@router.delete("/{product_id}")
@handle_errors(PRODUCT_ERROR)
def delete_product(
    product_id: str,
    current_user: User = Depends(require_admin),
    products: ProductRepository = Depends(get_product_repository),
    store: ImageStore = Depends(get_image_store),
) -> dict:
    """ADMIN: Delete a product and its stored images."""
    product = _get_or_404(products, product_id)
    images = list(product.images)
    products.delete(product)
    store.delete_all(images)
    return {"success": True, "message": "Product deleted successfully"}
