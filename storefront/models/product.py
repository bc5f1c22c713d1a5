from mongoengine import (
    DateTimeField,
    FloatField,
    IntField,
    ListField,
    ReferenceField,
    StringField,
)

from storefront.models.base import BaseDocument
from storefront.models.user import User


class Product(BaseDocument):
    """Catalog item created by an admin.

    Fields:
    - name/description/category (str)
    - price (float), stock (int)
    - colors (list[str])
    - available_on (datetime)
    - images (list[str]): stored file names under the product upload directory
    - user (ref): admin who created the product
    """
    name = StringField(required=True, null=False, max_length=100)
    price = FloatField(required=True, null=False, min_value=0)
    colors = ListField(StringField(), required=False, default=list)
    description = StringField(required=True, null=False)
    category = StringField(required=True, null=False)
    available_on = DateTimeField(required=True, null=False)
    images = ListField(StringField(), required=True, default=list)
    stock = IntField(required=True, null=False, default=0, min_value=0)
    user = ReferenceField(document_type=User, required=True, null=False)

    meta = {
        "collection": "products",
        "ordering": ["-created_at"],
        "indexes": [
            {"fields": ["category"]},
        ],
    }

    def to_public(self) -> dict:
        return self.to_output(aliases={"available_on": "availableOn", "created_at": "createdAt", "updated_at": "updatedAt"})
