from storefront.repositories.users import UserRepository, get_user_repository
from storefront.repositories.products import ProductRepository, get_product_repository
