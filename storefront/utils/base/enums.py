from enum import Enum


class BaseEnum(Enum):
    @classmethod
    def choices(cls):
        return [(item.value, item.name) for item in cls]


class UserRole(BaseEnum):
    USER = "user"
    ADMIN = "admin"
