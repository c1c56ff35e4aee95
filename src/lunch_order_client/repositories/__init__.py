from .gateway import GroupGateway
from .memory_repository import InMemoryGateway
from .pg_repositoryGroup import GroupRepository
from .pg_repositoryRestaurant import RestaurantRepository
from .pg_repositoryUser import UserRepository
from .sql_gateway import SqlGroupGateway

__all__ = [
    "GroupGateway",
    "InMemoryGateway",
    "GroupRepository",
    "RestaurantRepository",
    "UserRepository",
    "SqlGroupGateway",
]
