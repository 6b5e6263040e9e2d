"""User router."""

from fastapi import APIRouter

from ..schemas.user import CreateUserRequest, UpdateUserRequest, User
from ..services.user_service import UserService
from .handler_factory import Resource, register_crud_routes

router = APIRouter(prefix="/api/v1/users", tags=["users"])

user_resource = Resource(
    service_class=UserService,
    entity="user",
    collection="users",
    create_schema=CreateUserRequest,
    update_schema=UpdateUserRequest,
    read_schema=User,
)

register_crud_routes(router, user_resource)
