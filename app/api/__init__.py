from fastapi import APIRouter
from app.api import users, relationships

api_router = APIRouter()

api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(relationships.router, prefix="/users", tags=["Relationships"])
