from fastapi import APIRouter
from app.api.v1.pharmacy import routes as pharmacy

api_router = APIRouter()
api_router.include_router(pharmacy.router, prefix="/pharmacy", tags=["pharmacy"])
