"""Health check route"""

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check():
    """Basic health check endpoint"""
    return {"status": "ok"}
