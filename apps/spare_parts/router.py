from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import List, Optional
from apps.spare_parts.schemas import (
    SparePartCreate,
    SparePartUpdate,
    SparePartResponse,
    SparePartListResponse,
    LowStockAlert
)
from apps.spare_parts.services import SparePartService, get_spare_part_service
from apps.spare_parts.locator import ALL_CATEGORIES
from apps.auth.services import get_current_user, get_current_admin
from apps.auth.models import UserModel
import math

router = APIRouter()

# ============ STATIC ROUTES FIRST (before /{spare_part_id}) ============

@router.get(
    "/alerts/low-stock",
    response_model=List[LowStockAlert],
    summary="Get low stock alerts",
    description="Get all spare parts at or below their minimum stock level"
)
def get_low_stock_alerts(
    service: SparePartService = Depends(get_spare_part_service),
    current_user: UserModel = Depends(get_current_user)
):
    """Out-of-stock parts first, then low-stock parts"""
    return service.get_low_stock_items()

@router.get(
    "/categories/all",
    response_model=List[str],
    summary="Get all categories",
    description="Get all spare part categories currently in use"
)
def get_categories(
    service: SparePartService = Depends(get_spare_part_service),
    current_user: UserModel = Depends(get_current_user)
):
    return service.get_categories()

@router.get(
    "/code/{part_code}",
    response_model=SparePartResponse,
    summary="Get spare part by code",
    description="Retrieve a specific spare part by its part code"
)
def get_spare_part_by_code(
    part_code: str,
    service: SparePartService = Depends(get_spare_part_service),
    current_user: UserModel = Depends(get_current_user)
):
    spare_part = service.get_spare_part_by_code(part_code)
    if not spare_part:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Spare part not found"
        )
    return service.part_to_response(spare_part)

@router.post(
    "/",
    response_model=SparePartResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new spare part",
    description="Create a new spare part in the catalog (Admin only)"
)
def create_spare_part(
    spare_part: SparePartCreate,
    service: SparePartService = Depends(get_spare_part_service),
    admin: UserModel = Depends(get_current_admin)
):
    return service.part_to_response(service.create_spare_part(spare_part))

@router.get(
    "/",
    response_model=SparePartListResponse,
    summary="Get all spare parts",
    description="Spare parts filtered by search text and category, ordered by storage location"
)
def get_spare_parts(
    skip: int = Query(0, ge=0, description="Number of items to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Number of items to return"),
    search: Optional[str] = Query(None, description="Search in code, name, machine type or location"),
    category: str = Query(ALL_CATEGORIES, description="Category, or 'all'"),
    service: SparePartService = Depends(get_spare_part_service),
    current_user: UserModel = Depends(get_current_user)
):
    spare_parts, total = service.get_spare_parts(
        skip=skip,
        limit=limit,
        search=search,
        category=category,
    )

    total_pages = math.ceil(total / limit) if limit > 0 else 1
    current_page = (skip // limit) + 1 if limit > 0 else 1

    return SparePartListResponse(
        items=[service.part_to_response(part) for part in spare_parts],
        total=total,
        page=current_page,
        size=limit,
        total_pages=total_pages
    )

@router.get(
    "/{spare_part_id}",
    response_model=SparePartResponse,
    summary="Get spare part by ID",
    description="Retrieve a specific spare part by its ID"
)
def get_spare_part(
    spare_part_id: int,
    service: SparePartService = Depends(get_spare_part_service),
    current_user: UserModel = Depends(get_current_user)
):
    return service.part_to_response(service.require_spare_part(spare_part_id))

@router.put(
    "/{spare_part_id}",
    response_model=SparePartResponse,
    summary="Update spare part",
    description="Update an existing spare part (Admin only)"
)
def update_spare_part(
    spare_part_id: int,
    spare_part_update: SparePartUpdate,
    service: SparePartService = Depends(get_spare_part_service),
    admin: UserModel = Depends(get_current_admin)
):
    return service.part_to_response(service.update_spare_part(spare_part_id, spare_part_update))

@router.delete(
    "/{spare_part_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete spare part",
    description="Delete a spare part (Admin only). Its stock history is kept."
)
def delete_spare_part(
    spare_part_id: int,
    service: SparePartService = Depends(get_spare_part_service),
    admin: UserModel = Depends(get_current_admin)
):
    service.delete_spare_part(spare_part_id)
    return {"message": "Spare part deleted successfully"}
