"""
Stores API Endpoints
Store locator and per-store services
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from loyalty_api.domain.store import is_store_open
from loyalty_api.repositories.store_repository import StoreRepository
from loyalty_api.services.store_locator_service import StoreSearchFilters, filter_stores, split_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stores", tags=["Stores"])


@router.get("")
async def get_stores(
    search: Optional[str] = Query(None, description="Name, city or address"),
    services: Optional[str] = Query(None, description="Comma-separated service names (any match)"),
    amenities: Optional[str] = Query(None, description="Comma-separated amenities (any match)"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    max_distance: Optional[float] = Query(None, alias="maxDistance", gt=0, description="Kilometres"),
    rating: Optional[float] = Query(None, ge=0, le=5),
    is_open: Optional[bool] = Query(None, alias="isOpen"),
    has_parking: Optional[bool] = Query(None, alias="hasParking"),
    is_wheelchair_accessible: Optional[bool] = Query(None, alias="isWheelchairAccessible"),
    has_wifi: Optional[bool] = Query(None, alias="hasWifi"),
):
    """
    Find stores

    With lat/lng each store carries its distance in km and the list is
    nearest first; maxDistance only applies together with a location.
    """
    try:
        filters = StoreSearchFilters(
            search=search.strip() if search else None,
            services=split_csv(services),
            amenities=split_csv(amenities),
            latitude=lat,
            longitude=lng,
            max_distance=max_distance,
            min_rating=rating,
            is_open=is_open,
            has_parking=has_parking,
            is_wheelchair_accessible=is_wheelchair_accessible,
            has_wifi=has_wifi,
        )
        stores = filter_stores(StoreRepository().find_all_active(), filters)

        return {"stores": [store.to_dict() for store in stores], "total": len(stores)}

    except Exception as e:
        logger.error(f"Error fetching stores: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch stores")


@router.get("/{store_id}")
async def get_store(store_id: int):
    try:
        store = StoreRepository().find_by_id(store_id)
        if store is None:
            raise HTTPException(status_code=404, detail="Store not found")

        store.is_open = is_store_open(store.hours)
        return {"store": store.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching store {store_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch store")


@router.get("/{store_id}/services")
async def get_store_services(store_id: int):
    """Active bookable services at a store"""
    try:
        repo = StoreRepository()
        if repo.find_by_id(store_id) is None:
            raise HTTPException(status_code=404, detail="Store not found")

        return {"services": [service.to_dict() for service in repo.find_services(store_id)]}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching services for store {store_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch services")
