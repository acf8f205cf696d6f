"""
Work Orders API Endpoints
Repair, maintenance and other jobs a customer submits to a store
"""
import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from loyalty_api.api.dependencies import get_current_customer
from loyalty_api.core.auth import TokenUser, get_current_user
from loyalty_api.domain.booking import (
    WORK_ORDER_TRANSITIONS,
    BookingValidationError,
    InvalidStatusTransition,
    validate_estimated_completion,
    validate_transition,
)
from loyalty_api.domain.customer import Customer
from loyalty_api.repositories.booking_repository import WorkOrderRepository
from loyalty_api.repositories.store_repository import StoreRepository
from loyalty_api.services.store_locator_service import split_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/work-orders", tags=["Work Orders"])


class WorkOrderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    store_id: int = Field(..., alias="storeId")
    service_id: Optional[int] = Field(None, alias="serviceId")
    type: Literal["repair", "maintenance", "installation", "customization", "inspection", "other"]
    priority: Literal["low", "medium", "high", "urgent"] = "medium"
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    customer_notes: Optional[str] = Field(None, alias="customerNotes", max_length=1000)
    estimated_cost: Optional[float] = Field(None, alias="estimatedCost", ge=0)
    estimated_completion: Optional[date] = Field(None, alias="estimatedCompletion")


class WorkOrderUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    customer_notes: Optional[str] = Field(None, alias="customerNotes", max_length=1000)


@router.get("")
async def get_work_orders(
    status_filter: Optional[str] = Query(None, alias="status", description="Comma-separated statuses"),
    customer: Customer = Depends(get_current_customer),
):
    try:
        work_orders = WorkOrderRepository().find_by_customer(customer.id, split_csv(status_filter))
        return {"workOrders": [w.to_dict() for w in work_orders]}

    except Exception as e:
        logger.error(f"Error fetching work orders: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch work orders")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_work_order(body: WorkOrderCreate, customer: Customer = Depends(get_current_customer)):
    try:
        try:
            estimated_completion = validate_estimated_completion(body.estimated_completion)
        except BookingValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        stores = StoreRepository()
        if stores.find_by_id(body.store_id) is None:
            raise HTTPException(status_code=404, detail="Store not found")

        if body.service_id is not None and stores.find_service(body.store_id, body.service_id) is None:
            raise HTTPException(status_code=404, detail="Service not found for this store")

        work_order = WorkOrderRepository().create(
            customer_id=customer.id,
            store_id=body.store_id,
            service_id=body.service_id,
            type=body.type,
            priority=body.priority,
            title=body.title.strip(),
            description=body.description.strip(),
            customer_notes=body.customer_notes,
            estimated_cost=body.estimated_cost,
            estimated_completion=estimated_completion,
        )

        return {"success": True, "workOrder": work_order.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating work order: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create work order")


@router.patch("/{work_order_id}")
async def update_work_order(
    work_order_id: int,
    body: WorkOrderUpdate,
    user: TokenUser = Depends(get_current_user),
    customer: Customer = Depends(get_current_customer),
):
    try:
        repo = WorkOrderRepository()
        work_order = repo.find_for_customer(work_order_id, customer.id)
        if work_order is None:
            raise HTTPException(status_code=404, detail="Work order not found")

        if body.status is not None:
            try:
                validate_transition(WORK_ORDER_TRANSITIONS, work_order.status, body.status, user.role)
            except InvalidStatusTransition as e:
                raise HTTPException(status_code=400, detail=str(e))

        updated = repo.update(work_order_id, customer.id, body.model_dump(exclude_none=True))
        return {"success": True, "workOrder": updated.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating work order {work_order_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update work order")
