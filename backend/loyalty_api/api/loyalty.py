"""
Loyalty API Endpoints
Points balance and history, tier progress, rewards catalog, redemption
and vouchers
"""
import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from loyalty_api.api.dependencies import get_current_customer
from loyalty_api.domain.customer import Customer
from loyalty_api.domain.loyalty import (
    MAX_REDEEM_QUANTITY,
    TIERS,
    RewardUnavailableError,
    check_reward_availability,
    tier_progress,
)
from loyalty_api.repositories.loyalty_repository import LoyaltyRepository, RewardNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/loyalty", tags=["Loyalty"])


class RedeemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reward_id: int = Field(..., alias="rewardId")
    quantity: int = Field(1, ge=1, le=MAX_REDEEM_QUANTITY)


@router.get("/points")
async def get_points(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    customer: Customer = Depends(get_current_customer),
):
    """Balance, lifetime totals, tier progress and a page of points history"""
    try:
        repo = LoyaltyRepository()
        summary = repo.get_points_summary(customer.id)
        history, total = repo.find_points_history(customer.id, page, limit)

        return {
            "currentBalance": customer.points,
            "totalEarned": summary["total_earned"],
            "totalRedeemed": summary["total_redeemed"],
            "totalTransactions": summary["total_transactions"],
            "tier": customer.customer_tier,
            "memberStatus": customer.member_status,
            "enrollmentDate": customer.enrollment_date.isoformat() if customer.enrollment_date else None,
            "tierProgress": tier_progress(customer.customer_tier, customer.points).to_dict(),
            "history": [entry.to_dict() for entry in history],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if total else 0,
            },
        }

    except Exception as e:
        logger.error(f"Error fetching points: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch points data")


@router.get("/rewards")
async def get_rewards(customer: Customer = Depends(get_current_customer)):
    """Active rewards, each marked available or not for this customer"""
    try:
        repo = LoyaltyRepository()
        rewards = repo.find_active_rewards()

        for reward in rewards:
            available, reason = check_reward_availability(reward, customer.customer_tier, customer.points)
            reward.is_available = available
            reward.unavailable_reason = reason
            if reward.max_redemptions is not None:
                reward.remaining_redemptions = max(reward.max_redemptions - reward.current_redemptions, 0)

        return {
            "rewards": [r.to_dict() for r in rewards],
            "redeemedRewards": [r.to_dict() for r in repo.find_redemptions(customer.id)],
            "customerTier": customer.customer_tier,
        }

    except Exception as e:
        logger.error(f"Error fetching rewards: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch rewards")


@router.post("/redeem")
async def redeem_reward(body: RedeemRequest, customer: Customer = Depends(get_current_customer)):
    """
    Spend points on a reward and receive a voucher

    Availability is re-checked against the locked customer and reward rows.
    """
    try:
        redemption, voucher, new_balance = LoyaltyRepository().redeem(
            customer.id, body.reward_id, body.quantity
        )

        return {
            "success": True,
            "message": f"Successfully redeemed {redemption.reward_name}",
            "redemption": redemption.to_dict(),
            "voucher": voucher.to_dict(),
            "newBalance": new_balance,
        }

    except RewardNotFoundError:
        raise HTTPException(status_code=404, detail="Reward not found")
    except RewardUnavailableError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError:
        raise HTTPException(status_code=404, detail="Customer not found")
    except Exception as e:
        logger.error(f"Error redeeming reward {body.reward_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to redeem reward")


@router.get("/vouchers")
async def get_vouchers(customer: Customer = Depends(get_current_customer)):
    try:
        vouchers = LoyaltyRepository().find_vouchers(customer.id)
        grouped = {"issued": [], "redeemed": [], "expired": []}
        for voucher in vouchers:
            key = voucher.status.lower()
            if key in grouped:
                grouped[key].append(voucher.to_dict())

        return {
            "success": True,
            "vouchers": [v.to_dict() for v in vouchers],
            "groupedVouchers": grouped,
            "total": len(vouchers),
        }

    except Exception as e:
        logger.error(f"Error fetching vouchers: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch vouchers")


@router.get("/tiers")
async def get_tiers():
    return {"tiers": [tier.to_dict() for tier in TIERS]}
