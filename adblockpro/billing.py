import os
from typing import Optional
from adblockpro.models import Plan, Interval

# List prices in USD, mirrored on the pricing page
PLAN_PRICES = {
    Plan.free: {Interval.monthly: 0, Interval.yearly: 0},
    Plan.pro: {Interval.monthly: 3, Interval.yearly: 28},
    Plan.teams: {Interval.monthly: 8, Interval.yearly: 78},
}
DEFAULT_CURRENCY = "usd"

# Stripe Price ids per paid plan and interval
PLAN_TO_PRICE_ID = {
    (Plan.pro, Interval.monthly): os.getenv("STRIPE_PRICE_PRO_MONTHLY"),
    (Plan.pro, Interval.yearly): os.getenv("STRIPE_PRICE_PRO_YEARLY"),
    (Plan.teams, Interval.monthly): os.getenv("STRIPE_PRICE_TEAMS_MONTHLY"),
    (Plan.teams, Interval.yearly): os.getenv("STRIPE_PRICE_TEAMS_YEARLY"),
}

PLAN_ORDER = [Plan.free, Plan.pro, Plan.teams]
BILLING_PERIOD_DAYS = 30

def list_price(plan: Plan, interval: Interval) -> float:
    return PLAN_PRICES[plan][interval]

def price_id_for(plan: Plan, interval: Interval) -> Optional[str]:
    return PLAN_TO_PRICE_ID.get((plan, interval))

def plan_catalogue() -> list:
    return [
        {
            "id": plan.value,
            "monthlyPrice": PLAN_PRICES[plan][Interval.monthly],
            "yearlyPrice": PLAN_PRICES[plan][Interval.yearly],
            "currency": DEFAULT_CURRENCY,
            "purchasable": plan != Plan.free,
        }
        for plan in PLAN_ORDER
    ]
