"""
Dinner Rush Simulation Script

Fires a burst of concurrent table orders at a running API through the
retrying placement client, walks them through the kitchen and has the
restaurant's chefs complete them, then prints the leaderboard.

Run from project root: python scripts/simulate.py --restaurant 1 --chef 2

Version: 1.0.0
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from qrdine.core.exceptions import OrderPlacementError, QRDineError  # noqa: E402
from qrdine.services.placement import OrderPlacementClient  # noqa: E402

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8001")
TOTAL_ORDERS = 20

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
PAYMENT_METHODS = ["cash", "card", "upi"]


def generate_cart(restaurant_id: int, tables: list[dict], menu: list[dict]) -> dict[str, Any]:
    """Random cart built from the restaurant's real tables and menu."""
    picks = random.sample(menu, k=min(len(menu), random.randint(1, 4)))
    items = [
        {"menuItemId": item["id"], "quantity": random.randint(1, 3), "price": item["price"]}
        for item in picks
    ]
    return {
        "restaurantId": restaurant_id,
        "tableId": random.choice(tables)["id"],
        "items": items,
        "totalAmount": sum(i["price"] * i["quantity"] for i in items),
        "customerName": random.choice(FIRST_NAMES),
        "customerPhone": f"+1555{random.randint(1000000, 9999999)}",
        "paymentMethod": random.choice(PAYMENT_METHODS),
    }


# =============================================================================
# ORDER FLOW
# =============================================================================

async def place_one(
    placer: OrderPlacementClient,
    cart: dict[str, Any],
    order_num: int,
) -> dict[str, Any]:
    start_time = time.time()
    try:
        placed = await placer.place_order(cart)
        return {
            "order_num": order_num,
            "success": True,
            "order_id": placed.order_id,
            "total": cart["totalAmount"],
            "time": round(time.time() - start_time, 3),
        }
    except OrderPlacementError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": f"{e.message} after {e.attempts} attempts",
            "time": round(time.time() - start_time, 3),
        }
    except QRDineError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": e.message[:100],
            "time": round(time.time() - start_time, 3),
        }


async def cook_one(client: httpx.AsyncClient, order_id: int, chef_ids: list[int]) -> dict[str, Any]:
    """Move an order to preparing and have a random chef complete it."""
    response = await client.put(f"/api/orders/{order_id}/status", json={"status": "preparing"})
    if response.status_code != 200:
        return {"order_id": order_id, "success": False, "error": response.text[:100]}

    chef_id = random.choice(chef_ids)
    response = await client.post(
        f"/api/chef/{chef_id}/complete-order",
        json={"orderId": order_id, "completionTime": random.randint(30, 900)},
    )
    if response.status_code != 200:
        return {"order_id": order_id, "success": False, "error": response.text[:100]}

    data = response.json()
    return {
        "order_id": order_id,
        "success": True,
        "chef_id": chef_id,
        "points": data["pointsEarned"],
        "achievements": data["newAchievements"],
    }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(
    restaurant_id: int,
    chef_ids: list[int],
    num_orders: int = TOTAL_ORDERS,
) -> dict[str, Any]:
    print("=" * 70)
    print("DINNER RUSH SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL} (restaurant #{restaurant_id})")
    print(f"Chefs: {chef_ids}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        tables = (await client.get(f"/api/restaurants/{restaurant_id}/tables")).json()
        menu = (await client.get("/api/menu", params={"restaurantId": restaurant_id})).json()
        if not tables or not menu:
            print("Restaurant needs at least one table and one menu item.")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        placer = OrderPlacementClient(client)
        placed = await asyncio.gather(*[
            place_one(placer, generate_cart(restaurant_id, tables, menu), i + 1)
            for i in range(num_orders)
        ])

        successful = [r for r in placed if r["success"]]
        failed = [r for r in placed if not r["success"]]

        cooked = []
        if chef_ids:
            cooked = await asyncio.gather(*[
                cook_one(client, r["order_id"], chef_ids) for r in successful
            ])

        board = (await client.get(f"/api/restaurant/{restaurant_id}/leaderboard")).json()

    total_time = round(time.time() - start_time, 2)

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nPlaced Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["total"] for r in successful)
        print(f"\n   Average Placement: {avg_time}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   Total Revenue: {total_revenue / 100:.2f}")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    if cooked:
        completed = [c for c in cooked if c["success"]]
        print(f"\nCompleted by chefs: {len(completed)}/{len(cooked)}")
        for c in completed:
            if c["achievements"]:
                print(f"   Chef #{c['chef_id']} unlocked {', '.join(c['achievements'])}")

    print("\nLEADERBOARD")
    for entry in board:
        print(
            f"   {entry['rank']:>2}. {entry.get('username') or entry['userId']:<20} "
            f"{entry['points']:>5} pts  level {entry['level']}  "
            f"{entry['ordersCompleted']} orders"
        )
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": placed,
    }


async def preflight() -> bool:
    """Health check before the rush."""
    async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
        try:
            response = await client.get("/health")
        except httpx.HTTPError as e:
            print(f"API unreachable: {e}")
            return False
        if response.status_code != 200:
            print(f"Health check failed: {response.text}")
            return False
        data = response.json()
        print(f"Status: {data.get('status')}")
        print(f"   Database: {data.get('database')}")
        print(f"   Redis: {data.get('redis')}")
        print(f"   Notifications: {data.get('notification_service')}")
        return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dinner Rush Simulation Script")
    parser.add_argument("--restaurant", type=int, required=True, help="Restaurant ID")
    parser.add_argument("--chef", type=int, action="append", default=[], help="Chef user ID (repeatable)")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--skip-checks", action="store_true", help="Skip the health check")
    args = parser.parse_args()

    if not args.skip_checks and not asyncio.run(preflight()):
        print("\nPre-flight check failed. Fix issues before running simulation.")
        sys.exit(1)

    asyncio.run(run_simulation(args.restaurant, args.chef, args.orders))
