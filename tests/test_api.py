from qrdine.models import OrderStatus


def order_payload(seed, **overrides):
    payload = {
        "restaurantId": seed["restaurant"].id,
        "tableId": seed["table"].id,
        "items": [
            {"menuItemId": seed["margherita"].id, "quantity": 2, "price": 1200},
            {"menuItemId": seed["tiramisu"].id, "quantity": 1, "price": 650},
        ],
        "totalAmount": 3050,
        "customerName": "Ada",
        "customerPhone": "+15550001111",
        "paymentMethod": "card",
    }
    payload.update(overrides)
    return payload


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["health"] == "/health"


async def test_place_order(client, seed):
    response = await client.post("/api/orders", json=order_payload(seed))

    assert response.status_code == 201
    body = response.json()
    assert isinstance(body["id"], int)
    assert body["status"] == "pending"
    assert body["restaurantOrderNumber"] == 1
    assert body["totalAmount"] == 3050
    assert body["estimatedWaitMinutes"] == 15
    assert [item["quantity"] for item in body["items"]] == [2, 1]

    second = await client.post("/api/orders", json=order_payload(seed))
    assert second.json()["restaurantOrderNumber"] == 2


async def test_place_order_total_mismatch(client, seed):
    response = await client.post("/api/orders", json=order_payload(seed, totalAmount=1))
    assert response.status_code == 422


async def test_place_order_rejects_foreign_menu_item(client, seed):
    payload = order_payload(
        seed,
        items=[{"menuItemId": seed["ramen"].id, "quantity": 1, "price": 1400}],
        totalAmount=1400,
    )
    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


async def test_place_order_unknown_table(client, seed):
    response = await client.post("/api/orders", json=order_payload(seed, tableId=9999))
    assert response.status_code == 404


async def test_get_order_tracking(client, make_order):
    order = await make_order(status=OrderStatus.PREPARING)

    response = await client.get(f"/api/orders/{order.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "preparing"
    assert body["estimatedWaitMinutes"] == 7
    assert [step["complete"] for step in body["steps"]] == [True, True, False]

    missing = await client.get("/api/orders/9999")
    assert missing.status_code == 404
    assert missing.json()["success"] is False


async def test_status_moves_forward_and_notifies(client, make_order, queued_notifications):
    order = await make_order(status=OrderStatus.PENDING)

    response = await client.put(f"/api/orders/{order.id}/status", json={"status": "preparing"})

    assert response.status_code == 200
    assert response.json()["status"] == "preparing"
    queued_notifications.assert_called_once()
    payload = queued_notifications.call_args.args[0]
    assert payload["order_id"] == order.id
    assert payload["status"] == "preparing"
    assert payload["customer_phone"] == "+15550001111"


async def test_status_cannot_move_backward(client, make_order, queued_notifications):
    order = await make_order(status=OrderStatus.READY)

    response = await client.put(f"/api/orders/{order.id}/status", json={"status": "preparing"})

    assert response.status_code == 409
    assert response.json()["error"] == "ConflictError"
    queued_notifications.assert_not_called()

    current = await client.get(f"/api/orders/{order.id}")
    assert current.json()["status"] == "ready"


async def test_orders_by_phone_and_list(client, seed, make_order):
    await make_order(phone="+15550002222")
    await make_order(phone="+15550002222")
    await make_order(phone="+15550003333")

    mine = await client.get("/api/customer/orders/phone/+15550002222")
    assert len(mine.json()) == 2

    listing = await client.get("/api/orders", params={"restaurantId": seed["restaurant"].id})
    assert listing.json()["total"] == 3


async def test_analytics(client, seed, make_order):
    await make_order(status=OrderStatus.PENDING)
    await make_order(status=OrderStatus.READY)

    response = await client.get("/api/orders/analytics", params={"restaurantId": seed["restaurant"].id})

    body = response.json()
    assert body["totalOrders"] == 2
    assert body["pendingOrders"] == 1
    assert body["readyOrders"] == 1
    assert body["totalRevenue"] == 4800
    assert body["averageOrderValue"] == 2400


async def test_complete_order_and_leaderboard(client, seed, make_order):
    chef = seed["chef"]
    order = await make_order(status=OrderStatus.PREPARING)

    response = await client.post(
        f"/api/chef/{chef.id}/complete-order",
        json={"orderId": order.id, "completionTime": 45},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["pointsEarned"] == 35
    assert body["ordersCompleted"] == 1
    assert body["rank"] == 1
    assert body["username"] == "italian_chef"
    assert body["levelProgress"] == 35
    assert body["newAchievements"] == ["first_order", "speed_demon"]

    again = await client.post(
        f"/api/chef/{chef.id}/complete-order",
        json={"orderId": order.id, "completionTime": 45},
    )
    assert again.status_code == 409

    performance = await client.get(f"/api/chef/performance/{chef.id}")
    assert performance.json()["ordersCompleted"] == 1

    board = await client.get(f"/api/restaurant/{seed['restaurant'].id}/leaderboard")
    assert [(e["rank"], e["username"], e["points"]) for e in board.json()] == [(1, "italian_chef", 35)]


async def test_complete_pending_order_is_not_found(client, seed, make_order):
    order = await make_order(status=OrderStatus.PENDING)

    response = await client.post(
        f"/api/chef/{seed['chef'].id}/complete-order",
        json={"orderId": order.id, "completionTime": 45},
    )
    assert response.status_code == 404


async def test_complete_order_rejects_negative_time(client, seed, make_order):
    order = await make_order()
    response = await client.post(
        f"/api/chef/{seed['chef'].id}/complete-order",
        json={"orderId": order.id, "completionTime": -5},
    )
    assert response.status_code == 422


async def test_leaderboard_limit(client, seed, make_record):
    restaurant = seed["restaurant"]
    await make_record(seed["chef"].id, restaurant.id, points=300, orders_completed=20)
    await make_record(seed["second_chef"].id, restaurant.id, points=300, orders_completed=25)

    top = await client.get(f"/api/restaurant/{restaurant.id}/leaderboard", params={"limit": 1})
    assert [e["username"] for e in top.json()] == ["pizza_chef"]

    bad = await client.get(f"/api/restaurant/{restaurant.id}/leaderboard", params={"limit": 0})
    assert bad.status_code == 400


async def test_performance_without_record(client, seed):
    response = await client.get(f"/api/chef/performance/{seed['second_chef'].id}")
    assert response.status_code == 404


async def test_achievement_catalog(client):
    response = await client.get("/api/achievements")
    assert len(response.json()) == 6


async def test_restaurant_setup(client, seed):
    created = await client.post("/api/restaurants", json={"name": "Cafe Lisboa", "address": "3 Rua Augusta", "phone": "555-0300"})
    assert created.status_code == 201
    restaurant_id = created.json()["id"]

    table = await client.post(f"/api/restaurants/{restaurant_id}/tables", json={"tableNumber": 4})
    assert table.status_code == 201
    duplicate = await client.post(f"/api/restaurants/{restaurant_id}/tables", json={"tableNumber": 4})
    assert duplicate.status_code == 409

    item = await client.post(
        "/api/menu",
        json={"restaurantId": restaurant_id, "name": "Pastel de Nata", "price": 250, "category": "dessert"},
    )
    assert item.status_code == 201

    menu = await client.get("/api/menu", params={"restaurantId": restaurant_id})
    assert [m["name"] for m in menu.json()] == ["Pastel de Nata"]


async def test_order_numbers_continue_after_existing_orders(client, seed, make_order):
    await make_order()
    await make_order()

    response = await client.post("/api/orders", json=order_payload(seed))

    assert response.status_code == 201
    assert response.json()["restaurantOrderNumber"] == 3


async def test_admin_cannot_complete_orders(client, seed, make_order):
    order = await make_order()

    response = await client.post(
        f"/api/chef/{seed['admin'].id}/complete-order",
        json={"orderId": order.id, "completionTime": 45},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"
    current = await client.get(f"/api/orders/{order.id}")
    assert current.json()["status"] == "preparing"


async def test_update_menu_item(client, seed):
    item_id = seed["margherita"].id

    response = await client.put(f"/api/menu/{item_id}", json={"name": "Margherita DOP", "price": 1350})

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Margherita DOP"
    assert body["price"] == 1350
    assert body["category"] == "pizza"
    assert body["restaurantId"] == seed["restaurant"].id

    missing = await client.put("/api/menu/9999", json={"price": 100})
    assert missing.status_code == 404

    negative = await client.put(f"/api/menu/{item_id}", json={"price": -1})
    assert negative.status_code == 422

    nulled = await client.put(f"/api/menu/{item_id}", json={"name": None})
    assert nulled.status_code == 400
    menu = await client.get("/api/menu", params={"restaurantId": seed["restaurant"].id})
    assert "Margherita DOP" in [m["name"] for m in menu.json()]


async def test_toggle_menu_item_hides_it_from_menu(client, seed):
    restaurant_id = seed["restaurant"].id
    item_id = seed["tiramisu"].id

    hidden = await client.put(f"/api/menu/{item_id}/toggle-active")
    assert hidden.status_code == 200
    assert hidden.json()["active"] is False

    menu = await client.get("/api/menu", params={"restaurantId": restaurant_id})
    assert [m["name"] for m in menu.json()] == ["Margherita"]

    shown = await client.put(f"/api/menu/{item_id}/toggle-active")
    assert shown.json()["active"] is True

    menu = await client.get("/api/menu", params={"restaurantId": restaurant_id})
    assert sorted(m["name"] for m in menu.json()) == ["Margherita", "Tiramisu"]

    missing = await client.put("/api/menu/9999/toggle-active")
    assert missing.status_code == 404
