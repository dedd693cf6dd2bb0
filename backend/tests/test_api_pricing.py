def test_health(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "farmstand"}


def test_catalog_lists_skus_in_order(client):
    resp = client.get("/catalog")
    assert resp.status_code == 200
    skus = resp.json()
    assert [s["sku"] for s in skus] == ["tomato-1lb", "tomato-5lb", "tomato-10lb", "tomato-20lb"]
    assert skus[1]["unitPrice"] == 20.0
    assert skus[1]["unitWeight"] == 5.0
    assert skus[0]["maxPerOrder"] == 40


def test_quote_single_box(client):
    resp = client.post("/pricing/quote", json={"items": [{"sku": "tomato-5lb", "quantity": 1}]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["currency"] == "USD"
    assert body["subtotal"] == 20.0
    assert body["shipping"]["method"] == "standard"
    assert body["shipping"]["cost"] == 9.5
    assert body["total"] == 29.5
    assert body["coupon"] is None


def test_quote_with_coupon_and_pickup(client):
    resp = client.post(
        "/pricing/quote",
        json={
            "items": [{"sku": "tomato-10lb", "quantity": 1}],
            "shippingMethod": "pickup",
            "couponCode": "freshtomato10",
        },
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["shipping"]["cost"] == 0
    assert body["coupon"]["code"] == "FRESHTOMATO10"
    assert body["coupon"]["amount"] == 3.6
    assert body["total"] == 32.4


def test_quote_rejects_unknown_shipping_method(client):
    resp = client.post("/pricing/quote", json={"items": [], "shippingMethod": "drone"})
    assert resp.status_code == 422


def test_quote_with_no_known_items(client):
    resp = client.post("/pricing/quote", json={"items": [{"sku": "kale", "quantity": 3}]})
    body = resp.json()
    assert body["items"] == []
    assert body["subtotal"] == 0
    assert "No valid items in order" in body["notes"]
