"""HTTP surface: envelopes, status codes and the end-to-end flows."""
import asyncio
from datetime import datetime, timezone
from decimal import Decimal

from shopdesk.core.exceptions import ExtractionError


def money(value):
    return Decimal(str(value))


def add_item(client, name="Widget", quantity=5, unit_price="10.00", **extra):
    response = client.post("/api/inventory/", json={"name": name, "quantity": quantity, "unit_price": unit_price, **extra})
    assert response.status_code == 201, response.text
    return response.json()["data"]


def upload(client, data=b"\x89PNG bill", filename="bill.png", content_type="image/png", field="billImage"):
    return client.post("/api/inventory/process-bill", files={field: (filename, data, content_type)})


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_sell_out_then_reject(client):
    widget = add_item(client, "Widget", quantity=5, unit_price="10.00")

    first = client.post("/api/sales/", json={"items": [{"item_id": widget["id"], "quantity": 5}]})
    assert first.status_code == 201
    body = first.json()
    assert body["success"] is True
    assert money(body["data"]["total_amount"]) == Decimal("50.00")
    assert body["data"]["items"][0]["item_name"] == "Widget"
    assert body["data"]["bill_pdf_url"] == f"memory://bills/bill-{body['data']['id']}.pdf"

    assert client.get(f"/api/inventory/{widget['id']}").json()["data"]["quantity"] == 0

    second = client.post("/api/sales/", json={"items": [{"item_id": widget["id"], "quantity": 1}]})
    assert second.status_code == 500
    assert second.json() == {
        "success": False,
        "error": "Insufficient stock for Widget. Available: 0, Requested: 1",
    }
    assert len(client.get("/api/sales/").json()["data"]) == 1


def test_sale_with_unknown_item(client):
    response = client.post("/api/sales/", json={"items": [{"item_id": 999, "quantity": 1}]})
    assert response.status_code == 500
    assert response.json()["error"] == "Item with ID 999 not found"


def test_sale_request_validation(client):
    empty = client.post("/api/sales/", json={"items": []})
    assert empty.status_code == 400
    assert empty.json()["success"] is False
    assert empty.json()["errors"]

    widget = add_item(client)
    zero = client.post("/api/sales/", json={"items": [{"item_id": widget["id"], "quantity": 0}]})
    assert zero.status_code == 400

    bad_method = client.post(
        "/api/sales/", json={"items": [{"item_id": widget["id"], "quantity": 1}], "payment_method": "cheque"}
    )
    assert bad_method.status_code == 400


def test_unknown_sale_is_404(client):
    assert client.get("/api/sales/999").status_code == 404
    response = client.delete("/api/sales/999")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Sale not found"}


def test_delete_sale_restores_stock(client):
    widget = add_item(client, quantity=8)
    sale = client.post("/api/sales/", json={"items": [{"item_id": widget["id"], "quantity": 3}]}).json()["data"]

    response = client.delete(f"/api/sales/{sale['id']}")

    assert response.status_code == 200
    assert response.json()["message"] == "Sale deleted and inventory restored"
    assert client.get(f"/api/inventory/{widget['id']}").json()["data"]["quantity"] == 8
    assert client.get(f"/api/sales/{sale['id']}").status_code == 404


def test_render_failure_still_returns_sale(client, renderer):
    renderer.failures = 100
    widget = add_item(client, quantity=2)

    response = client.post("/api/sales/", json={"items": [{"item_id": widget["id"], "quantity": 1}]})

    assert response.status_code == 201
    sale = response.json()["data"]
    assert sale["bill_pdf_url"] is None
    assert client.get(f"/api/inventory/{widget['id']}").json()["data"]["quantity"] == 1

    renderer.failures = 0
    retry = client.post(f"/api/sales/{sale['id']}/bill")
    assert retry.status_code == 200
    assert retry.json()["data"]["bill_pdf_url"] == f"memory://bills/bill-{sale['id']}.pdf"


def test_sales_summary_endpoint(client):
    widget = add_item(client, quantity=10, unit_price="4.00")
    client.post("/api/sales/", json={"items": [{"item_id": widget["id"], "quantity": 2}]})

    data = client.get("/api/sales/stats/summary", params={"period": "all"}).json()["data"]

    assert data["summary"]["total_sales"] == 1
    assert money(data["summary"]["total_revenue"]) == Decimal("8.00")
    assert data["topItems"][0]["name"] == "Widget"
    assert client.get("/api/sales/stats/summary", params={"period": "decade"}).status_code == 400


def test_process_bill_requires_file(client):
    response = upload(client, field="attachment")
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Bill image is required"}


def test_process_bill_rejects_other_types(client):
    response = upload(client, data=b"hello", filename="notes.txt", content_type="text/plain")
    assert response.status_code == 400
    assert response.json()["error"] == "Only image and PDF files are allowed"


def test_process_bill_creates_item(client, storage):
    response = upload(client)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Successfully processed 1 items from bill"
    summary = body["data"]["summary"]
    assert summary["totalItems"] == 1
    assert summary["processedItems"] == 1
    assert summary["failedItems"] == 0
    assert summary["vendor"] == "Acme Supplies"
    assert money(summary["totalAmount"]) == Decimal("25")
    assert body["data"]["items"][0]["action"] == "created"
    assert body["data"]["bill"]["bill_image_url"] in storage.files

    items = client.get("/api/inventory/", params={"search": "widget"}).json()["data"]
    assert [(i["name"], i["quantity"], money(i["unit_price"])) for i in items] == [("Widget", 10, Decimal("2.50"))]


def test_process_bill_runs_off_the_event_loop(client, extractor):
    loops = []
    extract = extractor.extract

    def recording_extract(image_bytes, mime_type):
        try:
            loops.append(asyncio.get_running_loop())
        except RuntimeError:
            loops.append(None)
        return extract(image_bytes, mime_type)

    extractor.extract = recording_extract

    assert upload(client).status_code == 200
    assert loops == [None]


def test_process_bill_extraction_failure(client, extractor, storage):
    extractor.error = ExtractionError("Failed to parse AI response as JSON")

    response = upload(client)

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to parse AI response as JSON"
    assert client.get("/api/bills/purchase").json()["data"] == []
    assert storage.files == {}


def test_process_bill_storage_failure(client, storage, extractor):
    storage.fail = True

    response = upload(client)

    assert response.status_code == 500
    assert extractor.calls == 0


def test_purchase_bill_history(client):
    bill_id = upload(client).json()["data"]["bill"]["id"]

    listing = client.get("/api/bills/purchase").json()
    assert listing["pagination"]["count"] == 1
    detail = client.get(f"/api/bills/purchase/{bill_id}").json()["data"]
    assert detail["vendor_name"] == "Acme Supplies"
    assert detail["items"][0]["item_name"] == "Widget"
    assert client.get("/api/bills/purchase/999").status_code == 404


def test_inventory_crud_and_filters(client):
    pen = add_item(client, "Pen", quantity=3, unit_price="1.50", category="Stationery")
    add_item(client, "Rice", quantity=40, unit_price="2.00", category="Groceries")

    assert client.get("/api/inventory/meta/categories").json()["data"] == ["Groceries", "Stationery"]
    assert [i["name"] for i in client.get("/api/inventory/", params={"category": "Groceries"}).json()["data"]] == ["Rice"]
    assert [i["name"] for i in client.get("/api/inventory/", params={"lowStock": "true"}).json()["data"]] == ["Pen"]
    assert [i["name"] for i in client.get("/api/inventory/alerts/low-stock").json()["data"]] == ["Pen"]

    updated = client.put(
        f"/api/inventory/{pen['id']}",
        json={"name": "Gel Pen", "quantity": 30, "unit_price": "1.75", "category": "Stationery"},
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["name"] == "Gel Pen"
    assert client.get("/api/inventory/alerts/low-stock").json()["data"] == []

    assert client.delete(f"/api/inventory/{pen['id']}").status_code == 200
    assert client.get(f"/api/inventory/{pen['id']}").status_code == 404


def test_item_validation(client):
    response = client.post("/api/inventory/", json={"name": "  ", "quantity": 1, "unit_price": "1.00"})
    assert response.status_code == 400
    response = client.post("/api/inventory/", json={"name": "Pen", "quantity": -1, "unit_price": "1.00"})
    assert response.status_code == 400


def test_item_with_sales_cannot_be_deleted(client):
    widget = add_item(client)
    client.post("/api/sales/", json={"items": [{"item_id": widget["id"], "quantity": 1}]})

    response = client.delete(f"/api/inventory/{widget['id']}")

    assert response.status_code == 400
    assert response.json()["error"] == "Item 'Widget' has sale or purchase history and cannot be deleted"
    assert client.get(f"/api/inventory/{widget['id']}").status_code == 200


def test_dashboard_overview(client):
    lamp = add_item(client, "Lamp", quantity=5, unit_price="10.00")
    add_item(client, "Rice", quantity=100, unit_price="1.00")
    client.post("/api/sales/", json={"items": [{"item_id": lamp["id"], "quantity": 2}], "customer_name": "Ravi"})
    upload(client)

    data = client.get("/api/dashboard/overview").json()["data"]

    assert data["inventory"]["total_items"] == 3
    assert data["inventory"]["low_stock_items"] == 2  # Lamp (3) and the new Widget (10)
    assert money(data["inventory"]["stock_value"]) == Decimal("155.00")
    assert data["sales"]["today"]["count"] == 1
    assert money(data["sales"]["today"]["revenue"]) == Decimal("20.00")
    assert {a["type"] for a in data["recentActivities"]} == {"sale", "purchase"}


def test_inventory_report(client):
    add_item(client, "Pen", quantity=3, unit_price="1.50")

    report = client.get("/api/dashboard/reports/inventory").json()
    assert report["data"][0]["stock_status"] == "Low Stock"
    assert report["summary"]["totalItems"] == 1

    pdf = client.get("/api/dashboard/reports/inventory", params={"format": "pdf"}).json()
    assert pdf["data"] == {"reportUrl": "memory://reports/inventory-1.pdf", "itemCount": 1}


def _two_sales(client):
    lamp = add_item(client, "Lamp", quantity=20, unit_price="10.00")
    rice = add_item(client, "Rice", quantity=100, unit_price="1.00")
    first = client.post("/api/sales/", json={"items": [{"item_id": lamp["id"], "quantity": 2}]}).json()["data"]
    second = client.post(
        "/api/sales/",
        json={
            "items": [{"item_id": lamp["id"], "quantity": 1}, {"item_id": rice["id"], "quantity": 5}],
            "customer_name": "Ravi",
        },
    ).json()["data"]
    return first, second


def test_sales_chart(client):
    _two_sales(client)
    today = datetime.now(timezone.utc).date()

    week = client.get("/api/dashboard/charts/sales").json()["data"]
    assert [(d["date"], d["sales"], money(d["revenue"])) for d in week] == [
        (today.isoformat(), 2, Decimal("35.00")),
    ]
    year = client.get("/api/dashboard/charts/sales", params={"period": "year"}).json()["data"]
    assert [d["date"] for d in year] == [today.strftime("%Y-%m")]
    assert client.get("/api/dashboard/charts/sales", params={"period": "decade"}).status_code == 400


def test_top_items_chart(client):
    _two_sales(client)

    data = client.get("/api/dashboard/charts/top-items").json()["data"]

    assert [(d["name"], d["sold"], d["orders"]) for d in data] == [("Rice", 5, 1), ("Lamp", 3, 2)]
    assert money(data[1]["revenue"]) == Decimal("30.00")
    assert len(client.get("/api/dashboard/charts/top-items", params={"limit": 1}).json()["data"]) == 1


def test_sales_report(client):
    first, second = _two_sales(client)

    body = client.get("/api/dashboard/reports/sales").json()

    assert [row["id"] for row in body["data"]] == [second["id"], first["id"]]
    assert body["data"][0]["items_summary"] == "Lamp (x1), Rice (x5)"
    assert body["data"][0]["item_count"] == 2
    assert body["summary"]["totalSales"] == 2
    assert money(body["summary"]["totalRevenue"]) == Decimal("35.00")
    assert money(body["summary"]["averageSale"]) == Decimal("17.50")

    past = client.get("/api/dashboard/reports/sales", params={"endDate": "2000-01-01T00:00:00"}).json()
    assert past["data"] == []
    assert past["summary"]["totalSales"] == 0
    assert past["summary"]["period"]["endDate"] == "2000-01-01T00:00:00"


def test_sale_bills_listing(client):
    first, second = _two_sales(client)

    body = client.get("/api/bills/sales").json()

    assert [b["id"] for b in body["data"]] == [second["id"], first["id"]]
    assert body["data"][0]["customer_name"] == "Ravi"
    assert body["data"][0]["bill_pdf_url"] == f"memory://bills/bill-{second['id']}.pdf"
    assert body["pagination"] == {"limit": 50, "offset": 0, "count": 2}
    assert len(client.get("/api/bills/sales", params={"limit": 1, "offset": 1}).json()["data"]) == 1
