from decimal import Decimal


def headers(operator="ops.desk"):
    return {"X-Operator": operator}


async def create_account(client, code="ACME", credit_limit="10000", opening_balance="0"):
    return await client.post(
        "/accounts",
        json={
            "account_code": code,
            "name": "Acme Traders",
            "branch": "del",
            "credit_limit": credit_limit,
            "opening_balance": opening_balance,
        },
        headers=headers(),
    )


async def book(client, awb_no, basic="100", shipment_date="2024-05-10"):
    return await client.post(
        "/shipments",
        json={
            "awb_no": awb_no,
            "account_code": "ACME",
            "shipment_date": shipment_date,
            "basic_amt": basic,
            "actual_weight": "2.5",
        },
        headers=headers(),
    )


async def test_health(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_account_envelope_and_duplicate_code(client):
    response = await create_account(client, code="acme")
    body = response.json()

    assert response.status_code == 201
    assert body["success"] is True
    assert body["warnings"] == []
    assert body["data"]["account_code"] == "ACME"
    assert body["data"]["branch"] == "DEL"
    assert body["data"]["created_by"] == "ops.desk"

    duplicate = await create_account(client, code="ACME")
    assert duplicate.status_code == 409
    assert duplicate.json() == {
        "success": False,
        "message": "Account code already exists",
        "error_code": "ACCOUNT_CODE_EXISTS",
        "details": None,
    }


async def test_not_found_and_validation_errors(client):
    missing = await client.get("/shipments/NOPE")
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "SHIPMENT_NOT_FOUND"

    invalid = await client.post("/accounts", json={"account_code": "X"})
    assert invalid.status_code == 422
    assert invalid.json()["error_code"] == "VALIDATION_ERROR"
    assert invalid.json()["success"] is False


async def test_over_limit_booking_is_held(client):
    await create_account(client, credit_limit="9999", opening_balance="9500")

    response = await book(client, "AWB100", basic="800")
    body = response.json()

    assert response.status_code == 201
    assert body["data"]["is_hold"] is True
    assert body["message"] == "Shipment booked and put on hold"

    account = (await client.get("/accounts/ACME")).json()["data"]
    assert Decimal(account["left_over_balance"]) == Decimal("10300")


async def test_auto_calculate_without_rate_engine_warns(client):
    await create_account(client)
    await book(client, "AWB200")

    response = await client.post("/shipments/AWB200/auto-calculate", headers=headers())
    body = response.json()

    assert response.status_code == 200
    assert body["success"] is True
    assert len(body["warnings"]) == 1
    assert Decimal(body["data"]["total_amt"]) == Decimal("100")


async def test_consolidation_and_billing_flow(client):
    await create_account(client)
    await book(client, "AWB301", basic="100.40")
    await book(client, "AWB302", basic="50.25")
    assert (await client.post("/runs", json={"run_no": "R100"}, headers=headers())).status_code == 201

    for awb in ("AWB301", "AWB302"):
        assigned = await client.post(
            "/bags/assign",
            json={"awb_no": awb, "bag_no": "B1", "run_no": "R100"},
            headers=headers(),
        )
        assert assigned.status_code == 200

    finalized = await client.post("/bags/B1/finalize", headers=headers())
    assert finalized.json()["data"]["is_final"] is True

    rejected = await client.post(
        "/bags/assign",
        json={"awb_no": "AWB301", "bag_no": "B2", "run_no": "R100"},
        headers=headers(),
    )
    assert rejected.status_code == 409
    assert rejected.json()["error_code"] == "BAG_ALREADY_FINALIZED"

    summary = (await client.get("/runs/R100/summary")).json()["data"]
    assert summary["no_of_awb"] == 2
    assert Decimal(summary["run_weight"]) == Decimal("5")

    window = {"account_code": "ACME", "from_date": "2024-05-01", "to_date": "2024-05-31"}
    locked = await client.post("/billing/lock", json=window, headers=headers())
    assert locked.json()["data"]["locked_count"] == 2

    created = await client.post(
        "/billing/invoices",
        json={"invoices": [{**window, "invoice_date": "2024-06-01"}]},
        headers=headers(),
    )
    assert created.status_code == 201
    invoice = created.json()["data"][0]
    assert invoice["invoice_number"] == "DEL/20240601/001"
    assert Decimal(invoice["grand_total"]) == Decimal("151")
    assert Decimal(invoice["round_off"]) == Decimal("0.35")

    pdf = await client.get(f"/billing/invoices/{invoice['id']}/pdf")
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")

    remaining = await client.get("/billing/summary", params=window)
    assert remaining.json()["data"]["totals"]["total_awb"] == 0

    reconciliation = (await client.get("/ledger/reconcile")).json()
    assert reconciliation["data"]["ok"] is True

    activities = (await client.get("/activities", params={"code": "create_invoice"})).json()["data"]
    assert activities["total"] == 1
    assert activities["items"][0]["actor"] == "ops.desk"


async def test_receipt_and_statement(client):
    await create_account(client, opening_balance="500")

    next_no = (await client.get("/ledger/next-receipt-no")).json()["data"]
    created = await client.post(
        "/ledger/receipts",
        json={"account_code": "ACME", "amount": "200", "payment": "Cheque", "reference": "CHQ-9"},
        headers=headers(),
    )
    assert created.status_code == 201
    assert created.json()["data"]["receipt_no"] == next_no == 1000

    summary = (await client.get("/ledger/ACME/summary")).json()["data"]
    assert Decimal(summary["outstanding"]) == Decimal("300")

    statement = (await client.get("/ledger/ACME/statement")).json()["data"]
    assert [Decimal(r["running_balance"]) for r in statement["rows"]] == [Decimal("500"), Decimal("300")]
