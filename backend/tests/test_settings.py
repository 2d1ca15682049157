import pytest


@pytest.mark.anyio
async def test_defaults_when_nothing_saved(client):
    r = await client.get("/settings/")
    assert r.status_code == 200
    data = r.json()
    assert data["id"] is None
    assert data["company_name"] == "GreenCare Agency"
    assert data["currency"] == "USD"
    assert data["invoice_prefix"] == "INV"


@pytest.mark.anyio
async def test_save_inserts_then_updates_singleton(client, store):
    body = {"company_name": "GreenCare Pune", "company_email": "", "currency": "INR", "tax_rate": 18}
    first = await client.put("/settings/", json=body)
    assert first.status_code == 200, first.text
    assert first.json()["company_email"] is None

    second = await client.put("/settings/", json=dict(body, invoice_prefix="GCP"))
    assert second.json()["id"] == first.json()["id"]
    assert await store.count("settings") == 1

    r = await client.get("/settings/")
    assert r.json()["invoice_prefix"] == "GCP"
    assert r.json()["tax_rate"] == 18


@pytest.mark.anyio
@pytest.mark.parametrize("patch", [
    {"tax_rate": 101},
    {"currency": "RUPEE"},
    {"invoice_prefix": "IN V"},
    {"company_email": "not-an-email"},
])
async def test_invalid_settings_are_rejected(client, patch):
    r = await client.put("/settings/", json=dict({"company_name": "GreenCare"}, **patch))
    assert r.status_code == 422
