"""
Customer book tests.
"""

import pytest

from adorder.app.services.customer_service import split_keywords


@pytest.mark.parametrize("raw, expected", [
    ("cafe, brunch", ["cafe", "brunch"]),
    (" cafe ,, ,brunch ", ["cafe", "brunch"]),
    ("", []),
    (None, []),
])
def test_split_keywords(raw, expected):
    assert split_keywords(raw) == expected


async def create_customer(client, headers, name="Gangnam Cafe"):
    response = await client.post(
        "/v1/customers",
        json={"business_name": name, "place_id": "1234", "place_url": "https://map.example.com/place/1234"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest.mark.asyncio
async def test_customer_crud(client, make_user):
    _, headers = await make_user("agency@example.com")
    customer_id = await create_customer(client, headers)

    response = await client.get("/v1/customers", headers=headers)
    assert [c["id"] for c in response.json()] == [customer_id]

    response = await client.patch(
        f"/v1/customers/{customer_id}", json={"contact": "010-0000-0000"}, headers=headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["contact"] == "010-0000-0000"
    assert data["business_name"] == "Gangnam Cafe"

    response = await client.patch(f"/v1/customers/{customer_id}", json={"business_name": "  "}, headers=headers)
    assert response.status_code == 400

    response = await client.delete(f"/v1/customers/{customer_id}", headers=headers)
    assert response.status_code == 204

    response = await client.get(f"/v1/customers/{customer_id}", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_customers_are_private(client, make_user):
    _, owner = await make_user("agency@example.com")
    _, other = await make_user("rival@example.com")
    customer_id = await create_customer(client, owner)

    response = await client.get("/v1/customers", headers=other)
    assert response.json() == []

    response = await client.get(f"/v1/customers/{customer_id}", headers=other)
    assert response.status_code == 403

    response = await client.delete(f"/v1/customers/{customer_id}", headers=other)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_keywords(client, make_user):
    _, headers = await make_user("agency@example.com")
    customer_id = await create_customer(client, headers)
    url = f"/v1/customers/{customer_id}/keywords"

    response = await client.post(url, json={"keywords": "cafe, Brunch, cafe"}, headers=headers)
    assert response.status_code == 201
    data = response.json()
    assert [k["keyword"] for k in data["added"]] == ["cafe", "Brunch"]
    assert data["skipped"] == ["cafe"]

    response = await client.post(url, json={"keywords": "brunch, dessert"}, headers=headers)
    data = response.json()
    assert [k["keyword"] for k in data["added"]] == ["dessert"]
    assert data["skipped"] == ["brunch"]

    response = await client.post(url, json={"keywords": " , "}, headers=headers)
    assert response.status_code == 400

    response = await client.get(url, headers=headers)
    keywords = response.json()
    assert [k["keyword"] for k in keywords] == ["cafe", "Brunch", "dessert"]

    response = await client.delete(f"{url}/{keywords[0]['id']}", headers=headers)
    assert response.status_code == 204
    response = await client.delete(f"{url}/{keywords[0]['id']}", headers=headers)
    assert response.status_code == 404

    # Deleting the customer takes the remaining keywords with it
    response = await client.delete(f"/v1/customers/{customer_id}", headers=headers)
    assert response.status_code == 204
