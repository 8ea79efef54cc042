from sqlalchemy import select

from storerate.models import Rating, Store

from conftest import API, auth_headers


async def test_store_without_ratings_reports_zero(client, make_store):
    store = await make_store(name="Quiet Corner Shop")

    resp = await client.get(f"{API}/stores/{store.id}")

    assert resp.status_code == 200
    body = resp.json()["store"]
    assert body["average_rating"] == "0.0"
    assert body["total_ratings"] == 0
    assert body["user_rating"] is None


async def test_average_is_rendered_with_one_decimal(client, make_user, make_store, make_rating):
    store = await make_store()
    for value in (3, 4, 5):
        await make_rating(await make_user(), store, value)

    resp = await client.get(f"{API}/stores")

    assert resp.status_code == 200
    [entry] = resp.json()["stores"]
    assert entry["average_rating"] == "4.0"
    assert entry["total_ratings"] == 3


async def test_uneven_average_keeps_one_decimal(client, make_user, make_store, make_rating):
    store = await make_store()
    for value in (4, 5):
        await make_rating(await make_user(), store, value)

    resp = await client.get(f"{API}/stores/{store.id}")

    assert resp.json()["store"]["average_rating"] == "4.5"


async def test_search_requires_every_term_in_one_row(client, make_store):
    await make_store(name="Fresh Mart Downtown", address="1 Main St")
    await make_store(name="Fresh Foods", address="9 Mart Street")
    await make_store(name="Fresh Bakery", address="12 Elm Road")
    await make_store(name="City Mart", address="7 Oak Lane")

    resp = await client.get(f"{API}/stores", params={"search": "Fresh Mart"})

    assert resp.status_code == 200
    names = [s["name"] for s in resp.json()["stores"]]
    assert names == ["Fresh Foods", "Fresh Mart Downtown"]


async def test_search_is_case_insensitive_and_literal(client, make_store):
    await make_store(name="100% Organic")
    await make_store(name="1000 Organics")

    resp = await client.get(f"{API}/stores", params={"search": "100%"})

    assert [s["name"] for s in resp.json()["stores"]] == ["100% Organic"]

    resp = await client.get(f"{API}/stores", params={"search": "organic"})
    assert len(resp.json()["stores"]) == 2


async def test_unknown_sort_field_falls_back_to_name_ascending(client, make_store):
    for name in ("Charlie Goods", "Alpha Market", "Bravo Bazaar"):
        await make_store(name=name)

    resp = await client.get(
        f"{API}/stores", params={"sortBy": "password_hash", "sortOrder": "desc"}
    )

    assert resp.status_code == 200
    assert [s["name"] for s in resp.json()["stores"]] == [
        "Alpha Market",
        "Bravo Bazaar",
        "Charlie Goods",
    ]


async def test_invalid_sort_order_falls_back_to_name_ascending(client, make_store):
    for name in ("Bravo Bazaar", "Alpha Market"):
        await make_store(name=name)

    resp = await client.get(f"{API}/stores", params={"sortBy": "email", "sortOrder": "sideways"})

    assert [s["name"] for s in resp.json()["stores"]] == ["Alpha Market", "Bravo Bazaar"]


async def test_sort_by_average_rating_desc(client, make_user, make_store, make_rating):
    low = await make_store(name="Low Rated")
    high = await make_store(name="High Rated")
    await make_store(name="Unrated")
    rater = await make_user()
    await make_rating(rater, low, 2)
    await make_rating(rater, high, 5)

    resp = await client.get(
        f"{API}/stores", params={"sortBy": "average_rating", "sortOrder": "DESC"}
    )

    assert [s["name"] for s in resp.json()["stores"]] == ["High Rated", "Low Rated", "Unrated"]


async def test_authenticated_listing_includes_own_rating(
    client, shopper, make_user, make_store, make_rating
):
    store = await make_store()
    await make_rating(shopper, store, 2)
    await make_rating(await make_user(), store, 4)

    resp = await client.get(f"{API}/stores", headers=auth_headers(shopper))

    [entry] = resp.json()["stores"]
    assert entry["user_rating"] == 2
    assert entry["average_rating"] == "3.0"
    assert entry["total_ratings"] == 2


async def test_get_unknown_store_is_404(client):
    resp = await client.get(f"{API}/stores/999")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Store not found"}


async def test_admin_creates_store_with_owner(client, admin, owner, database):
    resp = await client.post(
        f"{API}/stores",
        json={
            "name": "Corner Grocer",
            "email": "Grocer@ShopMail.com",
            "address": "5 High Street",
            "ownerId": owner.id,
        },
        headers=auth_headers(admin),
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Store created successfully"
    assert body["store"]["email"] == "grocer@shopmail.com"
    assert body["store"]["owner_id"] == owner.id


async def test_store_owner_must_have_store_owner_role(client, admin, shopper, count_rows):
    resp = await client.post(
        f"{API}/stores",
        json={"name": "Corner Grocer", "email": "grocer@shopmail.com", "ownerId": shopper.id},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Owner must be a store owner"}
    assert await count_rows(Store) == 0


async def test_store_owner_must_exist(client, admin, count_rows):
    resp = await client.post(
        f"{API}/stores",
        json={"name": "Corner Grocer", "email": "grocer@shopmail.com", "ownerId": 4242},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Owner user not found"}
    assert await count_rows(Store) == 0


async def test_duplicate_store_email_rejected(client, admin, make_store, count_rows):
    await make_store(email="taken@shopmail.com")

    resp = await client.post(
        f"{API}/stores",
        json={"name": "Another Shop", "email": "taken@shopmail.com"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Store with this email already exists"
    assert await count_rows(Store) == 1


async def test_store_validation_errors_are_400(client, admin):
    resp = await client.post(
        f"{API}/stores",
        json={"name": "X" * 61, "email": "valid@shopmail.com"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400
    assert "60" in resp.json()["error"]

    resp = await client.post(
        f"{API}/stores",
        json={"name": "Fine Name", "email": "not-an-email"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400


async def test_only_admin_manages_stores(client, shopper, owner):
    payload = {"name": "Sneaky Shop", "email": "sneaky@shopmail.com"}

    resp = await client.post(f"{API}/stores", json=payload)
    assert resp.status_code == 401

    for user in (shopper, owner):
        resp = await client.post(f"{API}/stores", json=payload, headers=auth_headers(user))
        assert resp.status_code == 403
        assert resp.json() == {"error": "Access denied"}


async def test_update_store(client, admin, owner, make_store, database):
    store = await make_store(name="Old Name", email="old@shopmail.com")

    resp = await client.put(
        f"{API}/stores/{store.id}",
        json={"name": "New Name", "email": "old@shopmail.com", "address": "2 New Rd", "ownerId": owner.id},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 200
    assert resp.json()["store"]["name"] == "New Name"
    async with database.session() as db:
        saved = await db.scalar(select(Store).where(Store.id == store.id))
    assert saved.owner_id == owner.id
    assert saved.address == "2 New Rd"


async def test_update_store_rejects_email_of_other_store(client, admin, make_store):
    await make_store(email="first@shopmail.com")
    second = await make_store(email="second@shopmail.com")

    resp = await client.put(
        f"{API}/stores/{second.id}",
        json={"name": "Second", "email": "first@shopmail.com"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 400


async def test_update_unknown_store_is_404(client, admin):
    resp = await client.put(
        f"{API}/stores/77",
        json={"name": "Ghost", "email": "ghost@shopmail.com"},
        headers=auth_headers(admin),
    )

    assert resp.status_code == 404


async def test_delete_store_removes_its_ratings(
    client, admin, shopper, make_store, make_rating, count_rows
):
    store = await make_store()
    await make_rating(shopper, store, 5)

    resp = await client.delete(f"{API}/stores/{store.id}", headers=auth_headers(admin))

    assert resp.status_code == 200
    assert resp.json() == {"message": "Store deleted successfully"}
    assert await count_rows(Store) == 0
    assert await count_rows(Rating) == 0


async def test_delete_unknown_store_is_404_and_changes_nothing(
    client, admin, make_store, count_rows
):
    await make_store()

    resp = await client.delete(f"{API}/stores/12345", headers=auth_headers(admin))

    assert resp.status_code == 404
    assert await count_rows(Store) == 1
