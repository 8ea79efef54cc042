from sqlalchemy import select

from storerate.models import Rating

from conftest import API, auth_headers


async def test_first_submission_creates_rating(client, shopper, make_store):
    store = await make_store()

    resp = await client.post(
        f"{API}/ratings/{store.id}", json={"rating": 4}, headers=auth_headers(shopper)
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Rating submitted successfully"
    assert body["rating"]["rating"] == 4
    assert body["rating"]["store_id"] == store.id
    assert body["rating"]["user_id"] == shopper.id


async def test_second_submission_updates_in_place(client, shopper, make_store, database):
    store = await make_store()
    headers = auth_headers(shopper)

    first = await client.post(f"{API}/ratings/{store.id}", json={"rating": 2}, headers=headers)
    second = await client.post(f"{API}/ratings/{store.id}", json={"rating": 5}, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["message"] == "Rating updated successfully"
    assert second.json()["rating"]["id"] == first.json()["rating"]["id"]

    async with database.session() as db:
        rows = (
            await db.scalars(
                select(Rating).where(Rating.user_id == shopper.id, Rating.store_id == store.id)
            )
        ).all()
    assert len(rows) == 1
    assert rows[0].rating == 5


async def test_update_replaces_rating_made_earlier(client, shopper, make_store, make_rating):
    store = await make_store()
    existing = await make_rating(shopper, store, 1)

    resp = await client.post(
        f"{API}/ratings/{store.id}", json={"rating": 3}, headers=auth_headers(shopper)
    )

    assert resp.status_code == 200
    assert resp.json()["rating"]["id"] == existing.id

    avg = await client.get(f"{API}/ratings/store/{store.id}/average")
    assert avg.json() == {"average_rating": "3.0", "total_ratings": 1}


async def test_rating_unknown_store_is_404(client, shopper, count_rows):
    resp = await client.post(
        f"{API}/ratings/999", json={"rating": 3}, headers=auth_headers(shopper)
    )

    assert resp.status_code == 404
    assert resp.json() == {"error": "Store not found"}
    assert await count_rows(Rating) == 0


async def test_rating_value_must_be_one_to_five(client, shopper, make_store, count_rows):
    store = await make_store()
    headers = auth_headers(shopper)

    for bad in (0, 6, "4", 3.5):
        resp = await client.post(f"{API}/ratings/{store.id}", json={"rating": bad}, headers=headers)
        assert resp.status_code == 400, bad
        assert "error" in resp.json()

    assert await count_rows(Rating) == 0


async def test_only_normal_users_submit_ratings(client, admin, owner, make_store):
    store = await make_store()

    resp = await client.post(f"{API}/ratings/{store.id}", json={"rating": 3})
    assert resp.status_code == 401

    for user in (admin, owner):
        resp = await client.post(
            f"{API}/ratings/{store.id}", json={"rating": 3}, headers=auth_headers(user)
        )
        assert resp.status_code == 403


async def test_get_own_rating(client, shopper, make_store, make_rating):
    store = await make_store()
    await make_rating(shopper, store, 4)

    resp = await client.get(f"{API}/ratings/{store.id}", headers=auth_headers(shopper))

    assert resp.status_code == 200
    assert resp.json()["rating"]["rating"] == 4


async def test_get_own_rating_missing_is_404(client, shopper, make_store):
    store = await make_store()

    resp = await client.get(f"{API}/ratings/{store.id}", headers=auth_headers(shopper))

    assert resp.status_code == 404
    assert resp.json() == {"error": "Rating not found"}


async def test_delete_own_rating(client, shopper, make_user, make_store, make_rating, count_rows):
    store = await make_store()
    await make_rating(shopper, store, 4)
    await make_rating(await make_user(), store, 2)

    resp = await client.delete(f"{API}/ratings/{store.id}", headers=auth_headers(shopper))

    assert resp.status_code == 200
    assert resp.json() == {"message": "Rating deleted successfully"}
    assert await count_rows(Rating) == 1


async def test_delete_missing_rating_is_404_and_changes_nothing(
    client, shopper, make_user, make_store, make_rating, count_rows
):
    store = await make_store()
    await make_rating(await make_user(), store, 2)

    resp = await client.delete(f"{API}/ratings/{store.id}", headers=auth_headers(shopper))

    assert resp.status_code == 404
    assert await count_rows(Rating) == 1


async def test_average_endpoint_is_public(client, make_user, make_store, make_rating):
    store = await make_store()
    empty = await make_store()
    for value in (3, 4, 5):
        await make_rating(await make_user(), store, value)

    resp = await client.get(f"{API}/ratings/store/{store.id}/average")
    assert resp.status_code == 200
    assert resp.json() == {"average_rating": "4.0", "total_ratings": 3}

    resp = await client.get(f"{API}/ratings/store/{empty.id}/average")
    assert resp.json() == {"average_rating": "0.0", "total_ratings": 0}


async def test_owner_sees_ratings_of_own_store_only(
    client, owner, make_user, make_store, make_rating
):
    mine = await make_store(owner=owner)
    other_owner = await make_user(role=owner.role)
    theirs = await make_store(owner=other_owner)
    rater = await make_user(name="Rater With A Long Enough Name")
    await make_rating(rater, mine, 5)
    await make_rating(rater, theirs, 1)

    resp = await client.get(f"{API}/ratings/store/{mine.id}", headers=auth_headers(owner))
    assert resp.status_code == 200
    [entry] = resp.json()["ratings"]
    assert entry["rating"] == 5
    assert entry["user_id"] == rater.id
    assert entry["user_name"] == "Rater With A Long Enough Name"
    assert entry["user_email"] == rater.email

    resp = await client.get(f"{API}/ratings/store/{theirs.id}", headers=auth_headers(owner))
    assert resp.status_code == 200
    assert resp.json()["ratings"] == []


async def test_admin_sees_ratings_of_any_store(client, admin, shopper, make_store, make_rating):
    store = await make_store()
    await make_rating(shopper, store, 3)

    resp = await client.get(f"{API}/ratings/store/{store.id}", headers=auth_headers(admin))

    assert resp.status_code == 200
    assert len(resp.json()["ratings"]) == 1


async def test_normal_user_cannot_list_store_ratings(client, shopper, make_store):
    store = await make_store()

    resp = await client.get(f"{API}/ratings/store/{store.id}", headers=auth_headers(shopper))

    assert resp.status_code == 403
    assert resp.json() == {"error": "Access denied"}
