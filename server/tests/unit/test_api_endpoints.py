"""Integration tests for API endpoints."""

from uuid import uuid4

import jwt
import pytest

from natours.core.config import settings

TOURS = "/api/v1/tours"


def bearer(user_id):
    token = jwt.encode({"sub": str(user_id)}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_list_tours(test_client, sample_tours):
    response = await test_client.get(TOURS)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["results"] == 5
    tours = body["data"]["tours"]
    assert len(tours) == 5
    assert "The Secret Hideaway" not in {tour["name"] for tour in tours}
    first = tours[0]
    assert "version" not in first
    assert {"id", "name", "slug", "durationWeeks", "startLocation", "startDates", "guides"} <= set(first)


@pytest.mark.asyncio
async def test_list_tours_filter_sort_paginate(test_client, sample_tours):
    response = await test_client.get(TOURS, params={
        "difficulty": "easy", "sort": "-price", "limit": "2", "page": "1",
    })

    assert response.status_code == 200
    names = [tour["name"] for tour in response.json()["data"]["tours"]]
    assert names == ["The City Wanderer", "The Forest Hiker"]


@pytest.mark.asyncio
async def test_list_tours_second_page(test_client, sample_tours):
    response = await test_client.get(TOURS, params={"sort": "price", "limit": "2", "page": "2"})

    names = [tour["name"] for tour in response.json()["data"]["tours"]]
    assert names == ["The Snow Adventurer", "The City Wanderer"]


@pytest.mark.asyncio
async def test_list_tours_range_filter(test_client, sample_tours):
    response = await test_client.get(f"{TOURS}?price[lt]=1000&duration[gte]=5")

    assert response.status_code == 200
    assert response.json()["results"] == 3


@pytest.mark.asyncio
async def test_list_tours_field_projection(test_client, sample_tours):
    response = await test_client.get(TOURS, params={"fields": "name,price"})

    assert response.status_code == 200
    for tour in response.json()["data"]["tours"]:
        assert set(tour) == {"id", "name", "price"}


@pytest.mark.asyncio
@pytest.mark.parametrize("query", [
    "sort=-popularity",
    "fields=name,bogus",
    "colour=blue",
    "price[ne]=10",
    "price=cheap",
    "price[lt]=inf",
    "page=10000000000000000000&limit=10",
])
async def test_list_tours_rejects_bad_query(test_client, query):
    response = await test_client.get(f"{TOURS}?{query}")

    assert response.status_code == 400
    assert response.json()["status"] == "fail"


@pytest.mark.asyncio
async def test_top_five_cheap(test_client, sample_tours):
    response = await test_client.get(f"{TOURS}/top-5-cheap")

    assert response.status_code == 200
    tours = response.json()["data"]["tours"]
    assert [tour["name"] for tour in tours] == [
        "The Park Camper",
        "The Sea Explorer",
        "The Forest Hiker",
        "The City Wanderer",
        "The Snow Adventurer",
    ]
    assert set(tours[0]) == {"id", "name", "price", "ratingsAverage", "summary", "difficulty"}


@pytest.mark.asyncio
async def test_get_tour_populates_reviews(test_client, sample_tours, sample_users):
    tour = sample_tours["The Forest Hiker"]
    reviewer = sample_users["reviewer"]
    await test_client.post(
        f"{TOURS}/{tour.id}/reviews",
        json={"review": "Loved it", "rating": 5, "user": str(reviewer.id)},
    )

    response = await test_client.get(f"{TOURS}/{tour.id}")

    assert response.status_code == 200
    data = response.json()["data"]["tour"]
    assert data["name"] == "The Forest Hiker"
    assert data["ratingsQuantity"] == 1
    assert data["ratingsAverage"] == 5
    assert data["reviews"][0]["user"]["name"] == "Avid Reviewer"
    assert data["reviews"][0]["tour"] == str(tour.id)


@pytest.mark.asyncio
async def test_get_tour_not_found(test_client):
    response = await test_client.get(f"{TOURS}/{uuid4()}")

    assert response.status_code == 404
    body = response.json()
    assert body["status"] == "fail"
    assert body["message"] == "No document found with that ID"
    assert "data" not in body


@pytest.mark.asyncio
async def test_get_tour_invalid_id(test_client):
    response = await test_client.get(f"{TOURS}/not-an-id")

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid id: not-an-id"


@pytest.mark.asyncio
async def test_secret_tour_is_not_found(test_client, sample_tours):
    secret = sample_tours["The Secret Hideaway"]

    assert (await test_client.get(f"{TOURS}/{secret.id}")).status_code == 404
    assert (await test_client.patch(f"{TOURS}/{secret.id}", json={"price": 5})).status_code == 404
    assert (await test_client.delete(f"{TOURS}/{secret.id}")).status_code == 404


@pytest.mark.asyncio
async def test_create_tour(test_client, tour_data):
    response = await test_client.post(TOURS, json=tour_data(name="The Desert Crosser", duration=14))

    assert response.status_code == 201
    tour = response.json()["data"]["tour"]
    assert tour["slug"] == "the-desert-crosser"
    assert tour["durationWeeks"] == 2
    assert tour["ratingsAverage"] == 4.5


@pytest.mark.asyncio
async def test_create_tour_name_too_short(test_client, tour_data):
    response = await test_client.post(TOURS, json=tour_data(name="Short"))

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "fail"
    assert body["message"].startswith("Invalid input data.")


@pytest.mark.asyncio
async def test_create_tour_duplicate_name(test_client, tour_data):
    assert (await test_client.post(TOURS, json=tour_data())).status_code == 201

    response = await test_client.post(TOURS, json=tour_data())

    assert response.status_code == 400
    assert response.json()["message"].startswith("Duplicate field value")


@pytest.mark.asyncio
async def test_create_tour_discount_above_price(test_client, tour_data):
    response = await test_client.post(TOURS, json=tour_data(price=100, priceDiscount=200))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_tour(test_client, sample_tours):
    tour = sample_tours["The Sea Explorer"]

    response = await test_client.patch(f"{TOURS}/{tour.id}", json={"name": "The Ocean Explorer", "price": 597})

    assert response.status_code == 200
    data = response.json()["data"]["tour"]
    assert data["slug"] == "the-ocean-explorer"
    assert data["price"] == 597


@pytest.mark.asyncio
async def test_update_tour_rechecks_discount(test_client, sample_tours):
    tour = sample_tours["The Sea Explorer"]

    response = await test_client.patch(f"{TOURS}/{tour.id}", json={"priceDiscount": 900})

    assert response.status_code == 400
    assert response.json()["status"] == "fail"


@pytest.mark.asyncio
async def test_update_tour_not_found(test_client):
    response = await test_client.patch(f"{TOURS}/{uuid4()}", json={"price": 10})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_tour(test_client, sample_tours):
    tour = sample_tours["The Park Camper"]

    response = await test_client.delete(f"{TOURS}/{tour.id}")

    assert response.status_code == 204
    assert response.content == b""
    assert (await test_client.get(f"{TOURS}/{tour.id}")).status_code == 404
    assert (await test_client.delete(f"{TOURS}/{tour.id}")).status_code == 404


@pytest.mark.asyncio
async def test_tour_stats_endpoint(test_client, sample_tours):
    response = await test_client.get(f"{TOURS}/tour-stats")

    assert response.status_code == 200
    stats = response.json()["data"]["stats"]
    assert [row["difficulty"] for row in stats] == ["EASY", "DIFFICULT", "MEDIUM"]
    assert set(stats[0]) == {
        "difficulty", "numTours", "numRatings", "avgRating", "avgPrice", "minPrice", "maxPrice",
    }


@pytest.mark.asyncio
async def test_monthly_plan_endpoint(test_client, sample_tours):
    response = await test_client.get(f"{TOURS}/monthly-plan/2021")

    assert response.status_code == 200
    body = response.json()
    plan = body["data"]["plan"]
    assert body["results"] == len(plan) == 7
    assert plan[0] == {"month": 6, "numTourStarts": 2, "tours": ["The City Wanderer", "The Sea Explorer"]}
    assert len(plan) <= 12


@pytest.mark.asyncio
async def test_monthly_plan_bad_year(test_client):
    assert (await test_client.get(f"{TOURS}/monthly-plan/twenty")).status_code == 400
    assert (await test_client.get(f"{TOURS}/monthly-plan/0")).status_code == 400


@pytest.mark.asyncio
async def test_tours_within_endpoint(test_client, sample_tours):
    response = await test_client.get(f"{TOURS}/tours-within/200/center/34.111745,-118.113491/unit/mi")

    assert response.status_code == 200
    body = response.json()
    assert body["results"] == 1
    assert body["data"]["tours"][0]["name"] == "The Park Camper"


@pytest.mark.asyncio
async def test_tours_within_bad_point(test_client):
    response = await test_client.get(f"{TOURS}/tours-within/200/center/34.1/unit/mi")

    assert response.status_code == 400
    assert response.json()["message"] == "Please provide latitude and longitude in the format lat,lng."


@pytest.mark.asyncio
async def test_distances_endpoint(test_client, sample_tours):
    response = await test_client.get(f"{TOURS}/distances/34.111745,-118.113491/unit/km")

    assert response.status_code == 200
    distances = response.json()["data"]["distances"]
    assert len(distances) == 5
    assert set(distances[0]) == {"id", "name", "distance"}
    assert distances[0]["name"] == "The Park Camper"


@pytest.mark.asyncio
async def test_nested_reviews(test_client, sample_tours, sample_users):
    forest = sample_tours["The Forest Hiker"]
    sea = sample_tours["The Sea Explorer"]
    reviewer = sample_users["reviewer"]

    response = await test_client.post(
        f"{TOURS}/{forest.id}/reviews",
        json={"review": "Amazing forest", "rating": 4.66},
        headers=bearer(reviewer.id),
    )
    assert response.status_code == 201
    review = response.json()["data"]["review"]
    assert review["rating"] == 4.7
    assert review["tour"] == str(forest.id)
    assert review["user"]["id"] == str(reviewer.id)

    await test_client.post(
        f"{TOURS}/{sea.id}/reviews",
        json={"review": "Wet but fun", "rating": 3},
        headers=bearer(reviewer.id),
    )

    response = await test_client.get(f"{TOURS}/{forest.id}/reviews")
    assert response.status_code == 200
    body = response.json()
    assert body["results"] == 1
    assert body["data"]["reviews"][0]["review"] == "Amazing forest"


@pytest.mark.asyncio
async def test_review_without_user_is_rejected(test_client, sample_tours):
    forest = sample_tours["The Forest Hiker"]

    response = await test_client.post("/api/v1/reviews", json={
        "review": "Anonymous", "rating": 4, "tour": str(forest.id),
    })

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_review_with_invalid_token(test_client, sample_tours):
    forest = sample_tours["The Forest Hiker"]

    response = await test_client.post(
        "/api/v1/reviews",
        json={"review": "Forged", "rating": 4, "tour": str(forest.id)},
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401
    assert response.json()["status"] == "fail"


@pytest.mark.asyncio
async def test_duplicate_review_is_rejected(test_client, sample_tours, sample_users):
    forest = sample_tours["The Forest Hiker"]
    body = {"review": "Twice", "rating": 4, "tour": str(forest.id), "user": str(sample_users["guide"].id)}

    assert (await test_client.post("/api/v1/reviews", json=body)).status_code == 201
    response = await test_client.post("/api/v1/reviews", json=body)

    assert response.status_code == 400
    assert response.json()["message"].startswith("Duplicate field value")


@pytest.mark.asyncio
async def test_delete_review_resets_rating(test_client, sample_tours, sample_users):
    forest = sample_tours["The Forest Hiker"]
    created = await test_client.post(
        "/api/v1/reviews",
        json={"review": "Fine", "rating": 2, "tour": str(forest.id), "user": str(sample_users["guide"].id)},
    )
    review_id = created.json()["data"]["review"]["id"]

    assert (await test_client.delete(f"/api/v1/reviews/{review_id}")).status_code == 204

    tour = (await test_client.get(f"{TOURS}/{forest.id}")).json()["data"]["tour"]
    assert (tour["ratingsQuantity"], tour["ratingsAverage"]) == (0, 4.5)


@pytest.mark.asyncio
async def test_create_user_hides_password(test_client, user_data):
    response = await test_client.post("/api/v1/users", json=user_data(email="New.Person@Example.com"))

    assert response.status_code == 201
    user = response.json()["data"]["user"]
    assert user["email"] == "new.person@example.com"
    assert user["photo"] == "default.jpg"
    assert "password" not in user
    assert "passwordConfirm" not in user


@pytest.mark.asyncio
async def test_create_user_password_mismatch(test_client, user_data):
    response = await test_client.post("/api/v1/users", json=user_data(passwordConfirm="different1"))

    assert response.status_code == 400
    assert "Passwords are not the same!" in response.json()["message"]


@pytest.mark.asyncio
async def test_create_user_duplicate_email(test_client, user_data):
    assert (await test_client.post("/api/v1/users", json=user_data())).status_code == 201

    response = await test_client.post("/api/v1/users", json=user_data(name="Someone Else"))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_user_cannot_change_password(test_client, sample_users):
    user = sample_users["guide"]

    response = await test_client.patch(f"/api/v1/users/{user.id}", json={"password": "newpass123"})
    assert response.status_code == 400

    response = await test_client.patch(f"/api/v1/users/{user.id}", json={"name": "Head Guide"})
    assert response.status_code == 200
    assert response.json()["data"]["user"]["name"] == "Head Guide"


@pytest.mark.asyncio
async def test_list_users_cannot_filter_on_password(test_client, sample_users):
    response = await test_client.get("/api/v1/users", params={"password": "x"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_booking(test_client, sample_tours, sample_users):
    secret = sample_tours["The Secret Hideaway"]
    user = sample_users["reviewer"]

    response = await test_client.post("/api/v1/bookings", json={
        "tour": str(secret.id), "user": str(user.id), "price": 99,
    })

    assert response.status_code == 201
    booking = response.json()["data"]["booking"]
    assert booking["tour"]["name"] == "The Secret Hideaway"
    assert booking["user"]["name"] == "Avid Reviewer"
    assert booking["paid"] is True

    response = await test_client.get("/api/v1/bookings", params={"tour": str(secret.id)})
    assert response.json()["results"] == 1
