"""
Tests for the legal directory: search, profiles, reviews with rating
recompute, and consultation requests.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from civisure.auth import AuthContext
from civisure.errors import Conflict
from civisure.lawyers import submit_review
from civisure.models import Lawyer, LawyerReview, ConsultationRequest
from tests.conftest import create_user


async def add_lawyer(db, full_name, specialization, city, rating=0.0, total_reviews=0, bio=None):
    entry = Lawyer(
        full_name=full_name,
        email=f"{full_name.lower().replace(' ', '.')}@example.com",
        phone="+27 11 555 0000",
        specialization=specialization,
        education="LLB",
        bar_registration=f"REG-{full_name[:3].upper()}",
        office_address="1 Court Road",
        city=city,
        state="Gauteng",
        bio=bio,
        rating=rating,
        total_reviews=total_reviews,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


def context_for(user) -> AuthContext:
    return AuthContext(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        session_id="test-session",
    )


# =============================================================================
# DIRECTORY
# =============================================================================

class TestSearch:
    async def test_ordered_by_rating_then_review_count(self, client, db):
        await add_lawyer(db, "Thabo Mokoena", "Family Law", "Johannesburg", rating=4.0, total_reviews=10)
        await add_lawyer(db, "Anna Botha", "Criminal Law", "Pretoria", rating=4.5, total_reviews=2)
        await add_lawyer(db, "Sipho Dlamini", "Criminal Law", "Johannesburg", rating=4.0, total_reviews=30)

        response = await client.get("/api/lawyers")
        assert response.status_code == 200
        names = [l["full_name"] for l in response.json()["lawyers"]]
        assert names == ["Anna Botha", "Sipho Dlamini", "Thabo Mokoena"]

    async def test_filters(self, client, db):
        await add_lawyer(db, "Thabo Mokoena", "Family Law", "Johannesburg", rating=3.0)
        await add_lawyer(db, "Anna Botha", "Criminal Law", "Pretoria", rating=4.5,
                         bio="Former prosecutor")

        async def names(**params):
            response = await client.get("/api/lawyers", params=params)
            return [l["full_name"] for l in response.json()["lawyers"]]

        assert await names(specialization="Criminal Law") == ["Anna Botha"]
        assert await names(city="johannes") == ["Thabo Mokoena"]
        assert await names(minRating=4) == ["Anna Botha"]
        assert await names(search="prosecutor") == ["Anna Botha"]

    async def test_specializations(self, client, db):
        await add_lawyer(db, "Thabo Mokoena", "Family Law", "Johannesburg")
        await add_lawyer(db, "Anna Botha", "Criminal Law", "Pretoria")
        await add_lawyer(db, "Sipho Dlamini", "Criminal Law", "Durban")

        response = await client.get("/api/lawyers/meta/specializations")
        assert response.json()["specializations"] == [
            {"specialization": "Criminal Law", "count": 2},
            {"specialization": "Family Law", "count": 1},
        ]


class TestProfile:
    async def test_profile_with_reviews(self, auth_client, lawyer, test_user):
        await auth_client.post(f"/api/lawyers/{lawyer.id}/reviews", json={
            "rating": 5, "reviewText": "Very helpful",
        })

        response = await auth_client.get(f"/api/lawyers/{lawyer.id}")
        body = response.json()
        assert body["lawyer"]["full_name"] == "Adv. Priya Naidoo"
        assert len(body["reviews"]) == 1
        assert body["reviews"][0]["user_name"] == "Test User"
        assert body["reviews"][0]["review_text"] == "Very helpful"

    async def test_missing_lawyer(self, client):
        response = await client.get("/api/lawyers/9999")
        assert response.status_code == 404
        assert response.json()["message"] == "Lawyer not found"


# =============================================================================
# REVIEWS
# =============================================================================

class TestReviews:
    async def test_review_updates_rating(self, auth_client, lawyer, db):
        response = await auth_client.post(f"/api/lawyers/{lawyer.id}/reviews", json={"rating": 4})
        assert response.status_code == 201
        assert response.json()["message"] == "Review submitted successfully"

        await db.refresh(lawyer)
        assert lawyer.rating == 4.0
        assert lawyer.total_reviews == 1

    async def test_rating_is_mean_of_all_reviews(self, auth_client, admin_client, lawyer, db):
        await auth_client.post(f"/api/lawyers/{lawyer.id}/reviews", json={"rating": 5})
        await admin_client.post(f"/api/lawyers/{lawyer.id}/reviews", json={"rating": 2})

        await db.refresh(lawyer)
        assert lawyer.rating == pytest.approx(3.5)
        assert lawyer.total_reviews == 2

    async def test_duplicate_review_conflict(self, auth_client, lawyer, db):
        await auth_client.post(f"/api/lawyers/{lawyer.id}/reviews", json={"rating": 5})
        response = await auth_client.post(f"/api/lawyers/{lawyer.id}/reviews", json={"rating": 1})
        assert response.status_code == 409
        assert response.json()["message"] == "You have already reviewed this lawyer"

        await db.refresh(lawyer)
        assert lawyer.rating == 5.0
        assert lawyer.total_reviews == 1

    @pytest.mark.parametrize("rating", [0, 6, None])
    async def test_rating_out_of_range(self, auth_client, lawyer, rating):
        response = await auth_client.post(f"/api/lawyers/{lawyer.id}/reviews", json={"rating": rating})
        assert response.status_code == 400
        assert response.json()["message"] == "Rating must be between 1 and 5"

    async def test_review_missing_lawyer(self, auth_client):
        response = await auth_client.post("/api/lawyers/9999/reviews", json={"rating": 3})
        assert response.status_code == 404

    async def test_review_requires_login(self, client, lawyer):
        response = await client.post(f"/api/lawyers/{lawyer.id}/reviews", json={"rating": 3})
        assert response.status_code == 401

    async def test_many_reviewers_all_counted(self, lawyer, db):
        """Each review contributes to the aggregate exactly once."""
        ratings = [5, 4, 3, 5, 1]
        for i, rating in enumerate(ratings):
            reviewer = await create_user(db, f"reviewer{i}@example.com", f"Reviewer {i}")
            await submit_review(db, context_for(reviewer), lawyer.id, rating)

        await db.refresh(lawyer)
        assert lawyer.total_reviews == len(ratings)
        assert lawyer.rating == pytest.approx(sum(ratings) / len(ratings))

    async def test_service_rejects_second_review(self, db, lawyer, test_user):
        await submit_review(db, context_for(test_user), lawyer.id, 3)

        with pytest.raises(Conflict):
            await submit_review(db, context_for(test_user), lawyer.id, 4)
        reviews = (await db.execute(select(LawyerReview))).scalars().all()
        assert len(reviews) == 1

    async def test_database_rejects_duplicate_review(self, db, lawyer, test_user):
        """The (lawyer, user) unique constraint holds even without the pre-check."""
        db.add(LawyerReview(lawyer_id=lawyer.id, user_id=test_user.id, rating=3))
        await db.commit()

        db.add(LawyerReview(lawyer_id=lawyer.id, user_id=test_user.id, rating=4))
        with pytest.raises(IntegrityError):
            await db.commit()
        await db.rollback()


# =============================================================================
# CONSULTATIONS
# =============================================================================

class TestConsultations:
    async def test_request_consultation(self, auth_client, lawyer, test_user, db):
        response = await auth_client.post(f"/api/lawyers/{lawyer.id}/consultation", json={
            "caseType": "Assault",
            "description": "I was attacked and need advice on laying charges.",
            "preferredDate": "2026-11-02",
        })
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Consultation request sent successfully"

        request = await db.get(ConsultationRequest, body["request_id"])
        assert request.user_id == test_user.id
        assert request.status == "pending"
        assert request.preferred_date == "2026-11-02"

    async def test_missing_fields(self, auth_client, lawyer):
        response = await auth_client.post(f"/api/lawyers/{lawyer.id}/consultation", json={"caseType": "Assault"})
        assert response.status_code == 400
        assert response.json()["message"] == "Case type and description are required"

    async def test_missing_lawyer(self, auth_client):
        response = await auth_client.post("/api/lawyers/9999/consultation", json={
            "caseType": "Assault", "description": "Help",
        })
        assert response.status_code == 404

    async def test_my_consultations(self, auth_client, lawyer, db, admin_user):
        await auth_client.post(f"/api/lawyers/{lawyer.id}/consultation", json={
            "caseType": "Theft", "description": "Stolen car",
        })
        db.add(ConsultationRequest(
            user_id=admin_user.id, lawyer_id=lawyer.id, case_type="Other", description="Not mine",
        ))
        await db.commit()

        consultations = (await auth_client.get("/api/lawyers/user/consultations")).json()["consultations"]
        assert len(consultations) == 1
        assert consultations[0]["case_type"] == "Theft"
        assert consultations[0]["lawyer_name"] == "Adv. Priya Naidoo"
        assert consultations[0]["lawyer_email"] == "priya.naidoo@example.com"
        assert consultations[0]["specialization"] == "Criminal Law"
