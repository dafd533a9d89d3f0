"""User directory tests"""

import pytest
from pydantic import ValidationError

from medreview.domain.users.schemas import AvailabilityUpdate, UserCreate, UserUpdate
from medreview.domain.users.service import UserService
from medreview.models import UserRole
from medreview.shared.exceptions import Conflict, Forbidden, InvalidInput, InvalidReviewer, NotFound


class TestSignup:
    def test_customer_signup_normalizes_contact_details(self, db):
        user = UserService(db).signup(
            UserCreate(name="Jo Patient", email=" Jo@Example.COM ", phone="(555) 123-4567")
        )

        assert user.role == UserRole.CUSTOMER.value
        assert user.email == "jo@example.com"
        assert user.phone == "+15551234567"
        assert user.is_active is True

    def test_reviewer_signup_keeps_professional_fields(self, db):
        user = UserService(db).signup(
            UserCreate(
                name="Dr. Lee",
                email="lee@example.com",
                role=UserRole.REVIEWER,
                specialization="Radiology",
                licenseNumber="MD-1",
                hourlyRate=180,
            )
        )
        assert user.specialization == "Radiology"
        assert user.license_number == "MD-1"
        assert user.hourly_rate == 180

    def test_customer_signup_ignores_professional_fields(self, db):
        user = UserService(db).signup(
            UserCreate(name="Sam", email="sam@example.com", specialization="Radiology")
        )
        assert user.specialization is None

    def test_duplicate_email_is_case_insensitive(self, db, customer):
        with pytest.raises(Conflict):
            UserService(db).signup(UserCreate(name="Copy", email=customer.email.upper()))

    def test_admin_cannot_self_register(self, db):
        with pytest.raises(Forbidden):
            UserService(db).signup(UserCreate(name="Root", email="root@example.com", role=UserRole.ADMIN))

    def test_invalid_email_and_phone(self):
        with pytest.raises(ValidationError):
            UserCreate(name="Bad", email="not-an-email")
        with pytest.raises(ValidationError):
            UserCreate(name="Bad", email="bad@example.com", phone="123")

    def test_name_is_escaped(self, db):
        user = UserService(db).signup(UserCreate(name="<b>Eve</b>", email="eve@example.com"))
        assert user.name == "&lt;b&gt;Eve&lt;/b&gt;"


class TestProfile:
    def test_update_profile_leaves_unset_fields(self, db, reviewer):
        user = UserService(db).update_profile(reviewer, UserUpdate(hourlyRate=250))
        assert user.hourly_rate == 250
        assert user.name == "Dr. Rivera"

    def test_deactivate_and_reactivate(self, db, reviewer):
        service = UserService(db)
        assert service.set_active(reviewer.id, False).is_active is False
        assert service.list_reviewers() == []
        assert service.set_active(reviewer.id, True).is_active is True

    def test_list_reviewers_by_specialization(self, db, reviewer, make_user):
        make_user(UserRole.REVIEWER, specialization="Dermatology")
        found = UserService(db).list_reviewers("cardio")
        assert [u.id for u in found] == [reviewer.id]

    def test_missing_user(self, db):
        with pytest.raises(NotFound):
            UserService(db).get_user(31337)


class TestDirectory:
    def test_search_matches_name_email_and_specialization(self, db, customer, outsider, reviewer, admin):
        service = UserService(db)

        assert [u.id for u in service.search("CARDIO")] == [reviewer.id]
        assert [u.id for u in service.search("customer")] == [customer.id, outsider.id]
        assert [u.id for u in service.search("@example.com", role=UserRole.ADMIN.value)] == [admin.id]
        assert service.search("customer", role=UserRole.REVIEWER.value) == []

    def test_search_requires_term(self, db):
        with pytest.raises(InvalidInput):
            UserService(db).search(" ")

    def test_stats(self, db, customer, outsider, reviewer, admin):
        reviewer.email_verified = True
        outsider.is_active = False
        db.commit()

        stats = UserService(db).stats()

        assert stats["total_users"] == 4
        assert stats["active_users"] == 3
        assert stats["verified_users"] == 1
        assert stats["by_role"] == {
            UserRole.CUSTOMER.value: 2,
            UserRole.REVIEWER.value: 1,
            UserRole.ADMIN.value: 1,
        }


class TestAvailability:
    def test_reviewer_publishes_availability(self, db, reviewer):
        slots = AvailabilityUpdate(availableSlots={"Monday": [{"start": "09:00", "end": "12:00"}]})
        user = UserService(db).update_availability(reviewer, slots.availableSlots)
        assert user.available_slots == {"monday": [{"start": "09:00", "end": "12:00"}]}

    def test_customer_has_no_availability(self, db, customer):
        with pytest.raises(InvalidReviewer):
            UserService(db).update_availability(customer, {"monday": []})

    @pytest.mark.parametrize(
        "slots",
        [
            {"funday": [{"start": "09:00", "end": "10:00"}]},
            {"monday": [{"start": "9am", "end": "10:00"}]},
            {"monday": [{"start": "12:00", "end": "10:00"}]},
        ],
    )
    def test_invalid_availability(self, slots):
        with pytest.raises(ValidationError):
            AvailabilityUpdate(availableSlots=slots)
