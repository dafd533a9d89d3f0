"""Free-text sanitizing must respect the stored column sizes"""

import pytest
from pydantic import ValidationError

from medreview.domain.orders.schemas import OrderCreate, OrderUpdate
from medreview.domain.reviews.schemas import ReviewCreate, ReviewUpdate
from medreview.domain.users.schemas import UserCreate
from medreview.models import Order, Review, User
from medreview.shared.sanitization import validate_and_sanitize_input


def column_length(model, name):
    return model.__table__.c[name].type.length


class TestValidateAndSanitizeInput:
    def test_escapes_markup(self):
        assert validate_and_sanitize_input("<b>R&D</b>") == "&lt;b&gt;R&amp;D&lt;/b&gt;"

    def test_limit_applies_to_escaped_value(self):
        assert validate_and_sanitize_input("&" * 10, max_length=50) == "&amp;" * 10
        with pytest.raises(ValueError):
            validate_and_sanitize_input("&" * 11, max_length=50)

    def test_control_characters_are_removed(self):
        assert validate_and_sanitize_input("a\x00b\tc") == "ab\tc"

    def test_none_passes_through(self):
        assert validate_and_sanitize_input(None) is None


class TestStoredLengths:
    def test_order_title_that_grows_past_column_is_rejected(self):
        with pytest.raises(ValidationError):
            OrderCreate(title="R&D " * 50, totalAmount=10)
        with pytest.raises(ValidationError):
            OrderUpdate(title="R&D " * 50)

    def test_review_title_that_grows_past_column_is_rejected(self):
        with pytest.raises(ValidationError):
            ReviewCreate(orderId=1, title="<" * 200, content="Body")
        with pytest.raises(ValidationError):
            ReviewUpdate(title="<" * 200)

    def test_user_name_that_grows_past_column_is_rejected(self):
        with pytest.raises(ValidationError):
            UserCreate(name='"' * 255, email="quotes@example.com")

    def test_accepted_values_fit_their_columns(self):
        order = OrderCreate(title="&" * 40, description="<p>" * 100, totalAmount=10)
        review = ReviewCreate(orderId=1, title="R&D " * 20, content="Body")
        user = UserCreate(name="<" * 63, email="angles@example.com")

        assert len(order.title) <= column_length(Order, "title")
        assert len(order.description) <= column_length(Order, "description")
        assert len(review.title) <= column_length(Review, "title")
        assert len(user.name) <= column_length(User, "name")

    def test_escaped_title_at_column_limit_is_stored(self, db, customer, make_order):
        order = make_order(customer, title="&" * 40)
        db.refresh(order)
        assert order.title == "&amp;" * 40
        assert len(order.title) == column_length(Order, "title")
