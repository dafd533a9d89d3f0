import os

# Configure the application for tests before importing app modules.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")
os.environ.setdefault("STORAGE_BUCKET_NAME", "test-bucket")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from medreview.auth import create_access_token  # noqa: E402
from medreview.database import Base, get_db  # noqa: E402
from medreview.domain.orders.schemas import OrderCreate  # noqa: E402
from medreview.domain.orders.service import OrderService  # noqa: E402
from medreview.main import app  # noqa: E402
from medreview.models import User, UserRole  # noqa: E402


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.CUSTOMER, **fields) -> User:
        counter["n"] += 1
        data = {
            "name": f"{role.value.title()} {counter['n']}",
            "email": f"{role.value.lower()}{counter['n']}@example.com",
            "role": role.value,
            "is_active": True,
        }
        data.update(fields)
        user = User(**data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def customer(make_user):
    return make_user(UserRole.CUSTOMER, name="Casey Customer")


@pytest.fixture
def reviewer(make_user):
    return make_user(
        UserRole.REVIEWER, name="Dr. Rivera", specialization="Cardiology", hourly_rate=200.0
    )


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
def outsider(make_user):
    return make_user(UserRole.CUSTOMER, name="Other Customer")


@pytest.fixture
def make_order(db):
    def _make(customer: User, total_amount: float = 350.0, **fields) -> object:
        data = OrderCreate(title=fields.pop("title", "Second opinion on MRI"), totalAmount=total_amount, **fields)
        return OrderService(db).create_order(customer.id, data)

    return _make


@pytest.fixture
def assigned_order(db, make_order, customer, reviewer):
    order = make_order(customer)
    return OrderService(db).assign(order.id, reviewer.id)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
