from datetime import timedelta

import pytest
from django.utils import timezone

from accounts.models import User
from deals.models import Deal
from deals.services import activate_deal, create_deal
from realestate.models import Developer
from realestate.services import create_project

DEAL_TIERS = [
    {"min_participants": 1, "max_participants": 20, "discount_percent": 0},
    {"min_participants": 21, "max_participants": 40, "discount_percent": 5},
    {"min_participants": 41, "max_participants": 60, "discount_percent": 10},
    {"min_participants": 61, "max_participants": 100, "discount_percent": 18},
]

PROJECT_TIERS = [
    {"min_participants": 1, "max_participants": 3, "discount_percent": 4},
    {"min_participants": 4, "max_participants": 6, "discount_percent": 8},
]


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
    )


@pytest.fixture
def supplier_user(db):
    return User.objects.create_user(
        email="supplier@test.com",
        password="testpass123",
        first_name="Awa",
        last_name="Fournisseur",
        role=User.Role.SUPPLIER,
    )


@pytest.fixture
def developer_user(db):
    return User.objects.create_user(
        email="promoteur@test.com",
        password="testpass123",
        first_name="Serge",
        last_name="Promoteur",
        role=User.Role.DEVELOPER,
    )


@pytest.fixture
def customer_user(db):
    return User.objects.create_user(
        email="client@test.com",
        password="testpass123",
        first_name="Jean",
        last_name="Client",
        phone="+237699999999",
        role=User.Role.CUSTOMER,
    )


@pytest.fixture
def make_customer(db):
    counter = {"n": 0}

    def _make(**kwargs):
        counter["n"] += 1
        n = counter["n"]
        defaults = {
            "email": f"client{n}@test.com",
            "password": "testpass123",
            "first_name": "Client",
            "last_name": str(n),
            "role": User.Role.CUSTOMER,
        }
        defaults.update(kwargs)
        return User.objects.create_user(**defaults)

    return _make


@pytest.fixture
def draft_deal(supplier_user):
    return create_deal(
        supplier_user,
        name="Ventilateur sur pied",
        category=Deal.Category.ELECTRICAL,
        original_price=4500,
        total_capacity=100,
        waiting_list_capacity=20,
        target_participants=60,
        min_participants=2,
        end_time=timezone.now() + timedelta(days=3),
        tiers=DEAL_TIERS,
    )


@pytest.fixture
def deal(draft_deal, supplier_user):
    return activate_deal(draft_deal, actor=supplier_user)


@pytest.fixture
def small_deal(supplier_user):
    """Two seats and one waiting-list slot."""
    deal = create_deal(
        supplier_user,
        name="Mixeur",
        category=Deal.Category.ELECTRICAL,
        original_price=1000,
        total_capacity=2,
        waiting_list_capacity=1,
        target_participants=2,
        end_time=timezone.now() + timedelta(days=1),
        tiers=[
            {"min_participants": 1, "max_participants": 1, "discount_percent": 0},
            {"min_participants": 2, "max_participants": 2, "discount_percent": 10},
        ],
    )
    return activate_deal(deal, actor=supplier_user)


@pytest.fixture
def developer(developer_user):
    return Developer.objects.create(user=developer_user, name="Mbarga Immobilier")


@pytest.fixture
def project(developer):
    now = timezone.now()
    return create_project(
        developer,
        name="Residence Les Palmiers",
        city="Yaounde",
        market_price_baseline=1_000_000,
        total_capacity=6,
        waiting_list_capacity=2,
        pre_registration_deadline=now + timedelta(days=7),
        webinar_at=now + timedelta(days=10),
        confirmation_deadline=now + timedelta(days=14),
        tiers=PROJECT_TIERS,
    )
