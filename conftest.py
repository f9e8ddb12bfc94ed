# conftest.py

import os
from datetime import date

import pytest

# Set testing environment BEFORE importing app so app.py picks TestingConfig
os.environ["FLASK_ENV"] = "testing"

from app import app as flask_app  # noqa: E402
from irshad_admin.models import (  # noqa: E402
    AccountType,
    BillingAccount,
    BillingAssignment,
    Person,
    Subscription,
    SubscriptionStatus,
    Teacher,
    db,
)
from irshad_admin.services.family_service import DugsiFamilyService  # noqa: E402
from irshad_admin.services.mahad_service import MahadService  # noqa: E402
from irshad_admin.utils.logging_config import setup_logging  # noqa: E402


@pytest.fixture(scope="function")
def app():
    """Test application with a fresh schema per test"""
    flask_app.config.update(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": False,
            "LOG_LEVEL": "WARNING",
            "WHATSAPP_BULK_DELAY_SECONDS": 0,
        }
    )
    setup_logging(flask_app)

    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Test client for the JSON API"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """CLI runner for ``flask school`` commands"""
    return app.test_cli_runner()


@pytest.fixture
def batch(app):
    return MahadService().create_batch("Fall 2024", date(2024, 9, 1), date(2025, 5, 31))


@pytest.fixture
def mahad_student(app, batch):
    """Enrolled Mahad student in the default batch"""
    return MahadService().create_student(
        name="Yusuf Abdi",
        email="yusuf@example.com",
        phone="(612) 555-0101",
        date_of_birth=date(2003, 4, 12),
        batch_id=batch.id,
    )


@pytest.fixture
def dugsi_family(app):
    """Two-parent Dugsi family with two children"""
    return DugsiFamilyService().register_dugsi_family(
        parents=[
            {"first_name": "Amina", "last_name": "Hassan", "email": "amina@example.com", "phone": "612-555-0111"},
            {"first_name": "Omar", "last_name": "Hassan", "email": "omar@example.com", "phone": "612-555-0112"},
        ],
        children=[
            {"first_name": "Ali", "last_name": "Hassan", "date_of_birth": date(2015, 2, 1)},
            {"first_name": "Hodan", "last_name": "Hassan", "date_of_birth": date(2017, 6, 20)},
        ],
    )


@pytest.fixture
def teacher(app):
    """Teacher working the morning shift"""
    person = Person(name="Ustadh Ibrahim")
    db.session.add(person)
    db.session.flush()
    teacher = Teacher(person=person)
    teacher.set_shifts(["MORNING"])
    db.session.add(teacher)
    db.session.commit()
    return teacher


@pytest.fixture
def dugsi_subscription(app, dugsi_family):
    """Active Dugsi subscription split across the family's children"""
    parent = dugsi_family.guardians[0]
    account = BillingAccount(person_id=parent.id, account_type=AccountType.DUGSI, stripe_customer_id_dugsi="cus_family")
    db.session.add(account)
    db.session.flush()
    subscription = Subscription(
        billing_account=account,
        stripe_account_type=AccountType.DUGSI,
        stripe_subscription_id="sub_family",
        stripe_customer_id="cus_family",
        status=SubscriptionStatus.ACTIVE,
        amount=16000,
    )
    db.session.add(subscription)
    for profile in dugsi_family.profiles:
        db.session.add(BillingAssignment(subscription=subscription, program_profile=profile, amount=8000))
    db.session.commit()
    return subscription


@pytest.fixture
def stripe_subscription():
    """Factory for minimal Stripe subscription objects as returned by the API"""

    def _build(
        subscription_id="sub_test123",
        status="active",
        amount=16000,
        customer="cus_test123",
        period_start=1717200000,
        period_end=1719792000,
    ):
        return {
            "id": subscription_id,
            "object": "subscription",
            "customer": customer,
            "status": status,
            "current_period_start": period_start,
            "current_period_end": period_end,
            "items": {
                "data": [
                    {
                        "price": {
                            "unit_amount": amount,
                            "currency": "usd",
                            "recurring": {"interval": "month"},
                        }
                    }
                ]
            },
        }

    return _build
