"""
Pytest configuration and fixtures
"""
import pytest

from kzinvoice.app import create_app
from kzinvoice.database import db


@pytest.fixture
def app(tmp_path):
    """Create an app bound to an in-memory database"""
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "UPLOAD_DIR": str(tmp_path),
        }
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sample_supplier():
    """Sample supplier payload"""
    return {
        "name": 'ТОО "АлмаСервис"',
        "bin": "123456789012",
        "address": "г. Алматы, ул. Абая 1",
        "bank": 'АО "Kaspi Bank"',
        "bik": "CASPKZKA",
        "iik": "KZ12722S000000000001",
        "kbe": "17",
        "payment_code": "859",
    }


@pytest.fixture
def sample_buyer():
    """Sample buyer payload"""
    return {
        "name": 'ТОО "Покупатель"',
        "bin": "987654321098",
        "address": "г. Астана, пр. Мангилик Ел 10",
    }


@pytest.fixture
def sample_invoice(sample_supplier, sample_buyer):
    """Sample invoice payload with inline parties"""
    return {
        "invoice_number": "15",
        "invoice_date": "2025-12-15",
        "supplier": sample_supplier,
        "buyer": sample_buyer,
        "items": [
            {"name": "Консультационные услуги", "quantity": 2, "unit": "час", "price": 150000},
            {"name": "Подготовка отчета", "quantity": 1, "unit": "услуга", "price": 250.5},
        ],
    }
