import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from catalog.database import Base, make_engine, make_session_factory
from catalog.llm_logic import AttributeEnricher
from catalog.main import create_app
from catalog.models import Attribute, AttributeType, Product
from fakes import FakeOpenAI


@pytest.fixture()
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def fake_openai():
    return FakeOpenAI()


@pytest.fixture()
def enricher(fake_openai):
    return AttributeEnricher(fake_openai, model="text-model", vision_model="vision-model", max_retries=2)


@pytest.fixture()
def client(session_factory, enricher):
    return TestClient(create_app(session_factory=session_factory, enricher=enricher))


@pytest.fixture()
def make_attribute(db):
    def _make(name, attr_type=AttributeType.SHORT_TEXT, *, unit=None, options=None, is_required=True):
        attribute = Attribute(
            name=name,
            type=attr_type,
            unit=unit,
            options=list(options or []),
            is_required=is_required,
        )
        db.add(attribute)
        db.commit()
        db.refresh(attribute)
        return attribute
    return _make


@pytest.fixture()
def make_product(db):
    def _make(name="Instant rice fettuccine", brand="Koka", *, barcode=None, images=None, attributes=None):
        product = Product(
            name=name,
            brand=brand,
            barcode=barcode,
            images=list(images or []),
            attributes=dict(attributes or {}),
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make
