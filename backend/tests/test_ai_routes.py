import base64
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from medistock import models
from medistock.ai.arbiter import ConfidenceArbiter
from medistock.ai.provider_factory import get_ocr_arbiter, get_provider_router
from medistock.ai.providers.base import CandidateResult, ProviderDescriptor, ProviderReply
from medistock.ai.providers.ocr import LocalFallbackProvider
from medistock.ai.router import ProviderRouter
from medistock.db import Base, get_db
from medistock import main as main_module
from medistock.main import app

SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def add_medicine(db, **fields) -> models.CatalogMedicine:
    medicine = models.CatalogMedicine(**fields)
    db.add(medicine)
    db.commit()
    db.refresh(medicine)
    return medicine


def add_stock(db, *, medicine_id: int, pharmacy_id: int, quantity: int) -> None:
    db.add(models.StockItem(medicine_id=medicine_id, pharmacy_id=pharmacy_id, quantity=quantity))
    db.commit()


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class StubCompletion:
    descriptor = ProviderDescriptor(name="stub", capability="general-completion")

    async def invoke(self, request):
        return ProviderReply(text="<think>x</think>Reorder Napa this week.")


class StubOcr:
    descriptor = ProviderDescriptor(name="stub-ocr", capability="ocr")

    async def invoke(self, image):
        return CandidateResult(
            provider="stub-ocr", success=True, payload="Dr. Alam\nNapa 500mg 1+0+1 for 5 days", score=88
        )


@pytest.fixture(autouse=True)
def setup_database(monkeypatch):
    # Lifespan start-up checks the schema on whichever engine main uses.
    monkeypatch.setattr(main_module, "engine", engine)
    monkeypatch.setenv("DB_AUTO_CREATE", "0")
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_provider_router] = lambda: ProviderRouter(providers=[StubCompletion()])
    app.dependency_overrides[get_ocr_arbiter] = lambda: ConfidenceArbiter([StubOcr(), LocalFallbackProvider()])
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_root(client: TestClient):
    assert client.get("/").json() == {"message": "Backend is running"}


def test_chat_returns_sanitized_answer(client: TestClient):
    res = client.post(
        "/ai/chat",
        json={"message": "How should I plan stock?", "conversation_id": "conv-9", "context": {"low_stock_count": 3}},
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["response"] == "Reorder Napa this week."
    assert body["conversation_id"] == "conv-9"
    assert body["language"] == "en"
    assert body["used_knowledge_base"] is False
    assert body["knowledge_base_outcome"] == "not_eligible"


def test_chat_requires_message(client: TestClient):
    res = client.post("/ai/chat", json={"message": "   "})
    assert res.status_code == 400


def test_ocr_picks_best_provider(client: TestClient):
    image = base64.b64encode(b"fake-image").decode("ascii")
    res = client.post("/ai/ocr", json={"image_base64": image, "hint_text": "note"})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success"] is True
    assert body["provider"] == "stub-ocr"
    assert body["confidence"] == 88
    assert body["is_prescription"] is True


def test_ocr_rejects_invalid_base64(client: TestClient):
    res = client.post("/ai/ocr", json={"image_base64": "not base64!!"})
    assert res.status_code == 400


def test_rank_substitutes(client: TestClient):
    payload = {
        "reference": {"generic_name": "Paracetamol", "brand_name": "Napa", "strength": "500mg"},
        "candidates": [
            {"id": 7, "generic_name": "Ibuprofen", "strength": "500mg", "availability": "in_stock"},
            {"generic_name": "Paracetamol", "brand_name": "Ace", "strength": "500mg", "availability": "low_stock"},
        ],
        "max_results": 5,
    }
    res = client.post("/ai/substitutes/rank", json=payload)
    assert res.status_code == 200, res.text
    alternatives = res.json()["alternatives"]
    assert [a["brand_name"] for a in alternatives] == ["Ace", None]
    assert [a["similarity_score"] for a in alternatives] == [100, 85]
    assert alternatives[0]["availability"] == "low_stock"


def test_medicine_alternatives_endpoint(client: TestClient):
    db = TestingSessionLocal()
    try:
        napa = add_medicine(
            db, generic_name="Paracetamol", brand_name="Napa", manufacturer="Beximco", therapeutic_class="Analgesic"
        )
        ace = add_medicine(
            db, generic_name="Paracetamol", brand_name="Ace", manufacturer="Square", therapeutic_class="Analgesic"
        )
        add_stock(db, medicine_id=ace.id, pharmacy_id=1, quantity=40)
        napa_id = napa.id
    finally:
        db.close()

    res = client.get(f"/medicines/{napa_id}/alternatives", params={"pharmacy_id": 1})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["original"]["brand_name"] == "Napa"
    assert body["alternatives"][0]["brand_name"] == "Ace"
    assert body["alternatives"][0]["availability"] == "in_stock"

    missing = client.get("/medicines/999/alternatives", params={"pharmacy_id": 1})
    assert missing.status_code == 404


def test_startup_fails_fast_without_schema(monkeypatch):
    Base.metadata.drop_all(bind=engine)
    with pytest.raises(RuntimeError, match="alembic upgrade head"):
        main_module.init_database()
