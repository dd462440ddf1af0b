"""Tests for the document injection, inbound message and health endpoints."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from app.config.settings import Settings
from app.dependencies import build_services, get_services
from app.main import app
from app.services.llm_service import LLMTextService

client = TestClient(app)


class RecordingGateway:
    def __init__(self):
        self.sent = []

    async def deliver(self, conversation_id, content):
        self.sent.append((conversation_id, content))
        return f"msg-{len(self.sent)}"

    async def update_message(self, conversation_id, message_id, content):
        return False

    async def delete_message(self, conversation_id, message_id):
        return False

    async def send_typing(self, conversation_id):
        return None


@pytest.fixture
def services(tmp_path):
    test_settings = Settings(DATA_DIR=str(tmp_path / "data"), DOCUMENTS_CONTENT_ROOTS=str(tmp_path))
    wired = build_services(
        test_settings,
        gateway=RecordingGateway(),
        llm=LLMTextService(client=None, model="test-model"),
    )
    app.dependency_overrides[get_services] = lambda: wired
    yield wired
    app.dependency_overrides.clear()
    asyncio.run(wired.http.aclose())


class TestHealthEndpoints:
    """Liveness probes."""

    def test_root(self):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "service": "document-api"}

    def test_healthz(self):
        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["ok"] is True


class TestInjectDocument:
    """POST /api/documents."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"Title": "Spec v2"},
            {"localPath": "docs/spec.txt"},
            {"localPath": "  ", "Title": "Spec v2"},
            {},
        ],
    )
    def test_missing_fields_are_rejected(self, services, payload):
        response = client.post("/api/documents", json=payload)

        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "localPath and Title are required"}
        assert services.store.list_all() == []

    def test_untargeted_document_is_queued(self, services):
        response = client.post("/api/documents", json={"localPath": "docs/spec.txt", "Title": "Spec v2"})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["notified"] is False
        assert body["doc"]["id"] == "DOC-001"
        assert body["doc"]["state"] == "pendingApproval"
        assert body["doc"]["docType"] == "TXT"
        assert len(services.notifications.list_all()) == 1
        assert services.gateway.sent == []

    def test_known_approver_is_notified_right_away(self, services):
        services.directory.upsert("conv-bob", email="bob@example.com", channel_endpoint="https://smba/")

        response = client.post(
            "/api/documents",
            json={"localPath": "docs/spec.txt", "Title": "Spec v2", "ResponsiblePerson": "Bob (Bob@Example.com)"},
        )

        assert response.status_code == 200
        assert response.json()["notified"] is True
        conversation_id, card = services.gateway.sent[0]
        assert conversation_id == "conv-bob"
        assert card["body"][0]["text"] == "New document to approve"
        assert services.notifications.list_all() == []

    def test_unknown_approver_stays_queued(self, services):
        response = client.post(
            "/api/documents",
            json={"localPath": "docs/spec.txt", "Title": "Spec v2", "notifyAadObjectId": "aad-9"},
        )

        assert response.json()["notified"] is False
        entries = services.notifications.list_all()
        assert entries[0].target.identity == "aad-9"

    def test_list_documents(self, services):
        client.post("/api/documents", json={"localPath": "a.txt", "Title": "A"})
        client.post("/api/documents", json={"localPath": "b.txt", "Title": "B"})
        services.store.set_state("DOC-001", "approved")

        all_docs = client.get("/api/documents").json()
        pending = client.get("/api/documents", params={"pending_only": True}).json()

        assert all_docs["success"] is True
        assert [d["Title"] for d in all_docs["data"]] == ["A", "B"]
        assert [d["Title"] for d in pending["data"]] == ["B"]


class TestInboundMessages:
    """POST /api/messages."""

    def test_greeting_is_accepted_and_answered(self, services):
        response = client.post(
            "/api/messages",
            json={
                "conversationId": "conv-1",
                "channelEndpoint": "https://smba/",
                "senderIdentity": "aad-1",
                "senderEmail": "jane@example.com",
                "senderDisplayName": "Jane",
                "text": "hi",
            },
        )

        assert response.status_code == 202
        assert response.json() == {"accepted": True, "conversation_id": "conv-1"}
        assert services.gateway.sent[0][1]["body"][1]["text"] == "Documents pending approval"
        assert services.directory.find_conversation_for(identity="aad-1") == "conv-1"

    def test_event_without_conversation_is_rejected(self, services):
        response = client.post("/api/messages", json={"text": "hi"})

        assert response.status_code == 422
