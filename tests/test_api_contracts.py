import os
import tempfile
from unittest import TestCase

from fastapi.testclient import TestClient

from voice_policy.backend.adapters.llm_adapter import LocalResponseGenerator
from voice_policy.backend.adapters.sqlite_adapter import SqlitePathwayStore
from voice_policy.backend.config import EngineSettings
from voice_policy.backend.errors import (
	ConversationBusyError,
	ConversationNotFoundError,
	InvalidTierError,
	PolicyError,
	ProviderError,
	TurnCancelledError,
)
from voice_policy.backend.main import create_app
from voice_policy.backend.response import http_exception_for
from voice_policy.backend.services.engine_service import build_engine


COVENANT = "I never told anyone but when I was a kid my father abandoned us and it still haunts me"


class ApiContractsTests(TestCase):
	def setUp(self) -> None:
		self._tmp = tempfile.TemporaryDirectory()
		db_path = os.path.join(self._tmp.name, "pathways.db")
		settings = EngineSettings(db_path=db_path, provider_mode="local")
		self.engine = build_engine(settings, store=SqlitePathwayStore(db_path), generator=LocalResponseGenerator())
		self.client = TestClient(create_app(engine=self.engine))

	def tearDown(self) -> None:
		self.engine.shutdown()
		self._tmp.cleanup()

	def test_classify_returns_classification_logline_and_backchannel(self) -> None:
		response = self.client.post("/api/policy/classify", json={"utterance": COVENANT})
		self.assertEqual(response.status_code, 200)
		payload = response.json()
		self.assertTrue(payload["ok"])
		data = payload["data"]
		self.assertEqual(data["classification"]["tier"], 21)
		self.assertEqual(data["classification"]["response_budget"]["mode"], "COVENANT")
		self.assertIn("therefore", data["logline"])
		self.assertIn("phrase", data["backchannel"])

	def test_classify_accepts_empty_utterance_as_noise(self) -> None:
		response = self.client.post("/api/policy/classify", json={"utterance": "   "})
		self.assertEqual(response.status_code, 200)
		classification = response.json()["data"]["classification"]
		self.assertEqual(classification["tier"], 1)
		self.assertTrue(classification["is_noise"])

	def test_invalid_payload_returns_validation_envelope(self) -> None:
		response = self.client.post("/api/policy/classify", json={"text": "hey"})
		self.assertEqual(response.status_code, 422)
		payload = response.json()
		self.assertFalse(payload["ok"])
		self.assertEqual(payload["error"]["code"], "validation_error")
		self.assertGreaterEqual(len(payload["error"]["evidence"]), 1)

	def test_gate_reports_violations(self) -> None:
		response = self.client.post(
			"/api/policy/gate",
			json={"utterance": COVENANT, "response_text": "You should talk to a therapist about that."},
		)
		self.assertEqual(response.status_code, 200)
		gate = response.json()["data"]["gate"]
		self.assertFalse(gate["pass"])
		self.assertTrue(gate["requires_regeneration"])
		self.assertIn("NEVER_ABANDONS", gate["regeneration_hints"])

	def test_gate_passes_a_calibrated_reply(self) -> None:
		response = self.client.post("/api/policy/gate", json={"utterance": COVENANT, "response_text": "I'm here."})
		self.assertTrue(response.json()["data"]["gate"]["pass"])

	def test_prompt_returns_rendered_bundle(self) -> None:
		response = self.client.post(
			"/api/policy/prompt",
			json={"utterance": COVENANT, "user_id": "user-1", "regeneration_hints": "- NEVER_FILLS: shorter."},
		)
		self.assertEqual(response.status_code, 200)
		bundle = response.json()["data"]["bundle"]
		self.assertTrue(bundle["is_retry"])
		self.assertEqual(bundle["max_tokens"], 32)
		self.assertIn("CRITICAL CORRECTIONS", bundle["instruction"])

	def test_conversation_lifecycle(self) -> None:
		opened = self.client.post("/api/conversations", json={"user_id": "user-1"})
		self.assertEqual(opened.status_code, 200)
		conversation_id = opened.json()["data"]["conversation_id"]

		turn = self.client.post(f"/api/conversations/{conversation_id}/turns", json={"utterance": COVENANT})
		self.assertEqual(turn.status_code, 200)
		data = turn.json()["data"]
		self.assertEqual(data["response_text"], "I'm here.")
		self.assertEqual(data["gate"]["state"], "passed")

		closed = self.client.delete(f"/api/conversations/{conversation_id}")
		self.assertEqual(closed.status_code, 200)
		summary = closed.json()["data"]
		self.assertEqual(summary["turn_count"], 1)
		self.assertTrue(summary["session_recorded"])

		again = self.client.post(f"/api/conversations/{conversation_id}/turns", json={"utterance": "hey"})
		self.assertEqual(again.status_code, 404)
		self.assertEqual(again.json()["error"]["code"], "conversation_not_found")

		landscape = self.client.get("/api/pathways/user-1/landscape")
		self.assertEqual(landscape.status_code, 200)
		data = landscape.json()["data"]["landscape"]
		self.assertEqual(data["session_count"], 1)
		self.assertEqual([pathway["theme"] for pathway in data["pathways"]], ["trauma"])

	def test_open_requires_user_id(self) -> None:
		response = self.client.post("/api/conversations", json={"user_id": "  "})
		self.assertEqual(response.status_code, 422)

	def test_unknown_route_uses_error_envelope(self) -> None:
		response = self.client.get("/api/nothing-here")
		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.json()["error"]["code"], "http_404")

	def test_health_summary_reports_provider_and_storage(self) -> None:
		response = self.client.get("/api/health/summary")
		self.assertEqual(response.status_code, 200)
		data = response.json()["data"]
		self.assertEqual(data["provider"]["mode"], "local")
		self.assertTrue(data["provider"]["ready"])
		self.assertEqual(data["storage"]["status"], "ok")
		self.assertEqual(data["conversations"]["open"], 0)
		self.assertEqual(len(data["gate"]["invariants"]), 5)

	def test_request_id_is_echoed(self) -> None:
		response = self.client.get("/api/health/summary", headers={"X-Request-ID": "req-123"})
		self.assertEqual(response.headers["X-Request-ID"], "req-123")
		self.assertEqual(response.json()["request_id"], "req-123")
		self.assertIn("X-Process-Time", response.headers)


class ErrorMappingTests(TestCase):
	def test_policy_errors_map_to_status_and_code(self) -> None:
		cases = [
			(ConversationNotFoundError("c1"), 404, "conversation_not_found"),
			(ConversationBusyError("c1"), 409, "conversation_busy"),
			(TurnCancelledError("c1"), 409, "turn_cancelled"),
			(InvalidTierError(7), 500, "invalid_tier"),
			(ProviderError(status_code=504, code="provider_timeout", message="slow"), 504, "provider_timeout"),
			(PolicyError("other"), 500, "policy_error"),
		]
		for exc, status_code, code in cases:
			mapped = http_exception_for(exc)
			self.assertEqual(mapped.status_code, status_code)
			self.assertEqual(mapped.detail["code"], code)
