from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from voice_policy.backend.adapters.llm_adapter import ResponseGenerator, build_generator
from voice_policy.backend.adapters.sqlite_adapter import SqlitePathwayStore
from voice_policy.backend.config import EngineSettings
from voice_policy.backend.logging_config import get_logger
from voice_policy.backend.services.conductance_service import PathwayAccumulator, PathwayStore
from voice_policy.backend.services.conversation_service import ConversationRegistry
from voice_policy.backend.services.observability import ObservabilitySink
from voice_policy.backend.services.turn_service import TurnPipeline


logger = get_logger("engine")

_REINFORCEMENT_WORKERS = 4


@dataclass
class PolicyEngine:
	settings: EngineSettings
	store: PathwayStore
	accumulator: PathwayAccumulator
	registry: ConversationRegistry
	sink: ObservabilitySink
	pipeline: TurnPipeline
	executor: ThreadPoolExecutor

	def shutdown(self) -> None:
		self.executor.shutdown(wait=True)


def build_engine(
	settings: EngineSettings,
	*,
	store: Optional[PathwayStore] = None,
	generator: Optional[ResponseGenerator] = None,
	sink: Optional[ObservabilitySink] = None,
) -> PolicyEngine:
	pathway_store = store if store is not None else SqlitePathwayStore(settings.db_path)
	accumulator = PathwayAccumulator(pathway_store)
	recorder = getattr(pathway_store, "record_session", None)
	registry = ConversationRegistry(session_recorder=recorder)
	observability = sink or ObservabilitySink()
	executor = ThreadPoolExecutor(max_workers=_REINFORCEMENT_WORKERS, thread_name_prefix="reinforce")
	pipeline = TurnPipeline(
		settings=settings,
		registry=registry,
		accumulator=accumulator,
		generator=generator or build_generator(settings),
		sink=observability,
		executor=executor,
	)
	logger.info(
		"Policy engine ready (env=%s, provider=%s, db=%s)",
		settings.environment,
		settings.effective_provider_mode,
		settings.db_path,
	)
	return PolicyEngine(
		settings=settings,
		store=pathway_store,
		accumulator=accumulator,
		registry=registry,
		sink=observability,
		pipeline=pipeline,
		executor=executor,
	)
