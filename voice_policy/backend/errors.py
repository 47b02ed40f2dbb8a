from __future__ import annotations


class PolicyError(Exception):
	"""Base class for policy engine failures that callers may need to map."""


class InvalidTierError(PolicyError):
	def __init__(self, value: object):
		super().__init__(f"Tier {value!r} is outside the fixed tier set.")
		self.value = value


class ConversationNotFoundError(PolicyError):
	def __init__(self, conversation_id: str):
		super().__init__(f"Conversation '{conversation_id}' is not open.")
		self.conversation_id = conversation_id


class ConversationBusyError(PolicyError):
	def __init__(self, conversation_id: str):
		super().__init__(f"Conversation '{conversation_id}' already has a turn in flight.")
		self.conversation_id = conversation_id


class TurnCancelledError(PolicyError):
	def __init__(self, conversation_id: str):
		super().__init__(f"Turn for conversation '{conversation_id}' was cancelled.")
		self.conversation_id = conversation_id


class ProviderError(PolicyError):
	def __init__(self, *, status_code: int, code: str, message: str):
		super().__init__(message)
		self.status_code = status_code
		self.code = code
		self.message = message
