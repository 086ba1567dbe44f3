"""Conversation session models for the chat relay."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SessionMessage:
	"""Rendered chat message shown to the user."""

	role: str
	content: str
	html: str = ""
	created_at: float = field(default_factory=lambda: time.time())

	def to_dict(self) -> Dict[str, Any]:
		return {"role": self.role, "content": self.content, "html": self.html, "created_at": self.created_at}


@dataclass
class TurnReply:
	"""Assistant messages produced by one user turn, in display order."""

	session_id: str
	thread_id: Optional[str]
	outcome: str
	messages: List[SessionMessage] = field(default_factory=list)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"session_id": self.session_id,
			"thread_id": self.thread_id,
			"outcome": self.outcome,
			"messages": [message.to_dict() for message in self.messages],
		}


@dataclass
class ConversationSession:
	"""Per-tab conversation state: the remote thread id and rendered history."""

	session_id: str
	thread_id: Optional[str] = None
	messages: List[SessionMessage] = field(default_factory=list)
	turn_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

	@property
	def busy(self) -> bool:
		return self.turn_lock.locked()
