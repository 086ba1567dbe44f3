"""Simple in-memory store for conversation sessions."""

from __future__ import annotations

from typing import Dict
from uuid import uuid4

from models.session_models import ConversationSession, SessionMessage


class SessionStore:
	"""Manage conversation sessions and their rendered message history."""

	def __init__(self) -> None:
		self._sessions: Dict[str, ConversationSession] = {}

	def create(self) -> ConversationSession:
		"""Create a new session with no remote thread yet."""
		session_id = uuid4().hex
		session = ConversationSession(session_id=session_id)
		self._sessions[session_id] = session
		return session

	def get(self, session_id: str) -> ConversationSession:
		"""Return a session or raise KeyError if missing."""
		session = self._sessions.get(session_id)
		if session is None:
			raise KeyError(f"Session {session_id} not found")
		return session

	def add_message(self, session_id: str, role: str, content: str, html: str = "") -> SessionMessage:
		"""Append a rendered message to the session history."""
		session = self.get(session_id)
		message = SessionMessage(role=role, content=content.strip(), html=html)
		session.messages.append(message)
		return message

	def bind_thread(self, session_id: str, thread_id: str) -> ConversationSession:
		"""Attach the remote thread id; a session is bound at most once."""
		session = self.get(session_id)
		if session.thread_id is not None and session.thread_id != thread_id:
			raise ValueError(f"Session {session_id} is already bound to thread {session.thread_id}")
		session.thread_id = thread_id
		return session
