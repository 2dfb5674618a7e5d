"""
Server-side state for voice agent calls.

The voice SDK runs in the client; it relays its events here so the call
status and the final transcript live on the server. When an interview
call ends, the transcript goes straight to the feedback evaluator.

    INACTIVE -> CONNECTING -> ACTIVE -> FINISHED
                    |            |
                    +-- error ---+--> INACTIVE
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.schemas.voice import VoiceEvent
from careerpilot.services import app_events
from careerpilot.services.feedback_service import create_feedback
from careerpilot.utils.errors import AppError
from careerpilot.utils.logger import logger

# Finished calls stay readable this long; unfinished ones are dropped after MAX_CALL_AGE
FINISHED_RETENTION = timedelta(minutes=10)
MAX_CALL_AGE = timedelta(hours=2)
MAX_SESSIONS = 1000


class CallStatus(str, Enum):
    INACTIVE = "INACTIVE"
    CONNECTING = "CONNECTING"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"


class CallNotFoundError(AppError):
    def __init__(self, call_id: str):
        super().__init__("Call not found", code="CALL_NOT_FOUND", status_code=404, context={"call_id": call_id})


class CallFinishedError(AppError):
    def __init__(self, call_id: str):
        super().__init__("Call already finished", code="CALL_FINISHED", status_code=409, context={"call_id": call_id})


@dataclass
class VoiceSession:
    user_id: str
    type: str
    interview_id: Optional[str] = None
    questions: List[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: CallStatus = CallStatus.CONNECTING
    is_speaking: bool = False
    messages: List[Dict[str, str]] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: Optional[datetime] = None
    last_error: Optional[str] = None
    feedback: Optional[Dict[str, Any]] = None

    @property
    def duration_seconds(self) -> float:
        end = self.ended_at or datetime.now(timezone.utc)
        return round((end - self.started_at).total_seconds(), 1)

    def is_expired(self, now: datetime) -> bool:
        if self.ended_at is not None:
            return now - self.ended_at > FINISHED_RETENTION
        return now - self.started_at > MAX_CALL_AGE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "callId": self.id,
            "userId": self.user_id,
            "type": self.type,
            "interviewId": self.interview_id,
            "questions": self.questions,
            "status": self.status.value,
            "isSpeaking": self.is_speaking,
            "messages": self.messages,
            "lastMessage": self.messages[-1]["content"] if self.messages else None,
            "startedAt": self.started_at.isoformat(),
            "endedAt": self.ended_at.isoformat() if self.ended_at else None,
            "error": self.last_error,
            "feedback": self.feedback,
        }


class VoiceSessionManager:
    """In-memory registry of calls for this process."""

    def __init__(self, max_sessions: int = MAX_SESSIONS):
        self.max_sessions = max_sessions
        self._sessions: Dict[str, VoiceSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Drop expired calls, then the oldest ones while over max_sessions."""
        now = now or datetime.now(timezone.utc)
        expired = [call_id for call_id, s in self._sessions.items() if s.is_expired(now)]
        for call_id in expired:
            del self._sessions[call_id]

        overflow = len(self._sessions) - self.max_sessions + 1
        if overflow > 0:
            oldest = sorted(self._sessions.values(), key=lambda s: s.started_at)[:overflow]
            for session in oldest:
                del self._sessions[session.id]
            expired.extend(s.id for s in oldest)

        if expired:
            logger.info(f"Evicted {len(expired)} voice call session(s)")
        return len(expired)

    def start_call(
        self,
        user_id: str,
        call_type: str = "interview",
        interview_id: Optional[str] = None,
        questions: Optional[List[str]] = None,
    ) -> VoiceSession:
        if call_type == "interview" and not interview_id:
            raise AppError("interviewId is required for interview calls", code="VALIDATION_ERROR", status_code=400)

        self.sweep()

        session = VoiceSession(
            user_id=user_id,
            type=call_type,
            interview_id=interview_id,
            questions=list(questions or []),
        )
        self._sessions[session.id] = session
        app_events.track_interview_start(interview_id or session.id, call_type, "voice", call_id=session.id)
        return session

    def get(self, call_id: str, user_id: Optional[str] = None) -> VoiceSession:
        session = self._sessions.get(call_id)
        if session is None or (user_id is not None and session.user_id != user_id):
            raise CallNotFoundError(call_id)
        return session

    async def handle_event(self, db: AsyncSession, call_id: str, event: VoiceEvent, user_id: Optional[str] = None) -> VoiceSession:
        session = self.get(call_id, user_id)
        if session.status == CallStatus.FINISHED:
            raise CallFinishedError(call_id)

        if event.type == "call-start":
            session.status = CallStatus.ACTIVE
        elif event.type == "speech-start":
            session.is_speaking = True
        elif event.type == "speech-end":
            session.is_speaking = False
        elif event.type == "message":
            self._on_message(session, event.message or {})
        elif event.type == "error":
            session.status = CallStatus.INACTIVE
            session.is_speaking = False
            session.last_error = event.error or "Unknown voice agent error"
            logger.warning(f"Voice call error: {session.last_error}", extra={"call_id": call_id})
        elif event.type == "call-end":
            await self._on_call_end(db, session)

        return session

    def _on_message(self, session: VoiceSession, message: Dict[str, Any]) -> None:
        # Partial transcripts are ignored
        if message.get("type") != "transcript" or message.get("transcriptType") != "final":
            return
        session.messages.append({
            "role": str(message.get("role", "")),
            "content": str(message.get("transcript", "")),
        })

    async def _on_call_end(self, db: AsyncSession, session: VoiceSession) -> None:
        session.status = CallStatus.FINISHED
        session.is_speaking = False
        session.ended_at = datetime.now(timezone.utc)

        if session.type == "generate":
            return
        if not session.messages:
            logger.warning("Interview call ended without a transcript", extra={"call_id": session.id})
            session.feedback = {"success": False}
            return

        session.feedback = await create_feedback(
            db,
            session.interview_id,
            session.user_id,
            session.messages,
            duration=session.duration_seconds,
        )

    def clear(self) -> None:
        self._sessions.clear()


_manager: Optional[VoiceSessionManager] = None


def get_session_manager() -> VoiceSessionManager:
    global _manager
    if _manager is None:
        _manager = VoiceSessionManager()
    return _manager
