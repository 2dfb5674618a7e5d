"""Voice agent call requests and SDK events"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

VOICE_EVENT_TYPES = ("call-start", "call-end", "speech-start", "speech-end", "message", "error")


class StartCallRequest(BaseModel):
    # "generate" calls collect interview parameters, "interview" calls run one
    type: Literal["interview", "generate"] = "interview"
    interviewId: Optional[str] = None
    questions: List[str] = Field(default_factory=list)


class VoiceEvent(BaseModel):
    type: Literal["call-start", "call-end", "speech-start", "speech-end", "message", "error"]
    # For type == "message": {"type": "transcript", "transcriptType": "final", "role": ..., "transcript": ...}
    message: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
