"""Wire messages exchanged over the session WebSocket.

Every message is a JSON object tagged by ``type``. Client requests are
parsed into one discriminated union; server pushes are plain models that
serialise with ``to_wire``.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from agents.types import Question, Response, TelemetryFrame, TelemetrySnapshot, VoiceAnalysis
from engine.errors import SessionError
from engine.state import Progress
from services.analytics import Analytics
from services.scoring import OverallScores


# Client -> server


class JoinMessage(BaseModel):
    type: Literal["join"] = "join"


class StartMessage(BaseModel):
    type: Literal["start"] = "start"


class SubmitAnswerMessage(BaseModel):
    type: Literal["submit-answer"] = "submit-answer"
    answer: str
    telemetry_snapshot: Optional[TelemetrySnapshot] = None
    audio_url: Optional[str] = None
    duration: float = Field(default=0.0, ge=0)


class PauseMessage(BaseModel):
    type: Literal["pause"] = "pause"


class ResumeMessage(BaseModel):
    type: Literal["resume"] = "resume"


class EndMessage(BaseModel):
    type: Literal["end"] = "end"
    reason: Optional[str] = None


class TranscriptionCompleteMessage(BaseModel):
    type: Literal["transcription-complete"] = "transcription-complete"
    voice_analysis: VoiceAnalysis


class UpdateDraftMessage(BaseModel):
    type: Literal["update-draft"] = "update-draft"
    text: str = ""


class TelemetryMessage(BaseModel):
    type: Literal["telemetry"] = "telemetry"
    frame: TelemetryFrame


class VisibilityChangeMessage(BaseModel):
    type: Literal["visibility-change"] = "visibility-change"
    hidden: bool


ClientMessage = Annotated[
    Union[
        JoinMessage,
        StartMessage,
        SubmitAnswerMessage,
        PauseMessage,
        ResumeMessage,
        EndMessage,
        TranscriptionCompleteMessage,
        UpdateDraftMessage,
        TelemetryMessage,
        VisibilityChangeMessage,
    ],
    Field(discriminator="type"),
]

_client_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(data: Any) -> ClientMessage:
    """Validate a raw JSON frame or a decoded object.

    Malformed JSON and unknown shapes both raise ``pydantic.ValidationError``.
    """

    if isinstance(data, (str, bytes)):
        return _client_adapter.validate_json(data)
    return _client_adapter.validate_python(data)


# Server -> client


class ServerMessage(BaseModel):
    type: str

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class JoinedMessage(ServerMessage):
    type: Literal["joined"] = "joined"
    session_id: str
    status: str
    question: Optional[Question] = None
    progress: Progress
    difficulty: str


class AlreadyCompleteMessage(ServerMessage):
    type: Literal["session-already-complete"] = "session-already-complete"
    session_id: str
    status: str
    cause: Optional[str] = None
    overall_scores: OverallScores
    analytics: Optional[Analytics] = None
    completed_at: Optional[datetime] = None


class QuestionMessage(ServerMessage):
    type: Literal["question"] = "question"
    question: Question
    progress: Progress
    difficulty: str


class AnswerProcessingMessage(ServerMessage):
    type: Literal["answer-processing"] = "answer-processing"
    status: Literal["evaluating", "generating-question"]


class AnswerEvaluatedMessage(ServerMessage):
    type: Literal["answer-evaluated"] = "answer-evaluated"
    response: Response
    progress: Progress
    overall_scores: OverallScores


class DifficultyAdjustedMessage(ServerMessage):
    type: Literal["difficulty-adjusted"] = "difficulty-adjusted"
    from_level: str
    to_level: str
    reason: str
    note: str = ""


class SessionCompleteMessage(ServerMessage):
    type: Literal["session-complete"] = "session-complete"
    session_id: str
    status: str
    cause: Optional[str] = None
    overall_scores: OverallScores
    analytics: Optional[Analytics] = None
    completed_at: Optional[datetime] = None


class PausedMessage(ServerMessage):
    type: Literal["paused"] = "paused"


class ResumedMessage(ServerMessage):
    type: Literal["resumed"] = "resumed"
    question: Optional[Question] = None
    progress: Progress


class TranscriptionSavedMessage(ServerMessage):
    type: Literal["transcription-saved"] = "transcription-saved"
    voice_analysis: VoiceAnalysis


class IntegrityWarningMessage(ServerMessage):
    type: Literal["integrity-warning"] = "integrity-warning"
    status: Optional[str] = None
    count: int
    limit: int
    action: str
    message: str


class TabSwitchWarningMessage(ServerMessage):
    type: Literal["tab-switch-warning"] = "tab-switch-warning"
    count: int
    display_count: int
    limit: int
    flagged: bool
    message: str


class ErrorMessage(ServerMessage):
    type: Literal["error"] = "error"
    message: str
    kind: Literal["fatal", "rate_limit", "general"] = "general"
    retry_after: Optional[int] = None
    details: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_error(cls, exc: SessionError) -> "ErrorMessage":
        return cls(message=exc.message, kind=exc.kind, retry_after=exc.retry_after)


__all__ = [
    "AlreadyCompleteMessage",
    "AnswerEvaluatedMessage",
    "AnswerProcessingMessage",
    "ClientMessage",
    "DifficultyAdjustedMessage",
    "EndMessage",
    "ErrorMessage",
    "IntegrityWarningMessage",
    "JoinMessage",
    "JoinedMessage",
    "PauseMessage",
    "PausedMessage",
    "QuestionMessage",
    "ResumeMessage",
    "ResumedMessage",
    "ServerMessage",
    "SessionCompleteMessage",
    "StartMessage",
    "SubmitAnswerMessage",
    "TabSwitchWarningMessage",
    "TelemetryMessage",
    "TranscriptionCompleteMessage",
    "TranscriptionSavedMessage",
    "UpdateDraftMessage",
    "VisibilityChangeMessage",
    "parse_client_message",
]
