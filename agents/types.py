"""Shared type definitions for interview questions, answers and scores."""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

QuestionType = Literal["open-ended", "technical", "coding", "scenario", "follow-up"]
DifficultyLevel = Literal["easy", "medium", "hard", "expert"]
InterviewType = Literal["hr", "technical", "behavioral", "system-design"]
Personality = Literal["strict", "friendly", "professional"]
BehaviorStatus = Literal["good", "looking-away", "fidgeting"]

DIFFICULTY_LADDER: List[str] = ["easy", "medium", "hard", "expert"]

EVALUATED_DIMENSIONS = ("correctness", "reasoning", "communication", "structure", "confidence")
DIMENSIONS = EVALUATED_DIMENSIONS + ("posture_and_presence",)

TIMEOUT_SENTINEL = "[TIME_EXPIRED_NO_ANSWER]"


def default_weights() -> Dict[str, float]:
    return {
        "correctness": 0.30,
        "reasoning": 0.25,
        "communication": 0.20,
        "confidence": 0.15,
        "structure": 0.10,
    }


class Question(BaseModel):
    text: str
    type: QuestionType = "open-ended"
    difficulty: DifficultyLevel = "medium"
    time_allowed: float = Field(default=120.0, gt=0)  # seconds
    expected_topics: List[str] = Field(default_factory=list)
    scoring_weights: Dict[str, float] = Field(default_factory=default_weights)
    category: Optional[str] = None


class Answer(BaseModel):
    text: str = ""
    audio_url: Optional[str] = None
    duration: float = 0.0
    skipped: bool = False  # timeout sentinel, scored as zero
    timed_out: bool = False


class FillerWord(BaseModel):
    word: str
    count: int = 0


class VoiceAnalysis(BaseModel):
    transcription: str = ""
    confidence: float = 70.0
    hesitation_count: int = 0
    filler_words: List[FillerWord] = Field(default_factory=list)
    long_pauses: int = 0
    clarity_score: float = 70.0
    words_per_minute: float = 140.0

    @property
    def filler_total(self) -> int:
        return sum(item.count for item in self.filler_words)


class BodyLanguage(BaseModel):
    eye_contact_score: int = Field(default=0, ge=0, le=100)
    posture_score: int = Field(default=0, ge=0, le=100)
    fidget_count: int = 0
    face_visible_time: float = 0.0


class DimensionScore(BaseModel):
    score: int = Field(default=0, ge=0, le=100)
    max_score: int = 100
    feedback: str = ""


class Scores(BaseModel):
    correctness: DimensionScore = Field(default_factory=DimensionScore)
    reasoning: DimensionScore = Field(default_factory=DimensionScore)
    communication: DimensionScore = Field(default_factory=DimensionScore)
    structure: DimensionScore = Field(default_factory=DimensionScore)
    confidence: DimensionScore = Field(default_factory=DimensionScore)
    posture_and_presence: DimensionScore = Field(default_factory=DimensionScore)
    overall: int = 0


class AiAnalysis(BaseModel):
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    key_topics_covered: List[str] = Field(default_factory=list)
    key_topics_missed: List[str] = Field(default_factory=list)


class Response(BaseModel):
    question_index: int
    question: Question
    answer: Answer
    voice_analysis: Optional[VoiceAnalysis] = None
    body_language: Optional[BodyLanguage] = None
    scores: Scores = Field(default_factory=Scores)
    ai_analysis: AiAnalysis = Field(default_factory=AiAnalysis)
    follow_up_question: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class EvalDimension(BaseModel):
    score: int = Field(ge=0, le=100)
    feedback: str = ""


class EvaluationResult(BaseModel):
    """Evaluation Service reply for a single answer."""

    correctness: EvalDimension
    reasoning: EvalDimension
    communication: EvalDimension
    structure: EvalDimension
    confidence: EvalDimension
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    key_topics_covered: List[str] = Field(default_factory=list)
    key_topics_missed: List[str] = Field(default_factory=list)
    follow_up_question: Optional[str] = None


class GeneratedQuestion(BaseModel):
    """Evaluation Service reply for a question request."""

    text: str = Field(min_length=1)
    type: str = "open-ended"
    expected_topics: List[str] = Field(default_factory=list)
    time_allowed: Optional[float] = Field(default=None, gt=0)
    category: Optional[str] = None


class TelemetryFrame(BaseModel):
    """One sampled camera observation."""

    face_visible: bool = True
    looking_away: bool = False
    nose_x: Optional[float] = None
    nose_y: Optional[float] = None
    at: Optional[float] = None  # seconds on the client's monotonic clock
    diagnostics: List[str] = Field(default_factory=list)


class TelemetrySnapshot(BaseModel):
    frames_assessed: int = 0
    frames_looking_at_camera: int = 0
    fidget_frames: int = 0
    face_missing_frames: int = 0
    face_visible_seconds: float = 0.0
    eye_contact_score: int = Field(default=100, ge=0, le=100)
    posture_score: int = Field(default=100, ge=0, le=100)

    def to_body_language(self) -> BodyLanguage:
        return BodyLanguage(
            eye_contact_score=self.eye_contact_score,
            posture_score=self.posture_score,
            fidget_count=self.fidget_frames,
            face_visible_time=round(self.face_visible_seconds, 2),
        )
