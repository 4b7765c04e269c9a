"""Pydantic schemas for the back-office Web API.

Request bodies are validated here for shape and types; competition rules are
enforced by the core modules.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from olympiad import __version__


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str


class Pagination(BaseModel):
    """Page metadata for list endpoints."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=-(-total // limit))


# =============================================================================
# AUTH SCHEMAS
# =============================================================================


class LoginRequest(BaseModel):
    """Request body for admin or guardian login."""

    email: str = Field(..., min_length=3, max_length=200)
    password: str = Field(..., min_length=1, max_length=200)


class GuardianSignupRequest(BaseModel):
    """Request body for guardian signup."""

    email: str = Field(..., min_length=3, max_length=200)
    password: str = Field(..., min_length=8, max_length=72)
    full_name: str = Field(..., min_length=1, max_length=200)
    relationship: str | None = None
    occupation: str | None = None
    address: str | None = None
    phone_number: str | None = None


class AccountResponse(BaseModel):
    """Logged-in admin or guardian."""

    id: str
    email: str
    full_name: str
    kind: str
    created_at: str
    relationship: str | None = None
    occupation: str | None = None
    address: str | None = None
    phone_number: str | None = None

    model_config = {"from_attributes": True}


# =============================================================================
# MINOR SCHEMAS
# =============================================================================


class MinorCreate(BaseModel):
    """Request body for creating a minor profile."""

    full_name: str = Field(..., min_length=1, max_length=200)
    date_of_birth: str
    gender: str | None = None
    school_name: str | None = None
    class_grade: str | None = None
    district: str | None = None
    national_id: str | None = None
    student_number: str | None = None


class MinorUpdate(BaseModel):
    """Request body for a partial minor profile update."""

    full_name: str | None = Field(default=None, min_length=1, max_length=200)
    date_of_birth: str | None = None
    gender: str | None = None
    school_name: str | None = None
    class_grade: str | None = None
    district: str | None = None
    national_id: str | None = None
    student_number: str | None = None


class MinorResponse(BaseModel):
    """Response for a minor profile."""

    id: str
    guardian_id: str
    full_name: str
    date_of_birth: str
    gender: str | None = None
    school_name: str | None = None
    class_grade: str | None = None
    district: str | None = None
    national_id: str | None = None
    student_number: str | None = None
    enrollment_count: int | None = None
    created_at: str
    updated_at: str


class MinorListResponse(BaseModel):
    minors: list[MinorResponse]
    count: int


# =============================================================================
# EDITION SCHEMAS
# =============================================================================


class EditionCreate(BaseModel):
    """Request body for creating an edition.

    Level, subject and age settings left out are filled from configuration.
    """

    name: str = Field(..., min_length=1, max_length=200)
    year: int = Field(..., ge=2000, le=2100)
    theme: str | None = None
    description: str | None = None
    enrollment_start: str
    enrollment_end: str
    status: str = "DRAFT"
    active_levels: list[str] | None = None
    active_subjects: dict[str, list[str]] | None = None
    age_rules: dict[str, dict[str, int]] | None = None
    max_subjects_per_participant: int | None = Field(default=None, ge=1)
    reference_date: str | None = None


class EditionUpdate(BaseModel):
    """Request body for a partial edition update."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    year: int | None = Field(default=None, ge=2000, le=2100)
    theme: str | None = None
    description: str | None = None
    enrollment_start: str | None = None
    enrollment_end: str | None = None
    status: str | None = None
    active_levels: list[str] | None = None
    active_subjects: dict[str, list[str]] | None = None
    age_rules: dict[str, dict[str, int]] | None = None
    max_subjects_per_participant: int | None = Field(default=None, ge=1)
    reference_date: str | None = None


class StageUpdate(BaseModel):
    """Request body for stage dates and advancement rules.

    Sending a rule as null removes it.
    """

    start_date: str | None = None
    end_date: str | None = None
    pass_percentage: float | None = None
    top_percent: float | None = None
    pass_count: int | None = None


class StageResponse(BaseModel):
    """Response for an edition stage."""

    id: str
    edition_id: str
    stage_number: int
    stage_name: str
    start_date: str | None = None
    end_date: str | None = None
    pass_percentage: float | None = None
    top_percent: float | None = None
    pass_count: int | None = None


class EditionResponse(BaseModel):
    """Response for an edition."""

    id: str
    name: str
    year: int
    theme: str | None = None
    description: str | None = None
    enrollment_start: str
    enrollment_end: str
    status: str
    active_levels: list[str]
    active_subjects: dict[str, list[str]]
    age_rules: dict[str, dict[str, int]]
    max_subjects_per_participant: int
    reference_date: str | None = None
    created_by_admin_id: str
    created_by_name: str | None = None
    participant_count: int | None = None
    created_at: str
    updated_at: str
    stages: list[StageResponse] | None = None
    statistics: dict[str, Any] | None = None


class EditionListResponse(BaseModel):
    editions: list[EditionResponse]
    count: int


# =============================================================================
# PARTICIPANT SCHEMAS
# =============================================================================


class EnrollmentCreate(BaseModel):
    """Request body for an admin enrollment."""

    edition_id: str
    user_id: str | None = None
    minor_profile_id: str | None = None
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=200)
    phone: str | None = None
    date_of_birth: str | None = None
    education_level: str
    school_name: str | None = None
    district: str | None = None
    subjects: list[str] = Field(default_factory=list)
    parent_consent: bool = False
    consent_given_by: str | None = None
    consent_contact: str | None = None


class GuardianEnrollmentCreate(BaseModel):
    """Request body for a guardian enrolling one of their minors."""

    minor_profile_id: str
    edition_id: str
    education_level: str
    subjects: list[str] = Field(default_factory=list)
    email: str | None = None
    phone: str | None = None
    school_name: str | None = None
    district: str | None = None


class ParticipantActionRequest(BaseModel):
    """Request body for PUT /api/olympiad/participants."""

    id: str
    action: str
    data: dict[str, Any] = Field(default_factory=dict)


class ParticipantResponse(BaseModel):
    """Response for a participant."""

    id: str
    user_id: str
    minor_profile_id: str | None = None
    edition_id: str
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    date_of_birth: str | None = None
    education_level: str
    school_name: str | None = None
    district: str | None = None
    subjects: list[str]
    enrollment_date: str
    parent_consent: bool
    consent_given_by: str | None = None
    consent_contact: str | None = None
    is_active: bool
    current_stage: str
    created_at: str
    updated_at: str
    edition_name: str | None = None
    edition_year: int | None = None
    edition_status: str | None = None
    stage_score: float | None = None
    stage_percentage: float | None = None
    stage_rank: int | None = None
    can_progress: bool | None = None
    exam_sessions_count: int | None = None
    answered_questions_count: int | None = None


class ParticipantListResponse(BaseModel):
    participants: list[ParticipantResponse]
    pagination: Pagination


class EnrollmentListResponse(BaseModel):
    enrollments: list[ParticipantResponse]
    count: int


# =============================================================================
# QUESTION SCHEMAS
# =============================================================================


class QuestionCreate(BaseModel):
    """Request body for adding a question to the bank."""

    question_text: str = Field(..., min_length=1)
    question_type: str
    difficulty: str
    subject: str
    education_level: str
    stage: str
    options: list[str] | None = None
    correct_answer: str
    explanation: str | None = None
    points_value: float = Field(default=1.0, gt=0)
    time_limit_seconds: int = Field(default=60, ge=1)


class QuestionUpdate(BaseModel):
    """Request body for a partial question update."""

    question_text: str | None = Field(default=None, min_length=1)
    question_type: str | None = None
    difficulty: str | None = None
    subject: str | None = None
    education_level: str | None = None
    stage: str | None = None
    options: list[str] | None = None
    correct_answer: str | None = None
    explanation: str | None = None
    points_value: float | None = Field(default=None, gt=0)
    time_limit_seconds: int | None = Field(default=None, ge=1)
    is_active: bool | None = None


class QuestionResponse(BaseModel):
    """Response for a question bank entry."""

    id: str
    question_text: str
    question_type: str
    difficulty: str
    subject: str
    education_level: str
    stage: str
    options: list[str] | None = None
    correct_answer: str
    explanation: str | None = None
    points_value: float
    time_limit_seconds: int | None = None
    is_active: bool
    created_by_admin_id: str
    created_at: str
    updated_at: str


class QuestionListResponse(BaseModel):
    questions: list[QuestionResponse]
    pagination: Pagination


class QuestionSelectRequest(BaseModel):
    """Request body for random question selection."""

    subject: str
    education_level: str
    stage: str
    total_questions: int = Field(..., ge=1, le=500)
    questions_per_difficulty: dict[str, int] | None = None
    exclude_ids: list[str] = Field(default_factory=list)


class QuestionSelectResponse(BaseModel):
    questions: list[QuestionResponse]
    total_selected: int
    requested: int


class QuestionDeleteResponse(BaseModel):
    message: str
    outcome: str


# =============================================================================
# EXAM SCHEMAS
# =============================================================================


class ExamConfigCreate(BaseModel):
    """Request body for an exam configuration."""

    edition_id: str
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    education_level: str
    subject: str
    stage: str
    total_questions: int = Field(..., ge=1, le=500)
    questions_per_difficulty: dict[str, int] | None = None
    randomize_questions: bool = True
    randomize_options: bool = True
    duration_minutes: int = Field(..., ge=1)
    start_time: str | None = None
    end_time: str | None = None
    requires_supervision: bool = False
    max_attempts: int = Field(default=1, ge=1)
    status: str = "draft"


class ExamConfigUpdate(BaseModel):
    """Request body for PUT /api/olympiad/exams/configurations."""

    id: str
    status: str | None = None
    start_time: str | None = None
    end_time: str | None = None


class ExamConfigResponse(BaseModel):
    """Response for an exam configuration."""

    id: str
    edition_id: str
    name: str
    description: str | None = None
    education_level: str
    subject: str
    stage: str
    total_questions: int
    questions_per_difficulty: dict[str, int]
    randomize_questions: bool
    randomize_options: bool
    duration_minutes: int
    start_time: str | None = None
    end_time: str | None = None
    requires_supervision: bool
    max_attempts: int
    status: str
    created_by_admin_id: str
    created_at: str
    updated_at: str
    edition_name: str | None = None
    created_by_name: str | None = None
    session_count: int | None = None


class ExamConfigListResponse(BaseModel):
    configurations: list[ExamConfigResponse]
    count: int


class SessionCreate(BaseModel):
    """Request body for opening an exam session."""

    exam_config_id: str
    participant_id: str


class SessionActionRequest(BaseModel):
    """Request body for PUT /api/olympiad/exams/sessions."""

    session_id: str
    action: str
    data: dict[str, Any] = Field(default_factory=dict)


class ExamSessionResponse(BaseModel):
    """Response for an exam session."""

    id: str
    exam_config_id: str
    participant_id: str
    session_code: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    last_activity_at: str | None = None
    duration_minutes: int
    time_remaining_seconds: int | None = None
    is_paused: bool
    status: str
    total_score: float
    max_score: float
    percentage_score: float
    created_at: str
    updated_at: str
    exam_name: str | None = None
    subject: str | None = None
    stage: str | None = None
    education_level: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class SessionQuestionResponse(BaseModel):
    """Question as delivered to a participant (no answer)."""

    id: str
    question_text: str
    question_type: str
    difficulty: str
    options: list[str]
    points_value: float
    time_limit_seconds: int | None = None


class SessionCreateResponse(BaseModel):
    session: ExamSessionResponse
    questions: list[SessionQuestionResponse]
    message: str


class SessionListResponse(BaseModel):
    sessions: list[ExamSessionResponse]
    count: int


class AvailableExamResponse(BaseModel):
    """Exam offered to a participant (no bank or creator details)."""

    id: str
    name: str
    description: str | None = None
    education_level: str
    subject: str
    stage: str
    total_questions: int
    duration_minutes: int
    start_time: str | None = None
    end_time: str | None = None
    max_attempts: int
    status: str


class ParticipantExamsResponse(BaseModel):
    exams: list[AvailableExamResponse]
    sessions: list[ExamSessionResponse]


class SessionDetailResponse(BaseModel):
    session: ExamSessionResponse
    questions: list[SessionQuestionResponse]


class SessionActionResponse(BaseModel):
    success: bool = True
    session: ExamSessionResponse
    message: str


# =============================================================================
# MARKING SCHEMAS
# =============================================================================


class MarkingItemCreate(BaseModel):
    """Request body for queueing an answer manually."""

    session_id: str
    question_id: str
    answer_id: str


class MarkingActionRequest(BaseModel):
    """Request body for PUT /api/olympiad/marking/queue."""

    marking_id: str
    action: str
    data: dict[str, Any] = Field(default_factory=dict)


class MarkingItemResponse(BaseModel):
    """Response for a marking queue item."""

    id: str
    session_id: str
    question_id: str
    answer_id: str
    assigned_marker_id: str | None = None
    marked_by_admin_id: str | None = None
    status: str
    auto_score: float | None = None
    manual_score: float | None = None
    final_score: float | None = None
    marker_feedback: str | None = None
    moderator_feedback: str | None = None
    assigned_at: str | None = None
    marking_started_at: str | None = None
    marking_completed_at: str | None = None
    created_at: str
    updated_at: str
    max_points: float | None = None
    selected_answer: str | None = None
    question_text: str | None = None
    question_type: str | None = None
    subject: str | None = None
    education_level: str | None = None
    correct_answer: str | None = None
    explanation: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    exam_name: str | None = None
    marker_name: str | None = None


class MarkingListResponse(BaseModel):
    items: list[MarkingItemResponse]
    pagination: Pagination


class MarkingActionResponse(BaseModel):
    success: bool = True
    marking_item: MarkingItemResponse
    message: str


# =============================================================================
# PROGRESSION SCHEMAS
# =============================================================================


class ProgressionRecordRequest(BaseModel):
    """Request body for recording a stage score."""

    participant_id: str
    edition_id: str
    current_stage: str
    stage_score: float = Field(default=0, ge=0)
    stage_max_score: float = Field(default=0, ge=0)
    can_progress: bool = False
    progression_reason: str | None = None


class ProgressionActionRequest(BaseModel):
    """Request body for PUT /api/olympiad/progression."""

    action: str
    data: dict[str, Any] = Field(default_factory=dict)


class ProgressionResponse(BaseModel):
    """Response for a stage progression row."""

    id: str
    participant_id: str
    edition_id: str
    current_stage: str
    stage_completed: bool
    completion_date: str | None = None
    stage_score: float
    stage_max_score: float
    stage_percentage: float
    stage_rank: int | None = None
    total_participants: int | None = None
    can_progress: bool
    progression_reason: str | None = None
    created_at: str
    updated_at: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    education_level: str | None = None
    school_name: str | None = None
    district: str | None = None
    edition_name: str | None = None


class ProgressionListResponse(BaseModel):
    progressions: list[ProgressionResponse]
    pagination: Pagination


class ProgressionActionResponse(BaseModel):
    success: bool = True
    result: dict[str, Any]
    message: str


class LeaderboardEntry(BaseModel):
    participant_id: str
    first_name: str
    last_name: str
    education_level: str
    school_name: str | None = None
    district: str | None = None
    stage_score: float
    stage_max_score: float
    stage_percentage: float
    stage_rank: int
    total_participants: int | None = None
    can_progress: bool


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    count: int


# =============================================================================
# FINALS SCHEMAS
# =============================================================================


class VenueCreate(BaseModel):
    """Request body for a final venue."""

    edition_id: str
    education_level: str
    subject: str
    venue_name: str = Field(..., min_length=1, max_length=200)
    venue_address: str | None = None
    venue_map_link: str | None = None
    district: str | None = None
    event_date: str
    capacity: int | None = Field(default=None, ge=1)


class VenueUpdate(BaseModel):
    venue_name: str | None = Field(default=None, min_length=1, max_length=200)
    venue_address: str | None = None
    venue_map_link: str | None = None
    district: str | None = None
    event_date: str | None = None
    capacity: int | None = Field(default=None, ge=1)


class VenueResponse(BaseModel):
    id: str
    edition_id: str
    education_level: str
    subject: str
    venue_name: str
    venue_address: str | None = None
    venue_map_link: str | None = None
    district: str | None = None
    event_date: str
    capacity: int | None = None
    assigned_count: int | None = None
    edition_name: str | None = None
    created_at: str
    updated_at: str


class ResultCreate(BaseModel):
    """Request body for registering a finalist at a venue."""

    participant_id: str
    final_venue_id: str
    subject: str | None = None
    attendance_status: str | None = None
    final_score: float | None = Field(default=None, ge=0)
    final_rank: int | None = Field(default=None, ge=1)
    award_category: str | None = None
    certificate_url: str | None = None


class ResultUpdate(BaseModel):
    attendance_status: str | None = None
    final_score: float | None = Field(default=None, ge=0)
    final_rank: int | None = Field(default=None, ge=1)
    award_category: str | None = None
    certificate_url: str | None = None


class ResultResponse(BaseModel):
    id: str
    participant_id: str
    final_venue_id: str
    subject: str
    attendance_status: str | None = None
    final_score: float | None = None
    final_rank: int | None = None
    award_category: str | None = None
    certificate_url: str | None = None
    entered_by_admin_id: str | None = None
    entered_at: str | None = None
    created_at: str
    updated_at: str
    first_name: str | None = None
    last_name: str | None = None
    school_name: str | None = None
    district: str | None = None
    venue_name: str | None = None
    education_level: str | None = None
    event_date: str | None = None


class FinalsOverviewResponse(BaseModel):
    venues: list[VenueResponse]
    results: list[ResultResponse]
    pagination: Pagination


class VenueRankingResponse(BaseModel):
    venue_id: str
    results: list[ResultResponse]
    ranked: int


# =============================================================================
# DATABASE, STORIES AND HEALTH SCHEMAS
# =============================================================================


class DatabaseStatusResponse(BaseModel):
    initialized: bool
    tables: list[str]
    schema_version: int
    message: str


class StoryCreate(BaseModel):
    """Request body for a success story."""

    title: str = Field(..., min_length=1, max_length=300)
    summary: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    featured_image_url: str | None = None
    video_url: str | None = None
    quote: str | None = None
    category: str | None = None
    year: int | None = None
    is_featured: bool = False
    status: str = Field(default="draft", pattern="^(draft|published)$")
    published_at: str | None = None


class StoryResponse(BaseModel):
    id: str
    title: str
    summary: str
    body: str
    featured_image_url: str | None = None
    video_url: str | None = None
    quote: str | None = None
    category: str | None = None
    year: int | None = None
    is_featured: bool
    status: str
    published_at: str | None = None
    created_at: str


class StoryCreatedResponse(BaseModel):
    id: str
    message: str


class HealthResponse(BaseModel):
    """Response for health check."""

    status: str = "ok"
    version: str = __version__
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
