"""Question bank endpoints."""

from fastapi import APIRouter, Depends, Query, status

from olympiad.auth import SessionData, require_admin
from olympiad.core import questions
from olympiad.web.schemas import (
    Pagination,
    QuestionCreate,
    QuestionDeleteResponse,
    QuestionListResponse,
    QuestionResponse,
    QuestionSelectRequest,
    QuestionSelectResponse,
    QuestionUpdate,
)

router = APIRouter(prefix="/api/olympiad/questions", tags=["questions"])


@router.get("", response_model=QuestionListResponse)
async def list_questions(
    subject: str | None = None,
    education_level: str | None = None,
    stage: str | None = None,
    difficulty: str | None = None,
    question_type: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    _: SessionData = Depends(require_admin),
) -> QuestionListResponse:
    """List active questions."""
    filters = {
        "subject": subject,
        "education_level": education_level,
        "stage": stage,
        "difficulty": difficulty,
        "question_type": question_type,
    }
    rows, total = questions.list_questions(filters, page, limit)
    return QuestionListResponse(
        questions=[QuestionResponse.model_validate(r) for r in rows],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def create_question(
    question_data: QuestionCreate, session: SessionData = Depends(require_admin)
) -> QuestionResponse:
    question = questions.create_question(question_data.model_dump(), admin_id=session.user_id)
    return QuestionResponse.model_validate(question)


@router.post("/select", response_model=QuestionSelectResponse)
async def select_questions(
    request: QuestionSelectRequest, _: SessionData = Depends(require_admin)
) -> QuestionSelectResponse:
    """Draw a random set of questions by difficulty."""
    selected = questions.select_random_questions(
        request.subject,
        request.education_level,
        request.stage,
        request.total_questions,
        per_difficulty=request.questions_per_difficulty,
        exclude_ids=request.exclude_ids,
    )
    return QuestionSelectResponse(
        questions=[QuestionResponse.model_validate(q) for q in selected],
        total_selected=len(selected),
        requested=request.total_questions,
    )


@router.get("/{question_id}", response_model=QuestionResponse)
async def get_question(
    question_id: str, _: SessionData = Depends(require_admin)
) -> QuestionResponse:
    return QuestionResponse.model_validate(questions.get_question_by_id(question_id))


@router.put("/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: str, question_data: QuestionUpdate, _: SessionData = Depends(require_admin)
) -> QuestionResponse:
    question = questions.update_question(
        question_id, question_data.model_dump(exclude_unset=True)
    )
    return QuestionResponse.model_validate(question)


@router.delete("/{question_id}", response_model=QuestionDeleteResponse)
async def delete_question(
    question_id: str, _: SessionData = Depends(require_admin)
) -> QuestionDeleteResponse:
    """Delete a question; used questions are only deactivated."""
    outcome = questions.delete_question(question_id)
    message = (
        "Question deleted successfully"
        if outcome == "deleted"
        else "Question is used in exams and was deactivated"
    )
    return QuestionDeleteResponse(message=message, outcome=outcome)
