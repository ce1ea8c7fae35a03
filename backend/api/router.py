from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import get_scoring_policy
from config import settings
from models.requests import FinalEvaluationRequest, ScoreAnswerRequest
from models.responses import FinalReport, ScoreAnswerResponse
from services import answer_scorer
from services.pipeline import orchestrator
from services.scoring_policy import ScoringPolicy

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.get("/health")
async def health():
    if settings.cometapi_api_key:
        provider = "cometapi"
    elif settings.gemini_api_key:
        provider = "gemini"
    else:
        provider = None
    return {
        "status": "ok",
        "llm_configured": provider is not None,
        "provider": provider,
    }


@router.post("/interview/score", response_model=ScoreAnswerResponse)
@limiter.limit("30/minute")
async def score_answer(
    request: Request,
    payload: dict[str, Any] = Body(...),
    policy: ScoringPolicy = Depends(get_scoring_policy),
):
    question = payload.get("question")
    if not isinstance(question, str) or not question.strip():
        raise HTTPException(status_code=400, detail="Missing question")
    if not isinstance(payload.get("answer"), str):
        raise HTTPException(status_code=400, detail="Answer must be a string")

    try:
        body = ScoreAnswerRequest.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid request: {e.error_count()} field error(s)")

    return await answer_scorer.score_answer(
        question=body.question,
        answer=body.answer or "",
        body_language=body.body_language,
        asr_confidence=body.assembly_confidence,
        expected_keywords=body.expected_keywords,
        context=body.interview_context,
        policy=policy,
    )


@router.post("/interview/final", response_model=FinalReport)
@limiter.limit("10/minute")
async def final_evaluation(
    request: Request,
    payload: dict[str, Any] = Body(...),
    policy: ScoringPolicy = Depends(get_scoring_policy),
):
    try:
        body = FinalEvaluationRequest.model_validate(payload)
        return await orchestrator.finalize(
            body.route,
            body.student_profile,
            body.conversation_history,
            body.per_answer_scores,
            policy=policy,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid request: {e.error_count()} field error(s)")
    except orchestrator.InvalidEvaluationInput as e:
        raise HTTPException(status_code=400, detail=str(e))
