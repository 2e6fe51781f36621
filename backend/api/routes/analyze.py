"""
Analyze API Routes

Natural-language analytical questions answered from a data source.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_engine
from api.schemas.requests import AnalyzeRequest
from api.schemas.responses import AnalyzeResponse
from core.logging_config import api_logger as logger
from engine.analyzer import AnalyticalEngine


router = APIRouter()


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    request: AnalyzeRequest,
    engine: AnalyticalEngine = Depends(get_engine),
) -> AnalyzeResponse:
    """
    Answer an analytical question.

    Pass back the returned `context` with the next question to resolve
    follow-ups such as "now by month". Questions the engine cannot
    answer come back with handled=false.
    """
    context = request.context.to_context() if request.context else None

    try:
        result = await engine.analyze(
            request.query,
            request.data_source_id,
            context=context,
            hints=request.to_hints(),
        )
    except Exception as e:
        logger.exception(f"Error analyzing '{request.query}': {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Error analyzing query: {str(e)}"
        )

    if result is None:
        logger.info(f"Query not handled: '{request.query}'")
        return AnalyzeResponse.unhandled(request.data_source_id)
    return AnalyzeResponse.from_result(result)
