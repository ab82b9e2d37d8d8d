"""Response submission endpoint that takes the survey id from the body."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.database import get_db
from survetic.schemas.response import ResponseOut, SubmitResponseWithSurvey
from survetic.services.response_service import ResponseService

router = APIRouter()


@router.post("", response_model=ResponseOut, status_code=201)
async def submit_response(
    payload: SubmitResponseWithSurvey,
    db: AsyncSession = Depends(get_db),
) -> ResponseOut:
    answers = [answer.model_dump(mode="json", by_alias=True) for answer in payload.answers]
    response = await ResponseService(db).submit(payload.survey_id, answers)
    return ResponseOut.model_validate(response)
