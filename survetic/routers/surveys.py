"""Survey endpoints: authoring, public view, responses, stats and export."""
import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.database import get_db
from survetic.dependencies import get_current_user
from survetic.models.user import User
from survetic.schemas.response import ResponseOut, SubmitResponseRequest
from survetic.schemas.survey import SurveyCreate, SurveyOut, SurveyStats, SurveyUpdate
from survetic.services.response_service import ResponseService
from survetic.services.survey_service import SurveyService

logger = logging.getLogger(__name__)

router = APIRouter()


def _dump_questions(questions) -> list[dict]:
    return [question.model_dump(mode="json", by_alias=True) for question in questions]


def _survey_changes(payload: SurveyUpdate) -> dict:
    """Translate the fields present in an update payload into column values."""
    provided = payload.model_fields_set
    changes = {}
    if "title" in provided and payload.title is not None:
        changes["title"] = payload.title
    if "description" in provided:
        changes["description"] = payload.description
    if "questions" in provided and payload.questions is not None:
        changes["questions"] = _dump_questions(payload.questions)
    if "theme" in provided and payload.theme is not None:
        changes["theme"] = payload.theme.model_dump(mode="json", by_alias=True, exclude_none=True)
    if "is_published" in provided and payload.is_published is not None:
        changes["is_published"] = payload.is_published
    return changes


@router.get("", response_model=list[SurveyOut])
async def list_surveys(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[SurveyOut]:
    """List the caller's surveys, most recently updated first."""
    surveys = await SurveyService(db).list_for_owner(user)
    return [SurveyOut.model_validate(survey) for survey in surveys]


@router.post("", response_model=SurveyOut, status_code=201)
async def create_survey(
    payload: SurveyCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyOut:
    survey = await SurveyService(db).create(
        user,
        title=payload.title,
        description=payload.description,
        questions=_dump_questions(payload.questions),
        theme=payload.theme.model_dump(mode="json", by_alias=True, exclude_none=True),
        is_published=payload.is_published,
    )
    return SurveyOut.model_validate(survey)


@router.get("/{survey_id}", response_model=SurveyOut)
async def get_survey(
    survey_id: int,
    request: Request,
    public: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
) -> SurveyOut:
    """Fetch a survey.

    ``?public=true`` is the respondent view and needs no credentials, but
    only published surveys are visible. Otherwise the caller must own it.
    """
    service = SurveyService(db)
    if public:
        survey = await service.get_public(survey_id)
    else:
        user = await get_current_user(request, request.headers.get("Authorization"), db)
        survey = await service.get_for_edit(survey_id, user)
    return SurveyOut.model_validate(survey)


@router.put("/{survey_id}", response_model=SurveyOut)
@router.patch("/{survey_id}", response_model=SurveyOut)
async def update_survey(
    survey_id: int,
    payload: SurveyUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyOut:
    survey = await SurveyService(db).update(survey_id, user, _survey_changes(payload))
    return SurveyOut.model_validate(survey)


@router.delete("/{survey_id}", status_code=204)
async def delete_survey(
    survey_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await SurveyService(db).delete(survey_id, user)
    return Response(status_code=204)


@router.get("/{survey_id}/responses", response_model=list[ResponseOut])
async def list_responses(
    survey_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ResponseOut]:
    responses = await ResponseService(db).list_for_survey(survey_id, user)
    return [ResponseOut.model_validate(response) for response in responses]


@router.post("/{survey_id}/responses", response_model=ResponseOut, status_code=201)
async def submit_response(
    survey_id: int,
    payload: SubmitResponseRequest,
    db: AsyncSession = Depends(get_db),
) -> ResponseOut:
    """Anonymous submission; the survey must be published."""
    answers = [answer.model_dump(mode="json", by_alias=True) for answer in payload.answers]
    response = await ResponseService(db).submit(survey_id, answers)
    return ResponseOut.model_validate(response)


@router.get("/{survey_id}/stats", response_model=SurveyStats)
async def survey_stats(
    survey_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyStats:
    stats = await SurveyService(db).get_stats(survey_id, user)
    return SurveyStats.model_validate(stats)


@router.get("/{survey_id}/export")
async def export_responses(
    survey_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download all responses as CSV."""
    content = await SurveyService(db).export_csv(survey_id, user)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="survey-{survey_id}-responses.csv"'},
    )
