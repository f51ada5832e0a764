# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller: Year and Subject catalogue (any signed-in user)."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pbl_teams.core.dependencies import get_academic_service, get_current_identity
from pbl_teams.models.domain import Identity
from pbl_teams.schemas import SubjectListResponse, SubjectOut, YearListResponse, YearOut
from pbl_teams.services.academic_service import AcademicService

router = APIRouter(prefix="/api/v1/academics", tags=["Academics"])


@router.get("/years", response_model=YearListResponse)
def list_years(
    _: Identity = Depends(get_current_identity),
    service: AcademicService = Depends(get_academic_service),
):
    years = service.list_years()
    return YearListResponse(years=[YearOut(**y.model_dump()) for y in years])


@router.get("/subjects", response_model=SubjectListResponse)
def list_subjects(
    year_id: Optional[str] = Query(default=None, alias="yearId"),
    _: Identity = Depends(get_current_identity),
    service: AcademicService = Depends(get_academic_service),
):
    subjects = service.list_subjects(year_id)
    return SubjectListResponse(subjects=[SubjectOut(**s.model_dump()) for s in subjects])
