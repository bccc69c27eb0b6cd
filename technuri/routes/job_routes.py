from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from technuri.models.job_model import (
    CareerType,
    EmploymentType,
    JobQuery,
    LocationType,
    PaginatedJobs,
    SupportedCompanies,
)
from technuri.services.jobs_service import CompanyNotFoundError, JobsService, JobsServiceError

router = APIRouter()


def get_jobs_service(request: Request) -> JobsService:
    return request.app.state.jobs_service


def job_query(
    department: Optional[str] = Query(None, description="Department, partial match"),
    field: Optional[str] = Query(None, description="Field, partial match, e.g. 'Backend'"),
    career: Optional[CareerType] = Query(None, description="NEW, EXPERIENCED or ANY"),
    employment_type: Optional[EmploymentType] = Query(
        None, alias="employmentType", description="FULL_TIME, CONTRACT or INTERN"
    ),
    location: Optional[LocationType] = Query(None, description="e.g. BUNDANG, SEOUL"),
    keyword: Optional[str] = Query(None, description="Matched against title, description, tags and skills"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
) -> JobQuery:
    return JobQuery(
        department=department,
        field=field,
        career=career,
        employment_type=employment_type,
        location=location,
        keyword=keyword,
        page=page,
        limit=limit,
    )


@router.get("/jobs", response_model=SupportedCompanies, response_model_by_alias=True)
async def get_supported_companies(service: JobsService = Depends(get_jobs_service)):
    """Companies that can be queried, and when the cache was last refreshed."""
    try:
        last_update = await service.get_last_update()
    except JobsServiceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return SupportedCompanies(companies=service.get_supported_companies(), last_update=last_update)


@router.get("/jobs/all", response_model=PaginatedJobs, response_model_by_alias=True)
async def get_all_jobs(
    query: JobQuery = Depends(job_query),
    service: JobsService = Depends(get_jobs_service),
):
    """Tech postings from every company, filtered and paginated."""
    try:
        return await service.get_tech_jobs(query)
    except JobsServiceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/jobs/{company}", response_model=PaginatedJobs, response_model_by_alias=True)
async def get_company_jobs(
    company: str,
    query: JobQuery = Depends(job_query),
    service: JobsService = Depends(get_jobs_service),
):
    """Tech postings from one company, e.g. ``/api/jobs/kakao?career=NEW``."""
    try:
        return await service.get_company_tech_jobs(company, query)
    except CompanyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except JobsServiceError as e:
        raise HTTPException(status_code=500, detail=str(e))
