import math
from typing import List

from technuri.models.job_model import JobPosting, JobQuery, PageMeta, PaginatedJobs


def _contains(haystack: str, needle: str) -> bool:
    return needle.lower() in (haystack or "").lower()


def matches_keyword(job: JobPosting, keyword: str) -> bool:
    """Keyword hits title, description, tags or skills (case-insensitive)."""
    candidates = [job.title, job.description or ""]
    candidates += job.tags or []
    candidates += job.requirements.skills
    return any(_contains(text, keyword) for text in candidates)


def matches_query(job: JobPosting, query: JobQuery) -> bool:
    """All filters present in the query must hold."""
    if query.department and not _contains(job.department, query.department):
        return False
    if query.field and not _contains(job.field, query.field):
        return False
    if query.career and job.requirements.career != query.career:
        return False
    if query.employment_type and job.employment_type != query.employment_type:
        return False
    if query.location and query.location not in job.locations:
        return False
    if query.keyword and not matches_keyword(job, query.keyword):
        return False
    return True


def filter_jobs(jobs: List[JobPosting], query: JobQuery) -> List[JobPosting]:
    if not query.has_filters():
        return list(jobs)
    return [job for job in jobs if matches_query(job, query)]


def paginate(jobs: List[JobPosting], page: int = 1, limit: int = 10) -> PaginatedJobs:
    """Slice ``jobs`` to the 1-based ``page``; pages past the end are empty."""
    total = len(jobs)
    start = (page - 1) * limit
    return PaginatedJobs(
        data=jobs[start:start + limit],
        meta=PageMeta(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        ),
    )
