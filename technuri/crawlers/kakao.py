import logging
from typing import Any, Dict, List, Optional

from technuri.core.config import settings
from technuri.crawlers import base
from technuri.crawlers.base import EmptyResponseError
from technuri.crawlers.heuristics import (
    dedupe,
    extract_skills,
    html_to_lines,
    infer_field,
    infer_job_category,
    map_career,
    map_employment_type,
    map_location,
    normalize_skills,
)
from technuri.models.job_model import CompanyType, JobPosting, JobQuery, LocationType
from technuri.services.http_client import HttpClient

logger = logging.getLogger(__name__)

PREFERENCE_MARKERS = ("우대사항", "우대 사항", "[우대")
IGNORED_SKILL_SETS = {"etc", "기타", ""}


def split_qualification(text: Optional[str]):
    """Split Kakao's qualification blob into (requirements, preferences)."""
    required: List[str] = []
    preferred: List[str] = []
    target = required
    for line in html_to_lines(text):
        if any(marker in line for marker in PREFERENCE_MARKERS):
            target = preferred
            continue
        target.append(line)
    return required, preferred


class KakaoCrawler:
    """Reads Kakao's public job-list JSON API."""

    company = CompanyType.KAKAO
    base_url = "https://careers.kakao.com"

    def __init__(self, http_client: HttpClient, max_pages: Optional[int] = None):
        self.http_client = http_client
        self.max_pages = max_pages or settings.JOB_MAX_PAGES

    def get_job_detail_url(self, job_id: str) -> str:
        return f"{self.base_url}/jobs/{job_id}"

    def is_valid_posting(self, posting: JobPosting) -> bool:
        return base.is_valid_posting(posting)

    def build_params(self, page: int = 1) -> Dict[str, Any]:
        return {
            "skillSet": "",
            "part": "TECHNOLOGY",
            "company": "KAKAO",
            "keyword": "",
            "employeeType": "",
            "page": page,
        }

    async def _fetch_page(self, page: int) -> Dict[str, Any]:
        response = await self.http_client.get(
            f"{self.base_url}/public/api/job-list",
            params=self.build_params(page),
            headers={"Accept": "application/json"},
            as_json=True,
        )
        if not response:
            raise EmptyResponseError(f"Empty response from Kakao (page {page})")
        return response

    async def fetch_jobs(self, query: Optional[JobQuery] = None) -> List[JobPosting]:
        first = await self._fetch_page(1)
        items = list(first.get("jobList") or [])

        total_pages = min(int(first.get("totalPage") or 1), self.max_pages)
        if total_pages > 1:
            tasks = [
                lambda page=page: self._fetch_page(page)
                for page in range(2, total_pages + 1)
            ]
            for response in await self.http_client.batch_request(tasks):
                items.extend(response.get("jobList") or [])

        postings = self.parse_job_listings(items)
        logger.info(f"Found {len(postings)} Kakao postings across {total_pages} pages")
        return postings

    def parse_job_listings(self, items: List[Dict[str, Any]]) -> List[JobPosting]:
        return base.parse_listings(items, self._parse_item, "Kakao")

    def _parse_item(self, item: Dict[str, Any]) -> Optional[JobPosting]:
        real_id = str(item.get("realId") or item.get("jobOfferId") or "")
        job_id = real_id.replace("P-", "")
        title = (item.get("jobOfferTitle") or "").strip()

        skill_sets = [
            s.get("skillSetName", "")
            for s in item.get("skillSetList") or []
            if (s.get("skillSetName") or "").lower() not in IGNORED_SKILL_SETS
        ]
        qualification = item.get("qualification") or ""
        required, preferred = split_qualification(qualification)

        description_parts = html_to_lines(item.get("introduction"))
        work = html_to_lines(item.get("workContentDesc"))
        if work:
            description_parts += ["", "[주요업무]"] + work

        location_text = item.get("locationName") or ""
        location = map_location(location_text) if location_text else LocationType.BUNDANG

        start = base.parse_date(item.get("regDate")) or base.today()
        end = base.parse_date(item.get("endDate")) or base.OPEN_ENDED

        department = item.get("jobPartName") or ""
        field = skill_sets[0] if skill_sets else infer_field(title)

        return base.build_posting(
            self.company,
            job_id=job_id,
            title=title,
            department=department or field,
            field=field,
            url=self.get_job_detail_url(real_id) if real_id else "",
            original_id=real_id,
            career=map_career(item.get("jobTypeName") or qualification),
            skills=dedupe(extract_skills(qualification) + normalize_skills(skill_sets)),
            employment_type=map_employment_type(item.get("employeeTypeName")),
            locations=[location],
            start=start,
            end=end,
            description="\n".join(description_parts) or None,
            qualifications=required or None,
            preferences=preferred or None,
            benefits=html_to_lines(item.get("workTypeDesc")) or None,
            job_category=infer_job_category(title, department),
            raw_data=item,
        )
