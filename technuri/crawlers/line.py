import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from technuri.crawlers import base
from technuri.crawlers.base import EmptyResponseError
from technuri.crawlers.heuristics import (
    extract_skills,
    infer_field,
    infer_job_category,
    map_career,
    map_employment_type,
    map_location,
)
from technuri.models.job_model import CompanyType, JobPosting, JobQuery
from technuri.services.http_client import HttpClient

logger = logging.getLogger(__name__)

ENGINEERING = "Engineering"


class LineCrawler:
    company = CompanyType.LINE
    base_url = "https://careers.linecorp.com/ko/jobs"

    def __init__(self, http_client: HttpClient):
        self.http_client = http_client

    def get_job_detail_url(self, job_id: str) -> str:
        return f"{self.base_url}/{job_id}"

    def is_valid_posting(self, posting: JobPosting) -> bool:
        return base.is_valid_posting(posting)

    def build_params(self, query: Optional[JobQuery] = None) -> dict:
        return {"ca": ENGINEERING, "ci": "Gwacheon,Bundang", "co": "East Asia"}

    async def fetch_jobs(self, query: Optional[JobQuery] = None) -> List[JobPosting]:
        html = await self.http_client.get(self.base_url, params=self.build_params(query))
        if not html:
            raise EmptyResponseError("Empty response from LINE")

        postings = self.parse_job_listings(html)
        logger.info(f"Found {len(postings)} LINE postings")
        return postings

    def parse_job_listings(self, html: str) -> List[JobPosting]:
        soup = BeautifulSoup(html, "html.parser")
        items = soup.select(".job_list li")
        if not items:
            logger.error("No LINE listings found, page structure may have changed")
            return []
        return base.parse_listings(items, self._parse_item, "LINE")

    def _parse_item(self, item) -> Optional[JobPosting]:
        link = item.select_one("a")
        if link is None:
            return None

        title_el = link.select_one("h3.title")
        title = title_el.get_text(strip=True) if title_el else ""

        spans = [span.get_text(strip=True) for span in link.select(".text_filter span")]
        spans += [""] * (4 - len(spans))
        location_text, _, department, employment_text = spans[:4]
        # The listing also shows other job groups for the same office
        if department != ENGINEERING:
            return None

        href = link.get("href", "").rstrip("/")
        job_id = href.split("/")[-1] if href else ""

        date_el = link.select_one(".date")
        start, end = base.parse_date_range(date_el.get_text(strip=True) if date_el else "")

        return base.build_posting(
            self.company,
            job_id=job_id,
            title=title,
            department=department,
            field=infer_field(title),
            url=self.get_job_detail_url(job_id) if job_id else "",
            career=map_career(title),
            skills=extract_skills(title),
            employment_type=map_employment_type(employment_text),
            locations=[map_location(location_text)],
            start=start,
            end=end,
            job_category=infer_job_category(title, department),
        )
