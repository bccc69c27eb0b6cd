import logging
import re
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from technuri.crawlers import base
from technuri.crawlers.base import EmptyResponseError
from technuri.crawlers.heuristics import (
    extract_skills,
    infer_field,
    infer_job_category,
    is_tech_title,
    map_career,
    map_employment_type,
)
from technuri.models.job_model import CompanyType, JobPosting, JobQuery, LocationType
from technuri.services.http_client import HttpClient

logger = logging.getLogger(__name__)

SITE_ROOT = "https://about.daangn.com"

# Tried in order; the first selector that finds anything is used
LISTING_SELECTORS = [
    "ul.c-deAcZv li a",
    'a[href^="/jobs/"]',
]

JOB_ID_PATTERN = re.compile(r"/jobs/(\d+)")
EMPLOYMENT_MARKERS = ("정규직", "계약직", "인턴", "어시스턴트")


class DanggnCrawler:
    company = CompanyType.DANGGN
    base_url = f"{SITE_ROOT}/jobs"

    def __init__(self, http_client: HttpClient):
        self.http_client = http_client

    def get_job_detail_url(self, job_id: str) -> str:
        return f"{self.base_url}/{job_id}/"

    def is_valid_posting(self, posting: JobPosting) -> bool:
        return base.is_valid_posting(posting)

    async def fetch_jobs(self, query: Optional[JobQuery] = None) -> List[JobPosting]:
        html = await self.http_client.get(f"{self.base_url}/")
        if not html:
            raise EmptyResponseError("Empty response from Danggn")

        postings = self.parse_job_listings(html)
        logger.info(f"Found {len(postings)} Danggn tech postings")
        return postings

    def parse_job_listings(self, html: str) -> List[JobPosting]:
        soup = BeautifulSoup(html, "html.parser")
        links = []
        for selector in LISTING_SELECTORS:
            links = soup.select(selector)
            if links:
                break
        if not links:
            logger.error("No Danggn listings found, page structure may have changed")
            return []

        tech_links = [link for link in links if is_tech_title(self._title_of(link))]
        return base.parse_listings(tech_links, self._parse_link, "Danggn")

    def _title_of(self, link) -> str:
        heading = link.select_one("h3")
        if heading:
            return heading.get_text(strip=True)
        texts = list(link.stripped_strings)
        return texts[0] if texts else ""

    def _parse_link(self, link) -> Optional[JobPosting]:
        href = link.get("href", "")
        match = JOB_ID_PATTERN.search(href)
        job_id = match.group(1) if match else ""
        title = self._title_of(link)

        details = [text for text in link.stripped_strings if text != title]
        employment_text = next(
            (text for text in details if any(marker in text for marker in EMPLOYMENT_MARKERS)), ""
        )
        department = "당근페이" if "당근페이" in " ".join(details + [title]) else "당근"

        return base.build_posting(
            self.company,
            job_id=job_id,
            title=title,
            department=department,
            field=infer_field(title),
            url=urljoin(SITE_ROOT, href) if job_id else "",
            career=map_career(" ".join(details + [title])),
            skills=extract_skills(title),
            employment_type=map_employment_type(employment_text),
            locations=[LocationType.SEOUL],
            job_category=infer_job_category(title),
        )
