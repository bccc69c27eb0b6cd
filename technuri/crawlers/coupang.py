import logging
import re
from typing import List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from technuri.core.config import settings
from technuri.crawlers import base
from technuri.crawlers.base import EmptyResponseError
from technuri.crawlers.heuristics import (
    extract_skills,
    infer_field,
    infer_job_category,
    map_career,
    map_employment_type,
)
from technuri.models.job_model import CompanyType, JobPosting, JobQuery, LocationType
from technuri.services.http_client import HttpClient

logger = logging.getLogger(__name__)

PAGE_SIZE = 20

COUPANG_DEPARTMENTS = {
    "CLOUD_PLATFORM": "Cloud Platform",
    "CORPORATE_IT": "Corporate IT",
    "ECOMMERCE_PRODUCT": "eCommerce Product",
    "PRODUCT_UX": "Product UX",
    "SEARCH_DISCOVERY": "Search and Discovery",
}
TECH_DEPARTMENTS = list(COUPANG_DEPARTMENTS.values())

DEFAULT_DEPARTMENT = "Engineering"

# Title keyword -> department, first match wins
DEPARTMENT_RULES: Sequence[Tuple[str, str]] = [
    ("cloud", COUPANG_DEPARTMENTS["CLOUD_PLATFORM"]),
    ("infra", COUPANG_DEPARTMENTS["CLOUD_PLATFORM"]),
    ("erp", COUPANG_DEPARTMENTS["CORPORATE_IT"]),
    ("system", COUPANG_DEPARTMENTS["CORPORATE_IT"]),
    ("designer", COUPANG_DEPARTMENTS["PRODUCT_UX"]),
    ("ux", COUPANG_DEPARTMENTS["PRODUCT_UX"]),
    ("researcher", COUPANG_DEPARTMENTS["PRODUCT_UX"]),
    ("product", COUPANG_DEPARTMENTS["ECOMMERCE_PRODUCT"]),
    ("search", COUPANG_DEPARTMENTS["SEARCH_DISCOVERY"]),
    ("discovery", COUPANG_DEPARTMENTS["SEARCH_DISCOVERY"]),
    ("facility", DEFAULT_DEPARTMENT),
    ("data center", DEFAULT_DEPARTMENT),
    ("server", DEFAULT_DEPARTMENT),
    ("director", DEFAULT_DEPARTMENT),
    ("brand", COUPANG_DEPARTMENTS["PRODUCT_UX"]),
    ("design system", COUPANG_DEPARTMENTS["PRODUCT_UX"]),
]

JOB_ID_PATTERN = re.compile(r"/jobs/(\d+)")


def infer_department(title: str) -> str:
    lowered = (title or "").lower()
    for keyword, department in DEPARTMENT_RULES:
        if keyword in lowered:
            return department
    return DEFAULT_DEPARTMENT


class CoupangCrawler:
    company = CompanyType.COUPANG
    base_url = "https://www.coupang.jobs/kr/jobs"

    def __init__(self, http_client: HttpClient, max_pages: Optional[int] = None):
        self.http_client = http_client
        self.max_pages = max_pages or settings.JOB_MAX_PAGES

    def get_job_detail_url(self, job_id: str) -> str:
        return f"{self.base_url}/{job_id}"

    def is_valid_posting(self, posting: JobPosting) -> bool:
        return base.is_valid_posting(posting)

    def build_params(self, page: int = 1) -> dict:
        return {
            "location": "Seoul, South Korea",
            "pagesize": PAGE_SIZE,
            "page": page,
            "department": TECH_DEPARTMENTS,
        }

    async def fetch_jobs(self, query: Optional[JobQuery] = None) -> List[JobPosting]:
        postings: List[JobPosting] = []
        for page in range(1, self.max_pages + 1):
            html = await self.http_client.get(self.base_url, params=self.build_params(page))
            if not html:
                if page == 1:
                    raise EmptyResponseError("Empty response from Coupang")
                break

            cards = self.select_cards(html)
            if page == 1 and not cards:
                logger.error("No Coupang listing cards found, page structure may have changed")
                return []
            postings.extend(self.parse_job_listings(cards))

            if len(cards) < PAGE_SIZE:
                break
            await self.http_client.delay(settings.JOB_REQUEST_DELAY)

        logger.info(f"Found {len(postings)} Coupang postings")
        return postings

    def select_cards(self, html: str) -> list:
        return BeautifulSoup(html, "html.parser").select(".card.card-job")

    def parse_job_listings(self, cards: list) -> List[JobPosting]:
        return base.parse_listings(cards, self._parse_card, "Coupang")

    def _parse_card(self, card) -> Optional[JobPosting]:
        link = card.select_one(".card-title a")
        if link is None:
            return None
        title = link.get_text(strip=True)
        href = link.get("href", "")

        match = JOB_ID_PATTERN.search(href)
        job_id = match.group(1) if match else ""
        if not job_id:
            logger.warning(f"Coupang listing without job id: {href}")
            return None

        posted_el = card.select_one(".job-meta time")
        posted = base.parse_date(posted_el.get("datetime")) if posted_el else None
        start = posted or base.today()

        return base.build_posting(
            self.company,
            job_id=job_id,
            title=title,
            department=infer_department(title),
            field=infer_field(title),
            url=self.get_job_detail_url(job_id),
            original_url=f"https://www.coupang.jobs{href}" if href.startswith("/") else href,
            career=map_career(title),
            skills=extract_skills(title),
            employment_type=map_employment_type(title),
            locations=[LocationType.SEOUL],
            start=start,
            end=base.date_months_later(1, start),
            job_category=infer_job_category(title),
        )
