import logging
import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

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

# Tech sub-job codes on the Naver recruiting site, grouped by job family
NAVER_TECH_JOB_CODES: Dict[str, Dict[str, str]] = {
    "SOFTWARE_DEVELOPMENT": {
        "FRONTEND": "1010001",
        "ANDROID": "1010002",
        "IOS": "1010003",
        "BACKEND": "1010004",
        "AI_ML": "1010005",
        "DATA_ENGINEERING": "1010006",
        "EMBEDDED_SW": "1010007",
        "GRAPHICS": "1010008",
        "DATA_SCIENCE": "1010009",
        "COMMON": "1010020",
    },
    "HARDWARE_DEVELOPMENT": {
        "HARDWARE": "1020001",
    },
    "INFRA_ENGINEERING": {
        "INFRA": "1030001",
        "DATA_CENTER": "1030002",
    },
    "SECURITY": {
        "ANALYSIS": "1040001",
        "ARCHITECTURE": "1040002",
        "DEVELOPMENT": "1040003",
    },
    "TECH_OPERATIONS": {
        "TECH_STAFF": "1050001",
        "QA": "1050002",
    },
    "COMMON": {
        "COMMON": "1060001",
    },
}

ANNOUNCEMENT_ID_PATTERN = re.compile(r"show\('?(\d+)'?\)")


def tech_job_codes() -> List[str]:
    return [code for family in NAVER_TECH_JOB_CODES.values() for code in family.values()]


class NaverCrawler:
    company = CompanyType.NAVER
    base_url = "https://recruit.navercorp.com"

    def __init__(self, http_client: HttpClient):
        self.http_client = http_client

    def get_job_detail_url(self, job_id: str) -> str:
        return f"{self.base_url}/rcrt/view.do?annoId={job_id}"

    def is_valid_posting(self, posting: JobPosting) -> bool:
        return base.is_valid_posting(posting)

    def build_params(self, query: Optional[JobQuery] = None) -> dict:
        return {"subJobCdArr": ",".join(tech_job_codes())}

    async def fetch_jobs(self, query: Optional[JobQuery] = None) -> List[JobPosting]:
        html = await self.http_client.get(
            f"{self.base_url}/rcrt/list.do",
            params=self.build_params(query),
        )
        if not html:
            raise EmptyResponseError("Empty response from Naver")

        postings = self.parse_job_listings(html)
        logger.info(f"Found {len(postings)} Naver postings")
        return postings

    def parse_job_listings(self, html: str) -> List[JobPosting]:
        soup = BeautifulSoup(html, "html.parser")
        cards = soup.select(".card_item")
        if not cards:
            logger.error("No Naver listing cards found, page structure may have changed")
            return []
        return base.parse_listings(cards, self._parse_card, "Naver")

    def _parse_card(self, card) -> Optional[JobPosting]:
        title_el = card.select_one(".card_title")
        title = title_el.get_text(strip=True) if title_el else ""

        info = [el.get_text(strip=True) for el in card.select(".info_text")]
        info += [""] * (5 - len(info))
        department, field_text, career_text, employment_text, period_text = info[:5]

        link = card.select_one(".card_link")
        onclick = link.get("onclick", "") if link else ""
        match = ANNOUNCEMENT_ID_PATTERN.search(onclick)
        job_id = match.group(1) if match else ""

        start, end = base.parse_date_range(period_text)
        url = self.get_job_detail_url(job_id) if job_id else ""

        return base.build_posting(
            self.company,
            job_id=job_id,
            title=title,
            department=department,
            field=field_text or infer_field(title),
            url=url,
            career=map_career(career_text),
            skills=extract_skills(title),
            employment_type=map_employment_type(employment_text),
            locations=[LocationType.BUNDANG],
            start=start,
            end=end,
            job_category=infer_job_category(title, field_text),
        )
