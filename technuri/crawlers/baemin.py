"""
Woowa Brothers (Baemin) careers. The listing is rendered client side and
loads more entries as the page scrolls, so it goes through the headless
browser.
"""
import asyncio
import hashlib
import logging
import re
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from technuri.crawlers import base
from technuri.crawlers.heuristics import (
    extract_skills,
    infer_field,
    infer_job_category,
    map_career,
    map_employment_type,
    map_location,
    normalize_skills,
)
from technuri.models.job_model import CompanyType, JobPosting, JobQuery, LocationType
from technuri.services.browser_service import BrowserService

logger = logging.getLogger(__name__)

LIST_SELECTOR = ".recruit-type-list"
JOB_CODE_PATTERN = re.compile(r"jobCodes=([^&#]+)")
# "[배민커넥트실] 서버 개발자" -> team names end with 실/팀/랩
DEPARTMENT_PATTERN = re.compile(r"([\w가-힣]+(?:실|팀|랩|셀))(?=\W|$)")


def slug_id(title: str) -> str:
    """Stable id for listings that carry no job code."""
    digest = hashlib.sha1(title.encode("utf-8")).hexdigest()[:12]
    return f"baemin-{digest}"


class BaeminCrawler:
    company = CompanyType.BAEMIN
    base_url = "https://career.woowahan.com"

    def __init__(self, browser: BrowserService, settle_delay_ms: int = 2000):
        self.browser = browser
        self.settle_delay_ms = settle_delay_ms

    def get_job_detail_url(self, job_id: str) -> str:
        return f"{self.base_url}/recruitment/{job_id}/detail"

    def is_valid_posting(self, posting: JobPosting) -> bool:
        return base.is_valid_posting(posting)

    def list_url(self) -> str:
        return (
            f"{self.base_url}/?jobCodes=&employmentTypeCodes=&serviceSectionCodes="
            "&careerPeriod=&keyword=&category=jobGroupCodes%3ABA005001#recruit-list"
        )

    async def fetch_jobs(self, query: Optional[JobQuery] = None) -> List[JobPosting]:
        async with self.browser.acquire_page() as page:
            await page.goto(self.list_url())
            await page.wait_for_selector(LIST_SELECTOR)
            await page.scroll_to_bottom()
            if self.settle_delay_ms:
                await asyncio.sleep(self.settle_delay_ms / 1000)
            html = await page.content()

        postings = self.parse_job_listings(html)
        logger.info(f"Found {len(postings)} Baemin postings")
        return postings

    def parse_job_listings(self, html: str) -> List[JobPosting]:
        soup = BeautifulSoup(html or "", "html.parser")
        items = soup.select(f"{LIST_SELECTOR} li")
        if not items:
            logger.error("No Baemin listings found, page structure may have changed")
            return []
        return base.parse_listings(items, self._parse_item, "Baemin")

    def _parse_item(self, item) -> Optional[JobPosting]:
        link = item.select_one("a.title") or item.select_one("a")
        href = link.get("href", "") if link else ""

        title_el = item.select_one(".fr-view") or link
        title = title_el.get_text(" ", strip=True) if title_el else ""

        match = JOB_CODE_PATTERN.search(href)
        job_code = match.group(1) if match else ""
        job_id = job_code or slug_id(title)

        department_match = DEPARTMENT_PATTERN.search(title.split("]")[0] if "]" in title else title)
        department = department_match.group(1) if department_match else infer_field(title)

        career_el = item.select_one(".flag-career")
        employment_el = item.select_one(".flag-type")
        location_el = item.select_one(".flag-btn")
        location_text = location_el.get_text(strip=True) if location_el else ""

        skill_tags, tags = [], []
        for tag_el in item.select(".flag-tag"):
            text = tag_el.get_text(strip=True)
            if text.startswith("#"):
                skill_tags.extend(part for part in text.split("#") if part.strip())
            elif text:
                tags.append(text)

        skills = normalize_skills(skill_tags) or extract_skills(title)

        return base.build_posting(
            self.company,
            job_id=job_id,
            title=title,
            department=department,
            field=infer_field(title),
            url=urljoin(self.base_url, href) if href else self.get_job_detail_url(job_id),
            original_id=job_code or href or job_id,
            career=map_career(career_el.get_text(strip=True) if career_el else ""),
            skills=skills,
            employment_type=map_employment_type(employment_el.get_text(strip=True) if employment_el else ""),
            locations=[map_location(location_text) if location_text else LocationType.SEOUL],
            tags=tags or None,
            job_category=infer_job_category(title),
        )
