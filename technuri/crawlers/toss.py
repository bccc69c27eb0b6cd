"""
Toss careers. Job cards are rendered by scripts, and a single listing can
belong to one of several Toss affiliates (Toss Bank, Toss Securities, ...).
"""
import logging
import re
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from selenium.common.exceptions import TimeoutException

from technuri.crawlers import base
from technuri.crawlers.heuristics import (
    dedupe,
    extract_skills,
    infer_field,
    infer_job_category,
    is_tech_title,
    map_career,
    map_employment_type,
)
from technuri.models.job_model import CompanyType, JobPosting, JobQuery, LocationType
from technuri.services.browser_service import BrowserService

logger = logging.getLogger(__name__)

SITE_ROOT = "https://toss.im"
CARD_SELECTOR = '[href^="/career/job-detail"]'
JOB_ID_PATTERN = re.compile(r"job_id=(\d+)")

AFFILIATES = [
    "토스뱅크",
    "토스증권",
    "토스페이먼츠",
    "토스플레이스",
    "토스인슈어런스",
    "토스씨엑스",
    "토스모바일",
    "토스",
]


def clean_title(title: str) -> str:
    """Collapse whitespace and repeated words in scraped card titles."""
    title = re.sub(r"\s+", " ", title or "").strip()
    title = re.sub(r"\(\s+", "(", title)
    title = re.sub(r"\s+\)", ")", title)
    words = title.split(" ")
    return " ".join(w for i, w in enumerate(words) if i == 0 or w != words[i - 1])


def find_affiliate(text: str) -> Optional[str]:
    for affiliate in AFFILIATES:
        if affiliate in (text or ""):
            return affiliate
    return None


class TossCrawler:
    company = CompanyType.TOSS
    base_url = f"{SITE_ROOT}/career"

    def __init__(self, browser: BrowserService):
        self.browser = browser

    def get_job_detail_url(self, job_id: str) -> str:
        return f"{self.base_url}/job-detail?job_id={job_id}"

    def is_valid_posting(self, posting: JobPosting) -> bool:
        return base.is_valid_posting(posting)

    async def fetch_jobs(self, query: Optional[JobQuery] = None) -> List[JobPosting]:
        async with self.browser.acquire_page() as page:
            await page.goto(f"{self.base_url}/jobs?category=engineering")
            try:
                await page.wait_for_selector(CARD_SELECTOR)
            except TimeoutException:
                logger.warning("Toss job cards did not appear before timeout")
            html = await page.content()

        postings = self.parse_job_listings(html)
        logger.info(f"Found {len(postings)} Toss tech postings")
        return postings

    def parse_job_listings(self, html: str) -> List[JobPosting]:
        soup = BeautifulSoup(html or "", "html.parser")
        cards = soup.select(CARD_SELECTOR)
        if not cards:
            logger.error("No Toss job cards found, page structure may have changed")
            return []
        return base.parse_listings(cards, self._parse_card, "Toss")

    def _parse_card(self, card) -> Optional[JobPosting]:
        title_el = card.select_one('span[class*="typography--bold"]') or card.select_one("span")
        title = clean_title(title_el.get_text(" ", strip=True) if title_el else "")
        full_text = card.get_text(" ", strip=True)
        if not is_tech_title(title):
            return None

        href = card.get("href", "")
        match = JOB_ID_PATTERN.search(href)
        job_id = match.group(1) if match else ""

        subtitle_el = card.select_one('span[class*="typography--regular"]')
        subtitle = subtitle_el.get_text(" ", strip=True) if subtitle_el else ""
        affiliate = find_affiliate(subtitle) or find_affiliate(full_text)

        tags = dedupe(
            el.get_text(strip=True)
            for el in card.select('[class*="tag"], [class*="badge"]')
            if el.get_text(strip=True)
        )
        field = infer_field(title, subtitle)

        return base.build_posting(
            self.company,
            job_id=job_id,
            title=title,
            department=field,
            field=field,
            url=self.get_job_detail_url(job_id) if job_id else "",
            original_url=urljoin(SITE_ROOT, href),
            career=map_career(full_text),
            skills=extract_skills(title, subtitle),
            employment_type=map_employment_type(full_text),
            locations=[LocationType.SEOUL],
            tags=tags or None,
            job_category=infer_job_category(title),
            company_specific_data={"affiliate": affiliate} if affiliate else None,
        )
