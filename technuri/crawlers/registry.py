from typing import Dict

from technuri.crawlers.baemin import BaeminCrawler
from technuri.crawlers.base import JobCrawler
from technuri.crawlers.coupang import CoupangCrawler
from technuri.crawlers.danggn import DanggnCrawler
from technuri.crawlers.kakao import KakaoCrawler
from technuri.crawlers.line import LineCrawler
from technuri.crawlers.naver import NaverCrawler
from technuri.crawlers.toss import TossCrawler
from technuri.models.job_model import CompanyType
from technuri.services.browser_service import BrowserService
from technuri.services.http_client import HttpClient


def build_crawlers(http_client: HttpClient, browser: BrowserService) -> Dict[CompanyType, JobCrawler]:
    """One crawler per supported company, keyed by company code."""
    crawlers = [
        NaverCrawler(http_client),
        KakaoCrawler(http_client),
        LineCrawler(http_client),
        CoupangCrawler(http_client),
        DanggnCrawler(http_client),
        BaeminCrawler(browser),
        TossCrawler(browser),
    ]
    return {crawler.company: crawler for crawler in crawlers}
