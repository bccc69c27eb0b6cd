"""
Engineering blog feeds: RSS/Atom feeds from tech company blogs, collected
on an interval into one cache entry per blog and served newest first.

Cache layout:
    blog:company:{CODE}    posts from one blog
"""
import asyncio
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import feedparser
from bs4 import BeautifulSoup
from pydantic import ValidationError

from technuri.core.caching import CacheBackend, CacheError
from technuri.core.config import settings
from technuri.models.blog_model import BlogCompany, BlogPageMeta, BlogPost, PaginatedBlogPosts
from technuri.services.http_client import HttpClient

logger = logging.getLogger(__name__)

TECH_BLOG_FEEDS: Dict[str, Dict[str, str]] = {
    "MUSINSA": {"name": "무신사", "url": "https://medium.com/feed/musinsa-tech"},
    "NAVER_D2": {"name": "네이버 D2", "url": "https://d2.naver.com/d2.atom"},
    "KURLY": {"name": "마켓컬리", "url": "https://helloworld.kurly.com/feed.xml"},
    "WOOWA": {"name": "우아한형제들", "url": "https://techblog.woowahan.com/feed/"},
    "KAKAO_ENTERPRISE": {"name": "카카오엔터프라이즈", "url": "https://tech.kakaoenterprise.com/feed"},
    "LINE": {"name": "LINE", "url": "https://engineering.linecorp.com/ko/feed/index.html"},
    "DAANGN": {"name": "당근마켓", "url": "https://medium.com/feed/daangn"},
    "TOSS": {"name": "토스", "url": "https://toss.tech/rss.xml"},
    "WATCHA": {"name": "WATCHA", "url": "https://medium.com/feed/watcha"},
    "BANKSALAD": {"name": "뱅크샐러드", "url": "https://blog.banksalad.com/rss.xml"},
    "GEEKNEWS": {"name": "GeekNews", "url": "https://feeds.feedburner.com/geeknews-feed"},
    "META": {"name": "Meta Engineering", "url": "https://engineering.fb.com/feed/"},
    "NETFLIX": {"name": "Netflix Tech", "url": "https://netflixtechblog.com/feed"},
    "GOOGLE": {"name": "Google Developers", "url": "https://developers.googleblog.com/feeds/posts/default"},
    "AMAZON": {"name": "AWS Developer", "url": "https://aws.amazon.com/blogs/developer/feed/"},
}

BLOG_COMPANY_PREFIX = "blog:company:"
FEED_ACCEPT = "application/rss+xml, application/xml, application/atom+xml, text/xml, */*"

# WordPress-style "read more" markers left at the end of summaries
ELLIPSIS_MARKER = re.compile(r"\[(?:…|\.\.\.)\]")


class BlogServiceError(Exception):
    pass


class BlogNotFoundError(BlogServiceError):
    pass


def blog_key(code: str) -> str:
    return f"{BLOG_COMPANY_PREFIX}{code}"


def clean_description(text: Optional[str]) -> str:
    if not text:
        return ""
    plain = BeautifulSoup(text, "html.parser").get_text(" ", strip=True)
    plain = ELLIPSIS_MARKER.sub("", plain)
    return re.sub(r"\s+", " ", plain).strip()


def entry_date(entry: Any) -> datetime:
    # feedparser normalizes dates to UTC struct_time
    for attr in ("published_parsed", "updated_parsed"):
        parsed = entry.get(attr)
        if parsed:
            return datetime(*parsed[:6])
    return datetime.now()


def parse_feed(name: str, document: str) -> List[BlogPost]:
    """Posts from an RSS or Atom document; entries without title or link are dropped."""
    feed = feedparser.parse(document)
    if not feed.entries and feed.get("bozo"):
        raise BlogServiceError(f"Unreadable feed for {name}: {feed.get('bozo_exception')}")

    posts = []
    for entry in feed.entries:
        title = (entry.get("title") or "").strip()
        link = entry.get("link") or entry.get("id") or ""
        if not title or not link:
            continue
        posts.append(BlogPost(
            id=entry.get("id") or link,
            company=name,
            title=title,
            description=clean_description(entry.get("summary") or entry.get("description")),
            link=link,
            author=entry.get("author") or None,
            publish_date=entry_date(entry),
        ))
    return posts


def paginate_posts(posts: List[BlogPost], page: int = 1, limit: int = 10) -> PaginatedBlogPosts:
    ordered = sorted(posts, key=lambda post: post.publish_date, reverse=True)
    start = (page - 1) * limit
    return PaginatedBlogPosts(
        items=ordered[start:start + limit],
        meta=BlogPageMeta(total=len(ordered), page=page, limit=limit, has_next=start + limit < len(ordered)),
    )


class BlogService:
    def __init__(
        self,
        http_client: HttpClient,
        cache: CacheBackend,
        feeds: Optional[Dict[str, Dict[str, str]]] = None,
        ttl: Optional[int] = None,
    ):
        self.http_client = http_client
        self.cache = cache
        self.feeds = feeds if feeds is not None else TECH_BLOG_FEEDS
        self.ttl = ttl or settings.BLOG_CACHE_TTL

    async def _cache_get(self, key: str) -> Any:
        try:
            return await self.cache.get(key)
        except CacheError as e:
            logger.error(f"Cache read failed for {key}: {e}")
            raise BlogServiceError(f"Cache read failed for {key}") from e

    async def _cache_set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            await self.cache.set(key, value, ttl)
        except CacheError as e:
            logger.error(f"Cache write failed for {key}: {e}")
            raise BlogServiceError(f"Cache write failed for {key}") from e

    async def fetch_feed(self, code: str) -> List[BlogPost]:
        info = self.feeds[code]
        document = await self.http_client.get(
            info["url"],
            headers={"User-Agent": settings.BLOG_USER_AGENT, "Accept": FEED_ACCEPT},
        )
        if not document:
            raise BlogServiceError(f"Empty feed from {info['name']}")
        posts = parse_feed(info["name"], document)
        logger.debug(f"Fetched {info['name']} feed: {len(posts)} posts")
        return posts

    async def _collect(self, code: str) -> int:
        posts = await self.fetch_feed(code)
        await self._cache_set(
            blog_key(code),
            [post.model_dump(mode="json", by_alias=True) for post in posts],
            self.ttl,
        )
        return len(posts)

    async def update_feeds(self) -> Dict[str, int]:
        """
        Collect every feed concurrently.

        A feed that fails keeps its previous cache entry. Returns the post
        count for each feed that was collected.
        """
        codes = list(self.feeds)
        logger.info(f"Updating {len(codes)} blog feeds")
        results = await asyncio.gather(*(self._collect(code) for code in codes), return_exceptions=True)

        collected: Dict[str, int] = {}
        for code, result in zip(codes, results):
            if isinstance(result, BaseException):
                logger.error(f"Error updating {self.feeds[code]['name']} feed: {result}")
            else:
                collected[code] = result

        logger.info(f"Blog feeds updated: {len(collected)}/{len(codes)} feeds collected")
        return collected

    async def _load(self, code: str) -> List[BlogPost]:
        cached = await self._cache_get(blog_key(code))
        if not cached:
            return []
        try:
            return [BlogPost.model_validate(item) for item in cached]
        except ValidationError as e:
            raise BlogServiceError(f"Cached posts for {code} are malformed: {e}") from e

    def resolve_company(self, company: str) -> str:
        code = company.upper()
        if code not in self.feeds:
            raise BlogNotFoundError(f"Company {company} not found")
        return code

    async def get_all_posts(self, page: int = 1, limit: int = 10) -> PaginatedBlogPosts:
        posts: List[BlogPost] = []
        for code in self.feeds:
            posts.extend(await self._load(code))
        return paginate_posts(posts, page, limit)

    async def get_company_posts(self, company: str, page: int = 1, limit: int = 10) -> PaginatedBlogPosts:
        code = self.resolve_company(company)
        return paginate_posts(await self._load(code), page, limit)

    def get_company_list(self) -> List[BlogCompany]:
        return [BlogCompany(code=code, name=info["name"]) for code, info in self.feeds.items()]
