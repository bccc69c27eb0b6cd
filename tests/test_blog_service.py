from datetime import datetime

import pytest
from conftest import FakeHttpClient
from fastapi.testclient import TestClient

from technuri.core.caching import CacheBackend, CacheError
from technuri.main import create_app
from technuri.services.blog_service import (
    BlogNotFoundError,
    BlogService,
    BlogServiceError,
    blog_key,
    clean_description,
    parse_feed,
)

TOSS_FEED = "https://toss.tech/rss.xml"
D2_FEED = "https://d2.naver.com/d2.atom"

FEEDS = {
    "TOSS": {"name": "토스", "url": TOSS_FEED},
    "NAVER_D2": {"name": "네이버 D2", "url": D2_FEED},
}

TOSS_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>토스 기술 블로그</title>
    <link>https://toss.tech</link>
    <item>
      <title>Kafka 운영기</title>
      <link>https://toss.tech/article/kafka</link>
      <guid>https://toss.tech/article/kafka</guid>
      <dc:creator>김토스</dc:creator>
      <pubDate>Tue, 05 Mar 2024 09:00:00 +0900</pubDate>
      <description><![CDATA[<p>대규모 Kafka 클러스터 운영 [&#8230;]</p>]]></description>
    </item>
    <item>
      <title>  </title>
      <link>https://toss.tech/article/untitled</link>
    </item>
    <item>
      <title>SLASH 24 후기</title>
      <link>https://toss.tech/article/slash24</link>
      <pubDate>Mon, 01 Jan 2024 09:00:00 +0900</pubDate>
    </item>
  </channel>
</rss>
"""

D2_ATOM = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>NAVER D2</title>
  <entry>
    <id>tag:d2.naver.com,2024:/helloworld/1</id>
    <title>검색 랭킹 모델 개선</title>
    <link href="https://d2.naver.com/helloworld/1"/>
    <updated>2024-02-10T00:00:00Z</updated>
    <summary>랭킹 모델 이야기</summary>
  </entry>
</feed>
"""


@pytest.fixture
def blog_service(cache):
    http_client = FakeHttpClient({TOSS_FEED: TOSS_RSS, D2_FEED: D2_ATOM})
    return BlogService(http_client, cache, feeds=FEEDS, ttl=60)


def test_clean_description():
    assert clean_description("<p>Hello <b>world</b> [...]</p>") == "Hello world"
    assert clean_description(None) == ""


def test_parse_rss_feed():
    posts = parse_feed("토스", TOSS_RSS)

    assert [post.title for post in posts] == ["Kafka 운영기", "SLASH 24 후기"]
    kafka = posts[0]
    assert kafka.id == "https://toss.tech/article/kafka"
    assert kafka.company == "토스"
    assert kafka.author == "김토스"
    assert kafka.description == "대규모 Kafka 클러스터 운영"
    assert kafka.publish_date == datetime(2024, 3, 5, 0, 0)
    assert posts[1].id == "https://toss.tech/article/slash24"


def test_parse_atom_feed():
    post, = parse_feed("네이버 D2", D2_ATOM)

    assert post.id == "tag:d2.naver.com,2024:/helloworld/1"
    assert post.link == "https://d2.naver.com/helloworld/1"
    assert post.description == "랭킹 모델 이야기"
    assert post.publish_date == datetime(2024, 2, 10)


@pytest.mark.asyncio
async def test_update_feeds_caches_each_blog(blog_service, cache):
    collected = await blog_service.update_feeds()

    assert collected == {"TOSS": 2, "NAVER_D2": 1}
    cached = await cache.get(blog_key("TOSS"))
    assert [post["title"] for post in cached] == ["Kafka 운영기", "SLASH 24 후기"]
    assert cached[0]["publishDate"] == "2024-03-05T00:00:00"


@pytest.mark.asyncio
async def test_failing_feed_keeps_previous_posts(cache):
    http_client = FakeHttpClient({TOSS_FEED: ConnectionError("timeout"), D2_FEED: D2_ATOM})
    service = BlogService(http_client, cache, feeds=FEEDS, ttl=60)
    previous = parse_feed("토스", TOSS_RSS)
    await cache.set(blog_key("TOSS"), [post.model_dump(mode="json", by_alias=True) for post in previous])

    collected = await service.update_feeds()

    assert collected == {"NAVER_D2": 1}
    assert len(await cache.get(blog_key("TOSS"))) == 2


@pytest.mark.asyncio
async def test_empty_feed_document_is_an_error(cache):
    service = BlogService(FakeHttpClient({TOSS_FEED: ""}), cache, feeds={"TOSS": FEEDS["TOSS"]})
    with pytest.raises(BlogServiceError):
        await service.fetch_feed("TOSS")


@pytest.mark.asyncio
async def test_all_posts_newest_first_and_paginated(blog_service):
    await blog_service.update_feeds()

    first = await blog_service.get_all_posts(page=1, limit=2)
    second = await blog_service.get_all_posts(page=2, limit=2)

    assert [post.title for post in first.items] == ["Kafka 운영기", "검색 랭킹 모델 개선"]
    assert first.meta.total == 3
    assert first.meta.has_next
    assert [post.title for post in second.items] == ["SLASH 24 후기"]
    assert not second.meta.has_next


@pytest.mark.asyncio
async def test_company_posts(blog_service):
    empty = await blog_service.get_company_posts("toss")
    assert empty.items == []
    assert empty.meta.total == 0

    await blog_service.update_feeds()
    result = await blog_service.get_company_posts("naver_d2")
    assert [post.title for post in result.items] == ["검색 랭킹 모델 개선"]

    with pytest.raises(BlogNotFoundError):
        await blog_service.get_company_posts("medium")


def test_blog_routes(make_service, blog_service):
    app = create_app(jobs_service=make_service([]), blog_service=blog_service, background_jobs=False)
    with TestClient(app) as client:
        companies = client.get("/api/blogs/companies").json()
        assert companies == [{"code": "TOSS", "name": "토스"}, {"code": "NAVER_D2", "name": "네이버 D2"}]

        assert client.get("/api/blogs").json()["meta"] == {"total": 0, "page": 1, "limit": 10, "hasNext": False}
        assert client.get("/api/blogs/companies/medium").status_code == 404
        assert client.get("/api/blogs", params={"page": 0}).status_code == 422


def test_blog_routes_serve_collected_posts(make_service, blog_service):
    app = create_app(jobs_service=make_service([]), blog_service=blog_service, background_jobs=False)
    with TestClient(app) as client:
        client.portal.call(blog_service.update_feeds)

        body = client.get("/api/blogs/companies/toss", params={"limit": 1}).json()
        assert [post["title"] for post in body["items"]] == ["Kafka 운영기"]
        assert body["items"][0]["publishDate"] == "2024-03-05T00:00:00"
        assert body["meta"]["hasNext"] is True


@pytest.mark.asyncio
async def test_cache_failure_surfaces_as_service_error():
    class BrokenCache(CacheBackend):
        async def get(self, key):
            raise CacheError("connection refused")

    service = BlogService(FakeHttpClient({}), BrokenCache(), feeds=FEEDS)
    with pytest.raises(BlogServiceError):
        await service.get_all_posts()
