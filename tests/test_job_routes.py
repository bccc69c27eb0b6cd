import pytest
from conftest import FakeCrawler, make_posting
from fastapi.testclient import TestClient

from technuri.core.caching import CacheBackend, CacheError
from technuri.main import create_app
from technuri.models.job_model import CareerType, CompanyType, LocationType
from technuri.services.jobs_service import JobsService


@pytest.fixture
def client(make_service):
    kakao_jobs = [
        make_posting(CompanyType.KAKAO, "k1", career=CareerType.NEW, skills=["Kotlin"]),
        make_posting(CompanyType.KAKAO, "k2", career=CareerType.EXPERIENCED),
        make_posting(CompanyType.KAKAO, "k3", career=CareerType.NEW, locations=[LocationType.BUNDANG]),
    ]
    service = make_service([
        FakeCrawler(CompanyType.KAKAO, kakao_jobs),
        FakeCrawler(CompanyType.LINE, [make_posting(CompanyType.LINE, "l1")]),
        FakeCrawler(CompanyType.TOSS, error=ConnectionError("toss is down")),
    ])
    app = create_app(jobs_service=service, background_jobs=False)
    with TestClient(app) as test_client:
        yield test_client


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_supported_companies(client):
    response = client.get("/api/jobs")

    assert response.status_code == 200
    body = response.json()
    assert [c["code"] for c in body["companies"]] == ["KAKAO", "LINE", "TOSS"]
    assert body["companies"][0]["name"] == "카카오"
    assert body["lastUpdate"] is None


def test_company_jobs_filtered_and_paginated(client):
    response = client.get("/api/jobs/kakao", params={"career": "NEW", "page": 1, "limit": 1})

    assert response.status_code == 200
    body = response.json()
    assert [job["id"] for job in body["data"]] == ["k1"]
    assert body["meta"] == {"total": 2, "page": 1, "limit": 1, "totalPages": 2}

    job = body["data"][0]
    assert job["employmentType"] == "FULL_TIME"
    assert job["requirements"]["skills"] == ["Kotlin"]
    assert job["source"]["originalId"] == "k1"


def test_company_jobs_location_filter(client):
    response = client.get("/api/jobs/KAKAO", params={"location": "BUNDANG"})
    assert [job["id"] for job in response.json()["data"]] == ["k3"]


def test_all_jobs_skip_failing_source(client):
    response = client.get("/api/jobs/all", params={"limit": 50})

    assert response.status_code == 200
    body = response.json()
    assert sorted(job["id"] for job in body["data"]) == ["k1", "k2", "k3", "l1"]
    assert body["meta"]["total"] == 4


def test_unknown_company_is_404(client):
    response = client.get("/api/jobs/nexon")
    assert response.status_code == 404


def test_source_down_is_500(client):
    response = client.get("/api/jobs/toss")
    assert response.status_code == 500


def test_cache_failure_is_500(fast_retry):
    class BrokenCache(CacheBackend):
        async def get(self, key):
            raise CacheError("connection refused")

    service = JobsService({CompanyType.KAKAO: FakeCrawler(CompanyType.KAKAO)}, BrokenCache(), retry=fast_retry)
    app = create_app(jobs_service=service, background_jobs=False)
    with TestClient(app) as test_client:
        assert test_client.get("/api/jobs/kakao").status_code == 500
        assert test_client.get("/api/jobs/all").status_code == 500


def test_invalid_query_is_rejected(client):
    assert client.get("/api/jobs/kakao", params={"page": 0}).status_code == 422
    assert client.get("/api/jobs/kakao", params={"career": "SENIOR"}).status_code == 422
