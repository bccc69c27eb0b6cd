from datetime import datetime

from technuri.crawlers import base
from technuri.crawlers.heuristics import (
    extract_skills,
    infer_field,
    infer_job_category,
    is_tech_title,
    map_career,
    map_employment_type,
    map_location,
    normalize_skills,
)
from technuri.models.job_model import CareerType, EmploymentType, LocationType


def test_extract_skills_keeps_order_and_normalizes_aliases():
    text = "Spring Boot, golang, k8s, Node.js and React Native; Java"
    assert extract_skills(text) == ["Spring Boot", "Go", "Kubernetes", "Node.js", "React Native", "Java"]


def test_extract_skills_does_not_split_composites_or_words():
    assert extract_skills("JavaScript") == ["JavaScript"]
    assert extract_skills("Spring Boot 기반 서비스") == ["Spring Boot"]
    assert extract_skills("MySQL") == ["MySQL"]


def test_extract_skills_next_to_hangul_and_deduplicated():
    assert extract_skills("Java개발 경험, Kotlin 우대", "Java/Kotlin") == ["Java", "Kotlin"]


def test_extract_skills_empty():
    assert extract_skills(None, "") == []


def test_normalize_skills():
    assert normalize_skills(["#k8s", "Golang", "Spring Boot", "kubernetes", "Unreal"]) == [
        "Kubernetes", "Go", "Spring Boot", "Unreal",
    ]


def test_map_career():
    assert map_career("신입") == CareerType.NEW
    assert map_career("경력 3년 이상") == CareerType.EXPERIENCED
    assert map_career("신입/경력") == CareerType.ANY
    assert map_career("경력무관") == CareerType.ANY
    assert map_career("") == CareerType.ANY


def test_map_employment_type():
    assert map_employment_type("계약직") == EmploymentType.CONTRACT
    assert map_employment_type("Contract") == EmploymentType.CONTRACT
    assert map_employment_type("체험형 인턴") == EmploymentType.INTERN
    assert map_employment_type("정규직") == EmploymentType.FULL_TIME
    assert map_employment_type(None) == EmploymentType.FULL_TIME


def test_map_location():
    assert map_location("경기 성남시 분당구") == LocationType.BUNDANG
    assert map_location("Pangyo") == LocationType.BUNDANG
    assert map_location("서울 송파구") == LocationType.SEOUL
    assert map_location("Gwacheon") == LocationType.OTHER
    assert map_location("", LocationType.SEOUL) == LocationType.SEOUL


def test_infer_field_first_match_wins():
    assert infer_field("Frontend Engineer") == "Frontend"
    assert infer_field("[배민] 서버 개발자") == "Backend"
    assert infer_field("Android Developer") == "Mobile"
    assert infer_field("Data Engineer") == "Data"
    assert infer_field("Security Engineer") == "Security"
    assert infer_field("Site Reliability Engineer") == "Infrastructure"
    assert infer_field("Software Engineer") == "Engineering"


def test_infer_job_category_and_tech_titles():
    assert infer_job_category("Backend Developer") == "Development"
    assert infer_job_category("Brand Marketing Manager") == "Marketing"
    assert infer_job_category("회계 담당") == "Other"
    assert is_tech_title("Software Engineer, Backend")
    assert is_tech_title("백엔드 개발자")
    assert not is_tech_title("Brand Marketer")


def test_parse_date_range():
    start, end = base.parse_date_range("2024.03.01 ~ 2024.03.31")
    assert start == datetime(2024, 3, 1)
    assert end == datetime(2024, 3, 31)

    start, end = base.parse_date_range("2024.03.01(금) ~ 채용시까지")
    assert start == datetime(2024, 3, 1)
    assert end == base.OPEN_ENDED


def test_parse_date_range_falls_back_to_one_month():
    start, end = base.parse_date_range("곧 공개")
    assert start == base.today()
    assert end == base.date_months_later(1)


def test_date_months_later_clamps_day():
    assert base.date_months_later(1, datetime(2023, 1, 31)) == datetime(2023, 2, 28)
    assert base.date_months_later(1, datetime(2023, 12, 15)) == datetime(2024, 1, 15)


def test_posting_validity():
    posting = base.build_posting(
        base.CompanyType.KAKAO,
        job_id="1",
        title="Backend Engineer",
        department="Tech",
        field="Backend",
        url="https://careers.kakao.com/jobs/P-1",
    )
    assert base.is_valid_posting(posting)
    assert posting.source.original_id == "1"
    assert posting.period.end == base.date_months_later(1, posting.period.start)

    assert not base.is_valid_posting(posting.model_copy(update={"title": ""}))
    assert not base.is_valid_posting(None)
