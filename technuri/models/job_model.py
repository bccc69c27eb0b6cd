from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CompanyType(str, Enum):
    NAVER = "NAVER"
    NAVER_CLOUD = "NAVER_CLOUD"
    SNOW = "SNOW"
    NAVER_LABS = "NAVER_LABS"
    NAVER_WEBTOON = "NAVER_WEBTOON"
    NAVER_FINANCIAL = "NAVER_FINANCIAL"
    NAVER_IS = "NAVER_IS"
    KAKAO = "KAKAO"
    LINE = "LINE"
    COUPANG = "COUPANG"
    BAEMIN = "BAEMIN"
    DANGGN = "DANGGN"
    TOSS = "TOSS"


COMPANY_NAMES: Dict[CompanyType, str] = {
    CompanyType.NAVER: "네이버",
    CompanyType.NAVER_CLOUD: "네이버클라우드",
    CompanyType.SNOW: "스노우",
    CompanyType.NAVER_LABS: "네이버랩스",
    CompanyType.NAVER_WEBTOON: "네이버웹툰",
    CompanyType.NAVER_FINANCIAL: "네이버파이낸셜",
    CompanyType.NAVER_IS: "네이버아이앤에스",
    CompanyType.KAKAO: "카카오",
    CompanyType.LINE: "라인",
    CompanyType.COUPANG: "쿠팡",
    CompanyType.BAEMIN: "우아한형제들",
    CompanyType.DANGGN: "당근",
    CompanyType.TOSS: "토스",
}


class CareerType(str, Enum):
    NEW = "NEW"
    EXPERIENCED = "EXPERIENCED"
    ANY = "ANY"


class EmploymentType(str, Enum):
    FULL_TIME = "FULL_TIME"
    CONTRACT = "CONTRACT"
    INTERN = "INTERN"


class LocationType(str, Enum):
    BUNDANG = "BUNDANG"
    SEOUL = "SEOUL"
    CHUNCHEON = "CHUNCHEON"
    SEJONG = "SEJONG"
    BUSAN = "BUSAN"
    GLOBAL = "GLOBAL"
    OTHER = "OTHER"


class CamelModel(BaseModel):
    class Config:  # pylint: disable=R0903
        alias_generator = to_camel
        populate_by_name = True


class Requirements(CamelModel):
    career: CareerType = CareerType.ANY
    education: Optional[str] = None
    skills: List[str] = Field(default_factory=list)


class Period(CamelModel):
    start: datetime
    end: datetime


class Source(CamelModel):
    original_id: str
    original_url: str


class JobPosting(CamelModel):
    id: str
    company: CompanyType
    title: str
    department: str
    field: str
    requirements: Requirements = Field(default_factory=Requirements)
    employment_type: EmploymentType = EmploymentType.FULL_TIME
    locations: List[LocationType] = Field(default_factory=list)
    description: Optional[str] = None
    qualifications: Optional[List[str]] = None
    preferences: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    period: Period
    url: str
    source: Source
    created_at: datetime
    updated_at: datetime
    tags: Optional[List[str]] = None
    job_category: Optional[str] = None
    job_sub_category: Optional[str] = None
    company_specific_data: Optional[Dict[str, Any]] = None
    raw_data: Optional[Any] = None


class JobQuery(CamelModel):
    department: Optional[str] = None
    field: Optional[str] = None
    career: Optional[CareerType] = None
    employment_type: Optional[EmploymentType] = None
    location: Optional[LocationType] = None
    keyword: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)

    def has_filters(self) -> bool:
        return any([
            self.department, self.field, self.career,
            self.employment_type, self.location, self.keyword,
        ])


class PageMeta(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class PaginatedJobs(CamelModel):
    data: List[JobPosting]
    meta: PageMeta


class SupportedCompany(CamelModel):
    code: CompanyType
    name: str


class SupportedCompanies(CamelModel):
    companies: List[SupportedCompany]
    last_update: Optional[str] = None
