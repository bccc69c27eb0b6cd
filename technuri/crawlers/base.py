"""
Crawler capability and the helpers every site adapter composes.

Crawlers don't share a base class. Each one exposes ``company``,
``base_url``, ``fetch_jobs()``, ``get_job_detail_url()`` and
``is_valid_posting()``, and builds postings with the functions below.
"""
import calendar
import logging
import re
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from technuri.models.job_model import (
    CareerType,
    CompanyType,
    EmploymentType,
    JobPosting,
    JobQuery,
    LocationType,
    Period,
    Requirements,
    Source,
)

logger = logging.getLogger(__name__)

# "Open until filled" postings get this end date
OPEN_ENDED = datetime(2099, 12, 31)
OPEN_ENDED_MARKERS = ("채용시까지", "채용 시까지", "상시", "영입종료시", "until filled")

DATE_FORMATS = [
    "%Y.%m.%d %H:%M",
    "%Y.%m.%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y%m%d",
]


class CrawlerError(Exception):
    pass


class EmptyResponseError(CrawlerError):
    """Upstream answered with nothing at all; worth retrying."""


@runtime_checkable
class JobCrawler(Protocol):
    company: CompanyType
    base_url: str

    async def fetch_jobs(self, query: Optional[JobQuery] = None) -> List[JobPosting]:
        ...

    def get_job_detail_url(self, job_id: str) -> str:
        ...

    def is_valid_posting(self, posting: JobPosting) -> bool:
        ...


def today() -> datetime:
    return datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)


def date_months_later(months: int, base: Optional[datetime] = None) -> datetime:
    base = base or today()
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    day = min(base.day, calendar.monthrange(year, month)[1])
    return base.replace(year=year, month=month, day=day)


def is_open_ended(text: str) -> bool:
    lowered = (text or "").lower()
    return any(marker in lowered for marker in OPEN_ENDED_MARKERS)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse the date shapes upstream sites use; ``None`` if nothing fits."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        # epoch millis from JSON APIs
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    # Drop weekday suffixes such as "2024.03.01(금)"
    text = re.sub(r"\s*\([^)]*\)", "", text).strip().rstrip(".")
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_date_range(text: str) -> Tuple[datetime, datetime]:
    """
    Parse ``"start ~ end"`` into datetimes.

    Falls back to (today, today + 1 month) for unparseable parts and to
    ``OPEN_ENDED`` when the end says the posting is open until filled.
    """
    start_text, _, end_text = (text or "").partition("~")
    start = parse_date(start_text) or today()

    if is_open_ended(end_text) or (not end_text and is_open_ended(start_text)):
        return start, OPEN_ENDED

    end = parse_date(end_text)
    if end is None:
        if text:
            logger.debug(f"Failed to parse date range: {text}")
        end = date_months_later(1)
    return start, end


def is_valid_posting(posting: Optional[JobPosting]) -> bool:
    """A posting needs id, title, company, department, field and url."""
    if posting is None:
        return False
    return all([
        posting.id,
        posting.title,
        posting.company,
        posting.department,
        posting.field,
        posting.url,
    ])


def build_posting(
    company: CompanyType,
    *,
    job_id: str,
    title: str,
    department: str,
    field: str,
    url: str,
    original_id: Optional[str] = None,
    original_url: Optional[str] = None,
    career: CareerType = CareerType.ANY,
    education: Optional[str] = None,
    skills: Optional[List[str]] = None,
    employment_type: EmploymentType = EmploymentType.FULL_TIME,
    locations: Optional[List[LocationType]] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    **extra: Any,
) -> JobPosting:
    """Canonical posting with the defaults every source shares."""
    now = datetime.now()
    start = start or today()
    return JobPosting(
        id=(job_id or "").strip(),
        company=company,
        title=(title or "").strip(),
        department=(department or "").strip(),
        field=(field or "").strip(),
        requirements=Requirements(career=career, education=education, skills=skills or []),
        employment_type=employment_type,
        locations=locations or [],
        period=Period(start=start, end=end or date_months_later(1, start)),
        url=url or "",
        source=Source(
            original_id=original_id if original_id is not None else (job_id or ""),
            original_url=original_url or url or "",
        ),
        created_at=now,
        updated_at=now,
        **extra,
    )


def parse_listings(
    items: Iterable[Any],
    parse_one: Callable[[Any], Optional[JobPosting]],
    source_name: str,
) -> List[JobPosting]:
    """
    Turn raw listings into valid postings.

    A listing that raises or yields an invalid posting is skipped; its
    siblings are unaffected.
    """
    postings: List[JobPosting] = []
    skipped = 0
    for item in items:
        try:
            posting = parse_one(item)
        except Exception as e:  # pylint: disable=broad-except
            logger.warning(f"Failed to parse {source_name} listing: {e}")
            skipped += 1
            continue
        if not is_valid_posting(posting):
            skipped += 1
            continue
        postings.append(posting)

    if skipped:
        logger.debug(f"Skipped {skipped} invalid {source_name} listings")
    return postings
