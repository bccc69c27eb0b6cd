"""
Keyword tables that turn free-text listing fragments into canonical fields.

Every table is ordered: the first rule that matches wins, so more specific
rules come before broader ones.
"""
import re
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from technuri.models.job_model import CareerType, EmploymentType, LocationType


def _ascii_bounded(term: str) -> str:
    # \b treats Hangul as word characters, so "Java개발" would never match
    return rf"(?<![A-Za-z0-9]){re.escape(term)}(?![A-Za-z0-9])"


def _compile(terms: Iterable[str], case_sensitive: bool = False) -> Pattern:
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile("|".join(_ascii_bounded(term) for term in terms), flags)


# (canonical name, spellings, case sensitive). Composite terms are listed
# before their parts so "Spring Boot" is not also reported as "Spring".
SKILL_TABLE: List[Tuple[str, Sequence[str], bool]] = [
    ("Spring Boot", ["Spring Boot", "SpringBoot"], False),
    ("Spring Framework", ["Spring Framework"], False),
    ("Node.js", ["Node.js", "NodeJS", "Node"], False),
    ("Next.js", ["Next.js", "NextJS"], False),
    ("Vue.js", ["Vue.js", "VueJS", "Vue"], False),
    ("React Native", ["React Native"], False),
    ("Machine Learning", ["Machine Learning", "머신러닝"], False),
    ("Deep Learning", ["Deep Learning", "딥러닝"], False),
    ("CI/CD", ["CI/CD"], False),
    ("JavaScript", ["JavaScript", "JS"], False),
    ("TypeScript", ["TypeScript", "TS"], False),
    ("Java", ["Java"], False),
    ("Kotlin", ["Kotlin"], False),
    ("Python", ["Python"], False),
    ("Go", ["Golang", "golang", "Go"], True),
    ("Rust", ["Rust"], False),
    ("Scala", ["Scala"], False),
    ("Swift", ["Swift"], False),
    ("Objective-C", ["Objective-C"], False),
    ("C++", ["C++", "cpp"], False),
    ("C#", ["C#"], False),
    ("PHP", ["PHP"], False),
    ("Ruby", ["Ruby"], False),
    ("Spring", ["Spring"], False),
    ("Django", ["Django"], False),
    ("FastAPI", ["FastAPI"], False),
    ("Flask", ["Flask"], False),
    ("React", ["React", "ReactJS", "React.js"], False),
    ("Angular", ["Angular"], False),
    ("Android", ["Android"], False),
    ("iOS", ["iOS"], False),
    ("Flutter", ["Flutter"], False),
    ("Kubernetes", ["Kubernetes", "k8s"], False),
    ("Docker", ["Docker"], False),
    ("Terraform", ["Terraform"], False),
    ("AWS", ["AWS"], False),
    ("GCP", ["GCP"], False),
    ("Azure", ["Azure"], False),
    ("Kafka", ["Kafka"], False),
    ("Spark", ["Spark"], False),
    ("Hadoop", ["Hadoop"], False),
    ("Airflow", ["Airflow"], False),
    ("Elasticsearch", ["Elasticsearch", "Elastic Search"], False),
    ("Redis", ["Redis"], False),
    ("MySQL", ["MySQL"], False),
    ("PostgreSQL", ["PostgreSQL", "Postgres"], False),
    ("MongoDB", ["MongoDB"], False),
    ("Oracle", ["Oracle"], False),
    ("SQL", ["SQL"], False),
    ("GraphQL", ["GraphQL"], False),
    ("gRPC", ["gRPC"], False),
    ("Linux", ["Linux"], False),
    ("TensorFlow", ["TensorFlow"], False),
    ("PyTorch", ["PyTorch"], False),
    ("LLM", ["LLM"], False),
]

_SKILL_PATTERNS: List[Tuple[str, Pattern]] = [
    (canonical, _compile(spellings, case_sensitive))
    for canonical, spellings, case_sensitive in SKILL_TABLE
]

SKILL_ALIASES: Dict[str, str] = {
    spelling.lower(): canonical
    for canonical, spellings, _ in SKILL_TABLE
    for spelling in spellings
}


def dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def extract_skills(*texts: Optional[str]) -> List[str]:
    """
    Skills mentioned in the given texts, in order of first appearance.
    """
    text = "\n".join(t for t in texts if t)
    if not text:
        return []

    claimed: List[Tuple[int, int]] = []
    found: List[Tuple[int, str]] = []
    for canonical, pattern in _SKILL_PATTERNS:
        for match in pattern.finditer(text):
            start, end = match.span()
            if any(start < c_end and c_start < end for c_start, c_end in claimed):
                continue
            claimed.append((start, end))
            found.append((start, canonical))

    found.sort(key=lambda item: item[0])
    return dedupe(canonical for _, canonical in found)


def normalize_skill(raw: str) -> str:
    cleaned = (raw or "").strip().strip("#").strip()
    return SKILL_ALIASES.get(cleaned.lower(), cleaned)


def normalize_skills(raw_skills: Iterable[str]) -> List[str]:
    return dedupe(normalize_skill(skill) for skill in raw_skills)


def _keyword_rules(table: Sequence[Tuple[str, Sequence[str]]]) -> List[Tuple[str, Pattern]]:
    return [(label, _compile(keywords)) for label, keywords in table]


FIELD_TABLE: List[Tuple[str, Sequence[str]]] = [
    ("Frontend", ["Frontend", "Front-end", "Front end", "프론트엔드", "프론트", "Web Front"]),
    ("Backend", ["Backend", "Back-end", "Back end", "백엔드", "서버", "Server Developer"]),
    ("Mobile", ["Android", "iOS", "Mobile", "모바일", "Flutter", "앱 개발"]),
    ("AI/ML", ["Machine Learning", "ML", "AI", "LLM", "머신러닝", "딥러닝", "인공지능"]),
    ("Data", ["Data", "데이터", "Analytics", "분석"]),
    ("Security", ["Security", "보안", "Privacy"]),
    ("Infrastructure", ["DevOps", "SRE", "Site Reliability", "Infra", "Infrastructure", "인프라",
                        "Cloud", "클라우드", "Platform", "플랫폼", "Network", "네트워크"]),
    ("QA", ["QA", "Quality", "Test", "테스트", "품질"]),
    ("Embedded", ["Embedded", "임베디드", "Firmware", "펌웨어"]),
]
DEFAULT_FIELD = "Engineering"
_FIELD_RULES = _keyword_rules(FIELD_TABLE)

JOB_CATEGORY_TABLE: List[Tuple[str, Sequence[str]]] = [
    ("Development", ["개발", "Developer", "Engineer", "엔지니어", "Engineering", "Programmer"]),
    ("Design", ["디자인", "Designer", "Design", "UX", "UI"]),
    ("Planning", ["기획", "Product Manager", "Product Owner", "PM", "PO"]),
    ("Marketing", ["마케팅", "Marketing", "Growth"]),
    ("Data", ["데이터", "Data", "Scientist", "Analyst"]),
]
DEFAULT_JOB_CATEGORY = "Other"
_JOB_CATEGORY_RULES = _keyword_rules(JOB_CATEGORY_TABLE)

TECH_TITLE_KEYWORDS = [
    "Engineer", "Engineering", "Developer", "Programmer", "Scientist", "Architect",
    "Frontend", "Backend", "DevOps", "SRE", "Security", "Data", "ML", "AI", "QA",
    "Android", "iOS", "Server", "Infra",
    "개발", "엔지니어", "프론트엔드", "백엔드", "서버", "데이터", "보안", "인프라",
]
_TECH_TITLE_PATTERN = _compile(TECH_TITLE_KEYWORDS)


def _first_match(rules: List[Tuple[str, Pattern]], text: str, default: str) -> str:
    for label, pattern in rules:
        if pattern.search(text or ""):
            return label
    return default


def infer_field(*texts: Optional[str]) -> str:
    return _first_match(_FIELD_RULES, " ".join(t for t in texts if t), DEFAULT_FIELD)


def infer_job_category(*texts: Optional[str]) -> str:
    return _first_match(_JOB_CATEGORY_RULES, " ".join(t for t in texts if t), DEFAULT_JOB_CATEGORY)


def is_tech_title(title: str) -> bool:
    return bool(_TECH_TITLE_PATTERN.search(title or ""))


NEW_MARKERS = ("신입", "new grad", "entry", "junior", "주니어")
EXPERIENCED_MARKERS = ("경력", "experienced", "senior", "시니어", "lead", "리드")
ANY_MARKERS = ("무관", "경력무관")


def map_career(text: Optional[str]) -> CareerType:
    """
    신입 -> NEW, 경력 -> EXPERIENCED. Postings open to both ("신입/경력",
    "경력무관") or saying nothing map to ANY.
    """
    lowered = (text or "").lower()
    if any(marker in lowered for marker in ANY_MARKERS):
        return CareerType.ANY
    is_new = any(marker in lowered for marker in NEW_MARKERS)
    is_experienced = any(marker in lowered for marker in EXPERIENCED_MARKERS)
    if is_new and not is_experienced:
        return CareerType.NEW
    if is_experienced and not is_new:
        return CareerType.EXPERIENCED
    return CareerType.ANY


def map_employment_type(text: Optional[str]) -> EmploymentType:
    lowered = (text or "").lower()
    if "계약" in lowered or "contract" in lowered or "temporary" in lowered:
        return EmploymentType.CONTRACT
    if "인턴" in lowered or "intern" in lowered:
        return EmploymentType.INTERN
    return EmploymentType.FULL_TIME


LOCATION_TABLE: List[Tuple[LocationType, Sequence[str]]] = [
    (LocationType.BUNDANG, ("분당", "판교", "정자", "bundang", "pangyo", "seongnam", "성남")),
    (LocationType.SEOUL, ("서울", "seoul", "강남", "잠실", "송파", "역삼")),
    (LocationType.CHUNCHEON, ("춘천", "chuncheon")),
    (LocationType.SEJONG, ("세종", "sejong")),
    (LocationType.BUSAN, ("부산", "busan")),
    (LocationType.GLOBAL, ("global", "글로벌", "해외", "overseas", "japan", "taiwan", "thailand",
                           "vietnam", "tokyo", "taipei", "singapore", "usa", "united states")),
]


def map_location(text: Optional[str], default: LocationType = LocationType.OTHER) -> LocationType:
    lowered = (text or "").lower()
    for location, markers in LOCATION_TABLE:
        if any(marker in lowered for marker in markers):
            return location
    return default


def html_to_lines(html: Optional[str]) -> List[str]:
    """Split an HTML-ish fragment on line breaks and strip bullet markers."""
    if not html:
        return []
    text = re.sub(r"<br\s*/?>", "\n", html, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    lines = []
    for line in text.split("\n"):
        line = line.strip().lstrip("-•·*").strip()
        if line:
            lines.append(line)
    return lines
