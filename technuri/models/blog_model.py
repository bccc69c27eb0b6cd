from datetime import datetime
from typing import List, Optional

from technuri.models.job_model import CamelModel


class BlogPost(CamelModel):
    id: str
    company: str
    title: str
    description: str = ""
    link: str
    author: Optional[str] = None
    publish_date: datetime


class BlogPageMeta(CamelModel):
    total: int
    page: int
    limit: int
    has_next: bool


class PaginatedBlogPosts(CamelModel):
    items: List[BlogPost]
    meta: BlogPageMeta


class BlogCompany(CamelModel):
    code: str
    name: str
