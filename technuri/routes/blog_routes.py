from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from technuri.models.blog_model import BlogCompany, PaginatedBlogPosts
from technuri.services.blog_service import BlogNotFoundError, BlogService, BlogServiceError

router = APIRouter()


def get_blog_service(request: Request) -> BlogService:
    return request.app.state.blog_service


@router.get("/blogs", response_model=PaginatedBlogPosts, response_model_by_alias=True)
async def get_all_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    service: BlogService = Depends(get_blog_service),
):
    """Posts from every engineering blog, newest first."""
    try:
        return await service.get_all_posts(page, limit)
    except BlogServiceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/blogs/companies", response_model=List[BlogCompany], response_model_by_alias=True)
async def get_company_list(service: BlogService = Depends(get_blog_service)):
    return service.get_company_list()


@router.get("/blogs/companies/{company}", response_model=PaginatedBlogPosts, response_model_by_alias=True)
async def get_company_posts(
    company: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    service: BlogService = Depends(get_blog_service),
):
    try:
        return await service.get_company_posts(company, page, limit)
    except BlogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BlogServiceError as e:
        raise HTTPException(status_code=500, detail=str(e))
