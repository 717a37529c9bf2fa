# =============================================================================
# app/routers/catalog.py - Categories, Products and Reviews
# =============================================================================
# Browsing is public. Categories are managed by admins, products by
# sellers (admins may manage any product). Reviews come from customers
# who received the product.
# =============================================================================

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.auth import AuthUser, get_current_user, get_current_user_optional, require_admin, require_seller
from core.models.commerce import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ProductCreate,
    ProductQuery,
    ProductResponse,
    ProductUpdate,
    ReviewCreate,
    ReviewQuery,
    ReviewResponse,
    ReviewUpdate,
    ReviewVote,
    SellerResponse,
    StockAdjustment,
)
from core.services.catalog_service import CatalogService
from core.services.review_service import ReviewService
from lib.pagination import Page, PageRequest, build_page

# Mounted at /categories, /products and /reviews respectively
categories_router = APIRouter()
router = APIRouter()
reviews_router = APIRouter()

CategoryId = Annotated[UUID, Path(description="Category UUID")]
ProductId = Annotated[UUID, Path(description="Product UUID")]
ReviewId = Annotated[UUID, Path(description="Review UUID")]


# =============================================================================
# Categories
# =============================================================================

@categories_router.get("", response_model=list[CategoryResponse])
async def list_categories(
    parent_id: Annotated[Optional[UUID], Query(description="Only children of this category")] = None,
):
    return CatalogService.list_categories(parent_id)


@categories_router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: CategoryId):
    return CatalogService.get_category(category_id)


@categories_router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(body: CategoryCreate, admin: AuthUser = Depends(require_admin)):
    return CatalogService.create_category(body)


@categories_router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: CategoryId,
    body: CategoryUpdate,
    admin: AuthUser = Depends(require_admin),
):
    return CatalogService.update_category(category_id, body)


@categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: CategoryId, admin: AuthUser = Depends(require_admin)):
    """Only empty categories can be deleted."""
    CatalogService.delete_category(category_id)


# =============================================================================
# Products
# =============================================================================

@router.get("", response_model=Page[ProductResponse])
async def list_products(query: Annotated[ProductQuery, Query()]):
    """Active products, filtered by category, seller, name and price range."""
    rows, total = CatalogService.list_products(query)
    return build_page(rows, total, query)


@router.get("/mine", response_model=Page[ProductResponse])
async def list_my_products(
    page: Annotated[PageRequest, Query()],
    seller: AuthUser = Depends(require_seller),
):
    """The caller's listings, including inactive ones."""
    rows, total = CatalogService.list_seller_products(seller, page)
    return build_page(rows, total, page)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: ProductId, viewer: AuthUser | None = Depends(get_current_user_optional)):
    return CatalogService.get_product(product_id, viewer)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(body: ProductCreate, seller: AuthUser = Depends(require_seller)):
    return CatalogService.create_product(seller, body)


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: ProductId,
    body: ProductUpdate,
    seller: AuthUser = Depends(require_seller),
):
    return CatalogService.update_product(seller, product_id, body)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: ProductId, seller: AuthUser = Depends(require_seller)):
    CatalogService.delete_product(seller, product_id)


@router.post("/{product_id}/stock", response_model=ProductResponse)
async def adjust_stock(
    product_id: ProductId,
    body: StockAdjustment,
    seller: AuthUser = Depends(require_seller),
):
    """Add (positive delta) or remove (negative delta) inventory."""
    return CatalogService.adjust_stock(seller, product_id, body)


# =============================================================================
# Reviews
# =============================================================================

@router.get("/{product_id}/reviews", response_model=Page[ReviewResponse])
async def list_reviews(product_id: ProductId, query: Annotated[ReviewQuery, Query()]):
    rows, total = ReviewService.list_reviews(product_id, query)
    return build_page(rows, total, query)


@router.post("/{product_id}/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(product_id: ProductId, body: ReviewCreate, user: AuthUser = Depends(get_current_user)):
    """Review a product from one of your delivered orders."""
    return ReviewService.create_review(user, product_id, body)


@reviews_router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(review_id: ReviewId):
    return ReviewService.get_review(review_id)


@reviews_router.patch("/{review_id}", response_model=ReviewResponse)
async def update_review(review_id: ReviewId, body: ReviewUpdate, user: AuthUser = Depends(get_current_user)):
    return ReviewService.update_review(user, review_id, body)


@reviews_router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(review_id: ReviewId, user: AuthUser = Depends(get_current_user)):
    ReviewService.delete_review(user, review_id)


@reviews_router.post("/{review_id}/votes", response_model=ReviewResponse)
async def vote_review(review_id: ReviewId, body: ReviewVote, user: AuthUser = Depends(get_current_user)):
    """Mark a review helpful or not; voting again replaces your vote."""
    return ReviewService.vote(user, review_id, body)


@reviews_router.put("/{review_id}/response", response_model=ReviewResponse)
async def respond_to_review(review_id: ReviewId, body: SellerResponse, seller: AuthUser = Depends(require_seller)):
    return ReviewService.respond(seller, review_id, body)
