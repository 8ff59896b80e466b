"""
Marketplace API

Endpoints for listing side projects for sale:
- Browse active listings with stage, price and text filters
- View a listing with its project and seller
- Create, update and withdraw listings (project owner only)
"""

import logging
import math
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from sidebuilds.auth import AuthorizedUser
from sidebuilds.libs.database import get_db_connection
from sidebuilds.libs.models import ListingCreate, ListingStatus, ListingUpdate, PriceRange, ProjectStage

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response Models
class ListingProject(BaseModel):
    """Project summary embedded in a listing"""
    id: str
    name: str
    description: Optional[str] = None
    stage: str
    domain_name: Optional[str] = None
    live_url: Optional[str] = None
    repo_url: Optional[str] = None
    image_url: Optional[str] = None
    user_id: str
    created_at: Optional[datetime] = None


class Seller(BaseModel):
    """Public profile of the listing's owner"""
    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    github_url: Optional[str] = None
    twitter_url: Optional[str] = None


class Listing(BaseModel):
    """Marketplace listing"""
    id: str
    project_id: str
    title: str
    description: str
    asking_price: float
    included_assets: Optional[str] = None
    tech_stack: Optional[str] = None
    reason_for_selling: Optional[str] = None
    monthly_revenue: Optional[float] = None
    monthly_users: Optional[int] = None
    status: str
    created_at: datetime
    updated_at: datetime
    project: Optional[ListingProject] = None


class ListingDetail(Listing):
    """Listing with its seller"""
    seller: Optional[Seller] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class ListingsResponse(BaseModel):
    """One page of listings"""
    listings: List[Listing]
    pagination: Pagination


LISTING_SELECT = """
    SELECT
        l.*,
        p.name AS project_name,
        p.description AS project_description,
        p.stage AS project_stage,
        p.domain_name AS project_domain_name,
        p.live_url AS project_live_url,
        p.repo_url AS project_repo_url,
        p.image_url AS project_image_url,
        p.user_id AS project_user_id,
        p.created_at AS project_created_at
    FROM marketplace_listings l
    JOIN projects p ON p.id = l.project_id
"""

PRICE_FILTERS = {
    PriceRange.UNDER_100: "l.asking_price < 100",
    PriceRange.FROM_100_TO_500: "l.asking_price >= 100 AND l.asking_price <= 500",
    PriceRange.FROM_500_TO_1000: "l.asking_price > 500 AND l.asking_price <= 1000",
    PriceRange.OVER_1000: "l.asking_price > 1000",
}


def to_listing(row, detail: bool = False) -> Listing:
    fields = dict(
        id=str(row["id"]),
        project_id=str(row["project_id"]),
        title=row["title"],
        description=row["description"],
        asking_price=row["asking_price"],
        included_assets=row["included_assets"],
        tech_stack=row["tech_stack"],
        reason_for_selling=row["reason_for_selling"],
        monthly_revenue=row["monthly_revenue"],
        monthly_users=row["monthly_users"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        project=ListingProject(
            id=str(row["project_id"]),
            name=row["project_name"],
            description=row["project_description"],
            stage=row["project_stage"],
            domain_name=row["project_domain_name"],
            live_url=row["project_live_url"],
            repo_url=row["project_repo_url"],
            image_url=row["project_image_url"],
            user_id=row["project_user_id"],
            created_at=row["project_created_at"],
        ),
    )
    return ListingDetail(**fields) if detail else Listing(**fields)


def build_listing_filters(
    category: Optional[str],
    price: Optional[PriceRange],
    search: Optional[str],
) -> tuple[str, List[Any]]:
    """WHERE clause and parameters for the public listing search."""
    conditions = ["l.status = 'active'"]
    params: List[Any] = []

    if category and category != "all":
        params.append(category)
        conditions.append(f"p.stage = ${len(params)}")

    if price and price != PriceRange.ALL:
        conditions.append(PRICE_FILTERS[price])

    if search:
        params.append(f"%{search}%")
        conditions.append(f"(l.title ILIKE ${len(params)} OR l.description ILIKE ${len(params)})")

    return " AND ".join(conditions), params


async def get_owned_listing(conn: asyncpg.Connection, listing_id: UUID, user_id: str, action: str):
    listing = await conn.fetchrow(
        """
        SELECT l.id, l.project_id, l.asking_price, p.user_id AS owner_id
        FROM marketplace_listings l
        JOIN projects p ON p.id = l.project_id
        WHERE l.id = $1
        """,
        listing_id,
    )
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    if listing["owner_id"] != user_id:
        raise HTTPException(status_code=403, detail=f"You do not have permission to {action} this listing")
    return listing


async def set_project_sale_state(conn: asyncpg.Connection, project_id, for_sale: Optional[bool] = None, asking_price: Optional[float] = None) -> None:
    """Mirror a listing change onto its project; failures are logged only."""
    try:
        await conn.execute(
            """
            UPDATE projects
            SET for_sale = COALESCE($2, for_sale),
                asking_price = COALESCE($3, asking_price),
                updated_at = NOW()
            WHERE id = $1
            """,
            project_id,
            for_sale,
            asking_price,
        )
    except asyncpg.PostgresError as e:
        logger.warning(f"Error updating project {project_id} sale state: {e}")


@router.get("/marketplace", response_model=ListingsResponse)
async def list_listings(
    category: Optional[str] = None,
    price: Optional[PriceRange] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 9,
):
    """
    Browse active listings, newest first.

    Args:
        category: Project stage to filter by, or 'all'
        price: Price bucket (under100, 100to500, 500to1000, over1000) or 'all'
        search: Case-insensitive text matched against title and description
        page: 1-based page number
        limit: Listings per page
    """
    if category and category != "all" and category not in {s.value for s in ProjectStage}:
        raise HTTPException(status_code=400, detail=f"Unknown category: {category}")
    page = max(page, 1)
    limit = min(max(limit, 1), 50)

    where, params = build_listing_filters(category, price, search)

    conn = await get_db_connection()
    try:
        total = await conn.fetchval(
            f"""
            SELECT COUNT(*)
            FROM marketplace_listings l
            JOIN projects p ON p.id = l.project_id
            WHERE {where}
            """,
            *params,
        )
        rows = await conn.fetch(
            f"""
            {LISTING_SELECT}
            WHERE {where}
            ORDER BY l.created_at DESC
            LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
            """,
            *params,
            limit,
            (page - 1) * limit,
        )
    finally:
        await conn.close()

    total = total or 0
    return ListingsResponse(
        listings=[to_listing(row) for row in rows],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.get("/marketplace/mine", response_model=List[Listing])
async def list_my_listings(user: AuthorizedUser):
    """All of the caller's listings, whatever their status."""
    conn = await get_db_connection()
    try:
        rows = await conn.fetch(
            f"""
            {LISTING_SELECT}
            WHERE p.user_id = $1
            ORDER BY l.created_at DESC
            """,
            user.sub,
        )
        return [to_listing(row) for row in rows]
    finally:
        await conn.close()


@router.get("/marketplace/{listing_id}", response_model=ListingDetail)
async def get_listing(listing_id: UUID):
    """
    Get an active listing with its project and seller.

    Inactive and sold listings are reported as not found.
    """
    conn = await get_db_connection()
    try:
        row = await conn.fetchrow(
            f"""
            {LISTING_SELECT}
            WHERE l.id = $1 AND l.status = 'active'
            """,
            listing_id,
        )
        if not row:
            raise HTTPException(status_code=404, detail="Listing not found or no longer available")

        listing = to_listing(row, detail=True)
        seller = await conn.fetchrow(
            """
            SELECT id, full_name, avatar_url, bio, website, github_url, twitter_url
            FROM users WHERE id = $1
            """,
            row["project_user_id"],
        )
        if seller:
            listing.seller = Seller(**dict(seller))
        return listing
    finally:
        await conn.close()


@router.post("/marketplace", response_model=Listing)
async def create_listing(request: ListingCreate, user: AuthorizedUser):
    """
    List one of the caller's projects for sale.

    A project can only have one active listing at a time. The project is
    flagged for sale with the listing's asking price.
    """
    try:
        project_id = UUID(request.project_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Project not found")

    conn = await get_db_connection()
    try:
        project = await conn.fetchrow("SELECT id, user_id FROM projects WHERE id = $1", project_id)
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")
        if project["user_id"] != user.sub:
            raise HTTPException(status_code=403, detail="You do not have permission to list this project")

        existing = await conn.fetchval(
            "SELECT id FROM marketplace_listings WHERE project_id = $1 AND status = 'active'",
            project_id,
        )
        if existing:
            raise HTTPException(status_code=400, detail="This project is already listed in the marketplace")

        listing_id = await conn.fetchval(
            """
            INSERT INTO marketplace_listings (
                project_id, title, description, asking_price, included_assets,
                tech_stack, reason_for_selling, monthly_revenue, monthly_users, status
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, 'active')
            RETURNING id
            """,
            project_id,
            request.title.strip(),
            request.description.strip(),
            request.asking_price,
            request.included_assets,
            request.tech_stack,
            request.reason_for_selling,
            request.monthly_revenue,
            request.monthly_users,
        )
        await set_project_sale_state(conn, project_id, for_sale=True, asking_price=request.asking_price)

        row = await conn.fetchrow(f"{LISTING_SELECT} WHERE l.id = $1", listing_id)
        logger.info(f"User {user.sub} listed project {project_id} as {listing_id}")
        return to_listing(row)
    finally:
        await conn.close()


@router.put("/marketplace/{listing_id}", response_model=Listing)
async def update_listing(listing_id: UUID, update: ListingUpdate, user: AuthorizedUser):
    """
    Update a listing.

    Price changes are copied to the project. Moving the listing out of
    'active' takes the project off sale; moving it back puts the project on
    sale again, provided the project has no other active listing.
    """
    changes = update.model_dump(exclude_unset=True, mode="json")
    for required in ("title", "description", "asking_price", "status"):
        if required in changes and changes[required] is None:
            del changes[required]
    for text in ("title", "description"):
        if text in changes:
            changes[text] = changes[text].strip()
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = await get_db_connection()
    try:
        listing = await get_owned_listing(conn, listing_id, user.sub, "update")
        reactivating = changes.get("status") == ListingStatus.ACTIVE.value

        if reactivating:
            other = await conn.fetchval(
                """
                SELECT id FROM marketplace_listings
                WHERE project_id = $1 AND id <> $2 AND status = 'active'
                """,
                listing["project_id"],
                listing_id,
            )
            if other:
                raise HTTPException(status_code=400, detail="This project is already listed in the marketplace")

        columns = list(changes)
        assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(columns, start=2))
        await conn.execute(
            f"""
            UPDATE marketplace_listings
            SET {assignments}, updated_at = NOW()
            WHERE id = $1
            """,
            listing_id,
            *[changes[column] for column in columns],
        )

        if reactivating:
            await set_project_sale_state(
                conn,
                listing["project_id"],
                for_sale=True,
                asking_price=changes.get("asking_price", listing["asking_price"]),
            )
        elif changes.get("status"):
            await set_project_sale_state(conn, listing["project_id"], for_sale=False, asking_price=changes.get("asking_price"))
        elif "asking_price" in changes:
            await set_project_sale_state(conn, listing["project_id"], asking_price=changes["asking_price"])

        row = await conn.fetchrow(f"{LISTING_SELECT} WHERE l.id = $1", listing_id)
        return to_listing(row)
    finally:
        await conn.close()


@router.delete("/marketplace/{listing_id}")
async def delete_listing(listing_id: UUID, user: AuthorizedUser):
    """
    Withdraw a listing.

    The row is kept and marked inactive; the project is taken off sale.
    """
    conn = await get_db_connection()
    try:
        listing = await get_owned_listing(conn, listing_id, user.sub, "delete")
        await conn.execute(
            "UPDATE marketplace_listings SET status = 'inactive', updated_at = NOW() WHERE id = $1",
            listing_id,
        )
        await set_project_sale_state(conn, listing["project_id"], for_sale=False)
        return {"success": True}
    finally:
        await conn.close()
