"""Projects API - CRUD operations for a user's side projects."""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from sidebuilds.auth import AuthorizedUser, OptionalUser
from sidebuilds.libs.database import get_db_connection
from sidebuilds.libs.models import ProjectCreate, ProjectStage, ProjectStatus, ProjectUpdate
from sidebuilds.libs.storage_client import PROJECT_IMAGES, StorageClient, StorageError

logger = logging.getLogger(__name__)

router = APIRouter()

# Pydantic Models

class ProjectResponse(BaseModel):
    """Full project record."""
    id: str
    user_id: str
    name: str
    description: Optional[str]
    stage: str
    status: str
    is_public: bool
    for_sale: bool
    asking_price: Optional[float]
    domain_name: Optional[str]
    repo_url: Optional[str]
    live_url: Optional[str]
    image_url: Optional[str]
    created_at: datetime
    updated_at: datetime

class PublicProject(BaseModel):
    """Showcase view of a public project."""
    id: str
    name: str
    description: Optional[str]
    stage: str
    live_url: Optional[str]
    image_url: Optional[str]
    for_sale: bool
    created_at: datetime

# Helper Functions

UPDATABLE_FIELDS = (
    "name", "description", "stage", "status", "is_public",
    "domain_name", "repo_url", "live_url", "image_url",
)


def to_project_response(row) -> ProjectResponse:
    return ProjectResponse(
        id=str(row["id"]),
        user_id=row["user_id"],
        name=row["name"],
        description=row["description"],
        stage=row["stage"],
        status=row["status"],
        is_public=row["is_public"],
        for_sale=row["for_sale"],
        asking_price=row["asking_price"],
        domain_name=row["domain_name"],
        repo_url=row["repo_url"],
        live_url=row["live_url"],
        image_url=row["image_url"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def get_owned_project(conn: asyncpg.Connection, project_id: UUID, user_id: str):
    """Fetch a project and verify the caller owns it.

    Raises:
        HTTPException: 404 if the project does not exist, 403 if someone else owns it
    """
    project = await conn.fetchrow("SELECT * FROM projects WHERE id = $1", project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    if project["user_id"] != user_id:
        raise HTTPException(status_code=403, detail="You don't have permission to modify this project")
    return project


async def remove_project_image(image_url: Optional[str]) -> None:
    """Delete a project's image from storage; failures are only logged."""
    if not image_url:
        return
    path = StorageClient.path_from_public_url(PROJECT_IMAGES.name, image_url)
    if not path:
        return
    try:
        await StorageClient().remove(PROJECT_IMAGES.name, [path])
    except StorageError as e:
        logger.warning(f"Could not delete project image {path}: {e.message}")

# API Endpoints

@router.get("/projects", response_model=List[ProjectResponse])
async def list_projects(
    user: AuthorizedUser,
    stage: Optional[ProjectStage] = None,
    status: Optional[ProjectStatus] = None,
):
    """
    List the authenticated user's projects, most recently updated first.

    Optional filters narrow the list by stage or status.
    """
    conn = await get_db_connection()
    try:
        rows = await conn.fetch(
            """
            SELECT * FROM projects
            WHERE user_id = $1
              AND ($2::text IS NULL OR stage = $2)
              AND ($3::text IS NULL OR status = $3)
            ORDER BY updated_at DESC
            """,
            user.sub,
            stage.value if stage else None,
            status.value if status else None,
        )
        return [to_project_response(row) for row in rows]
    finally:
        await conn.close()


@router.get("/projects/public", response_model=List[PublicProject])
async def list_public_projects(limit: int = 12):
    """Public projects for the showcase, newest first."""
    conn = await get_db_connection()
    try:
        rows = await conn.fetch(
            """
            SELECT id, name, description, stage, live_url, image_url, for_sale, created_at
            FROM projects
            WHERE is_public = TRUE AND status = 'active'
            ORDER BY created_at DESC
            LIMIT $1
            """,
            min(max(limit, 1), 50),
        )
        return [
            PublicProject(
                id=str(row["id"]),
                name=row["name"],
                description=row["description"],
                stage=row["stage"],
                live_url=row["live_url"],
                image_url=row["image_url"],
                for_sale=row["for_sale"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
    finally:
        await conn.close()


@router.post("/projects", response_model=ProjectResponse)
async def create_project(project: ProjectCreate, user: AuthorizedUser):
    """
    Create a new project owned by the authenticated user.

    New projects start in the requested stage (default: idea) with status 'active'.
    """
    conn = await get_db_connection()
    try:
        row = await conn.fetchrow(
            """
            INSERT INTO projects (
                user_id, name, description, stage, status, is_public,
                domain_name, repo_url, live_url, image_url
            )
            VALUES ($1, $2, $3, $4, 'active', $5, $6, $7, $8, $9)
            RETURNING *
            """,
            user.sub,
            project.name.strip(),
            project.description,
            project.stage.value,
            project.is_public,
            project.domain_name,
            project.repo_url,
            project.live_url,
            project.image_url,
        )
        logger.info(f"Created project {row['id']} for user {user.sub}")
        return to_project_response(row)
    finally:
        await conn.close()


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: UUID, user: OptionalUser):
    """
    Get a project.

    Owners can always read their projects; anyone else, signed in or not,
    only public ones.
    """
    conn = await get_db_connection()
    try:
        project = await conn.fetchrow("SELECT * FROM projects WHERE id = $1", project_id)
        is_owner = user is not None and project is not None and project["user_id"] == user.sub
        if not project or (not is_owner and not project["is_public"]):
            raise HTTPException(status_code=404, detail="Project not found")
        return to_project_response(project)
    finally:
        await conn.close()


@router.put("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(project_id: UUID, update: ProjectUpdate, user: AuthorizedUser):
    """
    Update a project.

    Only the fields present in the request body are changed; updated_at is bumped.
    """
    changes = update.model_dump(exclude_unset=True, mode="json")
    changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
    if "name" in changes and changes["name"] is None:
        raise HTTPException(status_code=400, detail="Project name is required")
    # NOT NULL columns: an explicit null leaves them unchanged
    for column in ("stage", "status", "is_public"):
        if column in changes and changes[column] is None:
            del changes[column]
    if "name" in changes:
        changes["name"] = changes["name"].strip()

    conn = await get_db_connection()
    try:
        project = await get_owned_project(conn, project_id, user.sub)
        if not changes:
            return to_project_response(project)

        columns = list(changes)
        assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(columns, start=2))
        row = await conn.fetchrow(
            f"""
            UPDATE projects
            SET {assignments}, updated_at = NOW()
            WHERE id = $1
            RETURNING *
            """,
            project_id,
            *[changes[column] for column in columns],
        )
        return to_project_response(row)
    finally:
        await conn.close()


@router.delete("/projects/{project_id}")
async def delete_project(project_id: UUID, user: AuthorizedUser):
    """
    Delete a project together with its metrics and marketplace listings.

    The project's image is removed from storage afterwards; if that fails the
    project stays deleted and the failure is logged.
    """
    conn = await get_db_connection()
    try:
        async with conn.transaction():
            project = await get_owned_project(conn, project_id, user.sub)
            await conn.execute("DELETE FROM project_metrics WHERE project_id = $1", project_id)
            await conn.execute("DELETE FROM marketplace_listings WHERE project_id = $1", project_id)
            await conn.execute("DELETE FROM projects WHERE id = $1", project_id)
    finally:
        await conn.close()

    await remove_project_image(project["image_url"])
    logger.info(f"Deleted project {project_id} for user {user.sub}")
    return {"success": True, "message": "Project deleted successfully"}
