"""
Shared API utility functions.
"""

import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Project


def generate_slug(name: str) -> str:
    """Generate a URL-friendly slug from a project name."""
    slug = name.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-_\s]+", "-", slug)
    slug = slug.strip("-")
    return slug[:100] or "project"


async def ensure_unique_slug(db: AsyncSession, slug: str, project_id: Optional[str] = None) -> str:
    """Ensure slug is unique by appending a number if necessary."""
    original_slug = slug
    counter = 1

    while counter <= 100:
        stmt = select(Project.id).where(Project.slug == slug)
        if project_id:
            stmt = stmt.where(Project.id != project_id)

        result = await db.execute(stmt)
        if result.scalar_one_or_none() is None:
            return slug

        slug = f"{original_slug}-{counter}"
        counter += 1

    raise ValueError(f"Could not find a free slug for {original_slug}")
