#!/usr/bin/env python3
"""Seed categories, tags and a moderator account for local Taleshelf development."""
import asyncio
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from src.auth import hash_password
from src.db.engine import engine, async_session
from src.db.tables import Base, CategoryRow, TagRow
from src.db.user_tables import UserRow, ROLE_MODERATOR
import src.db.comment_tables  # noqa: F401
import src.db.report_tables  # noqa: F401
import src.db.rating_tables  # noqa: F401

CATEGORIES = [
    ("Fiction", "Mystery"),
    ("Non-Fiction", "Biography"),
    ("Science Fiction", "Space Opera"),
    ("Fantasy", "Epic Fantasy"),
    ("Thriller", "Psychological Thriller"),
    ("Historical Fiction", "Medieval"),
    ("Romance", "Contemporary Romance"),
    ("Horror", "Supernatural Horror"),
    ("Young Adult", "Dystopian"),
    ("Children's Literature", "Picture Book"),
    ("Poetry", "Sonnet"),
    ("Drama", "Tragedy"),
]

TAGS = [
    "Fiction", "Science Fiction", "Fantasy", "Mystery", "Thriller", "Horror",
    "Romance", "Historical Fiction", "Young Adult", "Children's Literature",
    "Contemporary", "Dystopian", "Adventure", "Crime", "Suspense", "Paranormal",
    "Supernatural", "Urban Fantasy", "Steampunk", "Cyberpunk",
]

MODERATOR_EMAIL = os.getenv("SEED_MODERATOR_EMAIL", "moderator@example.com")
MODERATOR_PASSWORD = os.getenv("SEED_MODERATOR_PASSWORD", "moderator-dev-password")


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        existing = set((await session.execute(select(CategoryRow.name))).scalars().all())
        new_categories = [CategoryRow(name=n, genre=g) for n, g in CATEGORIES if n not in existing]
        session.add_all(new_categories)

        existing = set((await session.execute(select(TagRow.name))).scalars().all())
        new_tags = [TagRow(name=n) for n in TAGS if n not in existing]
        session.add_all(new_tags)

        moderator = (await session.execute(
            select(UserRow).where(UserRow.email == MODERATOR_EMAIL)
        )).scalar_one_or_none()
        if moderator is None:
            session.add(UserRow(
                name="Moderator User",
                email=MODERATOR_EMAIL,
                password_hash=hash_password(MODERATOR_PASSWORD),
                role=ROLE_MODERATOR,
            ))

        await session.commit()
        print(f"Seeded {len(new_categories)} categories, {len(new_tags)} tags")
        if moderator is None:
            print(f"Created moderator account {MODERATOR_EMAIL}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
