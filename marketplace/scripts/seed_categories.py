"""
Seed a sample B2B category hierarchy.

Categories whose slug already exists are left untouched, so the script can be
re-run safely; children are still attached under the existing parent.

    python -m marketplace.scripts.seed_categories
    python -m marketplace.scripts.seed_categories --dry-run
"""
import argparse
import asyncio
import logging
import sys
from typing import Any, Optional

from marketplace.core.logging import configure_logging
from marketplace.core.slug import generate_slug
from marketplace.db.init_db import init_database
from marketplace.db.session import AsyncSessionLocal, engine
from marketplace.repositories.category_repository import CategoryRepository
from marketplace.schemas.category import CategoryCreate
from marketplace.services.category_service import CategoryService

logger = logging.getLogger("marketplace.scripts.seed_categories")

SAMPLE_CATEGORIES: list[dict[str, Any]] = [
    {
        "name": "Industrial Equipment",
        "description": "Machinery, tools and spare parts for production sites",
        "children": [
            {"name": "Pumps & Compressors", "children": [
                {"name": "Centrifugal Pumps"},
                {"name": "Air Compressors"},
            ]},
            {"name": "Power Tools"},
            {"name": "Safety Equipment", "children": [
                {"name": "Protective Gloves"},
                {"name": "Hard Hats"},
            ]},
        ],
    },
    {
        "name": "Office Supplies",
        "description": "Everything a business office consumes",
        "children": [
            {"name": "Paper Products"},
            {"name": "Office Furniture", "children": [
                {"name": "Desks"},
                {"name": "Office Chairs"},
            ]},
        ],
    },
    {
        "name": "Packaging Materials",
        "children": [
            {"name": "Corrugated Boxes"},
            {"name": "Stretch Film"},
            {"name": "Pallets"},
        ],
    },
    {
        "name": "Electronics & Components",
        "children": [
            {"name": "Cables & Connectors"},
            {"name": "Sensors"},
            {"name": "Power Supplies"},
        ],
    },
]


async def seed(nodes: list[dict[str, Any]], dry_run: bool = False) -> tuple[int, int]:
    """Create the hierarchy depth-first; returns (created, skipped)."""
    created = 0
    skipped = 0
    async with AsyncSessionLocal() as db:
        service = CategoryService(db)
        repo = CategoryRepository(db)
        stack: list[tuple[dict[str, Any], Optional[int], int]] = [
            (node, None, order) for order, node in reversed(list(enumerate(nodes)))
        ]
        while stack:
            node, parent_id, order = stack.pop()
            slug = generate_slug(node["name"])
            existing = await repo.get_by_slug(slug)
            if existing is not None:
                logger.info("Skipping %s: slug already exists (id=%s)", slug, existing.id)
                category_id = existing.id
                skipped += 1
            elif dry_run:
                logger.info("Would create %s under parent %s", slug, parent_id)
                category_id = None
                created += 1
            else:
                category = await service.create(CategoryCreate(
                    name=node["name"],
                    description=node.get("description"),
                    parent_id=parent_id,
                    display_order=order,
                ))
                logger.info("Created %s at %s", category.slug, category.path)
                category_id = category.id
                created += 1

            children = node.get("children", [])
            stack.extend(
                (child, category_id, child_order)
                for child_order, child in reversed(list(enumerate(children)))
            )
    return created, skipped


async def run(dry_run: bool, create_tables: bool) -> tuple[int, int]:
    if create_tables:
        await init_database(engine)
    try:
        return await seed(SAMPLE_CATEGORIES, dry_run=dry_run)
    finally:
        await engine.dispose()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed a sample B2B category hierarchy")
    parser.add_argument("--dry-run", action="store_true", help="Only log what would be created")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level)
    created, skipped = asyncio.run(run(dry_run=args.dry_run, create_tables=args.create_tables))
    logger.info("Done: %d created, %d skipped", created, skipped)
    return 0


if __name__ == "__main__":
    sys.exit(main())
