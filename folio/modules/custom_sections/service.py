import logging
from typing import Any, Dict, List

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from folio.database.client import Database
from folio.database.tables import custom_sections
from folio.modules.custom_sections.schemas import (
    CustomSectionCreate, CustomSectionUpdate, ReorderRequest,
)

logger = logging.getLogger(__name__)


def _ordered():
    return select(custom_sections).order_by(
        custom_sections.c.menu_order.asc(), custom_sections.c.created_at.asc()
    )


class CustomSectionService:
    def __init__(self, database: Database):
        self.database = database

    def list_active(self) -> List[Dict[str, Any]]:
        return self.database.fetch_all(_ordered().where(custom_sections.c.is_active.is_(True)))

    def list_all(self) -> List[Dict[str, Any]]:
        return self.database.fetch_all(_ordered())

    def get(self, section_id: str) -> Dict[str, Any]:
        row = self.database.fetch_one(select(custom_sections).where(custom_sections.c.id == section_id))
        if not row:
            raise HTTPException(status_code=404, detail="Custom section not found")
        return row

    def _slug_taken(self, slug: str, exclude_id: str = None) -> bool:
        stmt = select(custom_sections.c.id).where(custom_sections.c.slug == slug)
        if exclude_id:
            stmt = stmt.where(custom_sections.c.id != exclude_id)
        return self.database.fetch_one(stmt) is not None

    def create(self, data: CustomSectionCreate) -> Dict[str, Any]:
        if self._slug_taken(data.slug):
            raise HTTPException(status_code=400, detail="Slug already exists")
        try:
            with self.database.transaction() as conn:
                row = conn.execute(
                    custom_sections.insert().values(**data.model_dump()).returning(*custom_sections.c)
                ).one()
            logger.info("Custom section created: %s", data.slug)
            return dict(row._mapping)
        except IntegrityError:
            # concurrent insert with the same slug
            raise HTTPException(status_code=400, detail="Slug already exists")
        except SQLAlchemyError as e:
            logger.error("Error creating custom section: %s", e)
            raise HTTPException(status_code=500, detail="Failed to create custom section")

    def update(self, section_id: str, data: CustomSectionUpdate) -> Dict[str, Any]:
        self.get(section_id)
        values = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if values.get("slug") and self._slug_taken(values["slug"], exclude_id=section_id):
            raise HTTPException(status_code=400, detail="Slug already exists")
        if not values:
            return self.get(section_id)
        try:
            with self.database.transaction() as conn:
                row = conn.execute(
                    custom_sections.update()
                    .where(custom_sections.c.id == section_id)
                    .values(**values)
                    .returning(*custom_sections.c)
                ).one()
            return dict(row._mapping)
        except IntegrityError:
            raise HTTPException(status_code=400, detail="Slug already exists")
        except SQLAlchemyError as e:
            logger.error("Error updating custom section %s: %s", section_id, e)
            raise HTTPException(status_code=500, detail="Failed to update custom section")

    def delete(self, section_id: str) -> Dict[str, Any]:
        with self.database.transaction() as conn:
            row = conn.execute(
                custom_sections.delete()
                .where(custom_sections.c.id == section_id)
                .returning(*custom_sections.c)
            ).first()
        if row is None:
            raise HTTPException(status_code=404, detail="Custom section not found")
        logger.info("Custom section deleted: %s", section_id)
        return dict(row._mapping)

    def toggle(self, section_id: str) -> Dict[str, Any]:
        section = self.get(section_id)
        with self.database.transaction() as conn:
            row = conn.execute(
                custom_sections.update()
                .where(custom_sections.c.id == section_id)
                .values(is_active=not section["is_active"])
                .returning(*custom_sections.c)
            ).one()
        return dict(row._mapping)

    def reorder(self, data: ReorderRequest) -> None:
        """Set menu_order to each section's position in the list, all or nothing."""
        with self.database.transaction() as conn:
            for index, section in enumerate(data.sections):
                result = conn.execute(
                    custom_sections.update()
                    .where(custom_sections.c.id == section.id)
                    .values(menu_order=index)
                )
                if result.rowcount == 0:
                    raise HTTPException(status_code=404, detail=f"Custom section not found: {section.id}")
