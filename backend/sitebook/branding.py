"""
Branding (project name, address, receipt footer, logo, wallpaper).
Loaded once at start-up into app.state.branding; every change goes through update_branding(),
which writes the singleton settings row and replaces the in-memory copy.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sitebook import crud
from sitebook.models import ProjectSettings

logger = logging.getLogger(__name__)

DEFAULT_BRAND_NAME = "Sitebook"


@dataclass(frozen=True)
class BrandingConfig:
    project_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    receipt_footer: Optional[str] = None
    brand_logo_url: Optional[str] = None
    bg_type: str = "default"
    background_image_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        return (self.project_name or "").strip() or DEFAULT_BRAND_NAME

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: ProjectSettings) -> "BrandingConfig":
        return cls(
            project_name=row.project_name,
            address=row.address,
            phone=row.phone,
            receipt_footer=row.receipt_footer,
            brand_logo_url=row.brand_logo_url,
            bg_type=row.bg_type or "default",
            background_image_url=row.background_image_url,
        )


async def load_branding(db: AsyncSession) -> BrandingConfig:
    return BrandingConfig.from_row(await crud.get_project_settings(db))


async def update_branding(db: AsyncSession, current: BrandingConfig, changes: Dict[str, Any]) -> BrandingConfig:
    """Persist the changed fields and return the new config; the caller swaps it onto app.state."""
    if not changes:
        return current
    row = await crud.update_project_settings(db, changes)
    logger.info("branding updated: %s", ", ".join(sorted(changes)))
    return BrandingConfig.from_row(row)
