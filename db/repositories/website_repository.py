from sqlalchemy import func
from sqlalchemy.orm import Session
from db.models import Website, UptimeCheck
from db.models.timestamps import utcnow
from datetime import datetime
from typing import Optional


class WebsiteRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, website: Website) -> Website:
        self.db.add(website)
        self.db.commit()
        self.db.refresh(website)
        return website

    def get_by_id(self, website_id: int) -> Website | None:
        return self.db.query(Website).filter(Website.id == website_id).first()

    def get_by_url(self, url: str) -> Website | None:
        return self.db.query(Website).filter(Website.url == url).first()

    def list_websites(self, include_inactive: bool = False) -> list[Website]:
        query = self.db.query(Website)
        if not include_inactive:
            query = query.filter(Website.is_active.is_(True))
        return query.order_by(Website.name).all()

    def list_active_with_last_check(self) -> list[tuple[Website, Optional[datetime]]]:
        last_checks = (
            self.db.query(
                UptimeCheck.website_id.label("website_id"),
                func.max(UptimeCheck.checked_at).label("last_checked_at"),
            )
            .group_by(UptimeCheck.website_id)
            .subquery()
        )
        rows = (
            self.db.query(Website, last_checks.c.last_checked_at)
            .outerjoin(last_checks, last_checks.c.website_id == Website.id)
            .filter(Website.is_active.is_(True))
            .order_by(Website.name)
            .all()
        )
        return [(website, last_checked_at) for website, last_checked_at in rows]

    def update(self, website_id: int, fields: dict) -> Website:
        website = self.get_by_id(website_id)
        if not website:
            raise ValueError("Website not found")
        # Only overwrite fields that were actually provided
        for key, value in fields.items():
            if value is not None and hasattr(website, key):
                setattr(website, key, value)
        self.db.commit()
        self.db.refresh(website)
        return website

    def deactivate(self, website_id: int) -> Website:
        return self.update(website_id, {"is_active": False})

    def add_check(
        self,
        website_id: int,
        status: str,
        response_time: int,
        status_code: int,
        error_message: Optional[str] = None,
        checked_at: Optional[datetime] = None,
    ) -> UptimeCheck:
        check = UptimeCheck(
            website_id=website_id,
            status=status,
            response_time=response_time,
            status_code=status_code,
            error_message=error_message,
            checked_at=checked_at or utcnow(),
        )
        self.db.add(check)
        self.db.commit()
        self.db.refresh(check)
        return check

    def get_last_check(self, website_id: int) -> UptimeCheck | None:
        return (
            self.db.query(UptimeCheck)
            .filter(UptimeCheck.website_id == website_id)
            .order_by(UptimeCheck.checked_at.desc(), UptimeCheck.id.desc())
            .first()
        )

    def list_checks(self, website_id: int, limit: int = 50) -> list[UptimeCheck]:
        return (
            self.db.query(UptimeCheck)
            .filter(UptimeCheck.website_id == website_id)
            .order_by(UptimeCheck.checked_at.desc(), UptimeCheck.id.desc())
            .limit(limit)
            .all()
        )

    def list_checks_since(self, website_id: int, since: datetime) -> list[UptimeCheck]:
        """Checks in the window, oldest first."""
        return (
            self.db.query(UptimeCheck)
            .filter(UptimeCheck.website_id == website_id, UptimeCheck.checked_at >= since)
            .order_by(UptimeCheck.checked_at.asc(), UptimeCheck.id.asc())
            .all()
        )

    def count_checks(self, website_id: int) -> int:
        return self.db.query(UptimeCheck).filter(UptimeCheck.website_id == website_id).count()
