from sqlalchemy.orm import Session
from db.models import AlertHistory
from db.models.timestamps import utcnow
from datetime import datetime


class AlertRepository:
    def __init__(self, db: Session):
        self.db = db

    def count_since(self, website_id: int, alert_type: str, since: datetime) -> int:
        return (
            self.db.query(AlertHistory)
            .filter(
                AlertHistory.website_id == website_id,
                AlertHistory.alert_type == alert_type,
                AlertHistory.sent_at > since,
            )
            .count()
        )

    def record(self, website_id: int, alert_type: str, sent_at: datetime | None = None) -> AlertHistory:
        alert = AlertHistory(website_id=website_id, alert_type=alert_type, sent_at=sent_at or utcnow())
        self.db.add(alert)
        self.db.commit()
        self.db.refresh(alert)
        return alert

    def list_for_website(self, website_id: int, limit: int = 20) -> list[AlertHistory]:
        return (
            self.db.query(AlertHistory)
            .filter(AlertHistory.website_id == website_id)
            .order_by(AlertHistory.sent_at.desc())
            .limit(limit)
            .all()
        )
