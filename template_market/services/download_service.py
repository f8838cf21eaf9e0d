import enum
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload

from template_market.config import settings
from template_market.models.download import DownloadHistory
from template_market.models.template import Template
from template_market.models.user import User
from template_market.services.email_services import EmailDispatcher
from template_market.utils.clock import utcnow

logger = logging.getLogger(__name__)

DOWNLOADS_PAGE_SIZE = 6


class DownloadSort(str, enum.Enum):
    all = "All Downloads"
    last_day = "Last Day"
    last_7_days = "Last 7 Day"
    last_30_days = "Last 30 Day"
    last_quarter = "Last Quarter"
    last_year = "Last Year"


class DownloadCategory(str, enum.Enum):
    all = "All"
    free = "Free Download"
    premium = "Premium"


SORT_WINDOWS = {
    DownloadSort.last_day: timedelta(days=1),
    DownloadSort.last_7_days: timedelta(days=7),
    DownloadSort.last_30_days: timedelta(days=30),
    DownloadSort.last_quarter: timedelta(days=90),
    DownloadSort.last_year: timedelta(days=365),
}


@dataclass
class DownloadResult:
    url: str
    email: str
    email_sent: bool
    free_downloads: int | None


def start_of_utc_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class DownloadService:
    """Hands out a template's source file while enforcing the free-download allowance.

    Registered users spend their ``free_downloads`` counter, which is reset
    daily. Anonymous callers are limited per email per UTC day, counted from
    the download history.
    """

    def __init__(self, db: Session, mailer: EmailDispatcher, daily_limit: int, clock=utcnow):
        self.db = db
        self.mailer = mailer
        self.daily_limit = daily_limit
        self.clock = clock

    def download(
        self,
        template_id: int,
        user: User | None,
        email: str | None = None,
        name: str | None = None,
    ) -> DownloadResult:
        template = (
            self.db.query(Template)
            .options(joinedload(Template.source_files))
            .filter(Template.id == template_id)
            .first()
        )
        if not template:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
        if template.is_paid:
            raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="This template requires a purchase")
        if not template.source_files:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No source file available for this template")

        if user is not None:
            if user.free_downloads <= 0:
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No free downloads left for today")
            user.free_downloads -= 1
            destination = user.email
            recipient = name or user.name
        else:
            if not email:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")
            if self.count_today(email) >= self.daily_limit:
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Daily free download limit reached")
            destination = email
            recipient = name

        self.db.add(
            DownloadHistory(
                user_id=user.id if user else None,
                email=destination,
                template_id=template.id,
                downloaded_at=self.clock(),
            )
        )
        template.downloads = (template.downloads or 0) + 1
        self.db.commit()

        url = template.source_files[0].file_url
        try:
            email_sent = self.mailer.send_download_link(destination, url, template.title, recipient)
        except Exception:
            logger.exception("Sending download link to %s raised", destination)
            email_sent = False
        if not email_sent:
            logger.warning("Download of template %s recorded but link email to %s failed", template.id, destination)

        return DownloadResult(
            url=url,
            email=destination,
            email_sent=email_sent,
            free_downloads=user.free_downloads if user else None,
        )

    def count_today(self, email: str) -> int:
        since = start_of_utc_day(self.clock())
        return (
            self.db.query(DownloadHistory)
            .filter(
                DownloadHistory.user_id.is_(None),
                DownloadHistory.email == email,
                DownloadHistory.downloaded_at >= since,
            )
            .count()
        )

    def history(
        self,
        user: User,
        page: int = 1,
        sort: DownloadSort = DownloadSort.all,
        category: DownloadCategory = DownloadCategory.all,
    ) -> dict:
        query = (
            self.db.query(DownloadHistory)
            .join(Template, DownloadHistory.template_id == Template.id)
            .options(joinedload(DownloadHistory.template).joinedload(Template.preview_images))
            .filter(DownloadHistory.user_id == user.id)
        )

        window = SORT_WINDOWS.get(sort)
        if window is not None:
            query = query.filter(DownloadHistory.downloaded_at >= self.clock() - window)

        if category == DownloadCategory.free:
            query = query.filter(Template.is_paid.is_(False))
        elif category == DownloadCategory.premium:
            query = query.filter(Template.is_paid.is_(True))

        total = query.count()
        page = max(page, 1)
        rows = (
            query.order_by(DownloadHistory.downloaded_at.desc(), DownloadHistory.id.desc())
            .offset((page - 1) * DOWNLOADS_PAGE_SIZE)
            .limit(DOWNLOADS_PAGE_SIZE)
            .all()
        )

        return {
            "downloads": rows,
            "pagination": {
                "total": total,
                "page": page,
                "limit": DOWNLOADS_PAGE_SIZE,
                "total_pages": math.ceil(total / DOWNLOADS_PAGE_SIZE) if total else 0,
            },
        }


def build_download_service(db: Session, mailer: EmailDispatcher) -> DownloadService:
    return DownloadService(db, mailer, settings.FREE_DOWNLOADS_PER_DAY)
