from .website import Website
from .uptime_check import UptimeCheck
from .alert_history import AlertHistory
from .feed import Feed
from .article import Article
from .feed_fetch import FeedFetch
from .settings import Settings

__all__ = ["Website", "UptimeCheck", "AlertHistory", "Feed", "Article", "FeedFetch", "Settings"]
