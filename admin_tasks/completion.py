"""Completed-upload predicate and link counting for content records."""

from typing import Iterable, Optional

from .models import ContentRecord, ContentType, DownloadLink


def _has_url(link: Optional[DownloadLink]) -> bool:
    return link is not None and bool((link.url or "").strip())


def _count_urls(links: Iterable[Optional[DownloadLink]]) -> int:
    return sum(1 for link in links if _has_url(link))


def is_completed_upload(record: ContentRecord) -> bool:
    """True when the record carries at least one usable download URL.

    Single-asset records look at their own links. Episodic records pass when
    any episode link or any season-level link is usable. Blank or
    whitespace-only URLs never count.
    """
    if record.content_type == ContentType.MOVIE:
        return any(_has_url(link) for link in record.download_links)
    if record.content_type == ContentType.SERIES:
        has_episode_links = any(
            _has_url(link) for episode in record.episodes for link in episode.download_links
        )
        has_season_links = any(_has_url(link) for link in record.season_download_links)
        return has_episode_links or has_season_links
    return False


def count_valid_links(record: ContentRecord) -> int:
    """Number of non-blank download URLs on a record (all episodes and seasons for series)."""
    if record.content_type == ContentType.MOVIE:
        return _count_urls(record.download_links)
    episode_links = sum(_count_urls(episode.download_links) for episode in record.episodes)
    return episode_links + _count_urls(record.season_download_links)
