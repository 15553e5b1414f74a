"""
Share-Link Lifecycle
"""

from chartshare.services.share_links.models import (
    CreateLinkOutcome,
    ResolutionFailure,
    RevokeLinksOutcome,
    ShareLinkRecord,
    ShareLinkResolution,
    ShareLinkView,
)
from chartshare.services.share_links.service import ShareLinkService, build_share_url

__all__ = [
    "ShareLinkService",
    "ShareLinkRecord",
    "ShareLinkResolution",
    "ResolutionFailure",
    "CreateLinkOutcome",
    "RevokeLinksOutcome",
    "ShareLinkView",
    "build_share_url",
]
