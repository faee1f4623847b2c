"""Engine components: normalise → dedup → cache → throttle → ledger."""

from .cache import CacheEntry, CacheStats, TTLCache
from .candidate import ArticleCandidate
from .collector import FeedFormatError, HttpFeedCollector, filter_valid_article_urls, is_article_url
from .dedup import (
    ArticleIdentity,
    BatchDeduplicator,
    DuplicateCheck,
    DuplicateDetector,
    PersistedStateDeduplicator,
    SeenSet,
)
from .keys import (
    ArticleAnalysisKey,
    CacheKey,
    NewsListKey,
    NewsSummaryKey,
    ProcessedUrlsKey,
    SourceFetchKey,
)
from .ledger import ProcessedUrlLedger
from .normalizer import TitleNormalizer, normalize, similarity
from .responses import ResponseCache
from .throttle import SourceFetchRecord, SourceFetchThrottle

__all__ = [
    "ArticleAnalysisKey",
    "ArticleCandidate",
    "ArticleIdentity",
    "BatchDeduplicator",
    "CacheEntry",
    "CacheKey",
    "CacheStats",
    "DuplicateCheck",
    "DuplicateDetector",
    "FeedFormatError",
    "HttpFeedCollector",
    "NewsListKey",
    "NewsSummaryKey",
    "PersistedStateDeduplicator",
    "ProcessedUrlLedger",
    "ProcessedUrlsKey",
    "ResponseCache",
    "SeenSet",
    "SourceFetchKey",
    "SourceFetchRecord",
    "SourceFetchThrottle",
    "TTLCache",
    "TitleNormalizer",
    "filter_valid_article_urls",
    "is_article_url",
    "normalize",
    "similarity",
]
