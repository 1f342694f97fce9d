"""Social feed posts and weighted sentiment scoring."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from ..config.logging import get_logger
from .models import Sentiment

logger = get_logger(__name__)

MAX_POSTS = 50

_SENTIMENT_SIGN = {
    Sentiment.POSITIVE: 1,
    Sentiment.NEUTRAL: 0,
    Sentiment.NEGATIVE: -1,
}


@dataclass
class SocialPost:
    """A post from the social feed."""

    id: str
    author: str
    handle: str
    content: str
    sentiment: Sentiment
    weight: int  # institutional weight, 1-10
    symbol: Optional[str] = None
    is_verified: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not 1 <= self.weight <= 10:
            raise ValueError("Post weight must be between 1 and 10")
        if self.symbol:
            self.symbol = self.symbol.strip().upper()


class SocialFeed:
    """In-memory feed holding the newest posts."""

    def __init__(self, posts: Optional[List[SocialPost]] = None):
        self._posts: List[SocialPost] = []
        for post in posts or []:
            self.add_post(post)

    def add_post(self, post: SocialPost) -> None:
        self._posts.insert(0, post)
        if len(self._posts) > MAX_POSTS:
            self._posts.pop()

    def global_feed(self) -> List[SocialPost]:
        return sorted(self._posts, key=lambda p: p.timestamp, reverse=True)

    def symbol_feed(self, symbol: str) -> List[SocialPost]:
        symbol = symbol.strip().upper()
        return [p for p in self.global_feed() if p.symbol == symbol]

    def sentiment_score(self, symbol: str) -> float:
        """Weight-averaged sentiment for a symbol, from -100 to 100."""
        posts = self.symbol_feed(symbol)
        if not posts:
            return 0.0

        total_weight = sum(p.weight for p in posts)
        weighted = sum(p.weight * _SENTIMENT_SIGN[p.sentiment] for p in posts)
        return weighted / total_weight * 100
