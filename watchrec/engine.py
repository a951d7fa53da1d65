import logging
from typing import Dict, List, Tuple
from collections import defaultdict

from .store import HistoryView, PopularityView, WatchStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


def co_watch_scores(history: HistoryView, popularity: PopularityView, video_id: str) -> Dict[str, int]:
    # Each co-watching user adds the candidate's current popularity once,
    # so k co-watchers contribute k * popularity[candidate].
    scores: Dict[str, int] = defaultdict(int)
    for videos in history.values():
        if video_id not in videos:
            continue
        for watched in videos:
            if watched != video_id:
                scores[watched] += popularity.get(watched, 0)
    return scores


def rank(scores: Dict[str, int], limit: int = DEFAULT_LIMIT) -> List[str]:
    """Highest score first, equal scores by ascending video ID."""
    scored: List[Tuple[str, int]] = sorted(scores.items(), key=lambda x: (-x[1], x[0]))
    return [vid for vid, _ in scored[:limit]]


class Recommender:
    def __init__(self, store: WatchStore, limit: int = DEFAULT_LIMIT):
        self.store = store
        self.limit = limit

    def recommend(self, video_id: str) -> List[str]:
        with self.store.snapshot() as (history, popularity):
            scores = co_watch_scores(history, popularity, video_id)
            ranked = rank(scores, self.limit)
        logger.debug("Generated recommendations for video: %s - %d recommendations", video_id, len(ranked))
        return ranked

    def watch_and_recommend(self, user_id: str, video_id: str) -> List[str]:
        self.store.record_watch(user_id, video_id)
        return self.recommend(video_id)
