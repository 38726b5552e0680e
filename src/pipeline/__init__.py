from .auto_publish import AutoPublishService
from .feed_fetcher import FeedFetcher
from .generation import GenerationOrchestrator
from .publisher import PublishAction
from .scheduler import PipelineScheduler

__all__ = [
    "AutoPublishService",
    "FeedFetcher",
    "GenerationOrchestrator",
    "PublishAction",
    "PipelineScheduler",
]
