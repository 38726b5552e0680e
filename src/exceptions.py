class PipelineError(Exception):
    pass


class ValidationError(PipelineError):
    pass


class FeedFetchError(PipelineError):
    pass


class FeedParseError(PipelineError):
    pass


class ExternalServiceError(PipelineError):
    pass


class LLMServiceError(ExternalServiceError):
    pass


class DatabaseError(PipelineError):
    pass


class SlugAlreadyExistsError(DatabaseError):
    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Post slug already exists: {slug}")


class PublishError(PipelineError):
    pass


class ItemNotFoundError(PublishError):
    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Fetched item {item_id} not found")


class ContentNotReadyError(PublishError):
    pass


class InvalidStatusTransitionError(PublishError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move item from {getattr(current, 'value', current)} to {getattr(target, 'value', target)}")


class ConfigurationError(PipelineError):
    pass
