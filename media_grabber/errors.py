"""Exception hierarchy. Caught at the boundary of each user action."""


class MediaGrabberError(Exception):
    pass


class FetchFailure(MediaGrabberError):
    """Every metadata retrieval strategy failed."""

    def __init__(self, message: str = "Unable to fetch video info. "
                 "Network might be blocked or URL is invalid."):
        super().__init__(message)


class ExtractionFailure(MediaGrabberError):
    """Metadata was retrieved but holds no usable media link."""

    def __init__(self, message: str = "Could not find a valid video link. "
                 "The link might be private or an image."):
        super().__init__(message)


class AIGenerationFailure(MediaGrabberError):
    pass


class StrategyFailed(MediaGrabberError):
    """Raised by a single strategy to reject its own attempt."""


class StrategiesExhausted(MediaGrabberError):
    def __init__(self, failures):
        self.failures = list(failures)  # [(strategy name, exception), ...]
        names = ", ".join(name for name, _ in self.failures) or "none"
        super().__init__(f"All strategies failed: {names}")
