from typing import List, Optional


class IntegrationError(Exception):
    """Base exception for integration-level failures (config, connectivity, auth)."""


class UpstreamAPIError(IntegrationError):
    """Represents an upstream API call failure (quota, 4xx/5xx, malformed response)."""


class PromptProviderError(UpstreamAPIError):
    """The generative-text provider call failed; no itinerary can be produced."""


class MalformedPayload(ValueError):
    """The model output could not be decoded into the itinerary structure."""

    def __init__(self, reason: str, excerpt: str = ""):
        self.reason = reason
        self.excerpt = excerpt[:200]
        super().__init__(reason)


class EnrichmentDegraded(Exception):
    """One or more locations could not be geo-resolved."""

    def __init__(self, unresolved: List[str]):
        self.unresolved = list(unresolved)
        super().__init__(f"{len(self.unresolved)} location(s) could not be resolved")


class GenerationFailure(Exception):
    """Terminal failure of a single itinerary generation request."""

    def __init__(self, cause: Exception, message: Optional[str] = None):
        self.cause = cause
        self.reason = type(cause).__name__
        super().__init__(message or f"Could not generate itinerary: {cause}")
