"""Exception taxonomy for the hairstyle advisor."""


class HairstyleAdvisorError(Exception):
    """Base class for every error raised by this package"""


class ConfigurationError(HairstyleAdvisorError):
    """Required configuration (e.g. the Gemini credential) is missing"""


class DecodeError(HairstyleAdvisorError):
    """The input image could not be read"""


class AnalysisError(HairstyleAdvisorError):
    pass


class EmptyResponseError(AnalysisError):
    """The analysis service returned nothing usable"""

    def __init__(self, message: str = "The AI returned an empty response. Try another photo."):
        super().__init__(message)


class MalformedResponseError(AnalysisError):
    """The analysis service returned data in an unexpected shape"""

    def __init__(self, message: str = "The AI returned data in an unexpected format. Please try again."):
        super().__init__(message)


class AnalysisFailedError(AnalysisError):
    """Generic analysis failure (transport, quota, blocked prompt...)"""

    def __init__(self, message: str = "Failed to analyze the image. Please try another photo."):
        super().__init__(message)


class GenerationError(HairstyleAdvisorError):
    pass


class BlockedRequestError(GenerationError):
    """The generation request was blocked by the service's safety policy"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            f"Could not create the image because the request was blocked: {reason}. "
            "Try another style or photo."
        )


class NoImageProducedError(GenerationError):
    def __init__(self, message: str = "The AI could not produce an image for this hairstyle. Please try another one."):
        super().__init__(message)


class InvalidTransitionError(HairstyleAdvisorError):
    """A workflow operation was called from a state that does not allow it"""


class SessionNotFoundError(HairstyleAdvisorError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")
