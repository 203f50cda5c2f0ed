# uxlyze/core/exceptions.py


class UxlyzeError(Exception):
    """Base class for all errors raised by uxlyze."""


class NavigationError(UxlyzeError):
    """The target page could not be loaded. Fatal for a pipeline run."""


class PipelineTimeoutError(UxlyzeError):
    """The pipeline exceeded its overall time budget. Fatal for a pipeline run."""


class AdmissionError(UxlyzeError):
    """A job was rejected before any browser work began."""


class InvalidURLError(AdmissionError):
    pass


class JobNotFoundError(AdmissionError):
    pass


class JobNotPendingError(AdmissionError):
    pass


class QueueFullError(AdmissionError):
    pass


class PageSpeedError(UxlyzeError):
    """The PageSpeed Insights API call failed or returned an unusable payload."""


class AIAnalysisError(UxlyzeError):
    """The AI visual-analysis call failed or returned an unusable payload."""


class StoreError(UxlyzeError):
    """A job store read or write failed."""
