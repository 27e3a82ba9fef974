"""Exceptions raised by PromptCraft."""


class PromptCraftError(RuntimeError):
    """Base class for PromptCraft failures."""


class MissingCredentialError(PromptCraftError, ValueError):
    """No API key is configured; raised before any network call."""


class OptimizeError(PromptCraftError):
    """The optimize call failed."""


class GenerationError(PromptCraftError):
    """The test/generation call failed or returned nothing usable."""


class AnalysisError(PromptCraftError):
    """The image analysis call failed."""


class StageBusyError(PromptCraftError):
    """A stage was invoked while a previous invocation is still running."""


class StageRejectedError(PromptCraftError):
    """A stage's precondition does not hold; no call was made."""


class StaleResultError(PromptCraftError):
    """The session changed mode or was reset while a stage was in flight."""


class SessionImportError(PromptCraftError):
    """A session snapshot could not be read."""
