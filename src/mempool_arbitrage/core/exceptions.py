"""Exception types shared across the pipeline."""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class StartupError(PipelineError):
    """A required collaborator could not be reached at startup."""


class FeeUnavailableError(PipelineError):
    """The fee oracle could not produce a sample."""


class StaleOpportunityError(PipelineError):
    """The target block of an opportunity was produced before submission."""

    def __init__(self, target_block: int, current_block: int):
        self.target_block = target_block
        self.current_block = current_block
        super().__init__(
            f"target block {target_block} is stale (head at {current_block})"
        )


class RelayError(PipelineError):
    """The private relay answered with an error."""


class RelayTransportError(RelayError):
    """The private relay could not be reached or returned a non-200 response."""
