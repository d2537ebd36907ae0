"""
Exceptions raised by the engagement analysis and content generation pipeline.
"""


class CohortPipelineError(Exception):
    """Base class for pipeline failures surfaced to the trigger caller."""
    step = None

    def to_dict(self) -> dict:
        return {
            'error': self.__class__.__name__,
            'details': str(self),
            'step': self.step,
        }


class ContextGatheringError(CohortPipelineError):
    """A community context read failed; the run cannot continue."""

    def __init__(self, read: str, message: str):
        self.read = read
        self.step = f'gather_context:{read}'
        super().__init__(f"Failed to read {read}: {message}")


class TextGenerationError(CohortPipelineError):
    """The text-generation service failed or returned unusable output."""

    def __init__(self, step: str, message: str, user_id=None):
        self.step = step
        self.user_id = user_id
        where = f"{step} (user {user_id})" if user_id is not None else step
        super().__init__(f"Text generation failed at {where}: {message}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.user_id is not None:
            data['user_id'] = self.user_id
        return data


class ContentValidationError(CohortPipelineError):
    """A content payload does not match the schema for its type."""
    step = 'validate_content'


class ContentLockedError(CohortPipelineError):
    """Approved content can no longer be edited."""
    step = 'edit_content'


class ApprovalConflictError(CohortPipelineError):
    """A concurrent approval activated another row of the same type first."""
    step = 'approve_content'
