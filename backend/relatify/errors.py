"""Failure conditions shared by the generation services and the routers.

Each error carries the HTTP status it maps to and a short message that is
safe to show to the end user. The app renders them as ``{"error": message}``.
"""


class RelatifyError(Exception):
	status_code = 500

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class InvalidRequest(RelatifyError):
	"""A required field is missing or a value is out of range."""
	status_code = 400


class GenerationFailure(RelatifyError):
	"""The completion endpoint answered with a non-success status or was unreachable."""
	status_code = 500


class MalformedResponse(RelatifyError):
	"""The completion endpoint answered, but not with the expected shape."""
	status_code = 500


class OnboardingError(RelatifyError):
	"""Illegal onboarding transition, e.g. completing twice."""
	status_code = 409
