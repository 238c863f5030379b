"""
Exception types raised by the campaign planner
"""


class CampaignPlannerError(Exception):
    """Base class for all campaign planner errors"""


class AllocationError(CampaignPlannerError, ValueError):
    """Raised when a budget operation is called with invalid input (negative budgets, bad percentages)"""


class GatewayError(CampaignPlannerError):
    """Terminal failure of a content generation call. The message is safe to show to the user."""


class ReauthorizationRequiredError(GatewayError):
    """The API rejected the credential or its tier and the user has to select a new key"""


class ImageGenerationTimeoutError(GatewayError):
    """An image generation call did not finish within the wall-clock limit"""


class WizardStepError(CampaignPlannerError):
    """An action was requested before the wizard step it depends on was completed"""
