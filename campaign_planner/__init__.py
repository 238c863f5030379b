"""
Marketing Campaign Planner Package
"""

from .campaign_planner import CampaignPlanner
from .models import Campaign, CampaignDetails, PlannerState
from .wizard import CampaignWizard, WizardStep

__all__ = ["CampaignPlanner", "Campaign", "CampaignDetails", "PlannerState", "CampaignWizard", "WizardStep"]
