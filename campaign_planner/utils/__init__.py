"""
Utility modules for the campaign planner
"""

from .llm_utils import get_llm, get_image_client
from .workflow_visualizer import draw_workflow_graph

__all__ = ["get_llm", "get_image_client", "draw_workflow_graph"]
