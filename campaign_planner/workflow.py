"""
LangGraph workflow builder for campaign planning
"""

from functools import partial

from langgraph.graph import StateGraph, END

from .models import PlannerState
from .nodes import (
    research_audience,
    route_after_audience,
    plan_paid_media,
    analyze_owned_media,
    plan_content_strategy,
    route_after_content_strategy,
    generate_creatives,
)


def build_workflow(gateway):
    """
    Build and compile the campaign planning workflow

    Args:
        gateway: ContentGateway used by every generation node

    Returns:
        Compiled workflow graph
    """
    workflow = StateGraph(PlannerState)

    # Add nodes for the workflow
    workflow.add_node("research_audience", partial(research_audience, gateway=gateway))
    workflow.add_node("plan_paid_media", partial(plan_paid_media, gateway=gateway))
    workflow.add_node("analyze_owned_media", partial(analyze_owned_media, gateway=gateway))
    workflow.add_node("plan_content_strategy", partial(plan_content_strategy, gateway=gateway))
    workflow.add_node("generate_creatives", partial(generate_creatives, gateway=gateway))
    workflow.add_node("end_for_now", lambda state: {"current_step": "completed"})

    # Set entry point
    workflow.set_entry_point("research_audience")

    # Paid and owned media run in parallel once the audience exists
    workflow.add_conditional_edges(
        "research_audience",
        route_after_audience,
        ["plan_paid_media", "analyze_owned_media", "end_for_now"]
    )

    # Content strategy waits for both media branches
    workflow.add_edge(["plan_paid_media", "analyze_owned_media"], "plan_content_strategy")

    workflow.add_conditional_edges(
        "plan_content_strategy",
        route_after_content_strategy,
        {
            "generate_creatives": "generate_creatives",
            "end_for_now": "end_for_now"
        }
    )

    workflow.add_edge("generate_creatives", "end_for_now")

    # End node
    workflow.add_edge("end_for_now", END)

    return workflow.compile()
