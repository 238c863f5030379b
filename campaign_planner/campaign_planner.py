"""
Marketing Campaign Planner using LangChain and LangGraph

Main orchestration class for the one-shot planning workflow.
"""

from typing import Optional

from dotenv import load_dotenv

from .gateway import ContentGateway
from .models import Campaign, CampaignDetails
from .workflow import build_workflow

# Load environment variables
load_dotenv()


class CampaignPlanner:
    """Runs audience research, media planning and content strategy end to end"""

    def __init__(self, gateway: Optional[ContentGateway] = None):
        self.gateway = gateway or ContentGateway()

        # Build the workflow graph
        self.workflow = build_workflow(self.gateway)

    async def run(
        self,
        details: CampaignDetails,
        instructions: Optional[str] = None,
        generate_images: bool = False,
    ) -> dict:
        """
        Run the campaign planning workflow

        Args:
            details: Campaign details from the first wizard step
            instructions: Extra guidance passed to every generation call
            generate_images: Also generate one image per creative group

        Returns:
            Final workflow state; "campaign" holds the plan and "errors" any failed regions
        """
        initial_state = {
            "campaign": Campaign(**details.model_dump()),
            "instructions": instructions or "",
            "generate_images": generate_images,
            "errors": {},
            "reauthorization_required": False,
            "current_step": "research_audience",
        }

        # Execute workflow
        final_state = await self.workflow.ainvoke(initial_state)
        return final_state

    def draw_workflow(self, output_path: str = "workflow_graph.png"):
        """
        Draw and save the workflow graph visualization

        Args:
            output_path: Path where the graph image will be saved
        """
        try:
            # Get the graph as PNG bytes
            graph_image = self.workflow.get_graph().draw_mermaid_png()

            # Save to file
            with open(output_path, "wb") as f:
                f.write(graph_image)

            print(f"\n✓ Workflow graph saved to: {output_path}")
            return output_path
        except Exception as e:
            print(f"\n✗ Failed to draw workflow graph: {e}")
            return None
